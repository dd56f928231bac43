"""
errors.py — exception taxonomy for the analysis pipeline.

  ConfigurationError  → a required key/service is missing; raised before any I/O
  InputError          → no (or unusable) image supplied; raised before any I/O
  ServiceError        → OCR/LLM, storage or lookup call failed; logged, then surfaced

Malformed LLM output and ingredient lookup misses are NOT errors — they are
absorbed by json_recovery.py and scorer.py respectively.
"""
from __future__ import annotations

from typing import Optional


class AnalysisError(Exception):
    """Base class for everything the pipeline raises on purpose."""


class ConfigurationError(AnalysisError):
    pass


class InputError(AnalysisError):
    pass


class MalformedEncodingError(InputError):
    """An encoded image lacks a valid `data:<mime>;base64,` prefix or payload."""


class ServiceError(AnalysisError):
    """
    An external collaborator failed.
    `stage` is filled in by the pipeline so logs and callers know where it broke.
    """

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


class ServiceUnavailableError(ServiceError):
    """Non-2xx response, transport failure or timeout."""


class MalformedServiceResponseError(ServiceError):
    """The provider answered but without the expected message envelope."""


class StorageError(ServiceError):
    """Blob store upload / bucket provisioning failed."""
