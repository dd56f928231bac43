"""
result_cache.py — single-slot store for the most recent ComparisonResult.

One fixed key, overwritten on every analysis, no expiry and no history.
The value is kept as serialized JSON text so what `get()` returns is always a
fresh object, never one a previous reader mutated.

Non-durable (process memory only) and single-writer: concurrent analyses
simply overwrite each other, last one wins.
"""
from __future__ import annotations

import logging
from typing import Optional

from models import ComparisonResult

logger = logging.getLogger(__name__)

SLOT_KEY = "comparisonData"


class ResultCache:

    def __init__(self, key: str = SLOT_KEY) -> None:
        self.key = key
        self._text: Optional[str] = None

    def put(self, result: ComparisonResult) -> None:
        self._text = result.to_json()
        logger.debug("Cached comparison for %r under %s", result.original.name, self.key)

    def get(self) -> Optional[ComparisonResult]:
        if self._text is None:
            return None
        return ComparisonResult.from_json(self._text)

    def get_text(self) -> Optional[str]:
        return self._text

    def clear(self) -> None:
        self._text = None
