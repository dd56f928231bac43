"""
Abstract base for blob storage backends.
The pipeline only needs two things from storage: put bytes somewhere durable,
and get back an address the OCR provider can resolve.
"""
from __future__ import annotations

import uuid
from abc import ABC, abstractmethod

from image_codec import extension_for


def make_filename(mime_type: str, prefix: str = "product") -> str:
    """Unique object name, e.g. product-3f2c…e1.jpg"""
    return f"{prefix}-{uuid.uuid4().hex}.{extension_for(mime_type)}"


class BlobStore(ABC):

    @abstractmethod
    async def upload(
        self,
        filename: str,
        data: bytes,
        content_type: str,
        upsert: bool = True,
    ) -> str:
        """Store `data` under `filename`. Returns the stored object path."""
        ...

    @abstractmethod
    def public_url(self, filename: str) -> str:
        """Address that resolves to the stored object without credentials."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    async def store(self, data: bytes, content_type: str) -> str:
        """Upload under a fresh filename and return its public URL."""
        filename = make_filename(content_type)
        await self.upload(filename, data, content_type)
        return self.public_url(filename)
