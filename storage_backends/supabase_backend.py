"""
Supabase Storage backend (REST API, no SDK).

Endpoints used:
  GET  /storage/v1/bucket/{bucket}                 → does the bucket exist?
  POST /storage/v1/bucket                          → create it (public, size-limited)
  POST /storage/v1/object/{bucket}/{filename}      → upload (x-upsert header)
  GET  /storage/v1/object/public/{bucket}/{name}   → public URL (never called here)

The bucket is provisioned lazily on the first upload of the process.
Objects are never deleted: a request abandoned after upload leaves its
image behind.
"""
from __future__ import annotations

import asyncio
import logging

import aiohttp

from errors import StorageError
from storage_backends.base import BlobStore

logger = logging.getLogger(__name__)

_TIMEOUT = aiohttp.ClientTimeout(total=30)


class SupabaseBlobStore(BlobStore):

    def __init__(
        self,
        base_url: str,
        api_key: str,
        bucket: str = "product-images",
        size_limit: int = 5 * 1024 * 1024,
    ) -> None:
        self._base    = base_url.rstrip("/")
        self._bucket  = bucket
        self._limit   = size_limit
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "apikey":        api_key,
        }
        self._bucket_ready = False
        self._bucket_lock  = asyncio.Lock()

    @property
    def name(self) -> str:
        return f"Supabase Storage ({self._bucket})"

    def public_url(self, filename: str) -> str:
        return f"{self._base}/storage/v1/object/public/{self._bucket}/{filename}"

    async def upload(
        self,
        filename: str,
        data: bytes,
        content_type: str,
        upsert: bool = True,
    ) -> str:
        await self.ensure_bucket()

        headers = {
            **self._headers,
            "Content-Type": content_type,
            "x-upsert":     "true" if upsert else "false",
        }
        url = f"{self._base}/storage/v1/object/{self._bucket}/{filename}"
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(url, data=data, headers=headers, timeout=_TIMEOUT) as resp:
                    if resp.status not in (200, 201):
                        body = await resp.text()
                        raise StorageError(f"Upload failed ({resp.status}): {body[:200]}")
                    payload = await resp.json(content_type=None)
        except aiohttp.ClientError as exc:
            raise StorageError(f"Upload failed: {exc}") from exc

        path = (payload or {}).get("Key") or f"{self._bucket}/{filename}"
        logger.info("Uploaded %d bytes to %s", len(data), path)
        return path

    async def ensure_bucket(self) -> None:
        """Create the bucket (public, size-limited) if it does not exist yet."""
        if self._bucket_ready:
            return
        async with self._bucket_lock:
            if self._bucket_ready:
                return
            try:
                async with aiohttp.ClientSession() as session:
                    async with session.get(
                        f"{self._base}/storage/v1/bucket/{self._bucket}",
                        headers=self._headers,
                        timeout=_TIMEOUT,
                    ) as resp:
                        exists = resp.status == 200

                    if not exists:
                        async with session.post(
                            f"{self._base}/storage/v1/bucket",
                            json={
                                "id":              self._bucket,
                                "name":            self._bucket,
                                "public":          True,
                                "file_size_limit": self._limit,
                            },
                            headers=self._headers,
                            timeout=_TIMEOUT,
                        ) as resp:
                            # 409 → someone else created it between our GET and POST
                            if resp.status not in (200, 201, 409):
                                body = await resp.text()
                                raise StorageError(
                                    f"Could not create bucket {self._bucket!r} ({resp.status}): {body[:200]}"
                                )
                        logger.info("Created storage bucket %s", self._bucket)
            except aiohttp.ClientError as exc:
                raise StorageError(f"Bucket check failed: {exc}") from exc
            self._bucket_ready = True
