"""
Attachment Pipeline.

Moves employee photos between local records and the remote blob store, with
a disk cache on the read path.

Cache layout:
    <cache_dir>/<last path segment of the URL>

    For Firebase download URLs the last segment of the decoded object path is
    "<employeeId>.jpg", so the cache key does not depend on the download token.
"""

import asyncio
import hashlib
import logging
import os
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlsplit

from core.remote.blobs import BlobStore
from core.remote.exceptions import RemoteObjectTooLargeError, RemoteStoreError
from modules.directory.services.errors import AttachmentError, AttachmentTooLargeError

logger = logging.getLogger(__name__)


IMAGE_CONTENT_TYPE = "image/jpeg"
DEFAULT_MAX_DOWNLOAD_BYTES = 8 * 1024 * 1024


def cache_key_for(url: str) -> str:
    """
    Cache file name for a URL: its decoded last path segment.

    Falls back to the SHA-256 of the URL when the segment is empty or unusable.
    """
    path = unquote(urlsplit(url).path)
    key = path.rsplit("/", 1)[-1].strip()
    if key in ("", ".", "..") or "\\" in key:
        return hashlib.sha256(url.encode("utf-8")).hexdigest()
    return key


class AttachmentPipeline:
    """
    Photo upload/download with a local disk cache.

    Args:
        blob_store: Remote object store.
        cache_dir: Directory for cached photos (created on first write).
        namespace: Remote folder holding the photos.
        max_download_bytes: Largest photo accepted on download.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        cache_dir: Path,
        namespace: str = "employeeImages",
        max_download_bytes: int = DEFAULT_MAX_DOWNLOAD_BYTES,
    ) -> None:
        self._blobs = blob_store
        self._cache_dir = Path(cache_dir)
        self._namespace = namespace.strip("/")
        self._max_download_bytes = max_download_bytes

    def object_path(self, owner_id: str) -> str:
        return f"{self._namespace}/{owner_id}.jpg"

    def cache_path_for(self, url: str) -> Path:
        return self._cache_dir / cache_key_for(url)

    # =========================================================================
    # Upload
    # =========================================================================

    async def upload(self, data: bytes, owner_id: str) -> str:
        """
        Upload a photo and return its durable download URL.

        Raises:
            AttachmentError: Empty payload, or the upload/URL request failed.
        """
        if not data:
            raise AttachmentError(f"Cannot encode empty image for {owner_id}")

        path = self.object_path(owner_id)
        try:
            await self._blobs.put(path, data, IMAGE_CONTENT_TYPE)
            url = await self._blobs.download_url(path)
        except RemoteStoreError as e:
            raise AttachmentError(f"Upload of {path} failed: {e}") from e

        await self._write_cache(url, data)
        logger.info(f"Uploaded photo {path} ({len(data)} bytes)")
        return url

    # =========================================================================
    # Download
    # =========================================================================

    async def download(self, url: str) -> bytes:
        """
        Return photo bytes for a URL, from the cache when possible.

        Raises:
            AttachmentTooLargeError: Body above ``max_download_bytes``.
            AttachmentError: Any other download failure.
        """
        cache_path = self.cache_path_for(url)
        cached = await asyncio.to_thread(self._read_cache, cache_path)
        if cached is not None:
            logger.debug(f"Photo cache hit: {cache_path.name}")
            return cached

        try:
            data = await self._blobs.get(url, self._max_download_bytes)
        except RemoteObjectTooLargeError as e:
            raise AttachmentTooLargeError(url, self._max_download_bytes) from e
        except RemoteStoreError as e:
            raise AttachmentError(f"Download of {cache_path.name} failed: {e}") from e

        await self._write_cache(url, data)
        return data

    # =========================================================================
    # Delete
    # =========================================================================

    async def delete_attachment(self, owner_id: str) -> bool:
        """
        Best-effort delete of an owner's photo. Never raises.

        Returns:
            True if the remote object was deleted.
        """
        path = self.object_path(owner_id)
        try:
            await self._blobs.delete(path)
        except RemoteStoreError as e:
            logger.warning(f"Could not delete photo {path}: {e}")
            return False
        return True

    async def wipe_namespace(self) -> int:
        """
        Delete every object under the photo namespace.

        Individual delete failures are logged and skipped.

        Returns:
            Number of objects deleted.

        Raises:
            AttachmentError: The namespace could not be listed.
        """
        try:
            paths = await self._blobs.list(f"{self._namespace}/")
        except RemoteStoreError as e:
            raise AttachmentError(f"Could not list {self._namespace}: {e}") from e

        deleted = 0
        for path in paths:
            try:
                await self._blobs.delete(path)
                deleted += 1
            except RemoteStoreError as e:
                logger.warning(f"Failed to delete photo {path}: {e}")

        logger.info(f"Wiped {deleted}/{len(paths)} photo(s) from {self._namespace}")
        return deleted

    # =========================================================================
    # Disk cache
    # =========================================================================

    @staticmethod
    def _read_cache(path: Path) -> Optional[bytes]:
        try:
            if path.is_file():
                return path.read_bytes()
        except OSError as e:
            logger.warning(f"Photo cache read failed for {path.name}: {e}")
        return None

    async def _write_cache(self, url: str, data: bytes) -> None:
        """Write-through to the cache. Failures are logged, never raised."""
        path = self.cache_path_for(url)
        try:
            await asyncio.to_thread(self._atomic_write, path, data)
        except OSError as e:
            logger.warning(f"Photo cache write failed for {path.name}: {e}")

    @staticmethod
    def _atomic_write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp_path.write_bytes(data)
            os.replace(tmp_path, path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
