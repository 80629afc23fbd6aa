"""
Remote Blob Store.

Object put/get/delete/list facade over the Firebase Storage REST API.
Objects are addressed by path (``employeeImages/<id>.jpg``); reads go through
durable download URLs carrying a download token.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import quote

import httpx

from core.remote.exceptions import (
    RemoteConnectionError,
    RemoteNotFoundError,
    RemoteObjectTooLargeError,
    RemoteStoreError,
)

logger = logging.getLogger(__name__)


DEFAULT_STORAGE_API = "https://firebasestorage.googleapis.com"


class BlobStore(Protocol):
    """Protocol for remote object storage operations."""

    async def put(self, path: str, data: bytes, content_type: str) -> None: ...

    async def download_url(self, path: str) -> str: ...

    async def get(self, url: str, max_bytes: int) -> bytes: ...

    async def delete(self, path: str) -> None: ...

    async def list(self, prefix: str) -> List[str]: ...


class FirebaseBlobStore:
    """
    Firebase Storage REST implementation of BlobStore.

    Args:
        http_client: Shared httpx.AsyncClient (required).
        bucket: Storage bucket name (``<project>.appspot.com``).
        api_base: REST API base URL.
        auth_token: Optional bearer token.
        timeout: HTTP request timeout in seconds.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        bucket: str,
        api_base: str = DEFAULT_STORAGE_API,
        auth_token: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        if http_client is None:
            raise ValueError("http_client is required")
        if not bucket:
            raise ValueError("bucket is required")

        self._client = http_client
        self._timeout = timeout
        self._auth_token = auth_token
        self._objects_url = f"{api_base.rstrip('/')}/v0/b/{bucket}/o"

    def _get_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        if extra:
            headers.update(extra)
        return headers

    def _object_url(self, path: str) -> str:
        return f"{self._objects_url}/{quote(path, safe='')}"

    @staticmethod
    def _raise_for_status(method: str, url: str, response: httpx.Response) -> None:
        if response.status_code == 404:
            raise RemoteNotFoundError(f"{method} {url}: not found", status_code=404)
        if response.status_code >= 400:
            raise RemoteStoreError(
                f"{method} {url}: HTTP {response.status_code}",
                status_code=response.status_code,
            )

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        extra_headers = kwargs.pop("headers", None)
        try:
            response = await self._client.request(
                method,
                url,
                headers=self._get_headers(extra_headers),
                timeout=self._timeout,
                **kwargs,
            )
        except httpx.HTTPError as e:
            raise RemoteConnectionError(f"{method} {url} failed: {e}") from e

        self._raise_for_status(method, url, response)
        return response

    # =========================================================================
    # Object Operations
    # =========================================================================

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        """Upload (or overwrite) an object with the given content type."""
        await self._request(
            "POST",
            self._objects_url,
            params={"uploadType": "media", "name": path},
            content=data,
            headers={"Content-Type": content_type},
        )
        logger.debug(f"Uploaded object {path} ({len(data)} bytes)")

    async def download_url(self, path: str) -> str:
        """
        Build the durable download URL for an object.

        Raises:
            RemoteStoreError: If the object metadata carries no download token.
        """
        object_url = self._object_url(path)
        response = await self._request("GET", object_url)
        metadata = response.json() or {}

        tokens = str(metadata.get("downloadTokens") or "")
        token = tokens.split(",")[0].strip()
        if not token:
            raise RemoteStoreError(f"No download token for object {path}")

        return f"{object_url}?alt=media&token={token}"

    async def get(self, url: str, max_bytes: int) -> bytes:
        """
        Download an object body, refusing bodies larger than ``max_bytes``.

        The limit is checked against Content-Length when present and against
        the running byte count while streaming.

        Raises:
            RemoteObjectTooLargeError: Body exceeds ``max_bytes``.
        """
        try:
            async with self._client.stream(
                "GET",
                url,
                headers=self._get_headers(),
                timeout=self._timeout,
            ) as response:
                self._raise_for_status("GET", url, response)

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > max_bytes:
                    raise RemoteObjectTooLargeError(max_bytes, int(declared))

                buffer = bytearray()
                async for chunk in response.aiter_bytes():
                    buffer.extend(chunk)
                    if len(buffer) > max_bytes:
                        raise RemoteObjectTooLargeError(max_bytes)

                return bytes(buffer)

        except httpx.HTTPError as e:
            raise RemoteConnectionError(f"GET {url} failed: {e}") from e

    async def delete(self, path: str) -> None:
        """Delete an object."""
        await self._request("DELETE", self._object_url(path))
        logger.debug(f"Deleted object {path}")

    async def list(self, prefix: str) -> List[str]:
        """
        List object paths under a prefix, following page tokens.

        Returns:
            Full object paths (``employeeImages/<id>.jpg``).
        """
        names: List[str] = []
        page_token: Optional[str] = None

        while True:
            params: Dict[str, Any] = {"prefix": prefix}
            if page_token:
                params["pageToken"] = page_token

            response = await self._request("GET", self._objects_url, params=params)
            payload = response.json() or {}

            names.extend(item["name"] for item in payload.get("items", []) if item.get("name"))

            page_token = payload.get("nextPageToken")
            if not page_token:
                break

        return names
