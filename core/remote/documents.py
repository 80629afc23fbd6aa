"""
Remote Document Store.

CRUD facade over a remote document collection store, implemented against the
Firestore REST API.

Design Principles:
    FirestoreDocumentStore requires httpx.AsyncClient via EXPLICIT dependency
    injection. The HTTP client lifecycle is managed by the caller.

    Usage in FastAPI lifespan:
        store = FirestoreDocumentStore(
            http_client=app.state.http_client,
            project_id="my-project",
        )
        documents = await store.list_documents("employees")

    Usage in background tasks:
        from core.http_client import create_standalone_http_client

        async with create_standalone_http_client() as http_client:
            store = FirestoreDocumentStore(http_client=http_client, project_id="my-project")
            await store.set_document("municipios", doc_id, {"nome": "Curitiba"})
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol
from urllib.parse import quote

import httpx

from core.remote.codec import decode_fields, encode_fields
from core.remote.exceptions import RemoteConnectionError, RemoteNotFoundError, RemoteStoreError

logger = logging.getLogger(__name__)


DEFAULT_FIRESTORE_API = "https://firestore.googleapis.com"
# Firestore rejects commits with more than 500 writes
MAX_BATCH_WRITES = 500


@dataclass
class RemoteDocument:
    """A remote document: its ID within the collection and decoded fields."""

    id: str
    data: Dict[str, Any] = field(default_factory=dict)


class DocumentStore(Protocol):
    """
    Protocol for remote document collection operations.

    Allows swapping the REST implementation for an in-memory fake in tests.
    """

    async def list_documents(self, collection: str) -> List[RemoteDocument]: ...

    async def get_document(self, collection: str, doc_id: str) -> Optional[RemoteDocument]: ...

    async def set_document(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None: ...

    async def delete_document(self, collection: str, doc_id: str) -> None: ...

    async def batch_delete(self, collection: str, doc_ids: Iterable[str]) -> int: ...


class FirestoreDocumentStore:
    """
    Firestore REST implementation of DocumentStore.

    Args:
        http_client: Shared httpx.AsyncClient (required).
        project_id: Google Cloud project ID.
        database: Firestore database ID.
        api_base: REST API base URL (emulator URL in development).
        auth_token: Optional bearer token.
        timeout: HTTP request timeout in seconds.
        page_size: Page size used when listing collections.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        project_id: str,
        database: str = "(default)",
        api_base: str = DEFAULT_FIRESTORE_API,
        auth_token: Optional[str] = None,
        timeout: float = 30.0,
        page_size: int = 300,
    ) -> None:
        if http_client is None:
            raise ValueError(
                "http_client is required. Use app.state.http_client in the lifespan, "
                "or create_standalone_http_client() for background tasks."
            )
        if not project_id:
            raise ValueError("project_id is required")

        self._client = http_client
        self._timeout = timeout
        self._page_size = page_size
        self._auth_token = auth_token
        self._database_path = f"projects/{project_id}/databases/{database}"
        self._documents_url = f"{api_base.rstrip('/')}/v1/{self._database_path}/documents"

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        return headers

    def _collection_url(self, collection: str) -> str:
        return f"{self._documents_url}/{quote(collection, safe='')}"

    def _document_url(self, collection: str, doc_id: str) -> str:
        return f"{self._collection_url(collection)}/{quote(doc_id, safe='')}"

    def _document_name(self, collection: str, doc_id: str) -> str:
        """Full resource name used inside commit writes."""
        return f"{self._database_path}/documents/{collection}/{doc_id}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Issue a request and translate transport/HTTP failures.

        Raises:
            RemoteConnectionError: Network failure or timeout.
            RemoteNotFoundError: HTTP 404.
            RemoteStoreError: Any other HTTP error status.
        """
        try:
            response = await self._client.request(
                method,
                url,
                headers=self._get_headers(),
                timeout=self._timeout,
                **kwargs,
            )
        except httpx.HTTPError as e:
            raise RemoteConnectionError(f"{method} {url} failed: {e}") from e

        if response.status_code == 404:
            raise RemoteNotFoundError(f"{method} {url}: not found", status_code=404)
        if response.status_code >= 400:
            raise RemoteStoreError(
                f"{method} {url}: HTTP {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _to_document(payload: Dict[str, Any]) -> RemoteDocument:
        name = payload.get("name", "")
        return RemoteDocument(
            id=name.rsplit("/", 1)[-1],
            data=decode_fields(payload.get("fields")),
        )

    # =========================================================================
    # Collection Operations
    # =========================================================================

    async def list_documents(self, collection: str) -> List[RemoteDocument]:
        """
        Fetch every document in a collection, following page tokens.

        Returns:
            List of RemoteDocument in the order the API returns them.
        """
        documents: List[RemoteDocument] = []
        page_token: Optional[str] = None

        while True:
            params: Dict[str, Any] = {"pageSize": self._page_size}
            if page_token:
                params["pageToken"] = page_token

            response = await self._request("GET", self._collection_url(collection), params=params)
            payload = response.json() or {}

            documents.extend(self._to_document(doc) for doc in payload.get("documents", []))

            page_token = payload.get("nextPageToken")
            if not page_token:
                break

        logger.debug(f"Listed {len(documents)} documents from '{collection}'")
        return documents

    async def get_document(self, collection: str, doc_id: str) -> Optional[RemoteDocument]:
        """Fetch one document, or None if it does not exist."""
        try:
            response = await self._request("GET", self._document_url(collection, doc_id))
        except RemoteNotFoundError:
            return None
        return self._to_document(response.json())

    async def set_document(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """
        Create or overwrite a document.

        PATCH without an update mask replaces the whole document, which gives
        set semantics (fields absent from ``data`` are removed remotely).
        """
        await self._request(
            "PATCH",
            self._document_url(collection, doc_id),
            json={"fields": encode_fields(data)},
        )
        logger.debug(f"Wrote document {collection}/{doc_id}")

    async def delete_document(self, collection: str, doc_id: str) -> None:
        """Delete one document. Deleting a missing document succeeds."""
        await self._request("DELETE", self._document_url(collection, doc_id))
        logger.debug(f"Deleted document {collection}/{doc_id}")

    async def batch_delete(self, collection: str, doc_ids: Iterable[str]) -> int:
        """
        Delete many documents through ``documents:commit``.

        Returns:
            Number of delete writes committed.
        """
        ids = list(doc_ids)
        deleted = 0

        for start in range(0, len(ids), MAX_BATCH_WRITES):
            chunk = ids[start:start + MAX_BATCH_WRITES]
            writes = [{"delete": self._document_name(collection, doc_id)} for doc_id in chunk]
            await self._request("POST", f"{self._documents_url}:commit", json={"writes": writes})
            deleted += len(chunk)

        if deleted:
            logger.info(f"Batch-deleted {deleted} documents from '{collection}'")
        return deleted
