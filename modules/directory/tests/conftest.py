"""
Conftest for Directory Module Tests.

Provides an in-memory SQLite store, in-memory remote fakes and a wired
SyncEngine.
"""

import copy
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote, unquote, urlsplit

import pytest
import pytest_asyncio

from core.database.engine import create_engine_for_url
from core.database.session import create_session_factory, init_database
from core.remote.documents import RemoteDocument
from core.remote.exceptions import RemoteNotFoundError, RemoteObjectTooLargeError
from core.sync_manager import get_sync_manager, reset_sync_manager
from modules.directory.core.config import DirectorySettings
from modules.directory.services.attachments import AttachmentPipeline
from modules.directory.services.local_store import LocalStore
from modules.directory.services.sync_engine import SyncEngine


# =============================================================================
# Remote fakes
# =============================================================================


class FakeDocumentStore:
    """
    In-memory DocumentStore. Collections keep insertion order.

    ``failures`` maps an operation name (``set_document``...) to the exception
    it should raise; ``fail_ids`` limits the failure to some document IDs.
    """

    def __init__(self) -> None:
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self.fail_ids: Optional[set] = None

    def _check(self, operation: str, doc_id: Optional[str] = None) -> None:
        error = self.failures.get(operation)
        if error is None:
            return
        if self.fail_ids is None or doc_id in self.fail_ids:
            raise error

    def seed(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.collections[collection][doc_id] = copy.deepcopy(data)

    async def list_documents(self, collection: str) -> List[RemoteDocument]:
        self.calls.append(("list", collection, None))
        self._check("list_documents")
        return [
            RemoteDocument(doc_id, copy.deepcopy(data))
            for doc_id, data in self.collections[collection].items()
        ]

    async def get_document(self, collection: str, doc_id: str) -> Optional[RemoteDocument]:
        data = self.collections[collection].get(doc_id)
        return RemoteDocument(doc_id, copy.deepcopy(data)) if data is not None else None

    async def set_document(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.calls.append(("set", collection, doc_id))
        self._check("set_document", doc_id)
        self.collections[collection][doc_id] = copy.deepcopy(data)

    async def delete_document(self, collection: str, doc_id: str) -> None:
        self.calls.append(("delete", collection, doc_id))
        self._check("delete_document", doc_id)
        self.collections[collection].pop(doc_id, None)

    async def batch_delete(self, collection: str, doc_ids: Iterable[str]) -> int:
        ids = list(doc_ids)
        self.calls.append(("batch_delete", collection, len(ids)))
        self._check("batch_delete")
        for doc_id in ids:
            self.collections[collection].pop(doc_id, None)
        return len(ids)


class FakeBlobStore:
    """In-memory BlobStore with Firebase-like download URLs."""

    BASE = "https://blobs.test/v0/b/bucket/o"

    def __init__(self) -> None:
        self.objects: Dict[str, bytes] = {}
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self._uploads = 0

    def _check(self, operation: str) -> None:
        error = self.failures.get(operation)
        if error is not None:
            raise error

    def url_for(self, path: str, token: str = "t0") -> str:
        return f"{self.BASE}/{quote(path, safe='')}?alt=media&token={token}"

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        self.calls.append(("put", path))
        self._check("put")
        self.objects[path] = bytes(data)
        self._uploads += 1

    async def download_url(self, path: str) -> str:
        if path not in self.objects:
            raise RemoteNotFoundError(f"{path}: not found", status_code=404)
        return self.url_for(path, token=f"t{self._uploads}")

    async def get(self, url: str, max_bytes: int) -> bytes:
        self.calls.append(("get", url))
        self._check("get")
        path = unquote(urlsplit(url).path).split("/o/", 1)[-1]
        if path not in self.objects:
            raise RemoteNotFoundError(f"{path}: not found", status_code=404)
        data = self.objects[path]
        if len(data) > max_bytes:
            raise RemoteObjectTooLargeError(max_bytes, len(data))
        return data

    async def delete(self, path: str) -> None:
        self.calls.append(("delete", path))
        self._check("delete")
        if path not in self.objects:
            raise RemoteNotFoundError(f"{path}: not found", status_code=404)
        del self.objects[path]

    async def list(self, prefix: str) -> List[str]:
        self._check("list")
        return [path for path in self.objects if path.startswith(prefix)]


# =============================================================================
# Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def db_engine():
    engine = create_engine_for_url("sqlite+aiosqlite:///:memory:")
    await init_database(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def directory_settings(tmp_path):
    return DirectorySettings(
        firestore_project_id="proj",
        storage_bucket="bucket",
        cache_dir=tmp_path / "cache",
        sync_max_concurrency=4,
        environment="development",
        debug=False,
        preview_mode=False,
    )


@pytest.fixture
def documents():
    return FakeDocumentStore()


@pytest.fixture
def blobs():
    return FakeBlobStore()


@pytest.fixture
def attachments(blobs, directory_settings):
    return AttachmentPipeline(
        blob_store=blobs,
        cache_dir=directory_settings.cache_dir,
        namespace=directory_settings.image_namespace,
        max_download_bytes=1024,
    )


@pytest_asyncio.fixture
async def store(session_factory):
    local_store = LocalStore(session_factory())
    yield local_store
    await local_store.close()


@pytest.fixture
def engine(store, documents, attachments, directory_settings):
    return SyncEngine(
        store=store,
        documents=documents,
        attachments=attachments,
        settings=directory_settings,
    )


@pytest.fixture
def fresh_sync_manager():
    """Reset the SyncManager singleton around the test."""
    reset_sync_manager()
    yield get_sync_manager()
    reset_sync_manager()
