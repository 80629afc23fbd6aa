"""
Directory Sync Engine.

Orchestrates synchronization between the local store and the remote
document store:

    push_all / push_one   local -> remote
    pull_all              remote -> local, one commit per pull
    delete                remote first, then photo, then local
    remove_remote_duplicates, clear_employee_contacts, wipe_remote

Every operation returns a SyncResult and never raises. Per-record work inside
push_all/pull_all runs concurrently (bounded by ``sync_max_concurrency``) and
is joined before the result is aggregated; one failing record never cancels
the others.

Pushes and deletes of the same record are serialized by a lock keyed on
(kind, row_id); a push re-reads its record under that lock. Pulls, deletes
and contact resets change local data inside one LocalStore transaction each.
"""

import asyncio
import logging
import weakref
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Tuple

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.remote.blobs import FirebaseBlobStore
from core.remote.documents import DocumentStore, FirestoreDocumentStore, RemoteDocument
from core.sync_manager import SyncResult
from modules.directory.core.config import DirectorySettings
from modules.directory.models import Employee
from modules.directory.services.attachments import AttachmentPipeline
from modules.directory.services.errors import AttachmentError, RecordNotFoundError
from modules.directory.services.identity import IdentityResolver
from modules.directory.services.local_store import LocalStore
from modules.directory.services.mappers import (
    COLLECTION_SPECS,
    CollectionSpec,
    EntityKind,
    collection_name,
    text_field,
)

logger = logging.getLogger(__name__)

# (document ID, document fields, photo bytes)
Snapshot = Tuple[str, Dict[str, Any], Optional[bytes]]


class SyncEngine:
    """
    Bidirectional sync between the local store and the remote collections.

    The engine is the only writer of remote documents.

    Args:
        store: Local store adapter.
        documents: Remote document store.
        attachments: Photo pipeline.
        settings: Directory settings (collection names, concurrency).
        resolver: Identity resolver (a default one is created if omitted).
    """

    def __init__(
        self,
        store: LocalStore,
        documents: DocumentStore,
        attachments: AttachmentPipeline,
        settings: DirectorySettings,
        resolver: Optional[IdentityResolver] = None,
    ) -> None:
        self._store = store
        self._documents = documents
        self._attachments = attachments
        self._settings = settings
        self._resolver = resolver or IdentityResolver()
        self._max_concurrency = max(1, settings.sync_max_concurrency)
        self._record_locks: "weakref.WeakValueDictionary[Tuple[EntityKind, int], asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    @property
    def store(self) -> LocalStore:
        return self._store

    @property
    def resolver(self) -> IdentityResolver:
        return self._resolver

    def collection_for(self, kind: EntityKind) -> str:
        return collection_name(kind, self._settings)

    def _record_lock(self, kind: EntityKind, row_id: int) -> asyncio.Lock:
        key = (kind, row_id)
        lock = self._record_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._record_locks[key] = lock
        return lock

    async def _gather_bounded(self, jobs: Iterable[Awaitable[Any]]) -> List[Any]:
        """
        Run jobs concurrently, at most ``sync_max_concurrency`` at a time.

        Results come back in job order; exceptions are returned, not raised.
        """
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def run(job: Awaitable[Any]) -> Any:
            async with semaphore:
                return await job

        return await asyncio.gather(*(run(job) for job in jobs), return_exceptions=True)

    @staticmethod
    def _aggregate(result: SyncResult, outcomes: List[Any], count: int) -> SyncResult:
        """Complete with ``count`` if every outcome succeeded, else fail with the first error."""
        errors = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]
        result.failed = len(errors)
        if not errors:
            return result.complete(count)

        result.count = count - len(errors)
        for error in errors:
            result.fail(error)
        return result

    @staticmethod
    def _log_result(result: SyncResult) -> SyncResult:
        if result.succeeded:
            logger.info(
                f"{result.operation} {result.collection}: {result.count} record(s) "
                f"({result.duration_ms:.0f}ms)"
            )
        else:
            logger.error(
                f"{result.operation} {result.collection} failed "
                f"({result.failed} failed): {result.error}"
            )
        return result

    # =========================================================================
    # Push (local -> remote)
    # =========================================================================

    @staticmethod
    async def _load_relations(spec: CollectionSpec, record: Any) -> None:
        """Load the relationships the mapping functions touch (must run inside perform)."""
        for name in spec.relations:
            await getattr(record.awaitable_attrs, name)

    async def _snapshot(self, spec: CollectionSpec, row_id: int) -> Optional[Snapshot]:
        """
        Read everything a push needs from the committed local state.

        Returns None when the record no longer exists.
        """
        async def work(session: AsyncSession) -> Optional[Snapshot]:
            record = await session.get(spec.model, row_id)
            if record is None:
                return None
            await self._load_relations(spec, record)
            doc_id = self._resolver.remote_id_for(record)
            data = spec.to_document(record)
            photo: Optional[bytes] = None
            if spec.has_attachment:
                photo = record.photo or None
                if photo is None and record.photo_url:
                    data["imageURL"] = record.photo_url
            return doc_id, data, photo

        async with self._store.exclusive():
            return await self._store.perform(work)

    async def _push_record(self, spec: CollectionSpec, row_id: int) -> Optional[str]:
        """
        Write one record's document; the photo (if any) is uploaded first.

        Must run under the record's lock. A failed upload is logged and the
        document is written without ``imageURL``.

        Returns:
            The document ID, or None if the record was deleted meanwhile.
        """
        snapshot = await self._snapshot(spec, row_id)
        if snapshot is None:
            return None
        doc_id, data, photo = snapshot

        if photo:
            try:
                data["imageURL"] = await self._attachments.upload(photo, doc_id)
            except AttachmentError as e:
                logger.warning(f"Photo upload failed for {doc_id}, writing document without image: {e}")

        await self._documents.set_document(self.collection_for(spec.kind), doc_id, data)
        return doc_id

    async def _push_record_locked(self, spec: CollectionSpec, row_id: int) -> Optional[str]:
        async with self._record_lock(spec.kind, row_id):
            doc_id = await self._push_record(spec, row_id)
        if doc_id is None:
            logger.info(f"Skipped {spec.kind.value} {row_id}: deleted before it was pushed")
        return doc_id

    async def push_all(self, kind: EntityKind) -> SyncResult:
        """
        Write every local record of ``kind`` to its remote collection.

        Each record is re-read under its lock, so a record deleted while the
        push runs is skipped instead of being written back.
        """
        spec = COLLECTION_SPECS[kind]
        result = SyncResult(operation="push_all", collection=self.collection_for(kind)).begin()

        try:
            async with self._store.exclusive():
                row_ids = [record.row_id for record in await self._store.fetch(spec.model)]
        except Exception as e:
            logger.exception(f"push_all could not read local {kind.value}: {e}")
            return self._log_result(result.fail(e))

        outcomes = await self._gather_bounded(
            self._push_record_locked(spec, row_id) for row_id in row_ids
        )
        skipped = sum(1 for outcome in outcomes if outcome is None)
        return self._log_result(self._aggregate(result, outcomes, len(row_ids) - skipped))

    async def push_one(self, kind: EntityKind, row_id: int) -> SyncResult:
        """Write one local record to its remote collection."""
        spec = COLLECTION_SPECS[kind]
        result = SyncResult(operation="push_one", collection=self.collection_for(kind)).begin()

        async with self._record_lock(kind, row_id):
            try:
                if await self._push_record(spec, row_id) is None:
                    raise RecordNotFoundError(kind.value, row_id)
            except Exception as e:
                result.failed = 1
                return self._log_result(result.fail(e))

        return self._log_result(result.complete(1))

    # =========================================================================
    # Pull (remote -> local)
    # =========================================================================

    async def _pull_document(self, spec: CollectionSpec, document: RemoteDocument) -> Any:
        """Resolve one document, overwrite the local fields, then fetch its photo."""
        async def apply(session: AsyncSession) -> Tuple[Any, Optional[str]]:
            resolution = await self._resolver.resolve(session, spec.kind, document)
            record = resolution.record
            await self._load_relations(spec, record)
            spec.apply_document(record, document.data)
            await session.flush()
            photo_url = record.photo_url if spec.has_attachment else None
            return record, photo_url

        record, photo_url = await self._store.perform(apply)

        if photo_url:
            try:
                photo = await self._attachments.download(photo_url)
            except AttachmentError as e:
                logger.warning(f"Photo download failed for {document.id}, keeping local photo: {e}")
            else:
                async def store_photo(session: AsyncSession) -> None:
                    record.photo = photo

                await self._store.perform(store_photo)

        return record

    async def pull_all(self, kind: EntityKind) -> SyncResult:
        """
        Mirror the whole remote collection into the local store.

        The listing and every per-document change happen inside one local
        transaction, committed after the join. Any per-document failure or a
        failed commit rolls it back. No other sync operation commits, reads
        or deletes locally while the pull is in flight.
        """
        spec = COLLECTION_SPECS[kind]
        collection = self.collection_for(kind)
        result = SyncResult(operation="pull_all", collection=collection).begin()
        errors: List[BaseException] = []

        try:
            async with self._store.transaction() as transaction:
                try:
                    documents = await self._documents.list_documents(collection)
                except Exception as e:
                    logger.exception(f"pull_all could not list {collection}: {e}")
                    return self._log_result(result.fail(e))

                logger.info(f"Pulling {len(documents)} document(s) from {collection}")

                outcomes = await self._gather_bounded(
                    self._pull_document(spec, document) for document in documents
                )
                errors = [outcome for outcome in outcomes if isinstance(outcome, BaseException)]

                if errors:
                    transaction.abort()
                elif kind is EntityKind.REGIONAL_INFO:
                    await self._store.perform(self._resolver.sweep_regional_duplicates)
        except Exception as e:
            return self._log_result(result.fail(e))

        if errors:
            result.failed = len(errors)
            for error in errors:
                result.fail(error)
            return self._log_result(result)

        return self._log_result(result.complete(len(documents)))

    # =========================================================================
    # Delete propagation
    # =========================================================================

    async def delete(self, kind: EntityKind, row_id: int) -> SyncResult:
        """
        Delete a record remotely, then its photo, then locally.

        Runs under the record's lock and inside one local transaction. If the
        remote delete fails the local record is left untouched.
        """
        spec = COLLECTION_SPECS[kind]
        collection = self.collection_for(kind)
        result = SyncResult(operation="delete", collection=collection).begin()

        async def locate(session: AsyncSession) -> Tuple[Any, Optional[str]]:
            record = await session.get(spec.model, row_id)
            if record is None:
                return None, None
            return record, self._resolver.remote_id_for(record)

        async with self._record_lock(kind, row_id):
            try:
                async with self._store.transaction():
                    record, doc_id = await self._store.perform(locate)
                    if record is None:
                        raise RecordNotFoundError(kind.value, row_id)

                    await self._documents.delete_document(collection, doc_id)
                    if spec.has_attachment:
                        await self._attachments.delete_attachment(doc_id)
                    await self._store.delete(record)
            except Exception as e:
                result.failed = 1
                return self._log_result(result.fail(e))

        return self._log_result(result.complete(1))

    # =========================================================================
    # Maintenance
    # =========================================================================

    async def remove_remote_duplicates(self, kind: EntityKind) -> SyncResult:
        """
        Delete remote documents sharing a normalized ``nome``.

        The first document of each group in listing order is kept. The remote
        listing order is not guaranteed, so which duplicate survives is not
        deterministic. Documents with an empty name are never touched.
        """
        collection = self.collection_for(kind)
        result = SyncResult(operation="remove_duplicates", collection=collection).begin()

        try:
            documents = await self._documents.list_documents(collection)
        except Exception as e:
            return self._log_result(result.fail(e))

        seen: set[str] = set()
        duplicates: List[RemoteDocument] = []
        for document in documents:
            key = text_field(document.data, "nome").strip().casefold()
            if not key:
                continue
            if key in seen:
                duplicates.append(document)
            else:
                seen.add(key)

        deleted = 0
        for document in duplicates:
            try:
                await self._documents.delete_document(collection, document.id)
                deleted += 1
            except Exception as e:
                result.failed += 1
                result.fail(f"{document.id}: {type(e).__name__}: {e}")
                logger.warning(f"Could not delete duplicate {collection}/{document.id}: {e}")

        result.count = deleted
        if not result.failed:
            result.complete(deleted)
        return self._log_result(result)

    async def clear_employee_contacts(self) -> SyncResult:
        """
        Reset every employee to name and region only, then push all employees.

        Role, extension, mobile, e-mail, photo and photo URL are cleared.
        """
        collection = self.collection_for(EntityKind.EMPLOYEE)
        result = SyncResult(operation="clear_contacts", collection=collection).begin()

        async def clear(session: AsyncSession) -> int:
            employees = (await session.execute(select(Employee))).scalars().all()
            for employee in employees:
                employee.role = ""
                employee.extension = ""
                employee.mobile = ""
                employee.email = ""
                employee.photo = None
                employee.photo_url = None
            await session.flush()
            return len(employees)

        try:
            async with self._store.transaction():
                cleared = await self._store.perform(clear)
        except Exception as e:
            return self._log_result(result.fail(e))

        push = await self.push_all(EntityKind.EMPLOYEE)
        if not push.succeeded:
            result.failed = push.failed
            result.error_messages.extend(push.error_messages)
            return self._log_result(result.fail(push.error or "push_all failed"))

        return self._log_result(result.complete(cleared))

    async def wipe_remote(self, kind: EntityKind) -> SyncResult:
        """
        Delete every document of a remote collection (and, for employees, every photo).
        """
        spec = COLLECTION_SPECS[kind]
        collection = self.collection_for(kind)
        result = SyncResult(operation="wipe_remote", collection=collection).begin()

        try:
            documents = await self._documents.list_documents(collection)
            deleted = await self._documents.batch_delete(collection, [doc.id for doc in documents])
        except Exception as e:
            return self._log_result(result.fail(e))

        if spec.has_attachment:
            try:
                await self._attachments.wipe_namespace()
            except AttachmentError as e:
                logger.warning(f"Photo wipe skipped: {e}")

        return self._log_result(result.complete(deleted))


class CollectionSyncService:
    """Adapts one (engine, kind) pair to the SyncManager service protocol."""

    def __init__(self, engine: SyncEngine, kind: EntityKind) -> None:
        self._engine = engine
        self._kind = kind

    @property
    def kind(self) -> EntityKind:
        return self._kind

    async def sync_all_data(self) -> SyncResult:
        return await self._engine.pull_all(self._kind)


def create_sync_engine(
    http_client: httpx.AsyncClient,
    settings: DirectorySettings,
    session_factory: async_sessionmaker[AsyncSession],
) -> SyncEngine:
    """
    Wire a SyncEngine against the Firestore/Storage REST adapters.

    The engine's LocalStore owns a fresh session from ``session_factory``.
    """
    token = settings.auth_token_value()
    documents = FirestoreDocumentStore(
        http_client=http_client,
        project_id=settings.firestore_project_id,
        database=settings.firestore_database,
        api_base=settings.firestore_api_base,
        auth_token=token,
        timeout=settings.http_timeout_seconds,
    )
    blobs = FirebaseBlobStore(
        http_client=http_client,
        bucket=settings.storage_bucket,
        api_base=settings.storage_api_base,
        auth_token=token,
        timeout=settings.http_timeout_seconds,
    )
    attachments = AttachmentPipeline(
        blob_store=blobs,
        cache_dir=settings.cache_dir,
        namespace=settings.image_namespace,
        max_download_bytes=settings.max_download_bytes,
    )
    return SyncEngine(
        store=LocalStore(session_factory()),
        documents=documents,
        attachments=attachments,
        settings=settings,
    )
