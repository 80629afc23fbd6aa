"""
Identity Resolver.

Maps local records to remote document IDs and remote documents back to
local records.

Remote IDs:
    Records carrying a UUID use its canonical upper-case string, the form the
    mobile clients already use for document IDs. A RegionalInfo pulled from
    the remote keeps the ID of its document. Anything else falls back to its
    local storage identifier with every "/" replaced by "_".

Matching remote documents (``resolve``):
    Employee      UUID from the document ID, else imageURL, else (name, e-mail)
    Municipality  UUID from the document ID, else name
    RegionalInfo  record linked to the document ID, else composite key
                  (normalized name, normalized extension); extra matches
                  are deleted

Resolution never raises for a missing match: a new record is created instead.
The name + e-mail fallback is a weak heuristic and can merge two different
people who share both values (for example both empty).

An employee or municipality matched through a document whose ID is not a
UUID keeps (or is given) a UUID of its own. Later pushes and deletes address
the UUID document, so the legacy document is left behind on the remote.
"""

import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.remote.documents import RemoteDocument
from modules.directory.models import Employee, Municipality, RegionalInfo, regional_key
from modules.directory.services.mappers import EntityKind, image_url_field, text_field

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """Outcome of matching one remote document."""

    record: Any
    created: bool
    removed: int = 0


def parse_uuid(value: Optional[str]) -> Optional[uuid.UUID]:
    """Parse a document ID as a UUID (case-insensitive); None if it is not one."""
    if not value:
        return None
    try:
        return uuid.UUID(value.strip())
    except ValueError:
        return None


def safe_document_id(value: str) -> str:
    """Make a string usable as a document ID: no "/" and no surrounding whitespace."""
    return value.replace("/", "_").strip()


class IdentityResolver:
    """Identity mapping between local records and remote documents."""

    def remote_id_for(self, record: Any) -> str:
        """
        Remote document ID for a local record.

        UUID when the record has one, else the document a RegionalInfo was
        pulled from, else the storage identifier fallback.
        """
        if isinstance(record, (Employee, Municipality)) and record.uuid is not None:
            return str(record.uuid).upper()
        if isinstance(record, RegionalInfo) and record.remote_id:
            return record.remote_id
        return safe_document_id(record.storage_uri)

    async def resolve(
        self,
        session: AsyncSession,
        kind: EntityKind,
        document: RemoteDocument,
    ) -> Resolution:
        """
        Find or create the local record for a remote document.

        New records are added to the session and flushed so later lookups in
        the same transaction see them.
        """
        if kind is EntityKind.EMPLOYEE:
            return await self._resolve_employee(session, document)
        if kind is EntityKind.MUNICIPALITY:
            return await self._resolve_municipality(session, document)
        return await self.upsert_regional_info(session, document.data, remote_id=document.id)

    # =========================================================================
    # Employee / Municipality
    # =========================================================================

    async def _resolve_employee(self, session: AsyncSession, document: RemoteDocument) -> Resolution:
        doc_uuid = parse_uuid(document.id)

        if doc_uuid is not None:
            record = await self._first(session, Employee, Employee.uuid == doc_uuid)
        else:
            image_url = image_url_field(document.data)
            if image_url:
                record = await self._first(session, Employee, Employee.photo_url == image_url)
            else:
                name = text_field(document.data, "nome")
                email = text_field(document.data, "email")
                record = await self._first(
                    session, Employee, Employee.name == name, Employee.email == email
                )

        return await self._finish(session, record, Employee, doc_uuid)

    async def _resolve_municipality(self, session: AsyncSession, document: RemoteDocument) -> Resolution:
        doc_uuid = parse_uuid(document.id)

        if doc_uuid is not None:
            record = await self._first(session, Municipality, Municipality.uuid == doc_uuid)
        else:
            name = text_field(document.data, "nome")
            record = await self._first(session, Municipality, Municipality.name == name)

        return await self._finish(session, record, Municipality, doc_uuid)

    async def _finish(
        self,
        session: AsyncSession,
        record: Any,
        model: type,
        doc_uuid: Optional[uuid.UUID],
    ) -> Resolution:
        created = record is None
        if created:
            record = model()
            session.add(record)

        if doc_uuid is not None:
            record.uuid = doc_uuid
        elif record.uuid is None:
            record.uuid = uuid.uuid4()

        if created:
            await session.flush()
        return Resolution(record=record, created=created)

    @staticmethod
    async def _first(session: AsyncSession, model: type, *criteria: Any) -> Any:
        stmt = select(model).where(*criteria).order_by(model.row_id).limit(1)
        result = await session.execute(stmt)
        return result.scalars().first()

    # =========================================================================
    # RegionalInfo
    # =========================================================================

    async def upsert_regional_info(
        self,
        session: AsyncSession,
        data: Dict[str, Any],
        remote_id: Optional[str] = None,
    ) -> Resolution:
        """
        Match a regional document by composite key.

        A record already linked to ``remote_id`` wins, so a renamed office
        keeps its local record. Otherwise the first local record sharing the
        key is kept. Other records sharing the key are deleted, and a new
        record is created when nothing matches. The kept record is linked to
        ``remote_id`` when one is given.
        """
        key = regional_key(text_field(data, "nome"), text_field(data, "ramal"))
        everything = await self._all_regional(session)
        candidates = [info for info in everything if info.composite_key == key]
        if remote_id:
            linked = next((info for info in everything if info.remote_id == remote_id), None)
            if linked is not None:
                candidates = [linked] + [info for info in candidates if info is not linked]

        if not candidates:
            record = RegionalInfo(remote_id=remote_id)
            session.add(record)
            await session.flush()
            return Resolution(record=record, created=True)

        keep, extras = candidates[0], candidates[1:]
        if remote_id:
            keep.remote_id = remote_id
        for extra in extras:
            await session.delete(extra)
        if extras:
            await session.flush()
            logger.info(f"Removed {len(extras)} duplicate regional record(s) for key {key}")

        return Resolution(record=keep, created=False, removed=len(extras))

    async def sweep_regional_duplicates(self, session: AsyncSession) -> int:
        """
        Keep one record per composite key across all local RegionalInfo.

        Returns:
            Number of records deleted.
        """
        groups: Dict[Tuple[str, str], List[RegionalInfo]] = defaultdict(list)
        for info in await self._all_regional(session):
            groups[info.composite_key].append(info)

        removed = 0
        for records in groups.values():
            # A record linked to a remote document is preferred over an unlinked one
            keep = next((info for info in records if info.remote_id), records[0])
            for extra in records:
                if extra is not keep:
                    await session.delete(extra)
                    removed += 1

        if removed:
            await session.flush()
            logger.info(f"Regional duplicate sweep removed {removed} record(s)")
        return removed

    @staticmethod
    async def _all_regional(session: AsyncSession) -> List[RegionalInfo]:
        result = await session.execute(select(RegionalInfo).order_by(RegionalInfo.row_id))
        return list(result.scalars().all())
