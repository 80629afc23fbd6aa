"""
Directory Module Services.

Contains the sync logic for the directory module.

Services:
    - SyncEngine: push/pull/delete between the local store and Firestore
    - AttachmentPipeline: employee photo upload, download and cache
    - ReseedEngine: development-only wipe and reseed
"""

from modules.directory.services.attachments import AttachmentPipeline, cache_key_for
from modules.directory.services.errors import (
    AttachmentError,
    AttachmentTooLargeError,
    DirectorySyncError,
    LocalCommitError,
    RecordNotFoundError,
)
from modules.directory.services.identity import IdentityResolver, Resolution
from modules.directory.services.local_store import LocalStore
from modules.directory.services.mappers import (
    COLLECTION_SPECS,
    CollectionSpec,
    EntityKind,
    collection_name,
    parse_kind,
)
from modules.directory.services.reseed import (
    ReseedEngine,
    ResetReport,
    is_development_context,
    seed_defaults,
)
from modules.directory.services.sync_engine import (
    CollectionSyncService,
    SyncEngine,
    create_sync_engine,
)

__all__ = [
    # Sync
    "SyncEngine",
    "CollectionSyncService",
    "create_sync_engine",
    "LocalStore",
    "IdentityResolver",
    "Resolution",
    # Mapping
    "EntityKind",
    "CollectionSpec",
    "COLLECTION_SPECS",
    "collection_name",
    "parse_kind",
    # Attachments
    "AttachmentPipeline",
    "cache_key_for",
    # Reseed
    "ReseedEngine",
    "ResetReport",
    "is_development_context",
    "seed_defaults",
    # Errors
    "DirectorySyncError",
    "RecordNotFoundError",
    "LocalCommitError",
    "AttachmentError",
    "AttachmentTooLargeError",
]
