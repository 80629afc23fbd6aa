"""
Remote store adapters.

Document collections (Firestore REST) and binary objects (Firebase Storage REST).
"""

from core.remote.blobs import BlobStore, FirebaseBlobStore
from core.remote.documents import DocumentStore, FirestoreDocumentStore, RemoteDocument
from core.remote.exceptions import (
    RemoteConnectionError,
    RemoteNotFoundError,
    RemoteObjectTooLargeError,
    RemoteStoreError,
)

__all__ = [
    "BlobStore",
    "FirebaseBlobStore",
    "DocumentStore",
    "FirestoreDocumentStore",
    "RemoteDocument",
    "RemoteStoreError",
    "RemoteNotFoundError",
    "RemoteConnectionError",
    "RemoteObjectTooLargeError",
]
