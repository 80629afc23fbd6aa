"""
Remote store exceptions.

Custom exception classes raised by the document and blob store adapters.
"""


class RemoteStoreError(Exception):
    """Base exception for remote document/blob store errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RemoteNotFoundError(RemoteStoreError):
    """Raised when a remote document or object does not exist (HTTP 404)."""
    pass


class RemoteConnectionError(RemoteStoreError):
    """Raised when the remote API cannot be reached (network, timeout)."""
    pass


class RemoteObjectTooLargeError(RemoteStoreError):
    """
    Raised when a blob download exceeds the caller's size limit.

    Examples:
        - Content-Length header above the limit
        - Streamed body grows past the limit
    """

    def __init__(self, limit: int, size: int | None = None) -> None:
        self.limit = limit
        self.size = size
        detail = f"{size} bytes" if size is not None else "body"
        super().__init__(f"Remote object too large ({detail} > {limit} bytes)")
