"""
Directory sync exceptions.

Failures raised by the local store adapter, the attachment pipeline and the
sync engine. The sync engine converts all of them into SyncResult values.
"""


class DirectorySyncError(Exception):
    """Base exception for directory sync errors."""
    pass


class RecordNotFoundError(DirectorySyncError):
    """
    Raised when a referenced local record no longer exists.

    Examples:
        - Record deleted between scheduling and execution of push-one
        - Unknown row id passed to delete
    """

    def __init__(self, kind: str, row_id: int) -> None:
        self.kind = kind
        self.row_id = row_id
        super().__init__(f"{kind} with row_id={row_id} not found")


class LocalCommitError(DirectorySyncError):
    """Raised when the local store fails to commit; the transaction is rolled back."""
    pass


class AttachmentError(DirectorySyncError):
    """Raised when a photo cannot be encoded, uploaded or downloaded."""
    pass


class AttachmentTooLargeError(AttachmentError):
    """Raised when a downloaded photo exceeds the configured size limit."""

    def __init__(self, url: str, limit: int) -> None:
        self.url = url
        self.limit = limit
        super().__init__(f"Attachment exceeds {limit} bytes")
