"""
Error taxonomy for the document ingestion protocol.

Each step of the pipeline raises its own error type. The flow boundary
catches IngestionError and turns user_message into the session's error text.
"""

from typing import Optional


class IngestionError(Exception):
    """Base class for all ingestion failures."""

    def __init__(self, user_message: str, upload_id: Optional[str] = None):
        super().__init__(user_message)
        self.user_message = user_message
        self.upload_id = upload_id


class StorageError(IngestionError):
    """Blob upload rejected by the storage service."""

    def __init__(self, detail: str, upload_id: Optional[str] = None):
        super().__init__(f"Storage upload failed: {detail}", upload_id)
        self.detail = detail


class TriggerError(IngestionError):
    """Ingestion endpoint did not accept the file."""

    def __init__(self, body: str, status_code: Optional[int] = None, upload_id: Optional[str] = None):
        super().__init__(f"Upload failed: {body}", upload_id)
        self.body = body
        self.status_code = status_code


class VerificationTimeout(IngestionError):
    """Trigger succeeded but no chunk became visible within the poll budget."""

    def __init__(self, attempts: int, upload_id: Optional[str] = None):
        super().__init__("File verification timed out", upload_id)
        self.attempts = attempts


class PersistenceError(IngestionError):
    """Document is queryable but its workflow reference could not be saved."""

    def __init__(self, detail: str, upload_id: Optional[str] = None):
        super().__init__(f"Failed to save document reference: {detail}", upload_id)
        self.detail = detail


class DocumentCreationError(IngestionError):
    """Synchronous document-creation endpoint failed."""

    def __init__(self, body: str, status_code: Optional[int] = None):
        if status_code is None:
            message = body
        else:
            message = f"Document creation failed ({status_code}): {body}"
        super().__init__(message)
        self.body = body
        self.status_code = status_code


class DocumentLimitError(IngestionError):
    """Workflow slot already holds the maximum number of documents."""

    def __init__(self, limit: int):
        super().__init__(f"Maximum {limit} documents allowed. Delete one to upload more.")
        self.limit = limit


class SlotBusyError(Exception):
    """An ingestion attempt is already in flight for the workflow slot."""


class InvalidTransitionError(Exception):
    """Illegal progress state transition."""
