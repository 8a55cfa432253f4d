"""
Storage operations for the ingestion pipeline.
Handles filename sanitization, storage path layout and uploads to Supabase Storage.
"""

import logging
import re
import uuid
from typing import Optional
from supabase import Client

from docsync.core.errors import StorageError
from docsync.core.models import IngestionConfig, UploadRequest, WorkflowContext

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_filename(filename: str) -> str:
    """
    Replace every character outside [A-Za-z0-9._-] with an underscore.

    The uploader and the visibility poller must both use this function, since
    the chunk store records the sanitized name.
    """
    return _UNSAFE_CHARS.sub("_", filename)


def build_storage_path(ingestion_config: IngestionConfig, context: WorkflowContext, upload_id: str, sanitized_filename: str) -> str:
    """Build '{prefix}/{upload_id}/{sanitized_filename}' for one upload attempt."""
    prefix = ingestion_config.path_prefix.format(
        team_id=sanitize_filename(context.team_id),
        user_id=sanitize_filename(context.user_id),
    )
    return f"{prefix.strip('/')}/{upload_id}/{sanitized_filename}"


def new_upload_request(
    ingestion_config: IngestionConfig,
    context: WorkflowContext,
    filename: str,
    size_bytes: int,
    mime_type: Optional[str] = None,
) -> UploadRequest:
    """Mint a fresh upload_id and derive the sanitized name and storage path."""
    upload_id = uuid.uuid4()
    sanitized = sanitize_filename(filename)
    return UploadRequest(
        upload_id=upload_id,
        team_id=context.team_id,
        user_id=context.user_id,
        original_filename=filename,
        sanitized_filename=sanitized,
        mime_type=mime_type or "application/octet-stream",
        size_bytes=size_bytes,
        storage_path=build_storage_path(ingestion_config, context, str(upload_id), sanitized),
    )


class DocumentStorage:
    """Uploads raw document blobs."""

    def __init__(self, supabase_client: Client, bucket_name: str = "local-uploads"):
        """
        Initialize document storage operations.

        Args:
            supabase_client: Supabase client instance
            bucket_name: Bucket receiving the raw uploads
        """
        self.client = supabase_client
        self.bucket_name = bucket_name

    async def upload(self, content: bytes, target_path: str, content_type: str, upload_id: Optional[str] = None) -> str:
        """
        Upload a blob without overwriting an existing object.

        Args:
            content: Raw file bytes
            target_path: Pre-sanitized storage path
            content_type: MIME type stored with the object
            upload_id: Correlation id used in logs and errors

        Returns:
            The stored object path

        Raises:
            StorageError: if the path has unsafe or relative segments, or the storage service rejects the upload
        """
        segments = target_path.split("/")
        if any(segment in ("", ".", "..") or _UNSAFE_CHARS.search(segment) for segment in segments):
            raise StorageError(f"Unsanitized storage path: {target_path}", upload_id)

        try:
            result = self.client.storage.from_(self.bucket_name).upload(
                path=target_path,
                file=content,
                file_options={"content-type": content_type, "upsert": "false"}
            )
        except Exception as e:
            logger.error(f"Storage upload failed for {target_path} (upload {upload_id}): {e}")
            raise StorageError(str(e), upload_id) from e

        if not result:
            logger.error(f"Storage returned no result for {target_path} (upload {upload_id})")
            raise StorageError("No response from storage", upload_id)

        stored_path = getattr(result, "path", None) or target_path
        logger.info(f"Uploaded {len(content)} bytes to {self.bucket_name}/{stored_path}")
        return stored_path
