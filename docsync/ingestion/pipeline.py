"""
Processing orchestrator for document ingestion.
Coordinates storage upload, ingestion trigger, visibility polling and reference recording.
"""

import asyncio
import logging
from typing import Optional, Union

from docsync.core.errors import DocumentLimitError, IngestionError, VerificationTimeout
from docsync.core.models import (
    ExistingDocumentSource,
    GeneratedDocumentSource,
    IngestionConfig,
    LocalUploadSource,
    ProgressState,
    SourceType,
    WorkflowContext,
)
from docsync.ingestion.database import IngestionDatabase
from docsync.ingestion.poller import Clock, Sleep, VisibilityPoller, utcnow
from docsync.ingestion.progress import ProgressTracker
from docsync.ingestion.recorder import ReferenceRecorder
from docsync.ingestion.storage import DocumentStorage, new_upload_request
from docsync.service.functions_api import FunctionsAPIClient

logger = logging.getLogger(__name__)

DocumentSource = Union[LocalUploadSource, GeneratedDocumentSource, ExistingDocumentSource]


class DocumentIngestor:
    """Runs one ingestion attempt for a workflow slot, whatever the document source."""

    def __init__(
        self,
        ingestion_config: IngestionConfig,
        db: IngestionDatabase,
        storage: DocumentStorage,
        functions_api: FunctionsAPIClient,
        sleep: Sleep = asyncio.sleep,
        now: Clock = utcnow,
    ):
        """
        Initialize the document ingestor.

        Args:
            ingestion_config: Profile of the workflow slot
            db: Chunk store and reference table access
            storage: Blob storage for raw uploads
            functions_api: Edge functions client
            sleep: Coroutine used between poll attempts
            now: Clock used for poll start times
        """
        self.config = ingestion_config
        self.db = db
        self.storage = storage
        self.functions_api = functions_api
        self.poller = VisibilityPoller(db, ingestion_config, sleep=sleep, now=now)
        self.recorder = ReferenceRecorder(db, ingestion_config)

    async def check_capacity(self, context: WorkflowContext):
        """
        Raises:
            DocumentLimitError: if the slot already holds max_documents references
        """
        if self.config.max_documents is None:
            return
        existing = await self.db.list_references(self.config.reference_table, context.user_id)
        if len(existing) >= self.config.max_documents:
            raise DocumentLimitError(self.config.max_documents)

    async def run(self, source: DocumentSource, context: WorkflowContext, tracker: ProgressTracker) -> Optional[str]:
        """
        Ingest a document and convert any failure into the tracker's error state.

        Returns:
            document_id on success, None on failure
        """
        try:
            return await self.ingest_document(source, context, tracker)
        except IngestionError as e:
            if not tracker.is_busy:
                raise
            logger.error(f"[{self.config.name}] ingestion failed (upload {e.upload_id or tracker.upload_id}): {e.user_message}")
            tracker.fail(e.user_message)
        except Exception as e:
            if not tracker.is_busy:
                raise
            logger.error(f"[{self.config.name}] unexpected ingestion error: {e}", exc_info=True)
            tracker.fail(str(e) or "Upload failed")
        return None

    async def ingest_document(self, source: DocumentSource, context: WorkflowContext, tracker: ProgressTracker) -> str:
        """
        Ingest a document through the strategy matching its source.

        Local uploads are polled until visible; generated documents are stored
        synchronously; existing documents only need a reference. Every strategy
        walks the same progress states.

        Returns:
            The document_id now referenced by the workflow slot

        Raises:
            IngestionError: on any step failure
        """
        if isinstance(source, LocalUploadSource):
            return await self._ingest_upload(source, context, tracker)
        if isinstance(source, GeneratedDocumentSource):
            return await self._ingest_generated(source, context, tracker)
        if isinstance(source, ExistingDocumentSource):
            return await self._ingest_existing(source, context, tracker)
        raise TypeError(f"Unsupported document source: {type(source).__name__}")

    async def _ingest_upload(self, source: LocalUploadSource, context: WorkflowContext, tracker: ProgressTracker) -> str:
        tracker.transition(ProgressState.UPLOADING)

        request = new_upload_request(
            self.config, context, source.filename, len(source.content), source.mime_type
        )
        upload_id = str(request.upload_id)
        tracker.upload_id = upload_id
        logger.info(f"[{self.config.name}] Upload {upload_id}: {request.original_filename} -> {request.storage_path}")

        stored_path = await self.storage.upload(source.content, request.storage_path, request.mime_type, upload_id)
        tracker.transition(ProgressState.PROCESSING)

        result = await self.functions_api.upload_local_file(
            request, stored_path, self.config.category, context.access_token
        )
        tracker.transition(ProgressState.VERIFYING)

        document_id = await self.poller.verify(upload_id, request.original_filename, request.team_id, request.started_at)
        if not document_id:
            raise VerificationTimeout(self.config.max_attempts, upload_id)

        extra = None
        if self.config.record_file_details:
            extra = {
                "file_type": request.mime_type,
                "file_size": request.size_bytes,
                "storage_path": request.storage_path,
                "extracted_content": result.get("extractedText"),
            }

        await self.recorder.record(
            context, document_id, request.original_filename, SourceType.LOCAL_UPLOAD, extra, upload_id
        )
        tracker.transition(ProgressState.COMPLETE)
        return document_id

    async def _ingest_generated(self, source: GeneratedDocumentSource, context: WorkflowContext, tracker: ProgressTracker) -> str:
        tracker.transition(ProgressState.UPLOADING)

        document_id = await self.functions_api.store_workshop_document(
            context.team_id, context.user_id, source.file_name, source.content,
            self.config.category, context.access_token
        )
        tracker.transition(ProgressState.PROCESSING)

        # Stored and indexed before the endpoint responded
        tracker.transition(ProgressState.VERIFYING)
        await self.recorder.record(context, document_id, source.file_name, SourceType.ASTRA_CREATED)
        tracker.transition(ProgressState.COMPLETE)
        return document_id

    async def _ingest_existing(self, source: ExistingDocumentSource, context: WorkflowContext, tracker: ProgressTracker) -> str:
        tracker.transition(ProgressState.UPLOADING)
        tracker.transition(ProgressState.PROCESSING)

        if not await self.db.document_exists(context.team_id, source.document_id):
            raise IngestionError(f"Document {source.document_id} not found")

        tracker.transition(ProgressState.VERIFYING)
        await self.recorder.record(context, source.document_id, source.file_name, SourceType.LOCAL_UPLOAD)
        tracker.transition(ProgressState.COMPLETE)
        return source.document_id
