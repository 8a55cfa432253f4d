"""
Reference recorder.

Writes the durable link between a workflow slot and a document that is known
to be queryable.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from docsync.core.errors import PersistenceError
from docsync.core.models import IngestionConfig, SourceType, WorkflowContext
from docsync.ingestion.database import IngestionDatabase

logger = logging.getLogger(__name__)


class ReferenceRecorder:
    """Records WorkflowDocumentReference rows for one ingestion profile."""

    def __init__(self, db: IngestionDatabase, ingestion_config: IngestionConfig):
        self.db = db
        self.config = ingestion_config

    async def record(
        self,
        context: WorkflowContext,
        document_id: str,
        file_name: str,
        source_type: SourceType,
        extra: Optional[Dict[str, Any]] = None,
        upload_id: Optional[str] = None,
    ) -> str:
        """
        Record a reference to a visible document.

        When the profile replaces existing references, the user's previous
        rows in the slot are deleted before the new row is inserted.

        Args:
            context: Workflow identity
            document_id: Visible document id
            file_name: Display name of the document
            source_type: How the document was ingested
            extra: Additional columns for the reference table
            upload_id: Correlation id used in logs and errors

        Returns:
            Id of the new reference row

        Raises:
            PersistenceError: if the delete or insert fails
        """
        table = self.config.reference_table

        try:
            if self.config.replace_existing:
                previous = await self.db.list_references(table, context.user_id)
                if previous:
                    await self.db.delete_references(table, [row["id"] for row in previous])
                    logger.info(f"Replaced {len(previous)} previous reference(s) in {table} for user {context.user_id}")

            record = {
                "user_id": context.user_id,
                "document_id": document_id,
                "file_name": file_name,
                "created_at": datetime.now(timezone.utc).isoformat(),
            }
            slot_values = {
                "team_id": context.team_id,
                "source_type": source_type.value,
                "registration_id": context.registration_id,
            }
            for column in self.config.reference_columns:
                record[column] = slot_values[column]
            if extra:
                record.update(extra)

            row = await self.db.insert_reference(table, record)

        except Exception as e:
            logger.error(f"Failed to save document reference for {document_id} (upload {upload_id}): {e}")
            raise PersistenceError(str(e), upload_id) from e

        logger.info(f"Recorded reference {row.get('id')} in {table} for document {document_id}")
        return row.get("id")
