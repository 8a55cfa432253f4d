"""
Database operations for the ingestion pipeline.
Handles chunk visibility queries, workflow document references and registration steps.
"""

import logging
from datetime import datetime
from typing import List, Optional, Dict, Any, Sequence
from supabase import Client

from docsync.core.models import ExistingDocument

logger = logging.getLogger(__name__)

class IngestionDatabase:
    """Database operations for the ingestion pipeline."""

    def __init__(self, supabase_client: Client, chunk_table: str = "document_chunks"):
        """
        Initialize ingestion database operations.

        Args:
            supabase_client: Supabase client instance
            chunk_table: Table holding the queryable chunk records
        """
        self.client = supabase_client
        self.chunk_table = chunk_table

    async def find_visible_chunk(
        self,
        team_id: str,
        file_name: str,
        since: datetime,
        filter_columns: Sequence[str] = ("team_id", "file_name", "created_at"),
        table: Optional[str] = None,
    ) -> Optional[str]:
        """
        Look for any chunk of a document created at or after `since`.

        Args:
            team_id: Team owning the document
            file_name: Sanitized file name as recorded by ingestion
            since: Lower bound on created_at (inclusive)
            filter_columns: Column names for team, file name and creation time
            table: Chunk table override

        Returns:
            document_id of the first matching row, None if nothing matched or the query failed
        """
        team_column, name_column, time_column = filter_columns
        try:
            result = self.client.table(table or self.chunk_table).select("document_id").eq(
                team_column, team_id
            ).eq(
                name_column, file_name
            ).gte(
                time_column, since.isoformat()
            ).order(
                time_column, desc=False
            ).limit(1).execute()

            rows = result.data or []
            if rows:
                return rows[0]["document_id"]
            return None

        except Exception as e:
            # A failed attempt counts as a miss; the poller decides when to give up
            logger.warning(f"Chunk visibility query failed for {file_name}: {e}")
            return None

    async def document_exists(self, team_id: str, document_id: str) -> bool:
        """Check that a document has at least one chunk for the team."""
        result = self.client.table(self.chunk_table).select("document_id").eq(
            "team_id", team_id
        ).eq("document_id", document_id).limit(1).execute()
        return bool(result.data)

    async def list_team_documents(self, team_id: str, limit: int = 20) -> List[ExistingDocument]:
        """
        List the team's documents, one entry per document_id, newest first.

        Args:
            team_id: Team to list
            limit: Maximum number of documents to return

        Returns:
            Unique documents built from their newest chunk
        """
        result = self.client.table(self.chunk_table).select(
            "document_id, file_name, doc_category, created_at"
        ).eq(
            "team_id", team_id
        ).order(
            "created_at", desc=True
        ).execute()

        documents: Dict[str, ExistingDocument] = {}
        for row in result.data or []:
            if row["document_id"] in documents:
                continue
            documents[row["document_id"]] = ExistingDocument(
                id=row["document_id"],
                file_name=row["file_name"],
                category=row.get("doc_category") or "other",
                created_at=row["created_at"],
            )

        logger.info(f"Found {len(documents)} documents for team {team_id}")
        return list(documents.values())[:limit]

    async def insert_chunks(self, rows: List[Dict[str, Any]]) -> None:
        """Insert chunk records in one request."""
        self.client.table(self.chunk_table).insert(rows).execute()
        logger.info(f"Inserted {len(rows)} chunks into {self.chunk_table}")

    async def insert_reference(self, table: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a workflow document reference.

        Returns:
            The inserted row
        """
        result = self.client.table(table).insert(record).execute()
        if not result.data:
            raise RuntimeError(f"Insert into {table} returned no rows")
        return result.data[0]

    async def delete_references(self, table: str, reference_ids: List[str]) -> None:
        """Delete references by id."""
        for reference_id in reference_ids:
            self.client.table(table).delete().eq("id", reference_id).execute()
            logger.info(f"Deleted reference {reference_id} from {table}")

    async def list_references(self, table: str, user_id: str) -> List[Dict[str, Any]]:
        """List a user's references in a table, newest first."""
        result = self.client.table(table).select("*").eq(
            "user_id", user_id
        ).order(
            "created_at", desc=True
        ).execute()
        return result.data or []

    async def get_current_reference(self, table: str, user_id: str) -> Optional[Dict[str, Any]]:
        """Get the user's newest reference in a table."""
        result = self.client.table(table).select("*").eq(
            "user_id", user_id
        ).order(
            "created_at", desc=True
        ).limit(1).execute()

        rows = result.data or []
        return rows[0] if rows else None

    async def delete_user_reference(self, table: str, reference_id: str, user_id: str) -> bool:
        """
        Delete one reference owned by the user.

        Returns:
            True if a row was deleted
        """
        result = self.client.table(table).delete().eq("id", reference_id).eq("user_id", user_id).execute()
        deleted = bool(result.data)
        if deleted:
            logger.info(f"Deleted reference {reference_id} from {table}")
        else:
            logger.warning(f"Reference {reference_id} not found in {table} for user {user_id}")
        return deleted

    async def update_registration_step(self, registration_id: str, step: str) -> bool:
        """Move a workshop registration to a new step."""
        result = self.client.table("workshop_registrations").update({
            "current_step": step
        }).eq("id", registration_id).execute()

        if result.data:
            logger.info(f"Registration {registration_id} moved to step {step}")
            return True
        logger.warning(f"Registration {registration_id} not found")
        return False
