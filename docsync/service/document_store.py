"""
Synchronous document store.

Chunks generated documents, embeds every chunk and inserts them under a single
document_id before responding, so callers can record a reference immediately.
"""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from docsync.ingestion.database import IngestionDatabase
from docsync.service.gemini import GeminiEmbedder

logger = logging.getLogger(__name__)

MAX_CHUNK_SIZE = 2000


def split_content_into_chunks(content: str, max_chunk_size: int = MAX_CHUNK_SIZE) -> List[str]:
    """
    Split content on paragraph boundaries, falling back to sentences for long paragraphs.

    Returns:
        Non-empty list of chunks; the whole content if nothing could be split
    """
    chunks: List[str] = []
    current = ""

    for paragraph in re.split(r"\n\n+", content):
        if len(current) + len(paragraph) + 2 <= max_chunk_size:
            current = f"{current}\n\n{paragraph}" if current else paragraph
            continue

        if current:
            chunks.append(current.strip())

        if len(paragraph) <= max_chunk_size:
            current = paragraph
            continue

        current = ""
        for sentence in re.split(r"(?<=[.!?])\s+", paragraph):
            if len(current) + len(sentence) + 1 <= max_chunk_size:
                current = f"{current} {sentence}" if current else sentence
            else:
                if current:
                    chunks.append(current.strip())
                current = sentence

    if current.strip():
        chunks.append(current.strip())

    return chunks or [content]


class WorkshopDocumentStore:
    """Stores generated workshop documents in the chunk store."""

    def __init__(self, db: IngestionDatabase, embedder: GeminiEmbedder):
        self.db = db
        self.embedder = embedder

    async def store(self, team_id: str, user_id: str, file_name: str, content: str, category: Optional[str] = None) -> Dict[str, Any]:
        """
        Chunk, embed and insert a document.

        Returns:
            {success, documentId, fileName, chunksCreated, contentLength}

        Raises:
            ValueError: if a required field is missing
            RuntimeError: if an embedding could not be generated
        """
        if not (team_id and user_id and file_name and content):
            raise ValueError("Missing required fields: teamId, userId, fileName, content")

        document_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc).isoformat()
        chunks = split_content_into_chunks(content)
        file_size = len(content.encode("utf-8"))

        logger.info(f"Generating embeddings for {len(chunks)} chunks of {file_name}")

        rows = []
        for index, chunk in enumerate(chunks):
            embedding = self.embedder.embed_text(chunk)
            if not embedding:
                logger.error(f"Failed to generate embedding for chunk {index} of {file_name}")
                raise RuntimeError("Failed to generate embeddings")

            rows.append({
                "id": str(uuid.uuid4()),
                "team_id": team_id,
                "document_id": document_id,
                "chunk_index": index,
                "content": chunk,
                "embedding": embedding,
                "file_name": file_name,
                "doc_category": category or "strategy",
                "doc_type": "markdown",
                "mime_type": "text/markdown",
                "file_size": file_size,
                "upload_source": "workshop_astra_created",
                "uploaded_by": user_id,
                "original_filename": file_name,
                "provider": "workshop",
                "sync_status": "completed",
                "classification_status": "completed",
                "created_at": now,
                "updated_at": now,
                "last_synced_at": now,
                "file_modified_at": now,
            })

        await self.db.insert_chunks(rows)
        logger.info(f"Stored {len(rows)} chunks for document {document_id}")

        return {
            "success": True,
            "documentId": document_id,
            "fileName": file_name,
            "chunksCreated": len(rows),
            "contentLength": len(content),
        }
