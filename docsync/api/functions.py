from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import Optional
import logging

from docsync.api.deps import get_database
from docsync.ingestion.database import IngestionDatabase
from docsync.service.document_store import WorkshopDocumentStore
from docsync.service.gemini import GeminiEmbedder

router = APIRouter()
logger = logging.getLogger(__name__)

class StoreDocumentPayload(BaseModel):
    team_id: str = Field("", alias="teamId")
    user_id: str = Field("", alias="userId")
    file_name: str = Field("", alias="fileName")
    content: str = ""
    category: Optional[str] = None

def get_document_store(db: IngestionDatabase = Depends(get_database)) -> WorkshopDocumentStore:
    try:
        embedder = GeminiEmbedder()
    except ValueError as e:
        logger.error(f"Document store unavailable: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return WorkshopDocumentStore(db, embedder)

@router.post("/store-workshop-document")
async def store_workshop_document(
    payload: StoreDocumentPayload,
    store: WorkshopDocumentStore = Depends(get_document_store)
):
    """
    Chunk, embed and store a generated document.
    Responds only once every chunk is queryable.
    """
    try:
        return await store.store(
            payload.team_id,
            payload.user_id,
            payload.file_name,
            payload.content,
            payload.category
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error storing document {payload.file_name}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to store document: {str(e)}")
