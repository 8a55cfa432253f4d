from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form
from pydantic import BaseModel
from typing import Optional
import logging

from docsync.api.deps import get_database, get_ingestion_manager, get_workflow_context
from docsync.core.config import config
from docsync.core.errors import DocumentLimitError, InvalidTransitionError, SlotBusyError
from docsync.core.models import (
    ExistingDocumentSource,
    GeneratedDocumentSource,
    LocalUploadSource,
    StrategyAnswers,
    WorkflowContext,
    WorkflowDocumentReference,
)
from docsync.ingestion.database import IngestionDatabase
from docsync.ingestion.manager import IngestionManager
from docsync.service.strategy_document import STRATEGY_FILE_NAME, build_strategy_document

router = APIRouter()
logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = ('.pdf', '.docx', '.doc', '.txt', '.md')
MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10MB

class SelectDocumentRequest(BaseModel):
    document_id: str
    file_name: str
    registration_id: Optional[str] = None

class ContinueRequest(BaseModel):
    registration_id: str

async def _start_session(manager: IngestionManager, profile: str, context: WorkflowContext, source):
    try:
        session = await manager.start(profile, context, source)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown document profile: {profile}")
    except SlotBusyError as e:
        raise HTTPException(status_code=409, detail=f"An upload is already in progress: {e}")
    except DocumentLimitError as e:
        raise HTTPException(status_code=409, detail=e.user_message)
    return session.snapshot()

@router.post("/documents/{profile}/upload", status_code=202)
async def upload_document(
    profile: str,
    file: UploadFile = File(...),
    registration_id: Optional[str] = Form(None),
    context: WorkflowContext = Depends(get_workflow_context),
    manager: IngestionManager = Depends(get_ingestion_manager)
):
    """
    Upload a document and ingest it in the background.
    Poll the returned session for progress.
    """
    if not file.filename or not file.filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise HTTPException(
            status_code=400,
            detail="Supported formats: PDF, Word, Text, Markdown"
        )

    content = await file.read()

    if not content:
        raise HTTPException(status_code=400, detail="File is empty")

    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File size exceeds 10MB limit")

    context.registration_id = registration_id
    source = LocalUploadSource(filename=file.filename, content=content, mime_type=file.content_type)
    return await _start_session(manager, profile, context, source)

@router.post("/documents/{profile}/create", status_code=202)
async def create_document(
    profile: str,
    answers: StrategyAnswers,
    context: WorkflowContext = Depends(get_workflow_context),
    manager: IngestionManager = Depends(get_ingestion_manager)
):
    """Generate the team strategy document from the form answers and store it."""
    try:
        content = build_strategy_document(answers)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    source = GeneratedDocumentSource(file_name=STRATEGY_FILE_NAME, content=content)
    return await _start_session(manager, profile, context, source)

@router.post("/documents/{profile}/select", status_code=202)
async def select_document(
    profile: str,
    request: SelectDocumentRequest,
    context: WorkflowContext = Depends(get_workflow_context),
    manager: IngestionManager = Depends(get_ingestion_manager)
):
    """Reference a document the team has already ingested."""
    context.registration_id = request.registration_id
    source = ExistingDocumentSource(document_id=request.document_id, file_name=request.file_name)
    return await _start_session(manager, profile, context, source)

def _owned_session(manager: IngestionManager, session_id: str, context: WorkflowContext):
    session = manager.get(session_id)
    # Sessions of other users are reported as missing
    if not session or session.context.user_id != context.user_id:
        raise HTTPException(status_code=404, detail="Session not found")
    return session

@router.get("/documents/sessions/{session_id}")
async def get_session(
    session_id: str,
    context: WorkflowContext = Depends(get_workflow_context),
    manager: IngestionManager = Depends(get_ingestion_manager)
):
    """Get ingestion progress for a session."""
    return _owned_session(manager, session_id, context).snapshot()

@router.post("/documents/sessions/{session_id}/reset")
async def reset_session(
    session_id: str,
    context: WorkflowContext = Depends(get_workflow_context),
    manager: IngestionManager = Depends(get_ingestion_manager)
):
    """Return an errored session to idle so the user can try again."""
    _owned_session(manager, session_id, context)
    try:
        session = manager.reset(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Session not found")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.snapshot()

@router.get("/documents/existing")
async def list_existing_documents(
    context: WorkflowContext = Depends(get_workflow_context),
    db: IngestionDatabase = Depends(get_database)
):
    """List the team's ingested documents, newest first."""
    try:
        documents = await db.list_team_documents(context.team_id)
        return {"documents": documents}
    except Exception as e:
        logger.error(f"Error loading documents for team {context.team_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to load documents: {str(e)}")

@router.get("/documents/build-lab/library")
async def build_lab_library(
    context: WorkflowContext = Depends(get_workflow_context),
    db: IngestionDatabase = Depends(get_database)
):
    """List workshop and build lab documents together, newest first."""
    try:
        workshop_docs = await db.list_references("workshop_documents", context.user_id)
        build_lab_docs = await db.list_references("build_lab_documents", context.user_id)
    except Exception as e:
        logger.error(f"Error loading build lab library for user {context.user_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to load documents: {str(e)}")

    documents = [
        {
            "id": d["id"],
            "file_name": d["file_name"],
            "file_type": d.get("file_type") or "application/octet-stream",
            "file_size": d.get("file_size") or 0,
            "created_at": d["created_at"],
            "source": source
        }
        for source, rows in (("workshop", workshop_docs), ("build_lab", build_lab_docs))
        for d in rows
    ]
    documents.sort(key=lambda d: d["created_at"], reverse=True)

    return {
        "documents": documents,
        "max_documents": config.build_lab_max_documents
    }

@router.delete("/documents/build-lab/{reference_id}")
async def delete_build_lab_document(
    reference_id: str,
    context: WorkflowContext = Depends(get_workflow_context),
    db: IngestionDatabase = Depends(get_database)
):
    """Delete one build lab document reference."""
    if not await db.delete_user_reference("build_lab_documents", reference_id, context.user_id):
        raise HTTPException(status_code=404, detail="Document not found")
    return {"message": "Document deleted", "id": reference_id}

@router.get("/documents/{profile}/current", response_model=WorkflowDocumentReference)
async def get_current_document(
    profile: str,
    context: WorkflowContext = Depends(get_workflow_context),
    db: IngestionDatabase = Depends(get_database)
):
    """Get the newest document reference for the user's slot."""
    try:
        ingestion_config = config.get_profile(profile)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown document profile: {profile}")

    reference = await db.get_current_reference(ingestion_config.reference_table, context.user_id)
    if not reference:
        raise HTTPException(status_code=404, detail="No document yet")
    return reference

@router.post("/documents/workshop/continue")
async def continue_to_hub(
    request: ContinueRequest,
    context: WorkflowContext = Depends(get_workflow_context),
    db: IngestionDatabase = Depends(get_database)
):
    """Advance the workshop registration to the hub once a document is recorded."""
    reference = await db.get_current_reference("workshop_documents", context.user_id)
    if not reference or not reference.get("document_id"):
        raise HTTPException(status_code=409, detail="Sync a document before continuing")

    if not await db.update_registration_step(request.registration_id, "hub"):
        raise HTTPException(status_code=404, detail="Registration not found")

    return {
        "registration_id": request.registration_id,
        "current_step": "hub",
        "document_id": reference["document_id"]
    }
