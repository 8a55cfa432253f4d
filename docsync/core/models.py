"""
Data models for the document ingestion protocol.
"""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime, timezone
from uuid import UUID

class SourceType(str, Enum):
    """How a referenced document entered the chunk store."""
    LOCAL_UPLOAD = "local_upload"
    ASTRA_CREATED = "astra_created"

class ProgressState(str, Enum):
    """Progress of a single ingestion attempt."""
    IDLE = "idle"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    VERIFYING = "verifying"
    COMPLETE = "complete"
    ERROR = "error"

class IngestionConfig(BaseModel):
    """Per-workflow-slot configuration for the ingestion protocol."""
    name: str
    bucket: str = "local-uploads"
    category: str = "strategy"
    path_prefix: str = "{team_id}/{user_id}"
    poll_table: str = "document_chunks"
    poll_filter_columns: List[str] = Field(default_factory=lambda: ["team_id", "file_name", "created_at"])
    max_attempts: int = 60
    poll_interval_ms: int = 1000
    grace_seconds: float = 5.0
    reference_table: str = "workshop_documents"
    reference_columns: List[str] = Field(default_factory=lambda: ["team_id", "source_type"])
    replace_existing: bool = False
    record_file_details: bool = False
    max_documents: Optional[int] = None

class WorkflowContext(BaseModel):
    """Caller identity threaded through every ingestion step."""
    team_id: str
    user_id: str
    access_token: Optional[str] = None
    registration_id: Optional[str] = None

class UploadRequest(BaseModel):
    """Transient parameter object for one upload attempt. Never persisted."""
    model_config = ConfigDict(frozen=True)

    upload_id: UUID
    team_id: str
    user_id: str
    original_filename: str
    sanitized_filename: str
    mime_type: str
    size_bytes: int
    storage_path: str
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class WorkflowDocumentReference(BaseModel):
    """Durable link between a workflow slot and an ingested document."""
    id: str
    user_id: str
    team_id: Optional[str] = None
    document_id: Optional[str] = None
    file_name: str
    source_type: Optional[SourceType] = None
    created_at: Optional[datetime] = None

class ExistingDocument(BaseModel):
    """A document already visible in the team's chunk store."""
    id: str
    file_name: str
    category: str = "other"
    created_at: datetime

class LocalUploadSource(BaseModel):
    """Raw file chosen by the user. Ingested asynchronously and polled."""
    filename: str
    content: bytes
    mime_type: Optional[str] = None

class GeneratedDocumentSource(BaseModel):
    """Generated markdown stored synchronously by the document-creation endpoint."""
    file_name: str
    content: str

class ExistingDocumentSource(BaseModel):
    """A document already in the chunk store; only a reference is recorded."""
    document_id: str
    file_name: str

class StrategyAnswers(BaseModel):
    """Answers collected by the 'create document' form."""
    mission_statement: str = ""
    core_values: str = ""
    team_goals: str = ""
    goal_title: str = ""
    goal_description: str = ""
    positive_impact_1: str = ""
    positive_impact_2: str = ""
    positive_impact_3: str = ""

class SessionSnapshot(BaseModel):
    """Externally visible state of an ingestion session."""
    session_id: str
    profile: str
    state: ProgressState
    error: Optional[str] = None
    document_id: Optional[str] = None
    upload_id: Optional[str] = None
    file_name: Optional[str] = None
    updated_at: datetime
