from fastapi import Request

from docsync.core.config import config
from docsync.core.models import WorkflowContext
from docsync.ingestion.database import IngestionDatabase
from docsync.ingestion.manager import IngestionManager, get_manager


def get_workflow_context(request: Request) -> WorkflowContext:
    """Workflow identity resolved by the middleware."""
    return WorkflowContext(
        team_id=request.state.team_id,
        user_id=request.state.user_id,
        access_token=request.state.access_token,
    )


def get_ingestion_manager() -> IngestionManager:
    return get_manager()


def get_database() -> IngestionDatabase:
    return IngestionDatabase(config._get_supabase_client(), config.chunk_table)
