"""
Ingestion session management.
Starts ingestion attempts as background tasks, tracks their progress and guards workflow slots.
"""

import asyncio
import logging
import uuid
from typing import Dict, Optional, Set, Tuple

from docsync.core.config import config
from docsync.core.errors import SlotBusyError
from docsync.core.models import SessionSnapshot, WorkflowContext
from docsync.ingestion.database import IngestionDatabase
from docsync.ingestion.pipeline import DocumentIngestor, DocumentSource
from docsync.ingestion.progress import ProgressTracker
from docsync.ingestion.storage import DocumentStorage
from docsync.service.functions_api import FunctionsAPIClient

logger = logging.getLogger(__name__)


class IngestionSession:
    """One user-visible ingestion attempt and its progress."""

    def __init__(self, profile: str, context: WorkflowContext, source: DocumentSource):
        self.session_id = str(uuid.uuid4())
        self.profile = profile
        self.context = context
        self.source: Optional[DocumentSource] = source
        self.file_name = getattr(source, "filename", None) or getattr(source, "file_name", None)
        self.tracker = ProgressTracker(label=f"{profile}:{self.session_id}")
        self.document_id: Optional[str] = None
        self.task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        if self.tracker.is_busy:
            return True
        return self.task is not None and not self.task.done()

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            profile=self.profile,
            state=self.tracker.state,
            error=self.tracker.error_message,
            document_id=self.document_id,
            upload_id=self.tracker.upload_id,
            file_name=self.file_name,
            updated_at=self.tracker.updated_at,
        )


class IngestionManager:
    """Runs ingestion sessions, at most one in flight per workflow slot."""

    def __init__(self, ingestors: Dict[str, DocumentIngestor]):
        """
        Initialize the ingestion manager.

        Args:
            ingestors: Document ingestor per profile name
        """
        self.ingestors = ingestors
        self.sessions: Dict[str, IngestionSession] = {}
        # Latest session id per slot; older sessions of a slot are evicted
        self.slots: Dict[Tuple[str, str], str] = {}
        self.active_jobs: Set[asyncio.Task] = set()

    def _slot_key(self, profile: str, context: WorkflowContext) -> Tuple[str, str]:
        return self.ingestors[profile].config.reference_table, context.user_id

    def _busy_session(self, slot: Tuple[str, str]) -> Optional[IngestionSession]:
        session = self.sessions.get(self.slots.get(slot, ""))
        if session and session.in_flight:
            return session
        return None

    async def start(self, profile: str, context: WorkflowContext, source: DocumentSource) -> IngestionSession:
        """
        Start an ingestion attempt in the background.

        Starting a session evicts the previous, finished session of the same slot.

        Args:
            profile: Ingestion profile name
            context: Workflow identity
            source: Document to ingest

        Returns:
            The new session, still in idle or already moving

        Raises:
            KeyError: unknown profile
            SlotBusyError: another attempt is in flight for the same slot
            DocumentLimitError: the slot is full
        """
        if profile not in self.ingestors:
            raise KeyError(f"Unknown ingestion profile: {profile}")

        await self.ingestors[profile].check_capacity(context)

        # No awaits from here until the session owns the slot
        slot = self._slot_key(profile, context)
        busy = self._busy_session(slot)
        if busy:
            raise SlotBusyError(f"Session {busy.session_id} is still {busy.tracker.state.value}")

        previous = self.slots.get(slot)
        if previous:
            self.sessions.pop(previous, None)
            logger.debug(f"Evicted finished session {previous}")

        session = IngestionSession(profile, context, source)
        self.sessions[session.session_id] = session
        self.slots[slot] = session.session_id

        task = asyncio.create_task(self._run_session(session))
        session.task = task
        self.active_jobs.add(task)
        task.add_done_callback(self.active_jobs.discard)

        logger.info(f"Started session {session.session_id} for {profile} (active jobs: {len(self.active_jobs)})")
        return session

    async def _run_session(self, session: IngestionSession):
        ingestor = self.ingestors[session.profile]
        document_id = await ingestor.run(session.source, session.context, session.tracker)
        session.document_id = document_id
        # Drop the payload once the attempt is over
        session.source = None
        if document_id:
            logger.info(f"✅ Session {session.session_id} complete with document {document_id}")
        else:
            logger.warning(f"⚠️ Session {session.session_id} ended in error: {session.tracker.error_message}")

    def get(self, session_id: str) -> Optional[IngestionSession]:
        return self.sessions.get(session_id)

    def reset(self, session_id: str) -> IngestionSession:
        """
        'Try again' for an errored session.

        Raises:
            KeyError: unknown session
            InvalidTransitionError: session is not in the error state
        """
        session = self.sessions.get(session_id)
        if session is None:
            raise KeyError(session_id)
        session.tracker.reset()
        session.document_id = None
        session.source = None
        session.file_name = None
        return session

    async def shutdown(self, timeout: float = 10.0):
        """Cancel in-flight sessions."""
        logger.info("Cancelling active ingestion sessions...")
        for job in self.active_jobs:
            if not job.done():
                job.cancel()

        if self.active_jobs:
            try:
                await asyncio.wait_for(
                    asyncio.gather(*self.active_jobs, return_exceptions=True),
                    timeout=timeout
                )
            except asyncio.TimeoutError:
                logger.warning("Some sessions didn't finish within timeout")


# Singleton manager instance for the application
_manager_instance: Optional[IngestionManager] = None
_functions_client: Optional[FunctionsAPIClient] = None


def build_ingestors(db: IngestionDatabase, storage_client, functions_api: FunctionsAPIClient) -> Dict[str, DocumentIngestor]:
    """Build one ingestor per configured profile."""
    ingestors = {}
    for name, profile in config.get_profiles().items():
        ingestors[name] = DocumentIngestor(
            profile,
            db,
            DocumentStorage(storage_client, profile.bucket),
            functions_api,
        )
    return ingestors


def get_manager() -> IngestionManager:
    """Get the singleton ingestion manager."""
    global _manager_instance, _functions_client
    if _manager_instance is None:
        client = config._get_supabase_client()
        db = IngestionDatabase(client, config.chunk_table)
        _functions_client = FunctionsAPIClient(**config.get_functions_api_config(), timeout=config.functions_timeout)
        _manager_instance = IngestionManager(build_ingestors(db, client, _functions_client))
    return _manager_instance


async def stop_manager():
    """Stop the manager and close its HTTP client."""
    global _manager_instance, _functions_client
    if _manager_instance:
        await _manager_instance.shutdown()
        _manager_instance = None
    if _functions_client:
        await _functions_client.close()
        _functions_client = None
