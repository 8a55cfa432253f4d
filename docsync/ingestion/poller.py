"""
Visibility poller.

Waits for the asynchronous ingestion service to make an uploaded file
queryable. The loop is a fixed budget of attempts separated by a fixed
interval; the decision for each step comes from next_poll_action so the
policy can be tested without a scheduler.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from docsync.core.models import IngestionConfig
from docsync.ingestion.database import IngestionDatabase
from docsync.ingestion.storage import sanitize_filename

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], datetime]


class PollAction(str, Enum):
    FOUND = "found"
    WAIT = "wait"
    GIVE_UP = "give_up"


def next_poll_action(attempt: int, last_result: Optional[str], max_attempts: int) -> PollAction:
    """
    Decide what to do after an attempt.

    Args:
        attempt: Number of attempts issued so far (1-based)
        last_result: document_id returned by the latest attempt, if any
        max_attempts: Attempt budget

    Returns:
        FOUND when the latest attempt matched, GIVE_UP when the budget is spent, WAIT otherwise
    """
    if last_result:
        return PollAction.FOUND
    if attempt >= max_attempts:
        return PollAction.GIVE_UP
    return PollAction.WAIT


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VisibilityPoller:
    """Polls the chunk store until an uploaded file becomes visible."""

    def __init__(
        self,
        db: IngestionDatabase,
        ingestion_config: IngestionConfig,
        sleep: Sleep = asyncio.sleep,
        now: Clock = utcnow,
    ):
        self.db = db
        self.config = ingestion_config
        self.sleep = sleep
        self.now = now

    async def verify(self, upload_id: str, filename: str, team_id: str, start_time: Optional[datetime] = None) -> Optional[str]:
        """
        Wait for the first chunk of an uploaded file.

        Args:
            upload_id: Correlation id of the upload attempt
            filename: Original or sanitized file name
            team_id: Team owning the upload
            start_time: When the upload started; defaults to now

        Returns:
            document_id of the first visible chunk, None once the attempt budget is spent
        """
        sanitized = sanitize_filename(filename)
        since = (start_time or self.now()) - timedelta(seconds=self.config.grace_seconds)
        interval = self.config.poll_interval_ms / 1000

        logger.info(
            f"Verifying upload {upload_id}: {sanitized} for team {team_id} "
            f"(max {self.config.max_attempts} attempts, every {interval}s)"
        )

        attempt = 0
        while True:
            document_id = await self.db.find_visible_chunk(
                team_id,
                sanitized,
                since,
                filter_columns=self.config.poll_filter_columns,
                table=self.config.poll_table,
            )
            attempt += 1

            action = next_poll_action(attempt, document_id, self.config.max_attempts)
            if action == PollAction.FOUND:
                logger.info(f"Upload {upload_id} visible as document {document_id} after {attempt} attempts")
                return document_id
            if action == PollAction.GIVE_UP:
                logger.error(f"Upload {upload_id} not visible after {attempt} attempts")
                return None

            logger.debug(f"Upload {upload_id} not visible yet (attempt {attempt}/{self.config.max_attempts})")
            await self.sleep(interval)
