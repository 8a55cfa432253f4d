"""
Progress state machine for a single ingestion attempt.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional

from docsync.core.errors import InvalidTransitionError
from docsync.core.models import ProgressState

logger = logging.getLogger(__name__)

# error is terminal until an explicit reset()
TRANSITIONS: Dict[ProgressState, FrozenSet[ProgressState]] = {
    ProgressState.IDLE: frozenset({ProgressState.UPLOADING}),
    ProgressState.UPLOADING: frozenset({ProgressState.PROCESSING, ProgressState.ERROR}),
    ProgressState.PROCESSING: frozenset({ProgressState.VERIFYING, ProgressState.ERROR}),
    ProgressState.VERIFYING: frozenset({ProgressState.COMPLETE, ProgressState.ERROR}),
    ProgressState.COMPLETE: frozenset(),
    ProgressState.ERROR: frozenset(),
}

BUSY_STATES = frozenset({ProgressState.UPLOADING, ProgressState.PROCESSING, ProgressState.VERIFYING})
TERMINAL_STATES = frozenset({ProgressState.COMPLETE, ProgressState.ERROR})


class ProgressTracker:
    """Tracks idle -> uploading -> processing -> verifying -> complete | error."""

    def __init__(self, label: str = ""):
        self.label = label
        self.state = ProgressState.IDLE
        self.error_message: Optional[str] = None
        self.upload_id: Optional[str] = None
        self.history: List[ProgressState] = [ProgressState.IDLE]
        self.updated_at = datetime.now(timezone.utc)

    @property
    def is_busy(self) -> bool:
        return self.state in BUSY_STATES

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def can_transition(self, target: ProgressState) -> bool:
        return target in TRANSITIONS[self.state]

    def transition(self, target: ProgressState):
        """
        Move to the target state.

        Raises:
            InvalidTransitionError: if target is not reachable from the current state
        """
        if target == ProgressState.ERROR:
            raise InvalidTransitionError("Use fail() to enter the error state")
        self._move(target)

    def fail(self, message: str):
        """Enter the error state, keeping a human-readable message."""
        self._move(ProgressState.ERROR)
        self.error_message = message

    def reset(self):
        """User-initiated 'Try again': error -> idle."""
        if self.state != ProgressState.ERROR:
            raise InvalidTransitionError(f"Cannot reset from {self.state.value}")
        self.state = ProgressState.IDLE
        self.error_message = None
        self.upload_id = None
        self.history.append(ProgressState.IDLE)
        self.updated_at = datetime.now(timezone.utc)
        logger.info(f"[{self.label}] progress reset to idle")

    def _move(self, target: ProgressState):
        if not self.can_transition(target):
            raise InvalidTransitionError(f"Cannot move from {self.state.value} to {target.value}")
        logger.debug(f"[{self.label}] {self.state.value} -> {target.value}")
        self.state = target
        self.history.append(target)
        self.updated_at = datetime.now(timezone.utc)
