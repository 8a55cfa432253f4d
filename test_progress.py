"""Tests for the progress state machine."""

import pytest

from docsync.core.errors import InvalidTransitionError
from docsync.core.models import ProgressState
from docsync.ingestion.progress import TRANSITIONS, ProgressTracker

HAPPY_PATH = [ProgressState.UPLOADING, ProgressState.PROCESSING, ProgressState.VERIFYING, ProgressState.COMPLETE]


def advance(tracker: ProgressTracker, steps):
    for state in steps:
        tracker.transition(state)


class TestProgressTracker:

    def test_starts_idle(self):
        tracker = ProgressTracker()
        assert tracker.state == ProgressState.IDLE
        assert not tracker.is_busy

    def test_happy_path(self):
        tracker = ProgressTracker()
        advance(tracker, HAPPY_PATH)

        assert tracker.state == ProgressState.COMPLETE
        assert tracker.is_terminal
        assert tracker.history == [ProgressState.IDLE] + HAPPY_PATH

    @pytest.mark.parametrize("target", [s for s in ProgressState if s != ProgressState.UPLOADING])
    def test_idle_only_moves_to_uploading(self, target):
        tracker = ProgressTracker()

        with pytest.raises(InvalidTransitionError):
            if target == ProgressState.ERROR:
                tracker.fail("boom")
            else:
                tracker.transition(target)

        assert tracker.state == ProgressState.IDLE

    @pytest.mark.parametrize("steps_before_failure", [1, 2, 3])
    def test_error_reachable_from_every_busy_state(self, steps_before_failure):
        tracker = ProgressTracker()
        advance(tracker, HAPPY_PATH[:steps_before_failure])
        assert tracker.is_busy

        tracker.fail("File verification timed out")

        assert tracker.state == ProgressState.ERROR
        assert tracker.error_message == "File verification timed out"
        assert tracker.is_terminal

    def test_cannot_skip_states(self):
        tracker = ProgressTracker()
        tracker.transition(ProgressState.UPLOADING)

        with pytest.raises(InvalidTransitionError):
            tracker.transition(ProgressState.VERIFYING)

    def test_terminal_states_have_no_outgoing_transitions(self):
        assert TRANSITIONS[ProgressState.COMPLETE] == frozenset()
        assert TRANSITIONS[ProgressState.ERROR] == frozenset()

    @pytest.mark.parametrize("target", [s for s in ProgressState if s != ProgressState.ERROR])
    def test_error_never_moves_on_its_own(self, target):
        tracker = ProgressTracker()
        tracker.transition(ProgressState.UPLOADING)
        tracker.fail("Storage upload failed: denied")

        with pytest.raises(InvalidTransitionError):
            tracker.transition(target)

        assert tracker.state == ProgressState.ERROR

    def test_error_is_not_a_plain_transition(self):
        tracker = ProgressTracker()
        tracker.transition(ProgressState.UPLOADING)

        with pytest.raises(InvalidTransitionError):
            tracker.transition(ProgressState.ERROR)

    def test_reset_returns_error_to_idle(self):
        tracker = ProgressTracker()
        tracker.transition(ProgressState.UPLOADING)
        tracker.upload_id = "u1"
        tracker.fail("Upload failed: bad request")

        tracker.reset()

        assert tracker.state == ProgressState.IDLE
        assert tracker.error_message is None
        assert tracker.upload_id is None
        tracker.transition(ProgressState.UPLOADING)

    @pytest.mark.parametrize("steps", [[], HAPPY_PATH[:1], HAPPY_PATH])
    def test_reset_only_from_error(self, steps):
        tracker = ProgressTracker()
        advance(tracker, steps)

        with pytest.raises(InvalidTransitionError):
            tracker.reset()
