"""
Tests for the Progress Tracker.
"""

import pytest

from filtext.models import SessionState
from filtext.progress import ProgressTracker


class TestProgressTracker:
    """Tests for ProgressTracker."""

    def test_percent_never_decreases(self):
        tracker = ProgressTracker()
        tracker.update(SessionState.PREFLIGHTING, 30, "Setting up")
        state = tracker.update(SessionState.RESOLVING_DATASET, 10, "Late callback")

        assert state.percent == 30
        assert state.message == "Late callback"
        assert state.stage == SessionState.RESOLVING_DATASET

    def test_percent_is_capped(self):
        tracker = ProgressTracker()

        assert tracker.update(SessionState.UPLOADING, 150).percent == 100

    def test_omitted_fields_carry_over(self):
        tracker = ProgressTracker()
        tracker.update(SessionState.UPLOADING, 80, "Uploading")
        state = tracker.update(SessionState.UPLOADING, message="Confirming transaction...")

        assert state.percent == 80
        assert tracker.update(SessionState.UPLOADING, 90).message == "Confirming transaction..."

    def test_listeners_receive_every_update(self):
        tracker = ProgressTracker()
        seen = []
        tracker.add_listener(seen.append)

        tracker.update(SessionState.PREFLIGHTING, 0, "start")
        tracker.update(SessionState.PREFLIGHTING, 10, "balance")

        assert [s.percent for s in seen] == [0, 10]
        assert seen == tracker.history

    def test_failing_listener_does_not_break_stream(self):
        tracker = ProgressTracker()

        def broken(state):
            raise ValueError("ui gone")

        tracker.add_listener(broken)
        tracker.update(SessionState.PREFLIGHTING, 5)

        assert tracker.percent == 5

    def test_closed_stream_rejects_updates(self):
        tracker = ProgressTracker()
        tracker.close()

        with pytest.raises(RuntimeError):
            tracker.update(SessionState.UPLOADING, 50)

    @pytest.mark.asyncio
    async def test_subscribe_replays_and_ends_on_close(self):
        tracker = ProgressTracker()
        tracker.update(SessionState.PREFLIGHTING, 0, "start")
        stream = tracker.subscribe()

        first = await stream.__anext__()
        tracker.update(SessionState.UPLOADING, 80, "upload")
        second = await stream.__anext__()
        tracker.close()

        assert first.percent == 0
        assert second.percent == 80
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    @pytest.mark.asyncio
    async def test_subscribe_without_replay(self):
        tracker = ProgressTracker()
        tracker.update(SessionState.PREFLIGHTING, 0, "start")
        stream = tracker.subscribe(replay=False)

        tracker.update(SessionState.PREFLIGHTING, 10, "balance")
        state = await stream.__anext__()

        assert state.percent == 10
