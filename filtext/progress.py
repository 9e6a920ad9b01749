"""
Progress Tracker

Append-only record of a session's progress. Every update is kept in
`history`, pushed to synchronous listeners, and delivered to async
subscribers (`async for state in tracker.subscribe()`), which may run
concurrently with the pipeline.

Percent never goes down: an update asking for a lower percent keeps the
current value and only changes stage and message.
"""

import asyncio
from typing import AsyncIterator, Callable, Optional

import structlog

from filtext.models import ProgressState, SessionState

logger = structlog.get_logger()

ProgressListener = Callable[[ProgressState], None]


class ProgressTracker:
    """Observable, monotonic progress stream for one session."""

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id
        self.history: list[ProgressState] = []
        self._listeners: list[ProgressListener] = []
        self._subscribers: list[asyncio.Queue] = []
        self._closed = False

    @property
    def current(self) -> Optional[ProgressState]:
        return self.history[-1] if self.history else None

    @property
    def percent(self) -> int:
        return self.current.percent if self.current else 0

    @property
    def message(self) -> str:
        return self.current.message if self.current else ""

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def update(
        self,
        stage: SessionState,
        percent: Optional[int] = None,
        message: Optional[str] = None,
    ) -> ProgressState:
        """Append a new observation. Omitted fields carry over."""
        if self._closed:
            raise RuntimeError("Progress stream is closed")

        target = self.percent if percent is None else max(self.percent, min(int(percent), 100))
        state = ProgressState(
            stage=stage,
            percent=target,
            message=self.message if message is None else message,
        )
        self.history.append(state)

        logger.debug(
            "Progress",
            session_id=self.session_id,
            stage=stage.value,
            percent=state.percent,
            status=state.message,
        )

        for listener in self._listeners:
            try:
                listener(state)
            except Exception as e:
                logger.warning("Progress listener failed", error=str(e))
        for queue in self._subscribers:
            queue.put_nowait(state)
        return state

    def close(self) -> None:
        """End the stream; subscribers finish after draining."""
        if self._closed:
            return
        self._closed = True
        for queue in self._subscribers:
            queue.put_nowait(None)

    def subscribe(self, replay: bool = True) -> AsyncIterator[ProgressState]:
        """
        Iterate over progress updates until the session terminates.

        The subscription starts when this is called, not on first iteration,
        so no update is missed in between.
        """
        queue: asyncio.Queue = asyncio.Queue()
        if replay:
            for state in self.history:
                queue.put_nowait(state)
        if self._closed:
            queue.put_nowait(None)
        else:
            self._subscribers.append(queue)
        return self._drain(queue)

    async def _drain(self, queue: asyncio.Queue) -> AsyncIterator[ProgressState]:
        try:
            while True:
                state = await queue.get()
                if state is None:
                    return
                yield state
        finally:
            if queue in self._subscribers:
                self._subscribers.remove(queue)
