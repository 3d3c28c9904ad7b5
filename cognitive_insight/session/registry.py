"""In-memory registry of interview sessions run by this process."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import OrderedDict
from typing import Callable, Optional, Set

from cognitive_insight.application.interfaces import SessionObserverInterface
from cognitive_insight.domain.models import SessionSnapshot

from .controller import SessionController

logger = logging.getLogger("cognitive_insight.session")

ControllerFactory = Callable[[str, SessionObserverInterface], SessionController]


class SessionBusyError(RuntimeError):
    """Raised when a session is started while another one owns the audio devices."""


class SessionHandle(SessionObserverInterface):
    """Fan-out point for the snapshots of one session."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self.latest: Optional[SessionSnapshot] = None
        self.task: Optional[asyncio.Task] = None
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()

    def publish(self, snapshot: SessionSnapshot) -> None:
        self.latest = snapshot
        for queue in list(self._subscribers):
            queue.put_nowait(snapshot)

    def subscribe(self) -> asyncio.Queue:
        """Return a queue primed with the latest snapshot."""

        queue: asyncio.Queue = asyncio.Queue()
        if self.latest is not None:
            queue.put_nowait(self.latest)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)


class SessionRegistry:
    """Start, look up and cancel sessions; one may run at a time."""

    def __init__(self, factory: ControllerFactory, *, max_finished: int = 50) -> None:
        self._factory = factory
        self._max_finished = max_finished
        self._sessions: "OrderedDict[str, SessionHandle]" = OrderedDict()
        self._active: Optional[SessionHandle] = None

    def start(self) -> SessionHandle:
        if self._active is not None and not self._active.done:
            raise SessionBusyError(
                f"Session {self._active.session_id} is still running."
            )

        session_id = uuid.uuid4().hex
        handle = SessionHandle(session_id)
        controller = self._factory(session_id, handle)
        handle.publish(controller.snapshot())
        handle.task = asyncio.create_task(controller.run(), name=f"session-{session_id}")
        handle.task.add_done_callback(self._log_outcome)

        self._sessions[session_id] = handle
        self._active = handle
        self._prune()
        logger.info("session=%s started", session_id)
        return handle

    def get(self, session_id: str) -> Optional[SessionHandle]:
        return self._sessions.get(session_id)

    async def cancel(self, session_id: str) -> Optional[SessionHandle]:
        handle = self._sessions.get(session_id)
        if handle is None or handle.task is None:
            return handle
        if not handle.task.done():
            handle.task.cancel()
            await asyncio.gather(handle.task, return_exceptions=True)
        return handle

    async def shutdown(self) -> None:
        for session_id in list(self._sessions):
            await self.cancel(session_id)

    def _prune(self) -> None:
        finished = [key for key, handle in self._sessions.items() if handle.done]
        for key in finished[: max(0, len(finished) - self._max_finished)]:
            del self._sessions[key]

    @staticmethod
    def _log_outcome(task: asyncio.Task) -> None:
        if task.cancelled():
            logger.info("%s cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("%s crashed: %r", task.get_name(), exc)


__all__ = ["ControllerFactory", "SessionBusyError", "SessionHandle", "SessionRegistry"]
