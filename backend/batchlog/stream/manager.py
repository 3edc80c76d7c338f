"""Owns the single live log stream and its reconnection cycle.

Lifecycle
---------
1. ``connect(criteria)``  - tears down any current session, opens a new one
                            (state: CONNECTING)
2. transport opens        - state: CONNECTED (also on a ``connected`` frame)
3. ``logs``/default frame - decoded snapshot published on ``batches``
4. transport error        - state: ERROR, one reconnect scheduled after
                            ``reconnect_delay`` with the same criteria
5. ``disconnect()``       - session invalidated, timer cancelled
                            (state: DISCONNECTED)

Every callback carries the session it belongs to; callbacks from a session
that is no longer current are dropped.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
from dataclasses import dataclass, field

from batchlog.config import settings
from batchlog.schemas import FilterCriteria
from batchlog.stream.channel import BatchChannel
from batchlog.stream.frames import BATCH_EVENTS, CONNECTED_EVENT, Frame, decode_batch
from batchlog.stream.state import ConnectionState, StateCell
from batchlog.stream.transport import StreamClosed, StreamTransport

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class StreamSession:
    id: int
    criteria: FilterCriteria
    retries: int = 0
    task: asyncio.Task[None] | None = field(default=None, repr=False)
    retry_handle: asyncio.TimerHandle | None = field(default=None, repr=False)
    closed: bool = False

    def close(self) -> None:
        self.closed = True
        if self.retry_handle is not None:
            self.retry_handle.cancel()
            self.retry_handle = None
        if self.task is not None and not self.task.done():
            self.task.cancel()
        self.task = None


class StreamConnectionManager:
    def __init__(
        self,
        transport: StreamTransport,
        reconnect_delay: float | None = None,
        state: StateCell | None = None,
        batches: BatchChannel | None = None,
    ) -> None:
        self._transport = transport
        self.reconnect_delay = settings.reconnect_delay if reconnect_delay is None else reconnect_delay
        self.state = state or StateCell()
        self.batches = batches or BatchChannel()
        self._session: StreamSession | None = None
        self._ids = itertools.count(1)

    @property
    def session(self) -> StreamSession | None:
        return self._session

    # ── Public API ────────────────────────────────────────────────────────────

    def connect(self, criteria: FilterCriteria) -> None:
        """Replace any current session with one streaming *criteria*."""
        self._teardown()
        logger.info("Opening log stream with %s", criteria.to_query_params() or "no filter")
        self._open(criteria)

    def disconnect(self) -> None:
        if self._session is not None:
            logger.info("Closing log stream session %d", self._session.id)
        self._teardown()
        self.state.set(ConnectionState.DISCONNECTED)

    # ── Session plumbing ──────────────────────────────────────────────────────

    def _is_current(self, session: StreamSession) -> bool:
        return session is self._session and not session.closed

    def _teardown(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            session.close()

    def _open(self, criteria: FilterCriteria, retries: int = 0) -> None:
        loop = asyncio.get_running_loop()  # no session or state change without a loop
        session = StreamSession(id=next(self._ids), criteria=criteria, retries=retries)
        self._session = session
        self.state.set(ConnectionState.CONNECTING)
        session.task = loop.create_task(self._run(session))

    async def _run(self, session: StreamSession) -> None:
        params = session.criteria.to_query_params()
        frames = self._transport.stream(params, on_open=lambda: self._on_open(session))
        try:
            async with contextlib.aclosing(frames):
                async for frame in frames:
                    self._on_frame(session, frame)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._on_error(session, exc)
        else:
            self._on_error(session, StreamClosed("event stream ended by server"))

    # ── Transport callbacks ───────────────────────────────────────────────────

    def _on_open(self, session: StreamSession) -> None:
        if not self._is_current(session):
            return
        session.retries = 0
        self.state.set(ConnectionState.CONNECTED)

    def _on_frame(self, session: StreamSession, frame: Frame) -> None:
        if not self._is_current(session):
            return
        if frame.event == CONNECTED_EVENT:
            self._on_open(session)
        elif frame.event in BATCH_EVENTS:
            batch = decode_batch(frame.data)
            if batch is not None:
                self.batches.publish(batch)
        else:
            logger.debug("Ignoring %r frame on session %d", frame.event, session.id)

    def _on_error(self, session: StreamSession, exc: Exception) -> None:
        if not self._is_current(session):
            return
        session.retries += 1
        logger.warning(
            "Log stream session %d failed (%s); retry %d in %.1fs",
            session.id,
            exc,
            session.retries,
            self.reconnect_delay,
        )
        self.state.set(ConnectionState.ERROR)
        loop = asyncio.get_running_loop()
        session.retry_handle = loop.call_later(self.reconnect_delay, self._reconnect, session)

    def _reconnect(self, session: StreamSession) -> None:
        if not self._is_current(session):
            return
        session.retry_handle = None
        session.close()
        self._open(session.criteria, retries=session.retries)
