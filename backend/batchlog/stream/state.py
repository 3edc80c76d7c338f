"""Connection state and the last-value cell that publishes it."""

from __future__ import annotations

import asyncio
import enum
import logging

logger = logging.getLogger(__name__)


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


class StateCell:
    """Holds the current connection state and fans it out to watchers.

    Watchers get latest-state semantics: each subscriber queue holds at most
    one pending value, and a newer state replaces an unread older one.
    """

    def __init__(self, initial: ConnectionState = ConnectionState.DISCONNECTED) -> None:
        self._value = initial
        self._subscribers: set[asyncio.Queue[ConnectionState]] = set()

    @property
    def value(self) -> ConnectionState:
        return self._value

    def set(self, value: ConnectionState) -> bool:
        """Transition to *value*. Returns False when it is already current."""
        if value is self._value:
            return False
        logger.debug("Connection state %s -> %s", self._value.value, value.value)
        self._value = value
        for q in list(self._subscribers):
            if q.full():
                q.get_nowait()
            q.put_nowait(value)
        return True

    def subscribe(self) -> asyncio.Queue[ConnectionState]:
        """Return a queue primed with the current state."""
        q: asyncio.Queue[ConnectionState] = asyncio.Queue(maxsize=1)
        q.put_nowait(self._value)
        self._subscribers.add(q)
        return q

    def unsubscribe(self, q: asyncio.Queue[ConnectionState]) -> None:
        self._subscribers.discard(q)
