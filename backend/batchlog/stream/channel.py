"""Broadcast channel for decoded log batches."""

from __future__ import annotations

import asyncio
import logging

from batchlog.schemas import LogBatch

logger = logging.getLogger(__name__)


class BatchChannel:
    """Single-producer, multi-consumer fan-out in delivery order."""

    def __init__(self, maxsize: int = 256) -> None:
        self._maxsize = maxsize
        self._subscribers: set[asyncio.Queue[LogBatch]] = set()

    def publish(self, batch: LogBatch) -> None:
        for q in list(self._subscribers):
            try:
                q.put_nowait(batch)
            except asyncio.QueueFull:
                logger.debug("Dropping batch of %d entries for a slow subscriber", len(batch))

    def subscribe(self) -> asyncio.Queue[LogBatch]:
        q: asyncio.Queue[LogBatch] = asyncio.Queue(maxsize=self._maxsize)
        self._subscribers.add(q)
        return q

    def unsubscribe(self, q: asyncio.Queue[LogBatch]) -> None:
        self._subscribers.discard(q)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
