"""Server side of the log stream: turns store snapshots into SSE frames.

Protocol (text/event-stream):

    event: connected   data: <greeting>          sent once on open
    event: logs        data: [LogEntry, ...]     full snapshot for the filter
    : keep-alive                                 idle poll

Filters that are empty or scoped to a single execution are "live": the store
is polled every ``poll_interval`` seconds and a fresh snapshot is pushed
whenever newer entries appear. Any other filter gets one snapshot and then
only keep-alives.
"""

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from datetime import datetime

from batchlog.config import settings
from batchlog.log_store import BatchLogHandler, as_utc, job_name_from_execution_id, log_handler
from batchlog.schemas import FilterCriteria, LogEntry, log_batch_adapter
from batchlog.stream.frames import CONNECTED_EVENT, LOGS_EVENT, format_frame

logger = logging.getLogger(__name__)

KEEP_ALIVE = ": keep-alive\n\n"


def is_live(criteria: FilterCriteria) -> bool:
    return criteria.is_empty or criteria == FilterCriteria(execution_id=criteria.execution_id)


def _newest(entries: list[LogEntry]) -> datetime | None:
    return max((as_utc(e.log_time) for e in entries), default=None)


class LogStreamService:
    def __init__(self, store: BatchLogHandler, poll_interval: float | None = None) -> None:
        self._store = store
        self.poll_interval = settings.poll_interval if poll_interval is None else poll_interval
        self._active: set[str] = set()

    @property
    def active_connections(self) -> int:
        return len(self._active)

    def snapshot(self, criteria: FilterCriteria) -> list[LogEntry]:
        if criteria.is_empty:
            return self._store.recent()
        if is_live(criteria):
            # Follow the whole job so reruns show up under the same stream.
            job_name = job_name_from_execution_id(criteria.execution_id)
            if job_name:
                return self._store.by_job(job_name)
            return self._store.by_execution(criteria.execution_id)  # type: ignore[arg-type]
        return self._store.query(criteria)

    @staticmethod
    def _logs_frame(entries: list[LogEntry]) -> str:
        payload = log_batch_adapter.dump_json(entries, by_alias=True).decode()
        return format_frame(payload, event=LOGS_EVENT)

    async def events(self, criteria: FilterCriteria) -> AsyncIterator[str]:
        connection_id = uuid.uuid4().hex
        self._active.add(connection_id)
        logger.info("Log stream %s opened with %s", connection_id, criteria.to_query_params() or "no filter")
        try:
            yield format_frame("log stream connected", event=CONNECTED_EVENT)

            entries = self.snapshot(criteria)
            last_seen = _newest(entries)
            if entries:
                yield self._logs_frame(entries)

            live = is_live(criteria)
            while True:
                await asyncio.sleep(self.poll_interval)
                if live:
                    entries = self.snapshot(criteria)
                    newest = _newest(entries)
                    if newest is not None and (last_seen is None or newest > last_seen):
                        last_seen = newest
                        yield self._logs_frame(entries)
                        continue
                yield KEEP_ALIVE
        finally:
            self._active.discard(connection_id)
            logger.info("Log stream %s closed", connection_id)


stream_service = LogStreamService(log_handler)
