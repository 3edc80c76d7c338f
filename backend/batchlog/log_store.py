"""In-memory capture of batch job log records.

``BatchLogHandler`` is attached to the root logger and keeps every record that
carries batch job context (``execution_id``/``job_name`` extras, normally set
through ``job_logger``) in a bounded deque. The query helpers back the REST
endpoints and the event stream; all of them return newest entries first.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections import Counter, deque
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone

from batchlog.config import settings
from batchlog.filters import matches
from batchlog.schemas import FilterCriteria, LogEntry, LogStats

# Python level names → batch log level names
_LEVELS = {
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARNING": "WARN",
    "ERROR": "ERROR",
    "CRITICAL": "ERROR",
}

# Execution ids look like yyyyMMddHHmm + job name, e.g. 202405240830GET_EMPLOYEE_JOB
_EXECUTION_STAMP = "%Y%m%d%H%M"
_STAMP_DIGITS = 12


def as_utc(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def new_execution_id(job_name: str, now: datetime | None = None) -> str:
    return f"{(now or datetime.now()).strftime(_EXECUTION_STAMP)}{job_name}"


def job_name_from_execution_id(execution_id: str | None) -> str | None:
    """Return the job name embedded in an execution id, or None."""
    if not execution_id:
        return None
    stamp, rest = execution_id[:_STAMP_DIGITS], execution_id[_STAMP_DIGITS:]
    if len(stamp) == _STAMP_DIGITS and stamp.isdigit() and rest:
        return rest
    return None


def job_logger(
    logger: logging.Logger,
    job_name: str,
    execution_id: str | None = None,
    step_name: str | None = None,
) -> logging.LoggerAdapter:
    """Wrap *logger* so every record is tagged with batch job context.

    The wrapped logger is lowered to DEBUG when it would otherwise drop DEBUG
    records, so all four batch levels reach the capture handler whatever the
    root level is.
    """
    if logger.getEffectiveLevel() > logging.DEBUG:
        logger.setLevel(logging.DEBUG)
    extra = {
        "job_name": job_name,
        "execution_id": execution_id or new_execution_id(job_name),
        "step_name": step_name,
    }
    return logging.LoggerAdapter(logger, extra)


class BatchLogHandler(logging.Handler):
    """Logging handler that stores batch job records as ``LogEntry`` objects."""

    def __init__(self, maxlen: int = 5000) -> None:
        super().__init__()
        self.records: deque[LogEntry] = deque(maxlen=maxlen)
        self._ids = itertools.count(1)
        self._exc_formatter = logging.Formatter()
        self._records_lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        execution_id = getattr(record, "execution_id", None)
        job_name = getattr(record, "job_name", None)
        if not execution_id or not job_name:
            return  # not a batch job record
        try:
            stack = self._exc_formatter.formatException(record.exc_info) if record.exc_info else None
            logged_at = datetime.fromtimestamp(record.created, tz=timezone.utc)
            entry = LogEntry(
                id=next(self._ids),
                execution_id=execution_id,
                job_name=job_name,
                step_name=getattr(record, "step_name", None),
                log_level=_LEVELS.get(record.levelname, record.levelname),
                message=record.getMessage(),
                exception_stack=stack,
                log_time=logged_at,
                logger_name=record.name,
                thread_name=record.threadName or "",
                additional_info=getattr(record, "additional_info", None),
                created_at=datetime.now(timezone.utc),
            )
        except Exception:
            self.handleError(record)
            return
        with self._records_lock:
            self.records.append(entry)

    # ── Queries ───────────────────────────────────────────────────────────────

    def _select(self, predicate: Callable[[LogEntry], bool]) -> list[LogEntry]:
        with self._records_lock:
            snapshot = list(self.records)
        out = [entry for entry in snapshot if predicate(entry)]
        out.sort(key=lambda e: as_utc(e.log_time), reverse=True)
        return out

    def by_execution(self, execution_id: str) -> list[LogEntry]:
        return self._select(lambda e: e.execution_id == execution_id)

    def by_job(self, job_name: str) -> list[LogEntry]:
        return self._select(lambda e: e.job_name == job_name)

    def by_level(self, level: str) -> list[LogEntry]:
        return self._select(lambda e: e.log_level == level)

    def errors(self, execution_id: str) -> list[LogEntry]:
        return self._select(lambda e: e.execution_id == execution_id and e.log_level == "ERROR")

    def between(self, start: datetime, end: datetime) -> list[LogEntry]:
        lo, hi = as_utc(start), as_utc(end)
        return self._select(lambda e: lo <= as_utc(e.log_time) <= hi)

    def recent(self, limit: int = 100) -> list[LogEntry]:
        return self._select(lambda e: True)[:limit]

    def query(self, criteria: FilterCriteria) -> list[LogEntry]:
        """Snapshot for an arbitrary filter.

        Scoping follows a fixed precedence: execution id, then job name, then
        level, then time range; without any of them the most recent entries
        are returned. The keyword narrows the result afterwards.
        """
        if criteria.execution_id:
            rows = self.by_execution(criteria.execution_id)
        elif criteria.job_name:
            rows = self.by_job(criteria.job_name)
        elif criteria.restricts_level:
            rows = self.by_level(criteria.log_level)  # type: ignore[arg-type]
        elif criteria.start_time and criteria.end_time:
            rows = self.between(criteria.start_time, criteria.end_time)
        else:
            rows = self.recent()
        if criteria.keyword:
            rows = [e for e in rows if matches(e, FilterCriteria(keyword=criteria.keyword))]
        return rows

    def stats(self, execution_id: str) -> list[LogStats]:
        counts = Counter(e.log_level for e in self.by_execution(execution_id))
        return [LogStats(level=level, count=count) for level, count in sorted(counts.items())]

    def cleanup(self, retention_days: int, now: datetime | None = None) -> int:
        """Drop entries older than *retention_days*; return how many were removed."""
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=retention_days)
        with self._records_lock:
            kept = [e for e in self.records if as_utc(e.log_time) >= as_utc(cutoff)]
            removed = len(self.records) - len(kept)
            self.records.clear()
            self.records.extend(kept)
        return removed

    def load(self, entries: Iterable[LogEntry]) -> None:
        """Insert already-built entries (imports, fixtures)."""
        with self._records_lock:
            self.records.extend(entries)


# Singleton - attached to the root logger by batchlog.main.
log_handler = BatchLogHandler(settings.buffer_size)
