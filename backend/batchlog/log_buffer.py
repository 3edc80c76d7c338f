"""Latest-snapshot log buffer with a derived filtered/sorted/paginated view.

The stream delivers full snapshots, so the buffer is replaced, never appended
to. Every view is recomputed from the whole snapshot: filters are not
cumulative, and the visible page is a pure function of
(snapshot, filter, sort, page, page size).
"""

from __future__ import annotations

import asyncio
import enum
import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from batchlog.config import settings
from batchlog.filters import apply
from batchlog.schemas import FilterCriteria, LogEntry

logger = logging.getLogger(__name__)


class SortField(str, enum.Enum):
    LOG_TIME = "logTime"
    LOG_LEVEL = "logLevel"
    MESSAGE = "message"
    THREAD_NAME = "threadName"


class SortDirection(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> SortDirection:
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


def _time_key(entry: LogEntry) -> datetime:
    # Naive timestamps are taken as UTC so they compare with aware ones.
    ts = entry.log_time
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


_SORT_KEYS: dict[SortField, Callable[[LogEntry], Any]] = {
    SortField.LOG_TIME: _time_key,
    SortField.LOG_LEVEL: lambda e: e.log_level,
    SortField.MESSAGE: lambda e: e.message,
    SortField.THREAD_NAME: lambda e: e.thread_name,
}


@dataclass(frozen=True)
class ViewState:
    entries: tuple[LogEntry, ...]
    page: int
    page_size: int
    total_pages: int
    total_count: int
    sort_field: SortField
    sort_direction: SortDirection


class LogBuffer:
    """Holds the most recent batch and derives the visible page on demand."""

    def __init__(
        self,
        page_size: int | None = None,
        sort_field: SortField = SortField.LOG_TIME,
        sort_direction: SortDirection = SortDirection.DESC,
    ) -> None:
        size = page_size if page_size is not None else settings.page_size
        if size < 1:
            raise ValueError(f"page_size must be positive, got {size}")
        self.page_size = size
        self.sort_field = sort_field
        self.sort_direction = sort_direction
        self.criteria = FilterCriteria()
        self.page = 1
        self._entries: tuple[LogEntry, ...] = ()

    # ── Ingestion ─────────────────────────────────────────────────────────────

    def replace(self, entries: Iterable[LogEntry]) -> None:
        """Install a new snapshot. The page survives if it is still in range."""
        self._entries = tuple(entries)
        if self.page > self.total_pages:
            self.page = 1

    async def consume(self, queue: asyncio.Queue[list[LogEntry]]) -> None:
        """Replace the buffer with every batch received on *queue*, forever."""
        while True:
            batch = await queue.get()
            self.replace(batch)
            logger.debug("Log buffer replaced with %d entries", len(batch))

    # ── Filter / sort / page controls ─────────────────────────────────────────

    def set_filter(self, criteria: FilterCriteria | str | None) -> None:
        if not isinstance(criteria, FilterCriteria):
            criteria = FilterCriteria.decode(criteria)
        self.criteria = criteria
        self.page = 1

    def sort_by(self, field: SortField | str) -> None:
        """Select the sort column. Re-selecting the active column flips direction."""
        field = SortField(field)
        if field is self.sort_field:
            self.sort_direction = self.sort_direction.flipped()
        else:
            self.sort_field = field
            self.sort_direction = SortDirection.DESC
        self.page = 1

    def go_to_page(self, page: int) -> bool:
        """Move to *page*. Out-of-range requests are rejected, not clamped."""
        if 1 <= page <= self.total_pages:
            self.page = page
            return True
        return False

    # ── Derived view ──────────────────────────────────────────────────────────

    def filtered(self) -> tuple[LogEntry, ...]:
        """All entries passing the filter, in sort order."""
        selected = apply(self._entries, self.criteria)
        return tuple(
            sorted(
                selected,
                key=_SORT_KEYS[self.sort_field],
                reverse=self.sort_direction is SortDirection.DESC,
            )
        )

    @property
    def total_count(self) -> int:
        return len(self.filtered())

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    def view(self) -> ViewState:
        rows = self.filtered()
        start = (self.page - 1) * self.page_size
        return ViewState(
            entries=rows[start : start + self.page_size],
            page=self.page,
            page_size=self.page_size,
            total_pages=math.ceil(len(rows) / self.page_size),
            total_count=len(rows),
            sort_field=self.sort_field,
            sort_direction=self.sort_direction,
        )

    def __len__(self) -> int:
        return len(self._entries)
