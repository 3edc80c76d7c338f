"""
Shared pytest fixtures.

The stream tests run the real ``StreamConnectionManager`` against a scripted
in-memory transport, so no network is involved. Server tests talk to the
FastAPI app through httpx's ASGI transport.
"""

import asyncio
import itertools
import json
from collections.abc import AsyncGenerator, AsyncIterator, Callable
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from batchlog.log_store import log_handler
from batchlog.main import app
from batchlog.schemas import LOG_LEVELS, LogEntry
from batchlog.stream import ConnectionState, Frame, StateCell, StreamTransport

BASE_TIME = datetime(2024, 5, 24, 8, 30, tzinfo=timezone.utc)


# ── Log entries ───────────────────────────────────────────────────────────────


@pytest.fixture
def make_entry() -> Callable[..., LogEntry]:
    ids = itertools.count(1)

    def _make(**overrides) -> LogEntry:
        n = next(ids)
        data = {
            "id": n,
            "execution_id": "202405240830SAMPLE_JOB",
            "job_name": "SAMPLE_JOB",
            "step_name": f"step-{n // 10 + 1}",
            "log_level": "INFO",
            "message": f"processing record {n}",
            "log_time": BASE_TIME + timedelta(minutes=n),
            "logger_name": "batch.job.SampleJob",
            "thread_name": f"batch-thread-{n % 3 + 1}",
            "created_at": BASE_TIME + timedelta(minutes=n),
        }
        data.update(overrides)
        return LogEntry(**data)

    return _make


@pytest.fixture
def mixed_batch(make_entry) -> list[LogEntry]:
    """50 entries cycling through all levels; ERROR entries carry a stack."""
    entries = []
    for i in range(50):
        level = LOG_LEVELS[i % len(LOG_LEVELS)]
        stack = "java.lang.RuntimeException: timeout\n\tat batch.job.SampleJob.execute" if level == "ERROR" else None
        entries.append(make_entry(log_level=level, exception_stack=stack))
    return entries


def batch_json(entries: list[LogEntry]) -> str:
    return json.dumps([e.model_dump(mode="json", by_alias=True) for e in entries])


@pytest.fixture
def to_json() -> Callable[[list[LogEntry]], str]:
    return batch_json


# ── Scripted stream transport ─────────────────────────────────────────────────


class FakeConnection:
    """One opened stream; the test pushes frames or failures into it."""

    def __init__(self, params: dict[str, str], on_open: Callable[[], None]) -> None:
        self.params = params
        self.on_open = on_open
        self._queue: asyncio.Queue[Frame | Exception | None] = asyncio.Queue()

    def send(self, data: str, event: str = "message") -> None:
        self._queue.put_nowait(Frame(event=event, data=data))

    def fail(self, exc: Exception | None = None) -> None:
        self._queue.put_nowait(exc or ConnectionError("connection reset by peer"))

    def end(self) -> None:
        self._queue.put_nowait(None)

    async def frames(self) -> AsyncIterator[Frame]:
        while True:
            item = await self._queue.get()
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item


class ScriptedTransport(StreamTransport):
    def __init__(self) -> None:
        self.connections: list[FakeConnection] = []
        self.refuse_next: Exception | None = None

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]

    async def stream(self, params: dict[str, str], on_open: Callable[[], None]) -> AsyncGenerator[Frame, None]:
        conn = FakeConnection(params, on_open)
        self.connections.append(conn)
        if self.refuse_next is not None:
            exc, self.refuse_next = self.refuse_next, None
            raise exc
        on_open()
        async for frame in conn.frames():
            yield frame


class RecordingStateCell(StateCell):
    def __init__(self) -> None:
        super().__init__()
        self.history: list[ConnectionState] = []

    def set(self, value: ConnectionState) -> bool:
        changed = super().set(value)
        if changed:
            self.history.append(value)
        return changed


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def state() -> RecordingStateCell:
    return RecordingStateCell()


# ── Server ────────────────────────────────────────────────────────────────────


@pytest.fixture
def store():
    log_handler.records.clear()
    yield log_handler
    log_handler.records.clear()


@pytest_asyncio.fixture
async def client(store) -> AsyncClient:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
