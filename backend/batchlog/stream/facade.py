"""Public entry point for watching batch job logs.

Usage::

    async with LogStreamFacade.from_settings() as logs:
        buffer = LogBuffer()
        logs.follow(buffer)
        logs.connect(FilterCriteria(execution_id="202405240830GET_EMPLOYEE_JOB"))
        ...
        buffer.set_filter(FilterCriteria(log_level="ERROR"))
        page = buffer.view()
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import datetime
from types import TracebackType

import httpx

from batchlog.client import BatchLogClient
from batchlog.log_buffer import LogBuffer
from batchlog.schemas import FilterCriteria, LogBatch, LogStats
from batchlog.stream.channel import BatchChannel
from batchlog.stream.manager import StreamConnectionManager
from batchlog.stream.state import ConnectionState, StateCell
from batchlog.stream.transport import HttpSseTransport, StreamTransport

STREAM_PATH = "/batch/logs/stream"


class LogStreamFacade:
    def __init__(
        self,
        transport: StreamTransport,
        client: BatchLogClient,
        reconnect_delay: float | None = None,
    ) -> None:
        self._manager = StreamConnectionManager(transport, reconnect_delay=reconnect_delay)
        self._client = client
        self._followers: dict[asyncio.Task[None], asyncio.Queue[LogBatch]] = {}

    @classmethod
    def from_settings(cls, http: httpx.AsyncClient | None = None) -> LogStreamFacade:
        client = BatchLogClient(http) if http is not None else BatchLogClient.from_settings()
        return cls(HttpSseTransport(client.http, STREAM_PATH), client)

    # ── Live stream ───────────────────────────────────────────────────────────

    @property
    def state(self) -> StateCell:
        return self._manager.state

    @property
    def connection_state(self) -> ConnectionState:
        return self._manager.state.value

    @property
    def batches(self) -> BatchChannel:
        return self._manager.batches

    def connect(self, criteria: FilterCriteria | None = None) -> None:
        self._manager.connect(criteria or FilterCriteria())

    def disconnect(self) -> None:
        self._manager.disconnect()

    def follow(self, buffer: LogBuffer) -> asyncio.Task[None]:
        """Feed every received batch into *buffer* until the facade closes."""
        queue = self.batches.subscribe()
        task = asyncio.get_running_loop().create_task(buffer.consume(queue))
        self._followers[task] = queue
        return task

    # ── One-shot queries ──────────────────────────────────────────────────────

    async def logs_by_execution(self, execution_id: str) -> LogBatch:
        return await self._client.logs_by_execution(execution_id)

    async def logs_by_job(self, job_name: str) -> LogBatch:
        return await self._client.logs_by_job(job_name)

    async def logs_by_time_range(self, start_time: datetime, end_time: datetime) -> LogBatch:
        return await self._client.logs_by_time_range(start_time, end_time)

    async def error_logs(self, execution_id: str) -> LogBatch:
        return await self._client.error_logs(execution_id)

    async def log_stats(self, execution_id: str) -> list[LogStats]:
        return await self._client.log_stats(execution_id)

    async def cleanup_old_logs(self, retention_days: int = 30) -> str:
        return await self._client.cleanup_old_logs(retention_days)

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def aclose(self) -> None:
        self._manager.disconnect()
        for task, queue in self._followers.items():
            task.cancel()
            self.batches.unsubscribe(queue)
        for task in self._followers:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._followers.clear()
        await self._client.aclose()

    async def __aenter__(self) -> LogStreamFacade:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
