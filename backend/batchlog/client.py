"""One-shot batch log queries over HTTP.

These are plain request/response calls for callers that want a static
snapshot instead of a live stream. Failures are raised as ``BatchApiError``;
nothing is retried.
"""

import logging
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from batchlog.config import settings
from batchlog.schemas import LogBatch, LogStats, log_batch_adapter

logger = logging.getLogger(__name__)


class BatchApiError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BatchLogClient:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_settings(cls) -> "BatchLogClient":
        return cls(httpx.AsyncClient(base_url=settings.api_url, timeout=settings.request_timeout))

    @property
    def http(self) -> httpx.AsyncClient:
        return self._client

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Requests ──────────────────────────────────────────────────────────────

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:200] or exc.response.reason_phrase
            raise BatchApiError(f"{method} {path} failed: {detail}", exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            raise BatchApiError(f"{method} {path} failed: {exc}") from exc
        return resp

    async def _get_logs(self, path: str, params: dict[str, str] | None = None) -> LogBatch:
        resp = await self._request("GET", path, params=params)
        try:
            return log_batch_adapter.validate_python(resp.json())
        except ValueError as exc:
            raise BatchApiError(f"GET {path} returned an unexpected payload: {exc}") from exc

    # ── Log queries ───────────────────────────────────────────────────────────

    async def logs_by_execution(self, execution_id: str) -> LogBatch:
        return await self._get_logs(f"/batch/logs/execution/{quote(execution_id, safe='')}")

    async def logs_by_job(self, job_name: str) -> LogBatch:
        return await self._get_logs(f"/batch/logs/job/{quote(job_name, safe='')}")

    async def error_logs(self, execution_id: str) -> LogBatch:
        return await self._get_logs(f"/batch/logs/errors/{quote(execution_id, safe='')}")

    async def logs_by_time_range(self, start_time: datetime, end_time: datetime) -> LogBatch:
        params = {
            "startTime": start_time.isoformat(timespec="seconds"),
            "endTime": end_time.isoformat(timespec="seconds"),
        }
        return await self._get_logs("/batch/logs/time-range", params)

    async def log_stats(self, execution_id: str) -> list[LogStats]:
        path = f"/batch/logs/stats/{quote(execution_id, safe='')}"
        resp = await self._request("GET", path)
        try:
            return [LogStats.model_validate(item) for item in resp.json()]
        except (ValueError, TypeError) as exc:
            raise BatchApiError(f"GET {path} returned an unexpected payload: {exc}") from exc

    async def cleanup_old_logs(self, retention_days: int = 30) -> str:
        resp = await self._request("DELETE", "/batch/logs/cleanup", params={"retentionDays": retention_days})
        logger.info("Log cleanup (%d days): %s", retention_days, resp.text)
        return resp.text
