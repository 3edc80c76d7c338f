"""Server-Sent Events endpoint for live log streaming.

Endpoint: GET /api/batch/logs/stream?executionId=&jobName=&logLevel=&keyword=&startTime=&endTime=

See ``batchlog.stream_service`` for the frame protocol.
"""

import logging
import time
from datetime import datetime

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from batchlog.schemas import FilterCriteria
from batchlog.stream_service import stream_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/batch/logs/stream", tags=["logs"])


def _parse_time(name: str, value: str | None) -> datetime | None:
    """Parse an ISO timestamp; unparseable values are dropped, not rejected."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Ignoring unparseable %s: %r", name, value)
        return None


@router.get("")
async def stream_logs(
    execution_id: str | None = Query(None, alias="executionId"),
    job_name: str | None = Query(None, alias="jobName"),
    log_level: str | None = Query(None, alias="logLevel"),
    keyword: str | None = Query(None),
    start_time: str | None = Query(None, alias="startTime"),
    end_time: str | None = Query(None, alias="endTime"),
) -> StreamingResponse:
    criteria = FilterCriteria(
        execution_id=execution_id,
        job_name=job_name,
        log_level=log_level,
        keyword=keyword,
        start_time=_parse_time("startTime", start_time),
        end_time=_parse_time("endTime", end_time),
    )
    return StreamingResponse(
        stream_service.events(criteria),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/status")
async def stream_status() -> dict[str, int]:
    return {
        "activeConnections": stream_service.active_connections,
        "timestamp": int(time.time() * 1000),
    }
