"""REST endpoints for one-shot batch log queries."""

from datetime import datetime

from fastapi import APIRouter, Query
from fastapi.responses import PlainTextResponse

from batchlog.log_store import log_handler
from batchlog.schemas import LogEntry, LogStats

router = APIRouter(prefix="/batch/logs", tags=["logs"])


@router.get("/execution/{execution_id}", response_model=list[LogEntry], response_model_by_alias=True)
async def logs_by_execution(execution_id: str) -> list[LogEntry]:
    return log_handler.by_execution(execution_id)


@router.get("/job/{job_name}", response_model=list[LogEntry], response_model_by_alias=True)
async def logs_by_job(job_name: str) -> list[LogEntry]:
    return log_handler.by_job(job_name)


@router.get("/errors/{execution_id}", response_model=list[LogEntry], response_model_by_alias=True)
async def error_logs(execution_id: str) -> list[LogEntry]:
    return log_handler.errors(execution_id)


@router.get("/time-range", response_model=list[LogEntry], response_model_by_alias=True)
async def logs_by_time_range(
    start_time: datetime = Query(..., alias="startTime"),
    end_time: datetime = Query(..., alias="endTime"),
) -> list[LogEntry]:
    """Entries logged between *startTime* and *endTime* (inclusive, newest first)."""
    return log_handler.between(start_time, end_time)


@router.get("/stats/{execution_id}", response_model=list[LogStats])
async def log_stats(execution_id: str) -> list[LogStats]:
    """Per-level entry counts for one execution."""
    return log_handler.stats(execution_id)


@router.delete("/cleanup", response_class=PlainTextResponse)
async def cleanup_old_logs(retention_days: int = Query(30, alias="retentionDays", ge=0)) -> str:
    removed = log_handler.cleanup(retention_days)
    return f"Removed {removed} log entries older than {retention_days} days"
