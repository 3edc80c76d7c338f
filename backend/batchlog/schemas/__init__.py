from batchlog.schemas.log import (
    ALL_LEVELS,
    LOG_LEVELS,
    FilterCriteria,
    LogBatch,
    LogEntry,
    LogStats,
    log_batch_adapter,
)

__all__ = [
    "ALL_LEVELS",
    "LOG_LEVELS",
    "FilterCriteria",
    "LogBatch",
    "LogEntry",
    "LogStats",
    "log_batch_adapter",
]
