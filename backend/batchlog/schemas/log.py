"""Wire models for batch job logs.

The batch API speaks camelCase JSON; Python code uses snake_case attributes.
Both spellings are accepted on input, ``by_alias=True`` renders camelCase.
"""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

ALL_LEVELS = "ALL"
LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class LogEntry(BaseModel):
    model_config = _CAMEL

    id: int
    execution_id: str
    job_name: str
    step_name: str | None = None
    log_level: str
    message: str
    exception_stack: str | None = None
    log_time: datetime
    logger_name: str
    thread_name: str
    additional_info: str | None = None
    created_at: datetime


class LogStats(BaseModel):
    model_config = _CAMEL

    level: str
    count: int


class FilterCriteria(BaseModel):
    """Immutable description of the active log filter.

    A new instance fully supersedes the previous one; there is no merging.
    """

    model_config = _CAMEL

    start_time: datetime | None = None
    end_time: datetime | None = None
    log_level: str | None = None  # None or "ALL" means unrestricted
    keyword: str | None = None
    execution_id: str | None = None
    job_name: str | None = None

    @field_validator("log_level", "keyword", "execution_id", "job_name", mode="before")
    @classmethod
    def _blank_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in type(self).model_fields)

    @property
    def restricts_level(self) -> bool:
        return self.log_level is not None and self.log_level != ALL_LEVELS

    def to_query_params(self) -> dict[str, str]:
        """Query parameters for the stream endpoint.

        Only present fields are sent. An execution id takes precedence over the
        job name, and the "ALL" level is the same as no level at all.
        """
        params: dict[str, str] = {}
        if self.execution_id:
            params["executionId"] = self.execution_id
        elif self.job_name:
            params["jobName"] = self.job_name
        if self.restricts_level:
            params["logLevel"] = self.log_level  # type: ignore[assignment]
        if self.keyword:
            params["keyword"] = self.keyword
        if self.start_time:
            params["startTime"] = self.start_time.isoformat(timespec="seconds")
        if self.end_time:
            params["endTime"] = self.end_time.isoformat(timespec="seconds")
        return params

    def encode(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def decode(cls, raw: str | None) -> "FilterCriteria":
        """Parse an encoded filter. Anything undecodable means "no filter"."""
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                return cls()
            return cls.model_validate(data)
        except (json.JSONDecodeError, ValidationError):
            return cls()


LogBatch = list[LogEntry]

log_batch_adapter: TypeAdapter[LogBatch] = TypeAdapter(LogBatch)
