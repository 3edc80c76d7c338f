"""Server-Sent Events framing and log batch decoding.

An event stream is a sequence of ``field: value`` lines; a blank line
dispatches the accumulated event. Multiple ``data`` lines are joined with
newlines, lines starting with ``:`` are comments.
"""

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass

from pydantic import ValidationError

from batchlog.schemas import LogBatch, log_batch_adapter

logger = logging.getLogger(__name__)

# Event names
DEFAULT_EVENT = "message"
LOGS_EVENT = "logs"
CONNECTED_EVENT = "connected"

BATCH_EVENTS = frozenset({DEFAULT_EVENT, LOGS_EVENT})


@dataclass(frozen=True)
class Frame:
    event: str = DEFAULT_EVENT
    data: str = ""
    id: str | None = None


async def iter_frames(lines: AsyncIterable[str]) -> AsyncIterator[Frame]:
    """Assemble decoded text lines into frames."""
    event = ""
    data: list[str] = []
    last_id: str | None = None

    async for raw in lines:
        line = raw.rstrip("\r\n")
        if not line:
            if data:
                yield Frame(event=event or DEFAULT_EVENT, data="\n".join(data), id=last_id)
            event, data = "", []
            continue
        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        match field:
            case "event":
                event = value
            case "data":
                data.append(value)
            case "id":
                last_id = value
            case _:
                pass  # "retry" and unknown fields

    if data:
        yield Frame(event=event or DEFAULT_EVENT, data="\n".join(data), id=last_id)


def format_frame(data: str, event: str | None = None) -> str:
    """Render one frame in event-stream wire format."""
    head = f"event: {event}\n" if event else ""
    body = "".join(f"data: {line}\n" for line in data.split("\n"))
    return f"{head}{body}\n"


def decode_batch(payload: str) -> LogBatch | None:
    """Decode a frame payload into log entries; None when it is not a valid batch."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("Discarding frame: payload is not JSON (%.60r)", payload)
        return None
    if not isinstance(data, list):
        logger.debug("Discarding frame: expected a JSON array, got %s", type(data).__name__)
        return None
    try:
        return log_batch_adapter.validate_python(data)
    except ValidationError as exc:
        logger.debug("Discarding frame: %d invalid log entries", exc.error_count())
        return None
