from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, Callable

import httpx

from batchlog.stream.frames import Frame, iter_frames


class StreamClosed(Exception):
    """The server ended the event stream."""


class StreamTransport(ABC):
    """Opens one push connection and yields its frames.

    Implementations call *on_open* once the connection is established, then
    yield frames in delivery order. Any failure (open refused, dropped
    connection) is raised out of the iterator.
    """

    @abstractmethod
    def stream(self, params: dict[str, str], on_open: Callable[[], None]) -> AsyncGenerator[Frame, None]:
        ...  # pragma: no cover


class HttpSseTransport(StreamTransport):
    """Server-Sent Events over an httpx client."""

    def __init__(self, client: httpx.AsyncClient, url: str) -> None:
        self._client = client
        self._url = url

    async def stream(self, params: dict[str, str], on_open: Callable[[], None]) -> AsyncGenerator[Frame, None]:
        headers = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
        # Read timeout disabled: the stream may stay quiet indefinitely.
        timeout = httpx.Timeout(self._client.timeout.connect, read=None)
        async with self._client.stream("GET", self._url, params=params, headers=headers, timeout=timeout) as response:
            response.raise_for_status()
            on_open()
            async for frame in iter_frames(response.aiter_lines()):
                yield frame
