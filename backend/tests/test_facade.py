import asyncio

import httpx
import pytest

from batchlog.client import BatchApiError, BatchLogClient
from batchlog.config import settings
from batchlog.log_buffer import LogBuffer
from batchlog.schemas import FilterCriteria
from batchlog.stream import ConnectionState, HttpSseTransport, LogStreamFacade

pytestmark = pytest.mark.asyncio


async def settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


def _rest(handler) -> BatchLogClient:
    return BatchLogClient(httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://batch.test/api"))


async def test_stream_feeds_followed_buffer(transport, mixed_batch, to_json):
    facade = LogStreamFacade(transport, _rest(lambda r: httpx.Response(404)), reconnect_delay=0.01)
    buffer = LogBuffer(page_size=10)
    async with facade:
        facade.follow(buffer)
        facade.connect(FilterCriteria(job_name="SAMPLE_JOB"))
        await settle()
        assert facade.connection_state is ConnectionState.CONNECTED

        transport.last.send(to_json(mixed_batch), event="logs")
        await settle()
        assert len(buffer) == 50

        buffer.set_filter(FilterCriteria(log_level="ERROR"))
        buffer.sort_by("logTime")
        assert [e.log_time for e in buffer.view().entries] == sorted(
            e.log_time for e in mixed_batch if e.log_level == "ERROR"
        )[:10]

        # A bad frame leaves the view untouched.
        before = buffer.view()
        transport.last.send("{not json")
        await settle()
        assert buffer.view() == before

    assert facade.connection_state is ConnectionState.DISCONNECTED
    assert facade.batches.subscriber_count == 0


async def test_state_subscription_sees_latest(transport):
    facade = LogStreamFacade(transport, _rest(lambda r: httpx.Response(404)))
    watcher = facade.state.subscribe()
    assert watcher.get_nowait() is ConnectionState.DISCONNECTED

    facade.connect()
    await settle()
    assert watcher.get_nowait() is ConnectionState.CONNECTED
    await facade.aclose()


async def test_one_shot_queries_delegate(transport, make_entry, to_json):
    entries = [make_entry()]
    facade = LogStreamFacade(transport, _rest(lambda r: httpx.Response(200, text=to_json(entries))))
    assert await facade.logs_by_job("SAMPLE_JOB") == entries
    await facade.aclose()


async def test_one_shot_failure_surfaces_error(transport):
    facade = LogStreamFacade(transport, _rest(lambda r: httpx.Response(502, text="bad gateway")))
    with pytest.raises(BatchApiError):
        await facade.logs_by_execution("exec-001")
    assert facade.connection_state is ConnectionState.DISCONNECTED
    await facade.aclose()


async def test_from_settings_wires_http_transport():
    facade = LogStreamFacade.from_settings(httpx.AsyncClient(base_url="http://batch.test/api"))
    assert isinstance(facade._manager._transport, HttpSseTransport)
    await facade.aclose()


async def test_from_settings_builds_client_from_configured_url():
    facade = LogStreamFacade.from_settings()
    http = facade._client.http
    assert str(http.base_url).rstrip("/") == settings.api_url
    assert facade._manager._transport._client is http
    await facade.aclose()
