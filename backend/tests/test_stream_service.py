import pytest

from batchlog.log_store import BatchLogHandler
from batchlog.schemas import FilterCriteria
from batchlog.stream.frames import decode_batch, iter_frames
from batchlog.stream_service import KEEP_ALIVE, LogStreamService, is_live

pytestmark = pytest.mark.asyncio


async def _frames(chunk: str):
    async def lines():
        for line in chunk.split("\n"):
            yield line

    return [frame async for frame in iter_frames(lines())]


@pytest.fixture
def store(mixed_batch) -> BatchLogHandler:
    h = BatchLogHandler()
    h.load(mixed_batch)
    return h


async def test_is_live():
    assert is_live(FilterCriteria())
    assert is_live(FilterCriteria(execution_id="202405240830SAMPLE_JOB"))
    assert not is_live(FilterCriteria(execution_id="202405240830SAMPLE_JOB", log_level="ERROR"))
    assert not is_live(FilterCriteria(job_name="SAMPLE_JOB"))


async def test_stream_opens_with_connected_then_snapshot(store):
    service = LogStreamService(store, poll_interval=0.01)
    events = service.events(FilterCriteria(log_level="ERROR"))

    (connected,) = await _frames(await events.__anext__())
    assert connected.event == "connected"
    assert service.active_connections == 1

    (logs,) = await _frames(await events.__anext__())
    assert logs.event == "logs"
    batch = decode_batch(logs.data)
    assert len(batch) == 12
    assert {e.log_level for e in batch} == {"ERROR"}

    # Non-live filters only keep the connection alive afterwards.
    assert await events.__anext__() == KEEP_ALIVE

    await events.aclose()
    assert service.active_connections == 0


async def test_live_stream_pushes_new_snapshot(store, make_entry):
    service = LogStreamService(store, poll_interval=0.01)
    events = service.events(FilterCriteria(execution_id="202405240830SAMPLE_JOB"))
    await events.__anext__()  # connected
    (first,) = await _frames(await events.__anext__())
    assert len(decode_batch(first.data)) == 50

    # A rerun of the same job shows up on the same stream.
    rerun = make_entry(execution_id="202405250830SAMPLE_JOB", message="second run started")
    store.load([rerun])

    (second,) = await _frames(await events.__anext__())
    batch = decode_batch(second.data)
    assert len(batch) == 51
    assert batch[0] == rerun

    assert await events.__anext__() == KEEP_ALIVE
    await events.aclose()


async def test_empty_store_sends_no_snapshot():
    service = LogStreamService(BatchLogHandler(), poll_interval=0.01)
    events = service.events(FilterCriteria())
    (connected,) = await _frames(await events.__anext__())
    assert connected.event == "connected"
    assert await events.__anext__() == KEEP_ALIVE
    await events.aclose()
