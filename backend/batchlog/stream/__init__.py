from batchlog.stream.channel import BatchChannel
from batchlog.stream.facade import LogStreamFacade
from batchlog.stream.frames import Frame, decode_batch, iter_frames
from batchlog.stream.manager import StreamConnectionManager, StreamSession
from batchlog.stream.state import ConnectionState, StateCell
from batchlog.stream.transport import HttpSseTransport, StreamClosed, StreamTransport

__all__ = [
    "BatchChannel",
    "ConnectionState",
    "Frame",
    "HttpSseTransport",
    "LogStreamFacade",
    "StateCell",
    "StreamClosed",
    "StreamConnectionManager",
    "StreamSession",
    "StreamTransport",
    "decode_batch",
    "iter_frames",
]
