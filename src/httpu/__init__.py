from httpu.client import HTTPUClient, ReceiveStats
from httpu.multi import MultiClient
from httpu.request import Request
from httpu.transport.errors import (
    BindError,
    ClientClosedError,
    EncodeError,
    HttpuError,
    ParseError,
    RequestCancelled,
    ResolveError,
    ShortWriteError,
)
from httpu.transport.framing import LOCAL_ADDRESS_HEADER
from httpu.utils.cancel import CancelScope, ScopeReason
from httpu.utils.outbox import QueueClosed, ResponseQueue

__all__ = [
    "BindError",
    "CancelScope",
    "ClientClosedError",
    "EncodeError",
    "HTTPUClient",
    "HttpuError",
    "LOCAL_ADDRESS_HEADER",
    "MultiClient",
    "ParseError",
    "QueueClosed",
    "ReceiveStats",
    "Request",
    "RequestCancelled",
    "ResolveError",
    "ResponseQueue",
    "ScopeReason",
    "ShortWriteError",
]
