from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

import httpx

from httpu.config.settings import Settings, get_settings
from httpu.request import Request
from httpu.transport.errors import ClientClosedError, ParseError, RequestCancelled, ResolveError, ShortWriteError
from httpu.transport.framing import LOCAL_ADDRESS_HEADER, decode_response, encode_request
from httpu.transport.udp import DatagramSocket, resolve
from httpu.utils.cancel import CancelScope, ScopeReason
from httpu.utils.group import TaskGroup
from httpu.utils.outbox import QueueClosed, ResponseQueue

logger = logging.getLogger(__name__)

# read errors worth a short pause and another read rather than a failure
TRANSIENT_READ_ERRORS = (BlockingIOError, InterruptedError, ConnectionResetError, ConnectionRefusedError)


@dataclass
class ReceiveStats:
    sends: int = 0
    delivered: int = 0
    dropped: int = 0


class HTTPUClient:
    """
    HTTP over UDP client, typically used for HTTPMU and in particular SSDP.

    One bound socket serves both the periodic sender and the response
    collector. Responses are handed out through receive_queue() as
    httpx.Response objects carrying LOCAL_ADDRESS_HEADER.

    Only one do()/do_with_context() call at a time per client.
    """

    def __init__(
        self,
        bind_addr: str | None = None,
        *,
        settings: Settings | None = None,
        receiver: ResponseQueue[httpx.Response] | None = None,
    ):
        self._settings = settings or get_settings()
        if bind_addr is None:
            bind_addr = self._settings.bind_addr
        self._conn_lock = threading.Lock()  # protects the open/closed lifecycle
        self._conn = DatagramSocket.bind(bind_addr or None)
        # a queue handed in (shared by a MultiClient) belongs to whoever made it
        self._owns_receiver = receiver is None
        self._receiver: ResponseQueue[httpx.Response] = receiver if receiver is not None else ResponseQueue()
        self._closed = False
        self.stats = ReceiveStats()
        logger.info("httpu client bound to %s", self._conn.local_address())

    @classmethod
    def open(
        cls,
        bind_addr: str | None = None,
        *,
        settings: Settings | None = None,
        receiver: ResponseQueue[httpx.Response] | None = None,
    ) -> HTTPUClient:
        return cls(bind_addr, settings=settings, receiver=receiver)

    def __enter__(self) -> HTTPUClient:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def local_address(self) -> tuple:
        return self._conn.local_address()

    def receive_queue(self) -> ResponseQueue[httpx.Response]:
        return self._receiver

    receive_chan = receive_queue

    def close(self) -> None:
        """Shut the client down. It is of no further use afterwards."""
        with self._conn_lock:
            if self._closed:
                return
            self._closed = True
            if self._owns_receiver:
                self._receiver.close()
            self._conn.close()
        logger.info("httpu client closed")

    def do(self, request: Request, interval: float) -> None:
        """
        Send `request` every `interval` seconds and collect responses until
        the request's scope fires.

        If the scope has no deadline and is never cancelled this call NEVER
        RETURNS. Set a deadline (Request.create(..., timeout_s=...)) or
        cancel the scope from elsewhere.
        """
        self.do_with_context(request, interval)

    def do_with_context(self, request: Request, interval: float) -> None:
        """
        Run one discovery operation bounded by request.scope.

        Deadline expiry ends the window normally. Raises RequestCancelled if
        the caller cancelled the scope, and the first fatal error of the
        sender or the collector otherwise (EncodeError, ResolveError,
        ShortWriteError, ClientClosedError, OSError). Responses already
        queued stay queued either way.
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        with self._conn_lock:
            if self._closed:
                raise ClientClosedError("client is closed")
            self._conn.set_deadline(None)

        self.stats = ReceiveStats()
        op = CancelScope(parent=request.scope)
        tasks = TaskGroup(op, name="httpu")
        tasks.go(lambda: self._watch(op), name="watch")
        tasks.go(lambda: self._run_send(request, interval, op), name="send")
        tasks.go(lambda: self._run_receive(request, op), name="receive")
        try:
            tasks.wait()
        finally:
            op.cancel(ScopeReason.ABORTED)

    def _watch(self, op: CancelScope) -> None:
        op.wait()
        # a deadline in the past unblocks a read stuck in the collector
        self._conn.set_deadline(time.monotonic() - 1.0)

    def _run_send(self, request: Request, interval: float, op: CancelScope) -> None:
        next_tick = time.monotonic() + interval
        while True:
            if op.wait(max(0.0, next_tick - time.monotonic())):
                return
            self._send(request)
            next_tick += interval
            now = time.monotonic()
            if next_tick <= now:
                # drop missed ticks instead of bursting
                next_tick += ((now - next_tick) // interval + 1) * interval

    def _send(self, request: Request) -> None:
        payload = encode_request(request.method, request.target, request.headers)
        dest = resolve(request.host, self._conn.family)
        n = self._conn.write_to(payload, dest)
        if n < len(payload):
            raise ShortWriteError(n, len(payload))
        self.stats.sends += 1
        logger.debug("sent %d byte %s request to %s", n, request.method, request.host)

    def _run_receive(self, request: Request, op: CancelScope) -> None:
        bufsize = self._settings.recv_buf
        backoff_s = self._settings.transient_backoff_s
        origin = _origin_request(request)
        while True:
            try:
                data, addr = self._conn.read_from(bufsize)
            except TimeoutError:
                if op.reason is ScopeReason.CANCELED:
                    raise RequestCancelled("request cancelled during collection window") from None
                return
            except TRANSIENT_READ_ERRORS as e:
                logger.debug("transient read error: %r", e)
                # avoid pegging the CPU on a persistent error until the deadline
                time.sleep(backoff_s)
                continue

            try:
                response = decode_response(data, request.method, origin)
            except ParseError as e:
                self.stats.dropped += 1
                logger.debug("httpu: error while parsing response from %s: %s", addr, e)
                continue

            local_ip = self._conn.local_address()[0]
            response.headers[LOCAL_ADDRESS_HEADER] = local_ip
            try:
                self._receiver.put(response)
            except QueueClosed:
                raise ClientClosedError("client closed during collection window") from None
            self.stats.delivered += 1


def _origin_request(request: Request) -> httpx.Request:
    path = request.target if request.target.startswith("/") else "/"
    try:
        return httpx.Request(request.method, f"http://{request.host}{path}")
    except httpx.InvalidURL as e:
        raise ResolveError(f"invalid destination {request.host!r}: {e}") from e
