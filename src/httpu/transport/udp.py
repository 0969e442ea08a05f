from __future__ import annotations

import ipaddress
import logging
import select
import socket
import threading
import time
from dataclasses import dataclass

from httpu.transport.errors import BindError, ClientClosedError, ResolveError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UdpEndpoint:
    host: str
    port: int

    @classmethod
    def parse(cls, hostport: str) -> UdpEndpoint:
        """Split "host:port" or "[v6]:port" into an endpoint."""
        host, sep, port = hostport.rpartition(":")
        if not sep or not host or not port:
            raise ResolveError(f"missing port in address {hostport!r}")
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        try:
            portnum = int(port)
        except ValueError as e:
            raise ResolveError(f"invalid port in address {hostport!r}") from e
        if not 0 < portnum <= 65535:
            raise ResolveError(f"port out of range in address {hostport!r}")
        return cls(host, portnum)


def resolve(hostport: str, family: int = socket.AF_INET) -> tuple:
    """Resolve "host:port" to a sockaddr usable with sendto() on a socket of family."""
    endpoint = UdpEndpoint.parse(hostport)
    try:
        infos = socket.getaddrinfo(endpoint.host, endpoint.port, family, socket.SOCK_DGRAM)
    except (socket.gaierror, UnicodeError, OverflowError) as e:
        raise ResolveError(f"cannot resolve {hostport!r}: {e}") from e
    if not infos:
        raise ResolveError(f"no {family!r} address for {hostport!r}")
    return infos[0][4]


class DatagramSocket:
    """
    A bound UDP socket with Go style read deadlines.

    Reads block in select() on the data socket and on a private wakeup pair,
    so set_deadline() and close() from another thread interrupt a blocked
    read_from(). Writes go straight to the socket and never wait on reads.
    """

    def __init__(self, sock: socket.socket):
        sock.setblocking(False)
        self._sock = sock
        self._wake_r, self._wake_w = socket.socketpair()
        self._wake_r.setblocking(False)
        self._wake_w.setblocking(False)
        self._lock = threading.Lock()  # guards _closed and _deadline
        self._closed = False
        self._deadline: float | None = None

    @classmethod
    def bind(cls, bind_addr: str | None = None) -> DatagramSocket:
        """Bind an ephemeral port, on bind_addr if given (an IP literal)."""
        family = socket.AF_INET
        host = ""
        if bind_addr:
            try:
                ip = ipaddress.ip_address(bind_addr)
            except ValueError as e:
                raise BindError(f"invalid listening address {bind_addr!r}") from e
            host = str(ip)
            if ip.version == 6:
                family = socket.AF_INET6

        sock = socket.socket(family, socket.SOCK_DGRAM)
        try:
            sock.bind((host, 0))
        except OSError as e:
            sock.close()
            raise BindError(f"cannot bind {host or '*'}:0: {e}") from e
        logger.debug("bound udp socket on %s", sock.getsockname())
        return cls(sock)

    @property
    def family(self) -> int:
        return self._sock.family

    @property
    def closed(self) -> bool:
        return self._closed

    def local_address(self) -> tuple:
        if self._closed:
            raise ClientClosedError("socket is closed")
        return self._sock.getsockname()

    def set_deadline(self, deadline: float | None) -> None:
        """
        Set the read deadline (time.monotonic() based, None for no deadline).
        A deadline in the past makes pending and future reads time out.
        """
        with self._lock:
            if self._closed:
                return
            self._deadline = deadline
            self._wake()

    def _wake(self) -> None:
        try:
            self._wake_w.send(b"\0")
        except BlockingIOError:
            # a wakeup is already pending
            pass

    def write_to(self, data: bytes, addr: tuple) -> int:
        if self._closed:
            raise ClientClosedError("write on closed socket")
        try:
            return self._sock.sendto(data, addr)
        except OSError:
            if self._closed:
                raise ClientClosedError("socket closed during write") from None
            raise

    def read_from(self, bufsize: int) -> tuple[bytes, tuple]:
        """
        Receive one datagram. Raises TimeoutError once the deadline passes,
        ClientClosedError if the socket is (or gets) closed.
        """
        while True:
            if self._closed:
                raise ClientClosedError("read on closed socket")
            timeout = None
            if self._deadline is not None:
                timeout = self._deadline - time.monotonic()
                if timeout <= 0:
                    raise TimeoutError("read deadline exceeded")
            try:
                readable, _, _ = select.select([self._sock, self._wake_r], [], [], timeout)
            except (OSError, ValueError):
                if self._closed:
                    raise ClientClosedError("socket closed during read") from None
                raise
            if self._wake_r in readable:
                self._drain_wakeups()
                continue
            if self._sock in readable:
                try:
                    return self._sock.recvfrom(bufsize)
                except OSError:
                    if self._closed:
                        raise ClientClosedError("socket closed during read") from None
                    raise
            # select timed out: loop around to check the deadline

    def _drain_wakeups(self) -> None:
        try:
            while self._wake_r.recv(64):
                pass
        except OSError:
            # nothing left to drain, or closed underneath us
            pass

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._wake()
        self._sock.close()
        self._wake_w.close()
        self._wake_r.close()
