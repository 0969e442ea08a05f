from __future__ import annotations

import re
from typing import Iterable

import h11
import httpx

from httpu.transport.errors import EncodeError, ParseError

HTTP_VERSION = "HTTP/1.1"

# added by the collector to every delivered response; the value is the local
# IP the client socket is bound to
LOCAL_ADDRESS_HEADER = "httpu-local-address"

_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


def _check_target(target: str) -> None:
    if not target:
        raise EncodeError("empty request target")
    for c in target:
        if c.isspace() or ord(c) < 0x20 or ord(c) == 0x7F:
            raise EncodeError(f"invalid character {c!r} in request target")


def encode_request(method: str, target: str, headers: Iterable[tuple[str, str]]) -> bytes:
    """
    Serialize request line + headers + blank line.

    This is deliberately a subset of a full HTTP request writer: no body and
    no automatic headers, since extra fields confuse some devices.
    """
    method = method or "GET"
    if not _TOKEN_RE.match(method):
        raise EncodeError(f"invalid method {method!r}")
    _check_target(target)

    lines = [f"{method} {target} {HTTP_VERSION}\r\n"]
    for name, value in headers:
        if not _TOKEN_RE.match(name):
            raise EncodeError(f"invalid header name {name!r}")
        # header values cannot span lines on the wire
        value = value.replace("\r", " ").replace("\n", " ").strip()
        lines.append(f"{name}: {value}\r\n")
    lines.append("\r\n")

    try:
        # header text goes out as UTF-8 bytes, untouched
        return "".join(lines).encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodeError(f"request is not UTF-8 encodable: {e}") from e


def decode_response(datagram: bytes, method: str, request: httpx.Request | None = None) -> httpx.Response:
    """
    Parse one datagram as a complete HTTP response to a request of `method`.

    The status line and headers must be well formed or ParseError is raised.
    A body cut short (datagram truncated by the receive buffer, or a
    Content-Length larger than what arrived) keeps whatever bytes arrived.
    """
    conn = h11.Connection(our_role=h11.CLIENT)
    try:
        # prime the state machine so it knows how to frame the response
        conn.send(h11.Request(method=method or "GET", target="/", headers=[("Host", "httpu")]))
        conn.send(h11.EndOfMessage())
    except h11.LocalProtocolError as e:
        raise ParseError(f"cannot correlate response with method {method!r}: {e}") from e

    conn.receive_data(datagram)
    conn.receive_data(b"")

    head: h11.Response | None = None
    body = bytearray()
    while True:
        try:
            event = conn.next_event()
        except h11.RemoteProtocolError as e:
            if head is None:
                raise ParseError(f"malformed response: {e}") from e
            break
        if isinstance(event, h11.Response):
            head = event
        elif isinstance(event, h11.Data):
            body += event.data
        elif isinstance(event, h11.InformationalResponse):
            continue
        else:
            # EndOfMessage, ConnectionClosed, NEED_DATA or PAUSED
            break

    if head is None:
        raise ParseError("datagram holds no response")

    response = httpx.Response(
        status_code=head.status_code,
        headers=[(bytes(k), bytes(v)) for k, v in head.headers.raw_items()],
        stream=httpx.ByteStream(bytes(body)),
        request=request,
        extensions={
            "reason_phrase": bytes(head.reason),
            "http_version": b"HTTP/" + bytes(head.http_version),
        },
    )
    response.read()
    return response
