from __future__ import annotations


class HttpuError(Exception):
    """Base class for every failure raised by the httpu client."""


class BindError(HttpuError):
    pass


class EncodeError(HttpuError):
    pass


class ResolveError(HttpuError):
    pass


class ShortWriteError(HttpuError):
    def __init__(self, written: int, expected: int):
        super().__init__(f"httpu: wrote {written} bytes rather than full {expected} in request")
        self.written = written
        self.expected = expected


class ClientClosedError(HttpuError):
    pass


class RequestCancelled(HttpuError):
    """The caller cancelled the request while the collection window was open."""


class ParseError(HttpuError):
    # per datagram; the collector drops the packet and keeps reading
    pass
