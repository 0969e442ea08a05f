from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Union

from httpu.utils.cancel import CancelScope

HeaderInput = Union[Mapping[str, str], Iterable[tuple[str, str]], None]

DEFAULT_METHOD = "GET"


def _normalize_headers(headers: HeaderInput) -> tuple[tuple[str, str], ...]:
    if headers is None:
        return ()
    if isinstance(headers, Mapping):
        return tuple((str(k), str(v)) for k, v in headers.items())
    return tuple((str(k), str(v)) for k, v in headers)


@dataclass(frozen=True)
class Request:
    """
    One HTTPU request: what to send, where, and for how long.

    host is the destination "host:port" (for SSDP "239.255.255.250:1900").
    target is written verbatim as the request-target ("*" for M-SEARCH).
    Headers are sent exactly as given and in this order; nothing (not even
    Host) is added automatically.

    scope bounds the operation. A scope with no deadline that is never
    cancelled makes HTTPUClient.do() run forever.
    """

    host: str
    method: str = DEFAULT_METHOD
    target: str = "*"
    headers: tuple[tuple[str, str], ...] = ()
    scope: CancelScope = field(default_factory=CancelScope)

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", _normalize_headers(self.headers))
        if not self.method:
            object.__setattr__(self, "method", DEFAULT_METHOD)

    @classmethod
    def create(
        cls,
        host: str,
        *,
        method: str = DEFAULT_METHOD,
        target: str = "*",
        headers: HeaderInput = None,
        timeout_s: float | None = None,
        scope: CancelScope | None = None,
    ) -> Request:
        """Build a request, deriving a deadline-bound scope when timeout_s is given."""
        if timeout_s is not None:
            scope = CancelScope.with_timeout(timeout_s, parent=scope)
        elif scope is None:
            scope = CancelScope()
        return cls(host=host, method=method, target=target, headers=headers, scope=scope)
