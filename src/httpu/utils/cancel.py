from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Callable


class ScopeReason(str, Enum):
    CANCELED = "canceled"
    DEADLINE_EXCEEDED = "deadline exceeded"
    ABORTED = "aborted"


class CancelScope:
    """
    Cancellation and deadline signal carried by a request.

    A scope fires once, either because cancel() was called, because its
    deadline (time.monotonic() based) passed, or because its parent fired.
    Whoever fires it first decides the reason. A scope with no deadline that
    nobody cancels never fires.
    """

    def __init__(self, deadline: float | None = None, parent: CancelScope | None = None):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: ScopeReason | None = None
        self._callbacks: list[Callable[[CancelScope], None]] = []
        self._timer: threading.Timer | None = None
        self._detach: Callable[[], None] | None = None
        self._own_deadline = deadline
        self._parent = parent

        if parent is not None:
            self._detach = parent.add_done_callback(lambda p: self._fire(p.reason))
        if deadline is not None and not self._event.is_set():
            delay = deadline - time.monotonic()
            if delay <= 0:
                self._fire(ScopeReason.DEADLINE_EXCEEDED)
            else:
                self._timer = threading.Timer(delay, self._fire, args=(ScopeReason.DEADLINE_EXCEEDED,))
                self._timer.daemon = True
                self._timer.start()

    @classmethod
    def with_timeout(cls, seconds: float, parent: CancelScope | None = None) -> CancelScope:
        return cls(deadline=time.monotonic() + seconds, parent=parent)

    @property
    def deadline(self) -> float | None:
        deadlines = [d for d in (self._own_deadline, self._parent and self._parent.deadline) if d is not None]
        return min(deadlines) if deadlines else None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> ScopeReason | None:
        return self._reason

    def cancel(self, reason: ScopeReason = ScopeReason.CANCELED) -> None:
        self._fire(reason)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the scope fires or timeout elapses. True if it fired."""
        return self._event.wait(timeout)

    def add_done_callback(self, fn: Callable[[CancelScope], None]) -> Callable[[], None]:
        """
        Run fn(scope) once the scope fires (immediately if it already has).
        Returns a function that unregisters fn.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(fn)
                return lambda: self._remove_callback(fn)
        fn(self)
        return lambda: None

    def _remove_callback(self, fn: Callable[[CancelScope], None]) -> None:
        with self._lock:
            if fn in self._callbacks:
                self._callbacks.remove(fn)

    def _fire(self, reason: ScopeReason | None) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason or ScopeReason.CANCELED
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        if self._timer is not None:
            self._timer.cancel()
        if self._detach is not None:
            self._detach()
        for fn in callbacks:
            fn(self)
