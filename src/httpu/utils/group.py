from __future__ import annotations

import logging
import threading
from typing import Callable

from httpu.utils.cancel import CancelScope, ScopeReason

logger = logging.getLogger(__name__)


class TaskGroup:
    """
    Runs callables on their own threads, waits for all of them and re-raises
    the first exception any of them raised.

    When a scope is given, the first failure aborts it so that the remaining
    tasks (which are expected to watch the scope) wind down.
    """

    def __init__(self, scope: CancelScope | None = None, name: str = "httpu"):
        self._scope = scope
        self._name = name
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._first_exc: BaseException | None = None

    def go(self, fn: Callable[[], None], name: str | None = None) -> None:
        t = threading.Thread(
            target=self._run,
            args=(fn,),
            name=f"{self._name}-{name or len(self._threads)}",
            daemon=True,
        )
        self._threads.append(t)
        t.start()

    def _run(self, fn: Callable[[], None]) -> None:
        try:
            fn()
        except BaseException as e:
            with self._lock:
                if self._first_exc is None:
                    self._first_exc = e
            logger.debug("task %s failed: %r", threading.current_thread().name, e)
            if self._scope is not None:
                self._scope.cancel(ScopeReason.ABORTED)

    def wait(self) -> None:
        for t in self._threads:
            t.join()
        if self._first_exc is not None:
            raise self._first_exc
