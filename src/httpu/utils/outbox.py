from __future__ import annotations

import queue
import threading
from typing import Generic, Iterator, TypeVar

T = TypeVar("T")

_CLOSED = object()


class QueueClosed(Exception):
    pass


class ResponseQueue(Generic[T]):
    """
    Unbounded hand-off queue between the collector and the consumer.

    put() never blocks, so a slow consumer cannot stall the read loop; the
    price is that undelivered responses pile up in memory until consumed.
    After close() puts raise QueueClosed, and get() drains what is left
    before raising QueueClosed too.
    """

    def __init__(self) -> None:
        self._q: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, item: T) -> None:
        with self._lock:
            if self._closed:
                raise QueueClosed("put on closed queue")
            self._q.put_nowait(item)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._q.put_nowait(_CLOSED)

    def get(self, timeout: float | None = None) -> T:
        """Raises queue.Empty on timeout, QueueClosed once closed and drained."""
        item = self._q.get(timeout=timeout)
        if item is _CLOSED:
            # leave the marker for any other consumer
            self._q.put_nowait(_CLOSED)
            raise QueueClosed("queue closed")
        return item

    def get_nowait(self) -> T:
        item = self._q.get_nowait()
        if item is _CLOSED:
            self._q.put_nowait(_CLOSED)
            raise QueueClosed("queue closed")
        return item

    def drain(self) -> list[T]:
        """Everything currently queued, without blocking."""
        items: list[T] = []
        while True:
            try:
                items.append(self.get_nowait())
            except (queue.Empty, QueueClosed):
                return items

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.get()
            except QueueClosed:
                return
