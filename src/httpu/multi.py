from __future__ import annotations

import threading
from typing import Iterable

import httpx

from httpu.client import HTTPUClient
from httpu.config.settings import Settings
from httpu.request import Request
from httpu.transport.errors import HttpuError
from httpu.utils.group import TaskGroup
from httpu.utils.outbox import ResponseQueue


class MultiClient:
    """
    Runs the same request on several HTTPUClients at once, usually one per
    local interface address, with every client delivering into one shared
    queue. Each response's local address header tells which client saw it.
    """

    def __init__(self, bind_addrs: Iterable[str], *, settings: Settings | None = None):
        self._receiver: ResponseQueue[httpx.Response] = ResponseQueue()
        self._lock = threading.Lock()
        self._clients: list[HTTPUClient] = []
        try:
            for addr in bind_addrs:
                self._clients.append(HTTPUClient.open(addr, settings=settings, receiver=self._receiver))
        except HttpuError:
            self.close()
            raise
        if not self._clients:
            raise ValueError("MultiClient needs at least one bind address")

    @classmethod
    def open(cls, bind_addrs: Iterable[str], *, settings: Settings | None = None) -> MultiClient:
        return cls(bind_addrs, settings=settings)

    @property
    def clients(self) -> list[HTTPUClient]:
        return list(self._clients)

    def receive_queue(self) -> ResponseQueue[httpx.Response]:
        return self._receiver

    def __enter__(self) -> MultiClient:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def do(self, request: Request, interval: float) -> None:
        self.do_with_context(request, interval)

    def do_with_context(self, request: Request, interval: float) -> None:
        """Same contract as HTTPUClient.do_with_context, across all clients."""
        with self._lock:
            tasks = TaskGroup(name="httpu-multi")
            for i, client in enumerate(self._clients):
                tasks.go(lambda c=client: c.do_with_context(request, interval), name=f"client{i}")
            tasks.wait()

    def close(self) -> None:
        for c in self._clients:
            c.close()
        self._receiver.close()
