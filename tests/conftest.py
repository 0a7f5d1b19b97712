"""
Shared pytest fixtures for tests.
"""

import asyncio
import socket
from typing import Any, Callable, Generator

import pytest

from muxserve import Node
from muxserve.config import ServerConfig
from muxserve.interface import ASGIApp
from muxserve.vendors import TestClient


class RecordingLogger:
    def __init__(self) -> None:
        self.records: list[tuple[str, dict[str, Any]]] = []

    def info(self, event: str, **kw: Any) -> None:
        self.records.append((event, kw))

    @property
    def events(self) -> list[str]:
        return [event for event, _ in self.records]


class FakeServer:
    """
    Stands in for uvicorn.

    - `fail_with`: raised as soon as serving starts
    - `linger`: seconds it keeps running after being asked to exit,
      `None` means it never exits on its own
    - `raise_on_exit`: raised once it does exit after being asked to
    """

    def __init__(
        self,
        app: ASGIApp,
        config: ServerConfig,
        *,
        fail_with: BaseException | None = None,
        linger: float | None = 0,
        raise_on_exit: BaseException | None = None,
        start: bool = True,
    ):
        self.app = app
        self.config = config
        self.fail_with = fail_with
        self.linger = linger
        self.raise_on_exit = raise_on_exit
        self.start = start
        self.should_exit = False
        self.force_exit = False
        self.started = False
        self.sockets: list[socket.socket] = []
        self.serving = asyncio.Event()

    async def serve(self, sockets: list[socket.socket] | None = None) -> None:
        self.sockets = list(sockets or [])
        if not self.start:
            return
        self.started = True
        self.serving.set()
        if self.fail_with is not None:
            raise self.fail_with

        while not self.should_exit:
            await asyncio.sleep(0.005)

        if self.linger is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(self.linger)

        if self.raise_on_exit is not None:
            raise self.raise_on_exit

    async def shutdown(self, sockets: list[socket.socket] | None = None) -> None:
        self.should_exit = True


@pytest.fixture
def node() -> Node:
    return Node()


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def fake_servers() -> Callable[..., Callable[[ASGIApp, ServerConfig], FakeServer]]:
    """
    Factory fixture returning a `server_factory` for `serve`, servers
    it builds are collected on the factory's `created` list.
    """

    def _factory(**kwargs: Any) -> Callable[[ASGIApp, ServerConfig], FakeServer]:
        created: list[FakeServer] = []

        def server_factory(app: ASGIApp, config: ServerConfig) -> FakeServer:
            server = FakeServer(app, config, **kwargs)
            created.append(server)
            return server

        server_factory.created = created  # type: ignore
        return server_factory

    return _factory


@pytest.fixture
def test_client() -> Generator[Callable[[ASGIApp], TestClient], None, None]:
    """Factory fixture returning a Starlette TestClient for a given ASGI app."""

    clients: list[TestClient] = []

    def _factory(app: ASGIApp, **kwargs: Any) -> TestClient:
        client = TestClient(app, **kwargs)
        clients.append(client)
        return client

    try:
        yield _factory
    finally:
        for c in clients:
            c.close()
