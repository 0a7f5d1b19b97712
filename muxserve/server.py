import asyncio
import socket
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Protocol

import uvicorn

from muxserve.config import DEFAULT_CONFIG, IServerConfig
from muxserve.errors import ServerStartupError
from muxserve.handler import ServeOption, make_handler
from muxserve.interface import ASGIApp
from muxserve.log import ILogger, get_logger
from muxserve.multiaddr import Multiaddr, normalize_address
from muxserve.node import INode

DEFAULT_BACKLOG = 2048


class IServer(Protocol):
    started: bool
    should_exit: bool
    force_exit: bool

    async def serve(self, sockets: list[socket.socket] | None = None) -> None: ...
    async def shutdown(self, sockets: list[socket.socket] | None = None) -> None: ...


ServerFactory = Callable[[ASGIApp, IServerConfig], IServer]


class UvicornServer(uvicorn.Server):
    "uvicorn server that leaves signal handling to the node owning it"

    def install_signal_handlers(self) -> None:
        return

    @contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


def uvicorn_server(app: ASGIApp, config: IServerConfig) -> UvicornServer:
    uvi_config = uvicorn.Config(
        app,
        log_config=None,
        access_log=config.access_log,
        timeout_graceful_shutdown=config.timeout_graceful_shutdown,
    )
    return UvicornServer(uvi_config)


class Listener:
    "A bound, listening tcp socket that is closed at most once"

    __slots__ = ("_sock", "_closed")

    def __init__(self, sock: socket.socket):
        self._sock = sock
        self._closed = False

    def __repr__(self) -> str:
        state = "closed" if self._closed else str(self.address)
        return f"{self.__class__.__name__}({state})"

    def __enter__(self) -> "Listener":
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()

    @property
    def sock(self) -> socket.socket:
        return self._sock

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def address(self) -> Multiaddr:
        "The concrete address, with any ephemeral port filled in by the os"
        return Multiaddr.from_sockaddr(self._sock.family, self._sock.getsockname())

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._sock.close()


def bind(addr: Multiaddr, backlog: int = DEFAULT_BACKLOG) -> Listener:
    family, sockaddr = addr.socket_args()
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if family == socket.AF_INET6:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
        sock.bind(sockaddr)
        sock.listen(backlog)
        sock.setblocking(False)
    except OSError:
        sock.close()
        raise
    return Listener(sock)


def _natural_exit_error(
    task: "asyncio.Task[None]", server: IServer, address: Multiaddr
) -> BaseException | None:
    if (exc := task.exception()) is not None:
        return exc
    if not server.started:
        return ServerStartupError(address)
    return None


async def _grace_wait(
    task: "asyncio.Task[None]",
    server: IServer,
    config: IServerConfig,
    logger: ILogger,
    address: Multiaddr,
) -> None:
    loop = asyncio.get_running_loop()
    deadline = (
        None if config.grace_timeout is None else loop.time() + config.grace_timeout
    )

    while True:
        timeout = config.grace_log_interval
        if deadline is not None:
            timeout = min(timeout, max(deadline - loop.time(), 0))

        done, _ = await asyncio.wait({task}, timeout=timeout)
        if done:
            break

        if deadline is not None and loop.time() >= deadline:
            logger.info("server_force_exit", address=str(address))
            server.force_exit = True
            task.cancel()
            await asyncio.wait({task})
            break

        logger.info("server_waiting", address=str(address))

    # stopped on purpose, whatever it raised on the way out is not a failure
    if not task.cancelled():
        task.exception()


async def _finish_shutdown(server: IServer, listener: Listener) -> None:
    "uvicorn skips its own shutdown when stopped during startup or cancelled"
    servers = getattr(server, "servers", ())
    if server.started and any(s.is_serving() for s in servers):
        await server.shutdown(sockets=[listener.sock])


async def _supervise(
    node: INode,
    server: IServer,
    listener: Listener,
    config: IServerConfig,
    logger: ILogger,
    address: Multiaddr,
) -> BaseException | None:
    serve_task = asyncio.create_task(
        server.serve(sockets=[listener.sock]), name=f"muxserve-{address}"
    )
    closing_task = asyncio.create_task(node.closing.wait())

    try:
        done, _ = await asyncio.wait(
            {serve_task, closing_task}, return_when=asyncio.FIRST_COMPLETED
        )
        if serve_task in done:
            return _natural_exit_error(serve_task, server, address)

        logger.info("server_terminating", address=str(address))
        server.should_exit = True
        await _grace_wait(serve_task, server, config, logger, address)
        return None
    finally:
        closing_task.cancel()
        if not serve_task.done():
            serve_task.cancel()
            await asyncio.gather(serve_task, return_exceptions=True)
        await _finish_shutdown(server, listener)


async def serve(
    node: INode,
    addr: Multiaddr,
    handler: ASGIApp,
    *,
    config: IServerConfig | None = None,
    logger: ILogger | None = None,
    server_factory: ServerFactory = uvicorn_server,
) -> None:
    """
    Serve `handler` on `addr` until the server stops or `node` starts closing.

    The concrete listening address is written to the node's config under
    `config.address_key` before any connection is accepted.

    Raises whatever stopped the server when it stopped on its own, returns
    None when it was stopped because the node is closing.
    """
    config = config or DEFAULT_CONFIG.server
    logger = logger or get_logger()

    with bind(await addr.resolve()) as listener:
        address = listener.address
        node.repo.set_config_key(config.address_key, str(address))
        logger.info("server_listening", address=str(address))

        server = server_factory(handler, config)
        with node.children.track():
            error = await _supervise(node, server, listener, config, logger, address)

    logger.info("server_terminated", address=str(address))
    if error is not None:
        raise error


async def listen_and_serve(
    node: INode,
    address: str | None = None,
    *options: ServeOption,
    config: IServerConfig | None = None,
    logger: ILogger | None = None,
    server_factory: ServerFactory = uvicorn_server,
) -> None:
    """
    Build a handler from `options` and serve it at `address`.

    ```python
    node = Node()
    await listen_and_serve(node, "/ip4/127.0.0.1/tcp/0", func_option("/", index))
    ```

    `address` is a multiaddr, `host:port` shorthands are accepted as well.
    When it is None `config.address` is used.
    """
    config = config or DEFAULT_CONFIG.server
    addr = normalize_address(address if address is not None else config.address)
    handler = make_handler(node, *options)
    await serve(
        node,
        addr,
        handler,
        config=config,
        logger=logger,
        server_factory=server_factory,
    )
