from inspect import iscoroutinefunction
from typing import Any, Awaitable, Callable, Iterable

from starlette.concurrency import run_in_threadpool

from muxserve.constant.resp import (
    NOT_FOUND_RESP,
    InternalErrorResp,
    method_not_allowed_resp,
    moved_permanently_resp,
)
from muxserve.errors import DuplicatedPatternError, InvalidPatternError
from muxserve.interface import ASGIApp, IReceive, IScope, ISend, Message
from muxserve.vendors import Request, Response

RequestHandler = Callable[[Request], Awaitable[Response] | Response]


def request_response(
    func: RequestHandler, methods: Iterable[str] | None = None
) -> ASGIApp:
    "Adapt a `Request -> Response` function, sync or async, into an asgi app"
    allowed = frozenset(m.upper() for m in methods) if methods else None
    if allowed and "GET" in allowed:
        allowed |= {"HEAD"}

    async def app(scope: IScope, receive: IReceive, send: ISend) -> None:
        request = Request(scope, receive)
        if allowed is not None and request.method not in allowed:
            response = method_not_allowed_resp(allowed)
        elif iscoroutinefunction(func):
            response = await func(request)
        else:
            response = await run_in_threadpool(func, request)
        await response(scope, receive, send)  # type: ignore

    app.__name__ = getattr(func, "__name__", app.__name__)
    return app


def route_path(scope: IScope) -> str:
    """
    The request path relative to `root_path`.

    `path` always carries the full request path, mounts only extend
    `root_path`, the same contract starlette's routing follows.
    """
    path: str = scope["path"]
    root_path: str = scope.get("root_path", "")
    if not root_path or not path.startswith(root_path):
        return path
    if path == root_path:
        return ""
    if path[len(root_path)] == "/":
        return path[len(root_path) :]
    return path


class PrefixMount:
    "Dispatch to `app` with `prefix` appended to the scope's `root_path`"

    __slots__ = ("prefix", "app")

    def __init__(self, prefix: str, app: ASGIApp):
        self.prefix = prefix.rstrip("/")
        self.app = app

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.prefix!r}, {self.app!r})"

    async def __call__(self, scope: IScope, receive: IReceive, send: ISend) -> None:
        child_scope = dict(scope)
        child_scope["root_path"] = scope.get("root_path", "") + self.prefix
        await self.app(child_scope, receive, send)


class ServeMux:
    """
    Path based request multiplexer.

    A pattern ending with `/` owns its whole subtree, any other pattern
    matches its exact path only. The longest matching pattern wins.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._entries: dict[str, ASGIApp] = {}
        self._subtrees: list[str] = []

    def __repr__(self) -> str:
        name = f"{self.name!r}, " if self.name else ""
        return f"{self.__class__.__name__}({name}patterns={self.patterns})"

    def __contains__(self, pattern: str) -> bool:
        return pattern in self._entries

    @property
    def patterns(self) -> list[str]:
        return list(self._entries)

    def handle(self, pattern: str, app: ASGIApp) -> None:
        if not pattern.startswith("/"):
            raise InvalidPatternError(pattern)
        if (current := self._entries.get(pattern)) is not None:
            raise DuplicatedPatternError(pattern, current)

        self._entries[pattern] = app
        if pattern.endswith("/"):
            self._subtrees.append(pattern)
            self._subtrees.sort(key=len, reverse=True)

    def handle_func(
        self,
        pattern: str,
        func: RequestHandler,
        methods: Iterable[str] | None = None,
    ) -> None:
        self.handle(pattern, request_response(func, methods))

    def mount(self, prefix: str, app: ASGIApp) -> None:
        "Serve `app` under `prefix`, `app` sees paths relative to it"
        pattern = prefix.rstrip("/") + "/"
        self.handle(pattern, PrefixMount(pattern, app))

    def match(self, path: str) -> tuple[str, ASGIApp] | None:
        if (app := self._entries.get(path)) is not None:
            return path, app

        for pattern in self._subtrees:
            if path.startswith(pattern):
                return pattern, self._entries[pattern]
        return None

    def _redirect_target(self, path: str) -> str | None:
        if path in self._entries or path.endswith("/"):
            return None
        if (path + "/") in self._entries:
            return path + "/"
        return None

    async def _on_lifespan(self, receive: IReceive, send: ISend) -> None:
        while True:
            message: Message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _dispatch(self, scope: IScope, receive: IReceive, send: ISend) -> None:
        path = route_path(scope)

        if (target := self._redirect_target(path)) is not None:
            if scope["type"] == "http":
                query = scope.get("query_string", b"").decode("latin-1")
                location = scope.get("root_path", "") + target
                if query:
                    location = f"{location}?{query}"
                await moved_permanently_resp(location)(scope, receive, send)
                return

        if (matched := self.match(path)) is None:
            if scope["type"] == "websocket":
                await send({"type": "websocket.close", "code": 1000})
            else:
                await NOT_FOUND_RESP(scope, receive, send)
            return

        _, app = matched
        await app(scope, receive, send)

    async def __call__(self, scope: IScope, receive: IReceive, send: ISend) -> None:
        if scope["type"] == "lifespan":
            await self._on_lifespan(receive, send)
            return

        response_started = False

        async def _send(message: dict[str, Any]) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self._dispatch(scope, receive, _send)
        except Exception:
            if not response_started and scope["type"] == "http":
                await InternalErrorResp(scope, receive, send)
            raise
