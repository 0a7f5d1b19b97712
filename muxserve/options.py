from typing import TYPE_CHECKING, Iterable

from muxserve.handler import ServeOption
from muxserve.interface import ASGIApp
from muxserve.mux import RequestHandler, ServeMux

if TYPE_CHECKING:
    from muxserve.node import INode


def route_option(pattern: str, app: ASGIApp) -> ServeOption:
    def option(node: "INode", mux: ServeMux) -> ServeMux:
        mux.handle(pattern, app)
        return mux

    option.__name__ = f"route_option({pattern!r})"
    return option


def func_option(
    pattern: str, func: RequestHandler, methods: Iterable[str] | None = None
) -> ServeOption:
    def option(node: "INode", mux: ServeMux) -> ServeMux:
        mux.handle_func(pattern, func, methods)
        return mux

    option.__name__ = f"func_option({pattern!r})"
    return option


def mount_option(prefix: str) -> ServeOption:
    """
    Mediate every later option under `prefix`.

    ```python
    make_handler(node, mount_option("/api"), func_option("/version", version))
    # GET /api/version -> version
    ```
    """

    def option(node: "INode", mux: ServeMux) -> ServeMux:
        child = ServeMux(prefix)
        mux.mount(prefix, child)
        return child

    option.__name__ = f"mount_option({prefix!r})"
    return option
