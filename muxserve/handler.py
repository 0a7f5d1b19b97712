from typing import TYPE_CHECKING, Callable

from muxserve.errors import InvalidServeOptionError
from muxserve.mux import ServeMux

if TYPE_CHECKING:
    from muxserve.node import INode

ServeOption = Callable[["INode", ServeMux], ServeMux]
"""
Registers whatever handlers it provides on the given mux.

It returns the mux later options should register on: the same mux if it
does not care, or a new one if it wants to mediate requests to later options.
"""


def make_handler(node: "INode", *options: ServeOption) -> ServeMux:
    """
    Fold `options`, in order, into a single handler.

    The first option that raises aborts the fold and its error propagates
    as is. The returned handler is always the top level mux, so anything a
    mediating option hides from later options is still reachable from it.
    """
    top_mux = ServeMux("top")
    mux = top_mux
    for option in options:
        result = option(node, mux)
        if not isinstance(result, ServeMux):
            raise InvalidServeOptionError(option, result)
        mux = result
    return top_mux
