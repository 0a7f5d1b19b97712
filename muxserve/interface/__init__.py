from dataclasses import dataclass
from typing import Any, Literal, TypeGuard, TypeVar

from muxserve.interface.asgi import ASGIApp as ASGIApp
from muxserve.interface.asgi import IReceive as IReceive
from muxserve.interface.asgi import IScope as IScope
from muxserve.interface.asgi import ISend as ISend
from muxserve.interface.asgi import Message as Message
from muxserve.interface.struct import Base as Base
from muxserve.interface.struct import Record as Record

T = TypeVar("T")

StrDict = dict[str, Any]


def is_provided(t: "T | _Missed") -> TypeGuard[T]:
    return t is not MISSING


@dataclass(frozen=True, repr=False)
class _Missed:

    __slots__ = ()

    __name__ = "muxserve.MISSING"

    def __repr__(self):
        return "<muxserve.MISSING>"

    def __bool__(self) -> Literal[False]:
        return False


MISSING = _Missed()
