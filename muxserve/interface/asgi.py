from typing import Any, Awaitable, Callable, MutableMapping

from starlette.types import Receive as IReceive
from starlette.types import Scope as IScope
from starlette.types import Send as ISend


type Message = MutableMapping[str, Any]


ASGIApp = Callable[
    [
        IScope,
        IReceive,
        ISend,
    ],
    Awaitable[None],
]
