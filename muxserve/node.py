import asyncio
from contextlib import contextmanager
from copy import deepcopy
from pathlib import Path
from threading import Lock
from typing import Any, Iterator, Protocol

from msgspec import DecodeError
from msgspec.json import decode as json_decode
from msgspec.json import encode as json_encode

from muxserve.errors import ConfigKeyError
from muxserve.interface import StrDict


class IRepo(Protocol):
    def set_config_key(self, key: str, value: Any) -> None: ...


class IChildren(Protocol):
    def add(self, n: int = 1) -> None: ...
    def done(self) -> None: ...
    def track(self) -> Any: ...


class INode(Protocol):
    "What a listener needs from the process that owns it"

    @property
    def closing(self) -> asyncio.Event: ...
    @property
    def children(self) -> IChildren: ...
    @property
    def repo(self) -> IRepo: ...


class Children:
    """
    Counts in-flight work a node has to wait for before it finishes closing.
    """

    def __init__(self) -> None:
        self._count = 0
        self._idle = asyncio.Event()
        self._idle.set()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(count={self._count})"

    @property
    def count(self) -> int:
        return self._count

    def add(self, n: int = 1) -> None:
        self._count += n
        if self._count > 0:
            self._idle.clear()

    def done(self) -> None:
        if self._count <= 0:
            raise RuntimeError("children counter went negative")
        self._count -= 1
        if self._count == 0:
            self._idle.set()

    @contextmanager
    def track(self) -> Iterator[None]:
        self.add()
        try:
            yield
        finally:
            self.done()

    async def wait(self) -> None:
        await self._idle.wait()


def _split_key(key: str) -> list[str]:
    parts = key.split(".")
    if not all(parts):
        raise ConfigKeyError(key, "empty key segment")
    return parts


class Repo:
    """
    Dotted-key config store, e.g. `Addresses.API`.

    When `path` is given every write is flushed to it as json.
    """

    def __init__(self, path: Path | str | None = None, config: StrDict | None = None):
        self._path = Path(path) if path is not None else None
        self._config: StrDict = config if config is not None else {}
        self._lock = Lock()

    @classmethod
    def load(cls, path: Path | str) -> "Repo":
        path = Path(path)
        if not path.exists():
            return cls(path)

        try:
            config = json_decode(path.read_bytes(), type=StrDict)
        except DecodeError as exc:
            raise ConfigKeyError(str(path), f"corrupted config file: {exc}") from exc
        return cls(path, config)

    @property
    def config(self) -> StrDict:
        return self._config

    def get_config_key(self, key: str) -> Any:
        current: Any = self._config
        for part in _split_key(key):
            if not isinstance(current, dict) or part not in current:
                raise KeyError(key)
            current = current[part]
        return current

    def set_config_key(self, key: str, value: Any) -> None:
        "Set `key`, the in-memory config only changes once it is flushed"
        *parents, leaf = _split_key(key)
        with self._lock:
            config = deepcopy(self._config)
            current = config
            for part in parents:
                current = current.setdefault(part, {})
                if not isinstance(current, dict):
                    raise ConfigKeyError(key, f"{part!r} is not a table")
            current[leaf] = value
            self._flush(key, config)
            self._config = config

    def _flush(self, key: str, config: StrDict) -> None:
        if self._path is None:
            return
        try:
            self._path.write_bytes(json_encode(config))
        except OSError as exc:
            raise ConfigKeyError(key, f"can't write {self._path}: {exc}") from exc


class Node:
    def __init__(self, repo: Repo | None = None) -> None:
        self._repo = repo or Repo()
        self._closing = asyncio.Event()
        self._children = Children()

    @property
    def closing(self) -> asyncio.Event:
        return self._closing

    @property
    def children(self) -> Children:
        return self._children

    @property
    def repo(self) -> Repo:
        return self._repo

    @property
    def is_closing(self) -> bool:
        return self._closing.is_set()

    async def close(self) -> None:
        "Signal closing, then wait until every child has finished"
        self._closing.set()
        await self._children.wait()
