import tomllib
from pathlib import Path
from typing import Annotated, Protocol

from msgspec import field
from typing_extensions import Doc

from muxserve.errors import AppConfiguringError
from muxserve.interface import Record, StrDict


class IServerConfig(Protocol):
    @property
    def address(self) -> str: ...
    @property
    def address_key(self) -> str: ...
    @property
    def grace_log_interval(self) -> float: ...
    @property
    def grace_timeout(self) -> float | None: ...
    @property
    def timeout_graceful_shutdown(self) -> int | None: ...
    @property
    def access_log(self) -> bool: ...


class ILogConfig(Protocol):
    @property
    def level(self) -> str: ...
    @property
    def json(self) -> bool: ...


class IAppConfig(Protocol):
    @property
    def version(self) -> str: ...
    @property
    def server(self) -> IServerConfig: ...
    @property
    def log(self) -> ILogConfig: ...


class ConfigBase(Record, forbid_unknown_fields=True, frozen=True): ...


class ServerConfig(ConfigBase):
    address: Annotated[
        str, Doc("Multiaddr to listen on, e.g. '/ip4/127.0.0.1/tcp/5001'")
    ] = "/ip4/127.0.0.1/tcp/5001"
    address_key: Annotated[
        str, Doc("Node config key the bound address is written to")
    ] = "Addresses.API"
    grace_log_interval: Annotated[
        float, Doc("Seconds between progress logs while waiting for shutdown")
    ] = 5.0
    grace_timeout: Annotated[
        float | None,
        Doc("Seconds to wait for shutdown before forcing it, unbounded if unset"),
    ] = None
    timeout_graceful_shutdown: Annotated[
        int | None, Doc("Seconds uvicorn waits for open connections on shutdown")
    ] = None
    access_log: Annotated[bool, Doc("Emit uvicorn access logs")] = False


class LogConfig(ConfigBase):
    level: Annotated[str, Doc("Minimum log level, e.g. 'info'")] = "info"
    json: Annotated[bool, Doc("Render log records as JSON lines")] = False


class AppConfig(ConfigBase):
    version: Annotated[str, Doc("Application version")] = "0.1.0"
    server: Annotated[ServerConfig, Doc("Listener configuration")] = field(
        default_factory=ServerConfig
    )
    log: Annotated[LogConfig, Doc("Logging configuration")] = field(
        default_factory=LogConfig
    )

    @classmethod
    def from_toml(cls, file_path: Path) -> StrDict:
        with open(file_path, "rb") as fp:
            toml = tomllib.load(fp)

        try:
            config: StrDict = toml["tool"]["muxserve"]
        except KeyError:
            try:
                config: StrDict = toml["muxserve"]
            except KeyError:
                raise AppConfiguringError(f"can't find table muxserve from {file_path}")
        return config
