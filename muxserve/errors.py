from typing import Any


class MuxServeError(Exception):
    __slots__ = ()
    ...


class AppConfiguringError(MuxServeError): ...


class InvalidMultiaddrError(MuxServeError):
    def __init__(self, addr: str, reason: str):
        super().__init__(f"Invalid multiaddr {addr!r}: {reason}")


class UnsupportedProtocolError(InvalidMultiaddrError):
    "A well-formed multiaddr whose protocol we can not listen on"

    def __init__(self, addr: str, protocol: str):
        super().__init__(addr, f"unsupported protocol {protocol!r}")


class DuplicatedPatternError(MuxServeError):
    def __init__(self, pattern: str, current: Any):
        super().__init__(f"Pattern {pattern!r} already registered to {current!r}")


class InvalidPatternError(MuxServeError):
    def __init__(self, pattern: str):
        super().__init__(f"Invalid pattern {pattern!r}, expecting a path like '/api/'")


class InvalidServeOptionError(MuxServeError):
    def __init__(self, option: Any, result: Any):
        msg = f"Serve option {option!r} returned {type(result).__name__}, expecting a ServeMux"
        super().__init__(msg)


class ConfigKeyError(MuxServeError):
    def __init__(self, key: str, reason: str):
        super().__init__(f"Can't set config key {key!r}: {reason}")


class ServerStartupError(MuxServeError):
    "The server exited before it ever started accepting connections"

    def __init__(self, address: Any):
        super().__init__(f"Server at {address} exited before startup completed")
