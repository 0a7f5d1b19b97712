"""
Textual multiaddrs for tcp listeners.

Only the subset a tcp listener needs is understood:

    /ip4/<addr>/tcp/<port>
    /ip6/<addr>/tcp/<port>
    /dns4/<name>/tcp/<port>
    /dns6/<name>/tcp/<port>
"""

import asyncio
import socket
from ipaddress import IPv4Address, IPv6Address, ip_address
from typing import Any, Literal, cast

from muxserve.errors import InvalidMultiaddrError, UnsupportedProtocolError
from muxserve.interface import Record

type Family = Literal["ip4", "ip6", "dns4", "dns6"]

FAMILIES: tuple[Family, ...] = ("ip4", "ip6", "dns4", "dns6")
TRANSPORTS = ("tcp",)
KNOWN_PROTOCOLS = frozenset(
    ("ip4", "ip6", "dns", "dns4", "dns6", "tcp", "udp", "unix", "quic", "ws", "wss")
)

SOCKET_FAMILY: dict[Family, socket.AddressFamily] = {
    "ip4": socket.AF_INET,
    "ip6": socket.AF_INET6,
    "dns4": socket.AF_INET,
    "dns6": socket.AF_INET6,
}


def _parse_port(text: str, raw: str) -> int:
    if not (text.isascii() and text.isdigit()):
        raise InvalidMultiaddrError(raw, f"invalid port {text!r}")
    port = int(text)
    if port > 65535:
        raise InvalidMultiaddrError(raw, f"port {port} out of range")
    return port


def _check_host(family: Family, host: str, raw: str) -> str:
    if not host:
        raise InvalidMultiaddrError(raw, "empty host")

    try:
        if family == "ip4":
            return str(IPv4Address(host))
        if family == "ip6":
            return str(IPv6Address(host))
    except ValueError:
        raise InvalidMultiaddrError(raw, f"invalid {family} address {host!r}")
    return host


class Multiaddr(Record):
    family: Family
    host: str
    port: int
    transport: Literal["tcp"] = "tcp"

    def __str__(self) -> str:
        return f"/{self.family}/{self.host}/{self.transport}/{self.port}"

    @classmethod
    def parse(cls, raw: str) -> "Multiaddr":
        if not raw.startswith("/"):
            raise InvalidMultiaddrError(raw, "must begin with '/'")

        parts = raw.rstrip("/").split("/")[1:]
        if not parts or not parts[0]:
            raise InvalidMultiaddrError(raw, "empty multiaddr")

        family, *rest = parts
        if family not in FAMILIES:
            if family in KNOWN_PROTOCOLS:
                raise UnsupportedProtocolError(raw, family)
            raise InvalidMultiaddrError(raw, f"unknown protocol {family!r}")

        if len(rest) < 3:
            raise InvalidMultiaddrError(raw, "expecting /<family>/<host>/tcp/<port>")

        host, transport, port, *extra = rest
        if transport not in TRANSPORTS:
            if transport in KNOWN_PROTOCOLS:
                raise UnsupportedProtocolError(raw, transport)
            raise InvalidMultiaddrError(raw, f"unknown protocol {transport!r}")
        if extra:
            raise UnsupportedProtocolError(raw, extra[0])

        family = cast(Family, family)
        return cls(
            family=family,
            host=_check_host(family, host, raw),
            port=_parse_port(port, raw),
        )

    @classmethod
    def from_sockaddr(cls, sock_family: int, sockaddr: Any) -> "Multiaddr":
        "Encode what `socket.getsockname()` reports back into multiaddr notation"
        host, port = sockaddr[0], sockaddr[1]
        if sock_family == socket.AF_INET6:
            return cls(family="ip6", host=str(IPv6Address(host.split("%")[0])), port=port)
        return cls(family="ip4", host=host, port=port)

    @property
    def socket_family(self) -> socket.AddressFamily:
        return SOCKET_FAMILY[self.family]

    def dial_args(self) -> tuple[str, str]:
        "`(network, 'host:port')`, e.g. `('tcp4', '127.0.0.1:5001')`"
        network = "tcp6" if self.socket_family == socket.AF_INET6 else "tcp4"
        host = f"[{self.host}]" if self.family == "ip6" else self.host
        return network, f"{host}:{self.port}"

    def socket_args(self) -> tuple[socket.AddressFamily, tuple[str, int]]:
        """
        Resolve into arguments for `socket.socket` and `socket.bind`.

        dns names are resolved within their address family, the first
        result wins. The lookup blocks, use `resolve` first inside a
        running event loop.
        """
        if self.family in ("ip4", "ip6"):
            return self.socket_family, (self.host, self.port)

        try:
            infos = socket.getaddrinfo(
                self.host, self.port, self.socket_family, socket.SOCK_STREAM
            )
        except socket.gaierror as exc:
            raise InvalidMultiaddrError(str(self), f"can't resolve host: {exc}") from exc

        family, _, _, _, sockaddr = infos[0]
        return family, (sockaddr[0], sockaddr[1])

    async def resolve(self) -> "Multiaddr":
        """
        Resolve a dns name into an ip multiaddr of the same address family
        without blocking the event loop, ip multiaddrs are returned as is.
        """
        if self.family in ("ip4", "ip6"):
            return self

        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(
                self.host, self.port, family=self.socket_family, type=socket.SOCK_STREAM
            )
        except socket.gaierror as exc:
            raise InvalidMultiaddrError(str(self), f"can't resolve host: {exc}") from exc

        family, _, _, _, sockaddr = infos[0]
        return Multiaddr.from_sockaddr(family, sockaddr)


def normalize_address(raw: str) -> Multiaddr:
    """
    Accept a multiaddr or a host:port shorthand.

    ":8080"            -> /ip4/0.0.0.0/tcp/8080
    "localhost:8080"   -> /dns4/localhost/tcp/8080
    "[::1]:8080"       -> /ip6/::1/tcp/8080
    """
    raw = raw.strip()
    if raw.startswith("/"):
        return Multiaddr.parse(raw)

    host, sep, port_text = raw.rpartition(":")
    if not sep:
        raise InvalidMultiaddrError(raw, "expecting a multiaddr or host:port")

    port = _parse_port(port_text, raw)

    if host.startswith("[") and host.endswith("]"):
        return Multiaddr(family="ip6", host=_check_host("ip6", host[1:-1], raw), port=port)

    if ":" in host:
        raise InvalidMultiaddrError(raw, "ipv6 hosts must be bracketed, e.g. [::1]:80")

    if not host:
        return Multiaddr(family="ip4", host="0.0.0.0", port=port)

    try:
        ip = ip_address(host)
    except ValueError:
        return Multiaddr(family="dns4", host=host, port=port)
    return Multiaddr(family="ip4", host=str(ip), port=port)
