"""Key derivation ("vary-by") policies.

A key policy maps a request to the string key that selects its quota
bucket. Two requests with the same key share a quota; different keys are
fully independent. Policies must be deterministic and free of side effects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Mapping, Protocol, runtime_checkable

if TYPE_CHECKING:
    from starlette.requests import Request

# Separates the path from the client address so that no path/address pair
# can collide with another after concatenation.
PATH_SEPARATOR = "\n"


@dataclass(frozen=True)
class RequestInfo:
    """Transport-independent view of an incoming request.

    Attributes:
        method: HTTP method, e.g. "GET".
        path: URL path without the query string.
        remote_addr: Transport-level peer address, usually "host:port".
        headers: Request headers, stored read-only with lower-cased names;
            lookups through ``header`` ignore case.

    Instances are immutable and hashable.
    """

    method: str
    path: str = "/"
    remote_addr: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "headers",
            MappingProxyType({k.lower(): v for k, v in self.headers.items()}),
        )

    def __hash__(self) -> int:
        return hash(
            (self.method, self.path, self.remote_addr, frozenset(self.headers.items()))
        )

    def header(self, name: str) -> str:
        """Return the header value for ``name``, or "" when absent."""
        return self.headers.get(name.lower(), "")

    @classmethod
    def from_starlette(cls, request: "Request") -> "RequestInfo":
        """Build a RequestInfo from a Starlette/FastAPI request."""
        remote_addr = ""
        if request.client is not None:
            host, port = request.client.host, request.client.port
            if ":" in host:
                host = f"[{host}]"
            remote_addr = f"{host}:{port}"

        return cls(
            method=request.method,
            path=request.url.path,
            remote_addr=remote_addr,
            headers=dict(request.headers),
        )


def split_host_port(addr: str) -> tuple[str, str]:
    """Split "host:port", "[host]:port" or "[ipv6]:port" into host and port.

    Raises:
        ValueError: If the address has no port, too many colons, or
            unbalanced brackets.

    Examples:
        >>> split_host_port("1.2.3.4:8080")
        ('1.2.3.4', '8080')
        >>> split_host_port("[::1]:80")
        ('::1', '80')
    """
    i = addr.rfind(":")
    if i < 0:
        raise ValueError(f"missing port in address {addr!r}")

    if addr.startswith("["):
        end = addr.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address {addr!r}")
        if end + 1 == len(addr):
            raise ValueError(f"missing port in address {addr!r}")
        if end + 1 != i:
            # Either ']' isn't followed by a colon, or it is followed by a
            # colon that is not the last one.
            if addr[end + 1] == ":":
                raise ValueError(f"too many colons in address {addr!r}")
            raise ValueError(f"missing port in address {addr!r}")
        host = addr[1:end]
        if "[" in addr[1:end] or "]" in addr[end + 1:]:
            raise ValueError(f"unexpected bracket in address {addr!r}")
    else:
        host = addr[:i]
        if ":" in host:
            raise ValueError(f"too many colons in address {addr!r}")
        if "[" in host or "]" in host:
            raise ValueError(f"unexpected bracket in address {addr!r}")

    port = addr[i + 1:]
    if "[" in port or "]" in port:
        raise ValueError(f"unexpected bracket in address {addr!r}")
    return host, port


def extract_host(addr: str) -> str:
    """Return the host part of ``addr``, or ``addr`` unchanged if it has no port."""
    try:
        host, _ = split_host_port(addr)
    except ValueError:
        return addr
    return host


@runtime_checkable
class KeyDeriver(Protocol):
    """Maps a request to its rate limiting key."""

    def derive_key(self, request: RequestInfo) -> str:
        ...


@dataclass(frozen=True)
class ByClientAddress:
    """Key requests by client address.

    With an empty ``header_name`` the address comes from the transport-level
    ``remote_addr`` with any port suffix stripped. Otherwise the header value
    is used verbatim, unless ``strip_header_port`` asks for the same port
    stripping to be applied to it.
    """

    header_name: str = ""
    strip_header_port: bool = False

    def client_address(self, request: RequestInfo) -> str:
        if not self.header_name:
            return extract_host(request.remote_addr)

        value = request.header(self.header_name)
        if self.strip_header_port:
            return extract_host(value)
        return value

    def derive_key(self, request: RequestInfo) -> str:
        return self.client_address(request)


@dataclass(frozen=True)
class ByPathAndClientAddress(ByClientAddress):
    """Key requests by URL path and client address, newline separated."""

    def derive_key(self, request: RequestInfo) -> str:
        return request.path + PATH_SEPARATOR + self.client_address(request)


@dataclass(frozen=True)
class CustomKey:
    """Adapt a plain callable into a KeyDeriver.

    Custom policies that combine several request attributes should join them
    with an unambiguous separator, as ``ByPathAndClientAddress`` does.
    """

    func: Callable[[RequestInfo], str]

    def derive_key(self, request: RequestInfo) -> str:
        return self.func(request)


KEY_POLICIES: dict[str, type[ByClientAddress]] = {
    "ip": ByClientAddress,
    "path_ip": ByPathAndClientAddress,
}


def build_key_deriver(
    policy: str, header_name: str = "", strip_header_port: bool = False
) -> KeyDeriver:
    """Build one of the built-in key policies by name.

    Raises:
        ValueError: If ``policy`` is not a known policy name.
    """
    try:
        policy_cls = KEY_POLICIES[policy]
    except KeyError:
        raise ValueError(
            f"unknown key policy {policy!r}; expected one of {sorted(KEY_POLICIES)}"
        ) from None
    return policy_cls(header_name=header_name, strip_header_port=strip_header_port)
