import enum
import ipaddress
import re
import typing
from urllib import parse

from . import gvars


class Protocol(enum.Enum):
    http = "http"
    socks5 = "socks5"


schemes = {"http": Protocol.http, "socks5": Protocol.socks5, "socks": Protocol.socks5}
HOSTNAME = re.compile(r"[A-Za-z0-9_-]+(\.[A-Za-z0-9_-]+)*\.?")


class State(enum.Enum):
    accepted = "accepted"
    ingress_handshaking = "ingress-handshaking"
    dialing = "dialing"
    egress_handshaking = "egress-handshaking"
    relaying = "relaying"
    closed = "closed"
    failed = "failed"


class Target(typing.NamedTuple):
    host: str
    port: int

    @property
    def authority(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    def __str__(self):
        return self.authority


class Endpoint(typing.NamedTuple):
    protocol: Protocol
    host: str
    port: int
    credentials: typing.Optional[typing.Tuple[str, str]] = None

    @property
    def address(self) -> Target:
        return Target(self.host, self.port)

    def __str__(self):
        return f"{self.protocol.value}://{self.address}"

    @classmethod
    def parse(cls, uri: str, is_egress: bool = True) -> "Endpoint":
        url = parse.urlsplit(uri)
        if url.scheme not in schemes:
            raise ValueError(f"unsupported scheme {url.scheme!r} in {uri}")
        protocol = schemes[url.scheme]
        if url.path not in ("", "/") or url.query or url.fragment:
            raise ValueError(f"unexpected path or query in {uri}")
        userinfo, _, loc = url.netloc.rpartition("@")
        credentials = None
        if userinfo:
            username, _, password = userinfo.partition(":")
            credentials = (parse.unquote(username), parse.unquote(password))
            if protocol is Protocol.socks5 and any(
                len(s.encode()) > 255 for s in credentials
            ):
                raise ValueError(f"socks5 username or password too long in {uri}")
        host, port = parse_addr(loc)
        if not host:
            if is_egress:
                raise ValueError(f"egress host is required: {uri}")
            host = "0.0.0.0"
        if not valid_host(host):
            raise ValueError(f"invalid host {host!r} in {uri}")
        if port is None:
            port = gvars.default_ports[protocol.value]
        if not 1 <= port <= 65535:
            raise ValueError(f"port out of range in {uri}")
        return cls(protocol, host, port, credentials)


def parse_addr(s: str):
    if s.startswith("["):
        host, sep, rest = s[1:].partition("]")
        if not sep or (rest and not rest.startswith(":")):
            raise ValueError(f"invalid address: {s}")
        port = rest[1:]
    else:
        host, _, port = s.rpartition(":") if ":" in s else (s, "", "")
    if port and not port.isdigit():
        raise ValueError(f"invalid port: {port}")
    return normalize_host(host), int(port) if port else None


def normalize_host(host: str) -> str:
    try:
        return str(ipaddress.ip_address(host))
    except ValueError:
        return host


def valid_host(host: str) -> bool:
    "an IP literal, or a hostname made of letters, digits, '-', '_' and dots"
    try:
        ipaddress.ip_address(host)
    except ValueError:
        return 0 < len(host) <= 255 and HOSTNAME.fullmatch(host) is not None
    return True


class Config(typing.NamedTuple):
    ingress: Endpoint
    hops: typing.Tuple[Endpoint, ...] = ()
    connect_timeout: float = gvars.CONNECT_TIMEOUT
    handshake_timeout: float = gvars.HANDSHAKE_TIMEOUT
    idle_timeout: float = gvars.IDLE_TIMEOUT
    grace_period: float = gvars.GRACE_PERIOD
    dial: typing.Optional[typing.Callable] = None
