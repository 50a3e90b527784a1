import base64
import re
from http import HTTPStatus

import httptools
import iofree

from ..exceptions import (
    BadRequest,
    MethodNotSupported,
    ProtocolViolation,
    UpstreamRejected,
)
from ..models import Target, parse_addr, valid_host

HTTP_LINE = re.compile(b"([^ ]+) +(.+?) +(HTTP/[^ ]+)")
VERSIONS = (b"HTTP/1.1", b"HTTP/1.0")


def status_line(code: int) -> bytes:
    if code == 200:
        reason = "Connection Established"
    else:
        reason = HTTPStatus(code).phrase
    return f"HTTP/1.1 {code} {reason}\r\n\r\n".encode()


def parse_authority(authority: bytes) -> Target:
    try:
        host, port = parse_addr(authority.decode("ascii"))
    except (UnicodeDecodeError, ValueError):
        raise BadRequest(f"bad authority: {authority!r}")
    if not valid_host(host) or port is None or not 1 <= port <= 65535:
        raise BadRequest(f"bad authority: {authority!r}")
    return Target(host, port)


@iofree.parser
def server():
    parser = yield from iofree.get_parser()
    head = yield from iofree.read_until(b"\r\n\r\n", return_tail=False)
    request_line, *header_lines = head.split(b"\r\n")
    match = HTTP_LINE.fullmatch(request_line)
    if not match:
        parser.respond(
            data=status_line(400), exc=BadRequest(f"bad request: {request_line!r}")
        )
        return
    method, path, ver = match.groups()
    if method != b"CONNECT":
        parser.respond(
            data=status_line(405),
            exc=MethodNotSupported(f"only support CONNECT, got {method.decode()}"),
        )
        return
    if ver not in VERSIONS:
        parser.respond(data=status_line(400), exc=BadRequest(f"bad version: {ver!r}"))
        return
    try:
        target = parse_authority(path)
    except BadRequest as e:
        parser.respond(data=status_line(400), exc=e)
        return
    parser.respond(result=target)
    code = yield from iofree.wait_event()
    parser.respond(data=status_line(code), result=code)


class ResponseHead:
    def __init__(self):
        self.headers = []
        self.done = False

    def on_header(self, name: bytes, value: bytes):
        self.headers.append((name, value))

    def on_headers_complete(self):
        self.done = True


def parse_status(head: bytes) -> int:
    response = ResponseHead()
    parser = httptools.HttpResponseParser(response)
    try:
        parser.feed_data(head + b"\r\n\r\n")
    except httptools.HttpParserUpgrade:
        pass
    except httptools.HttpParserError as e:
        raise ProtocolViolation(f"bad response: {e}")
    if not response.done:
        raise ProtocolViolation(f"incomplete response: {head!r}")
    return parser.get_status_code()


@iofree.parser
def client(target, credentials=None):
    parser = yield from iofree.get_parser()
    if not valid_host(target.host):
        parser.respond(exc=BadRequest(f"refuse to send bad host: {target.host!r}"))
        return
    headers = f"CONNECT {target.authority} HTTP/1.1\r\nHost: {target.authority}\r\n"
    if credentials:
        token = base64.b64encode(":".join(credentials).encode()).decode()
        headers += f"Proxy-Authorization: Basic {token}\r\n"
    parser.respond(data=f"{headers}\r\n".encode())
    head = yield from iofree.read_until(b"\r\n\r\n", return_tail=False)
    try:
        code = parse_status(head)
    except ProtocolViolation as e:
        parser.respond(exc=e)
        return
    if not 200 <= code < 300:
        status = head.split(b"\r\n", 1)[0].decode("latin-1")
        parser.respond(exc=UpstreamRejected(f"bad status: {status}", code))
        return
    parser.respond(result=code)
