import socket
from ipaddress import ip_address

import curio
import pytest

from proxychain.exceptions import HandshakeTooLarge, ProtocolViolation
from proxychain.models import Target
from proxychain.protocols import http, socks5
from proxychain.proxies import HTTPServer, SocksServer
from proxychain.utils import (
    human_bytes,
    open_connection,
    run_parser_curio,
    socks_addr,
)


class FakeSock:
    def __init__(self, *chunks):
        self.chunks = list(chunks)
        self.sent = b""

    async def recv(self, size):
        return self.chunks.pop(0) if self.chunks else b""

    async def sendall(self, data):
        self.sent += data


def test_socks_addr():
    assert socks_addr(("127.0.0.1", 8080)).binary == b"\x01\x7f\x00\x00\x01\x1f\x90"
    assert socks_addr(("google.com", 80)).binary == b"\x03\x0agoogle.com\x00\x50"
    ipv6 = "1050:0:0:0:5:600:300c:326b"
    data = socks_addr((ipv6, 80)).binary
    assert data[0] == 4
    assert ip_address(bytes(data[1:17])) == ip_address(ipv6)


def test_human_bytes():
    assert human_bytes(10) == "10Bytes"
    assert human_bytes(1025) == "1.0KB"
    assert human_bytes(1024 * 1024 + 1) == "1.0MB"


def test_open_connection():
    with pytest.raises(socket.gaierror):
        curio.run(open_connection("does-not-exists.invalid", 80))


def test_run_parser_curio():
    sock = FakeSock(b"\x05\x01", b"\x00\x05\x01\x00\x01\x7f", b"\x00\x00\x01\x00\x50")
    parser = socks5.server.parser()
    target = curio.run(run_parser_curio(parser, sock))
    assert target == Target("127.0.0.1", 80)
    assert sock.sent == b"\x05\x00"


def test_run_parser_curio_eof():
    sock = FakeSock(b"CONNECT example.com:443 HTTP/1.1\r\n")
    with pytest.raises(ProtocolViolation):
        curio.run(run_parser_curio(http.server.parser(), sock))


def test_run_parser_curio_malformed():
    sock = FakeSock(b"\x05\x00", b"\x05\x09\x00\x01" + bytes(6))
    parser = socks5.client.parser(Target("example.com", 80))
    with pytest.raises(ProtocolViolation):
        curio.run(run_parser_curio(parser, sock))


def test_run_parser_curio_limit():
    sock = FakeSock(*[b"X" * 4096] * 8)
    with pytest.raises(HandshakeTooLarge):
        curio.run(run_parser_curio(http.server.parser(), sock, limit=8192))
    assert len(sock.chunks) == 6


def test_http_server_too_large():
    sock = FakeSock(b"CONNECT example.com:443 HTTP/1.1\r\n", *[b"X: y\r\n" * 1000] * 4)
    server = HTTPServer(sock)
    with pytest.raises(HandshakeTooLarge):
        curio.run(server.accept())
    assert sock.sent == b"HTTP/1.1 431 Request Header Fields Too Large\r\n\r\n"


def test_socks_server_adapter():
    sock = FakeSock(b"\x05\x01\x00", b"\x05\x01\x00\x03\x0bexample.com\x01\xbbdata")
    server = SocksServer(sock)

    async def job():
        assert await server.accept() == Target("example.com", 443)
        assert sock.sent == b"\x05\x00"
        await server.reply_success(("10.1.1.1", 4000))
        assert server.readall() == b"data"

    curio.run(job())
    assert sock.sent == b"\x05\x00\x05\x00\x00\x01\x0a\x01\x01\x01\x0f\xa0"
