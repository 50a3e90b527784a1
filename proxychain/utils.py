import ipaddress

import curio
from curio import socket

import iofree
from iofree.contrib.common import Addr

from . import gvars
from .exceptions import HandshakeTooLarge, ProtocolViolation


def feed(parser, data: bytes):
    try:
        parser.send(data)
    except iofree.ParseError as e:
        raise ProtocolViolation(f"malformed handshake: {e}") from e


async def run_parser_curio(parser, sock, data=b"", limit=gvars.MAX_HANDSHAKE_SIZE):
    feed(parser, data)
    received = len(data)
    while True:
        for to_send, close, exc, result in parser:
            if to_send:
                await sock.sendall(to_send)
            if close:
                await sock.close()
            if exc:
                raise exc
            if result is not iofree._no_result:
                return result
        if limit is not None and received >= limit:
            raise HandshakeTooLarge(f"handshake exceeds {limit} bytes")
        data = await sock.recv(gvars.PACKET_SIZE)
        if not data:
            raise ProtocolViolation("connection closed during handshake")
        received += len(data)
        feed(parser, data)


def socks_addr(addr) -> Addr:
    host, port = addr
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:  # hostname
        return Addr(3, host, port)
    return Addr(1 if ip.version == 4 else 4, str(ip), port)


def human_bytes(val: int) -> str:
    if val < 1024:
        return f"{val:.0f}Bytes"
    elif val < 1048576:
        return f"{val/1024:.1f}KB"
    else:
        return f"{val/1048576:.1f}MB"


async def open_connection(host, port, **kwargs):
    for i in range(2, -1, -1):
        try:
            return await curio.open_connection(host, port, **kwargs)
        except socket.gaierror:
            if i == 0:
                gvars.logger.debug(f"dns query failed: {host}")
                raise


def sockname(sock):
    try:
        host, port, *_ = sock._socket.getsockname()
    except (AttributeError, OSError):
        return ("0.0.0.0", 0)
    return (host, port)
