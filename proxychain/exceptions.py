"""Failures of a proxy session.

Every error knows how it is reported back to the ingress peer: ``socks_rep``
is the SOCKS5 reply code and ``http_status`` the HTTP status line code.
``hop`` is the index of the egress hop that failed, ``None`` when the
failure happened on the ingress side.
"""
import errno
import socket

# SOCKS5 reply codes (RFC 1928)
GENERAL_FAILURE = 0x01
NETWORK_UNREACHABLE = 0x03
HOST_UNREACHABLE = 0x04
CONNECTION_REFUSED = 0x05
COMMAND_NOT_SUPPORTED = 0x07
ADDRESS_TYPE_NOT_SUPPORTED = 0x08


class ProxyError(Exception):
    socks_rep = GENERAL_FAILURE
    http_status = 502
    hop = None


class ProtocolViolation(ProxyError):
    http_status = 400


class BadRequest(ProtocolViolation):
    pass


class HandshakeTooLarge(ProtocolViolation):
    http_status = 431


class HandshakeTimeout(ProtocolViolation):
    http_status = 408


class UnsupportedFeature(ProxyError):
    pass


class UnsupportedAuth(UnsupportedFeature):
    pass


class CommandNotSupported(UnsupportedFeature):
    socks_rep = COMMAND_NOT_SUPPORTED


class AddressTypeNotSupported(UnsupportedFeature):
    socks_rep = ADDRESS_TYPE_NOT_SUPPORTED


class MethodNotSupported(UnsupportedFeature):
    http_status = 405


class DialError(ProxyError):
    def __init__(self, message, socks_rep=GENERAL_FAILURE, http_status=502):
        super().__init__(message)
        self.socks_rep = socks_rep
        self.http_status = http_status

    @classmethod
    def timeout(cls, address):
        return cls(f"connect to {address} timed out", HOST_UNREACHABLE, 504)

    @classmethod
    def from_oserror(cls, address, e):
        if isinstance(e, socket.gaierror):
            return cls(f"can not resolve {address}: {e}", HOST_UNREACHABLE)
        if isinstance(e, ConnectionRefusedError):
            return cls(f"connect to {address} refused", CONNECTION_REFUSED)
        if e.errno == errno.EHOSTUNREACH:
            return cls(f"{address} unreachable", HOST_UNREACHABLE)
        if e.errno == errno.ENETUNREACH:
            return cls(f"network of {address} unreachable", NETWORK_UNREACHABLE)
        return cls(f"connect to {address} failed: {e}")


class UpstreamRejected(ProxyError):
    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


class UpstreamTimeout(UpstreamRejected):
    socks_rep = HOST_UNREACHABLE
    http_status = 504
