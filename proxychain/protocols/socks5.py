import iofree
from iofree.contrib.common import Addr
from iofree.contrib.socks5 import (
    AuthMethod,
    ClientRequest,
    Cmd,
    Handshake,
    Rep,
    Reply,
    ServerSelection,
    UsernameAuth,
    UsernameAuthReply,
)

from ..exceptions import (
    AddressTypeNotSupported,
    CommandNotSupported,
    ProtocolViolation,
    UnsupportedAuth,
    UpstreamRejected,
)
from ..models import Target, valid_host
from ..utils import socks_addr

ADDRESS_TYPES = (1, 3, 4)


def reply(rep, bind_addr=("0.0.0.0", 0)) -> bytes:
    return Reply(..., Rep(rep), ..., socks_addr(bind_addr)).binary


@iofree.parser
def server():
    parser = yield from iofree.get_parser()
    # method bytes are read raw: unknown codes offered next to no-auth are fine
    ver, nmethods = yield from iofree.read_struct("!BB")
    if ver != 5:
        parser.respond(exc=ProtocolViolation(f"bad socks version: {ver}"))
        return
    if nmethods == 0:
        parser.respond(exc=ProtocolViolation("nmethods can't be 0"))
        return
    methods = yield from iofree.read(nmethods)
    if AuthMethod.no_auth not in methods:
        parser.respond(
            data=ServerSelection(..., AuthMethod.no_acceptable_method).binary,
            exc=UnsupportedAuth(f"no acceptable auth method in {list(methods)}"),
        )
        return
    parser.respond(data=ServerSelection(..., AuthMethod.no_auth).binary)
    # request header is read raw so that bad commands and address types
    # still get a reply
    ver, cmd, rsv = yield from iofree.read_struct("!BBB")
    if ver != 5:
        parser.respond(exc=ProtocolViolation(f"bad socks version: {ver}"))
        return
    if cmd != Cmd.connect:
        parser.respond(
            data=reply(Rep.command_not_supported),
            exc=CommandNotSupported(f"only support connect command, got {cmd}"),
        )
        return
    atyp = (yield from iofree.peek(1))[0]
    if atyp not in ADDRESS_TYPES:
        parser.respond(
            data=reply(Rep.address_type_not_supported),
            exc=AddressTypeNotSupported(f"unknown address type: {atyp}"),
        )
        return
    try:
        addr = yield from Addr.get_value()
    except iofree.ParseError:
        addr = None
    if addr is None or not valid_host(addr.host):
        host = addr.host if addr else None
        parser.respond(
            data=reply(Rep.general_failure),
            exc=ProtocolViolation(f"bad destination address: {host!r}"),
        )
        return
    parser.respond(result=Target(addr.host, addr.port))
    rep, bind_addr = yield from iofree.wait_event()
    parser.respond(data=reply(rep, bind_addr), result=rep)


@iofree.parser
def client(target, credentials=None):
    parser = yield from iofree.get_parser()
    methods = [AuthMethod.no_auth]
    if credentials:
        methods.append(AuthMethod.user_auth)
    parser.respond(data=Handshake(..., methods).binary)
    selection = yield from ServerSelection.get_value()
    if selection.method not in methods:
        parser.respond(
            exc=UnsupportedAuth(f"server selected auth method {selection.method!r}")
        )
        return
    if selection.method is AuthMethod.user_auth:
        parser.respond(data=UsernameAuth(..., *credentials).binary)
        try:
            yield from UsernameAuthReply.get_value()
        except iofree.ParseError:
            parser.respond(exc=UpstreamRejected("username/password rejected"))
            return
    parser.respond(
        data=ClientRequest(..., Cmd.connect, ..., socks_addr(target)).binary
    )
    resp = yield from Reply.get_value()
    if resp.rep is not Rep.succeeded:
        parser.respond(exc=UpstreamRejected(f"bad reply: {resp.rep.name}", resp.rep))
        return
    parser.respond(result=Target(resp.bind_addr.host, resp.bind_addr.port))
