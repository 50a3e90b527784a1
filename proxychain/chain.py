import typing

import curio

from . import gvars
from .exceptions import DialError, ProxyError, UpstreamRejected, UpstreamTimeout
from .models import Endpoint, State, Target
from .proxies import via_protos
from .utils import open_connection


class HopChain:
    """Open a tunnel to a target through an ordered list of hops.

    Hop 0 is dialed directly. Hop i is then asked to connect to hop i+1 and
    the last hop to the target, so every hop beyond the first is reached
    through the tunnel of the hop before it. An empty chain dials the target
    itself.
    """

    def __init__(
        self,
        hops: typing.Sequence[Endpoint],
        connect_timeout: float = gvars.CONNECT_TIMEOUT,
        handshake_timeout: float = gvars.HANDSHAKE_TIMEOUT,
        dial=None,
    ):
        self.hops = list(hops)
        self.connect_timeout = connect_timeout
        self.handshake_timeout = handshake_timeout
        self.dial = dial or open_connection

    def __str__(self):
        return " -- ".join(str(hop) for hop in self.hops) or "direct"

    def next_target(self, index: int, target: Target) -> Target:
        if index + 1 < len(self.hops):
            return self.hops[index + 1].address
        return target

    async def connect(self, target: Target, on_state=None):
        """Return ``(sock, pending)`` for a tunnel to ``target``.

        ``pending`` holds tunnel bytes the last hop sent along with its
        reply. Errors carry the index of the failing hop in ``hop``.
        """
        notify = on_state or (lambda state, index: None)
        first = self.hops[0].address if self.hops else target
        notify(State.dialing, 0)
        try:
            sock = await self.open(first)
        except ProxyError as e:
            e.hop = 0
            raise
        try:
            pending = b""
            for index, hop in enumerate(self.hops):
                notify(State.egress_handshaking, index)
                try:
                    pending = await self.handshake(
                        sock, hop, self.next_target(index, target), pending
                    )
                except ProxyError as e:
                    e.hop = index
                    raise
        except BaseException:
            await sock.close()
            raise
        return sock, pending

    async def open(self, address: Target):
        try:
            async with curio.timeout_after(self.connect_timeout):
                return await self.dial(address.host, address.port)
        except curio.TaskTimeout:
            raise DialError.timeout(address) from None
        except OSError as e:
            raise DialError.from_oserror(address, e) from e

    async def handshake(self, sock, hop: Endpoint, target: Target, pending: bytes):
        client = via_protos[hop.protocol](hop)
        try:
            async with curio.timeout_after(self.handshake_timeout):
                return await client.init(sock, target, pending)
        except curio.TaskTimeout:
            raise UpstreamTimeout(f"{client} handshake timed out") from None
        except UpstreamRejected:
            raise
        except ProxyError as e:
            raise UpstreamRejected(f"{client} {e}") from e
        except OSError as e:
            raise UpstreamRejected(f"{client} {e}") from e
