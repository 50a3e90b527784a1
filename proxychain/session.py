import itertools
import time

import curio

from . import gvars
from .chain import HopChain
from .exceptions import HandshakeTimeout, ProxyError
from .models import Config, State
from .proxies import server_protos
from .relay import Relay
from .utils import sockname


class Session:
    """One client connection, from accept to close.

    accepted -> ingress-handshaking -> dialing -> egress-handshaking
    -> relaying -> closed, or failed from any state before closed. No reply
    reaches the client before the whole egress path has succeeded or failed.
    """

    ids = itertools.count(1)

    def __init__(self, client, client_addr, config: Config):
        self.id = next(self.ids)
        self.client = client
        self.client_addr = client_addr
        self.config = config
        self.chain = HopChain(
            config.hops, config.connect_timeout, config.handshake_timeout, config.dial
        )
        self.server = server_protos[config.ingress.protocol](client)
        self.remote = None
        self.target = None
        self.error = None
        self.stats = None
        self.start_time = time.monotonic()
        self.state = State.accepted
        self.history = [State.accepted]

    def __repr__(self):
        return f"{self.__class__.__name__}({self})"

    def __str__(self):
        target = self.target or "unknown"
        return (
            f"#{self.id} {self.client_address} -- {self.server.proto} -- "
            f"{self.chain} -- {target}"
        )

    @property
    def client_address(self) -> str:
        return f"{self.client_addr[0]}:{self.client_addr[1]}"

    def transit(self, state: State, hop: int = None):
        self.state = state
        self.history.append(state)
        where = f" hop {hop}" if hop is not None and self.chain.hops else ""
        gvars.logger.debug(f"{self} {state.value}{where}")

    async def __call__(self):
        try:
            async with self.client:
                await self._run()
        except curio.TaskCancelled:
            self.transit(State.failed)
            raise
        except ProxyError as e:
            self.error = e
            self.transit(State.failed)
            hop = "" if e.hop is None else f" (hop {e.hop})"
            gvars.logger.info(f"{self} {e.__class__.__name__}{hop}: {e}")
        except OSError as e:
            self.error = e
            self.transit(State.failed)
            gvars.logger.debug(f"{self} {e}")
        except Exception as e:
            self.error = e
            self.transit(State.failed)
            gvars.logger.exception(f"{self} {e}")

    async def _run(self):
        self.transit(State.ingress_handshaking)
        try:
            async with curio.timeout_after(self.config.handshake_timeout):
                self.target = await self.server.accept()
        except curio.TaskTimeout:
            exc = HandshakeTimeout("ingress handshake timed out")
            await self.server.reject(exc)
            raise exc from None
        try:
            self.remote, pending = await self.chain.connect(self.target, self.transit)
        except ProxyError as e:
            await self.reply_failure(e)
            raise
        async with self.remote:
            self.transit(State.relaying)
            await self.server.reply_success(sockname(self.remote))
            gvars.logger.info(self)
            redundant = self.server.readall()
            if redundant:
                await self.remote.sendall(redundant)
            if pending:
                await self.client.sendall(pending)
            relay = Relay(self.client, self.remote, self.config.idle_timeout, str(self))
            self.stats = await relay.run()
        self.transit(State.closed)
        gvars.logger.info(f"{self} closed, {self.stats}")

    async def reply_failure(self, exc):
        try:
            await self.server.reply_failure(exc)
        except OSError as e:
            gvars.logger.debug(f"{self} can not send failure reply: {e}")
