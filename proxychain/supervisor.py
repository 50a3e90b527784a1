import curio
from curio import socket

from . import __version__, gvars
from .models import Config, Endpoint
from .session import Session


class Supervisor:
    """Accept connections and run one session task per connection.

    ``shutdown`` stops accepting, lets running sessions finish for
    ``grace_period`` seconds, then cancels whatever is left.
    """

    def __init__(self, config: Config):
        self.config = config
        self.sock = None
        self.address = None
        self.active = 0
        self._tasks = set()
        self._stop = curio.Event()
        self._drained = curio.Event()

    def bind(self):
        host, port = self.config.ingress.host, self.config.ingress.port
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        self.sock = curio.tcp_server_socket(host, port, backlog=1024, family=family)
        real_ip, real_port, *_ = self.sock._socket.getsockname()
        self.address = (real_ip, real_port)
        return self.address

    @property
    def listen_address(self) -> str:
        return str(Endpoint(self.config.ingress.protocol, *self.address))

    async def serve(self):
        if self.sock is None:
            self.bind()
        accept_task = await curio.spawn(self._accept_loop)
        gvars.logger.info(
            f"{__package__}/{__version__} listen on {self.listen_address}"
        )
        try:
            await self._stop.wait()
        finally:
            await accept_task.cancel()
        await self.drain()

    async def shutdown(self):
        if not self._stop.is_set():
            gvars.logger.info(f"shutting down, {self.active} active sessions")
        await self._stop.set()

    async def drain(self):
        if self.active:
            async with curio.ignore_after(self.config.grace_period):
                await self._drained.wait()
        for task in list(self._tasks):
            await task.cancel()
        gvars.logger.info(f"{self.listen_address} stopped")

    async def _accept_loop(self):
        async with self.sock:
            while True:
                client, addr = await self.sock.accept()
                task = await curio.spawn(self._handle, client, addr, daemon=True)
                self._tasks.add(task)
                del client

    async def _handle(self, client, addr):
        self.active += 1
        try:
            await Session(client, addr, self.config)()
        finally:
            self.active -= 1
            self._tasks.discard(await curio.current_task())
            if self.active == 0 and self._stop.is_set():
                await self._drained.set()
