import time

import curio
from curio import socket

from . import gvars
from .utils import human_bytes

EOF = "eof"
IDLE = "idle"
ERROR = "error"


class RelayStats:
    def __init__(self):
        self.start = time.monotonic()
        self.last_active = self.start
        self.up = 0
        self.down = 0

    @property
    def idle_for(self) -> float:
        return time.monotonic() - self.last_active

    def record(self, direction: str, size: int):
        setattr(self, direction, getattr(self, direction) + size)
        self.last_active = time.monotonic()

    def __str__(self):
        seconds = time.monotonic() - self.start
        return (
            f"up {human_bytes(self.up)} down {human_bytes(self.down)} "
            f"in {seconds:.1f}s"
        )


class Relay:
    """Copy bytes both ways between the client and the egress socket.

    End of stream on one side shuts down writing on the other side while the
    opposite direction keeps running. An I/O error, or both directions
    staying silent for ``idle_timeout`` seconds, ends the whole relay.
    """

    def __init__(self, client, remote, idle_timeout=gvars.IDLE_TIMEOUT, name=""):
        self.client = client
        self.remote = remote
        self.idle_timeout = idle_timeout
        self.name = name
        self.stats = RelayStats()

    async def run(self) -> RelayStats:
        async with curio.TaskGroup() as g:
            await g.spawn(self._pipe, self.client, self.remote, "up")
            await g.spawn(self._pipe, self.remote, self.client, "down")
            while True:
                task = await g.next_done()
                if task is None:
                    break
                if task.result != EOF:
                    await g.cancel_remaining()
                    break
        return self.stats

    async def _pipe(self, src, dst, direction):
        while True:
            remaining = max(self.idle_timeout - self.stats.idle_for, 0.01)
            try:
                async with curio.timeout_after(remaining):
                    data = await src.recv(gvars.PACKET_SIZE)
            except curio.TaskTimeout:
                if self.stats.idle_for < self.idle_timeout:
                    continue
                gvars.logger.debug(f"{self.name} {direction} idle timeout")
                return IDLE
            except OSError as e:
                gvars.logger.debug(f"{self.name} {direction} recv {e}")
                return ERROR
            if not data:
                break
            try:
                await dst.sendall(data)
            except OSError as e:
                gvars.logger.debug(f"{self.name} {direction} send {e}")
                return ERROR
            self.stats.record(direction, len(data))
        gvars.logger.debug(f"{self.name} {direction} end of stream")
        try:
            dst._socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass
        return EOF
