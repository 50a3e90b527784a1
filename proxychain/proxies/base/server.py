import abc

from ...models import Target
from ...utils import run_parser_curio


class ServerBase(abc.ABC):
    """Ingress side of a session: learn the target, then answer the client.

    The answer is deferred: ``accept`` only returns the requested target, the
    session calls ``reply_success`` or ``reply_failure`` once the egress path
    is known to work or not.
    """

    parser = None
    target = None

    def __init__(self, sock):
        self.sock = sock

    def __repr__(self):
        return f"{self.__class__.__name__}({self.proto})"

    @property
    @abc.abstractmethod
    def proto(self):
        ""

    @abc.abstractmethod
    def new_parser(self):
        ""

    @abc.abstractmethod
    async def reply_success(self, bind_addr):
        ""

    @abc.abstractmethod
    async def reply_failure(self, exc):
        ""

    async def accept(self) -> Target:
        self.parser = self.new_parser()
        self.target = await run_parser_curio(self.parser, self.sock)
        return self.target

    async def reject(self, exc):
        "Answer a failure that happened before a target was learned."

    async def reply(self, event):
        self.parser.send_event(event)
        return await run_parser_curio(self.parser, self.sock, limit=None)

    def readall(self) -> bytes:
        return self.parser.readall() if self.parser else b""
