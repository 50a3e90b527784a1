import abc

from ...models import Endpoint, Target
from ...utils import run_parser_curio


class ClientBase(abc.ABC):
    def __init__(self, endpoint: Endpoint):
        self.endpoint = endpoint

    def __repr__(self):
        return f"{self.__class__.__name__}({self})"

    def __str__(self):
        return f"{self.proto} -- {self.endpoint.address}"

    @property
    @abc.abstractmethod
    def proto(self):
        ""

    @abc.abstractmethod
    def new_parser(self, target: Target):
        ""

    async def init(self, sock, target: Target, pending: bytes = b"") -> bytes:
        """Ask the hop behind ``sock`` to connect to ``target``.

        ``pending`` holds bytes already received from the hop. Returns the
        bytes received after the hop's reply, which belong to the tunnel.
        """
        parser = self.new_parser(target)
        await run_parser_curio(parser, sock, pending)
        return parser.readall()
