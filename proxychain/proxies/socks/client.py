from ...protocols import socks5
from ..base.client import ClientBase


class SocksClient(ClientBase):
    proto = "SOCKS5"

    def new_parser(self, target):
        return socks5.client.parser(target, self.endpoint.credentials)
