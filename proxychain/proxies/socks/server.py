from ...protocols import socks5
from ..base.server import ServerBase


class SocksServer(ServerBase):
    proto = "SOCKS5"

    def new_parser(self):
        return socks5.server.parser()

    async def reply_success(self, bind_addr):
        await self.reply((socks5.Rep.succeeded, bind_addr))

    async def reply_failure(self, exc):
        await self.reply((exc.socks_rep, ("0.0.0.0", 0)))
