from ... import gvars
from ...exceptions import HandshakeTooLarge
from ...protocols import http
from ..base.server import ServerBase


class HTTPServer(ServerBase):
    proto = "HTTP(CONNECT)"

    def new_parser(self):
        return http.server.parser()

    async def accept(self):
        try:
            return await super().accept()
        except HandshakeTooLarge as e:
            await self.reject(e)
            raise

    async def reject(self, exc):
        try:
            await self.sock.sendall(http.status_line(exc.http_status))
        except OSError as e:
            gvars.logger.debug(f"{self} can not send {exc.http_status}: {e}")

    async def reply_success(self, bind_addr):
        await self.reply(200)

    async def reply_failure(self, exc):
        await self.reply(exc.http_status)
