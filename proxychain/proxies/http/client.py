from ...protocols import http
from ..base.client import ClientBase


class HTTPClient(ClientBase):
    proto = "HTTP(CONNECT)"

    def new_parser(self, target):
        return http.client.parser(target, self.endpoint.credentials)
