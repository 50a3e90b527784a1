from ..models import Protocol
from .http.client import HTTPClient
from .http.server import HTTPServer
from .socks.client import SocksClient
from .socks.server import SocksServer

server_protos = {Protocol.http: HTTPServer, Protocol.socks5: SocksServer}
via_protos = {Protocol.http: HTTPClient, Protocol.socks5: SocksClient}
