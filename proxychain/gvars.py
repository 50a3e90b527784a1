import logging
import sys

PACKET_SIZE = 8192
MAX_HANDSHAKE_SIZE = 16384
CONNECT_TIMEOUT = 10
HANDSHAKE_TIMEOUT = 10
IDLE_TIMEOUT = 300
GRACE_PERIOD = 5
logger = logging.getLogger(__package__)
logger.addHandler(logging.StreamHandler(sys.stdout))
default_ports = {"http": 80, "socks5": 1080}
