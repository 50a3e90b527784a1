import curio
import pytest
from upstreams import (
    Upstream,
    echo,
    http_connect,
    main,
    make_proxy,
    recv_all,
    recv_exactly,
    stall,
)

from proxychain.models import Endpoint, Protocol


def test_graceful_shutdown():
    requests = []
    upstream = Upstream(stall(requests))
    proxy = make_proxy(
        Protocol.http,
        [Endpoint(Protocol.http, *upstream.address)],
        handshake_timeout=60,
        grace_period=0.2,
    )

    async def client():
        async with curio.timeout_after(5):
            socks = []
            for _ in range(3):
                socks.append(await http_connect(proxy.address, b"example.com:443"))
            while len(requests) < 3:
                await curio.sleep(0.05)
            assert proxy.active == 3
            await proxy.shutdown()
            await proxy.shutdown()
            for sock in socks:
                async with sock:
                    assert await recv_all(sock) == b""
            while proxy.active:
                await curio.sleep(0.01)
        with pytest.raises(OSError):
            await curio.open_connection(*proxy.address)

    curio.run(main(client(), upstream.serve, proxy.serve))


def test_shutdown_lets_sessions_finish():
    upstream = Upstream(echo)
    proxy = make_proxy(Protocol.http, grace_period=5)
    authority = "{}:{}".format(*upstream.address).encode()

    async def client():
        async with curio.timeout_after(4):
            sock = await http_connect(proxy.address, authority)
            async with sock:
                assert await recv_exactly(sock, 39) == (
                    b"HTTP/1.1 200 Connection Established\r\n\r\n"
                )
                await proxy.shutdown()
                await sock.sendall(b"still here")
                assert await recv_exactly(sock, 10) == b"still here"
            while proxy.active:
                await curio.sleep(0.01)

    curio.run(main(client(), upstream.serve, proxy.serve))
