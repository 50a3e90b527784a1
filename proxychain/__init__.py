"""
A protocol-translating proxy: listen with one proxy protocol, tunnel each
connection onward through another (or through a chain of them).

uri syntax:

{scheme}://[{username}:{password}@][hostname][:{port}]

supported protocols:

protocol        ingress egress  scheme
socks5          yes     yes     socks5:// (or socks://)
http connect    yes     yes     http://

credentials are only used on egress hops.

examples:

# socks5 clients through an http connect proxy
proxychain -v -i socks5://127.0.0.1:1080 -o http://proxy.example.com:3128

# http connect clients through a socks5 proxy
proxychain -v -i http://127.0.0.1:8080 -o socks5://127.0.0.1:9050

# socks5 -> http proxy -> socks5 proxy -> target
proxychain -i socks5://:1080 -o http://10.0.0.1:3128 -o socks5://user:pw@10.0.0.2:1080
"""
__version__ = "0.1.0"
