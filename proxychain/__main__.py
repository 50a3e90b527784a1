import argparse
import logging
import resource
import signal

import curio

from . import __doc__ as desc
from . import __version__, gvars
from .models import Config, Endpoint
from .supervisor import Supervisor


def ingress_endpoint(uri):
    try:
        endpoint = Endpoint.parse(uri, is_egress=False)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))
    if endpoint.credentials:
        gvars.logger.warning(f"ingress authentication is not supported: {uri}")
    return endpoint


def egress_endpoint(uri):
    try:
        return Endpoint.parse(uri)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def seconds(value):
    try:
        value = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value}")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return value


def get_config(arguments=None):
    parser = argparse.ArgumentParser(
        prog="proxychain",
        description=desc,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", dest="verbose", action="count", default=0, help="print verbose output"
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "-i",
        "--in",
        dest="ingress",
        metavar="URI",
        required=True,
        type=ingress_endpoint,
        help="local proxy to listen on",
    )
    parser.add_argument(
        "-o",
        "--out",
        dest="hops",
        metavar="URI",
        action="append",
        default=[],
        type=egress_endpoint,
        help="remote proxy to connect through, repeat to chain",
    )
    parser.add_argument(
        "--connect-timeout", type=seconds, default=gvars.CONNECT_TIMEOUT
    )
    parser.add_argument(
        "--handshake-timeout", type=seconds, default=gvars.HANDSHAKE_TIMEOUT
    )
    parser.add_argument("--idle-timeout", type=seconds, default=gvars.IDLE_TIMEOUT)
    parser.add_argument("--grace-period", type=seconds, default=gvars.GRACE_PERIOD)
    args = parser.parse_args(arguments)
    config = Config(
        ingress=args.ingress,
        hops=tuple(args.hops),
        connect_timeout=args.connect_timeout,
        handshake_timeout=args.handshake_timeout,
        idle_timeout=args.idle_timeout,
        grace_period=args.grace_period,
    )
    return config, args.verbose


async def run(supervisor, stop):
    async with curio.TaskGroup() as g:
        await g.spawn(supervisor.serve)
        await stop.wait()
        await supervisor.shutdown()


def main(arguments=None):
    config, verbose = get_config(arguments)
    if verbose == 0:
        level = logging.ERROR
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG
    gvars.logger.setLevel(level)
    try:
        resource.setrlimit(resource.RLIMIT_NOFILE, (50000, 50000))
    except Exception:
        gvars.logger.warning("Require root permission to allocate resources")
    supervisor = Supervisor(config)
    try:
        supervisor.bind()
    except OSError as e:
        gvars.logger.error(f"can not listen on {config.ingress}: {e}")
        return 1
    stop = curio.UniversalEvent()

    def on_signal(signo, frame):
        stop.set()

    handlers = {
        signo: signal.signal(signo, on_signal)
        for signo in (signal.SIGINT, signal.SIGTERM)
    }
    kernel = curio.Kernel()
    try:
        kernel.run(run(supervisor, stop))
    finally:
        kernel.run(shutdown=True)
        for signo, handler in handlers.items():
            signal.signal(signo, handler)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
