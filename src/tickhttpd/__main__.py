"""
=============================================================================
TICKHTTPD CLI ENTRY POINT
=============================================================================

Runs the server standalone, inside a TimerLoop acting as the host.

=============================================================================
USAGE
=============================================================================

    python -m tickhttpd --webroot ./export
    python -m tickhttpd --webroot ./export --port 8060
    python -m tickhttpd --webroot ./export --debug

Embedded use (inside another application's scheduler) does not go
through here; see tickhttpd.server.

=============================================================================
"""

import argparse
import logging
import signal
import sys

from . import __version__
from .config import DEFAULT_PORT, MAX_PORT, MIN_PORT, ServerConfig
from .core import BindError, TimerLoop
from .server import HTTPServer


logger = logging.getLogger("tickhttpd.cli")

DESCRIPTION = "Minimal webserver for local browser sources that require security headers."

EPILOG = f"""
Primarily intended for Godot web exports:
  Set --webroot to where you exported the Godot project, then point the
  browser source to: http://127.0.0.1:<port>/<name_of_project>.html

With the default port, test it with:
  http://127.0.0.1:{DEFAULT_PORT}/
"""


def _port(value: str) -> int:
    port = int(value)
    if not MIN_PORT <= port <= MAX_PORT:
        raise argparse.ArgumentTypeError(f"port must be {MIN_PORT}-{MAX_PORT}")
    return port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tickhttpd",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument(
        "--webroot", "-w",
        required=True,
        help="Directory to serve files from",
    )
    parser.add_argument(
        "--port", "-p",
        type=_port,
        default=DEFAULT_PORT,
        help=f"TCP listen port (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Log debugging messages",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"tickhttpd {__version__}",
    )
    return parser


def main(argv=None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status: 0 on clean shutdown, 1 if the port could not
        be bound. Argument errors exit with 2 from argparse.
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    loop = TimerLoop()
    server = HTTPServer(loop)

    try:
        server.apply_config(ServerConfig(
            run=True,
            port=args.port,
            webroot=args.webroot,
            debug=args.debug,
        ))
    except BindError as e:
        logger.error(f"Could not start: {e}")
        return 1

    host, port = server.address
    logger.info(f"Serving {args.webroot} on http://{host}:{port}/")

    def _terminate(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, stopping...")
        loop.stop()

    previous = signal.signal(signal.SIGTERM, _terminate)
    try:
        loop.run()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    finally:
        signal.signal(signal.SIGTERM, previous)
        server.shutdown()

    return 0


if __name__ == "__main__":
    sys.exit(main())
