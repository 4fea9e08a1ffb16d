"""
=============================================================================
COMMAND LINE ENTRY POINT
=============================================================================

Runs the example application:

    GET /ping             →  200 "pong"
    GET /echo/{message}   →  200 <message>

Usage:

    python -m minihttp                        # 127.0.0.1:8080
    python -m minihttp --port 0               # any free port
    python -m minihttp --host 0.0.0.0 --workers 8
    python -m minihttp --log-format json --gzip

Settings not given on the command line come from the environment
(HTTP_PORT, HTTP_LOG_LEVEL, ...; see ServerConfig.from_env), then from
the defaults. Ctrl+C or SIGTERM shuts the server down gracefully.

=============================================================================
"""

from typing import List, Optional
import argparse
import logging
import sys

from . import __version__
from .config import LOG_FORMATS, ServerConfig
from .handlers import echo, pong
from .http.router import Router
from .server import SocketServerCreator


logger = logging.getLogger("minihttp")


def build_router() -> Router:
    return (Router.builder()
        .get("/ping", pong())
        .get("/echo/{message}", echo("message"))
        .build())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m minihttp",
        description="Run the minihttp example server (/ping, /echo/{message})",
    )

    parser.add_argument("--host", "-H", default=None, help="Address to bind (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port to listen on, 0 for any (default: 8080)")
    parser.add_argument("--workers", "-w", type=int, default=None, help="Maximum worker threads (default: 16)")
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--log-format", choices=LOG_FORMATS, default=None, help="Access log line format")
    parser.add_argument("--no-access-log", action="store_true", help="Disable the access log")
    parser.add_argument("--gzip", action="store_true", help="Gzip compressible responses")
    parser.add_argument("--version", "-v", action="version", version=f"minihttp {__version__}")
    return parser


def build_config(args: argparse.Namespace, env=None) -> ServerConfig:
    config = ServerConfig.from_env(env).with_overrides(
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        log_format=args.log_format,
    )
    if args.workers is not None:
        config = config.with_overrides(
            max_workers=args.workers,
            min_workers=min(config.min_workers, args.workers),
        )
    if args.no_access_log:
        config = config.with_overrides(access_log=False)
    if args.gzip:
        config = config.with_overrides(gzip=True)
    config.validate()
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = build_config(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    server = SocketServerCreator(config).create(build_router())
    try:
        server.serve_forever()
    except OSError as e:
        logger.error(f"Server failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
