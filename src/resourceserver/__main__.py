"""
Command-line entry point.

    python -m resourceserver
    python -m resourceserver --port 3000 --log-level DEBUG
    python -m resourceserver --host 0.0.0.0 --workers 8 --strict-methods

Flags override environment variables (HTTP_*, APP_*), which override the
defaults in config.py.
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import AppConfig, ServerConfig
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resourceserver",
        description="HTTP resource server: users, sessions, conditional caching",
    )
    parser.add_argument("--host", "-H", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 8080)")
    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Minimum worker threads; the maximum is twice this",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Access log format (default: text)",
    )
    parser.add_argument(
        "--session-ttl",
        type=float,
        help="Server-side session lifetime in seconds; 0 disables it",
    )
    parser.add_argument(
        "--strict-methods",
        action="store_true",
        help="Answer 405 with Allow instead of 404 for a known path with the wrong method",
    )
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure(args: argparse.Namespace) -> tuple[ServerConfig, AppConfig]:
    """Environment first, then explicit flags on top."""
    server_config = ServerConfig.from_env()
    app_config = AppConfig.from_env()

    if args.host:
        server_config.host = args.host
    if args.port is not None:
        server_config.port = args.port
    if args.workers:
        server_config.min_workers = args.workers
        server_config.max_workers = args.workers * 2
    if args.log_level:
        server_config.log_level = args.log_level
    server_config.log_format = args.log_format

    if args.session_ttl is not None:
        app_config.session_ttl = args.session_ttl or None
    app_config.strict_methods = args.strict_methods

    return server_config, app_config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        server_config, app_config = configure(args)
        server = HTTPServer(server_config, app_config=app_config)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
