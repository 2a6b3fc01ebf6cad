"""
=============================================================================
COMMAND LINE ENTRY POINT
=============================================================================

    python -m staticserver                      # ./public on :3000
    python -m staticserver --root dist -p 8000
    PORT=8080 APP_ENV=production python -m staticserver --cors

Flags override environment variables, which override defaults.

=============================================================================
"""

import argparse
import logging
import sys
from dataclasses import replace
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig
from .server import create_app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="staticserver",
        description="Streaming static file server with caching and compression",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (env HOST, default 127.0.0.1; use 0.0.0.0 in containers)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (env PORT, default 3000)",
    )
    parser.add_argument(
        "--root", "-r",
        help="Directory to serve, relative to the working directory "
             "(env STATIC_ROOT, default ./public)",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Maximum worker threads (env WORKERS, default 16)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (env LOG_LEVEL, default INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Access log format (env LOG_FORMAT, default text)",
    )
    parser.add_argument(
        "--cors",
        action="store_true",
        default=None,
        help="Allow cross-origin requests from any origin (env CORS)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"staticserver {__version__}",
    )
    return parser


def config_from_args(args: argparse.Namespace, base: Optional[ServerConfig] = None) -> ServerConfig:
    """Overlay the flags that were given onto ``base`` (default: env)."""
    config = base or ServerConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "root_dir": args.root,
        "log_level": args.log_level,
        "log_format": args.log_format,
        "cors": args.cors,
    }
    if args.workers is not None:
        overrides["max_workers"] = args.workers
        overrides["min_workers"] = min(config.min_workers, args.workers)

    return replace(config, **{k: v for k, v in overrides.items() if v is not None})


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        server = create_app(config)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except OSError as e:
        logging.getLogger("staticserver").error(f"Server failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
