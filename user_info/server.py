"""
Command line entry point: load settings, set up logging and serve the app.
"""

from __future__ import annotations

import argparse
import logging
import sys

import uvicorn

from user_info.app import create_app
from user_info.config import fix_port, load_settings
from user_info.dependencies import build_context, version_info

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="user-info service")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to an env-style settings file (defaults to .env)",
    )
    parser.add_argument(
        "--port",
        type=str,
        default=None,
        help="The port number to listen on, e.g. 60000 or :60000",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="The interface to bind",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ...)",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print the version information",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {}
    if args.port:
        overrides["port"] = fix_port(args.port)
    if args.host:
        overrides["host"] = args.host
    if args.log_level:
        overrides["log_level"] = args.log_level.upper()
    settings = load_settings(args.config, **overrides)

    if args.version:
        for line in version_info(settings).lines():
            print(line)
        return 0

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    context = build_context(settings)
    app = create_app(context)
    logger.info("Listening on port %s", settings.port)
    try:
        uvicorn.run(
            app,
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
        )
    finally:
        context.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
