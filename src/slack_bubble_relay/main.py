"""Entry point for slack-bubble-relay."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys

from aiohttp import web

from slack_bubble_relay.config import load_config
from slack_bubble_relay.server import RelayServer

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="slack-bubble-relay",
        description="Relay Slack events to a Bubble backend workflow and back.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        default=None,
        help="Path to config YAML (default: ~/.config/slack-bubble-relay/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        metavar="LEVEL",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (overrides config and $PORT)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        level=getattr(logging, args.log_level),
    )

    try:
        config = load_config(args.config)
    except FileNotFoundError as exc:
        logger.error("Config file not found: %s", exc)
        sys.exit(1)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(1)

    if args.port is not None:
        config = dataclasses.replace(config, port=args.port)

    logger.info("Configuration loaded successfully")

    server = RelayServer(config)
    logger.info("Starting slack-bubble-relay on %s:%d", config.host, config.port)
    web.run_app(server.build_app(), host=config.host, port=config.port, print=None)
