"""
Command-line interface for calling x402-protected APIs.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from typing import Any, Iterable, Optional, Sequence, Tuple

import requests
from rich.console import Console

from .api import create_negotiator
from .core.config import ConfigError, load_negotiator_config, load_private_key_file
from .core.negotiation import (
    Failed,
    NegotiationRequest,
    PaymentNegotiator,
    PaymentRequiredButUnsatisfiable,
)
from .core.networks import EVM
from .core.selection import ClientCapability
from .core.transport import RequestsTransport
from .render import render_elapsed, render_negotiation, render_probe
from .urls import build_url

__all__ = ["build_parser", "main", "run_cli"]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def _key_value(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got '{value}'")
    key, val = value.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError(f"Key must not be empty in '{value}'")
    return key, val


def _collect_pairs(pairs: Iterable[Tuple[str, str]]) -> dict[str, str]:
    collected: dict[str, str] = {}
    for key, value in pairs:
        collected[key] = value
    return collected


def _json_body(value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def _add_request_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("url", help="URL to send the request to")
    parser.add_argument("--keypair", help="Path to the payer key file")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the payment requirements without paying",
    )
    parser.add_argument("--network", help="Network to pay on, overriding the server's")
    parser.add_argument(
        "--query",
        action="append",
        type=_key_value,
        metavar="KEY=VALUE",
        default=None,
        help="Query parameter (can be used multiple times)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="x402-cli",
        description="Call x402 APIs, paying for them when the server asks",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing X402_* settings (default: .env)",
    )
    parser.add_argument(
        "--set",
        action="append",
        type=_key_value,
        metavar="KEY=VALUE",
        default=None,
        help="Override an environment variable without editing the .env file",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Python logging level (default: WARNING)",
    )

    commands = parser.add_subparsers(dest="method", metavar="METHOD")
    commands.required = True

    get = commands.add_parser("GET", help="Send a GET request")
    _add_request_arguments(get)

    post = commands.add_parser("POST", help="Send a POST request")
    _add_request_arguments(post)
    post.add_argument("--data", type=_json_body, help="Request body, JSON if it parses")
    return parser


def _dry_run(
    console: Console,
    request: NegotiationRequest,
    timeout: float,
    session: Optional[requests.Session],
) -> int:
    negotiator = PaymentNegotiator(
        ClientCapability(EVM),
        transport=RequestsTransport(session=session, timeout=timeout),
    )
    started = time.perf_counter()
    result = negotiator.probe(request)
    elapsed_ms = round((time.perf_counter() - started) * 1000)

    render_probe(console, result)
    failed = isinstance(result, Failed)
    render_elapsed(console, elapsed_ms, failed=failed)
    return 1 if failed else 0


def run_cli(
    argv: Sequence[str] | None = None,
    *,
    console: Optional[Console] = None,
    session: Optional[requests.Session] = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = console or Console()

    _configure_logging(args.log_level)
    overrides = _collect_pairs(args.set or ())

    url = build_url(args.url, _collect_pairs(args.query or ()))
    try:
        request = NegotiationRequest(
            url=url,
            method=args.method,
            body=getattr(args, "data", None),
        )
    except ValueError as exc:
        logging.error("Invalid request: %s", exc)
        return 1

    try:
        payer_private_key = load_private_key_file(args.keypair) if args.keypair else None
        config = load_negotiator_config(
            env_file=args.env_file,
            overrides=overrides,
            payer_private_key=payer_private_key,
            network=args.network,
        )
    except (ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    if args.dry_run:
        return _dry_run(console, request, config.request_timeout_seconds, session)

    if not config.can_pay:
        logging.error(
            "--keypair (or X402_PAYER_PRIVATE_KEY) is required when not using --dry-run"
        )
        return 1

    negotiator = create_negotiator(config=config, session=session)
    result = negotiator.negotiate(request)
    render_negotiation(console, result, payer=config.payer_address)

    if isinstance(result, PaymentRequiredButUnsatisfiable):
        logging.warning("No payment option matched the %s network family", EVM.name)
    return 1 if isinstance(result, Failed) else 0


def main() -> None:
    sys.exit(run_cli())
