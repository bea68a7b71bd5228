"""
Minimal script that uses the public API to fetch an x402-protected resource.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from x402_negotiator import (
    ConfigError,
    Failed,
    NegotiationRequest,
    NoPaymentRequired,
    PaymentCompleted,
    PaymentRequiredButUnsatisfiable,
    create_negotiator,
    load_negotiator_config,
)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch a paid resource using the SDK API")
    parser.add_argument("url", help="Resource to fetch")
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing X402_* settings",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    parser.add_argument(
        "--payer-private-key",
        help="Provide the payer's private key without relying on environment data",
    )
    parser.add_argument(
        "--network",
        help="Override the network the payment is produced on (e.g. base-sepolia)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        config = load_negotiator_config(
            env_file=args.env_file,
            payer_private_key=args.payer_private_key,
            network=args.network,
        )
    except (ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    if not config.can_pay:
        logging.error("A payer private key is required")
        return 1

    negotiator = create_negotiator(config=config)
    logging.info("Fetching %s as %s", args.url, config.payer_address)
    result = negotiator.negotiate(NegotiationRequest(url=args.url))

    if isinstance(result, NoPaymentRequired):
        logging.info("Resource was free")
        print(json.dumps(result.body, indent=2))
        return 0

    if isinstance(result, PaymentCompleted):
        logging.info(
            "Paid %s of %s on %s",
            result.option.max_amount_required,
            result.option.asset,
            result.network,
        )
        print(json.dumps(result.body, indent=2))
        return 0

    if isinstance(result, PaymentRequiredButUnsatisfiable):
        logging.warning(
            "None of the %d offered payment options can be paid with an EVM key",
            len(result.requirements.options),
        )
        return 0

    assert isinstance(result, Failed)
    logging.error("Negotiation failed (%s): %s", result.kind.value, result.detail)
    return 1


if __name__ == "__main__":
    sys.exit(main())
