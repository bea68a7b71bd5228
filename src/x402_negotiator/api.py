"""
Public, high-level helpers for calling x402-protected resources.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import requests

from .core.config import ConfigError, NegotiatorConfig, load_negotiator_config
from .core.negotiation import (
    NegotiationRequest,
    NegotiationResult,
    PaymentNegotiator,
    ProbeResult,
)
from .core.networks import EVM, NetworkFamily
from .core.payloads import ExactEvmPayer
from .core.selection import ClientCapability
from .core.transport import RequestsTransport
from .urls import build_url

__all__ = [
    "create_negotiator",
    "fetch",
    "inspect_url",
]


def _resolve_config(
    config: Optional[NegotiatorConfig],
    env_file: Optional[str],
    overrides: Optional[Mapping[str, str]],
    payer_private_key: Optional[str],
    network: Optional[str],
) -> NegotiatorConfig:
    if config is not None:
        extras = (overrides, payer_private_key, network)
        if any(item is not None and item != {} for item in extras):
            raise ValueError(
                "Provide either a pre-built NegotiatorConfig or individual parameters, not both."
            )
        return config
    return load_negotiator_config(
        env_file=env_file,
        overrides=overrides,
        payer_private_key=payer_private_key,
        network=network,
    )


def create_negotiator(
    *,
    config: Optional[NegotiatorConfig] = None,
    session: Optional[requests.Session] = None,
    family: NetworkFamily = EVM,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    payer_private_key: Optional[str] = None,
    network: Optional[str] = None,
) -> PaymentNegotiator:
    """
    Construct a :class:`PaymentNegotiator` backed by ``requests``.

    When the configuration carries a payer key the negotiator pays with an
    :class:`ExactEvmPayer`; otherwise it can only probe.
    """
    cfg = _resolve_config(config, env_file, overrides, payer_private_key, network)
    payer = None
    if cfg.payer_private_key is not None:
        payer = ExactEvmPayer(
            cfg.payer_private_key,
            backdate_seconds=cfg.backdate_seconds,
        )
    return PaymentNegotiator(
        ClientCapability(family),
        payer,
        transport=RequestsTransport(session=session, timeout=cfg.request_timeout_seconds),
        network_override=cfg.network,
    )


def fetch(
    url: str,
    *,
    method: str = "GET",
    body: Optional[Any] = None,
    query: Optional[Mapping[str, str]] = None,
    negotiator: Optional[PaymentNegotiator] = None,
    config: Optional[NegotiatorConfig] = None,
    env_file: Optional[str] = ".env",
) -> NegotiationResult:
    """
    Request ``url``, paying for it if the server asks.

    :raises ConfigError: no payer key is configured
    """
    if negotiator is None:
        negotiator = create_negotiator(config=config, env_file=env_file)
    if negotiator.pay is None:
        raise ConfigError("A payer private key is required to pay for resources")
    request = NegotiationRequest(url=build_url(url, query), method=method, body=body)
    return negotiator.negotiate(request)


def inspect_url(
    url: str,
    *,
    method: str = "GET",
    body: Optional[Any] = None,
    query: Optional[Mapping[str, str]] = None,
    session: Optional[requests.Session] = None,
    timeout: float = 30,
) -> ProbeResult:
    """
    Request ``url`` once and report the payment requirements without paying.
    """
    negotiator = PaymentNegotiator(
        ClientCapability(EVM),
        transport=RequestsTransport(session=session, timeout=timeout),
    )
    request = NegotiationRequest(url=build_url(url, query), method=method, body=body)
    return negotiator.probe(request)
