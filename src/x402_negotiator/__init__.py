"""
Public facade for the x402 negotiation package.

The module re-exports the most useful pieces for integrators so they can
``from x402_negotiator import ...`` without navigating the package.
"""

from .api import create_negotiator, fetch, inspect_url
from .core import (
    EVM,
    EXACT_SCHEME,
    SOLANA,
    ChallengeObserved,
    ClientCapability,
    ConfigError,
    ExactEvmPayer,
    Failed,
    FailureKind,
    HttpResponse,
    MalformedOptionError,
    NegotiationRequest,
    NegotiationResult,
    NegotiatorConfig,
    NetworkFamily,
    NoPaymentRequired,
    NotAChallengeError,
    ParseError,
    PaymentCompleted,
    PaymentError,
    PaymentNegotiator,
    PaymentOption,
    PaymentProducer,
    PaymentProof,
    PaymentRequiredButUnsatisfiable,
    PaymentRequirements,
    ProbeOk,
    ProbeResult,
    RequestsTransport,
    Transport,
    TransportError,
    load_negotiator_config,
    load_private_key_file,
    negotiate,
    parse_requirements,
    probe,
    resolve_network,
    select_option,
)
from .urls import build_url

__all__ = (
    "EVM",
    "EXACT_SCHEME",
    "SOLANA",
    "ChallengeObserved",
    "ClientCapability",
    "ConfigError",
    "ExactEvmPayer",
    "Failed",
    "FailureKind",
    "HttpResponse",
    "MalformedOptionError",
    "NegotiationRequest",
    "NegotiationResult",
    "NegotiatorConfig",
    "NetworkFamily",
    "NoPaymentRequired",
    "NotAChallengeError",
    "ParseError",
    "PaymentCompleted",
    "PaymentError",
    "PaymentNegotiator",
    "PaymentOption",
    "PaymentProducer",
    "PaymentProof",
    "PaymentRequiredButUnsatisfiable",
    "PaymentRequirements",
    "ProbeOk",
    "ProbeResult",
    "RequestsTransport",
    "Transport",
    "TransportError",
    "build_url",
    "create_negotiator",
    "fetch",
    "inspect_url",
    "load_negotiator_config",
    "load_private_key_file",
    "negotiate",
    "parse_requirements",
    "probe",
    "resolve_network",
    "select_option",
)
