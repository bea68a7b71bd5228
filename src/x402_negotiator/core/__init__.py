"""
Core primitives that implement the x402 negotiation.
"""

from .config import (
    ConfigError,
    NegotiatorConfig,
    load_negotiator_config,
    load_private_key_file,
)
from .environment import NegotiatorEnvironment, build_environment
from .negotiation import (
    ChallengeObserved,
    Failed,
    FailureKind,
    NegotiationRequest,
    NegotiationResult,
    NoPaymentRequired,
    PaymentCompleted,
    PaymentNegotiator,
    PaymentRequiredButUnsatisfiable,
    ProbeOk,
    ProbeResult,
    negotiate,
    probe,
)
from .networks import EVM, SOLANA, NetworkFamily, resolve_network
from .payloads import (
    ExactEvmPayer,
    PaymentError,
    PaymentProducer,
    PaymentProof,
    build_authorization_payload,
    build_payment_payload,
)
from .requirements import (
    MalformedOptionError,
    NotAChallengeError,
    ParseError,
    PaymentOption,
    PaymentRequirements,
    parse_requirements,
)
from .selection import EXACT_SCHEME, ClientCapability, select_option
from .transport import HttpResponse, RequestsTransport, Transport, TransportError

__all__ = [
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
    "NegotiatorEnvironment",
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
    "build_authorization_payload",
    "build_environment",
    "build_payment_payload",
    "load_negotiator_config",
    "load_private_key_file",
    "negotiate",
    "parse_requirements",
    "probe",
    "resolve_network",
    "select_option",
]
