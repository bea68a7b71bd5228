"""
The probe, pay and retry exchange for x402-protected resources.

:class:`PaymentNegotiator` sends a request without payment, interprets a 402
challenge, asks the payment producer for a proof exactly once and retries the
request with that proof attached. Every outcome is returned as a value; nothing
raised by the transport, the parser or the payer escapes :meth:`negotiate` or
:meth:`probe`.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from .networks import SOLANA, resolve_network
from .payloads import PaymentProducer
from .requirements import ParseError, PaymentOption, PaymentRequirements, parse_requirements
from .selection import ClientCapability, select_option
from .transport import DEFAULT_HEADERS, HttpResponse, RequestsTransport, Transport, TransportError

__all__ = [
    "ChallengeObserved",
    "Failed",
    "FailureKind",
    "NegotiationRequest",
    "NegotiationResult",
    "NoPaymentRequired",
    "PAYMENT_REQUIRED",
    "PaymentCompleted",
    "PaymentNegotiator",
    "PaymentRequiredButUnsatisfiable",
    "ProbeOk",
    "ProbeResult",
    "negotiate",
    "probe",
]

PAYMENT_REQUIRED = 402

_METHODS = ("GET", "POST")
_SETTLEMENT_HEADERS = ("X-PAYMENT-RESPONSE", "PAYMENT-RESPONSE")


@dataclass(frozen=True)
class NegotiationRequest:
    url: str
    method: str = "GET"
    body: Optional[Any] = field(default=None, hash=False)
    headers: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )

    def __post_init__(self) -> None:
        method = self.method.upper()
        if method not in _METHODS:
            raise ValueError(f"Unsupported method '{self.method}', expected GET or POST")
        if self.body is not None and method != "POST":
            raise ValueError("A request body is only allowed for POST")
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))


class FailureKind(str, Enum):
    TRANSPORT = "transport"
    PROTOCOL_VIOLATION = "protocol_violation"
    PAYMENT_PRODUCTION = "payment_production"
    SERVER_REJECTED = "server_rejected"


@dataclass(frozen=True)
class NoPaymentRequired:
    body: Any
    status_code: int = 200


@dataclass(frozen=True)
class PaymentCompleted:
    body: Any
    option: PaymentOption
    network: str
    status_code: int = 200
    settlement: Optional[Dict[str, Any]] = field(default=None, hash=False)


@dataclass(frozen=True)
class PaymentRequiredButUnsatisfiable:
    requirements: PaymentRequirements


@dataclass(frozen=True)
class Failed:
    kind: FailureKind
    detail: str
    status_code: Optional[int] = None
    body: Any = field(default=None, hash=False)


@dataclass(frozen=True)
class ProbeOk:
    body: Any
    status_code: int = 200


@dataclass(frozen=True)
class ChallengeObserved:
    requirements: PaymentRequirements


NegotiationResult = Union[
    NoPaymentRequired, PaymentCompleted, PaymentRequiredButUnsatisfiable, Failed
]
ProbeResult = Union[ProbeOk, ChallengeObserved, Failed]


def _decode_settlement(response: HttpResponse) -> Optional[Dict[str, Any]]:
    for name in _SETTLEMENT_HEADERS:
        value = response.header(name)
        if not value:
            continue
        try:
            decoded = json.loads(base64.b64decode(value))
        except (binascii.Error, ValueError) as exc:
            logging.warning("Ignoring undecodable %s header: %s", name, exc)
            return None
        return decoded if isinstance(decoded, dict) else {"value": decoded}
    return None


def _rejected(response: HttpResponse) -> Failed:
    return Failed(
        kind=FailureKind.SERVER_REJECTED,
        detail=f"Server responded with {response.status_code}: {response.text[:500]}",
        status_code=response.status_code,
        body=response.body,
    )


class PaymentNegotiator:
    """
    Drives one negotiation per :meth:`negotiate` call.

    The negotiator keeps no per-call state, so a single instance can serve
    concurrent callers as long as its transport can.
    """

    def __init__(
        self,
        capability: ClientCapability,
        pay: Optional[PaymentProducer] = None,
        *,
        transport: Optional[Transport] = None,
        network_override: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.capability = capability
        self.pay = pay
        self.transport = transport or RequestsTransport()
        self.network_override = network_override
        self.headers = dict(DEFAULT_HEADERS)
        if headers:
            self.headers.update(headers)

    def _send(
        self,
        request: NegotiationRequest,
        extra_headers: Optional[Mapping[str, str]] = None,
    ) -> HttpResponse:
        headers = dict(self.headers)
        headers.update(request.headers)
        if extra_headers:
            headers.update(extra_headers)
        return self.transport.send(request.url, request.method, headers, request.body)

    def _challenge(
        self, request: NegotiationRequest
    ) -> Union[HttpResponse, PaymentRequirements, Failed]:
        logging.info("Requesting %s %s", request.method, request.url)
        try:
            response = self._send(request)
        except TransportError as exc:
            logging.error("Request to %s failed: %s", request.url, exc)
            return Failed(FailureKind.TRANSPORT, str(exc))

        if response.status_code != PAYMENT_REQUIRED:
            return _rejected(response) if not response.ok else response

        try:
            requirements = parse_requirements(response.body)
        except ParseError as exc:
            logging.error("Invalid payment requirements from %s: %s", request.url, exc)
            return Failed(
                FailureKind.PROTOCOL_VIOLATION,
                f"Invalid payment requirements received: {exc}",
                status_code=response.status_code,
                body=response.body,
            )
        logging.info(
            "%s requires payment; %d option(s) offered (x402 v%d)",
            request.url,
            len(requirements.options),
            requirements.protocol_version,
        )
        return requirements

    def probe(self, request: NegotiationRequest) -> ProbeResult:
        """Send ``request`` once and report what, if anything, it would cost."""
        outcome = self._challenge(request)
        if isinstance(outcome, Failed):
            return outcome
        if isinstance(outcome, PaymentRequirements):
            return ChallengeObserved(outcome)
        return ProbeOk(body=outcome.body, status_code=outcome.status_code)

    def negotiate(self, request: NegotiationRequest) -> NegotiationResult:
        outcome = self._challenge(request)
        if isinstance(outcome, Failed):
            return outcome
        if isinstance(outcome, HttpResponse):
            return NoPaymentRequired(body=outcome.body, status_code=outcome.status_code)

        requirements = outcome
        option = select_option(requirements.options, self.capability)
        if option is None:
            logging.warning(
                "No %s option with scheme %s among %d offered",
                self.capability.family.name,
                "/".join(sorted(self.capability.schemes)),
                len(requirements.options),
            )
            return PaymentRequiredButUnsatisfiable(requirements)

        network = resolve_network(
            option.network, self.network_override, self.capability.family
        )
        logging.info(
            "Selected %s option on %s (asset %s, amount %s)",
            option.scheme,
            network,
            option.asset,
            option.max_amount_required,
        )

        if self.pay is None:
            return Failed(
                FailureKind.PAYMENT_PRODUCTION, "No payment producer configured"
            )
        try:
            proof = self.pay(option, network)
            proof_headers = proof.headers()
        except Exception as exc:  # noqa: BLE001
            logging.error("Payment production failed: %s", exc)
            return Failed(FailureKind.PAYMENT_PRODUCTION, str(exc) or type(exc).__name__)

        logging.info("Retrying %s %s with payment", request.method, request.url)
        try:
            response = self._send(request, proof_headers)
        except TransportError as exc:
            logging.error("Paid request to %s failed: %s", request.url, exc)
            return Failed(FailureKind.TRANSPORT, str(exc))

        if response.status_code == PAYMENT_REQUIRED:
            return Failed(
                FailureKind.PROTOCOL_VIOLATION,
                "server rejected a fresh proof",
                status_code=response.status_code,
                body=response.body,
            )
        if not response.ok:
            return _rejected(response)

        return PaymentCompleted(
            body=response.body,
            option=option,
            network=network,
            status_code=response.status_code,
            settlement=_decode_settlement(response),
        )


def negotiate(
    request: NegotiationRequest,
    capability: ClientCapability,
    pay: PaymentProducer,
    *,
    transport: Optional[Transport] = None,
    network_override: Optional[str] = None,
) -> NegotiationResult:
    """
    One-shot helper around :meth:`PaymentNegotiator.negotiate`.
    """
    negotiator = PaymentNegotiator(
        capability,
        pay,
        transport=transport,
        network_override=network_override,
    )
    return negotiator.negotiate(request)


def probe(
    request: NegotiationRequest,
    *,
    transport: Optional[Transport] = None,
) -> ProbeResult:
    """
    Phase one of :func:`negotiate` only. Never pays.
    """
    # Nothing is selected in a probe, so any capability will do.
    negotiator = PaymentNegotiator(ClientCapability(SOLANA), transport=transport)
    return negotiator.probe(request)
