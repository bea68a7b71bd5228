"""
Payment proofs and the EVM ``exact`` scheme payer.

The negotiator only needs something callable as ``pay(option, network)`` that
returns a :class:`PaymentProof`. :class:`ExactEvmPayer` is such a callable: it
signs an ERC-3009 ``TransferWithAuthorization`` for the selected option and
packs it into the x402 ``X-PAYMENT`` header.
"""

from __future__ import annotations

import base64
import json
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import is_hex_address, to_checksum_address
from hexbytes import HexBytes

from .requirements import PaymentOption

__all__ = [
    "PAYMENT_HEADER",
    "ExactEvmPayer",
    "PaymentError",
    "PaymentProducer",
    "PaymentProof",
    "build_authorization_payload",
    "build_payment_payload",
    "encode_payment_header",
]

PAYMENT_HEADER = "X-PAYMENT"


class PaymentError(Exception):
    """Raised when a payment proof cannot be produced."""


@dataclass(frozen=True)
class PaymentProof:
    """
    Opaque artifact attached to the retried request.
    """

    value: str
    header_name: str = PAYMENT_HEADER
    payload: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def headers(self) -> Dict[str, str]:
        return {self.header_name: self.value}


class PaymentProducer(Protocol):
    def __call__(self, option: PaymentOption, network: str) -> PaymentProof:
        ...


def _checksum(raw_address: str, field_name: str) -> str:
    value = raw_address.strip()
    if not value.startswith("0x"):
        value = "0x" + value
    if not is_hex_address(value):
        raise PaymentError(f"{field_name} '{raw_address}' is not a valid EVM address")
    return to_checksum_address(value)


def _chain_id(network: str) -> int:
    try:
        return int(network)
    except ValueError as exc:
        raise PaymentError(
            f"Network '{network}' does not resolve to an EVM chain id"
        ) from exc


def _domain_field(option: PaymentOption, key: str) -> str:
    value = option.extra.get(key)
    if not isinstance(value, str) or not value:
        raise PaymentError(
            f"Option for asset {option.asset} has no '{key}' in extra; "
            "cannot build the EIP-712 domain"
        )
    return value


def build_authorization_payload(
    private_key: str,
    option: PaymentOption,
    network: str,
    *,
    backdate_seconds: int = 600,
    now: Optional[int] = None,
    nonce: Optional[bytes] = None,
) -> Dict[str, Any]:
    """
    Construct and sign the ERC-3009 TransferWithAuthorization payload.

    ``network`` is the resolved chain id; the asset contract is the verifying
    contract and ``extra.name`` / ``extra.version`` form the EIP-712 domain.
    """
    account = Account.from_key(private_key)
    chain_id = _chain_id(network)
    receiver = _checksum(option.pay_to, "payTo")
    asset = _checksum(option.asset, "asset")

    now = int(time.time()) if now is None else now
    nonce_bytes = nonce if nonce is not None else secrets.token_bytes(32)
    valid_after = now - backdate_seconds
    valid_before = now + option.max_timeout_seconds

    message = {
        "from": account.address,
        "to": receiver,
        "value": option.amount,
        "validAfter": valid_after,
        "validBefore": valid_before,
        "nonce": HexBytes(nonce_bytes),
    }
    domain = {
        "name": _domain_field(option, "name"),
        "version": _domain_field(option, "version"),
        "chainId": chain_id,
        "verifyingContract": asset,
    }
    typed_data = {
        "types": {
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
            "TransferWithAuthorization": [
                {"name": "from", "type": "address"},
                {"name": "to", "type": "address"},
                {"name": "value", "type": "uint256"},
                {"name": "validAfter", "type": "uint256"},
                {"name": "validBefore", "type": "uint256"},
                {"name": "nonce", "type": "bytes32"},
            ],
        },
        "primaryType": "TransferWithAuthorization",
        "domain": domain,
        "message": message,
    }

    signable = encode_typed_data(full_message=typed_data)
    signature = account.sign_message(signable).signature

    return {
        "signature": "0x" + signature.hex(),
        "authorization": {
            "from": account.address,
            "to": receiver,
            "value": option.max_amount_required,
            "validAfter": str(valid_after),
            "validBefore": str(valid_before),
            "nonce": "0x" + nonce_bytes.hex(),
        },
    }


def build_payment_payload(
    private_key: str,
    option: PaymentOption,
    network: str,
    *,
    x402_version: int = 1,
    backdate_seconds: int = 600,
    now: Optional[int] = None,
    nonce: Optional[bytes] = None,
) -> Dict[str, Any]:
    """Build the payment payload carried by the ``X-PAYMENT`` header."""
    return {
        "x402Version": x402_version,
        "scheme": option.scheme,
        "network": option.network,
        "payload": build_authorization_payload(
            private_key,
            option,
            network,
            backdate_seconds=backdate_seconds,
            now=now,
            nonce=nonce,
        ),
    }


def encode_payment_header(payload: Mapping[str, Any]) -> str:
    return base64.b64encode(
        json.dumps(payload, separators=(",", ":")).encode("utf-8")
    ).decode("ascii")


class ExactEvmPayer:
    """
    Payment producer for the ``exact`` scheme on EVM chains.
    """

    def __init__(
        self,
        private_key: str,
        *,
        backdate_seconds: int = 600,
        x402_version: int = 1,
    ) -> None:
        self._private_key = private_key
        self.address = Account.from_key(private_key).address
        self.backdate_seconds = backdate_seconds
        self.x402_version = x402_version

    def __call__(self, option: PaymentOption, network: str) -> PaymentProof:
        payload = build_payment_payload(
            self._private_key,
            option,
            network,
            x402_version=self.x402_version,
            backdate_seconds=self.backdate_seconds,
        )
        return PaymentProof(value=encode_payment_header(payload), payload=payload)
