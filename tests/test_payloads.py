import base64
import json

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import to_checksum_address
from hexbytes import HexBytes

from conftest import TEST_PRIVATE_KEY, make_challenge, make_option
from x402_negotiator.core.payloads import (
    ExactEvmPayer,
    PaymentError,
    build_authorization_payload,
    build_payment_payload,
)
from x402_negotiator.core.requirements import parse_requirements

ASSET = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
RECEIVER = "0x" + "22" * 20
NONCE = bytes(range(32))
NOW = 1_700_000_000


def _option(**overrides):
    raw = make_option(
        network="base-sepolia",
        asset=ASSET,
        payTo=RECEIVER,
        maxAmountRequired="10000",
        maxTimeoutSeconds=120,
        extra={"name": "USDC", "version": "2"},
    )
    raw.update(overrides)
    return parse_requirements(make_challenge(raw)).options[0]


def _typed_data(authorization, chain_id):
    return {
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
        "domain": {
            "name": "USDC",
            "version": "2",
            "chainId": chain_id,
            "verifyingContract": to_checksum_address(ASSET),
        },
        "message": {
            "from": authorization["from"],
            "to": authorization["to"],
            "value": int(authorization["value"]),
            "validAfter": int(authorization["validAfter"]),
            "validBefore": int(authorization["validBefore"]),
            "nonce": HexBytes(authorization["nonce"]),
        },
    }


def test_authorization_is_signed_by_payer():
    payload = build_authorization_payload(
        TEST_PRIVATE_KEY, _option(), "84532", now=NOW, nonce=NONCE, backdate_seconds=600
    )
    authorization = payload["authorization"]

    assert authorization["from"] == Account.from_key(TEST_PRIVATE_KEY).address
    assert authorization["to"] == "0x2222222222222222222222222222222222222222"
    assert authorization["value"] == "10000"
    assert authorization["validAfter"] == str(NOW - 600)
    assert authorization["validBefore"] == str(NOW + 120)
    assert authorization["nonce"] == "0x" + NONCE.hex()

    signable = encode_typed_data(full_message=_typed_data(authorization, 84532))
    signer = Account.recover_message(signable, signature=payload["signature"])
    assert signer == authorization["from"]


def test_payment_payload_echoes_server_network():
    payload = build_payment_payload(
        TEST_PRIVATE_KEY, _option(), "84532", now=NOW, nonce=NONCE
    )

    assert payload["x402Version"] == 1
    assert payload["scheme"] == "exact"
    assert payload["network"] == "base-sepolia"


def test_payer_produces_x_payment_header():
    payer = ExactEvmPayer(TEST_PRIVATE_KEY)

    proof = payer(_option(), "84532")

    assert list(proof.headers()) == ["X-PAYMENT"]
    decoded = json.loads(base64.b64decode(proof.value))
    assert decoded == json.loads(json.dumps(proof.payload))
    assert decoded["payload"]["authorization"]["from"] == payer.address


def test_payer_rejects_non_evm_network():
    with pytest.raises(PaymentError):
        ExactEvmPayer(TEST_PRIVATE_KEY)(_option(), "devnet")


@pytest.mark.parametrize(
    "overrides",
    [
        {"extra": {}},
        {"extra": {"name": "USDC"}},
        {"payTo": "not-an-address"},
        {"asset": "So11111111111111111111111111111111111111112"},
    ],
)
def test_payer_rejects_unusable_options(overrides):
    with pytest.raises(PaymentError):
        ExactEvmPayer(TEST_PRIVATE_KEY)(_option(**overrides), "84532")
