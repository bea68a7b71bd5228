from typing import Any, Dict, List

import pytest

from x402_negotiator.core.payloads import PaymentProof
from x402_negotiator.core.transport import HttpResponse

TEST_PRIVATE_KEY = "0x" + "11" * 32


class StubTransport:
    """Replays canned responses and records every request it was asked to send."""

    def __init__(self, *responses: Any) -> None:
        self.responses: List[Any] = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def send(self, url, method, headers, body=None):
        self.calls.append(
            {"url": url, "method": method, "headers": dict(headers), "body": body}
        )
        if not self.responses:
            raise AssertionError(f"unexpected request {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class StubPayer:
    def __init__(self, proof: str = "proof-1", error: Exception | None = None) -> None:
        self.proof = proof
        self.error = error
        self.calls: List[Any] = []

    def __call__(self, option, network):
        self.calls.append((option, network))
        if self.error is not None:
            raise self.error
        return PaymentProof(value=self.proof)


def make_option(**overrides: Any) -> Dict[str, Any]:
    option = {
        "scheme": "exact",
        "network": "chain-test",
        "asset": "TOKENA",
        "payTo": "RECEIVER",
        "maxAmountRequired": "1000000",
        "resource": "https://api.example.com/premium",
        "description": "Premium data",
        "mimeType": "application/json",
        "maxTimeoutSeconds": 60,
        "extra": {},
    }
    option.update(overrides)
    return option


def make_challenge(*options: Dict[str, Any], version: int = 1) -> Dict[str, Any]:
    return {
        "x402Version": version,
        "error": "X-PAYMENT header is required",
        "accepts": list(options),
    }


def payment_required(*options: Dict[str, Any]) -> HttpResponse:
    body = make_challenge(*options)
    return HttpResponse(status_code=402, body=body, text="payment required")


def ok(body: Any = None, headers: Dict[str, str] | None = None) -> HttpResponse:
    body = {"data": "premium"} if body is None else body
    return HttpResponse(status_code=200, headers=headers or {}, body=body, text="ok")


@pytest.fixture
def payer() -> StubPayer:
    return StubPayer()
