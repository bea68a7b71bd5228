import json

import pytest
import requests

from conftest import TEST_PRIVATE_KEY, StubTransport, make_challenge, make_option, ok
from x402_negotiator import (
    ChallengeObserved,
    ConfigError,
    NegotiatorConfig,
    NoPaymentRequired,
    PaymentNegotiator,
    create_negotiator,
    fetch,
    inspect_url,
)
from x402_negotiator.core.networks import EVM
from x402_negotiator.core.payloads import ExactEvmPayer
from x402_negotiator.core.selection import ClientCapability
from x402_negotiator.core.transport import HttpResponse


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        return self.response


def _requests_response(status, body):
    response = requests.Response()
    response.status_code = status
    response._content = json.dumps(body).encode()
    response.encoding = "utf-8"
    response.headers["Content-Type"] = "application/json"
    return response


def test_create_negotiator_with_key_uses_evm_payer():
    config = NegotiatorConfig.from_mapping(
        {"X402_PAYER_PRIVATE_KEY": TEST_PRIVATE_KEY, "X402_NETWORK": "base"}
    )

    negotiator = create_negotiator(config=config)

    assert isinstance(negotiator.pay, ExactEvmPayer)
    assert negotiator.pay.address == config.payer_address
    assert negotiator.network_override == "base"
    assert negotiator.capability.family is EVM


def test_create_negotiator_without_key_can_only_probe():
    negotiator = create_negotiator(config=NegotiatorConfig())

    assert negotiator.pay is None


def test_config_and_parameters_are_exclusive():
    with pytest.raises(ValueError):
        create_negotiator(config=NegotiatorConfig(), network="base")


def test_fetch_requires_a_payer():
    negotiator = PaymentNegotiator(ClientCapability(EVM), transport=StubTransport())

    with pytest.raises(ConfigError):
        fetch("https://api.test/x", negotiator=negotiator)


def test_fetch_merges_query_into_url(payer):
    transport = StubTransport(ok({"free": True}))
    negotiator = PaymentNegotiator(ClientCapability(EVM), payer, transport=transport)

    result = fetch("https://api.test/x", query={"q": "a b"}, negotiator=negotiator)

    assert isinstance(result, NoPaymentRequired)
    assert transport.calls[0]["url"] == "https://api.test/x?q=a+b"


def test_inspect_url_reports_requirements_without_paying():
    challenge = make_challenge(make_option(network="base-sepolia"))
    session = FakeSession(_requests_response(402, challenge))

    result = inspect_url("https://api.test/x", session=session)

    assert isinstance(result, ChallengeObserved)
    assert result.requirements.options[0].network == "base-sepolia"
    assert len(session.calls) == 1
    assert "X-PAYMENT" not in session.calls[0][2]["headers"]


def test_http_response_header_lookup_is_case_insensitive():
    response = HttpResponse(200, {"X-Payment-Response": "abc"}, None, "")
    assert response.header("x-payment-response") == "abc"
