from rich.console import Console

from conftest import make_challenge, make_option
from x402_negotiator.core.negotiation import (
    ChallengeObserved,
    Failed,
    FailureKind,
    NoPaymentRequired,
    PaymentCompleted,
    PaymentRequiredButUnsatisfiable,
)
from x402_negotiator.core.requirements import parse_requirements
from x402_negotiator.render import render_elapsed, render_negotiation, render_probe


def _console():
    return Console(record=True, width=120, color_system=None)


def _requirements():
    return parse_requirements(
        make_challenge(
            make_option(extra={"name": "USDC", "decimals": 6}),
            make_option(network="base", asset="0xabc"),
        )
    )


def test_renders_every_option_with_details():
    console = _console()

    render_probe(console, ChallengeObserved(_requirements()))

    text = console.export_text()
    assert "Payment Requirements" in text
    assert "(x402 v1)" in text
    assert "Payment Option 1" in text and "Payment Option 2" in text
    assert "1000000" in text
    assert "RECEIVER" in text
    assert "60s" in text
    assert "Extra Info:" in text
    assert "decimals: 6" in text


def test_renders_completed_payment():
    console = _console()
    option = _requirements().options[0]
    result = PaymentCompleted(
        body={"data": "premium"},
        option=option,
        network="test",
        settlement={"transaction": "0xfeed"},
    )

    render_negotiation(console, result, payer="0xPAYER")

    text = console.export_text()
    assert "Wallet: 0xPAYER" in text
    assert "Network: test" in text
    assert "Asset: TOKENA" in text
    assert '"data": "premium"' in text
    assert "0xfeed" in text


def test_renders_failures_and_outcomes():
    console = _console()

    render_negotiation(console, NoPaymentRequired(body="hello"))
    render_negotiation(console, PaymentRequiredButUnsatisfiable(_requirements()))
    render_negotiation(
        console,
        Failed(FailureKind.SERVER_REJECTED, "Server responded with 500", 500, {"e": 1}),
    )
    render_elapsed(console, 42, failed=True)

    text = console.export_text()
    assert "hello" in text
    assert "no offered option can be paid" in text
    assert "Error (server rejected): Server responded with 500" in text
    assert "failed after 42ms" in text
