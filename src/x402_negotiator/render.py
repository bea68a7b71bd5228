"""
Terminal rendering of negotiation and probe results.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule

from .core.negotiation import (
    ChallengeObserved,
    Failed,
    NegotiationResult,
    NoPaymentRequired,
    PaymentCompleted,
    PaymentRequiredButUnsatisfiable,
    ProbeOk,
    ProbeResult,
)
from .core.requirements import PaymentOption, PaymentRequirements

__all__ = [
    "render_body",
    "render_elapsed",
    "render_failure",
    "render_negotiation",
    "render_probe",
    "render_requirements",
]


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return json.dumps(value)


def render_body(console: Console, body: Any) -> None:
    if isinstance(body, str):
        console.print(body, markup=False, highlight=False)
    else:
        console.print_json(json.dumps(body))


def _render_option(console: Console, index: int, option: PaymentOption) -> None:
    console.print(
        f"[yellow]Payment Option {index}[/yellow] [dim]({escape(option.network)})[/dim]"
    )
    console.print()
    rows = (
        ("Network", escape(option.network)),
        ("Asset", f"[green]{escape(option.asset)}[/green]"),
        ("Pay To", f"[green]{escape(option.pay_to)}[/green]"),
        ("Amount", f"[yellow]{option.max_amount_required}[/yellow]"),
        ("Scheme", escape(option.scheme)),
        ("Description", escape(option.description)),
        ("Resource", f"[blue]{escape(option.resource)}[/blue]"),
        ("Timeout", f"{option.max_timeout_seconds}s"),
    )
    for label, value in rows:
        padded = f"{label}:".ljust(15)
        console.print(f"  [cyan]{padded}[/cyan] {value}", highlight=False)

    if option.extra:
        console.print()
        console.print("  [magenta]Extra Info:[/magenta]")
        for key, value in option.extra.items():
            console.print(
                f"    [dim]{escape(key)}:[/dim] [bright_black]{escape(_format_value(value))}[/bright_black]",
                highlight=False,
            )


def render_requirements(console: Console, requirements: PaymentRequirements) -> None:
    console.print()
    console.print(Rule(style="cyan"))
    console.print(
        f"[bold]  Payment Requirements[/bold] [dim](x402 v{requirements.protocol_version})[/dim]"
    )
    console.print(Rule(style="cyan"))
    console.print()
    if not requirements.options:
        console.print("[dim]No payment options offered.[/dim]")

    for index, option in enumerate(requirements.options, start=1):
        _render_option(console, index, option)
        if index < len(requirements.options):
            console.print()
            console.print(Rule(style="dim"))
            console.print()
    console.print()


def render_failure(console: Console, failure: Failed) -> None:
    label = failure.kind.value.replace("_", " ")
    console.print(f"[red]Error ({label}):[/red] {escape(failure.detail)}", highlight=False)
    if failure.body is not None and failure.status_code != 402:
        render_body(console, failure.body)


def render_elapsed(console: Console, elapsed_ms: int, *, failed: bool = False) -> None:
    verb = "failed after" if failed else "completed in"
    console.print(f"\n[dim]Request {verb} {elapsed_ms}ms[/dim]")


def render_probe(console: Console, result: ProbeResult) -> None:
    if isinstance(result, ProbeOk):
        render_body(console, result.body)
    elif isinstance(result, ChallengeObserved):
        render_requirements(console, result.requirements)
    else:
        render_failure(console, result)


def render_negotiation(
    console: Console,
    result: NegotiationResult,
    *,
    payer: Optional[str] = None,
) -> None:
    if payer:
        console.print(f"Wallet: {payer}", highlight=False)

    if isinstance(result, NoPaymentRequired):
        render_body(console, result.body)
    elif isinstance(result, PaymentCompleted):
        console.print(f"Network: {escape(result.network)}", highlight=False)
        console.print(f"Asset: {escape(result.option.asset)}", highlight=False)
        render_body(console, result.body)
        if result.settlement:
            tx = result.settlement.get("transaction") or result.settlement.get("txHash")
            if tx:
                console.print(f"[dim]Settled: {escape(str(tx))}[/dim]")
    elif isinstance(result, PaymentRequiredButUnsatisfiable):
        console.print(
            "[yellow]Payment required, but no offered option can be paid by this client.[/yellow]"
        )
        render_requirements(console, result.requirements)
    else:
        render_failure(console, result)
