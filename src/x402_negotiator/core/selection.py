"""
Choice of the payment option the client will satisfy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from .networks import NetworkFamily
from .requirements import PaymentOption

__all__ = [
    "EXACT_SCHEME",
    "ClientCapability",
    "select_option",
]

EXACT_SCHEME = "exact"


@dataclass(frozen=True)
class ClientCapability:
    """
    What the client can pay with: one chain family and a set of schemes.
    """

    family: NetworkFamily
    schemes: FrozenSet[str] = field(default_factory=lambda: frozenset({EXACT_SCHEME}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "schemes", frozenset(self.schemes))

    def supports(self, option: PaymentOption) -> bool:
        return self.family.includes(option.network) and option.scheme in self.schemes


def select_option(
    options: Iterable[PaymentOption],
    capability: ClientCapability,
) -> Optional[PaymentOption]:
    """
    Return the first option, in declaration order, that ``capability``
    supports, or ``None``. Price is not considered.
    """
    for option in options:
        if capability.supports(option):
            return option
    return None
