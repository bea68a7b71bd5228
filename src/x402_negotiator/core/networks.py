"""
Canonical network names for the chain families the client can pay on.

A family is pure data: an alias table, an environment prefix that is stripped
from names the table does not know, and the test-tier default used when a
server declares nothing usable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

__all__ = [
    "EVM",
    "NetworkFamily",
    "SOLANA",
    "resolve_network",
]


@dataclass(frozen=True)
class NetworkFamily:
    name: str
    default_network: str = "devnet"
    prefix: str = ""
    aliases: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Network family name must not be empty")
        if not self.prefix:
            object.__setattr__(self, "prefix", f"{self.name}-")
        object.__setattr__(self, "aliases", MappingProxyType(dict(self.aliases)))

        # Alias targets and the default must canonicalise to themselves.
        for target in (*self.aliases.values(), self.default_network):
            if not target or target in self.aliases or target.startswith(self.prefix):
                raise ValueError(
                    f"'{target}' is not a canonical {self.name} network name"
                )

    def includes(self, network: str) -> bool:
        return (
            network == self.name
            or network.startswith(self.prefix)
            or network in self.aliases
        )

    def canonicalize(self, network: str) -> str:
        """
        Map ``network`` through the alias table, stripping the family prefix
        until a known alias or a bare name remains. May return ``""``.
        """
        name = network
        while True:
            alias = self.aliases.get(name)
            if alias is not None:
                return alias
            if not name.startswith(self.prefix):
                return name
            name = name[len(self.prefix):]


SOLANA = NetworkFamily(
    name="solana",
    default_network="devnet",
    prefix="solana-",
    aliases={
        "solana-mainnet-beta": "mainnet-beta",
        "solana": "mainnet-beta",
        "solana-devnet": "devnet",
    },
)

# x402 v1 short names map onto CAIP-2 references; "eip155:<id>" strips to the id.
EVM = NetworkFamily(
    name="eip155",
    default_network="97",
    prefix="eip155:",
    aliases={
        "ethereum": "1",
        "sepolia": "11155111",
        "base": "8453",
        "base-sepolia": "84532",
        "bsc": "56",
        "bsc-testnet": "97",
        "polygon": "137",
        "polygon-amoy": "80002",
        "avalanche": "43114",
        "avalanche-fuji": "43113",
    },
)


def resolve_network(
    server_network: str,
    user_override: Optional[str] = None,
    family: NetworkFamily = SOLANA,
) -> str:
    """
    Resolve the network a payment should be produced on.

    A non-empty ``user_override`` wins over the server's declaration. Names
    that canonicalise to nothing fall back to the family's test-tier default,
    never to a production network. Feeding the result back in as
    ``server_network`` returns it unchanged.
    """
    if user_override:
        resolved = family.canonicalize(user_override)
    else:
        resolved = family.canonicalize(server_network or "")
    return resolved or family.default_network
