"""
Configuration objects and helpers for the negotiator.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from eth_account import Account
from eth_utils import is_hex_address, to_checksum_address

from .environment import build_environment

__all__ = [
    "ConfigError",
    "NegotiatorConfig",
    "load_negotiator_config",
    "load_private_key_file",
]

_PARAMETER_TO_ENV_KEY = {
    "payer_private_key": "X402_PAYER_PRIVATE_KEY",
    "payer_address": "X402_PAYER_ADDRESS",
    "network": "X402_NETWORK",
    "request_timeout_seconds": "X402_REQUEST_TIMEOUT_SECONDS",
    "backdate_seconds": "X402_PAYMENT_BACKDATE_SECONDS",
}


class ConfigError(Exception):
    """Raised when the supplied configuration is invalid."""


def _collect_parameter_overrides(explicit: Mapping[str, Any]) -> Dict[str, str]:
    overrides: Dict[str, str] = {}
    for key, value in explicit.items():
        if value is None:
            continue
        overrides[_PARAMETER_TO_ENV_KEY[key]] = str(value)
    return overrides


def _normalize_private_key(raw_key: str) -> str:
    key = raw_key.strip()
    if not key:
        raise ConfigError("X402_PAYER_PRIVATE_KEY must not be empty")
    if not key.startswith("0x"):
        key = "0x" + key
    if len(key) != 66:
        raise ConfigError("X402_PAYER_PRIVATE_KEY must be 32 bytes (64 hex chars)")
    try:
        int(key, 16)
    except ValueError as exc:
        raise ConfigError("X402_PAYER_PRIVATE_KEY must be hexadecimal") from exc
    return key


def _normalize_address(raw_address: str, field_name: str) -> str:
    value = raw_address.strip()
    if not value:
        raise ConfigError(f"{field_name} must not be empty")
    if not value.startswith("0x"):
        value = "0x" + value
    if not is_hex_address(value):
        raise ConfigError(f"{field_name} is not a valid EVM address")

    return to_checksum_address(value)


def _int_setting(values: Mapping[str, str], key: str, default: str) -> int:
    raw = values.get(key, default)
    try:
        parsed = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got '{raw}'") from exc
    if parsed < 0:
        raise ConfigError(f"{key} must not be negative")
    return parsed


@dataclass(frozen=True)
class NegotiatorConfig:
    payer_private_key: Optional[str] = None
    payer_address: Optional[str] = None
    network: Optional[str] = None
    request_timeout_seconds: int = 30
    backdate_seconds: int = 600

    @property
    def can_pay(self) -> bool:
        return self.payer_private_key is not None

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "NegotiatorConfig":
        private_key: Optional[str] = None
        payer_address: Optional[str] = None

        raw_key = values.get("X402_PAYER_PRIVATE_KEY")
        if raw_key:
            private_key = _normalize_private_key(raw_key)
            payer_address = Account.from_key(private_key).address

        raw_address = values.get("X402_PAYER_ADDRESS")
        if raw_address:
            declared = _normalize_address(raw_address, "X402_PAYER_ADDRESS")
            if payer_address is not None and declared != payer_address:
                raise ConfigError(
                    "X402_PAYER_ADDRESS does not match X402_PAYER_PRIVATE_KEY "
                    f"({declared} != {payer_address})"
                )
            payer_address = declared

        return cls(
            payer_private_key=private_key,
            payer_address=payer_address,
            network=values.get("X402_NETWORK") or None,
            request_timeout_seconds=_int_setting(
                values, "X402_REQUEST_TIMEOUT_SECONDS", "30"
            ),
            backdate_seconds=_int_setting(values, "X402_PAYMENT_BACKDATE_SECONDS", "600"),
        )

    @classmethod
    def from_env(
        cls,
        *,
        env_file: Optional[str] = ".env",
        overrides: Optional[Mapping[str, str]] = None,
        base: Optional[Mapping[str, str]] = None,
        payer_private_key: Optional[str] = None,
        payer_address: Optional[str] = None,
        network: Optional[str] = None,
        request_timeout_seconds: Optional[int | str] = None,
        backdate_seconds: Optional[int | str] = None,
    ) -> "NegotiatorConfig":
        merged_overrides = dict(overrides or {})
        merged_overrides.update(
            _collect_parameter_overrides(
                {
                    "payer_private_key": payer_private_key,
                    "payer_address": payer_address,
                    "network": network,
                    "request_timeout_seconds": request_timeout_seconds,
                    "backdate_seconds": backdate_seconds,
                }
            )
        )
        environment = build_environment(
            env_file=env_file,
            base=base,
            overrides=merged_overrides,
        )
        return cls.from_mapping(environment.variables)


def load_negotiator_config(
    *,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    payer_private_key: Optional[str] = None,
    payer_address: Optional[str] = None,
    network: Optional[str] = None,
    request_timeout_seconds: Optional[int | str] = None,
    backdate_seconds: Optional[int | str] = None,
) -> NegotiatorConfig:
    """
    Convenience wrapper that mirrors :meth:`NegotiatorConfig.from_env`.

    Settings can come from environment variables, a ``.env`` file, keyword
    arguments, or any combination of the three; keyword arguments win.
    """
    return NegotiatorConfig.from_env(
        env_file=env_file,
        overrides=overrides,
        base=base,
        payer_private_key=payer_private_key,
        payer_address=payer_address,
        network=network,
        request_timeout_seconds=request_timeout_seconds,
        backdate_seconds=backdate_seconds,
    )


def load_private_key_file(path: str) -> str:
    """
    Read a payer key from ``path``.

    The file holds either the hex key itself or a JSON object with a
    ``privateKey`` entry.
    """
    if not path:
        raise ConfigError("Keypair path is required")
    key_path = Path(path)
    if not key_path.is_file():
        raise ConfigError(f"Keypair file not found: {path}")

    contents = key_path.read_text(encoding="utf-8").strip()
    if contents.startswith("{"):
        try:
            document = json.loads(contents)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Failed to load keypair: {exc}") from exc
        contents = str(document.get("privateKey") or "")
    return _normalize_private_key(contents)
