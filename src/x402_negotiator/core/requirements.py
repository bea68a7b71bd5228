"""
Decoding of the JSON body that accompanies an HTTP 402 response.

The parser is strict about the fields that drive option selection and payment
production, and lenient about the informational ones.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

__all__ = [
    "MalformedOptionError",
    "NotAChallengeError",
    "ParseError",
    "PaymentOption",
    "PaymentRequirements",
    "parse_requirements",
]

_AMOUNT_PATTERN = re.compile(r"[0-9]+")

_REQUIRED_STRING_FIELDS = ("network", "scheme", "asset", "payTo", "maxAmountRequired")


class ParseError(ValueError):
    """Raised when a 402 body cannot be decoded into payment requirements."""


class NotAChallengeError(ParseError):
    """The body is not a payment challenge at all."""


class MalformedOptionError(ParseError):
    """An entry of ``accepts`` is missing a field or carries an invalid value."""

    def __init__(self, index: int, field_name: str, message: str) -> None:
        super().__init__(f"accepts[{index}].{field_name}: {message}")
        self.index = index
        self.field_name = field_name


def _empty_extra() -> Mapping[str, Any]:
    return MappingProxyType({})


@dataclass(frozen=True)
class PaymentOption:
    network: str
    scheme: str
    asset: str
    pay_to: str
    max_amount_required: str
    max_timeout_seconds: int
    description: str = ""
    resource: str = ""
    mime_type: Optional[str] = None
    output_schema: Optional[Any] = field(default=None, hash=False)
    extra: Mapping[str, Any] = field(default_factory=_empty_extra, hash=False)

    @property
    def amount(self) -> int:
        """The maximum amount in the asset's base units."""
        return int(self.max_amount_required)


@dataclass(frozen=True)
class PaymentRequirements:
    protocol_version: int
    options: Tuple[PaymentOption, ...]
    error: Optional[str] = None


def _decode_body(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise NotAChallengeError("402 body is not valid UTF-8") from exc
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise NotAChallengeError(f"402 body is not JSON: {raw[:200]!r}") from exc
    return raw


def _optional_string(index: int, entry: Mapping[str, Any], key: str) -> str:
    value = entry.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MalformedOptionError(index, key, "must be a string")
    return value


def _parse_option(index: int, entry: Any) -> PaymentOption:
    if not isinstance(entry, Mapping):
        raise MalformedOptionError(index, "*", "option must be a JSON object")

    values: Dict[str, str] = {}
    for key in _REQUIRED_STRING_FIELDS:
        if key not in entry or entry[key] is None:
            raise MalformedOptionError(index, key, "field is required")
        value = entry[key]
        if not isinstance(value, str):
            raise MalformedOptionError(index, key, "must be a string")
        values[key] = value

    if not _AMOUNT_PATTERN.fullmatch(values["maxAmountRequired"]):
        raise MalformedOptionError(
            index,
            "maxAmountRequired",
            f"must be a non-negative integer string, got {values['maxAmountRequired']!r}",
        )

    if "maxTimeoutSeconds" not in entry or entry["maxTimeoutSeconds"] is None:
        raise MalformedOptionError(index, "maxTimeoutSeconds", "field is required")
    timeout = entry["maxTimeoutSeconds"]
    # bool is an int subclass; JSON true is not a timeout.
    if isinstance(timeout, bool) or not isinstance(timeout, int):
        raise MalformedOptionError(index, "maxTimeoutSeconds", "must be an integer")
    if timeout < 0:
        raise MalformedOptionError(index, "maxTimeoutSeconds", "must not be negative")

    extra = entry.get("extra")
    if extra is None:
        extra = {}
    if not isinstance(extra, Mapping):
        raise MalformedOptionError(index, "extra", "must be a JSON object")

    mime_type = entry.get("mimeType")
    if mime_type is not None and not isinstance(mime_type, str):
        raise MalformedOptionError(index, "mimeType", "must be a string")

    return PaymentOption(
        network=values["network"],
        scheme=values["scheme"],
        asset=values["asset"],
        pay_to=values["payTo"],
        max_amount_required=values["maxAmountRequired"],
        max_timeout_seconds=timeout,
        description=_optional_string(index, entry, "description"),
        resource=_optional_string(index, entry, "resource"),
        mime_type=mime_type,
        output_schema=entry.get("outputSchema"),
        extra=MappingProxyType(dict(extra)),
    )


def parse_requirements(raw: Any) -> PaymentRequirements:
    """
    Validate and decode a 402 response body.

    ``raw`` is normally the already-decoded JSON value; ``str`` and ``bytes``
    are decoded first. An empty ``accepts`` list is valid.

    :raises NotAChallengeError: the body is an error object or has no ``accepts``
    :raises MalformedOptionError: an option misses a field or has a bad value
    """
    body = _decode_body(raw)
    if not isinstance(body, Mapping):
        raise NotAChallengeError(
            f"402 body must be a JSON object, got {type(body).__name__}"
        )

    error = body.get("error")
    if "accepts" not in body:
        if error:
            raise NotAChallengeError(f"server returned an error object: {error}")
        raise NotAChallengeError("402 body has no 'accepts' field")

    accepts = body["accepts"]
    if not isinstance(accepts, list):
        raise NotAChallengeError("'accepts' must be a list of payment options")

    version = body.get("x402Version", 1)
    if isinstance(version, bool) or not isinstance(version, int):
        raise NotAChallengeError(f"'x402Version' must be an integer, got {version!r}")

    if error is not None and not isinstance(error, str):
        raise NotAChallengeError(f"server returned an error object: {error}")

    options = tuple(_parse_option(index, entry) for index, entry in enumerate(accepts))
    return PaymentRequirements(
        protocol_version=version,
        options=options,
        error=error or None,
    )
