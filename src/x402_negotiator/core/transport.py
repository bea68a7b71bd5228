"""
HTTP transport used by the negotiator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol

import requests

__all__ = [
    "DEFAULT_HEADERS",
    "HttpResponse",
    "RequestsTransport",
    "Transport",
    "TransportError",
]

DEFAULT_HEADERS = {"Accept": "application/json"}


class TransportError(Exception):
    """Raised when no HTTP response could be obtained."""


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict, hash=False)
    body: Any = field(default=None, hash=False)
    text: str = ""

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class Transport(Protocol):
    def send(
        self,
        url: str,
        method: str,
        headers: Mapping[str, str],
        body: Any = None,
    ) -> HttpResponse:
        ...


def _decode_response(response: requests.Response) -> HttpResponse:
    text = response.text
    try:
        body: Any = response.json()
    except ValueError:
        body = text
    return HttpResponse(
        status_code=response.status_code,
        headers=dict(response.headers),
        body=body,
        text=text,
    )


class RequestsTransport:
    """
    :class:`Transport` backed by a :class:`requests.Session`.

    Mappings and lists are sent as JSON, ``str``/``bytes`` verbatim.
    """

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(
        self,
        url: str,
        method: str,
        headers: Mapping[str, str],
        body: Any = None,
    ) -> HttpResponse:
        kwargs: dict[str, Any] = {"headers": dict(headers), "timeout": self.timeout}
        if isinstance(body, (str, bytes, bytearray)):
            kwargs["data"] = body
        elif body is not None:
            kwargs["json"] = body

        logging.debug("%s %s", method, url)
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        return _decode_response(response)
