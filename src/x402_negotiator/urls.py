"""
URL helpers applied before a request reaches the negotiator.
"""

from __future__ import annotations

from typing import Mapping, Optional
from urllib.parse import urlencode

__all__ = ["build_url"]


def build_url(base_url: str, query: Optional[Mapping[str, str]] = None) -> str:
    """
    Append ``query`` to ``base_url``, joining with ``&`` when the URL already
    carries a query string.
    """
    if not query:
        return base_url
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({k: str(v) for k, v in query.items()})}"
