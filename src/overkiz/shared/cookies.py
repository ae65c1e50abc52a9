"""Session cookie helpers.

This module intentionally avoids logging cookie values.
"""

from __future__ import annotations

from collections.abc import Iterable


def cookie_pairs(set_cookie_headers: Iterable[str]) -> tuple[str, ...]:
    """Keep the ``name=value`` part of each ``Set-Cookie`` header."""
    pairs: list[str] = []
    for header in set_cookie_headers:
        pair = header.split(";", 1)[0].strip()
        if "=" in pair and pair.split("=", 1)[0].strip():
            pairs.append(pair)
    return tuple(pairs)


def cookie_header(pairs: Iterable[str]) -> str:
    """Join cookie pairs into a ``Cookie`` request header value."""
    return ";".join(pairs)
