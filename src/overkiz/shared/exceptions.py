"""Hierarchical exception types for the Overkiz client."""

from __future__ import annotations


class OverkizError(Exception):
    """Base exception for all Overkiz client errors."""


# ── Transport ───────────────────────────────────────────────────


class OverkizConnectionError(OverkizError):
    """Network failure or transient server error; safe to retry."""


class PollTimeoutError(OverkizError):
    """An event poll did not complete within its timeout."""


# ── Authentication ──────────────────────────────────────────────


class AuthenticationError(OverkizError):
    """Login could not be completed."""


class CredentialsRejectedError(AuthenticationError):
    """The platform explicitly refused the supplied credentials."""


# ── Requests ────────────────────────────────────────────────────


class RequestError(OverkizError):
    """The platform answered a request with an error status."""

    def __init__(self, message: str, *, status_code: int, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class NotAuthorizedError(RequestError):
    """Still unauthorized after a fresh login."""
