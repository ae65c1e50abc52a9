"""Interfaces for the authentication module."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class LoginStrategy(Protocol):
    """Protocol for vendor-specific login credential producers."""

    async def get_login_data(self) -> dict[str, str]:
        """Produce the form fields posted to the platform ``login`` endpoint.

        Called once per login attempt; the result must not be cached.

        Returns:
            Form field mapping (e.g. ``{"jwt": ...}``).

        Raises:
            CredentialsRejectedError: If the vendor refuses the account.
            OverkizConnectionError: If the vendor cannot be reached.
        """
        ...
