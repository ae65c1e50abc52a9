"""Authenticated session state for the Overkiz platform."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import httpx

from overkiz.auth.interfaces import LoginStrategy
from overkiz.shared.cookies import cookie_header, cookie_pairs
from overkiz.shared.exceptions import AuthenticationError, CredentialsRejectedError, OverkizConnectionError

logger = logging.getLogger(__name__)

DEFAULT_LOGIN_RETRIES = 3


@dataclass(frozen=True, slots=True)
class Session:
    """Cookies returned by one successful login."""

    cookies: tuple[str, ...]

    @property
    def cookie_header(self) -> str:
        return cookie_header(self.cookies)


class SessionManager:
    """Own the platform session and perform lazy, single-flight logins.

    The session is either fully present or absent. Callers that hold a
    ``Session`` across an ``await`` must pass it back to :meth:`invalidate`
    so that a newer session obtained concurrently is not discarded.
    """

    def __init__(
        self,
        base_url: str,
        strategy: LoginStrategy,
        *,
        max_retries: int = DEFAULT_LOGIN_RETRIES,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._strategy = strategy
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self._max_retries = max_retries
        self._timeout = timeout
        self._session: Session | None = None
        self._login_task: asyncio.Task[Session] | None = None

    def current_session(self) -> Session | None:
        return self._session

    def invalidate(self, session: Session | None = None) -> None:
        """Discard the current session.

        Args:
            session: The session the caller saw rejected. When given and no
                longer current, the call does nothing.
        """
        if session is not None and session is not self._session:
            return
        if self._session is not None:
            logger.info("session invalidated")
        self._session = None

    async def ensure_authenticated(self) -> Session:
        """Return the current session, logging in first if there is none.

        Concurrent callers share one in-flight login attempt.

        Raises:
            AuthenticationError: If login failed.
        """
        if self._session is not None:
            return self._session

        if self._login_task is None:
            task = asyncio.ensure_future(self._login())
            task.add_done_callback(self._login_finished)
            self._login_task = task

        return await asyncio.shield(self._login_task)

    def _login_finished(self, task: asyncio.Task[Session]) -> None:
        if self._login_task is task:
            self._login_task = None

    async def _login(self) -> Session:
        attempts = self._max_retries + 1
        attempt = 1
        while True:
            try:
                session = await self._login_once()
                break
            except OverkizConnectionError as exc:
                logger.warning("login attempt %d/%d failed: %s", attempt, attempts, exc)
                if attempt >= attempts:
                    raise AuthenticationError(f"login failed after {attempts} attempts: {exc}") from exc
                attempt += 1

        self._session = session
        logger.info("login successful (cookies=%d)", len(session.cookies))
        return session

    async def _login_once(self) -> Session:
        """Perform one credential exchange and one ``login`` request."""
        login_data = await self._strategy.get_login_data()

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(f"{self._base_url}/login", data=login_data)
        except httpx.TransportError as exc:
            raise OverkizConnectionError(f"login request failed: {exc!r}") from exc

        if resp.status_code >= 500:
            raise OverkizConnectionError(f"login returned {resp.status_code}")

        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.status_code >= 400 or not isinstance(body, dict) or body.get("success") is not True:
            error = body.get("error") if isinstance(body, dict) else None
            raise CredentialsRejectedError(f"login rejected ({resp.status_code}): {error or resp.text[:200]}")

        cookies = cookie_pairs(resp.headers.get_list("set-cookie"))
        if not cookies:
            raise AuthenticationError("login succeeded but returned no session cookies")
        return Session(cookies=cookies)
