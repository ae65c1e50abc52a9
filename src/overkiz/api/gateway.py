"""Single-request HTTP access to the Overkiz end-user API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from overkiz.auth.session import SessionManager
from overkiz.shared.exceptions import NotAuthorizedError, OverkizConnectionError, RequestError

logger = logging.getLogger(__name__)

API_PATH = "enduser-mobile-web/enduserAPI"


def base_url_for(host: str) -> str:
    """Return the end-user API root for a platform host name."""
    return f"https://{host}/{API_PATH}"


class HttpGateway:
    """Execute API requests with the current session's cookies.

    A 401 reply invalidates the session and the request is sent once more
    after a fresh login. A second 401 is raised as ``NotAuthorizedError``.
    """

    def __init__(self, base_url: str, sessions: SessionManager, *, timeout: float = 30.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._sessions = sessions
        self._timeout = timeout

    @property
    def sessions(self) -> SessionManager:
        return self._sessions

    def url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def request(self, method: str, path: str, *, json: Any = None) -> Any:
        """Send one API request and return its parsed JSON payload.

        Args:
            method: HTTP method.
            path: Path relative to the end-user API root.
            json: Optional JSON body.

        Returns:
            Decoded JSON, or ``None`` for an empty body.

        Raises:
            AuthenticationError: If no session could be obtained.
            NotAuthorizedError: If the request is refused again after re-login.
            RequestError: For any other error status, or a body that is not JSON.
            OverkizConnectionError: If the platform could not be reached.
        """
        resp = await self._send_authenticated(method, path, json)
        if resp.status_code == 401:
            logger.info("%s %s unauthorized, retrying after re-login", method, path)
            resp = await self._send_authenticated(method, path, json)
            if resp.status_code == 401:
                raise NotAuthorizedError(
                    f"{method} {path} unauthorized after re-login",
                    status_code=resp.status_code,
                    body=resp.text[:500],
                )

        if resp.status_code >= 400:
            raise RequestError(
                f"{method} {path} returned {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
                body=resp.text[:500],
            )

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise RequestError(
                f"{method} {path} returned a non-JSON body: {resp.text[:200]}",
                status_code=resp.status_code,
                body=resp.text[:500],
            ) from exc

    async def _send_authenticated(self, method: str, path: str, json: Any) -> httpx.Response:
        """Send with the current session, dropping that session on a 401."""
        session = await self._sessions.ensure_authenticated()
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.request(
                    method,
                    self.url(path),
                    json=json,
                    headers={"Cookie": session.cookie_header},
                )
        except httpx.TransportError as exc:
            raise OverkizConnectionError(f"{method} {path} failed: {exc!r}") from exc

        if resp.status_code == 401:
            self._sessions.invalidate(session)
        return resp
