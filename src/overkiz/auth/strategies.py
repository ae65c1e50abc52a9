"""Vendor login strategies producing Overkiz login credentials."""

from __future__ import annotations

import logging

import httpx

from overkiz.config import Settings
from overkiz.shared.enums import LoginStrategyName
from overkiz.shared.exceptions import CredentialsRejectedError, OverkizConnectionError

logger = logging.getLogger(__name__)


class PasswordLoginStrategy:
    """Plain user id / password login accepted by most Overkiz vendors.

    Implements the ``LoginStrategy`` protocol.
    """

    def __init__(self, username: str, password: str) -> None:
        self._username = username
        self._password = password

    async def get_login_data(self) -> dict[str, str]:
        return {"userId": self._username, "userPassword": self._password}


class CozytouchLoginStrategy:
    """Atlantic Cozytouch login: OAuth password grant, then a JWT exchange.

    Implements the ``LoginStrategy`` protocol. The resulting JWT is what the
    Overkiz ``login`` endpoint expects from Cozytouch accounts.
    """

    CLIENT_ID = "czduc0RZZXdWbjVGbVV4UmlYN1pVSUM3ZFI4YTphSDEzOXZmbzA1ZGdqeDJkSFVSQkFTbmhCRW9h"
    BASE_URL = "https://api.groupe-atlantic.com"

    def __init__(self, username: str, password: str, *, timeout: float = 30.0) -> None:
        self._username = username
        self._password = password
        self._timeout = timeout

    async def get_login_data(self) -> dict[str, str]:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                access_token = await self._get_access_token(client)
                jwt = await self._get_jwt(client, access_token)
        except httpx.TransportError as exc:
            raise OverkizConnectionError(f"Cozytouch request failed: {exc!r}") from exc
        return {"jwt": jwt}

    async def _get_access_token(self, client: httpx.AsyncClient) -> str:
        resp = await client.post(
            f"{self.BASE_URL}/token",
            data={"grant_type": "password", "username": self._username, "password": self._password},
            headers={"Authorization": f"Basic {self.CLIENT_ID}"},
        )
        _raise_for_status(resp, "token")

        token = _json_or_none(resp)
        access_token = token.get("access_token") if isinstance(token, dict) else None
        if not isinstance(access_token, str) or not access_token:
            raise CredentialsRejectedError("Cozytouch returned no access token, check your credentials")
        return access_token

    async def _get_jwt(self, client: httpx.AsyncClient, access_token: str) -> str:
        resp = await client.get(
            f"{self.BASE_URL}/gacoma/gacomawcfservice/accounts/jwt",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        _raise_for_status(resp, "jwt")

        # The body is a JSON string literal, e.g. "\"eyJ...\"".
        jwt = _json_or_none(resp)
        if not isinstance(jwt, str):
            jwt = resp.text.strip()
        if not jwt:
            raise CredentialsRejectedError("Cozytouch returned no jwt, check your credentials")
        logger.info("cozytouch jwt obtained")
        return jwt


def _raise_for_status(resp: httpx.Response, step: str) -> None:
    if resp.status_code >= 500:
        raise OverkizConnectionError(f"Cozytouch {step} returned {resp.status_code}")
    if resp.status_code >= 400:
        raise CredentialsRejectedError(f"Cozytouch {step} returned {resp.status_code}: {resp.text[:200]}")


def _json_or_none(resp: httpx.Response) -> object:
    try:
        return resp.json()
    except ValueError:
        return None


def build_login_strategy(settings: Settings) -> PasswordLoginStrategy | CozytouchLoginStrategy:
    """Instantiate the login strategy selected by ``settings.login_strategy``."""
    if settings.login_strategy is LoginStrategyName.COZYTOUCH:
        return CozytouchLoginStrategy(settings.username, settings.password, timeout=settings.request_timeout)
    return PasswordLoginStrategy(settings.username, settings.password)
