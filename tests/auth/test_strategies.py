"""Tests for vendor login strategies."""

from __future__ import annotations

import httpx
import pytest
import respx

from overkiz.auth.interfaces import LoginStrategy
from overkiz.auth.strategies import CozytouchLoginStrategy, PasswordLoginStrategy, build_login_strategy
from overkiz.config import Settings
from overkiz.shared.exceptions import CredentialsRejectedError, OverkizConnectionError

TOKEN_URL = "https://api.groupe-atlantic.com/token"
JWT_URL = "https://api.groupe-atlantic.com/gacoma/gacomawcfservice/accounts/jwt"


@pytest.fixture
def cozytouch() -> CozytouchLoginStrategy:
    return CozytouchLoginStrategy("user@example.com", "secret", timeout=5)


class TestPasswordLoginStrategy:
    async def test_login_data(self) -> None:
        strategy = PasswordLoginStrategy("user@example.com", "secret")

        assert await strategy.get_login_data() == {"userId": "user@example.com", "userPassword": "secret"}
        assert isinstance(strategy, LoginStrategy)


class TestCozytouchLoginStrategy:
    @respx.mock
    async def test_token_then_jwt(self, cozytouch: CozytouchLoginStrategy) -> None:
        token_route = respx.post(TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"access_token": "access-1", "token_type": "bearer"})
        )
        jwt_route = respx.get(JWT_URL).mock(return_value=httpx.Response(200, json="eyJhbGciOi.payload.sig"))

        data = await cozytouch.get_login_data()

        assert data == {"jwt": "eyJhbGciOi.payload.sig"}
        token_request = token_route.calls.last.request
        assert token_request.headers["Authorization"] == f"Basic {CozytouchLoginStrategy.CLIENT_ID}"
        assert "grant_type=password" in token_request.content.decode()
        assert jwt_route.calls.last.request.headers["Authorization"] == "Bearer access-1"

    @respx.mock
    async def test_unquoted_jwt_body_is_kept_whole(self, cozytouch: CozytouchLoginStrategy) -> None:
        respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json={"access_token": "access-1"}))
        respx.get(JWT_URL).mock(return_value=httpx.Response(200, text="eyJhbGciOi.payload.sig"))

        data = await cozytouch.get_login_data()

        assert data == {"jwt": "eyJhbGciOi.payload.sig"}

    @respx.mock
    async def test_missing_access_token(self, cozytouch: CozytouchLoginStrategy) -> None:
        respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json={"error": "invalid_grant"}))

        with pytest.raises(CredentialsRejectedError, match="no access token"):
            await cozytouch.get_login_data()

    @respx.mock
    async def test_token_refused(self, cozytouch: CozytouchLoginStrategy) -> None:
        respx.post(TOKEN_URL).mock(return_value=httpx.Response(400, json={"error": "invalid_grant"}))

        with pytest.raises(CredentialsRejectedError, match="token returned 400"):
            await cozytouch.get_login_data()

    @respx.mock
    async def test_empty_jwt(self, cozytouch: CozytouchLoginStrategy) -> None:
        respx.post(TOKEN_URL).mock(return_value=httpx.Response(200, json={"access_token": "access-1"}))
        respx.get(JWT_URL).mock(return_value=httpx.Response(200, text=""))

        with pytest.raises(CredentialsRejectedError, match="no jwt"):
            await cozytouch.get_login_data()

    @respx.mock
    async def test_server_error_is_transient(self, cozytouch: CozytouchLoginStrategy) -> None:
        respx.post(TOKEN_URL).mock(return_value=httpx.Response(502, text="Bad Gateway"))

        with pytest.raises(OverkizConnectionError):
            await cozytouch.get_login_data()

    @respx.mock
    async def test_connection_error_is_transient(self, cozytouch: CozytouchLoginStrategy) -> None:
        respx.post(TOKEN_URL).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(OverkizConnectionError, match="Cozytouch request failed"):
            await cozytouch.get_login_data()


class TestBuildLoginStrategy:
    def test_password(self, settings: Settings) -> None:
        assert isinstance(build_login_strategy(settings), PasswordLoginStrategy)

    def test_cozytouch(self) -> None:
        settings = Settings(username="u", password="p", login_strategy="cozytouch")

        assert isinstance(build_login_strategy(settings), CozytouchLoginStrategy)
