"""Shared pytest fixtures for the overkiz test suite."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from overkiz.api.gateway import HttpGateway
from overkiz.auth.session import SessionManager
from overkiz.auth.strategies import PasswordLoginStrategy
from overkiz.config import Settings
from overkiz.shared.models import Action, Command, Execution, PollingInfo

BASE_URL = "https://overkiz.test/enduser-mobile-web/enduserAPI"


@pytest.fixture()
def settings() -> Settings:
    """Return a Settings instance with test defaults."""
    return Settings(
        host="overkiz.test",
        username="user@example.com",
        password="secret",
        login_strategy="password",
        poll_interval=0.01,
        poll_timeout=1.0,
        poll_linger=0.0,
    )


@pytest.fixture()
def strategy() -> PasswordLoginStrategy:
    return PasswordLoginStrategy("user@example.com", "secret")


@pytest.fixture()
def sessions(strategy: PasswordLoginStrategy) -> SessionManager:
    return SessionManager(BASE_URL, strategy, timeout=5)


@pytest.fixture()
def gateway(sessions: SessionManager) -> HttpGateway:
    return HttpGateway(BASE_URL, sessions, timeout=5)


@pytest.fixture()
def polling() -> PollingInfo:
    return PollingInfo(interval=0.01, timeout=1.0, linger=0.0)


@pytest.fixture()
def sample_execution() -> Execution:
    return Execution(
        label="heater on",
        actions=[
            Action(
                device_url="io://1234-5678-9012/5432111",
                commands=[Command(name="setHeatingLevel", parameters=["comfort"])],
            )
        ],
    )


class FakeGateway:
    """In-memory stand-in for HttpGateway used by event tests.

    ``fetches`` is a list of replies (or exceptions) returned by successive
    ``events/<id>/fetch`` calls; an exhausted list yields no events.
    """

    def __init__(self, fetches: list[Any] | None = None, *, listener_id: str = "listener-1") -> None:
        self.fetches = list(fetches or [])
        self.listener_id = listener_id
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def post(self, path: str, json: Any = None) -> Any:
        self.calls.append(path)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if path == "events/register":
                return {"id": self.listener_id}
            if path.endswith("/unregister"):
                return None
            reply = self.fetches.pop(0) if self.fetches else []
            if isinstance(reply, Exception):
                raise reply
            return reply
        finally:
            self.in_flight -= 1


@pytest.fixture()
def fake_gateway() -> FakeGateway:
    return FakeGateway()
