"""High-level Overkiz client wiring sessions, requests and event polling."""

from __future__ import annotations

import logging
from typing import Any

from overkiz.api.gateway import HttpGateway, base_url_for
from overkiz.auth.interfaces import LoginStrategy
from overkiz.auth.session import DEFAULT_LOGIN_RETRIES, SessionManager
from overkiz.auth.strategies import build_login_strategy
from overkiz.config import Settings
from overkiz.events.listener import EventPollingEngine
from overkiz.events.tracker import Task
from overkiz.shared.models import Device, Execution, PollingInfo, Setup

logger = logging.getLogger(__name__)


class OverkizClient:
    """Entry point for talking to one Overkiz platform host.

    Nothing touches the network until the first request; login happens
    lazily and event polling starts with the first tracked execution.

    Usage::

        async with OverkizClient("ha110-1.overkiz.com", strategy) as client:
            task = await client.execute(execution)
            await task.wait(timeout=60)
    """

    def __init__(
        self,
        host: str,
        strategy: LoginStrategy,
        *,
        polling: PollingInfo | None = None,
        timeout: float = 30.0,
        login_max_retries: int = DEFAULT_LOGIN_RETRIES,
    ) -> None:
        self.host = host
        base_url = base_url_for(host)
        self.sessions = SessionManager(base_url, strategy, max_retries=login_max_retries, timeout=timeout)
        self.gateway = HttpGateway(base_url, self.sessions, timeout=timeout)
        self.events = EventPollingEngine(self.gateway, polling)

    @classmethod
    def from_settings(cls, settings: Settings) -> OverkizClient:
        return cls(
            settings.host,
            build_login_strategy(settings),
            polling=settings.polling_info(),
            timeout=settings.request_timeout,
            login_max_retries=settings.login_max_retries,
        )

    async def __aenter__(self) -> OverkizClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self.events.stop()

    async def get(self, path: str) -> Any:
        return await self.gateway.get(path)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.gateway.post(path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.gateway.delete(path)

    async def get_devices(self) -> list[Device]:
        raw = await self.get("setup/devices")
        if not isinstance(raw, list):
            return []
        return [Device.model_validate(item) for item in raw]

    async def get_setup(self) -> Setup:
        raw = await self.get("setup")
        return Setup.model_validate(raw or {})

    async def execute(self, execution: Execution) -> Task | None:
        """Submit an execution and return a task tracking its outcome.

        The platform event listener is registered before submission; events
        raised before registration are never delivered.

        Returns:
            The tracking ``Task``, or ``None`` when the platform returned no
            execution id.
        """
        async with self.events.registered():
            reply = await self.post("exec/apply", execution.to_payload())
            exec_id = reply.get("execId") if isinstance(reply, dict) else None
            if exec_id is None:
                logger.warning("exec/apply returned no execId for %r: %r", execution.label, reply)
                return None

            logger.info("submitted execution %s (%s)", exec_id, execution.label or "unlabelled")
            return Task(execution, str(exec_id), self.events)
