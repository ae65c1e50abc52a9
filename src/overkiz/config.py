"""Centralised configuration via Pydantic Settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings

from overkiz.shared.enums import LoginStrategyName
from overkiz.shared.models import PollingInfo


class Settings(BaseSettings):
    """Client configuration loaded from environment variables."""

    model_config = {"env_prefix": "OVERKIZ_", "frozen": True}

    # Platform
    # Cozytouch accounts live on ha110-1, Somfy TaHoma Europe on ha101-1.
    host: str = "ha110-1.overkiz.com"
    request_timeout: float = 30.0

    # Login
    username: str = ""
    password: str = ""
    login_strategy: LoginStrategyName = LoginStrategyName.COZYTOUCH
    # Additional attempts after the first one on transient failures.
    login_max_retries: int = Field(default=3, ge=0)

    # Event polling
    poll_interval: float = 2.0
    poll_timeout: float = 10.0
    poll_linger: float = 30.0

    def polling_info(self) -> PollingInfo:
        return PollingInfo(interval=self.poll_interval, timeout=self.poll_timeout, linger=self.poll_linger)


def get_settings() -> Settings:
    """Factory; allows overriding in tests."""
    return Settings()
