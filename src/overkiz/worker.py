"""Watch worker: log in and log the live Overkiz event stream."""

from __future__ import annotations

import asyncio
import logging

from overkiz.api.client import OverkizClient
from overkiz.config import Settings, get_settings
from overkiz.shared.models import Event

logger = logging.getLogger(__name__)


def _log_event(event: Event) -> None:
    logger.info("event %s subject=%s name=%s", event.kind.value, event.subject, event.payload.get("name", "?"))


async def run_loop(settings: Settings, *, duration: float | None = None) -> None:
    """Log every platform event until cancelled.

    Args:
        settings: Application settings.
        duration: Stop after this many seconds (default: run forever).
    """
    async with OverkizClient.from_settings(settings) as client:
        devices = await client.get_devices()
        logger.info("watching %s with %d device(s)", settings.host, len(devices))

        client.events.subscribe(None, _log_event)
        try:
            if duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(duration)
        finally:
            client.events.unsubscribe(None, _log_event)


def main() -> None:
    """Entry point for ``python -m overkiz.worker``."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = get_settings()
    asyncio.run(run_loop(settings))


if __name__ == "__main__":
    main()
