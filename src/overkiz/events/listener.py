"""Serialized event polling and dispatch."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import AsyncIterator, Callable
from typing import Any

from overkiz.shared.exceptions import OverkizError, PollTimeoutError, RequestError
from overkiz.shared.models import Event, PollingInfo

logger = logging.getLogger(__name__)

EventCallback = Callable[[Event], None]
ErrorCallback = Callable[[Exception], None]


class EventPollingEngine:
    """Fetch platform events on a fixed interval and fan them out to listeners.

    Listeners subscribe per subject (execution id or device URL), or to every
    event with ``subject=None``. At most one poll is in flight at a time, and
    a failed poll only costs that cycle. The background loop starts on the
    first subscription and ends on :meth:`stop`, or once it has been without
    subscribers for ``PollingInfo.linger`` seconds.

    ``gateway`` is anything with an async ``post(path, json=None)``, normally
    an :class:`~overkiz.api.gateway.HttpGateway`.
    """

    def __init__(self, gateway: Any, polling: PollingInfo | None = None, *, auto_start: bool = True) -> None:
        self._gateway = gateway
        self._polling = polling or PollingInfo()
        self._auto_start = auto_start
        self._listeners: dict[str | None, list[EventCallback]] = {}
        self._error_listeners: list[ErrorCallback] = []
        self._listener_id: str | None = None
        self._poll_lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None
        self._idle_since: float | None = time.monotonic()
        self._holds = 0

    @property
    def polling(self) -> PollingInfo:
        return self._polling

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def listener_id(self) -> str | None:
        """Platform-side event listener id, once registered."""
        return self._listener_id

    def has_listeners(self, subject: str | None = None) -> bool:
        if subject is None:
            return bool(self._listeners)
        return subject in self._listeners

    # ── Registration ────────────────────────────────────────────

    def subscribe(self, subject: str | None, callback: EventCallback) -> None:
        """Deliver events about ``subject`` (or all events when ``None``) to ``callback``."""
        self._listeners.setdefault(subject, []).append(callback)
        self._idle_since = None
        if self._auto_start:
            self._ensure_running()

    def unsubscribe(self, subject: str | None, callback: EventCallback) -> None:
        callbacks = self._listeners.get(subject)
        if not callbacks or callback not in callbacks:
            return
        callbacks.remove(callback)
        if not callbacks:
            del self._listeners[subject]
        if not self._listeners:
            self._idle_since = time.monotonic()

    def add_error_listener(self, callback: ErrorCallback) -> None:
        """Report poll-cycle failures to ``callback``; no caller awaits a poll."""
        self._error_listeners.append(callback)

    def remove_error_listener(self, callback: ErrorCallback) -> None:
        if callback in self._error_listeners:
            self._error_listeners.remove(callback)

    # ── Polling ─────────────────────────────────────────────────

    async def poll_once(self) -> int:
        """Run one poll cycle and dispatch what it returned.

        Registration happens outside the poll timeout, so a slow
        ``events/register`` is never cut off after the platform created the
        listener.

        Returns:
            Number of events dispatched; 0 when the cycle failed.
        """
        async with self._poll_lock:
            try:
                await self._register()
                events = await asyncio.wait_for(self._fetch(), timeout=self._polling.timeout)
            except asyncio.TimeoutError:
                self._report(PollTimeoutError(f"event poll exceeded {self._polling.timeout}s"))
                return 0
            except RequestError as exc:
                if exc.status_code == 400:
                    # The platform forgets listeners that are not fetched for a while.
                    logger.info("event listener %s expired, will register again", self._listener_id)
                    self._listener_id = None
                self._report(exc)
                return 0
            except OverkizError as exc:
                self._report(exc)
                return 0
            except Exception as exc:
                logger.exception("unexpected event poll error: %s", exc)
                self._report(exc)
                return 0

            for event in events:
                self._dispatch(event)
            if events:
                logger.debug("dispatched %d event(s)", len(events))
            return len(events)

    async def ensure_registered(self) -> str:
        """Register the platform event listener now if it is not registered.

        The platform only delivers events raised after registration, so this
        must complete before a command is submitted.

        Returns:
            The platform listener id.
        """
        async with self._poll_lock:
            return await self._register()

    @contextlib.asynccontextmanager
    async def registered(self) -> AsyncIterator[str]:
        """Keep a registered listener alive for the duration of the block.

        The loop does not go idle or unregister while the block runs, so a
        command submitted inside it cannot miss its own events.
        """
        self._holds += 1
        try:
            yield await self.ensure_registered()
        finally:
            self._holds -= 1
            if not self._listeners and not self._holds:
                self._idle_since = time.monotonic()

    async def _register(self) -> str:
        if self._listener_id is None:
            reply = await self._gateway.post("events/register")
            listener_id = reply.get("id") if isinstance(reply, dict) else None
            if not listener_id:
                raise OverkizError(f"event listener registration returned no id: {reply!r}")
            self._listener_id = str(listener_id)
            logger.info("registered event listener %s", self._listener_id)
        return self._listener_id

    async def _fetch(self) -> list[Event]:
        raw_events = await self._gateway.post(f"events/{self._listener_id}/fetch")
        if not isinstance(raw_events, list):
            return []
        return [Event.from_raw(raw) for raw in raw_events if isinstance(raw, dict)]

    def _dispatch(self, event: Event) -> None:
        # Snapshot: callbacks may subscribe or unsubscribe while we iterate.
        callbacks = [*self._listeners.get(event.subject, ()), *self._listeners.get(None, ())]
        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception("event listener failed on %s event for %s", event.kind.value, event.subject)

    def _report(self, exc: Exception) -> None:
        logger.warning("event poll failed: %s", exc)
        for callback in list(self._error_listeners):
            try:
                callback(exc)
            except Exception:
                logger.exception("error listener failed")

    # ── Loop lifecycle ──────────────────────────────────────────

    def _ensure_running(self) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self.start()

    def start(self) -> None:
        """Start the background polling loop if it is not running."""
        if self.is_running:
            return
        self._task = asyncio.ensure_future(self._run())
        logger.info("event polling started (interval=%ss)", self._polling.interval)

    async def stop(self) -> None:
        """Stop the loop and unregister the platform listener."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._unregister()
        logger.info("event polling stopped")

    async def _run(self) -> None:
        while True:
            await self.poll_once()
            if self._idle_expired():
                await self._unregister()
                # Someone may have subscribed while unregistering.
                if self._idle_expired():
                    logger.info("no subscribers for %ss, event polling idle", self._polling.linger)
                    return
            await asyncio.sleep(self._polling.interval)

    def _idle_expired(self) -> bool:
        if self._listeners or self._holds or self._idle_since is None:
            return False
        return time.monotonic() - self._idle_since >= self._polling.linger

    async def _unregister(self) -> None:
        async with self._poll_lock:
            listener_id = self._listener_id
            if listener_id is None:
                return
            try:
                await self._gateway.post(f"events/{listener_id}/unregister")
            except OverkizError as exc:
                logger.warning("could not unregister event listener %s: %s", listener_id, exc)
            # Left in place when cancelled above, so stop() can retry.
            if self._listener_id == listener_id:
                self._listener_id = None
