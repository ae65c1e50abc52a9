"""Stateful handles for submitted executions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from overkiz.events.listener import EventPollingEngine
from overkiz.shared.enums import EventKind, ExecutionState
from overkiz.shared.models import Event, Execution

logger = logging.getLogger(__name__)

_STATE_BY_KIND = {
    EventKind.PROGRESS: ExecutionState.IN_PROGRESS,
    EventKind.COMPLETED: ExecutionState.COMPLETED,
    EventKind.FAILED: ExecutionState.FAILED,
    EventKind.CANCELLED: ExecutionState.CANCELLED,
}


class Task:
    """Track one submitted execution by its server-issued id.

    The task subscribes to the polling engine on construction and detaches
    itself once it reaches a terminal state. Terminal states never change.
    """

    def __init__(self, execution: Execution, exec_id: str, engine: EventPollingEngine) -> None:
        self._execution = execution
        self._exec_id = exec_id
        self._engine = engine
        self._state = ExecutionState.SUBMITTED
        self._last_event: Event | None = None
        self._subscribers: list[Callable[[Task], None]] = []
        self._done = asyncio.Event()
        self._attached = False
        self.attach()

    def __repr__(self) -> str:
        return f"Task(exec_id={self._exec_id!r}, state={self._state.value!r})"

    @property
    def execution(self) -> Execution:
        return self._execution

    @property
    def exec_id(self) -> str:
        return self._exec_id

    @property
    def state(self) -> ExecutionState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state.is_terminal

    @property
    def last_event(self) -> Event | None:
        """The event behind the latest transition, e.g. to read a failure type."""
        return self._last_event

    def subscribe(self, callback: Callable[[Task], None]) -> Callable[[], None]:
        """Call ``callback(task)`` on every state change.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def attach(self) -> None:
        if not self._attached and not self.is_terminal:
            self._engine.subscribe(self._exec_id, self.handle_event)
            self._attached = True

    def detach(self) -> None:
        """Stop receiving events; the state is frozen where it is."""
        if self._attached:
            self._engine.unsubscribe(self._exec_id, self.handle_event)
            self._attached = False

    async def wait(self, timeout: float | None = None) -> ExecutionState:
        """Wait until the execution reaches a terminal state.

        Raises:
            asyncio.TimeoutError: If ``timeout`` elapses first.
        """
        await asyncio.wait_for(self._done.wait(), timeout=timeout)
        return self._state

    def handle_event(self, event: Event) -> None:
        if event.subject != self._exec_id or self.is_terminal:
            return

        new_state = _STATE_BY_KIND.get(event.kind)
        if new_state is None or new_state is self._state:
            return

        logger.info("execution %s: %s -> %s", self._exec_id, self._state.value, new_state.value)
        self._state = new_state
        self._last_event = event
        if new_state.is_terminal:
            self._done.set()
            self.detach()

        for callback in list(self._subscribers):
            try:
                callback(self)
            except Exception:
                logger.exception("task subscriber failed for execution %s", self._exec_id)
