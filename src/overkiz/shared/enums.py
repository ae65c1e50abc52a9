"""Domain enumerations used across all modules."""

from __future__ import annotations

from enum import Enum, unique


@unique
class ExecutionState(str, Enum):
    """Lifecycle states for a submitted execution."""

    SUBMITTED = "submitted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset({ExecutionState.COMPLETED, ExecutionState.FAILED, ExecutionState.CANCELLED})


@unique
class EventKind(str, Enum):
    """Normalised kinds of platform events."""

    PROGRESS = "progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    DEVICE_STATE = "device_state"
    OTHER = "other"


@unique
class LoginStrategyName(str, Enum):
    """Vendor login flows selectable from configuration."""

    PASSWORD = "password"
    COZYTOUCH = "cozytouch"
