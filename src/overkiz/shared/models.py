"""Frozen Pydantic domain models shared by all modules."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from overkiz.shared.enums import EventKind


class Command(BaseModel):
    """A single device command with positional parameters."""

    model_config = {"frozen": True, "populate_by_name": True}

    name: str
    parameters: list[Any] = Field(default_factory=list)


class Action(BaseModel):
    """Commands addressed to one device."""

    model_config = {"frozen": True, "populate_by_name": True}

    device_url: str = Field(alias="deviceURL")
    commands: list[Command] = Field(default_factory=list)


class Execution(BaseModel):
    """A command batch submitted to ``exec/apply``."""

    model_config = {"frozen": True, "populate_by_name": True}

    label: str = ""
    actions: list[Action] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        """Serialise with the platform's camelCase field names."""
        return self.model_dump(by_alias=True)


class PollingInfo(BaseModel):
    """Cadence of the event polling loop, in seconds."""

    model_config = {"frozen": True}

    interval: float = Field(default=2.0, gt=0)
    timeout: float = Field(default=10.0, gt=0)
    linger: float = Field(default=30.0, ge=0)


class Event(BaseModel):
    """A platform event reduced to subject, kind and raw payload."""

    model_config = {"frozen": True}

    subject: str
    kind: EventKind
    payload: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> Event:
        """Build an event from one entry of an ``events/<id>/fetch`` reply."""
        subject = raw.get("execId") or raw.get("deviceURL") or raw.get("gatewayId") or ""
        return cls(subject=str(subject), kind=_event_kind(raw), payload=raw)


def _event_kind(raw: dict[str, Any]) -> EventKind:
    name = raw.get("name", "")
    if name == "ExecutionStateChangedEvent":
        new_state = str(raw.get("newState", "")).upper()
        if new_state == "COMPLETED":
            return EventKind.COMPLETED
        if new_state == "FAILED":
            failure = str(raw.get("failureType", "")).upper()
            return EventKind.CANCELLED if "CANCELLED" in failure else EventKind.FAILED
        return EventKind.PROGRESS
    if name == "ExecutionRegisteredEvent":
        return EventKind.PROGRESS
    if name == "DeviceStateChangedEvent":
        return EventKind.DEVICE_STATE
    return EventKind.OTHER


class DeviceState(BaseModel):
    model_config = {"frozen": True}

    name: str
    type: int = 0
    value: Any = None


class Device(BaseModel):
    """A device as listed by ``setup/devices``."""

    model_config = {"frozen": True, "populate_by_name": True}

    device_url: str = Field(alias="deviceURL")
    label: str = ""
    controllable_name: str = Field(default="", alias="controllableName")
    ui_class: str = Field(default="", alias="uiClass")
    available: bool = True
    states: list[DeviceState] = Field(default_factory=list)

    def state_value(self, name: str) -> Any:
        """Return the value of a named state, or ``None`` when absent."""
        for state in self.states:
            if state.name == name:
                return state.value
        return None


class Gateway(BaseModel):
    model_config = {"frozen": True, "populate_by_name": True}

    gateway_id: str = Field(alias="gatewayId")
    alive: bool = True


class Setup(BaseModel):
    """The user's whole installation as returned by ``setup``."""

    model_config = {"frozen": True, "populate_by_name": True}

    gateways: list[Gateway] = Field(default_factory=list)
    devices: list[Device] = Field(default_factory=list)
