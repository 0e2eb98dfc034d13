"""Exceptions raised by the Pocket Alarm core."""

from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError


class PocketAlarmError(HomeAssistantError):
    """Base error for Pocket Alarm."""


class AlarmNotFound(PocketAlarmError):
    """Operation referenced an alarm id with no live record."""

    def __init__(self, alarm_id: int) -> None:
        super().__init__(f"Alarm {alarm_id} not found")
        self.alarm_id = alarm_id


class SchedulingFailed(PocketAlarmError):
    """The wake service rejected a registration."""

    def __init__(self, alarm_id: int | None, reason: str = "wake registration rejected") -> None:
        super().__init__(f"Failed to schedule alarm {alarm_id}: {reason}")
        self.alarm_id = alarm_id
        self.reason = reason


class StoreUnavailable(PocketAlarmError):
    """The durable alarm store could not be read or written."""
