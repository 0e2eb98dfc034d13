"""Presentation-facing API for Pocket Alarm.

Services, sensors and notification actions go through this surface only;
nothing here mutates an alarm without going through the scheduler.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from .const import (
    ACTION_SNOOZE,
    ACTION_STOP,
    ALARM_NOTIFICATION_ID,
    ALARM_NOTIFICATION_PAYLOAD,
    DEFAULT_SNOOZE_MINUTES,
    ERROR_INVALID_TIME,
    ERROR_NO_CURRENT_ALARM,
    ERROR_NOT_FOUND,
    ERROR_SCHEDULING_FAILED,
    ERROR_STORE_UNAVAILABLE,
    ERROR_UNKNOWN_ACTION,
)
from .context.alarm_store import Alarm, AlarmStore
from .context.notifier import AlarmNotifier
from .context.scheduler import AlarmScheduler
from .errors import AlarmNotFound, SchedulingFailed, StoreUnavailable

_LOGGER = logging.getLogger(__name__)


@dataclass
class AlarmResult:
    """Result of a presentation-layer request."""

    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    error_code: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": self.data,
            "error_code": self.error_code,
        }


def _error_result(err: Exception) -> AlarmResult:
    """Map a core exception to a failed result."""
    if isinstance(err, AlarmNotFound):
        return AlarmResult(False, str(err), {"alarm_id": err.alarm_id}, ERROR_NOT_FOUND)
    if isinstance(err, SchedulingFailed):
        return AlarmResult(False, str(err), {"alarm_id": err.alarm_id}, ERROR_SCHEDULING_FAILED)
    if isinstance(err, StoreUnavailable):
        return AlarmResult(False, str(err), error_code=ERROR_STORE_UNAVAILABLE)
    if isinstance(err, ValueError):
        return AlarmResult(False, str(err), error_code=ERROR_INVALID_TIME)
    raise err


def _coerce_duration(duration: timedelta | int | float | None, default_minutes: int) -> timedelta:
    if duration is None:
        return timedelta(minutes=default_minutes)
    if isinstance(duration, timedelta):
        return duration
    return timedelta(minutes=float(duration))


class AlarmClockApi:
    """Narrow surface used by services and notification actions."""

    def __init__(
        self,
        scheduler: AlarmScheduler,
        store: AlarmStore,
        notifier: AlarmNotifier,
        snooze_minutes: int = DEFAULT_SNOOZE_MINUTES,
    ) -> None:
        self._scheduler = scheduler
        self._store = store
        self._notifier = notifier
        self._snooze_minutes = snooze_minutes

    async def list_alarms(self) -> AlarmResult:
        """Return every alarm in creation order."""
        try:
            alarms = await self._store.list_alarms()
        except StoreUnavailable as err:
            return _error_result(err)

        if not alarms:
            return AlarmResult(True, "No alarms found.", {"alarms": []})
        lines = [
            f"- {alarm.id}: {alarm.label} at {alarm.next_trigger.isoformat()} ({alarm.state})"
            for alarm in alarms
        ]
        return AlarmResult(
            True,
            "Alarms:\n" + "\n".join(lines),
            {"alarms": [alarm.as_dict() for alarm in alarms]},
        )

    async def create_alarm(self, time: Any, label: str | None = None) -> AlarmResult:
        """Create and arm a new alarm."""
        try:
            alarm = await self._scheduler.schedule_new(time, label)
        except (ValueError, SchedulingFailed, StoreUnavailable) as err:
            _LOGGER.warning("Creating alarm failed: %s", err)
            return _error_result(err)
        return AlarmResult(
            True,
            f"Alarm '{alarm.label}' set for {alarm.fire_at.isoformat()} (id: {alarm.id}).",
            {"alarm": alarm.as_dict()},
        )

    async def edit_alarm(self, alarm_id: int, time: Any, label: str | None = None) -> AlarmResult:
        """Move an existing alarm to a new time."""
        try:
            alarm = await self._scheduler.reschedule(alarm_id, time, label)
        except (AlarmNotFound, ValueError, SchedulingFailed, StoreUnavailable) as err:
            _LOGGER.warning("Editing alarm %s failed: %s", alarm_id, err)
            return _error_result(err)
        return AlarmResult(
            True,
            f"Alarm '{alarm.label}' moved to {alarm.fire_at.isoformat()} (id: {alarm.id}).",
            {"alarm": alarm.as_dict()},
        )

    async def delete_alarm(self, alarm_id: int) -> AlarmResult:
        """Cancel and remove an alarm."""
        try:
            removed = await self._scheduler.cancel(alarm_id)
        except StoreUnavailable as err:
            return _error_result(err)
        if not removed:
            return _error_result(AlarmNotFound(alarm_id))
        return AlarmResult(True, f"Alarm cancelled: {alarm_id}", {"alarm_id": alarm_id})

    async def _current(self) -> Alarm | None:
        await self._store.async_load()
        alarm_id = self._store.current_alarm_id
        if alarm_id is None:
            return None
        try:
            return await self._store.get(alarm_id)
        except AlarmNotFound:
            return None

    async def current_alarm(self) -> AlarmResult:
        """Return the alarm shown on the ringing screen."""
        try:
            alarm = await self._current()
        except StoreUnavailable as err:
            return _error_result(err)
        if alarm is None:
            return AlarmResult(False, "No alarm is ringing.", error_code=ERROR_NO_CURRENT_ALARM)
        return AlarmResult(True, f"Alarm '{alarm.label}' is ringing.", {"alarm": alarm.as_dict()})

    async def snooze_current(self, duration: timedelta | int | float | None = None) -> AlarmResult:
        """Snooze the ringing alarm (configured snooze length by default)."""
        try:
            alarm = await self._current()
            if alarm is None:
                return AlarmResult(False, "No alarm is ringing.", error_code=ERROR_NO_CURRENT_ALARM)
            snoozed = await self._scheduler.snooze(
                alarm.id, _coerce_duration(duration, self._snooze_minutes)
            )
        except (AlarmNotFound, ValueError, SchedulingFailed, StoreUnavailable) as err:
            _LOGGER.warning("Snoozing current alarm failed: %s", err)
            return _error_result(err)

        await self._notifier.async_dismiss(ALARM_NOTIFICATION_ID)
        return AlarmResult(
            True,
            f"Alarm snoozed until {snoozed.next_trigger.isoformat()} (id: {snoozed.id})",
            {"alarm": snoozed.as_dict()},
        )

    async def dismiss_current(self) -> AlarmResult:
        """Stop the ringing alarm."""
        try:
            alarm = await self._current()
            if alarm is None:
                return AlarmResult(False, "No alarm is ringing.", error_code=ERROR_NO_CURRENT_ALARM)
            dismissed = await self._scheduler.dismiss(alarm.id)
        except (AlarmNotFound, StoreUnavailable) as err:
            _LOGGER.warning("Dismissing current alarm failed: %s", err)
            return _error_result(err)

        await self._notifier.async_dismiss(ALARM_NOTIFICATION_ID)
        return AlarmResult(True, f"Alarm dismissed: {dismissed.id}", {"alarm": dismissed.as_dict()})

    async def handle_notification_action(self, action: str) -> AlarmResult:
        """Route a notification tap or action button."""
        if action == ACTION_SNOOZE:
            return await self.snooze_current()
        if action == ACTION_STOP:
            return await self.dismiss_current()
        if action == ALARM_NOTIFICATION_PAYLOAD:
            return await self.current_alarm()
        return AlarmResult(False, f"Unknown notification action: {action}", error_code=ERROR_UNKNOWN_ACTION)
