"""Alarm scheduling for Pocket Alarm.

The scheduler never keeps alarm records of its own: every decision is read
from and written to the AlarmStore, and every armed alarm has exactly one
wake registration keyed by its id. Writes happen before registration; a
refused registration is compensated by undoing the write.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, time, timedelta
from typing import Any

from homeassistant.util import dt as dt_util

from ..const import (
    ALARM_STATE_DISMISSED,
    ALARM_STATE_SCHEDULED,
    ALARM_STATE_SNOOZED,
    PAST_TIME_ROLLOVER,
)
from ..errors import AlarmNotFound, SchedulingFailed, StoreUnavailable
from .alarm_store import Alarm, AlarmStore, deactivate_alarm
from .wake_service import WakeService

_LOGGER = logging.getLogger(__name__)


def _coerce_time_components(value: str) -> tuple[int, int, int] | None:
    """Return (hour, minute, second) if ``value`` is HH:MM or HH:MM:SS."""
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        numbers = [int(part) for part in parts]
    except ValueError:
        return None
    hour, minute = numbers[0], numbers[1]
    second = numbers[2] if len(numbers) == 3 else 0
    if 0 <= hour <= 23 and 0 <= minute <= 59 and 0 <= second <= 59:
        return hour, minute, second
    return None


def parse_alarm_time(value: Any, now: datetime) -> datetime:
    """Turn a caller-supplied time into an aware UTC datetime.

    Accepts an aware or naive ``datetime`` (naive means local time), a
    ``datetime.time`` or ``HH:MM[:SS]`` string (today at that local time),
    or an ISO datetime string. Raises ValueError for anything else.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, time):
        parsed = _today_at(value.hour, value.minute, value.second, now)
    elif isinstance(value, str):
        components = _coerce_time_components(value)
        if components is not None:
            parsed = _today_at(*components, now)
        else:
            parsed = dt_util.parse_datetime(value.strip())
            if parsed is None:
                raise ValueError(f"Invalid alarm time: {value!r}")
    else:
        raise ValueError(f"Invalid alarm time: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_util.DEFAULT_TIME_ZONE)
    return dt_util.as_utc(parsed)


def _today_at(hour: int, minute: int, second: int, now: datetime) -> datetime:
    local_now = dt_util.as_local(now)
    return local_now.replace(hour=hour, minute=minute, second=second, microsecond=0)


def resolve_fire_time(value: Any, now: datetime) -> datetime:
    """Return the fire time for ``value``, moved to tomorrow if it has passed.

    The rollover is applied exactly once: a time more than a day in the past
    is still only moved forward by 24 hours.
    """
    fire_at = parse_alarm_time(value, now)
    if fire_at < now:
        fire_at = fire_at + PAST_TIME_ROLLOVER
    return fire_at


class AlarmScheduler:
    """Create, edit, snooze, dismiss and cancel alarms."""

    def __init__(
        self,
        store: AlarmStore,
        wake: WakeService,
        clock: Callable[[], datetime] = dt_util.utcnow,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._store = store
        self._wake = wake
        self._clock = clock
        self._on_change = on_change

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    async def _async_register(self, alarm_id: int, trigger_at: datetime) -> bool:
        """Register a wake-up; a raising wake service counts as a refusal."""
        delay = max(trigger_at - self._clock(), timedelta(0))
        try:
            return bool(await self._wake.async_register_one_shot(alarm_id, delay))
        except Exception as err:
            _LOGGER.warning("Wake service error for alarm %s: %s", alarm_id, err)
            return False

    async def schedule_new(
        self,
        fire_at: Any,
        label: str | None = None,
        reschedule_on_boot: bool = True,
    ) -> Alarm:
        """Persist a new alarm and arm it. Raises SchedulingFailed on refusal."""
        resolved = resolve_fire_time(fire_at, self._clock())
        alarm = await self._store.create(
            {
                "fire_at": resolved,
                "label": label,
                "reschedule_on_boot": reschedule_on_boot,
            }
        )

        if not await self._async_register(alarm.id, resolved):
            try:
                await self._store.delete(alarm.id)
            except AlarmNotFound:
                pass
            except StoreUnavailable as err:
                _LOGGER.error("Rollback of alarm %s failed: %s", alarm.id, err)
            raise SchedulingFailed(alarm.id)

        _LOGGER.info("Alarm %s '%s' scheduled for %s", alarm.id, alarm.label, resolved.isoformat())
        self._changed()
        return alarm

    async def reschedule(
        self,
        alarm_id: int,
        new_fire_at: Any,
        new_label: str | None = None,
    ) -> Alarm:
        """Move an alarm to a new time (and optionally rename it)."""
        previous = await self._store.get(alarm_id)
        resolved = resolve_fire_time(new_fire_at, self._clock())
        label = (new_label or "").strip()

        def _apply(alarm: Alarm) -> None:
            alarm.fire_at = resolved
            if label:
                alarm.label = label
            alarm.active = True
            alarm.state = ALARM_STATE_SCHEDULED
            alarm.snoozed_until = None

        await self._wake.async_cancel(alarm_id)
        try:
            updated = await self._store.update(alarm_id, _apply)
        except StoreUnavailable:
            await self._async_rearm(previous)
            raise

        if not await self._async_register(alarm_id, resolved):
            await self._async_restore(previous)
            raise SchedulingFailed(alarm_id)

        await self._store.clear_current_alarm_id(alarm_id)
        _LOGGER.info("Alarm %s rescheduled for %s", alarm_id, resolved.isoformat())
        self._changed()
        return updated

    async def cancel(self, alarm_id: int) -> bool:
        """Deregister and delete an alarm. False when it does not exist."""
        had_registration = await self._wake.async_cancel(alarm_id)
        try:
            await self._store.delete(alarm_id)
        except AlarmNotFound:
            return False
        except StoreUnavailable:
            if had_registration:
                previous = await self._store.get(alarm_id)
                await self._async_rearm(previous)
            raise

        _LOGGER.info("Alarm %s cancelled", alarm_id)
        self._changed()
        return True

    async def snooze(self, alarm_id: int, duration: timedelta) -> Alarm:
        """Re-arm an alarm ``duration`` from now without touching its fire time."""
        if duration <= timedelta(0):
            raise ValueError("Snooze duration must be positive")

        previous = await self._store.get(alarm_id)
        until = self._clock() + duration

        def _apply(alarm: Alarm) -> None:
            alarm.snoozed_until = until
            alarm.active = True
            alarm.state = ALARM_STATE_SNOOZED

        updated = await self._store.update(alarm_id, _apply)
        if not await self._async_register(alarm_id, until):
            await self._async_restore(previous)
            raise SchedulingFailed(alarm_id, "snooze registration rejected")

        await self._store.clear_current_alarm_id(alarm_id)
        _LOGGER.info("Alarm %s snoozed until %s", alarm_id, until.isoformat())
        self._changed()
        return updated

    async def dismiss(self, alarm_id: int) -> Alarm:
        """Stop an alarm: drop its registration and mark it dismissed."""

        def _apply(alarm: Alarm) -> None:
            alarm.active = False
            alarm.state = ALARM_STATE_DISMISSED
            alarm.snoozed_until = None

        previous = await self._store.get(alarm_id)
        await self._wake.async_cancel(alarm_id)
        try:
            alarm = await self._store.update(alarm_id, _apply, release_current=True)
        except StoreUnavailable:
            await self._async_rearm(previous)
            raise

        _LOGGER.info("Alarm %s dismissed", alarm_id)
        self._changed()
        return alarm

    async def async_reconcile(self) -> int:
        """Re-register every armed alarm after a restart.

        Missed alarms are registered with no delay so they fire right away.
        Alarms that cannot be re-armed are marked inactive.
        """
        registered = 0
        for alarm in await self._store.list_alarms():
            if not alarm.active:
                continue
            if alarm.reschedule_on_boot and await self._async_register(alarm.id, alarm.next_trigger):
                registered += 1
                continue
            _LOGGER.warning("Alarm %s could not be re-armed, marking inactive", alarm.id)
            try:
                await self._store.update(alarm.id, deactivate_alarm)
            except AlarmNotFound:
                continue

        if registered:
            _LOGGER.info("Re-armed %d alarms", registered)
        self._changed()
        return registered

    async def async_next_alarm(self) -> Alarm | None:
        """Return the armed alarm that fires first."""
        armed = [alarm for alarm in await self._store.list_alarms() if alarm.active]
        if not armed:
            return None
        return min(armed, key=lambda alarm: alarm.next_trigger)

    async def _async_restore(self, previous: Alarm) -> None:
        """Put ``previous`` back after a refused registration."""
        try:
            await self._store.put(previous)
        except AlarmNotFound:
            return
        if previous.active:
            await self._async_rearm(previous)

    async def _async_rearm(self, previous: Alarm) -> None:
        """Re-register ``previous``; deactivate it if that is refused too."""
        if not previous.active:
            return
        if await self._async_register(previous.id, previous.next_trigger):
            return
        _LOGGER.warning("Alarm %s lost its wake registration, marking inactive", previous.id)
        try:
            await self._store.update(previous.id, deactivate_alarm)
        except (AlarmNotFound, StoreUnavailable) as err:
            _LOGGER.error("Could not deactivate alarm %s: %s", previous.id, err)