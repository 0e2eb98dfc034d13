"""Wake callback for fired alarms."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from homeassistant.util import dt as dt_util

from ..const import (
    ALARM_NOTIFICATION_BODY,
    ALARM_NOTIFICATION_ID,
    ALARM_NOTIFICATION_PAYLOAD,
    ALARM_STATE_FIRING,
    DEFAULT_ALARM_LABEL,
    FIRE_TOLERANCE,
)
from ..errors import AlarmNotFound, StoreUnavailable
from .alarm_store import Alarm, AlarmStore, deactivate_alarm
from .notifier import AlarmNotifier
from .wake_service import WakeService

_LOGGER = logging.getLogger(__name__)


class _NoLongerDue(Exception):
    """Raised inside a store mutation when the alarm changed under us."""


@dataclass
class FireResult:
    """Outcome of one wake invocation."""

    alarm_id: int | None
    label: str
    notified: bool
    fired_at: datetime
    error: str | None = None

    @property
    def fallback(self) -> bool:
        """True when no due alarm was found and the generic label was used."""
        return self.alarm_id is None

    def as_dict(self) -> dict[str, Any]:
        return {
            "alarm_id": self.alarm_id,
            "label": self.label,
            "notified": self.notified,
            "fired_at": self.fired_at.isoformat(),
            "fallback": self.fallback,
            "error": self.error,
        }


class FireHandler:
    """Handle a wake-up from the wake service.

    Holds no alarm state of its own: each invocation reloads what it needs
    from the store, so it works the same after a restart. Never raises.
    """

    def __init__(
        self,
        store: AlarmStore,
        notifier: AlarmNotifier,
        clock: Callable[[], datetime] = dt_util.utcnow,
        on_fire: Callable[[FireResult], None] | None = None,
        tolerance: timedelta = FIRE_TOLERANCE,
        wake: WakeService | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._clock = clock
        self._on_fire = on_fire
        self._tolerance = tolerance
        self._wake = wake

    async def async_handle_wake(self, alarm_id: int | None = None) -> FireResult:
        """Fire the first due alarm and show its notification."""
        now = self._clock()
        fired: Alarm | None = None
        error: str | None = None

        try:
            await self._store.async_load()
            fired = await self._async_claim_due(now)
            await self._async_settle_registrations(alarm_id, fired, now)
        except StoreUnavailable as err:
            _LOGGER.error("Alarm store unavailable while handling wake %s: %s", alarm_id, err)
            error = str(err)

        if fired is None:
            _LOGGER.warning("No due alarm found for wake %s, using generic notification", alarm_id)
            label = DEFAULT_ALARM_LABEL
        else:
            label = fired.label
            _LOGGER.info("Alarm %s '%s' fired", fired.id, label)

        notified = await self._notifier.async_show(
            ALARM_NOTIFICATION_ID,
            label,
            ALARM_NOTIFICATION_BODY,
            ALARM_NOTIFICATION_PAYLOAD,
        )

        result = FireResult(
            alarm_id=fired.id if fired else None,
            label=label,
            notified=notified,
            fired_at=now,
            error=error,
        )
        if self._on_fire is not None:
            try:
                self._on_fire(result)
            except Exception:
                _LOGGER.exception("Alarm fire listener failed")
        return result

    async def _async_claim_due(self, now: datetime) -> Alarm | None:
        """Mark the first due alarm (insertion order) as firing.

        Each candidate is re-checked inside the store's atomic claim, so an
        alarm cancelled or rescheduled concurrently is skipped, not fired.
        """
        deadline = now + self._tolerance

        def _mark_firing(alarm: Alarm) -> None:
            if not alarm.active or alarm.next_trigger > deadline:
                raise _NoLongerDue
            alarm.active = False
            alarm.state = ALARM_STATE_FIRING
            alarm.snoozed_until = None
            alarm.last_fired_at = now
            alarm.fire_count += 1

        for candidate in await self._store.list_alarms():
            if not candidate.active or candidate.next_trigger > deadline:
                continue
            try:
                return await self._store.claim(candidate.id, _mark_firing)
            except (AlarmNotFound, _NoLongerDue):
                _LOGGER.debug("Alarm %s changed before it could fire, skipping", candidate.id)
        return None

    async def _async_settle_registrations(
        self, alarm_id: int | None, fired: Alarm | None, now: datetime
    ) -> None:
        """Keep one wake registration per armed alarm after a wake.

        The fired alarm may still hold its own pending registration when it
        was claimed through another alarm's wake, and that other alarm has
        just used its registration up.
        """
        if self._wake is None:
            return
        if fired is not None:
            await self._wake.async_cancel(fired.id)
        if alarm_id is None or (fired is not None and fired.id == alarm_id):
            return

        try:
            woken = await self._store.get(alarm_id)
        except AlarmNotFound:
            return
        if not woken.active:
            return

        delay = max(woken.next_trigger - now, timedelta(0))
        try:
            registered = await self._wake.async_register_one_shot(alarm_id, delay)
        except Exception as err:
            _LOGGER.warning("Wake service error for alarm %s: %s", alarm_id, err)
            registered = False
        if registered:
            _LOGGER.debug("Re-armed alarm %s after wake for another alarm", alarm_id)
            return

        _LOGGER.warning("Alarm %s could not be re-armed, marking inactive", alarm_id)
        try:
            await self._store.update(alarm_id, deactivate_alarm)
        except (AlarmNotFound, StoreUnavailable) as err:
            _LOGGER.error("Could not deactivate alarm %s: %s", alarm_id, err)
