"""One-shot wake registrations backed by Home Assistant's event helpers."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.event import async_track_point_in_utc_time
from homeassistant.util import dt as dt_util

from ..const import DOMAIN

_LOGGER = logging.getLogger(__name__)

WakeHandler = Callable[[int], Awaitable[Any]]


class WakeService:
    """Register one wake-up per alarm id and call the handler when it is due.

    Registrations hold only the id and the trigger instant. Registering an id
    that is already registered replaces the previous registration.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        clock: Callable[[], datetime] = dt_util.utcnow,
    ) -> None:
        self._hass = hass
        self._clock = clock
        self._handler: WakeHandler | None = None
        self._registrations: dict[int, CALLBACK_TYPE] = {}
        self._trigger_times: dict[int, datetime] = {}

    def set_handler(self, handler: WakeHandler) -> None:
        """Set the coroutine invoked with the alarm id on wake."""
        self._handler = handler

    def is_registered(self, alarm_id: int) -> bool:
        """Return whether a wake-up is pending for ``alarm_id``."""
        return alarm_id in self._registrations

    def trigger_time(self, alarm_id: int) -> datetime | None:
        """Return the pending trigger instant for ``alarm_id``."""
        return self._trigger_times.get(alarm_id)

    async def async_register_one_shot(self, alarm_id: int, delay: timedelta) -> bool:
        """Schedule a wake-up ``delay`` from now. Returns False if refused."""
        if self._handler is None:
            _LOGGER.warning("Wake registration for alarm %s refused: no handler", alarm_id)
            return False
        if self._hass.is_stopping:
            _LOGGER.warning("Wake registration for alarm %s refused: shutting down", alarm_id)
            return False

        self._drop(alarm_id)
        trigger_at = self._clock() + max(delay, timedelta(0))

        @callback
        def _fire(_now: datetime) -> None:
            self._registrations.pop(alarm_id, None)
            self._trigger_times.pop(alarm_id, None)
            self._hass.async_create_task(
                self._async_run_handler(alarm_id),
                f"{DOMAIN}_wake_{alarm_id}",
            )

        try:
            unsub = async_track_point_in_utc_time(self._hass, _fire, trigger_at)
        except Exception as err:
            _LOGGER.warning("Wake registration for alarm %s failed: %s", alarm_id, err)
            return False

        self._registrations[alarm_id] = unsub
        self._trigger_times[alarm_id] = trigger_at
        _LOGGER.debug("Registered wake for alarm %s at %s", alarm_id, trigger_at.isoformat())
        return True

    async def async_cancel(self, alarm_id: int) -> bool:
        """Cancel the wake-up for ``alarm_id``. False if none was registered."""
        cancelled = self._drop(alarm_id)
        if cancelled:
            _LOGGER.debug("Cancelled wake for alarm %s", alarm_id)
        return cancelled

    async def async_shutdown(self) -> None:
        """Cancel all pending registrations."""
        for alarm_id in list(self._registrations):
            self._drop(alarm_id)

    def _drop(self, alarm_id: int) -> bool:
        unsub = self._registrations.pop(alarm_id, None)
        self._trigger_times.pop(alarm_id, None)
        if unsub is None:
            return False
        unsub()
        return True

    async def _async_run_handler(self, alarm_id: int) -> None:
        if self._handler is None:
            return
        try:
            await self._handler(alarm_id)
        except Exception:
            _LOGGER.exception("Wake handler failed for alarm %s", alarm_id)
