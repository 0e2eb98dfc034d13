"""Pocket Alarm - alarm clock scheduling for Home Assistant.

Alarms are stored durably, armed through one-shot wake registrations and
announced through a notify service (typically the companion mobile app).
"""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import Event, HomeAssistant, callback
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.dispatcher import async_dispatcher_send

from .api import AlarmClockApi
from .const import (
    ACTION_SNOOZE,
    ACTION_STOP,
    ALARM_NOTIFICATION_PAYLOAD,
    CONF_DEBUG_LOGGING,
    CONF_SNOOZE_MINUTES,
    DEFAULT_DEBUG_LOGGING,
    DEFAULT_SNOOZE_MINUTES,
    DOMAIN,
    EVENT_ALARM_FIRED,
    EVENT_MOBILE_APP_NOTIFICATION_ACTION,
    SIGNAL_ALARM_RINGING,
    SIGNAL_ALARMS_UPDATED,
)
from .context import AlarmNotifier, AlarmScheduler, AlarmStore, FireHandler, FireResult, WakeService
from .errors import StoreUnavailable
from .services import async_register_services, async_unload_services
from .utils import apply_debug_logging, get_config_value, merged_config

_LOGGER = logging.getLogger(__name__)

# Schema indicating this integration is only configurable via config entries
CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)

PLATFORMS: list[Platform] = [Platform.SENSOR]

_HANDLED_ACTIONS = (ACTION_SNOOZE, ACTION_STOP, ALARM_NOTIFICATION_PAYLOAD)


async def async_setup(hass: HomeAssistant, config: dict[str, Any]) -> bool:
    """Set up the Pocket Alarm component."""
    hass.data.setdefault(DOMAIN, {})
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Pocket Alarm from a config entry."""
    _LOGGER.info("Setting up Pocket Alarm integration")
    config = merged_config(entry)

    # Apply debug logging setting
    apply_debug_logging(bool(get_config_value(entry, CONF_DEBUG_LOGGING, DEFAULT_DEBUG_LOGGING)))

    store = AlarmStore(hass)
    try:
        await store.async_load()
    except StoreUnavailable as err:
        raise ConfigEntryNotReady(str(err)) from err

    @callback
    def _alarms_changed() -> None:
        async_dispatcher_send(hass, SIGNAL_ALARMS_UPDATED)

    @callback
    def _alarm_fired(result: FireResult) -> None:
        payload = result.as_dict()
        async_dispatcher_send(hass, SIGNAL_ALARM_RINGING, payload)
        hass.bus.async_fire(EVENT_ALARM_FIRED, payload)

    notifier = AlarmNotifier(hass, config)
    wake = WakeService(hass)
    scheduler = AlarmScheduler(store, wake, on_change=_alarms_changed)
    fire_handler = FireHandler(store, notifier, on_fire=_alarm_fired, wake=wake)
    wake.set_handler(fire_handler.async_handle_wake)
    api = AlarmClockApi(
        scheduler,
        store,
        notifier,
        snooze_minutes=int(get_config_value(entry, CONF_SNOOZE_MINUTES, DEFAULT_SNOOZE_MINUTES)),
    )

    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN][entry.entry_id] = {
        "store": store,
        "wake": wake,
        "scheduler": scheduler,
        "fire_handler": fire_handler,
        "notifier": notifier,
        "api": api,
    }

    # Wake registrations do not survive a restart; re-arm from the store
    await scheduler.async_reconcile()

    async_register_services(hass)

    async def _handle_notification_action(event: Event) -> None:
        action = str(event.data.get("action") or "")
        if action not in _HANDLED_ACTIONS:
            return
        result = await api.handle_notification_action(action)
        if not result.success:
            _LOGGER.warning("Notification action %s failed: %s", action, result.message)

    entry.async_on_unload(
        hass.bus.async_listen(EVENT_MOBILE_APP_NOTIFICATION_ACTION, _handle_notification_action)
    )

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    # Register update listener for options
    entry.async_on_unload(entry.add_update_listener(async_update_options))

    _LOGGER.info("Pocket Alarm integration setup complete")
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    _LOGGER.info("Unloading Pocket Alarm integration")

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if not unload_ok:
        return False

    entry_data = hass.data[DOMAIN].pop(entry.entry_id, {})
    wake: WakeService | None = entry_data.get("wake")
    if wake is not None:
        await wake.async_shutdown()

    if not hass.data[DOMAIN]:
        async_unload_services(hass)
    return True


async def async_update_options(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle options update."""
    _LOGGER.debug("Pocket Alarm options updated, reloading")
    await hass.config_entries.async_reload(entry.entry_id)
