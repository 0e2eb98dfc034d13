"""Sensor platform for Pocket Alarm."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers import device_registry as dr
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity_platform import AddConfigEntryEntitiesCallback

from .const import ALARM_STATE_FIRING, DOMAIN, SIGNAL_ALARM_RINGING, SIGNAL_ALARMS_UPDATED
from .context.alarm_store import AlarmStore
from .context.scheduler import AlarmScheduler
from .errors import AlarmNotFound, StoreUnavailable

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddConfigEntryEntitiesCallback,
) -> None:
    """Set up Pocket Alarm sensors."""
    entry_data = hass.data[DOMAIN][entry.entry_id]
    store: AlarmStore = entry_data["store"]
    async_add_entities(
        [
            NextAlarmSensor(entry, store, entry_data["scheduler"]),
            RingingAlarmSensor(entry, store),
        ],
        update_before_add=True,
    )


class PocketAlarmSensorBase(SensorEntity):
    """Base class for Pocket Alarm sensors."""

    _attr_has_entity_name = True
    _attr_should_poll = False  # We use signals instead of polling

    def __init__(self, entry: ConfigEntry, store: AlarmStore) -> None:
        """Initialize the sensor."""
        self._entry = entry
        self._store = store
        self._attr_device_info = dr.DeviceInfo(
            identifiers={(DOMAIN, entry.entry_id)},
            name=entry.title or "Pocket Alarm",
            manufacturer="Pocket Alarm",
            model="Alarm Clock",
            entry_type=dr.DeviceEntryType.SERVICE,
        )

    async def async_added_to_hass(self) -> None:
        """Register signal listeners when added to hass."""
        for signal in (SIGNAL_ALARMS_UPDATED, SIGNAL_ALARM_RINGING):
            self.async_on_remove(
                async_dispatcher_connect(self.hass, signal, self._handle_alarms_update)
            )

    @callback
    def _handle_alarms_update(self, *_: Any) -> None:
        """Refresh from the store on any alarm change."""
        self.async_schedule_update_ha_state(True)


class NextAlarmSensor(PocketAlarmSensorBase):
    """Timestamp of the armed alarm that fires first."""

    _attr_name = "Next Alarm"
    _attr_icon = "mdi:alarm"
    _attr_device_class = SensorDeviceClass.TIMESTAMP

    def __init__(self, entry: ConfigEntry, store: AlarmStore, scheduler: AlarmScheduler) -> None:
        """Initialize the sensor."""
        super().__init__(entry, store)
        self._scheduler = scheduler
        self._attr_unique_id = f"{entry.entry_id}_next_alarm"
        self._attr_native_value: datetime | None = None
        self._attr_extra_state_attributes = {}

    async def async_update(self) -> None:
        """Read the next armed alarm."""
        try:
            upcoming = await self._scheduler.async_next_alarm()
        except StoreUnavailable as err:
            _LOGGER.warning("Next alarm sensor could not read alarms: %s", err)
            self._attr_available = False
            return

        self._attr_available = True
        if upcoming is None:
            self._attr_native_value = None
            self._attr_extra_state_attributes = {}
            return

        self._attr_native_value = upcoming.next_trigger
        self._attr_extra_state_attributes = {
            "alarm_id": upcoming.id,
            "label": upcoming.label,
            "state": upcoming.state,
        }


class RingingAlarmSensor(PocketAlarmSensorBase):
    """Label of the alarm currently ringing, ``idle`` otherwise."""

    _attr_name = "Ringing Alarm"
    _attr_icon = "mdi:alarm-bell"

    def __init__(self, entry: ConfigEntry, store: AlarmStore) -> None:
        """Initialize the sensor."""
        super().__init__(entry, store)
        self._attr_unique_id = f"{entry.entry_id}_ringing_alarm"
        self._attr_native_value = "idle"
        self._attr_extra_state_attributes = {}

    async def async_update(self) -> None:
        """Read the current alarm from the store."""
        try:
            await self._store.async_load()
            alarm_id = self._store.current_alarm_id
            alarm = await self._store.get(alarm_id) if alarm_id is not None else None
        except AlarmNotFound:
            alarm = None
        except StoreUnavailable as err:
            _LOGGER.warning("Ringing alarm sensor could not read alarms: %s", err)
            self._attr_available = False
            return

        self._attr_available = True
        if alarm is None or alarm.state != ALARM_STATE_FIRING:
            self._attr_native_value = "idle"
            self._attr_extra_state_attributes = {}
            return

        self._attr_native_value = alarm.label
        self._attr_extra_state_attributes = {
            "alarm_id": alarm.id,
            "fired_at": alarm.last_fired_at.isoformat() if alarm.last_fired_at else None,
            "fire_count": alarm.fire_count,
        }
