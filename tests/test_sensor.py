"""Tests for the Pocket Alarm sensors."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from custom_components.pocket_alarm.const import DOMAIN
from custom_components.pocket_alarm.context.alarm_store import AlarmStore
from custom_components.pocket_alarm.context.fire_handler import FireHandler
from custom_components.pocket_alarm.context.scheduler import AlarmScheduler
from custom_components.pocket_alarm.sensor import (
    NextAlarmSensor,
    RingingAlarmSensor,
    async_setup_entry,
)

from .conftest import START, FakeClock, FakeNotifier, FakeStorage, FakeWakeService


def _make_entry() -> MagicMock:
    entry = MagicMock()
    entry.entry_id = "entry_1"
    entry.title = "Pocket Alarm"
    return entry


class TestSensorSetup:
    """Test sensor platform setup."""

    @pytest.mark.asyncio
    async def test_adds_both_sensors(self, store: AlarmStore, scheduler: AlarmScheduler) -> None:
        hass = MagicMock()
        hass.data = {DOMAIN: {"entry_1": {"store": store, "scheduler": scheduler}}}
        async_add_entities = MagicMock()

        await async_setup_entry(hass, _make_entry(), async_add_entities)

        entities = async_add_entities.call_args[0][0]
        assert [type(entity) for entity in entities] == [NextAlarmSensor, RingingAlarmSensor]
        assert async_add_entities.call_args[1]["update_before_add"] is True
        assert {entity.unique_id for entity in entities} == {
            "entry_1_next_alarm",
            "entry_1_ringing_alarm",
        }

    def test_signal_schedules_refresh(self, store: AlarmStore) -> None:
        sensor = RingingAlarmSensor(_make_entry(), store)
        sensor.async_schedule_update_ha_state = MagicMock()

        sensor._handle_alarms_update({"alarm_id": 1})

        sensor.async_schedule_update_ha_state.assert_called_once_with(True)


class TestNextAlarmSensor:
    """Test the next alarm timestamp sensor."""

    @pytest.mark.asyncio
    async def test_no_alarms(self, store: AlarmStore, scheduler: AlarmScheduler) -> None:
        sensor = NextAlarmSensor(_make_entry(), store, scheduler)

        await sensor.async_update()

        assert sensor.available is True
        assert sensor.native_value is None
        assert sensor.extra_state_attributes == {}

    @pytest.mark.asyncio
    async def test_soonest_armed_alarm(
        self, store: AlarmStore, scheduler: AlarmScheduler
    ) -> None:
        await scheduler.schedule_new(START + timedelta(hours=2), "Late")
        soon = await scheduler.schedule_new(START + timedelta(minutes=30), "Soon")
        dismissed = await scheduler.schedule_new(START + timedelta(minutes=5), "Off")
        await scheduler.dismiss(dismissed.id)
        sensor = NextAlarmSensor(_make_entry(), store, scheduler)

        await sensor.async_update()

        assert sensor.native_value == soon.fire_at
        assert sensor.extra_state_attributes["alarm_id"] == soon.id
        assert sensor.extra_state_attributes["label"] == "Soon"

    @pytest.mark.asyncio
    async def test_unavailable_when_store_fails(
        self, storage: FakeStorage, clock: FakeClock
    ) -> None:
        storage.fail_load = True
        store = AlarmStore(None, store=storage, clock=clock)
        sensor = NextAlarmSensor(
            _make_entry(), store, AlarmScheduler(store, FakeWakeService(clock), clock=clock)
        )

        await sensor.async_update()

        assert sensor.available is False


class TestRingingAlarmSensor:
    """Test the ringing alarm sensor."""

    @pytest.mark.asyncio
    async def test_idle_without_current_alarm(self, store: AlarmStore) -> None:
        sensor = RingingAlarmSensor(_make_entry(), store)

        await sensor.async_update()

        assert sensor.available is True
        assert sensor.native_value == "idle"

    @pytest.mark.asyncio
    async def test_shows_firing_alarm_until_dismissed(
        self,
        store: AlarmStore,
        scheduler: AlarmScheduler,
        notifier: FakeNotifier,
        clock: FakeClock,
    ) -> None:
        alarm = await scheduler.schedule_new(START + timedelta(minutes=2), "Morning")
        clock.advance(timedelta(minutes=2))
        await FireHandler(store, notifier, clock=clock).async_handle_wake(alarm.id)
        sensor = RingingAlarmSensor(_make_entry(), store)

        await sensor.async_update()

        assert sensor.native_value == "Morning"
        assert sensor.extra_state_attributes == {
            "alarm_id": alarm.id,
            "fired_at": clock().isoformat(),
            "fire_count": 1,
        }

        await scheduler.dismiss(alarm.id)
        await sensor.async_update()

        assert sensor.native_value == "idle"
        assert sensor.extra_state_attributes == {}

    @pytest.mark.asyncio
    async def test_idle_when_current_alarm_is_not_firing(
        self, store: AlarmStore, scheduler: AlarmScheduler
    ) -> None:
        alarm = await scheduler.schedule_new(START + timedelta(minutes=2), "Pending")
        await store.set_current_alarm_id(alarm.id)
        sensor = RingingAlarmSensor(_make_entry(), store)

        await sensor.async_update()

        assert sensor.native_value == "idle"

    @pytest.mark.asyncio
    async def test_unavailable_when_store_fails(
        self, storage: FakeStorage, clock: FakeClock
    ) -> None:
        storage.fail_load = True
        sensor = RingingAlarmSensor(_make_entry(), AlarmStore(None, store=storage, clock=clock))

        await sensor.async_update()

        assert sensor.available is False
