"""Tests for Pocket Alarm services, utils and setup wiring."""

from __future__ import annotations

import logging
from datetime import time
from unittest.mock import AsyncMock, MagicMock

import pytest
import voluptuous as vol

from homeassistant.core import SupportsResponse
from homeassistant.exceptions import HomeAssistantError

from custom_components.pocket_alarm.api import AlarmResult
from custom_components.pocket_alarm.const import (
    CONF_SNOOZE_MINUTES,
    DOMAIN,
    SERVICE_CREATE_ALARM,
    SERVICE_DELETE_ALARM,
    SERVICE_DISMISS,
    SERVICE_EDIT_ALARM,
    SERVICE_LIST_ALARMS,
    SERVICE_SNOOZE,
)
from custom_components.pocket_alarm.services import (
    CREATE_ALARM_SCHEMA,
    EDIT_ALARM_SCHEMA,
    SNOOZE_SCHEMA,
    async_register_services,
    async_unload_services,
)
from custom_components.pocket_alarm.utils import (
    POCKET_ALARM_LOGGERS,
    apply_debug_logging,
    get_config_value,
)


def _register(api: MagicMock) -> tuple[MagicMock, dict[str, tuple]]:
    """Register services on a mock hass and return (hass, service -> (handler, kwargs))."""
    hass = MagicMock()
    hass.data = {DOMAIN: {"entry_1": {"api": api}}}
    hass.services.has_service.return_value = False
    async_register_services(hass)

    registered = {
        call.args[1]: (call.args[2], call.kwargs)
        for call in hass.services.async_register.call_args_list
    }
    return hass, registered


def _call(data: dict, return_response: bool = False) -> MagicMock:
    call = MagicMock()
    call.data = data
    call.return_response = return_response
    return call


class TestSchemas:
    """Test service schemas."""

    def test_create_accepts_wall_clock_time(self) -> None:
        data = CREATE_ALARM_SCHEMA({"time": "07:30", "label": "Morning"})

        assert data["time"] == time(7, 30)

    def test_edit_coerces_id(self) -> None:
        data = EDIT_ALARM_SCHEMA({"alarm_id": "3", "time": "2026-10-18 07:30"})

        assert data["alarm_id"] == 3

    def test_snooze_range(self) -> None:
        assert SNOOZE_SCHEMA({"minutes": 5})["minutes"] == 5
        with pytest.raises(vol.Invalid):
            SNOOZE_SCHEMA({"minutes": 10})


class TestServices:
    """Test service registration and handlers."""

    def test_all_services_registered(self) -> None:
        _, registered = _register(MagicMock())

        assert set(registered) == {
            SERVICE_CREATE_ALARM,
            SERVICE_EDIT_ALARM,
            SERVICE_DELETE_ALARM,
            SERVICE_SNOOZE,
            SERVICE_DISMISS,
            SERVICE_LIST_ALARMS,
        }
        assert registered[SERVICE_LIST_ALARMS][1]["supports_response"] == SupportsResponse.ONLY

    def test_registration_is_idempotent(self) -> None:
        hass = MagicMock()
        hass.services.has_service.return_value = True

        async_register_services(hass)

        hass.services.async_register.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_returns_response(self) -> None:
        api = MagicMock()
        api.create_alarm = AsyncMock(return_value=AlarmResult(True, "ok", {"alarm": {"id": 1}}))
        _, registered = _register(api)
        handler = registered[SERVICE_CREATE_ALARM][0]

        response = await handler(_call({"time": time(7, 30), "label": "Morning"}, return_response=True))

        assert response == {"alarm": {"id": 1}}
        api.create_alarm.assert_awaited_once_with(time(7, 30), "Morning")

    @pytest.mark.asyncio
    async def test_failure_raises(self) -> None:
        api = MagicMock()
        api.delete_alarm = AsyncMock(return_value=AlarmResult(False, "Alarm 4 not found"))
        _, registered = _register(api)

        with pytest.raises(HomeAssistantError, match="Alarm 4 not found"):
            await registered[SERVICE_DELETE_ALARM][0](_call({"alarm_id": 4}))

    @pytest.mark.asyncio
    async def test_snooze_passes_minutes(self) -> None:
        api = MagicMock()
        api.snooze_current = AsyncMock(return_value=AlarmResult(True, "snoozed"))
        _, registered = _register(api)

        response = await registered[SERVICE_SNOOZE][0](_call({"minutes": 3}))

        assert response is None
        api.snooze_current.assert_awaited_once_with(3)

    @pytest.mark.asyncio
    async def test_list_alarms(self) -> None:
        api = MagicMock()
        api.list_alarms = AsyncMock(return_value=AlarmResult(True, "Alarms", {"alarms": []}))
        _, registered = _register(api)

        assert await registered[SERVICE_LIST_ALARMS][0](_call({}, return_response=True)) == {"alarms": []}

    @pytest.mark.asyncio
    async def test_not_set_up(self) -> None:
        hass_without_entry, registered = _register(MagicMock())
        hass_without_entry.data = {DOMAIN: {}}

        with pytest.raises(HomeAssistantError):
            await registered[SERVICE_DISMISS][0](_call({}))

    def test_unload_removes_services(self) -> None:
        hass = MagicMock()

        async_unload_services(hass)

        removed = {call.args[1] for call in hass.services.async_remove.call_args_list}
        assert SERVICE_CREATE_ALARM in removed
        assert SERVICE_LIST_ALARMS in removed


class TestUtils:
    """Test config and logging helpers."""

    def test_get_config_value_prefers_options(self) -> None:
        entry = MagicMock()
        entry.data = {CONF_SNOOZE_MINUTES: 2}
        entry.options = {CONF_SNOOZE_MINUTES: 4}

        assert get_config_value(entry, CONF_SNOOZE_MINUTES) == 4

        entry.options = {}
        assert get_config_value(entry, CONF_SNOOZE_MINUTES) == 2
        assert get_config_value({}, CONF_SNOOZE_MINUTES, 3) == 3

    def test_apply_debug_logging(self) -> None:
        apply_debug_logging(True)
        assert all(logging.getLogger(name).level == logging.DEBUG for name in POCKET_ALARM_LOGGERS)

        apply_debug_logging(False)
        assert all(logging.getLogger(name).level == logging.INFO for name in POCKET_ALARM_LOGGERS)
