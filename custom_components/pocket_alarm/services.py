"""Home Assistant services for Pocket Alarm."""

from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import config_validation as cv

from .api import AlarmClockApi, AlarmResult
from .const import (
    ATTR_ALARM_ID,
    ATTR_LABEL,
    ATTR_MINUTES,
    ATTR_TIME,
    DOMAIN,
    SERVICE_CREATE_ALARM,
    SERVICE_DELETE_ALARM,
    SERVICE_DISMISS,
    SERVICE_EDIT_ALARM,
    SERVICE_LIST_ALARMS,
    SERVICE_SNOOZE,
    SNOOZE_MINUTES_MAX,
    SNOOZE_MINUTES_MIN,
)

_LOGGER = logging.getLogger(__name__)

_TIME_VALUE = vol.Any(cv.time, cv.datetime)

CREATE_ALARM_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_TIME): _TIME_VALUE,
        vol.Optional(ATTR_LABEL): cv.string,
    }
)

EDIT_ALARM_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_ALARM_ID): vol.Coerce(int),
        vol.Required(ATTR_TIME): _TIME_VALUE,
        vol.Optional(ATTR_LABEL): cv.string,
    }
)

DELETE_ALARM_SCHEMA = vol.Schema({vol.Required(ATTR_ALARM_ID): vol.Coerce(int)})

SNOOZE_SCHEMA = vol.Schema(
    {
        vol.Optional(ATTR_MINUTES): vol.All(
            vol.Coerce(int), vol.Range(min=SNOOZE_MINUTES_MIN, max=SNOOZE_MINUTES_MAX)
        ),
    }
)

EMPTY_SCHEMA = vol.Schema({})

_SERVICES = (
    SERVICE_CREATE_ALARM,
    SERVICE_EDIT_ALARM,
    SERVICE_DELETE_ALARM,
    SERVICE_SNOOZE,
    SERVICE_DISMISS,
    SERVICE_LIST_ALARMS,
)


def _get_api(hass: HomeAssistant) -> AlarmClockApi:
    """Return the API of the loaded config entry."""
    for entry_data in hass.data.get(DOMAIN, {}).values():
        if isinstance(entry_data, dict) and entry_data.get("api") is not None:
            return entry_data["api"]
    raise HomeAssistantError("Pocket Alarm is not set up")


def _respond(call: ServiceCall, result: AlarmResult) -> ServiceResponse:
    """Raise on failure, otherwise return response data when requested."""
    if not result.success:
        raise HomeAssistantError(result.message)
    _LOGGER.debug("Service %s: %s", call.service, result.message)
    if call.return_response:
        return result.data
    return None


def async_register_services(hass: HomeAssistant) -> None:
    """Register Pocket Alarm services once per Home Assistant instance."""
    if hass.services.has_service(DOMAIN, SERVICE_CREATE_ALARM):
        return

    async def _create_alarm(call: ServiceCall) -> ServiceResponse:
        result = await _get_api(hass).create_alarm(call.data[ATTR_TIME], call.data.get(ATTR_LABEL))
        return _respond(call, result)

    async def _edit_alarm(call: ServiceCall) -> ServiceResponse:
        result = await _get_api(hass).edit_alarm(
            call.data[ATTR_ALARM_ID],
            call.data[ATTR_TIME],
            call.data.get(ATTR_LABEL),
        )
        return _respond(call, result)

    async def _delete_alarm(call: ServiceCall) -> None:
        _respond(call, await _get_api(hass).delete_alarm(call.data[ATTR_ALARM_ID]))

    async def _snooze(call: ServiceCall) -> ServiceResponse:
        return _respond(call, await _get_api(hass).snooze_current(call.data.get(ATTR_MINUTES)))

    async def _dismiss(call: ServiceCall) -> None:
        _respond(call, await _get_api(hass).dismiss_current())

    async def _list_alarms(call: ServiceCall) -> ServiceResponse:
        result = await _get_api(hass).list_alarms()
        if not result.success:
            raise HomeAssistantError(result.message)
        return result.data

    handlers: list[tuple[str, Any, vol.Schema, SupportsResponse]] = [
        (SERVICE_CREATE_ALARM, _create_alarm, CREATE_ALARM_SCHEMA, SupportsResponse.OPTIONAL),
        (SERVICE_EDIT_ALARM, _edit_alarm, EDIT_ALARM_SCHEMA, SupportsResponse.OPTIONAL),
        (SERVICE_DELETE_ALARM, _delete_alarm, DELETE_ALARM_SCHEMA, SupportsResponse.NONE),
        (SERVICE_SNOOZE, _snooze, SNOOZE_SCHEMA, SupportsResponse.OPTIONAL),
        (SERVICE_DISMISS, _dismiss, EMPTY_SCHEMA, SupportsResponse.NONE),
        (SERVICE_LIST_ALARMS, _list_alarms, EMPTY_SCHEMA, SupportsResponse.ONLY),
    ]
    for service, handler, schema, supports_response in handlers:
        hass.services.async_register(
            DOMAIN,
            service,
            handler,
            schema=schema,
            supports_response=supports_response,
        )
    _LOGGER.debug("Registered %d Pocket Alarm services", len(handlers))


def async_unload_services(hass: HomeAssistant) -> None:
    """Remove Pocket Alarm services."""
    for service in _SERVICES:
        hass.services.async_remove(DOMAIN, service)
