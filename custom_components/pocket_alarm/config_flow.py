"""Config flow for Pocket Alarm integration."""

from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant.config_entries import ConfigEntry, ConfigFlow, ConfigFlowResult, OptionsFlow
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.selector import (
    BooleanSelector,
    NumberSelector,
    NumberSelectorConfig,
    NumberSelectorMode,
    SelectSelector,
    SelectSelectorConfig,
    SelectSelectorMode,
    TextSelector,
    TextSelectorConfig,
    TextSelectorType,
)

from .const import (
    ALARM_SOUNDS,
    CONF_ALARM_SOUND,
    CONF_DEBUG_LOGGING,
    CONF_NOTIFY_SERVICE,
    CONF_SNOOZE_MINUTES,
    DEFAULT_ALARM_SOUND,
    DEFAULT_DEBUG_LOGGING,
    DEFAULT_NOTIFY_SERVICE,
    DEFAULT_SNOOZE_MINUTES,
    DOMAIN,
    SNOOZE_MINUTES_MAX,
    SNOOZE_MINUTES_MIN,
)
from .context.notifier import split_service
from .utils import apply_debug_logging

_LOGGER = logging.getLogger(__name__)


def validate_notify_service(hass: HomeAssistant, service_name: str) -> str | None:
    """Return an error key if ``service_name`` cannot be used, else None.

    An empty value is allowed and means persistent notifications.
    """
    if not service_name:
        return None
    domain, service, valid = split_service(service_name)
    if not valid:
        return "invalid_notify_service"
    if not hass.services.has_service(domain, service):
        return "notify_service_not_found"
    return None


def _notify_service_field(default: str) -> dict[Any, Any]:
    return {
        vol.Optional(CONF_NOTIFY_SERVICE, default=default): TextSelector(
            TextSelectorConfig(type=TextSelectorType.TEXT)
        ),
    }


class PocketAlarmConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Pocket Alarm."""

    VERSION = 1

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> OptionsFlow:
        """Get the options flow for this handler."""
        return PocketAlarmOptionsFlow(config_entry)

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Handle the initial step."""
        await self.async_set_unique_id(DOMAIN)
        self._abort_if_unique_id_configured()

        errors: dict[str, str] = {}
        if user_input is not None:
            service_name = str(user_input.get(CONF_NOTIFY_SERVICE) or "").strip()
            error = validate_notify_service(self.hass, service_name)
            if error is None:
                _LOGGER.info("Pocket Alarm configured (notify service: %s)", service_name or "persistent")
                return self.async_create_entry(
                    title="Pocket Alarm",
                    data={CONF_NOTIFY_SERVICE: service_name},
                )
            errors[CONF_NOTIFY_SERVICE] = error

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(_notify_service_field(DEFAULT_NOTIFY_SERVICE)),
            errors=errors,
        )


class PocketAlarmOptionsFlow(OptionsFlow):
    """Handle the settings page for Pocket Alarm."""

    _options_data: dict[str, Any]

    def __init__(self, config_entry: ConfigEntry) -> None:
        """Initialize options flow."""
        super().__init__()
        # Merge data and options - options take precedence
        self._options_data = {**config_entry.data, **config_entry.options}

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> ConfigFlowResult:
        """Snooze length, sound, notification target and logging."""
        errors: dict[str, str] = {}
        if user_input is not None:
            service_name = str(user_input.get(CONF_NOTIFY_SERVICE) or "").strip()
            error = validate_notify_service(self.hass, service_name)
            if error is None:
                self._options_data.update(user_input)
                self._options_data[CONF_NOTIFY_SERVICE] = service_name
                self._options_data[CONF_SNOOZE_MINUTES] = int(
                    self._options_data.get(CONF_SNOOZE_MINUTES, DEFAULT_SNOOZE_MINUTES)
                )

                # Apply debug logging setting immediately
                apply_debug_logging(
                    bool(self._options_data.get(CONF_DEBUG_LOGGING, DEFAULT_DEBUG_LOGGING))
                )
                return self.async_create_entry(title="", data=self._options_data)
            errors[CONF_NOTIFY_SERVICE] = error

        current = self._options_data

        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        CONF_SNOOZE_MINUTES,
                        default=current.get(CONF_SNOOZE_MINUTES, DEFAULT_SNOOZE_MINUTES),
                    ): NumberSelector(
                        NumberSelectorConfig(
                            min=SNOOZE_MINUTES_MIN,
                            max=SNOOZE_MINUTES_MAX,
                            step=1,
                            unit_of_measurement="min",
                            mode=NumberSelectorMode.SLIDER,
                        )
                    ),
                    vol.Required(
                        CONF_ALARM_SOUND,
                        default=current.get(CONF_ALARM_SOUND, DEFAULT_ALARM_SOUND),
                    ): SelectSelector(
                        SelectSelectorConfig(
                            options=[
                                {"value": value, "label": label}
                                for value, label in ALARM_SOUNDS.items()
                            ],
                            mode=SelectSelectorMode.DROPDOWN,
                        )
                    ),
                    **_notify_service_field(
                        current.get(CONF_NOTIFY_SERVICE, DEFAULT_NOTIFY_SERVICE) or ""
                    ),
                    vol.Required(
                        CONF_DEBUG_LOGGING,
                        default=current.get(CONF_DEBUG_LOGGING, DEFAULT_DEBUG_LOGGING),
                    ): BooleanSelector(),
                }
            ),
            errors=errors,
        )
