"""Alarm notifications for Pocket Alarm."""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.core import HomeAssistant

from ..const import (
    ACTION_SNOOZE,
    ACTION_STOP,
    ALARM_NOTIFICATION_CHANNEL,
    CONF_ALARM_SOUND,
    CONF_NOTIFY_SERVICE,
    DEFAULT_ALARM_SOUND,
    DEFAULT_NOTIFY_SERVICE,
    DOMAIN,
)

_LOGGER = logging.getLogger(__name__)


def split_service(service_name: str) -> tuple[str, str, bool]:
    """Split ``domain.service``; bare names are treated as notify services."""
    raw = (service_name or "").strip()
    if not raw:
        return "", "", False
    if "." not in raw:
        return "notify", raw, True
    domain, _, service = raw.partition(".")
    if not domain or not service:
        return "", "", False
    return domain, service, True


class AlarmNotifier:
    """Show and clear alarm notifications.

    With a notify service configured (typically ``notify.mobile_app_<phone>``)
    the alarm is pushed as a high-priority notification carrying Snooze and
    Stop actions. Without one, a persistent notification is created.
    """

    def __init__(self, hass: HomeAssistant, config: dict[str, Any]) -> None:
        self._hass = hass
        self._config = config

    def _tag(self, notification_id: int) -> str:
        return f"{DOMAIN}_{notification_id}"

    async def async_show(
        self,
        notification_id: int,
        title: str,
        body: str,
        payload: str,
    ) -> bool:
        """Show a notification. Returns False instead of raising on failure."""
        service_name = str(self._config.get(CONF_NOTIFY_SERVICE, DEFAULT_NOTIFY_SERVICE) or "")
        try:
            if service_name:
                return await self._async_push(service_name, notification_id, title, body, payload)
            return self._show_persistent(notification_id, title, body)
        except Exception as err:
            _LOGGER.warning("Alarm notification %s failed: %s", notification_id, err)
            return False

    async def _async_push(
        self,
        service_name: str,
        notification_id: int,
        title: str,
        body: str,
        payload: str,
    ) -> bool:
        domain, service, valid = split_service(service_name)
        if not valid:
            _LOGGER.warning("Invalid notify service '%s'", service_name)
            return False
        if not self._hass.services.has_service(domain, service):
            _LOGGER.warning("Notify service %s.%s is not available", domain, service)
            return False

        sound = str(self._config.get(CONF_ALARM_SOUND, DEFAULT_ALARM_SOUND) or DEFAULT_ALARM_SOUND)
        data: dict[str, Any] = {
            "tag": self._tag(notification_id),
            "channel": ALARM_NOTIFICATION_CHANNEL,
            "importance": "max",
            "priority": "high",
            "ttl": 0,
            "persistent": True,
            "clickAction": payload,
            "payload": payload,
            "actions": [
                {"action": ACTION_SNOOZE, "title": "Snooze"},
                {"action": ACTION_STOP, "title": "Stop"},
            ],
        }
        if sound != DEFAULT_ALARM_SOUND:
            data["push"] = {"sound": sound}

        await self._hass.services.async_call(
            domain,
            service,
            {"title": title, "message": body, "data": data},
            blocking=True,
        )
        _LOGGER.debug("Pushed alarm notification via %s.%s", domain, service)
        return True

    def _show_persistent(self, notification_id: int, title: str, body: str) -> bool:
        from homeassistant.components.persistent_notification import async_create

        async_create(
            self._hass,
            body,
            title=title,
            notification_id=self._tag(notification_id),
        )
        return True

    async def async_dismiss(self, notification_id: int) -> None:
        """Clear a shown notification."""
        service_name = str(self._config.get(CONF_NOTIFY_SERVICE, DEFAULT_NOTIFY_SERVICE) or "")
        try:
            if service_name:
                domain, service, valid = split_service(service_name)
                if valid and self._hass.services.has_service(domain, service):
                    await self._hass.services.async_call(
                        domain,
                        service,
                        {"message": "clear_notification", "data": {"tag": self._tag(notification_id)}},
                        blocking=True,
                    )
                return

            from homeassistant.components.persistent_notification import async_dismiss

            async_dismiss(self._hass, self._tag(notification_id))
        except Exception as err:
            _LOGGER.debug("Clearing alarm notification %s failed: %s", notification_id, err)
