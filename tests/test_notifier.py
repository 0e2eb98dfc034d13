"""Tests for alarm notifications."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from custom_components.pocket_alarm.const import (
    ACTION_SNOOZE,
    ACTION_STOP,
    ALARM_NOTIFICATION_BODY,
    ALARM_NOTIFICATION_PAYLOAD,
    CONF_ALARM_SOUND,
    CONF_NOTIFY_SERVICE,
)
from custom_components.pocket_alarm.context.notifier import AlarmNotifier, split_service


def _make_hass(has_service: bool = True) -> MagicMock:
    hass = MagicMock()
    hass.services.has_service.return_value = has_service
    hass.services.async_call = AsyncMock()
    return hass


class TestSplitService:
    """Test notify service name parsing."""

    def test_full_name(self) -> None:
        assert split_service("notify.mobile_app_pixel") == ("notify", "mobile_app_pixel", True)

    def test_bare_name_defaults_to_notify(self) -> None:
        assert split_service("mobile_app_pixel") == ("notify", "mobile_app_pixel", True)

    @pytest.mark.parametrize("value", ["", "   ", "notify.", ".pixel"])
    def test_invalid(self, value: str) -> None:
        assert split_service(value)[2] is False


class TestAlarmNotifier:
    """Test showing and clearing notifications."""

    @pytest.mark.asyncio
    async def test_push_payload(self) -> None:
        hass = _make_hass()
        notifier = AlarmNotifier(
            hass,
            {CONF_NOTIFY_SERVICE: "notify.mobile_app_pixel", CONF_ALARM_SOUND: "chime"},
        )

        shown = await notifier.async_show(0, "Morning", ALARM_NOTIFICATION_BODY, ALARM_NOTIFICATION_PAYLOAD)

        assert shown is True
        domain, service, data = hass.services.async_call.call_args[0]
        assert (domain, service) == ("notify", "mobile_app_pixel")
        assert data["title"] == "Morning"
        assert data["message"] == ALARM_NOTIFICATION_BODY
        assert data["data"]["tag"] == "pocket_alarm_0"
        assert data["data"]["payload"] == ALARM_NOTIFICATION_PAYLOAD
        assert data["data"]["push"] == {"sound": "chime"}
        assert [action["action"] for action in data["data"]["actions"]] == [ACTION_SNOOZE, ACTION_STOP]

    @pytest.mark.asyncio
    async def test_default_sound_not_sent(self) -> None:
        hass = _make_hass()
        notifier = AlarmNotifier(hass, {CONF_NOTIFY_SERVICE: "mobile_app_pixel"})

        await notifier.async_show(0, "Morning", "body", "payload")

        assert "push" not in hass.services.async_call.call_args[0][2]["data"]

    @pytest.mark.asyncio
    async def test_missing_service_returns_false(self) -> None:
        hass = _make_hass(has_service=False)
        notifier = AlarmNotifier(hass, {CONF_NOTIFY_SERVICE: "notify.gone"})

        assert await notifier.async_show(0, "Morning", "body", "payload") is False
        hass.services.async_call.assert_not_called()

    @pytest.mark.asyncio
    async def test_service_error_returns_false(self) -> None:
        hass = _make_hass()
        hass.services.async_call.side_effect = RuntimeError("phone offline")
        notifier = AlarmNotifier(hass, {CONF_NOTIFY_SERVICE: "notify.mobile_app_pixel"})

        assert await notifier.async_show(0, "Morning", "body", "payload") is False

    @pytest.mark.asyncio
    async def test_persistent_fallback(self) -> None:
        hass = _make_hass()
        notifier = AlarmNotifier(hass, {})

        with patch("homeassistant.components.persistent_notification.async_create") as mock_create:
            assert await notifier.async_show(0, "Morning", "Time to wake up!", "payload") is True

        mock_create.assert_called_once_with(
            hass,
            "Time to wake up!",
            title="Morning",
            notification_id="pocket_alarm_0",
        )
        hass.services.async_call.assert_not_called()

    @pytest.mark.asyncio
    async def test_dismiss_push(self) -> None:
        hass = _make_hass()
        notifier = AlarmNotifier(hass, {CONF_NOTIFY_SERVICE: "notify.mobile_app_pixel"})

        await notifier.async_dismiss(0)

        _, _, data = hass.services.async_call.call_args[0]
        assert data == {"message": "clear_notification", "data": {"tag": "pocket_alarm_0"}}

    @pytest.mark.asyncio
    async def test_dismiss_persistent(self) -> None:
        hass = _make_hass()
        notifier = AlarmNotifier(hass, {CONF_NOTIFY_SERVICE: ""})

        with patch("homeassistant.components.persistent_notification.async_dismiss") as mock_dismiss:
            await notifier.async_dismiss(0)

        mock_dismiss.assert_called_once_with(hass, "pocket_alarm_0")
