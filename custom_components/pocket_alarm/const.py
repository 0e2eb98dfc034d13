"""Constants for Pocket Alarm integration."""

from datetime import timedelta
from typing import Final

# Integration domain
DOMAIN: Final = "pocket_alarm"

# Storage
ALARM_STORAGE_KEY: Final = f"{DOMAIN}.alarms"
ALARM_STORAGE_VERSION: Final = 1

# Configuration keys
CONF_NOTIFY_SERVICE: Final = "notify_service"
CONF_SNOOZE_MINUTES: Final = "snooze_minutes"
CONF_ALARM_SOUND: Final = "alarm_sound"
CONF_DEBUG_LOGGING: Final = "debug_logging"

# Default values
DEFAULT_NOTIFY_SERVICE: Final = ""  # Empty = persistent notification
DEFAULT_SNOOZE_MINUTES: Final = 2
DEFAULT_ALARM_SOUND: Final = "default"
DEFAULT_DEBUG_LOGGING: Final = False

SNOOZE_MINUTES_MIN: Final = 1
SNOOZE_MINUTES_MAX: Final = 5

# Sound options for the settings page (value sent to the device -> label)
ALARM_SOUNDS: Final = {
    "default": "Default",
    "chime": "Chime",
    "beep": "Beep",
}

# Scheduling policy
PAST_TIME_ROLLOVER: Final = timedelta(hours=24)
FIRE_TOLERANCE: Final = timedelta(seconds=1)

# Alarm states
ALARM_STATE_SCHEDULED: Final = "scheduled"
ALARM_STATE_FIRING: Final = "firing"
ALARM_STATE_SNOOZED: Final = "snoozed"
ALARM_STATE_DISMISSED: Final = "dismissed"

DEFAULT_ALARM_LABEL: Final = "Alarm"

# Notification contract with the presentation layer
ALARM_NOTIFICATION_ID: Final = 0
ALARM_NOTIFICATION_BODY: Final = "Time to wake up!"
ALARM_NOTIFICATION_PAYLOAD: Final = "alarm_payload"
ALARM_NOTIFICATION_CHANNEL: Final = "alarm_channel"
ACTION_SNOOZE: Final = "POCKET_ALARM_SNOOZE"
ACTION_STOP: Final = "POCKET_ALARM_STOP"
EVENT_MOBILE_APP_NOTIFICATION_ACTION: Final = "mobile_app_notification_action"

# Dispatcher signals
SIGNAL_ALARMS_UPDATED: Final = f"{DOMAIN}_alarms_updated"
SIGNAL_ALARM_RINGING: Final = f"{DOMAIN}_alarm_ringing"

# Bus event fired when an alarm rings, for automations
EVENT_ALARM_FIRED: Final = f"{DOMAIN}_alarm_fired"

# Services
SERVICE_CREATE_ALARM: Final = "create_alarm"
SERVICE_EDIT_ALARM: Final = "edit_alarm"
SERVICE_DELETE_ALARM: Final = "delete_alarm"
SERVICE_SNOOZE: Final = "snooze"
SERVICE_DISMISS: Final = "dismiss"
SERVICE_LIST_ALARMS: Final = "list_alarms"

ATTR_ALARM_ID: Final = "alarm_id"
ATTR_TIME: Final = "time"
ATTR_LABEL: Final = "label"
ATTR_MINUTES: Final = "minutes"

# Error codes surfaced to the presentation layer
ERROR_NOT_FOUND: Final = "not_found"
ERROR_SCHEDULING_FAILED: Final = "scheduling_failed"
ERROR_STORE_UNAVAILABLE: Final = "store_unavailable"
ERROR_INVALID_TIME: Final = "invalid_time"
ERROR_NO_CURRENT_ALARM: Final = "no_current_alarm"
ERROR_UNKNOWN_ACTION: Final = "unknown_action"
