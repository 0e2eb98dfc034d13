"""Utility functions for Pocket Alarm integration."""

from __future__ import annotations

import logging
from typing import Any, Final, TYPE_CHECKING

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry

_LOGGER = logging.getLogger(__name__)


def get_config_value(
    source: ConfigEntry | dict[str, Any],
    key: str,
    default: Any = None,
) -> Any:
    """Get config value from an entry or dict.

    For ConfigEntry: checks options first, then data, then default.

    Args:
        source: ConfigEntry or dict to read from
        key: Configuration key to look up
        default: Default value if key not found

    Returns:
        The configuration value or default
    """
    if hasattr(source, "options") and hasattr(source, "data"):
        # ConfigEntry: check options first (user overrides)
        if key in source.options:
            return source.options[key]
        return source.data.get(key, default)
    if isinstance(source, dict):
        return source.get(key, default)
    return default


def merged_config(entry: ConfigEntry) -> dict[str, Any]:
    """Return entry data with options applied on top."""
    return {**entry.data, **entry.options}


# Logger names for Pocket Alarm modules
POCKET_ALARM_LOGGERS: Final = (
    "custom_components.pocket_alarm",
    "custom_components.pocket_alarm.api",
    "custom_components.pocket_alarm.config_flow",
    "custom_components.pocket_alarm.context",
    "custom_components.pocket_alarm.sensor",
    "custom_components.pocket_alarm.services",
)


def apply_debug_logging(enabled: bool) -> None:
    """Apply debug logging setting to all Pocket Alarm loggers.

    Args:
        enabled: True to enable DEBUG level, False for INFO level
    """
    level = logging.DEBUG if enabled else logging.INFO

    for logger_name in POCKET_ALARM_LOGGERS:
        logging.getLogger(logger_name).setLevel(level)

    _LOGGER.info("Pocket Alarm debug logging %s", "enabled" if enabled else "disabled")
