"""Alarm scheduling and firing core for Pocket Alarm."""

from .alarm_store import Alarm, AlarmStore
from .fire_handler import FireHandler, FireResult
from .notifier import AlarmNotifier
from .scheduler import AlarmScheduler, resolve_fire_time
from .wake_service import WakeService

__all__ = [
	"Alarm",
	"AlarmNotifier",
	"AlarmScheduler",
	"AlarmStore",
	"FireHandler",
	"FireResult",
	"WakeService",
	"resolve_fire_time",
]
