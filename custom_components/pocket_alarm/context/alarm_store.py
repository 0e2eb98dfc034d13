"""Durable alarm store for Pocket Alarm.

Alarm records, the id allocator and the currently firing alarm id all live in
one Home Assistant Storage document, so a wake callback running after a
restart sees exactly what the foreground wrote.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.helpers.storage import Store
from homeassistant.util import dt as dt_util

from ..const import (
    ALARM_STATE_DISMISSED,
    ALARM_STATE_FIRING,
    ALARM_STATE_SCHEDULED,
    ALARM_STATE_SNOOZED,
    ALARM_STORAGE_KEY,
    ALARM_STORAGE_VERSION,
    DEFAULT_ALARM_LABEL,
)
from ..errors import AlarmNotFound, StoreUnavailable

_LOGGER = logging.getLogger(__name__)

_VALID_STATES = {
    ALARM_STATE_SCHEDULED,
    ALARM_STATE_FIRING,
    ALARM_STATE_SNOOZED,
    ALARM_STATE_DISMISSED,
}


@dataclass
class Alarm:
    """One user-created alarm."""

    id: int
    fire_at: datetime
    label: str
    active: bool = True
    state: str = ALARM_STATE_SCHEDULED
    snoozed_until: datetime | None = None
    reschedule_on_boot: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_fired_at: datetime | None = None
    fire_count: int = 0

    @property
    def next_trigger(self) -> datetime:
        """Return the instant the alarm is armed for."""
        return self.snoozed_until or self.fire_at

    def as_dict(self) -> dict[str, Any]:
        """Serialize for storage and service responses."""
        return {
            "id": self.id,
            "fire_at": self.fire_at.isoformat(),
            "label": self.label,
            "active": self.active,
            "state": self.state,
            "snoozed_until": _iso(self.snoozed_until),
            "reschedule_on_boot": self.reschedule_on_boot,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "last_fired_at": _iso(self.last_fired_at),
            "fire_count": self.fire_count,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Alarm | None:
        """Build an alarm from a stored record, None if unusable."""
        try:
            alarm_id = int(raw["id"])
        except (KeyError, TypeError, ValueError):
            return None

        fire_at = _parse_datetime(raw.get("fire_at"))
        if fire_at is None:
            return None

        state = str(raw.get("state") or ALARM_STATE_SCHEDULED)
        if state not in _VALID_STATES:
            state = ALARM_STATE_SCHEDULED

        try:
            fire_count = int(raw.get("fire_count") or 0)
        except (TypeError, ValueError):
            fire_count = 0

        return cls(
            id=alarm_id,
            fire_at=fire_at,
            label=str(raw.get("label") or "").strip() or f"{DEFAULT_ALARM_LABEL} {alarm_id}",
            active=bool(raw.get("active", True)),
            state=state,
            snoozed_until=_parse_datetime(raw.get("snoozed_until")),
            reschedule_on_boot=bool(raw.get("reschedule_on_boot", True)),
            created_at=_parse_datetime(raw.get("created_at")),
            updated_at=_parse_datetime(raw.get("updated_at")),
            last_fired_at=_parse_datetime(raw.get("last_fired_at")),
            fire_count=fire_count,
        )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO string into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        parsed = dt_util.parse_datetime(value)
        if parsed is None:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_util.DEFAULT_TIME_ZONE)
    return dt_util.as_utc(parsed)


def _empty_store_data() -> dict[str, Any]:
    """Return empty alarm storage structure."""
    return {
        "version": ALARM_STORAGE_VERSION,
        "next_id": 1,
        "current_alarm_id": None,
        "alarms": [],
    }


class _AlarmStorage(Store[dict[str, Any]]):
    """Storage helper that migrates older alarm documents."""

    async def _async_migrate_func(
        self,
        old_major_version: int,
        old_minor_version: int,
        old_data: dict[str, Any],
    ) -> dict[str, Any]:
        """Migrate stored alarm payload to current schema version."""
        _LOGGER.info(
            "Migrating alarm storage from %s.%s to %s",
            old_major_version,
            old_minor_version,
            ALARM_STORAGE_VERSION,
        )
        data = old_data if isinstance(old_data, dict) else {}
        return {**_empty_store_data(), **data, "version": ALARM_STORAGE_VERSION}


AlarmMutator = Callable[[Alarm], None]


class AlarmStore:
    """Durable keyed collection of alarms.

    Every mutation is written through to storage before the call returns. A
    failed write restores the previous in-memory document and raises
    StoreUnavailable, so callers never observe a half-applied change.
    """

    def __init__(
        self,
        hass: HomeAssistant | None,
        store: Any | None = None,
        clock: Callable[[], datetime] = dt_util.utcnow,
    ) -> None:
        """Initialize with an optional storage backend (in-memory when none)."""
        self._hass = hass
        self._clock = clock
        if store is None and hass is not None:
            store = _AlarmStorage(
                hass,
                ALARM_STORAGE_VERSION,
                ALARM_STORAGE_KEY,
                atomic_writes=True,
            )
        self._store = store
        self._data: dict[str, Any] = _empty_store_data()
        self._loaded = False
        self._lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        """Return whether the document has been read from storage."""
        return self._loaded

    async def async_load(self) -> None:
        """Load the document once; later calls are no-ops."""
        if self._loaded:
            return
        async with self._lock:
            if self._loaded:
                return
            if self._store is None:
                self._loaded = True
                return
            try:
                stored = await self._store.async_load()
            except Exception as err:
                raise StoreUnavailable(f"Failed to load alarm storage: {err}") from err

            if stored is None:
                self._data = _empty_store_data()
                _LOGGER.info("No alarm storage found, starting fresh")
            else:
                self._import_state(stored)
                _LOGGER.info("Loaded %d alarms", len(self._data["alarms"]))
            self._loaded = True

    def _import_state(self, stored: dict[str, Any]) -> None:
        """Import persisted data, dropping records that cannot be parsed."""
        data = stored if isinstance(stored, dict) else {}
        raw_alarms = data.get("alarms", [])
        if not isinstance(raw_alarms, list):
            raw_alarms = []

        alarms: list[dict[str, Any]] = []
        seen: set[int] = set()
        for raw in raw_alarms:
            alarm = Alarm.from_dict(raw) if isinstance(raw, dict) else None
            if alarm is None or alarm.id in seen:
                _LOGGER.warning("Skipping unreadable alarm record: %s", raw)
                continue
            seen.add(alarm.id)
            alarms.append(alarm.as_dict())

        try:
            next_id = int(data.get("next_id") or 1)
        except (TypeError, ValueError):
            next_id = 1
        # The counter must stay ahead of every id still on disk.
        next_id = max([next_id, *(alarm_id + 1 for alarm_id in seen)])

        current = data.get("current_alarm_id")
        self._data = {
            "version": ALARM_STORAGE_VERSION,
            "next_id": next_id,
            "current_alarm_id": current if isinstance(current, int) else None,
            "alarms": alarms,
        }

    async def _async_commit(self, previous: dict[str, Any]) -> None:
        """Persist the document or roll back to ``previous``."""
        if self._store is None:
            return
        try:
            await self._store.async_save(self._data)
        except Exception as err:
            self._data = previous
            _LOGGER.error("Failed to save alarms: %s", err)
            raise StoreUnavailable(f"Failed to save alarm storage: {err}") from err

    def _snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    def _find_index(self, alarm_id: int) -> int | None:
        for index, raw in enumerate(self._data["alarms"]):
            if raw.get("id") == alarm_id:
                return index
        return None

    async def create(self, fields: dict[str, Any]) -> Alarm:
        """Allocate a fresh id, store the alarm and return it."""
        await self.async_load()
        async with self._lock:
            previous = self._snapshot()
            alarm_id = int(self._data["next_id"])
            now = self._clock()
            label = str(fields.get("label") or "").strip() or f"{DEFAULT_ALARM_LABEL} {alarm_id}"
            alarm = Alarm(
                id=alarm_id,
                fire_at=fields["fire_at"],
                label=label,
                active=bool(fields.get("active", True)),
                state=str(fields.get("state") or ALARM_STATE_SCHEDULED),
                snoozed_until=fields.get("snoozed_until"),
                reschedule_on_boot=bool(fields.get("reschedule_on_boot", True)),
                created_at=now,
                updated_at=now,
            )
            self._data["next_id"] = alarm_id + 1
            self._data["alarms"].append(alarm.as_dict())
            await self._async_commit(previous)
            return alarm

    async def get(self, alarm_id: int) -> Alarm:
        """Return the alarm or raise AlarmNotFound."""
        await self.async_load()
        index = self._find_index(alarm_id)
        if index is None:
            raise AlarmNotFound(alarm_id)
        return Alarm.from_dict(self._data["alarms"][index])

    async def update(
        self,
        alarm_id: int,
        mutator: AlarmMutator,
        release_current: bool = False,
    ) -> Alarm:
        """Atomically apply ``mutator`` to one alarm and persist it.

        The mutator receives a copy; raising from it aborts without writing.
        With ``release_current`` the current alarm id is cleared in the same
        write when it points at ``alarm_id``.
        """
        await self.async_load()
        async with self._lock:
            index = self._find_index(alarm_id)
            if index is None:
                raise AlarmNotFound(alarm_id)
            previous = self._snapshot()
            updated = Alarm.from_dict(self._data["alarms"][index])
            mutator(updated)
            updated.id = alarm_id
            updated.updated_at = self._clock()
            self._data["alarms"][index] = updated.as_dict()
            if release_current and self._data.get("current_alarm_id") == alarm_id:
                self._data["current_alarm_id"] = None
            await self._async_commit(previous)
            return updated

    async def claim(self, alarm_id: int, mutator: AlarmMutator) -> Alarm:
        """Apply ``mutator`` and make ``alarm_id`` the current alarm in one write.

        A different alarm still marked firing is marked dismissed in the same
        write, so a failed save leaves every record and the current id as
        they were. Raising from the mutator aborts without writing.
        """
        await self.async_load()
        async with self._lock:
            index = self._find_index(alarm_id)
            if index is None:
                raise AlarmNotFound(alarm_id)
            previous = self._snapshot()
            now = self._clock()
            claimed = Alarm.from_dict(self._data["alarms"][index])
            mutator(claimed)
            claimed.id = alarm_id
            claimed.updated_at = now
            self._data["alarms"][index] = claimed.as_dict()

            superseded_id = self._data.get("current_alarm_id")
            superseded_index = (
                self._find_index(superseded_id)
                if superseded_id is not None and superseded_id != alarm_id
                else None
            )
            if superseded_index is not None:
                raw = self._data["alarms"][superseded_index]
                if raw.get("state") == ALARM_STATE_FIRING:
                    raw["state"] = ALARM_STATE_DISMISSED
                    raw["updated_at"] = _iso(now)
                else:
                    superseded_index = None

            self._data["current_alarm_id"] = alarm_id
            await self._async_commit(previous)
            if superseded_index is not None:
                _LOGGER.info("Alarm %s superseded by alarm %s", superseded_id, alarm_id)
            return claimed

    async def put(self, alarm: Alarm) -> Alarm:
        """Overwrite an existing record with ``alarm`` (used for rollbacks)."""
        return await self.update(alarm.id, lambda target: _copy_fields(alarm, target))

    async def delete(self, alarm_id: int) -> Alarm:
        """Remove an alarm; raise AlarmNotFound when it does not exist."""
        await self.async_load()
        async with self._lock:
            index = self._find_index(alarm_id)
            if index is None:
                raise AlarmNotFound(alarm_id)
            previous = self._snapshot()
            removed = self._data["alarms"].pop(index)
            if self._data.get("current_alarm_id") == alarm_id:
                self._data["current_alarm_id"] = None
            await self._async_commit(previous)
            return Alarm.from_dict(removed)

    async def list_alarms(self) -> list[Alarm]:
        """Return all alarms in insertion order."""
        await self.async_load()
        return [Alarm.from_dict(raw) for raw in self._data["alarms"]]

    async def all_fire_times_before(self, instant: datetime) -> set[int]:
        """Return ids of active alarms due at or before ``instant``."""
        return {
            alarm.id
            for alarm in await self.list_alarms()
            if alarm.active and alarm.next_trigger <= instant
        }

    @property
    def current_alarm_id(self) -> int | None:
        """Return the id of the alarm currently firing."""
        return self._data.get("current_alarm_id")

    async def set_current_alarm_id(self, alarm_id: int | None) -> None:
        """Persist the currently firing alarm id."""
        await self.async_load()
        async with self._lock:
            if self._data.get("current_alarm_id") == alarm_id:
                return
            previous = self._snapshot()
            self._data["current_alarm_id"] = alarm_id
            await self._async_commit(previous)

    async def clear_current_alarm_id(self, alarm_id: int) -> bool:
        """Clear the current alarm only if it still points at ``alarm_id``."""
        await self.async_load()
        async with self._lock:
            if self._data.get("current_alarm_id") != alarm_id:
                return False
            previous = self._snapshot()
            self._data["current_alarm_id"] = None
            await self._async_commit(previous)
            return True

    def export_state(self) -> dict[str, Any]:
        """Return a copy of persisted state (for diagnostics/tests)."""
        return self._snapshot()


def _copy_fields(source: Alarm, target: Alarm) -> None:
    target.fire_at = source.fire_at
    target.label = source.label
    target.active = source.active
    target.state = source.state
    target.snoozed_until = source.snoozed_until
    target.reschedule_on_boot = source.reschedule_on_boot
    target.last_fired_at = source.last_fired_at
    target.fire_count = source.fire_count


def deactivate_alarm(alarm: Alarm) -> None:
    """Mutator for an alarm that lost its wake registration."""
    alarm.active = False
    alarm.snoozed_until = None
    alarm.state = ALARM_STATE_DISMISSED
