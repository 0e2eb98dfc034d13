"""Shared fakes for Pocket Alarm tests."""

from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from custom_components.pocket_alarm.context.alarm_store import AlarmStore
from custom_components.pocket_alarm.context.scheduler import AlarmScheduler

START = datetime(2026, 10, 17, 6, 0, tzinfo=timezone.utc)


class FakeClock:
    """Simulated clock that only moves when told to."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> datetime:
        self.now = self.now + delta
        return self.now


class FakeStorage:
    """In-memory stand-in for a Home Assistant Store that outlives AlarmStore instances."""

    def __init__(self) -> None:
        self.data: dict[str, Any] | None = None
        self.fail_load = False
        self.fail_save = False
        self.saves = 0

    async def async_load(self) -> dict[str, Any] | None:
        if self.fail_load:
            raise OSError("disk unavailable")
        return copy.deepcopy(self.data)

    async def async_save(self, data: dict[str, Any]) -> None:
        if self.fail_save:
            raise OSError("disk full")
        self.data = copy.deepcopy(data)
        self.saves += 1


class FakeWakeService:
    """Records one-shot registrations; can refuse the next N of them."""

    def __init__(self, clock: FakeClock) -> None:
        self._clock = clock
        self.registrations: dict[int, datetime] = {}
        self.delays: dict[int, timedelta] = {}
        self.refuse_next = 0
        self.refuse_all = False

    async def async_register_one_shot(self, alarm_id: int, delay: timedelta) -> bool:
        if self.refuse_all:
            return False
        if self.refuse_next > 0:
            self.refuse_next -= 1
            return False
        self.registrations[alarm_id] = self._clock() + delay
        self.delays[alarm_id] = delay
        return True

    async def async_cancel(self, alarm_id: int) -> bool:
        self.delays.pop(alarm_id, None)
        return self.registrations.pop(alarm_id, None) is not None

    def due(self) -> list[int]:
        """Pop and return the ids whose registration has elapsed."""
        now = self._clock()
        fired = [alarm_id for alarm_id, at in self.registrations.items() if at <= now]
        for alarm_id in fired:
            self.registrations.pop(alarm_id)
            self.delays.pop(alarm_id, None)
        return fired


class FakeNotifier:
    """Records shown and dismissed notifications."""

    def __init__(self) -> None:
        self.shown: list[dict[str, Any]] = []
        self.dismissed: list[int] = []
        self.result = True

    async def async_show(self, notification_id: int, title: str, body: str, payload: str) -> bool:
        self.shown.append(
            {"id": notification_id, "title": title, "body": body, "payload": payload}
        )
        return self.result

    async def async_dismiss(self, notification_id: int) -> None:
        self.dismissed.append(notification_id)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def store(storage: FakeStorage, clock: FakeClock) -> AlarmStore:
    return AlarmStore(None, store=storage, clock=clock)


@pytest.fixture
def wake(clock: FakeClock) -> FakeWakeService:
    return FakeWakeService(clock)


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def scheduler(store: AlarmStore, wake: FakeWakeService, clock: FakeClock) -> AlarmScheduler:
    return AlarmScheduler(store, wake, clock=clock)
