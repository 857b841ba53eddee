from __future__ import annotations

import asyncio
import random

import pytest

from tank_monitor.core.exceptions import RecordNotFound, StorageUnavailable
from tank_monitor.models.history import HistoryEventType
from tank_monitor.models.tank import TankStatus
from tank_monitor.schemas.events import EventType
from tank_monitor.schemas.tank import TankCreate
from tank_monitor.services.simulator import TankSimulator
from tank_monitor.services.status import clamp_fill_level
from tank_monitor.storage.handle import StoreHandle
from tank_monitor.storage.memory import MemoryTankStore


class RecordingHub:
    def __init__(self) -> None:
        self.events = []

    def publish(self, event) -> int:
        self.events.append(event)
        return 1


class ScriptedRandom(random.Random):
    """``choice`` stays random; ``uniform`` returns the scripted deltas in order."""

    def __init__(self, deltas) -> None:
        super().__init__(0)
        self._deltas = iter(deltas)

    def uniform(self, a, b):
        return next(self._deltas)


class FailingUpdateStore(MemoryTankStore):
    def __init__(self, error: Exception) -> None:
        super().__init__()
        self.error = error

    async def update_tank(self, tank_id, changes):
        raise self.error


class FlakyListStore(MemoryTankStore):
    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.calls = 0

    async def list_tanks(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("sensor bus glitch")
        return await super().list_tanks()


async def _seeded(store: MemoryTankStore, *levels: float) -> None:
    for index, level in enumerate(levels):
        await store.create_tank(TankCreate(name=f"Tank {index + 1}", fill_level=level, temperature=22.0))


@pytest.mark.asyncio
async def test_tick_is_deterministic_for_a_seeded_rng() -> None:
    store = MemoryTankStore()
    await _seeded(store, 65, 78, 43)
    hub = RecordingHub()
    simulator = TankSimulator(StoreHandle(store), hub, rng=random.Random(7))

    expected_rng = random.Random(7)
    chosen = expected_rng.choice(await store.list_tanks())
    expected_fill = round(clamp_fill_level(chosen.fill_level + expected_rng.uniform(-5.0, 5.0)), 1)
    expected_temperature = round(chosen.temperature + expected_rng.uniform(-0.5, 0.5), 1)

    updated = await simulator.tick()

    assert updated.id == chosen.id
    assert updated.fill_level == expected_fill
    assert updated.temperature == expected_temperature
    assert await store.get_tank(chosen.id) == updated
    assert len(hub.events) == 1
    assert hub.events[0].type == EventType.tank_update
    assert hub.events[0].payload["id"] == chosen.id
    assert hub.events[0].payload["fillLevel"] == expected_fill


@pytest.mark.asyncio
async def test_fill_level_stays_within_bounds_under_extreme_deltas() -> None:
    store = MemoryTankStore()
    await _seeded(store, 2, 50, 98)
    simulator = TankSimulator(
        StoreHandle(store), RecordingHub(), fill_max_delta=400.0, rng=random.Random(11)
    )

    for _ in range(60):
        await simulator.tick()

    levels = [tank.fill_level for tank in await store.list_tanks()]
    assert all(0.0 <= level <= 100.0 for level in levels)


@pytest.mark.asyncio
async def test_tick_on_empty_store_does_nothing() -> None:
    hub = RecordingHub()
    simulator = TankSimulator(StoreHandle(MemoryTankStore()), hub, rng=random.Random(3))

    assert await simulator.tick() is None
    assert hub.events == []


@pytest.mark.asyncio
async def test_status_transitions_are_recorded_in_history() -> None:
    store = MemoryTankStore()
    await _seeded(store, 16)
    hub = RecordingHub()
    simulator = TankSimulator(StoreHandle(store), hub, rng=ScriptedRandom([-4.0, 0.0, 4.5, 0.0, 4.6, 0.0]))

    dropped = await simulator.tick()
    assert dropped.fill_level == 12.0
    assert dropped.status == TankStatus.warning

    # 16.5 is inside the hysteresis band
    banded = await simulator.tick()
    assert banded.status == TankStatus.warning

    recovered = await simulator.tick()
    assert recovered.fill_level == 21.1
    assert recovered.status == TankStatus.online

    history = await store.list_history(tank_id=dropped.id)
    assert [entry.event_type for entry in history] == [HistoryEventType.alert_low, HistoryEventType.status]
    assert history[0].value == 12.0
    assert len(hub.events) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [StorageUnavailable("db down"), RecordNotFound("Tank", 1)])
async def test_failed_update_skips_the_tick(error: Exception) -> None:
    store = FailingUpdateStore(error)
    await _seeded(store, 50)
    hub = RecordingHub()
    simulator = TankSimulator(StoreHandle(store), hub, rng=random.Random(5))

    assert await simulator.tick() is None
    assert hub.events == []


@pytest.mark.asyncio
async def test_loop_keeps_running_after_a_failed_tick() -> None:
    store = FlakyListStore(failures=2)
    await store.create_tank(TankCreate(name="Tank A", fill_level=50))
    hub = RecordingHub()
    simulator = TankSimulator(StoreHandle(store), hub, interval=0.01, rng=random.Random(9))

    simulator.start()
    try:
        for _ in range(200):
            if hub.events:
                break
            await asyncio.sleep(0.01)
        assert simulator.running
    finally:
        await simulator.stop()

    assert store.calls >= 3
    assert hub.events
    assert not simulator.running
