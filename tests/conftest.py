from __future__ import annotations

import itertools
import random
from collections.abc import AsyncIterator, Iterator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from tank_monitor.core.config import Settings
from tank_monitor.main import create_app
from tank_monitor.storage import document, memory, realtime, relational
from tank_monitor.storage.base import TankStore
from tank_monitor.storage.document import DocumentTankStore
from tank_monitor.storage.memory import MemoryTankStore
from tank_monitor.storage.realtime import RealtimeTreeTankStore
from tank_monitor.storage.relational import RelationalTankStore

from fake_firebase import FakeReference
from fake_mongo import FakeDatabase, UnreachableDatabase


@pytest.fixture
def settings() -> Settings:
    return Settings(
        STORAGE_BACKEND="memory",
        SEED_SAMPLE_TANKS=False,
        SIMULATION_ENABLED=False,
        DATABASE_URL="sqlite://",
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    app = create_app(settings, rng=random.Random(1234))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def ticking_clock(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Replace the store timestamps with a strictly increasing sequence."""
    issued: list[str] = []
    counter = itertools.count(1)

    def fake_now() -> str:
        stamp = f"2024-01-01T00:00:{next(counter):02d}+00:00"
        issued.append(stamp)
        return stamp

    for module in (memory, relational, document, realtime):
        monkeypatch.setattr(module, "utcnow_iso", fake_now)
    return issued


def _build_store(kind: str) -> TankStore:
    if kind == "memory":
        return MemoryTankStore()
    if kind == "relational":
        return RelationalTankStore("sqlite://")
    if kind == "document":
        return DocumentTankStore(database=FakeDatabase())
    return RealtimeTreeTankStore(root=FakeReference())


@pytest_asyncio.fixture(params=["memory", "relational", "document", "realtime"])
async def store(request: pytest.FixtureRequest) -> AsyncIterator[TankStore]:
    tank_store = _build_store(request.param)
    await tank_store.open()
    yield tank_store
    await tank_store.close()


@pytest.fixture
def unreachable_database() -> UnreachableDatabase:
    return UnreachableDatabase()
