from __future__ import annotations

import pytest
from sqlalchemy import create_engine, inspect

from tank_monitor.schemas.tank import TankCreate
from tank_monitor.scripts.reset_db import reset_database
from tank_monitor.storage.relational import RelationalTankStore


@pytest.mark.asyncio
async def test_reset_database_drops_existing_rows(tmp_path, capsys) -> None:
    url = f"sqlite:///{tmp_path / 'tanks.db'}"
    store = RelationalTankStore(url)
    await store.open()
    await store.create_tank(TankCreate(name="Tank A"))
    await store.close()

    reset_database(url)

    engine = create_engine(url)
    try:
        assert set(inspect(engine).get_table_names()) >= {"tanks", "tank_history", "maintenance"}
    finally:
        engine.dispose()
    store = RelationalTankStore(url)
    await store.open()
    try:
        assert await store.list_tanks() == []
        assert (await store.create_tank(TankCreate(name="Tank B"))).id == 1
    finally:
        await store.close()
    assert "Tablas eliminadas." in capsys.readouterr().out
