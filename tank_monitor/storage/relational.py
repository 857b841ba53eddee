from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session

from tank_monitor.core.clock import utcnow_iso
from tank_monitor.core.exceptions import RecordNotFound, StorageUnavailable
from tank_monitor.crud import crud_history, crud_tank
from tank_monitor.db.database import Base, create_db_engine, create_session_factory
from tank_monitor.schemas.history import HistoryEntry, HistoryEntryCreate
from tank_monitor.schemas.maintenance import MaintenanceCreate, MaintenanceRecord
from tank_monitor.schemas.storage import StorageBackend
from tank_monitor.schemas.tank import Tank, TankCreate, TankUpdate
from tank_monitor.storage.base import TankStore, update_changes

# Registra las tablas en Base.metadata
from tank_monitor.models import history as _history_models, tank as _tank_models  # noqa: F401

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class RelationalTankStore(TankStore):
    """Backend SQLAlchemy (SQLite por defecto, cualquier URL soportada).

    Las funciones de ``crud`` son sincronas; se ejecutan en el threadpool para
    no bloquear el event loop.
    """

    kind = StorageBackend.relational

    def __init__(self, database_url: str) -> None:
        self._database_url = database_url
        self._engine = create_db_engine(database_url)
        self._session_factory = create_session_factory(self._engine)

    async def open(self) -> None:
        await self._run(lambda db: Base.metadata.create_all(bind=self._engine))
        _logger.info("Tablas relacionales listas en %s", self._engine.url.render_as_string(hide_password=True))

    async def close(self) -> None:
        await run_in_threadpool(self._engine.dispose)

    async def _run(self, operation: Callable[[Session], T]) -> T:
        def call() -> T:
            db = self._session_factory()
            try:
                return operation(db)
            finally:
                db.close()

        try:
            return await run_in_threadpool(call)
        except (OperationalError, InterfaceError) as exc:
            raise StorageUnavailable(f"Relational database unavailable: {exc}", backend=self.kind.value) from exc

    # --- Tanques ---

    async def list_tanks(self) -> List[Tank]:
        return await self._run(lambda db: [Tank.model_validate(row) for row in crud_tank.get_tanks(db)])

    async def get_tank(self, tank_id: int) -> Tank:
        row = await self._run(lambda db: _validated(Tank, crud_tank.get_tank(db, tank_id)))
        if row is None:
            raise RecordNotFound("Tank", tank_id)
        return row

    async def create_tank(self, tank_in: TankCreate) -> Tank:
        return await self._run(
            lambda db: Tank.model_validate(crud_tank.create_tank(db, tank_in, last_updated=utcnow_iso()))
        )

    async def update_tank(self, tank_id: int, changes: TankUpdate) -> Tank:
        values = {**update_changes(changes), "last_updated": utcnow_iso()}
        row = await self._run(lambda db: _validated(Tank, crud_tank.update_tank(db, tank_id, values)))
        if row is None:
            raise RecordNotFound("Tank", tank_id)
        return row

    async def delete_tank(self, tank_id: int) -> bool:
        return await self._run(lambda db: crud_tank.delete_tank(db, tank_id))

    # --- Historial ---

    async def add_history(self, entry: HistoryEntryCreate) -> HistoryEntry:
        return await self._run(
            lambda db: HistoryEntry.model_validate(crud_history.add_history(db, entry, timestamp=utcnow_iso()))
        )

    async def list_history(self, tank_id: Optional[int] = None) -> List[HistoryEntry]:
        return await self._run(
            lambda db: [HistoryEntry.model_validate(row) for row in crud_history.get_history(db, tank_id=tank_id)]
        )

    # --- Mantenimiento ---

    async def add_maintenance(self, data: MaintenanceCreate) -> MaintenanceRecord:
        return await self._run(
            lambda db: MaintenanceRecord.model_validate(
                crud_history.add_maintenance(db, data, scheduled_date=utcnow_iso())
            )
        )

    async def get_maintenance(self, maintenance_id: int) -> MaintenanceRecord:
        record = await self._run(
            lambda db: _validated(MaintenanceRecord, crud_history.get_maintenance(db, maintenance_id))
        )
        if record is None:
            raise RecordNotFound("Maintenance", maintenance_id)
        return record

    async def list_maintenance(self, tank_id: Optional[int] = None) -> List[MaintenanceRecord]:
        return await self._run(
            lambda db: [
                MaintenanceRecord.model_validate(row)
                for row in crud_history.get_maintenance_list(db, tank_id=tank_id)
            ]
        )

    async def update_maintenance(self, maintenance_id: int, changes: Dict[str, Any]) -> MaintenanceRecord:
        record = await self._run(
            lambda db: _validated(MaintenanceRecord, crud_history.update_maintenance(db, maintenance_id, changes))
        )
        if record is None:
            raise RecordNotFound("Maintenance", maintenance_id)
        return record


def _validated(schema, row):
    # Se valida dentro de la sesion, antes de cerrarla
    return schema.model_validate(row) if row is not None else None
