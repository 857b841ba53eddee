from __future__ import annotations

import itertools
from typing import Any, Dict, List, Optional

from tank_monitor.core.clock import utcnow_iso
from tank_monitor.core.exceptions import RecordNotFound
from tank_monitor.models.history import MaintenanceStatus
from tank_monitor.schemas.history import HistoryEntry, HistoryEntryCreate
from tank_monitor.schemas.maintenance import MaintenanceCreate, MaintenanceRecord
from tank_monitor.schemas.storage import StorageBackend
from tank_monitor.schemas.tank import Tank, TankCreate, TankUpdate
from tank_monitor.storage.base import TankStore, update_changes


class MemoryTankStore(TankStore):
    """Backend en memoria: dicts por id y contadores que nunca retroceden.

    Solo sirve para un proceso; varios procesos necesitan un backend compartido.
    """

    kind = StorageBackend.memory

    def __init__(self) -> None:
        self._tanks: Dict[int, Tank] = {}
        self._history: Dict[int, HistoryEntry] = {}
        self._maintenance: Dict[int, MaintenanceRecord] = {}
        self._tank_ids = itertools.count(1)
        self._history_ids = itertools.count(1)
        self._maintenance_ids = itertools.count(1)

    async def list_tanks(self) -> List[Tank]:
        return [tank.model_copy(deep=True) for tank in self._tanks.values()]

    async def get_tank(self, tank_id: int) -> Tank:
        tank = self._tanks.get(tank_id)
        if tank is None:
            raise RecordNotFound("Tank", tank_id)
        return tank.model_copy(deep=True)

    async def create_tank(self, tank_in: TankCreate) -> Tank:
        tank = Tank(id=next(self._tank_ids), last_updated=utcnow_iso(), **tank_in.model_dump())
        self._tanks[tank.id] = tank
        return tank.model_copy(deep=True)

    async def update_tank(self, tank_id: int, changes: TankUpdate) -> Tank:
        current = self._tanks.get(tank_id)
        if current is None:
            raise RecordNotFound("Tank", tank_id)
        merged = current.model_copy(update={**update_changes(changes), "last_updated": utcnow_iso()}, deep=True)
        self._tanks[tank_id] = merged
        return merged.model_copy(deep=True)

    async def delete_tank(self, tank_id: int) -> bool:
        if self._tanks.pop(tank_id, None) is None:
            return False
        for entry_id, entry in self._history.items():
            if entry.tank_id == tank_id:
                self._history[entry_id] = entry.model_copy(update={"tank_id": None})
        for record_id, record in self._maintenance.items():
            if record.tank_id == tank_id:
                self._maintenance[record_id] = record.model_copy(update={"tank_id": None})
        return True

    async def add_history(self, entry: HistoryEntryCreate) -> HistoryEntry:
        stored = HistoryEntry(
            id=next(self._history_ids),
            tank_id=entry.tank_id,
            timestamp=entry.timestamp or utcnow_iso(),
            event_type=entry.event_type,
            value=entry.value,
            description=entry.description,
        )
        self._history[stored.id] = stored
        return stored.model_copy()

    async def list_history(self, tank_id: Optional[int] = None) -> List[HistoryEntry]:
        return [
            entry.model_copy()
            for entry in self._history.values()
            if tank_id is None or entry.tank_id == tank_id
        ]

    async def add_maintenance(self, data: MaintenanceCreate) -> MaintenanceRecord:
        stored = MaintenanceRecord(
            id=next(self._maintenance_ids),
            tank_id=data.tank_id,
            maintenance_type=data.maintenance_type,
            description=data.description,
            technician=data.technician,
            scheduled_date=data.scheduled_date or utcnow_iso(),
            status=MaintenanceStatus.scheduled,
        )
        self._maintenance[stored.id] = stored
        return stored.model_copy()

    async def get_maintenance(self, maintenance_id: int) -> MaintenanceRecord:
        record = self._maintenance.get(maintenance_id)
        if record is None:
            raise RecordNotFound("Maintenance", maintenance_id)
        return record.model_copy()

    async def list_maintenance(self, tank_id: Optional[int] = None) -> List[MaintenanceRecord]:
        return [
            record.model_copy()
            for record in self._maintenance.values()
            if tank_id is None or record.tank_id == tank_id
        ]

    async def update_maintenance(self, maintenance_id: int, changes: Dict[str, Any]) -> MaintenanceRecord:
        record = self._maintenance.get(maintenance_id)
        if record is None:
            raise RecordNotFound("Maintenance", maintenance_id)
        updated = record.model_copy(update=changes)
        self._maintenance[maintenance_id] = updated
        return updated.model_copy()
