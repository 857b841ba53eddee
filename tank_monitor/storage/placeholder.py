from __future__ import annotations

from typing import Any, Dict, List, NoReturn, Optional

from tank_monitor.core.exceptions import BackendNotImplemented
from tank_monitor.schemas.history import HistoryEntry, HistoryEntryCreate
from tank_monitor.schemas.maintenance import MaintenanceCreate, MaintenanceRecord
from tank_monitor.schemas.storage import StorageBackend
from tank_monitor.schemas.tank import Tank, TankCreate, TankUpdate
from tank_monitor.storage.base import TankStore


class PlaceholderTankStore(TankStore):
    """Backend reservado sin implementacion: toda operacion falla con ``BackendNotImplemented``."""

    kind = StorageBackend.placeholder

    def _unsupported(self, operation: str) -> NoReturn:
        raise BackendNotImplemented(self.kind.value, operation)

    async def list_tanks(self) -> List[Tank]:
        self._unsupported("list_tanks")

    async def get_tank(self, tank_id: int) -> Tank:
        self._unsupported("get_tank")

    async def create_tank(self, tank_in: TankCreate) -> Tank:
        self._unsupported("create_tank")

    async def update_tank(self, tank_id: int, changes: TankUpdate) -> Tank:
        self._unsupported("update_tank")

    async def delete_tank(self, tank_id: int) -> bool:
        self._unsupported("delete_tank")

    async def add_history(self, entry: HistoryEntryCreate) -> HistoryEntry:
        self._unsupported("add_history")

    async def list_history(self, tank_id: Optional[int] = None) -> List[HistoryEntry]:
        self._unsupported("list_history")

    async def add_maintenance(self, data: MaintenanceCreate) -> MaintenanceRecord:
        self._unsupported("add_maintenance")

    async def get_maintenance(self, maintenance_id: int) -> MaintenanceRecord:
        self._unsupported("get_maintenance")

    async def list_maintenance(self, tank_id: Optional[int] = None) -> List[MaintenanceRecord]:
        self._unsupported("list_maintenance")

    async def update_maintenance(self, maintenance_id: int, changes: Dict[str, Any]) -> MaintenanceRecord:
        self._unsupported("update_maintenance")
