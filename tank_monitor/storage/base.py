"""Contrato comun de todos los backends de almacenamiento.

Cada backend devuelve siempre los mismos esquemas pydantic (``Tank``,
``HistoryEntry``, ``MaintenanceRecord``), de modo que quien lo usa no puede
distinguir un backend de otro salvo por como falla.
"""

from __future__ import annotations

import abc
import enum
from typing import Any, ClassVar, Dict, List, Optional

from pydantic.alias_generators import to_camel

from tank_monitor.schemas.history import HistoryEntry, HistoryEntryCreate
from tank_monitor.schemas.maintenance import MaintenanceCreate, MaintenanceRecord
from tank_monitor.schemas.storage import StorageBackend
from tank_monitor.schemas.tank import Tank, TankCreate, TankUpdate


def update_changes(changes: TankUpdate) -> Dict[str, Any]:
    """Solo los campos enviados; los ausentes quedan como estaban."""
    return changes.model_dump(exclude_unset=True)


def wire_values(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Cambios con nombres de campo en camelCase y enums como valor plano."""
    return {
        to_camel(key): value.value if isinstance(value, enum.Enum) else value
        for key, value in changes.items()
    }


class TankStore(abc.ABC):
    kind: ClassVar[StorageBackend]

    async def open(self) -> None:
        """Reserva los recursos del backend (conexiones, tablas)."""

    async def close(self) -> None:
        """Libera los recursos del backend."""

    # --- Tanques ---

    @abc.abstractmethod
    async def list_tanks(self) -> List[Tank]:
        ...

    @abc.abstractmethod
    async def get_tank(self, tank_id: int) -> Tank:
        """Devuelve el tanque o lanza ``RecordNotFound``."""

    @abc.abstractmethod
    async def create_tank(self, tank_in: TankCreate) -> Tank:
        ...

    @abc.abstractmethod
    async def update_tank(self, tank_id: int, changes: TankUpdate) -> Tank:
        """Fusiona ``changes`` sobre el tanque y vuelve a sellar ``last_updated``."""

    @abc.abstractmethod
    async def delete_tank(self, tank_id: int) -> bool:
        """Borra el tanque y desvincula su historial y mantenimientos."""

    # --- Historial ---

    @abc.abstractmethod
    async def add_history(self, entry: HistoryEntryCreate) -> HistoryEntry:
        ...

    @abc.abstractmethod
    async def list_history(self, tank_id: Optional[int] = None) -> List[HistoryEntry]:
        ...

    # --- Mantenimiento ---

    @abc.abstractmethod
    async def add_maintenance(self, data: MaintenanceCreate) -> MaintenanceRecord:
        ...

    @abc.abstractmethod
    async def get_maintenance(self, maintenance_id: int) -> MaintenanceRecord:
        ...

    @abc.abstractmethod
    async def list_maintenance(self, tank_id: Optional[int] = None) -> List[MaintenanceRecord]:
        ...

    @abc.abstractmethod
    async def update_maintenance(self, maintenance_id: int, changes: Dict[str, Any]) -> MaintenanceRecord:
        ...
