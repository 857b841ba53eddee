"""Backend arbol realtime (Firebase Realtime Database, SDK de administracion).

Estructura del arbol (todo en camelCase, sin el id dentro del nodo)::

    tanks/<id>          -> tanque
    tank_history/<id>   -> entrada del historial
    maintenance/<id>    -> mantenimiento
    counters/<nombre>   -> ultimo id asignado

El SDK es sincrono (HTTP); cada operacion se ejecuta en el threadpool.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

import firebase_admin
import google.auth.exceptions
from fastapi.concurrency import run_in_threadpool
from firebase_admin import credentials, db, exceptions

from tank_monitor.core.clock import utcnow_iso
from tank_monitor.core.exceptions import RecordNotFound, StorageUnavailable
from tank_monitor.models.history import MaintenanceStatus
from tank_monitor.schemas.history import HistoryEntry, HistoryEntryCreate
from tank_monitor.schemas.maintenance import MaintenanceCreate, MaintenanceRecord
from tank_monitor.schemas.storage import StorageBackend
from tank_monitor.schemas.tank import Tank, TankCreate, TankUpdate
from tank_monitor.storage.base import TankStore, wire_values

_logger = logging.getLogger(__name__)

T = TypeVar("T")

TANKS_NODE = "tanks"
HISTORY_NODE = "tank_history"
MAINTENANCE_NODE = "maintenance"
COUNTERS_NODE = "counters"

_app_names = itertools.count(1)


def _compact(node: Dict[str, Any]) -> Dict[str, Any]:
    # el arbol no guarda nulls: un campo ausente se lee como None
    return {key: value for key, value in node.items() if value is not None}


def _children(value: Any) -> List[Tuple[int, Dict[str, Any]]]:
    """Hijos de un nodo ordenados por id.

    Con claves enteras consecutivas la base devuelve una lista en vez de un
    dict (los huecos vienen como None).
    """
    if not value:
        return []
    items = enumerate(value) if isinstance(value, list) else value.items()
    return sorted(((int(key), node) for key, node in items if node is not None), key=lambda item: item[0])


def _from_node(schema, node_id: int, node: Dict[str, Any]):
    return schema.model_validate({**node, "id": node_id})


def _to_node(model) -> Dict[str, Any]:
    return _compact(model.model_dump(mode="json", by_alias=True, exclude={"id"}))


def _merge_with(values: Dict[str, Any]) -> Callable[[Optional[Dict[str, Any]]], Optional[Dict[str, Any]]]:
    def merge(current):
        # nodo inexistente: no se crea
        if current is None:
            return None
        return _compact({**current, **values})

    return merge


class RealtimeTreeTankStore(TankStore):
    kind = StorageBackend.realtime

    def __init__(
        self,
        database_url: str = "",
        credentials_file: str = "",
        *,
        root: Optional[db.Reference] = None,
    ) -> None:
        self._database_url = database_url
        self._credentials_file = credentials_file
        self._app: Optional[firebase_admin.App] = None
        self._root = root

    async def open(self) -> None:
        if self._root is not None:
            return
        if not self._database_url:
            raise StorageUnavailable("FIREBASE_DATABASE_URL is not set", backend=self.kind.value)
        try:
            credential = (
                credentials.Certificate(self._credentials_file)
                if self._credentials_file
                else credentials.ApplicationDefault()
            )
            # las credenciales por defecto se resuelven aca y no en la primera lectura
            credential.get_credential()
            # nombre propio por instancia: cambiar de backend no choca con la app anterior
            self._app = firebase_admin.initialize_app(
                credential,
                {"databaseURL": self._database_url},
                name=f"tank-monitor-{next(_app_names)}",
            )
        except (ValueError, OSError, google.auth.exceptions.GoogleAuthError) as exc:
            raise StorageUnavailable(f"Firebase setup failed: {exc}", backend=self.kind.value) from exc
        self._root = db.reference("/", app=self._app)
        _logger.info("Conectado a Firebase Realtime Database: %s", self._database_url)

    async def close(self) -> None:
        if self._app is not None:
            firebase_admin.delete_app(self._app)
            self._app = None
            self._root = None
            _logger.info("Desconectado de Firebase.")

    async def _run(self, operation: Callable[[db.Reference], T]) -> T:
        root = self._root
        if root is None:
            raise StorageUnavailable("Realtime store is not open", backend=self.kind.value)
        try:
            return await run_in_threadpool(operation, root)
        except (exceptions.UnavailableError, exceptions.DeadlineExceededError, db.TransactionAbortedError) as exc:
            raise StorageUnavailable(f"Firebase unavailable: {exc}", backend=self.kind.value) from exc

    @staticmethod
    def _next_id(root: db.Reference, sequence: str) -> int:
        return root.child(f"{COUNTERS_NODE}/{sequence}").transaction(lambda current: (current or 0) + 1)

    # --- Tanques ---

    async def list_tanks(self) -> List[Tank]:
        nodes = await self._run(lambda root: _children(root.child(TANKS_NODE).get()))
        return [_from_node(Tank, node_id, node) for node_id, node in nodes]

    async def get_tank(self, tank_id: int) -> Tank:
        node = await self._run(lambda root: root.child(f"{TANKS_NODE}/{tank_id}").get())
        if node is None:
            raise RecordNotFound("Tank", tank_id)
        return _from_node(Tank, tank_id, node)

    async def create_tank(self, tank_in: TankCreate) -> Tank:
        def create(root: db.Reference) -> Tank:
            tank = Tank(id=self._next_id(root, TANKS_NODE), last_updated=utcnow_iso(), **tank_in.model_dump())
            root.child(f"{TANKS_NODE}/{tank.id}").set(_to_node(tank))
            return tank

        return await self._run(create)

    async def update_tank(self, tank_id: int, changes: TankUpdate) -> Tank:
        values = changes.model_dump(mode="json", by_alias=True, exclude_unset=True)
        values["lastUpdated"] = utcnow_iso()
        # transaccion: lectura y escritura atomicas sobre el nodo del tanque
        node = await self._run(lambda root: root.child(f"{TANKS_NODE}/{tank_id}").transaction(_merge_with(values)))
        if node is None:
            raise RecordNotFound("Tank", tank_id)
        return _from_node(Tank, tank_id, node)

    async def delete_tank(self, tank_id: int) -> bool:
        def delete(root: db.Reference) -> bool:
            tank_ref = root.child(f"{TANKS_NODE}/{tank_id}")
            if tank_ref.get() is None:
                return False
            tank_ref.delete()
            for node_name in (HISTORY_NODE, MAINTENANCE_NODE):
                for node_id, node in _children(root.child(node_name).get()):
                    if node.get("tankId") == tank_id:
                        root.child(f"{node_name}/{node_id}/tankId").delete()
            return True

        return await self._run(delete)

    # --- Historial ---

    async def add_history(self, entry: HistoryEntryCreate) -> HistoryEntry:
        def add(root: db.Reference) -> HistoryEntry:
            stored = HistoryEntry(
                id=self._next_id(root, HISTORY_NODE),
                tank_id=entry.tank_id,
                timestamp=entry.timestamp or utcnow_iso(),
                event_type=entry.event_type,
                value=entry.value,
                description=entry.description,
            )
            root.child(f"{HISTORY_NODE}/{stored.id}").set(_to_node(stored))
            return stored

        return await self._run(add)

    async def list_history(self, tank_id: Optional[int] = None) -> List[HistoryEntry]:
        nodes = await self._run(lambda root: _children(root.child(HISTORY_NODE).get()))
        entries = [_from_node(HistoryEntry, node_id, node) for node_id, node in nodes]
        return [entry for entry in entries if tank_id is None or entry.tank_id == tank_id]

    # --- Mantenimiento ---

    async def add_maintenance(self, data: MaintenanceCreate) -> MaintenanceRecord:
        def add(root: db.Reference) -> MaintenanceRecord:
            stored = MaintenanceRecord(
                id=self._next_id(root, MAINTENANCE_NODE),
                tank_id=data.tank_id,
                maintenance_type=data.maintenance_type,
                description=data.description,
                technician=data.technician,
                scheduled_date=data.scheduled_date or utcnow_iso(),
                status=MaintenanceStatus.scheduled,
            )
            root.child(f"{MAINTENANCE_NODE}/{stored.id}").set(_to_node(stored))
            return stored

        return await self._run(add)

    async def get_maintenance(self, maintenance_id: int) -> MaintenanceRecord:
        node = await self._run(lambda root: root.child(f"{MAINTENANCE_NODE}/{maintenance_id}").get())
        if node is None:
            raise RecordNotFound("Maintenance", maintenance_id)
        return _from_node(MaintenanceRecord, maintenance_id, node)

    async def list_maintenance(self, tank_id: Optional[int] = None) -> List[MaintenanceRecord]:
        nodes = await self._run(lambda root: _children(root.child(MAINTENANCE_NODE).get()))
        records = [_from_node(MaintenanceRecord, node_id, node) for node_id, node in nodes]
        return [record for record in records if tank_id is None or record.tank_id == tank_id]

    async def update_maintenance(self, maintenance_id: int, changes: Dict[str, Any]) -> MaintenanceRecord:
        merge = _merge_with(wire_values(changes))
        node = await self._run(lambda root: root.child(f"{MAINTENANCE_NODE}/{maintenance_id}").transaction(merge))
        if node is None:
            raise RecordNotFound("Maintenance", maintenance_id)
        return _from_node(MaintenanceRecord, maintenance_id, node)
