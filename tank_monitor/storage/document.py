from __future__ import annotations

import contextlib
import logging
from typing import Any, Dict, Iterator, List, Optional

import motor.motor_asyncio
import pymongo
from pymongo import ReturnDocument
from pymongo.errors import ConnectionFailure

from tank_monitor.core.clock import utcnow_iso
from tank_monitor.core.exceptions import RecordNotFound, StorageUnavailable
from tank_monitor.models.history import MaintenanceStatus
from tank_monitor.schemas.history import HistoryEntry, HistoryEntryCreate
from tank_monitor.schemas.maintenance import MaintenanceCreate, MaintenanceRecord
from tank_monitor.schemas.storage import StorageBackend
from tank_monitor.schemas.tank import Tank, TankCreate, TankUpdate
from tank_monitor.storage.base import TankStore, wire_values

_logger = logging.getLogger(__name__)

COUNTERS_COLLECTION = "counters"
HISTORY_COLLECTION = "tank_history"
MAINTENANCE_COLLECTION = "maintenance"


def _from_doc(schema, doc: Dict[str, Any]):
    data = dict(doc)
    data["id"] = data.pop("_id")
    return schema.model_validate(data)


class DocumentTankStore(TankStore):
    """Backend MongoDB (Motor).

    Los documentos se guardan en camelCase con ``_id`` numerico. Los ids salen
    de un contador atomico (``$inc``) en la coleccion ``counters``, asi nunca
    se reutilizan.
    """

    kind = StorageBackend.document

    def __init__(
        self,
        mongo_url: str = "",
        db_name: str = "",
        collection_name: str = "tanks",
        *,
        timeout_ms: int = 3000,
        database: Optional[motor.motor_asyncio.AsyncIOMotorDatabase] = None,
    ) -> None:
        self._mongo_url = mongo_url
        self._db_name = db_name
        self._collection_name = collection_name
        self._timeout_ms = timeout_ms
        self._client: Optional[motor.motor_asyncio.AsyncIOMotorClient] = None
        self._db = database

    async def open(self) -> None:
        if self._db is None:
            _logger.info("Iniciando conexion a MongoDB...")
            self._client = motor.motor_asyncio.AsyncIOMotorClient(
                self._mongo_url, serverSelectionTimeoutMS=self._timeout_ms
            )
            self._db = self._client[self._db_name]
            _logger.info("Conectado a MongoDB. DB: '%s', Coleccion: '%s'", self._db_name, self._collection_name)

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._db = None
            _logger.info("Desconectado de MongoDB.")

    @property
    def _tanks(self):
        return self._db[self._collection_name]

    @property
    def _history(self):
        return self._db[HISTORY_COLLECTION]

    @property
    def _maintenance(self):
        return self._db[MAINTENANCE_COLLECTION]

    @contextlib.contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except ConnectionFailure as exc:
            raise StorageUnavailable(f"MongoDB unavailable: {exc}", backend=self.kind.value) from exc

    async def _next_id(self, sequence: str) -> int:
        counter = await self._db[COUNTERS_COLLECTION].find_one_and_update(
            {"_id": sequence},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return counter["seq"]

    # --- Tanques ---

    async def list_tanks(self) -> List[Tank]:
        with self._guard():
            docs = await self._tanks.find({}).sort("_id", pymongo.ASCENDING).to_list(length=None)
        return [_from_doc(Tank, doc) for doc in docs]

    async def get_tank(self, tank_id: int) -> Tank:
        with self._guard():
            doc = await self._tanks.find_one({"_id": tank_id})
        if doc is None:
            raise RecordNotFound("Tank", tank_id)
        return _from_doc(Tank, doc)

    async def create_tank(self, tank_in: TankCreate) -> Tank:
        with self._guard():
            tank_id = await self._next_id(self._collection_name)
            tank = Tank(id=tank_id, last_updated=utcnow_iso(), **tank_in.model_dump())
            doc = tank.model_dump(mode="json", by_alias=True, exclude={"id"})
            await self._tanks.insert_one({"_id": tank_id, **doc})
        return tank

    async def update_tank(self, tank_id: int, changes: TankUpdate) -> Tank:
        values = changes.model_dump(mode="json", by_alias=True, exclude_unset=True)
        values["lastUpdated"] = utcnow_iso()
        with self._guard():
            doc = await self._tanks.find_one_and_update(
                {"_id": tank_id},
                {"$set": values},
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            raise RecordNotFound("Tank", tank_id)
        return _from_doc(Tank, doc)

    async def delete_tank(self, tank_id: int) -> bool:
        with self._guard():
            result = await self._tanks.delete_one({"_id": tank_id})
            if not result.deleted_count:
                return False
            await self._history.update_many({"tankId": tank_id}, {"$set": {"tankId": None}})
            await self._maintenance.update_many({"tankId": tank_id}, {"$set": {"tankId": None}})
        return True

    # --- Historial ---

    async def add_history(self, entry: HistoryEntryCreate) -> HistoryEntry:
        with self._guard():
            entry_id = await self._next_id(HISTORY_COLLECTION)
            stored = HistoryEntry(
                id=entry_id,
                tank_id=entry.tank_id,
                timestamp=entry.timestamp or utcnow_iso(),
                event_type=entry.event_type,
                value=entry.value,
                description=entry.description,
            )
            await self._history.insert_one({"_id": entry_id, **stored.model_dump(mode="json", by_alias=True, exclude={"id"})})
        return stored

    async def list_history(self, tank_id: Optional[int] = None) -> List[HistoryEntry]:
        query = {} if tank_id is None else {"tankId": tank_id}
        with self._guard():
            docs = await self._history.find(query).sort("_id", pymongo.ASCENDING).to_list(length=None)
        return [_from_doc(HistoryEntry, doc) for doc in docs]

    # --- Mantenimiento ---

    async def add_maintenance(self, data: MaintenanceCreate) -> MaintenanceRecord:
        with self._guard():
            record_id = await self._next_id(MAINTENANCE_COLLECTION)
            stored = MaintenanceRecord(
                id=record_id,
                tank_id=data.tank_id,
                maintenance_type=data.maintenance_type,
                description=data.description,
                technician=data.technician,
                scheduled_date=data.scheduled_date or utcnow_iso(),
                status=MaintenanceStatus.scheduled,
            )
            await self._maintenance.insert_one(
                {"_id": record_id, **stored.model_dump(mode="json", by_alias=True, exclude={"id"})}
            )
        return stored

    async def get_maintenance(self, maintenance_id: int) -> MaintenanceRecord:
        with self._guard():
            doc = await self._maintenance.find_one({"_id": maintenance_id})
        if doc is None:
            raise RecordNotFound("Maintenance", maintenance_id)
        return _from_doc(MaintenanceRecord, doc)

    async def list_maintenance(self, tank_id: Optional[int] = None) -> List[MaintenanceRecord]:
        query = {} if tank_id is None else {"tankId": tank_id}
        with self._guard():
            docs = await self._maintenance.find(query).sort("_id", pymongo.ASCENDING).to_list(length=None)
        return [_from_doc(MaintenanceRecord, doc) for doc in docs]

    async def update_maintenance(self, maintenance_id: int, changes: Dict[str, Any]) -> MaintenanceRecord:
        with self._guard():
            doc = await self._maintenance.find_one_and_update(
                {"_id": maintenance_id},
                {"$set": wire_values(changes)},
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            raise RecordNotFound("Maintenance", maintenance_id)
        return _from_doc(MaintenanceRecord, doc)
