import logging

from tank_monitor.core.config import Settings
from tank_monitor.schemas.storage import StorageBackend
from tank_monitor.services.samples import seed_sample_tanks
from tank_monitor.storage.base import TankStore
from tank_monitor.storage.document import DocumentTankStore
from tank_monitor.storage.memory import MemoryTankStore
from tank_monitor.storage.placeholder import PlaceholderTankStore
from tank_monitor.storage.realtime import RealtimeTreeTankStore
from tank_monitor.storage.relational import RelationalTankStore

_logger = logging.getLogger(__name__)


def build_store(backend: StorageBackend, settings: Settings) -> TankStore:
    if backend == StorageBackend.memory:
        return MemoryTankStore()
    if backend == StorageBackend.relational:
        return RelationalTankStore(settings.DATABASE_URL)
    if backend == StorageBackend.document:
        return DocumentTankStore(
            settings.MONGO_URL,
            settings.MONGO_DB_NAME,
            settings.MONGO_COLLECTION_NAME,
            timeout_ms=settings.MONGO_TIMEOUT_MS,
        )
    if backend == StorageBackend.realtime:
        return RealtimeTreeTankStore(settings.FIREBASE_DATABASE_URL, settings.FIREBASE_CREDENTIALS_FILE)
    return PlaceholderTankStore()


async def open_store(backend: StorageBackend, settings: Settings) -> TankStore:
    """Construye, abre y (si corresponde) siembra los tanques de ejemplo.

    Si la apertura o la siembra fallan, el store se cierra antes de propagar
    el error: nadie mas tiene una referencia para cerrarlo.
    """
    store = build_store(backend, settings)
    try:
        await store.open()
        if settings.SEED_SAMPLE_TANKS and backend != StorageBackend.placeholder:
            await seed_sample_tanks(store)
    except BaseException:
        _logger.warning("No se pudo preparar el backend %s; se cierra.", backend.value)
        await store.close()
        raise
    return store
