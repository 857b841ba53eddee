from fastapi import APIRouter, Depends

from tank_monitor.api.dependencies import get_hub, get_settings, get_store_handle
from tank_monitor.api.errors import read_collection
from tank_monitor.core.config import Settings
from tank_monitor.core.exceptions import BackendNotImplemented
from tank_monitor.schemas.events import snapshot_event
from tank_monitor.schemas.storage import StorageInfo, StorageSelect
from tank_monitor.services.broadcast import BroadcastHub
from tank_monitor.storage.factory import open_store
from tank_monitor.storage.handle import StoreHandle

router = APIRouter()


@router.get("/storage", response_model=StorageInfo)
def read_storage(handle: StoreHandle = Depends(get_store_handle)):
    return StorageInfo(backend=handle.kind)


@router.put("/storage", response_model=StorageInfo)
async def select_storage(
    selection: StorageSelect,
    handle: StoreHandle = Depends(get_store_handle),
    hub: BroadcastHub = Depends(get_hub),
    settings: Settings = Depends(get_settings),
):
    """
    Cambia el backend activo. El nuevo se abre antes del cambio;
    si no se puede abrir, el actual sigue en uso.
    Los clientes conectados reciben un snapshot nuevo.
    """
    if selection.backend == handle.kind:
        return StorageInfo(backend=handle.kind)
    new_store = await open_store(selection.backend, settings)
    await handle.swap(new_store)

    async with handle.use() as store:
        try:
            tanks = await read_collection(store.list_tanks(), "tanques")
        except BackendNotImplemented:
            tanks = []
    hub.publish(snapshot_event(tanks))
    return StorageInfo(backend=handle.kind)
