from fastapi import APIRouter, Depends, HTTPException, Response, status
from typing import List

from tank_monitor.api.dependencies import get_hub, get_settings, get_store
from tank_monitor.api.errors import read_collection
from tank_monitor.core.config import Settings
from tank_monitor.core.exceptions import RecordNotFound
from tank_monitor.schemas import tank as tank_schema
from tank_monitor.schemas.events import EventType, delete_event, tank_event
from tank_monitor.services.broadcast import BroadcastHub
from tank_monitor.services.reports import compute_stats
from tank_monitor.services.status import next_status
from tank_monitor.storage.base import TankStore

router = APIRouter()


@router.get("/tanks", response_model=List[tank_schema.Tank])
async def read_tanks(store: TankStore = Depends(get_store)):
    """
    Obtiene todos los tanques.
    Si la base de datos no responde, devuelve una lista vacia en vez de fallar.
    """
    return await read_collection(store.list_tanks(), "tanques")


@router.get("/tanks/{tank_id}", response_model=tank_schema.Tank)
async def read_tank(tank_id: int, store: TankStore = Depends(get_store)):
    try:
        return await store.get_tank(tank_id)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Tank not found")


@router.post("/tanks", response_model=tank_schema.Tank, status_code=status.HTTP_201_CREATED)
async def create_tank(
    tank_in: tank_schema.TankCreate,
    store: TankStore = Depends(get_store),
    hub: BroadcastHub = Depends(get_hub),
    settings: Settings = Depends(get_settings),
):
    # El estado inicial tambien respeta el umbral de nivel bajo
    tank_in.status = next_status(tank_in.status, tank_in.fill_level, tank_in.alert_threshold, settings.STATUS_HYSTERESIS)
    tank = await store.create_tank(tank_in)
    hub.publish(tank_event(EventType.tank_create, tank))
    return tank


@router.patch("/tanks/{tank_id}", response_model=tank_schema.Tank)
async def update_tank(
    tank_id: int,
    tank_in: tank_schema.TankUpdate,
    store: TankStore = Depends(get_store),
    hub: BroadcastHub = Depends(get_hub),
    settings: Settings = Depends(get_settings),
):
    """
    Actualiza un tanque (solo los campos enviados).
    Si cambia el nivel o el umbral y no se envia ``status``, se recalcula.
    """
    try:
        current = await store.get_tank(tank_id)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Tank not found")

    sent = tank_in.model_fields_set
    if {"fill_level", "alert_threshold"} & sent and "status" not in sent:
        fill_level = tank_in.fill_level if "fill_level" in sent else current.fill_level
        threshold = tank_in.alert_threshold if "alert_threshold" in sent else current.alert_threshold
        tank_in.status = next_status(current.status, fill_level, threshold, settings.STATUS_HYSTERESIS)

    try:
        tank = await store.update_tank(tank_id, tank_in)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Tank not found")
    hub.publish(tank_event(EventType.tank_update, tank))
    return tank


@router.delete("/tanks/{tank_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tank(
    tank_id: int,
    store: TankStore = Depends(get_store),
    hub: BroadcastHub = Depends(get_hub),
):
    if not await store.delete_tank(tank_id):
        raise HTTPException(status_code=404, detail="Tank not found")
    hub.publish(delete_event(tank_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stats", response_model=tank_schema.TankStats)
async def read_stats(store: TankStore = Depends(get_store)):
    """Totales derivados de la coleccion completa."""
    return compute_stats(await read_collection(store.list_tanks(), "tanques"))
