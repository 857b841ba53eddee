from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional

from tank_monitor.api.dependencies import get_store
from tank_monitor.api.errors import read_collection
from tank_monitor.core.exceptions import RecordNotFound
from tank_monitor.schemas import history as history_schema
from tank_monitor.services.history import generate_series
from tank_monitor.storage.base import TankStore

router = APIRouter()


@router.get("/history", response_model=List[history_schema.HistoryEntry])
async def read_history(
    tank_id: Optional[int] = Query(None, alias="tankId"),
    store: TankStore = Depends(get_store),
):
    """Registro de eventos (alertas, recuperaciones, mantenimientos)."""
    return await read_collection(store.list_history(tank_id=tank_id), "historial")


@router.get("/tanks/{tank_id}/history", response_model=List[history_schema.HistoryEntry])
async def read_tank_history(tank_id: int, store: TankStore = Depends(get_store)):
    try:
        await store.get_tank(tank_id)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Tank not found")
    return await read_collection(store.list_history(tank_id=tank_id), "historial")


@router.get("/tanks/{tank_id}/history/series", response_model=history_schema.TankHistorySeries)
async def read_tank_history_series(
    tank_id: int,
    days: int = Query(7, ge=1, le=90, description="Dias hacia atras"),
    store: TankStore = Depends(get_store),
):
    """
    Serie horaria sintetica para los graficos, generada a partir
    de los valores actuales del tanque (no se guarda).
    """
    try:
        tank = await store.get_tank(tank_id)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Tank not found")
    return generate_series(tank, days)
