from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Optional

from tank_monitor.api.dependencies import get_hub, get_store
from tank_monitor.api.errors import read_collection
from tank_monitor.core.exceptions import RecordNotFound
from tank_monitor.schemas import maintenance as maintenance_schema
from tank_monitor.schemas.events import EventType, tank_event
from tank_monitor.services import maintenance as maintenance_service
from tank_monitor.services.broadcast import BroadcastHub
from tank_monitor.storage.base import TankStore

router = APIRouter()


@router.get("/maintenance", response_model=List[maintenance_schema.MaintenanceRecord])
async def read_maintenance(
    tank_id: Optional[int] = Query(None, alias="tankId"),
    store: TankStore = Depends(get_store),
):
    return await read_collection(store.list_maintenance(tank_id=tank_id), "mantenimientos")


@router.post(
    "/maintenance",
    response_model=maintenance_schema.MaintenanceRecord,
    status_code=status.HTTP_201_CREATED,
)
async def create_maintenance(
    data: maintenance_schema.MaintenanceCreate,
    store: TankStore = Depends(get_store),
):
    """Programa un mantenimiento (estado inicial: scheduled)."""
    try:
        return await maintenance_service.schedule_maintenance(store, data)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Tank not found. Cannot schedule maintenance.")


@router.patch("/maintenance/{maintenance_id}/status", response_model=maintenance_schema.MaintenanceRecord)
async def update_maintenance_status(
    maintenance_id: int,
    status_in: maintenance_schema.MaintenanceStatusUpdate,
    store: TankStore = Depends(get_store),
    hub: BroadcastHub = Depends(get_hub),
):
    """
    Cambia el estado: scheduled -> in-progress -> completed | cancelled.
    Una transicion no permitida responde 400.
    """
    try:
        record, tank = await maintenance_service.change_status(store, maintenance_id, status_in.status)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Maintenance not found")
    if tank is not None:
        hub.publish(tank_event(EventType.tank_update, tank))
    return record
