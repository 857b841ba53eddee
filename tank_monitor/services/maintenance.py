import logging
from typing import Optional, Tuple

from tank_monitor.core.clock import utcnow_iso
from tank_monitor.core.exceptions import InvalidRecord, RecordNotFound
from tank_monitor.models.history import HistoryEventType, MaintenanceStatus
from tank_monitor.schemas.history import HistoryEntryCreate
from tank_monitor.schemas.maintenance import MaintenanceCreate, MaintenanceRecord
from tank_monitor.schemas.tank import Tank, TankUpdate
from tank_monitor.storage.base import TankStore

_logger = logging.getLogger(__name__)

# completed y cancelled son terminales
ALLOWED_TRANSITIONS = {
    MaintenanceStatus.scheduled: {
        MaintenanceStatus.in_progress,
        MaintenanceStatus.completed,
        MaintenanceStatus.cancelled,
    },
    MaintenanceStatus.in_progress: {MaintenanceStatus.completed, MaintenanceStatus.cancelled},
    MaintenanceStatus.completed: set(),
    MaintenanceStatus.cancelled: set(),
}


def can_transition(current: MaintenanceStatus, target: MaintenanceStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


async def schedule_maintenance(store: TankStore, data: MaintenanceCreate) -> MaintenanceRecord:
    # el tanque debe existir; get_tank lanza RecordNotFound
    await store.get_tank(data.tank_id)
    return await store.add_maintenance(data)


async def change_status(
    store: TankStore, maintenance_id: int, target: MaintenanceStatus
) -> Tuple[MaintenanceRecord, Optional[Tank]]:
    """
    Aplica una transicion de estado. Al completar, sella ``completedDate``,
    actualiza ``lastMaintenance`` del tanque y deja una entrada en el historial.
    Devuelve el registro y, si se modifico, el tanque actualizado.
    """
    record = await store.get_maintenance(maintenance_id)
    if not can_transition(record.status, target):
        raise InvalidRecord(
            f"Cannot change maintenance {maintenance_id} from '{record.status.value}' to '{target.value}'"
        )

    changes = {"status": target}
    if target == MaintenanceStatus.completed:
        changes["completed_date"] = utcnow_iso()
    updated = await store.update_maintenance(maintenance_id, changes)

    tank = None
    if target == MaintenanceStatus.completed and updated.tank_id is not None:
        tank = await _register_completion(store, updated)
    return updated, tank


async def _register_completion(store: TankStore, record: MaintenanceRecord) -> Optional[Tank]:
    try:
        tank = await store.update_tank(record.tank_id, TankUpdate(last_maintenance=record.completed_date))
    except RecordNotFound:
        _logger.warning("Mantenimiento %s completado, pero el tanque %s ya no existe", record.id, record.tank_id)
        return None
    await store.add_history(
        HistoryEntryCreate(
            tank_id=record.tank_id,
            event_type=HistoryEventType.maintenance,
            description=f"{record.maintenance_type} completed",
            timestamp=record.completed_date,
        )
    )
    return tank
