from sqlalchemy.orm import Session
from tank_monitor.models import history
from tank_monitor.schemas import history as history_schema, maintenance as maintenance_schema
from typing import List, Any, Dict, Optional

# --- Historial ---

def add_history(db: Session, entry: history_schema.HistoryEntryCreate, timestamp: str) -> history.TankHistory:
    db_entry = history.TankHistory(
        tank_id=entry.tank_id,
        timestamp=entry.timestamp or timestamp,
        event_type=entry.event_type,
        value=entry.value,
        description=entry.description,
    )
    db.add(db_entry)
    db.commit()
    db.refresh(db_entry)
    return db_entry

def get_history(db: Session, tank_id: Optional[int] = None) -> List[history.TankHistory]:
    query = db.query(history.TankHistory)
    if tank_id is not None:
        query = query.filter(history.TankHistory.tank_id == tank_id)
    return query.order_by(history.TankHistory.id).all()

# --- Mantenimiento ---

def add_maintenance(db: Session, data: maintenance_schema.MaintenanceCreate, scheduled_date: str) -> history.Maintenance:
    db_record = history.Maintenance(
        tank_id=data.tank_id,
        maintenance_type=data.maintenance_type,
        description=data.description,
        technician=data.technician,
        scheduled_date=data.scheduled_date or scheduled_date,
        status=history.MaintenanceStatus.scheduled,
    )
    db.add(db_record)
    db.commit()
    db.refresh(db_record)
    return db_record

def get_maintenance(db: Session, maintenance_id: int) -> history.Maintenance | None:
    return db.query(history.Maintenance).filter(history.Maintenance.id == maintenance_id).first()

def get_maintenance_list(db: Session, tank_id: Optional[int] = None) -> List[history.Maintenance]:
    query = db.query(history.Maintenance)
    if tank_id is not None:
        query = query.filter(history.Maintenance.tank_id == tank_id)
    return query.order_by(history.Maintenance.id).all()

def update_maintenance(db: Session, maintenance_id: int, changes: Dict[str, Any]) -> history.Maintenance | None:
    updated_rows = (
        db.query(history.Maintenance)
        .filter(history.Maintenance.id == maintenance_id)
        .update(changes, synchronize_session=False)
    )
    db.commit()
    if not updated_rows:
        return None
    return get_maintenance(db, maintenance_id)
