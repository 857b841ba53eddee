from sqlalchemy.orm import Session
from tank_monitor.models import tank, history
from tank_monitor.schemas import tank as tank_schema
from typing import List, Any, Dict

def get_tank(db: Session, tank_id: int) -> tank.Tank | None:
    return db.query(tank.Tank).filter(tank.Tank.id == tank_id).first()

def get_tanks(db: Session) -> List[tank.Tank]:
    return db.query(tank.Tank).order_by(tank.Tank.id).all()

def create_tank(db: Session, tank_data: tank_schema.TankCreate, last_updated: str) -> tank.Tank:
    db_tank = tank.Tank(**tank_data.model_dump(), last_updated=last_updated)
    db.add(db_tank)
    db.commit()
    db.refresh(db_tank)
    return db_tank

def update_tank(db: Session, tank_id: int, changes: Dict[str, Any]) -> tank.Tank | None:
    """
    Actualiza solo los campos enviados con un unico UPDATE,
    sin leer-y-escribir (evita perder cambios con varios procesos).
    """
    updated_rows = (
        db.query(tank.Tank)
        .filter(tank.Tank.id == tank_id)
        .update(changes, synchronize_session=False)
    )
    db.commit()
    if not updated_rows:
        return None
    return get_tank(db, tank_id)

def delete_tank(db: Session, tank_id: int) -> bool:
    """
    Elimina un tanque y desvincula su historial y mantenimientos
    (tank_id = NULL) en la misma transaccion.
    """
    deleted_rows = db.query(tank.Tank).filter(tank.Tank.id == tank_id).delete(synchronize_session=False)
    if deleted_rows:
        db.query(history.TankHistory)\
          .filter(history.TankHistory.tank_id == tank_id)\
          .update({"tank_id": None}, synchronize_session=False)
        db.query(history.Maintenance)\
          .filter(history.Maintenance.tank_id == tank_id)\
          .update({"tank_id": None}, synchronize_session=False)
    db.commit()
    return bool(deleted_rows)
