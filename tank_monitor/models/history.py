# tank_monitor/models/history.py
from sqlalchemy import Column, Integer, String, Float, ForeignKey, Enum as SAEnum
from tank_monitor.db.database import Base
import enum

class HistoryEventType(str, enum.Enum):
    fill = "fill"
    temperature = "temperature"
    alert_low = "alert_low"
    alert_high = "alert_high"
    status = "status"
    maintenance = "maintenance"

class MaintenanceStatus(str, enum.Enum):
    scheduled = "scheduled"
    in_progress = "in-progress"
    completed = "completed"
    cancelled = "cancelled"

# tank_id es solo una referencia: al borrar el tanque queda en NULL
class TankHistory(Base):
    __tablename__ = "tank_history"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    tank_id = Column(Integer, ForeignKey("tanks.id", ondelete="SET NULL"), nullable=True, index=True)
    timestamp = Column(String, nullable=False)
    event_type = Column(SAEnum(HistoryEventType), nullable=False)
    value = Column(Float, nullable=True)
    description = Column(String, nullable=False, default="")

class Maintenance(Base):
    __tablename__ = "maintenance"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    tank_id = Column(Integer, ForeignKey("tanks.id", ondelete="SET NULL"), nullable=True, index=True)
    maintenance_type = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    technician = Column(String, nullable=True)
    scheduled_date = Column(String, nullable=False)
    completed_date = Column(String, nullable=True)
    status = Column(
        SAEnum(MaintenanceStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=MaintenanceStatus.scheduled,
    )
