# tank_monitor/models/tank.py
from sqlalchemy import Column, Integer, String, Float, JSON, Enum as SAEnum
from tank_monitor.db.database import Base
import enum

class TankStatus(str, enum.Enum):
    online = "online"
    warning = "warning"
    offline = "offline"

class Tank(Base):
    __tablename__ = "tanks"
    # AUTOINCREMENT en SQLite: los ids borrados nunca se reutilizan
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    fill_level = Column(Float, nullable=False, default=0.0)
    temperature = Column(Float, nullable=False, default=20.0)
    capacity = Column(Float, nullable=False, default=1000.0)
    status = Column(SAEnum(TankStatus), nullable=False, default=TankStatus.online)
    last_updated = Column(String, nullable=False)

    location = Column(String, nullable=True)
    group = Column(String, nullable=True)
    alert_threshold = Column(Float, nullable=False, server_default="15.0")
    temperature_threshold = Column(Float, nullable=True)
    maintenance_interval_days = Column(Integer, nullable=True)
    last_maintenance = Column(String, nullable=True)
    next_maintenance = Column(String, nullable=True)
    manufacturer = Column(JSON, nullable=True)
