from pydantic import Field
from typing import Optional
from tank_monitor.models.history import MaintenanceStatus
from tank_monitor.schemas.tank import CamelModel


class MaintenanceCreate(CamelModel):
    tank_id: int
    maintenance_type: str = Field(..., min_length=1)
    description: str = ""
    technician: Optional[str] = None
    scheduled_date: Optional[str] = None


class MaintenanceRecord(CamelModel):
    id: int
    tank_id: Optional[int] = None
    maintenance_type: str
    description: str = ""
    technician: Optional[str] = None
    scheduled_date: str
    completed_date: Optional[str] = None
    status: MaintenanceStatus = MaintenanceStatus.scheduled


class MaintenanceStatusUpdate(CamelModel):
    status: MaintenanceStatus
