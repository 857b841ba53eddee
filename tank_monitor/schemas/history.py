from pydantic import Field
from typing import List, Optional
from tank_monitor.models.history import HistoryEventType
from tank_monitor.schemas.tank import CamelModel


class HistoryEntryCreate(CamelModel):
    tank_id: Optional[int] = None
    event_type: HistoryEventType
    value: Optional[float] = None
    description: str = ""
    timestamp: Optional[str] = None


class HistoryEntry(CamelModel):
    id: int
    tank_id: Optional[int] = None
    timestamp: str
    event_type: HistoryEventType
    value: Optional[float] = None
    description: str = ""


# --- Serie sintetica para graficos (no se guarda) ---

class SeriesPoint(CamelModel):
    timestamp: str
    fill_level: float
    temperature: float


class SeriesEvent(CamelModel):
    timestamp: str
    event_type: HistoryEventType
    value: float
    temperature: float
    description: str


class TankHistorySeries(CamelModel):
    tank_id: int
    days: int = Field(..., ge=1)
    data: List[SeriesPoint] = []
    events: List[SeriesEvent] = []
