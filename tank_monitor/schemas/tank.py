from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from tank_monitor.models.tank import TankStatus
from typing import Optional, Dict, Any


class CamelModel(BaseModel):
    """En el cable (API y WebSocket) todos los campos van en camelCase."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class TankBase(CamelModel):
    name: str = Field(..., min_length=1)
    fill_level: float = Field(0.0, ge=0, le=100)
    temperature: float = 20.0
    capacity: float = Field(1000.0, gt=0)
    status: TankStatus = TankStatus.online

    # --- Campos descriptivos (esquema extendido) ---
    location: Optional[str] = None
    group: Optional[str] = None
    alert_threshold: float = Field(15.0, ge=0, le=100)
    temperature_threshold: Optional[float] = None
    maintenance_interval_days: Optional[int] = Field(None, gt=0)
    last_maintenance: Optional[str] = None
    next_maintenance: Optional[str] = None
    manufacturer: Optional[Dict[str, Any]] = None


class TankCreate(TankBase):
    pass


class TankUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    fill_level: Optional[float] = Field(None, ge=0, le=100)
    temperature: Optional[float] = None
    capacity: Optional[float] = Field(None, gt=0)
    status: Optional[TankStatus] = None

    location: Optional[str] = None
    group: Optional[str] = None
    alert_threshold: Optional[float] = Field(None, ge=0, le=100)
    temperature_threshold: Optional[float] = None
    maintenance_interval_days: Optional[int] = Field(None, gt=0)
    last_maintenance: Optional[str] = None
    next_maintenance: Optional[str] = None
    manufacturer: Optional[Dict[str, Any]] = None

    @field_validator("name", "fill_level", "temperature", "capacity", "status", "alert_threshold")
    @classmethod
    def required_fields_not_null(cls, value):
        # Un campo ausente no se toca, pero un null explicito no se acepta
        if value is None:
            raise ValueError("field may not be null")
        return value


class Tank(TankBase):
    id: int
    last_updated: str


class TankStats(CamelModel):
    total_capacity: float
    current_volume: float
    avg_temperature: float
    tank_count: int
