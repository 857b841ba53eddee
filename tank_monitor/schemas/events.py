from enum import Enum
from typing import Any, List

from pydantic import BaseModel

from tank_monitor.schemas.tank import Tank


class EventType(str, Enum):
    initial_data = "INITIAL_DATA"
    tank_create = "TANK_CREATE"
    tank_update = "TANK_UPDATE"
    tank_delete = "TANK_DELETE"


class TankEvent(BaseModel):
    """Mensaje servidor -> cliente: siempre ``{"type": ..., "payload": ...}``."""

    type: EventType
    payload: Any

    def to_wire(self) -> dict:
        return self.model_dump(mode="json")


def snapshot_event(tanks: List[Tank]) -> TankEvent:
    return TankEvent(
        type=EventType.initial_data,
        payload=[tank.model_dump(mode="json", by_alias=True) for tank in tanks],
    )


def tank_event(event_type: EventType, tank: Tank) -> TankEvent:
    return TankEvent(type=event_type, payload=tank.model_dump(mode="json", by_alias=True))


def delete_event(tank_id: int) -> TankEvent:
    return TankEvent(type=EventType.tank_delete, payload={"id": tank_id})
