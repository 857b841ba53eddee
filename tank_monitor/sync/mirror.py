"""Copia local de la coleccion de tanques alimentada por el canal WebSocket."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from tank_monitor.schemas.events import EventType
from tank_monitor.schemas.tank import Tank

_logger = logging.getLogger(__name__)


class TankMirror:
    """Coleccion ordenada por insercion.

    - ``INITIAL_DATA`` reemplaza todo;
    - ``TANK_CREATE`` / ``TANK_UPDATE`` hacen upsert por id;
    - ``TANK_DELETE`` quita el id si existe (si no, se ignora).

    Aplicar dos veces el mismo mensaje deja el mismo estado.
    """

    def __init__(self) -> None:
        self._tanks: Dict[int, Tank] = {}

    def __len__(self) -> int:
        return len(self._tanks)

    def __contains__(self, tank_id: object) -> bool:
        return tank_id in self._tanks

    @property
    def tanks(self) -> List[Tank]:
        return list(self._tanks.values())

    def get(self, tank_id: int) -> Optional[Tank]:
        return self._tanks.get(tank_id)

    def replace(self, tanks: List[Tank]) -> None:
        self._tanks = {tank.id: tank for tank in tanks}

    def upsert(self, tank: Tank) -> None:
        # dict conserva la posicion de una clave existente al reasignarla
        self._tanks[tank.id] = tank

    def remove(self, tank_id: int) -> bool:
        return self._tanks.pop(tank_id, None) is not None

    def apply(self, message: Mapping[str, Any]) -> bool:
        """Aplica un mensaje del servidor; devuelve False si no se reconoce."""
        try:
            event_type = EventType(message.get("type"))
        except ValueError:
            _logger.debug("Mensaje ignorado, tipo desconocido: %r", message.get("type"))
            return False

        payload = message.get("payload")
        try:
            if event_type == EventType.initial_data:
                self.replace([Tank.model_validate(item) for item in payload or []])
            elif event_type == EventType.tank_delete:
                self.remove(int(payload["id"]))
            else:
                self.upsert(Tank.model_validate(payload))
        except (ValidationError, KeyError, TypeError, ValueError) as exc:
            _logger.warning("Mensaje %s invalido: %s", event_type.value, exc)
            return False
        return True
