import logging
from typing import List

from tank_monitor.models.tank import TankStatus
from tank_monitor.schemas.tank import Tank, TankCreate

_logger = logging.getLogger(__name__)

SAMPLE_TANKS = [
    TankCreate(name="Tank A", fill_level=65, temperature=23.8, capacity=2000, status=TankStatus.online),
    TankCreate(name="Tank B", fill_level=78, temperature=24.2, capacity=1500, status=TankStatus.online),
    TankCreate(name="Tank C", fill_level=22, temperature=25.7, capacity=3000, status=TankStatus.warning),
    TankCreate(name="Tank D", fill_level=43, temperature=24.3, capacity=1000, status=TankStatus.online),
]


async def seed_sample_tanks(store) -> List[Tank]:
    """Crea los tanques de ejemplo solo si el backend esta vacio."""
    if await store.list_tanks():
        return []
    created = [await store.create_tank(sample) for sample in SAMPLE_TANKS]
    _logger.info("Creados %d tanques de ejemplo en %s", len(created), store.kind.value)
    return created
