"""Serie historica sintetica para los graficos.

No es un registro durable: se genera en cada peticion a partir de los valores
actuales del tanque, con variacion diaria, horaria y ruido.
"""

import datetime
import math
import random
from typing import Optional

from tank_monitor.core.clock import utcnow
from tank_monitor.models.history import HistoryEventType
from tank_monitor.schemas.history import SeriesEvent, SeriesPoint, TankHistorySeries
from tank_monitor.schemas.tank import Tank

HIGH_LEVEL_ALERT = 85.0
LOW_LEVEL_ALERT = 25.0
STATUS_CHECK_HOURS = (8, 16)


def generate_series(
    tank: Tank,
    days: int,
    rng: Optional[random.Random] = None,
    now: Optional[datetime.datetime] = None,
) -> TankHistorySeries:
    rng = rng or random.Random()
    now = now or utcnow()
    data = []
    events = []

    for day_offset in range(days, -1, -1):
        date = now - datetime.timedelta(days=day_offset)
        for hour in range(24):
            timestamp = date.replace(hour=hour, minute=0, second=0, microsecond=0).isoformat()

            hour_factor = math.sin((hour / 24) * math.pi) * 2
            day_factor = math.sin((day_offset / days) * math.pi * 2) * 3
            noise = (rng.random() - 0.5) * 4

            level = tank.fill_level + hour_factor + day_factor + noise
            level = round(max(10.0, min(95.0, level)), 1)
            temperature = round(tank.temperature + hour_factor / 4 + noise / 4, 1)
            data.append(SeriesPoint(timestamp=timestamp, fill_level=level, temperature=temperature))

            if level > HIGH_LEVEL_ALERT and hour % 4 == 0:
                event_type = HistoryEventType.alert_high
                description = f"High level alert ({level:.1f}%)"
            elif level < LOW_LEVEL_ALERT and hour % 4 == 0:
                event_type = HistoryEventType.alert_low
                description = f"Low level alert ({level:.1f}%)"
            elif hour in STATUS_CHECK_HOURS:
                event_type = HistoryEventType.status
                description = f"Regular status check - Level: {level:.1f}%, Temp: {temperature}°C"
            else:
                continue
            events.append(
                SeriesEvent(
                    timestamp=timestamp,
                    event_type=event_type,
                    value=level,
                    temperature=temperature,
                    description=description,
                )
            )

    # los eventos, del mas reciente al mas antiguo
    events.sort(key=lambda event: event.timestamp, reverse=True)
    return TankHistorySeries(tank_id=tank.id, days=days, data=data, events=events)
