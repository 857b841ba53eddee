import csv
import io
from enum import Enum
from typing import List

from tank_monitor.schemas.history import HistoryEntry
from tank_monitor.schemas.maintenance import MaintenanceRecord
from tank_monitor.schemas.tank import Tank, TankStats


class ReportType(str, Enum):
    status = "status"
    history = "history"
    maintenance = "maintenance"


def tank_volume(tank: Tank) -> float:
    return tank.capacity * tank.fill_level / 100


def compute_stats(tanks: List[Tank]) -> TankStats:
    avg_temperature = round(sum(t.temperature for t in tanks) / len(tanks), 1) if tanks else 0.0
    return TankStats(
        total_capacity=sum(t.capacity for t in tanks),
        current_volume=round(sum(tank_volume(t) for t in tanks), 1),
        avg_temperature=avg_temperature,
        tank_count=len(tanks),
    )


def _render(header: List[str], rows) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def status_report(tanks: List[Tank]) -> str:
    return _render(
        ["id", "name", "location", "fillLevel", "temperature", "capacity", "currentVolume", "status", "lastUpdated"],
        (
            [t.id, t.name, t.location or "", t.fill_level, t.temperature, t.capacity,
             round(tank_volume(t), 1), t.status.value, t.last_updated]
            for t in tanks
        ),
    )


def history_report(entries: List[HistoryEntry]) -> str:
    return _render(
        ["id", "tankId", "timestamp", "eventType", "value", "description"],
        (
            [e.id, "" if e.tank_id is None else e.tank_id, e.timestamp, e.event_type.value,
             "" if e.value is None else e.value, e.description]
            for e in entries
        ),
    )


def maintenance_report(records: List[MaintenanceRecord]) -> str:
    return _render(
        ["id", "tankId", "maintenanceType", "status", "scheduledDate", "completedDate", "technician", "description"],
        (
            [r.id, "" if r.tank_id is None else r.tank_id, r.maintenance_type, r.status.value,
             r.scheduled_date, r.completed_date or "", r.technician or "", r.description]
            for r in records
        ),
    )
