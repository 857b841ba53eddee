from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional

from tank_monitor.core.exceptions import RecordNotFound, StorageUnavailable
from tank_monitor.models.history import HistoryEventType
from tank_monitor.models.tank import TankStatus
from tank_monitor.schemas.events import EventType, tank_event
from tank_monitor.schemas.history import HistoryEntryCreate
from tank_monitor.schemas.tank import Tank, TankUpdate
from tank_monitor.services.broadcast import BroadcastHub
from tank_monitor.services.status import clamp_fill_level, next_status
from tank_monitor.storage.base import TankStore
from tank_monitor.storage.handle import StoreHandle

_logger = logging.getLogger(__name__)


class TankSimulator:
    """Simula deriva de sensores: en cada tick altera un tanque al azar.

    ``rng`` se puede inyectar (``random.Random(seed)``) para obtener secuencias
    deterministas en los tests.
    """

    def __init__(
        self,
        handle: StoreHandle,
        hub: BroadcastHub,
        *,
        interval: float = 5.0,
        fill_max_delta: float = 5.0,
        temperature_max_delta: float = 0.5,
        hysteresis: float = 5.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._handle = handle
        self._hub = hub
        self.interval = interval
        self.fill_max_delta = fill_max_delta
        self.temperature_max_delta = temperature_max_delta
        self.hysteresis = hysteresis
        self._rng = rng or random.Random()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def perturb(self, tank: Tank) -> TankUpdate:
        fill_delta = self._rng.uniform(-self.fill_max_delta, self.fill_max_delta)
        temperature_delta = self._rng.uniform(-self.temperature_max_delta, self.temperature_max_delta)
        fill_level = round(clamp_fill_level(tank.fill_level + fill_delta), 1)
        temperature = round(tank.temperature + temperature_delta, 1)
        status = next_status(tank.status, fill_level, tank.alert_threshold, self.hysteresis)
        return TankUpdate(fill_level=fill_level, temperature=temperature, status=status)

    async def tick(self) -> Optional[Tank]:
        async with self._handle.use() as store:
            return await self._tick(store)

    async def _tick(self, store: TankStore) -> Optional[Tank]:
        tanks = await store.list_tanks()
        if not tanks:
            return None

        tank = self._rng.choice(tanks)
        changes = self.perturb(tank)
        try:
            updated = await store.update_tank(tank.id, changes)
        except (RecordNotFound, StorageUnavailable) as exc:
            _logger.warning("Tick omitido para el tanque %s: %s", tank.id, exc)
            return None

        self._hub.publish(tank_event(EventType.tank_update, updated))
        if updated.status != tank.status:
            await self._record_transition(store, tank, updated)
        return updated

    async def _record_transition(self, store: TankStore, before: Tank, after: Tank) -> None:
        if after.status == TankStatus.warning:
            event_type = HistoryEventType.alert_low
            description = f"Low level alert ({after.fill_level:.1f}%)"
        else:
            event_type = HistoryEventType.status
            description = f"Level recovered ({after.fill_level:.1f}%), status {before.status.value} -> {after.status.value}"
        await store.add_history(
            HistoryEntryCreate(
                tank_id=after.id,
                event_type=event_type,
                value=after.fill_level,
                description=description,
                timestamp=after.last_updated,
            )
        )

    async def _run(self) -> None:
        _logger.info("Simulador iniciado (cada %.1f s)", self.interval)
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                # Un tick fallido nunca detiene el simulador
                _logger.exception("Error en el tick del simulador")

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._run(), name="tank-simulator")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        _logger.info("Simulador detenido")
