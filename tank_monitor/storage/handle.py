from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterator, Dict

from tank_monitor.schemas.storage import StorageBackend
from tank_monitor.storage.base import TankStore

_logger = logging.getLogger(__name__)


class StoreHandle:
    """Unico lugar que guarda el backend activo.

    Los endpoints y el simulador toman el backend con ``handle.use()`` en cada
    operacion. Un cambio de backend espera a que terminen las operaciones en
    curso sobre el anterior antes de cerrarlo.
    """

    def __init__(self, store: TankStore, *, drain_timeout: float = 10.0) -> None:
        self._store = store
        self._drain_timeout = drain_timeout
        self._users: Dict[TankStore, int] = {}
        self._released = asyncio.Condition()
        self._swap_lock = asyncio.Lock()

    @property
    def current(self) -> TankStore:
        return self._store

    @property
    def kind(self) -> StorageBackend:
        return self._store.kind

    def users(self, store: TankStore) -> int:
        return self._users.get(store, 0)

    @contextlib.asynccontextmanager
    async def use(self) -> AsyncIterator[TankStore]:
        """Backend activo, que no se cierra mientras dure el bloque."""
        store = self._store
        self._users[store] = self._users.get(store, 0) + 1
        try:
            yield store
        finally:
            self._users[store] -= 1
            if not self._users[store]:
                del self._users[store]
                async with self._released:
                    self._released.notify_all()

    async def _drain(self, store: TankStore) -> None:
        async with self._released:
            try:
                await asyncio.wait_for(
                    self._released.wait_for(lambda: store not in self._users),
                    timeout=self._drain_timeout,
                )
            except asyncio.TimeoutError:
                _logger.warning(
                    "Se cierra el backend %s con %d operaciones en curso",
                    store.kind.value,
                    self.users(store),
                )

    async def swap(self, new_store: TankStore) -> TankStore:
        """Instala ``new_store`` (ya abierto), espera a los usuarios del anterior y lo cierra."""
        async with self._swap_lock:
            old_store = self._store
            self._store = new_store
            _logger.info("Backend de almacenamiento: %s -> %s", old_store.kind.value, new_store.kind.value)
            await self._drain(old_store)
            await old_store.close()
        return old_store

    async def close(self) -> None:
        async with self._swap_lock:
            await self._drain(self._store)
            await self._store.close()
