"""Difusion por WebSocket a todos los clientes conectados.

Cada conexion tiene su propia cola de salida: publicar nunca bloquea y el
orden de los mensajes se conserva por conexion. Los envios a conexiones que
ya no estan abiertas se descartan sin error. Una conexion que no consume su
cola (mas de ``max_pending`` mensajes pendientes) se da por perdida y se cierra.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from tank_monitor.schemas.events import TankEvent

_logger = logging.getLogger(__name__)


class Subscriber:
    def __init__(self, websocket: WebSocket, max_pending: int = 100) -> None:
        self.websocket = websocket
        self._queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue(maxsize=max_pending)
        self._closed = False
        self.overflowed = False

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def enqueue(self, message: Dict[str, Any]) -> bool:
        if not self.is_open:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            _logger.warning("Cliente WebSocket lento: %d mensajes sin enviar, se desconecta", self._queue.qsize())
            self.overflowed = True
            self._closed = True
            return False
        return True

    def close(self) -> None:
        self._closed = True

    async def send(self, message: Dict[str, Any]) -> bool:
        if not self.is_open:
            return False
        try:
            await self.websocket.send_json(message)
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            # La conexion se cerro mientras enviabamos
            _logger.debug("Envio descartado, conexion cerrada: %s", exc)
            self._closed = True
            return False
        return True

    async def run(self, snapshot: Optional[TankEvent] = None) -> None:
        """Envia primero el snapshot y despues, en orden, lo que haya en la cola."""
        if snapshot is not None and not await self.send(snapshot.to_wire()):
            return
        while True:
            message = await self._queue.get()
            if not await self.send(message):
                return


class BroadcastHub:
    def __init__(self, max_pending: int = 100) -> None:
        self.max_pending = max_pending
        self._subscribers: Set[Subscriber] = set()

    def __len__(self) -> int:
        return len(self._subscribers)

    def register(self, websocket: WebSocket) -> Subscriber:
        subscriber = Subscriber(websocket, self.max_pending)
        self._subscribers.add(subscriber)
        _logger.info("Cliente WebSocket conectado (%d activos)", len(self._subscribers))
        return subscriber

    def unregister(self, subscriber: Subscriber) -> None:
        subscriber.close()
        if subscriber in self._subscribers:
            self._subscribers.discard(subscriber)
            _logger.info("Cliente WebSocket desconectado (%d activos)", len(self._subscribers))

    def publish(self, event: TankEvent) -> int:
        """Encola el evento en cada conexion abierta; devuelve a cuantas."""
        message = event.to_wire()
        delivered = 0
        for subscriber in list(self._subscribers):
            if subscriber.enqueue(message):
                delivered += 1
        return delivered
