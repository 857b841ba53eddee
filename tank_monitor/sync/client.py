"""Cliente que mantiene un ``TankMirror`` sincronizado con el servidor.

Estados: disconnected -> connecting -> connected -> disconnected -> connecting ...
Tras cada cierre se reintenta despues de ``reconnect_delay`` segundos, sin
limite de intentos, hasta que se llama a ``stop()``.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from typing import Any, Callable, Dict, List, Optional

import aiohttp

from tank_monitor.sync.mirror import TankMirror

_logger = logging.getLogger(__name__)

DEFAULT_RECONNECT_DELAY = 3.0

StateListener = Callable[["ConnectionState"], None]
MessageListener = Callable[[Dict[str, Any]], None]


class ConnectionState(str, enum.Enum):
    disconnected = "disconnected"
    connecting = "connecting"
    connected = "connected"


class ClientSynchronizer:
    def __init__(
        self,
        url: str,
        *,
        mirror: Optional[TankMirror] = None,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        http_session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.url = url
        self.mirror = mirror or TankMirror()
        self.reconnect_delay = reconnect_delay
        self._http = http_session
        self._state = ConnectionState.disconnected
        self._state_listeners: List[StateListener] = []
        self._message_listeners: List[MessageListener] = []
        self._stop_event = asyncio.Event()
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._task: Optional[asyncio.Task] = None
        self.connect_attempts = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def add_message_listener(self, listener: MessageListener) -> None:
        self._message_listeners.append(listener)

    def _notify(self, listeners: List[Callable[[Any], None]], value: Any) -> None:
        # un listener que falla no corta la conexion ni a los demas listeners
        for listener in list(listeners):
            try:
                listener(value)
            except Exception:
                _logger.exception("Error en listener %r", listener)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        _logger.debug("WebSocket %s: %s -> %s", self.url, self._state.value, state.value)
        self._state = state
        self._notify(self._state_listeners, state)

    def _handle_text(self, raw: str) -> None:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            _logger.warning("Mensaje WebSocket no es JSON: %.80s", raw)
            return
        if not isinstance(message, dict) or not self.mirror.apply(message):
            return
        self._notify(self._message_listeners, message)

    async def _connect_once(self, http: aiohttp.ClientSession) -> None:
        self.connect_attempts += 1
        self._set_state(ConnectionState.connecting)
        try:
            async with http.ws_connect(self.url) as ws:
                self._ws = ws
                self._set_state(ConnectionState.connected)
                _logger.info("WebSocket conectado a %s", self.url)
                async for msg in ws:
                    if msg.type == aiohttp.WSMsgType.TEXT:
                        self._handle_text(msg.data)
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        _logger.warning("Error en WebSocket: %s", ws.exception())
                        break
        except (aiohttp.ClientError, OSError) as exc:
            _logger.warning("No se pudo conectar a %s: %s", self.url, exc)
        finally:
            self._ws = None
            self._set_state(ConnectionState.disconnected)

    async def run(self) -> None:
        owns_session = self._http is None
        http = self._http or aiohttp.ClientSession()
        try:
            while not self._stop_event.is_set():
                await self._connect_once(http)
                if self._stop_event.is_set():
                    break
                _logger.info("Reintentando conexion en %.1f s", self.reconnect_delay)
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self.reconnect_delay)
                except asyncio.TimeoutError:
                    pass
        finally:
            if owns_session:
                await http.close()

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._stop_event.clear()
            self._task = asyncio.create_task(self.run(), name="tank-sync")
        return self._task

    async def stop(self) -> None:
        self._stop_event.set()
        if self._ws is not None:
            await self._ws.close()
        if self._task is not None:
            await self._task
            self._task = None
