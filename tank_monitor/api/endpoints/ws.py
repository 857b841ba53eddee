import asyncio
import contextlib
import logging
from typing import List

from fastapi import APIRouter, WebSocket, status
from starlette.websockets import WebSocketDisconnect

from tank_monitor.api.errors import read_collection
from tank_monitor.core.exceptions import BackendNotImplemented
from tank_monitor.schemas.events import snapshot_event
from tank_monitor.schemas.tank import Tank
from tank_monitor.storage.handle import StoreHandle

_logger = logging.getLogger(__name__)

router = APIRouter()


async def _snapshot_tanks(handle: StoreHandle) -> List[Tank]:
    async with handle.use() as store:
        try:
            return await read_collection(store.list_tanks(), "tanques")
        except BackendNotImplemented as exc:
            _logger.warning("Snapshot inicial vacio: %s", exc)
            return []


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws")
async def tank_stream(websocket: WebSocket):
    """
    Canal de solo envio. Al conectar se manda ``INITIAL_DATA`` con todos los
    tanques y despues cada evento en el orden en que se publico.
    Los mensajes del cliente se ignoran. Un cliente que no consume sus
    mensajes se desconecta con el codigo 1013 (reintentar mas tarde).
    """
    await websocket.accept()
    hub = websocket.app.state.hub
    handle = websocket.app.state.store_handle

    # Registrar antes de leer el snapshot: los eventos que lleguen mientras
    # tanto quedan en la cola y se envian despues del snapshot.
    subscriber = hub.register(websocket)
    tasks = []
    try:
        snapshot = snapshot_event(await _snapshot_tanks(handle))
        tasks = [
            asyncio.create_task(subscriber.run(snapshot)),
            asyncio.create_task(_wait_for_disconnect(websocket)),
        ]
        await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        if subscriber.overflowed:
            with contextlib.suppress(WebSocketDisconnect, RuntimeError, OSError):
                await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
    finally:
        hub.unregister(subscriber)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError, WebSocketDisconnect, RuntimeError):
                await task
