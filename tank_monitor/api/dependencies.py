from typing import AsyncIterator

from fastapi import Depends, Request

from tank_monitor.core.config import Settings
from tank_monitor.services.broadcast import BroadcastHub
from tank_monitor.storage.base import TankStore
from tank_monitor.storage.handle import StoreHandle


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store_handle(request: Request) -> StoreHandle:
    return request.app.state.store_handle


async def get_store(handle: StoreHandle = Depends(get_store_handle)) -> AsyncIterator[TankStore]:
    """
    Dependencia de FastAPI:
    Devuelve el backend activo en el momento de la peticion.
    Un cambio de backend no lo cierra hasta que la peticion termina.
    """
    async with handle.use() as store:
        yield store


def get_hub(request: Request) -> BroadcastHub:
    return request.app.state.hub
