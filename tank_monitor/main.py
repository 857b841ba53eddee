from fastapi import FastAPI
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from typing import Optional
import logging
import random
import uvicorn

from tank_monitor.api.endpoints import history, maintenance, reports, storage, tanks, ws
from tank_monitor.api.errors import register_exception_handlers
from tank_monitor.core.config import Settings, settings as default_settings
from tank_monitor.core.log_config import configure_logging
from tank_monitor.schemas.storage import StorageBackend
from tank_monitor.services.broadcast import BroadcastHub
from tank_monitor.services.simulator import TankSimulator
from tank_monitor.storage.factory import open_store
from tank_monitor.storage.handle import StoreHandle

_logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, rng: Optional[random.Random] = None) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    # Evento de ciclo de vida: abrir el backend y arrancar el simulador
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store = await open_store(StorageBackend(settings.STORAGE_BACKEND), settings)
        handle = StoreHandle(store, drain_timeout=settings.STORE_DRAIN_TIMEOUT_SECONDS)
        hub = BroadcastHub(max_pending=settings.WS_MAX_PENDING_MESSAGES)
        simulator = TankSimulator(
            handle,
            hub,
            interval=settings.SIMULATION_INTERVAL_SECONDS,
            fill_max_delta=settings.FILL_LEVEL_MAX_DELTA,
            temperature_max_delta=settings.TEMPERATURE_MAX_DELTA,
            hysteresis=settings.STATUS_HYSTERESIS,
            rng=rng,
        )
        app.state.store_handle = handle
        app.state.hub = hub
        app.state.simulator = simulator
        if settings.SIMULATION_ENABLED:
            simulator.start()
        _logger.info("Monitor de tanques listo (backend: %s)", handle.kind.value)
        yield
        await simulator.stop()
        await handle.close()

    app = FastAPI(
        title="API de Monitoreo de Tanques",
        description="Niveles y temperaturas de tanques con actualizaciones en vivo por WebSocket.",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # Incluir los routers
    app.include_router(tanks.router, prefix="/api", tags=["Tanks"])
    app.include_router(history.router, prefix="/api", tags=["History"])
    app.include_router(maintenance.router, prefix="/api", tags=["Maintenance"])
    app.include_router(reports.router, prefix="/api", tags=["Reports"])
    app.include_router(storage.router, prefix="/api", tags=["Storage"])
    app.include_router(ws.router)

    @app.get("/api/health")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("tank_monitor.main:app", host="0.0.0.0", port=8000)
