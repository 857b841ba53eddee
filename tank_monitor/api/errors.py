import logging
from typing import Awaitable, List, TypeVar

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from tank_monitor.core.exceptions import (
    BackendNotImplemented,
    InvalidRecord,
    RecordNotFound,
    StorageUnavailable,
)

_logger = logging.getLogger(__name__)

T = TypeVar("T")


async def read_collection(read: Awaitable[List[T]], name: str) -> List[T]:
    """
    Lectura de una coleccion completa (tanques, historial, mantenimientos).
    Si el backend no responde se devuelve una lista vacia; las lecturas de un
    solo registro y las escrituras siguen respondiendo 500.
    """
    try:
        return await read
    except StorageUnavailable as exc:
        _logger.warning("Lectura de %s degradada a lista vacia: %s", name, exc)
        return []


def _describe(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "Validation error: " + "; ".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    """Traduce los errores de dominio a respuestas HTTP."""

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        # Se rechaza antes de tocar el backend: 400, no 422
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": _describe(exc)})

    @app.exception_handler(InvalidRecord)
    async def invalid_record_handler(request: Request, exc: InvalidRecord):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(RecordNotFound)
    async def not_found_handler(request: Request, exc: RecordNotFound):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": f"{exc.kind} not found"})

    @app.exception_handler(StorageUnavailable)
    async def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
        _logger.error("Backend %s no disponible en %s %s: %s", exc.backend, request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Storage unavailable"},
        )

    @app.exception_handler(BackendNotImplemented)
    async def not_implemented_handler(request: Request, exc: BackendNotImplemented):
        return JSONResponse(status_code=status.HTTP_501_NOT_IMPLEMENTED, content={"detail": str(exc)})
