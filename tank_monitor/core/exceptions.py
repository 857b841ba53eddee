"""Errores compartidos por los stores, los servicios y la API."""

from __future__ import annotations


class TankMonitorError(Exception):
    """Base de todos los errores del monitor de tanques."""


class RecordNotFound(TankMonitorError):
    """No existe un registro con ese id."""

    def __init__(self, kind: str, record_id: int) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} {record_id} not found")


class InvalidRecord(TankMonitorError):
    """El registro o el cambio pedido viola una restriccion del esquema."""


class StorageUnavailable(TankMonitorError):
    """No se pudo contactar la base de datos."""

    def __init__(self, message: str, *, backend: str = "") -> None:
        self.backend = backend
        super().__init__(message)


class BackendNotImplemented(TankMonitorError):
    def __init__(self, backend: str, operation: str) -> None:
        self.backend = backend
        self.operation = operation
        super().__init__(f"{operation} is not implemented by the {backend} backend")
