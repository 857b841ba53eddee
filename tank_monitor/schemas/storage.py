from enum import Enum

from tank_monitor.schemas.tank import CamelModel


class StorageBackend(str, Enum):
    memory = "memory"
    relational = "relational"
    document = "document"
    realtime = "realtime"
    placeholder = "placeholder"


class StorageInfo(CamelModel):
    backend: StorageBackend


class StorageSelect(CamelModel):
    backend: StorageBackend
