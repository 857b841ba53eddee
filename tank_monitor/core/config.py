from typing import List

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # memory | relational | document | realtime | placeholder
    STORAGE_BACKEND: str = "memory"
    SEED_SAMPLE_TANKS: bool = True
    # espera maxima a que terminen las operaciones en curso al cambiar de backend
    STORE_DRAIN_TIMEOUT_SECONDS: float = 10.0

    #relacional
    DATABASE_URL: str = "sqlite:///./tanks.db"

    #documental
    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "tank_monitor"
    MONGO_COLLECTION_NAME: str = "tanks"
    MONGO_TIMEOUT_MS: int = 3000

    #arbol realtime (Firebase)
    FIREBASE_DATABASE_URL: str = ""
    # vacio: credenciales por defecto de la aplicacion (GOOGLE_APPLICATION_CREDENTIALS)
    FIREBASE_CREDENTIALS_FILE: str = ""

    #simulador
    SIMULATION_ENABLED: bool = True
    SIMULATION_INTERVAL_SECONDS: float = 5.0
    FILL_LEVEL_MAX_DELTA: float = 5.0
    TEMPERATURE_MAX_DELTA: float = 0.5
    STATUS_HYSTERESIS: float = 5.0

    #websocket
    WS_MAX_PENDING_MESSAGES: int = 100

    CORS_ORIGINS: List[str] = [
        "http://localhost:5173", # Vite
        "http://localhost:3000",
        "http://localhost",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
