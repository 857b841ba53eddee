# reset_db.py
from tank_monitor.core.config import settings
from tank_monitor.db.database import Base, create_db_engine

from tank_monitor.models.tank import Tank  # noqa: F401
from tank_monitor.models.history import TankHistory, Maintenance  # noqa: F401

def reset_database(database_url: str = settings.DATABASE_URL):
    engine = create_db_engine(database_url)
    print("Eliminando todas las tablas...")
    Base.metadata.drop_all(bind=engine)
    print("Tablas eliminadas.")

    print("Creando todas las tablas nuevas...")
    Base.metadata.create_all(bind=engine)
    print("¡Base de datos creada exitosamente!")
    engine.dispose()

if __name__ == "__main__":
    print(f"ADVERTENCIA: Esto eliminará TODOS los datos de {settings.DATABASE_URL}.")
    confirm = input("¿Estás seguro? Escribe 'si' para continuar: ")

    if confirm.lower() == 'si':
        reset_database()
    else:
        print("Operación cancelada.")
