"""
Configuración de Base de Datos.
Engine, sesiones SQLModel y chequeo de salud.
"""
from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session
from typing import Generator
from app.config import settings


def habilitar_savepoints_sqlite(engine: Engine) -> None:
    """
    Deja que SQLAlchemy maneje BEGIN/SAVEPOINT en SQLite.

    El driver pysqlite abre transacciones por su cuenta y rompe los
    savepoints que usa la importación (uno por fila). Con esto la
    transacción la emite siempre SQLAlchemy.
    """
    @event.listens_for(engine, "connect")
    def _sin_transaccion_implicita(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


def crear_engine(url: str = settings.DATABASE_URL, **kwargs) -> Engine:
    """Crea el engine; en SQLite habilita multi-hilo y savepoints."""
    es_sqlite = url.startswith("sqlite")
    if es_sqlite:
        kwargs.setdefault("connect_args", {"check_same_thread": False})

    nuevo = create_engine(url, echo=settings.DEBUG, **kwargs)
    if es_sqlite:
        habilitar_savepoints_sqlite(nuevo)
    return nuevo


engine = crear_engine()


def create_db_and_tables() -> None:
    """Crea las tablas que falten. Se llama al iniciar la aplicación."""
    import app.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    """Sesión por request para Depends(get_session)."""
    with Session(engine) as session:
        yield session


def get_session_direct() -> Session:
    """
    Sesión fuera de un request (proceso de notificaciones).

    El caller la cierra.
    """
    return Session(engine)


def check_database_health() -> bool:
    """Ejecuta un SELECT 1 contra la base de datos."""
    try:
        with Session(engine) as session:
            session.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
