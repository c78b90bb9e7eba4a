"""
Módulo core: funcionalidades centrales del sistema.
"""
from app.core.database import create_db_and_tables, crear_engine, get_session, get_session_direct, engine
from app.core.exceptions import (
    BaseAppException,
    NotFoundError,
    CirugiaNotFoundError,
    NotificacionError,
    TelefonoInvalidoError,
    ConfiguracionError,
)

__all__ = [
    "create_db_and_tables",
    "crear_engine",
    "get_session",
    "get_session_direct",
    "engine",
    "BaseAppException",
    "NotFoundError",
    "CirugiaNotFoundError",
    "NotificacionError",
    "TelefonoInvalidoError",
    "ConfiguracionError",
]
