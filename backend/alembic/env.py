"""
Entorno de Alembic.

La URL sale de Settings (DATABASE_URL), no de alembic.ini, y el engine se
crea con crear_engine para usar la misma configuración que la aplicación.
"""
from logging.config import fileConfig
import os
import sys

from alembic import context
from sqlalchemy import pool
from sqlmodel import SQLModel

# backend/ en el path para importar app
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import app.models  # noqa: F401,E402
from app.config import settings  # noqa: E402
from app.core.database import crear_engine  # noqa: E402

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SQLModel.metadata
ES_SQLITE = settings.DATABASE_URL.startswith("sqlite")


def run_migrations_offline() -> None:
    """Genera el SQL de las migraciones sin conectarse."""
    context.configure(
        url=settings.DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Aplica las migraciones contra DATABASE_URL."""
    connectable = crear_engine(settings.DATABASE_URL, poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite no soporta ALTER TABLE completo
            render_as_batch=ES_SQLITE,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
