"""
Repositories para acceso a datos.
"""
from app.repositories.base import BaseRepository
from app.repositories.cirugia_repo import CirugiaRepository, ResultadoFila
from app.repositories.configuracion_repo import (
    ConfiguracionRepository,
    PlantillaMensajeRepository,
)

__all__ = [
    "BaseRepository",
    "CirugiaRepository",
    "ResultadoFila",
    "ConfiguracionRepository",
    "PlantillaMensajeRepository",
]
