"""
Modelos de datos del sistema.
Re-exporta todos los modelos para imports simplificados.
"""
from app.models.enums import (
    EstadoCirugiaEnum,
    AccionCirugiaEnum,
    TipoPlantillaEnum,
    AusenteEnum,
    FiltroAusenteEnum,
)

from app.models.cirugia import Cirugia
from app.models.evento_cirugia import EventoCirugia
from app.models.notificacion import NotificacionCirugia
from app.models.configuracion import ConfiguracionSistema, PlantillaMensaje

__all__ = [
    # Enums
    "EstadoCirugiaEnum",
    "AccionCirugiaEnum",
    "TipoPlantillaEnum",
    "AusenteEnum",
    "FiltroAusenteEnum",
    # Models
    "Cirugia",
    "EventoCirugia",
    "NotificacionCirugia",
    "ConfiguracionSistema",
    "PlantillaMensaje",
]
