"""
Services de lógica de negocio.
Contienen la lógica principal del sistema.
"""
from app.services.configuracion_service import ConfiguracionCache, ConfiguracionService
from app.services.reconciliacion_service import ImportacionService, reconciliar
from app.services.estado_service import EstadoService
from app.services.whatsapp_service import BuilderBotEnviador, MensajeriaService
from app.services.notificacion_service import NotificacionService
from app.services.estadisticas_service import EstadisticasService

__all__ = [
    "ConfiguracionCache",
    "ConfiguracionService",
    "ImportacionService",
    "reconciliar",
    "EstadoService",
    "BuilderBotEnviador",
    "MensajeriaService",
    "NotificacionService",
    "EstadisticasService",
]
