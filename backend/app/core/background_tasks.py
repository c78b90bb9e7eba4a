"""
Tareas en segundo plano del sistema.
Envío periódico de los avisos previos a la cirugía.

Ubicación: app/core/background_tasks.py
"""
import asyncio
import logging

from app.config import settings
from app.core.database import get_session_direct
from app.services.configuracion_service import configuracion_cache
from app.services.notificacion_service import (
    NotificacionService,
    ResultadoProcesoNotificaciones,
    envios_en_curso,
)
from app.services.whatsapp_service import BuilderBotEnviador

logger = logging.getLogger("gestion_cirugias.background")


def ejecutar_pasada_notificaciones() -> ResultadoProcesoNotificaciones:
    """Una pasada del proceso con su propia sesión."""
    session = get_session_direct()
    try:
        config = configuracion_cache.obtener(session)
        servicio = NotificacionService(session, BuilderBotEnviador(), config, envios=envios_en_curso)
        return servicio.procesar_notificaciones_programadas()
    finally:
        session.close()


def cerrar_envios_en_curso(timeout: float) -> int:
    """
    Espera los avisos que siguen en el proveedor y registra los confirmados.

    Returns:
        Cantidad de envíos que no terminaron dentro del timeout
    """
    sin_terminar = envios_en_curso.esperar(timeout)
    session = get_session_direct()
    try:
        config = configuracion_cache.obtener(session)
        servicio = NotificacionService(session, BuilderBotEnviador(), config, envios=envios_en_curso)
        servicio.registrar_envios_tardios()
    finally:
        session.close()
    return sin_terminar


async def proceso_notificaciones():
    """
    Proceso en segundo plano de notificaciones programadas.

    Cada PROCESO_NOTIFICACIONES_INTERVALO segundos revisa las cirugías en
    LILA y envía los avisos de los umbrales alcanzados. La pasada corre en
    un hilo para no bloquear el event loop con los envíos HTTP.
    """
    logger.info(
        f"Iniciando proceso de notificaciones (cada {settings.PROCESO_NOTIFICACIONES_INTERVALO}s)"
    )

    while True:
        try:
            await asyncio.to_thread(ejecutar_pasada_notificaciones)
        except Exception as e:
            logger.error(f"Error en proceso de notificaciones: {e}")

        await asyncio.sleep(settings.PROCESO_NOTIFICACIONES_INTERVALO)
