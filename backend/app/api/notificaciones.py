"""
Endpoints de Notificaciones.
"""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.database import get_session
from app.schemas.responses import ProcesoNotificacionesResponse
from app.services.configuracion_service import ConfiguracionCache, get_configuracion_cache
from app.services.notificacion_service import EnviosEnCurso, NotificacionService, get_envios_en_curso
from app.services.whatsapp_service import EnviadorMensajes, get_enviador

router = APIRouter()


@router.post("/procesar", response_model=ProcesoNotificacionesResponse)
def procesar_notificaciones(
    session: Session = Depends(get_session),
    cache: ConfiguracionCache = Depends(get_configuracion_cache),
    enviador: EnviadorMensajes = Depends(get_enviador),
    envios: EnviosEnCurso = Depends(get_envios_en_curso)
):
    """Ejecuta ahora una pasada del proceso de avisos programados."""
    service = NotificacionService(session, enviador, cache.obtener(session), envios=envios)
    resultado = service.procesar_notificaciones_programadas()
    return ProcesoNotificacionesResponse(
        procesadas=resultado.procesadas,
        enviadas=resultado.enviadas,
        fallidas=resultado.fallidas,
        omitidas=resultado.omitidas,
        en_curso=resultado.en_curso,
        resultados=[vars(r) for r in resultado.resultados],
    )
