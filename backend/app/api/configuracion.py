"""
Endpoints de Configuración.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from app.core.database import get_session
from app.core.exceptions import ConfiguracionError
from app.schemas.responses import ConfiguracionResponse, ConfiguracionUpdate
from app.services.configuracion_service import (
    ConfiguracionCache,
    ConfiguracionEfectiva,
    ConfiguracionService,
    get_configuracion_cache,
)

router = APIRouter()


def _respuesta(config: ConfiguracionEfectiva) -> ConfiguracionResponse:
    return ConfiguracionResponse(
        default_area_code=config.default_area_code,
        umbrales_horas=config.umbrales_horas,
        notificaciones_activas=config.notificaciones_activas,
        updated_by=config.updated_by,
    )


@router.get("", response_model=ConfiguracionResponse)
def obtener_configuracion(
    session: Session = Depends(get_session),
    cache: ConfiguracionCache = Depends(get_configuracion_cache)
):
    """Obtiene la configuración efectiva del sistema."""
    return _respuesta(ConfiguracionService(session, cache).obtener())


@router.put("", response_model=ConfiguracionResponse)
def actualizar_configuracion(
    config_update: ConfiguracionUpdate,
    session: Session = Depends(get_session),
    cache: ConfiguracionCache = Depends(get_configuracion_cache)
):
    """Actualiza la configuración del sistema."""
    service = ConfiguracionService(session, cache)
    try:
        config = service.actualizar(
            default_area_code=config_update.default_area_code,
            umbrales_horas=config_update.umbrales_horas,
            notificaciones_activas=config_update.notificaciones_activas,
            updated_by=config_update.updated_by,
        )
    except ConfiguracionError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return _respuesta(config)
