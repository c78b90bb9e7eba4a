"""
Endpoints de Teléfonos.
"""
from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.database import get_session
from app.schemas.responses import TelefonoRequest, TelefonoResponse
from app.services.configuracion_service import ConfiguracionCache, get_configuracion_cache
from app.utils.telefonos import detectar_codigo_area, normalizar_telefono

router = APIRouter()


@router.post("/normalizar", response_model=TelefonoResponse)
def normalizar(
    data: TelefonoRequest,
    session: Session = Depends(get_session),
    cache: ConfiguracionCache = Depends(get_configuracion_cache)
):
    """Normaliza un teléfono al formato WhatsApp (549...)."""
    area = data.default_area_code
    if area is None:
        area = cache.obtener(session).default_area_code

    resultado = normalizar_telefono(data.telefono, area)
    codigo_area = detectar_codigo_area(resultado.normalizado[3:]) if resultado.valido else ""
    return TelefonoResponse(**resultado.to_dict(), codigo_area=codigo_area)
