"""
Schemas de Respuestas Comunes.
"""
from pydantic import BaseModel, Field
from typing import Any, Optional, List


class MessageResponse(BaseModel):
    """Respuesta genérica con mensaje."""
    success: bool
    message: str
    data: Optional[dict] = None


class ErrorResponse(BaseModel):
    """Respuesta de error."""
    error: str
    detail: Optional[str] = None


class ConfiguracionResponse(BaseModel):
    """Configuración efectiva (base + overrides)."""
    default_area_code: str
    umbrales_horas: List[int]
    notificaciones_activas: bool
    updated_by: Optional[str] = None


class ConfiguracionUpdate(BaseModel):
    """Schema para actualizar configuración."""
    default_area_code: Optional[str] = Field(default=None, pattern=r'^0?\d{2,4}$')
    umbrales_horas: Optional[List[int]] = None
    notificaciones_activas: Optional[bool] = None
    updated_by: Optional[str] = "admin"


class TelefonoRequest(BaseModel):
    telefono: Any
    default_area_code: Optional[str] = None


class TelefonoResponse(BaseModel):
    original: str
    normalized: str
    valid: bool
    note: str
    codigo_area: str = ""


class ResultadoNotificacionResponse(BaseModel):
    cirugia_id: str
    nombre: str
    umbral_horas: Optional[int] = None
    enviado: bool
    error: Optional[str] = None
    categoria_documentacion: Optional[str] = None


class ProcesoNotificacionesResponse(BaseModel):
    procesadas: int
    enviadas: int
    fallidas: int
    omitidas: int
    en_curso: int = 0
    resultados: List[ResultadoNotificacionResponse]
