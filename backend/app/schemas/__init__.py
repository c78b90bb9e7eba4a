"""
Schemas Pydantic para validación y serialización.
"""
from app.schemas.cirugia import (
    FilaPlanilla,
    ImportacionRequest,
    ImportacionResponse,
    PreviewImportacionResponse,
    CirugiaResponse,
    CirugiaDetalleResponse,
    EventoCirugiaResponse,
    TransicionResponse,
    EstadisticasCirugiasResponse,
)
from app.schemas.responses import (
    MessageResponse,
    ErrorResponse,
    ConfiguracionResponse,
    ConfiguracionUpdate,
    TelefonoRequest,
    TelefonoResponse,
    ProcesoNotificacionesResponse,
)

__all__ = [
    "FilaPlanilla",
    "ImportacionRequest",
    "ImportacionResponse",
    "PreviewImportacionResponse",
    "CirugiaResponse",
    "CirugiaDetalleResponse",
    "EventoCirugiaResponse",
    "TransicionResponse",
    "EstadisticasCirugiasResponse",
    "MessageResponse",
    "ErrorResponse",
    "ConfiguracionResponse",
    "ConfiguracionUpdate",
    "TelefonoRequest",
    "TelefonoResponse",
    "ProcesoNotificacionesResponse",
]
