"""
Schemas de Cirugía.
"""
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, Optional, List, Dict
from datetime import date, datetime

from app.models.enums import EstadoCirugiaEnum, AccionCirugiaEnum, AusenteEnum
from app.utils.constants import ALIAS_CAMPOS_PLANILLA
from app.utils.validators import limpiar_texto, parsear_entero_positivo


class FilaPlanilla(BaseModel):
    """
    Fila de la planilla de cirugías ya leída (un dict por fila).

    Todos los campos llegan como valores no confiables; la conversión de
    fecha e id de paciente la hace la reconciliación.
    """
    model_config = ConfigDict(extra="ignore")

    fila: Optional[int] = None
    fecha: Any = None
    id_paciente: Any = None
    nombre: str = ""
    telefono: Any = None
    descripcion: str = ""
    modulo: str = ""
    motivo: str = ""
    ausente: Any = None
    grupo_agendas: str = ""
    medico: str = ""
    obra_social: str = ""
    dni: str = ""

    @model_validator(mode="before")
    @classmethod
    def resolver_alias(cls, data: Any) -> Any:
        """Acepta los nombres de columna alternativos de la planilla."""
        if not isinstance(data, dict):
            return data
        # Un número de fila ilegible no invalida la fila: se usa la posición
        resuelto = {"fila": parsear_entero_positivo(data.get("fila", data.get("_rowIndex")))}
        for campo, alias in ALIAS_CAMPOS_PLANILLA.items():
            for nombre in alias:
                valor = data.get(nombre)
                if valor is not None and valor != "":
                    resuelto[campo] = valor
                    break
        for campo in ("nombre", "descripcion", "modulo", "motivo", "grupo_agendas",
                      "medico", "obra_social", "dni"):
            if campo in resuelto:
                resuelto[campo] = limpiar_texto(resuelto[campo])
        return resuelto


class ImportacionRequest(BaseModel):
    """Filas a importar."""
    filas: List[Dict[str, Any]]
    default_area_code: Optional[str] = None


class FilaRechazada(BaseModel):
    fila: Optional[int] = None
    nombre: str = ""
    motivo: str


class DetalleTelefono(BaseModel):
    row: int
    nombre: str
    original: str
    normalized: str
    valid: bool
    note: str


class PreviewImportacionResponse(BaseModel):
    """Vista previa: qué pasaría al importar, sin escribir nada."""
    total: int
    a_insertar: int
    a_actualizar: int
    sin_cambios: int
    duplicados: int
    rechazadas: List[FilaRechazada]
    telefonos_validos: int
    telefonos_invalidos: int
    telefonos: List[DetalleTelefono]


class ErrorFila(BaseModel):
    fila: Optional[int] = None
    nombre: str = ""
    error: str


class ImportacionResponse(BaseModel):
    """Resultado de persistir una importación."""
    insertados: int
    actualizados: int
    sin_cambios: int
    duplicados: int
    rechazados: List[FilaRechazada]
    errores: List[ErrorFila]
    telefonos: Dict[str, int]


class EventoCirugiaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    accion: AccionCirugiaEnum
    from_status: Optional[EstadoCirugiaEnum] = None
    to_status: EstadoCirugiaEnum
    details: Optional[str] = None
    performed_by: str
    fuera_de_secuencia: bool = False
    created_at: datetime


class CirugiaResponse(BaseModel):
    """Schema de respuesta de cirugía."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    id_paciente: Optional[int] = None
    fecha_cirugia: date
    nombre: str
    dni: Optional[str] = None
    obra_social: Optional[str] = None
    telefono: str
    telefono_original: str
    telefono_valido: bool
    telefono_nota: Optional[str] = None
    modulo: Optional[str] = None
    descripcion: Optional[str] = None
    medico: Optional[str] = None
    grupo_agendas: Optional[str] = None
    motivo: Optional[str] = None
    ausente: Optional[str] = None
    excluido: bool
    status: EstadoCirugiaEnum
    notas: Optional[str] = None
    operador: Optional[str] = None
    notificado_at: Optional[datetime] = None
    documentacion_recibida_at: Optional[datetime] = None
    autorizado_at: Optional[datetime] = None
    confirmado_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class CirugiaDetalleResponse(CirugiaResponse):
    """Cirugía con su historial de estados."""
    eventos: List[EventoCirugiaResponse] = []


# ============================================
# ACCIONES DE ESTADO
# ============================================

class DocumentacionRequest(BaseModel):
    filename: Optional[str] = None
    url: Optional[str] = None
    operador: str = "bot"


class OperadorRequest(BaseModel):
    operador: str = "admin"


class ProblemaRequest(BaseModel):
    motivo: str = Field(..., min_length=1)
    operador: str = "admin"


class IntervencionManualRequest(BaseModel):
    nuevo_estado: EstadoCirugiaEnum
    motivo: str = Field(..., min_length=1)
    operador: str = Field(..., min_length=1)


class AusenteRequest(BaseModel):
    ausente: Optional[AusenteEnum] = None


class ExclusionRequest(BaseModel):
    excluido: bool
    operador: str = "admin"


class TransicionResponse(BaseModel):
    success: bool
    message: str
    cirugia_id: str
    from_status: Optional[EstadoCirugiaEnum] = None
    to_status: Optional[EstadoCirugiaEnum] = None
    fuera_de_secuencia: bool = False
    mensaje_enviado: Optional[bool] = None


class EstadisticasCirugiasResponse(BaseModel):
    lila: int = 0
    amarillo: int = 0
    verde: int = 0
    azul: int = 0
    rojo: int = 0
    realizada: int = 0
    suspendida: int = 0
    total: int = 0
