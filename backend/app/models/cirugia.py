"""
Modelo de Cirugía.
Una fila de la agenda quirúrgica importada desde la planilla.
"""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import UniqueConstraint
from typing import Optional, List, TYPE_CHECKING
from datetime import date, datetime
import uuid
import json

from app.models.enums import EstadoCirugiaEnum, ESTADO_INICIAL

if TYPE_CHECKING:
    from app.models.evento_cirugia import EventoCirugia
    from app.models.notificacion import NotificacionCirugia


class Cirugia(SQLModel, table=True):
    """
    Modelo de Cirugía.

    La identidad de negocio es (id_paciente, fecha_cirugia): una nueva
    importación con la misma clave actualiza la fila existente.
    """
    __tablename__ = "cirugia"
    __table_args__ = (
        UniqueConstraint("id_paciente", "fecha_cirugia", name="uq_cirugia_paciente_fecha"),
    )

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True
    )

    # ============================================
    # IDENTIDAD
    # ============================================
    id_paciente: Optional[int] = Field(default=None, index=True)
    fecha_cirugia: date = Field(index=True)

    # ============================================
    # DATOS DEL PACIENTE
    # ============================================
    nombre: str
    dni: Optional[str] = Field(default=None)
    obra_social: Optional[str] = Field(default=None)

    # Teléfono: canónico (549...) si es válido, texto original si no
    telefono: str = Field(default="")
    telefono_original: str = Field(default="")
    telefono_valido: bool = Field(default=False)
    telefono_nota: Optional[str] = Field(default=None)

    # ============================================
    # DATOS DE LA PLANILLA
    # ============================================
    modulo: Optional[str] = Field(default=None)
    descripcion: Optional[str] = Field(default=None)
    medico: Optional[str] = Field(default=None)
    grupo_agendas: Optional[str] = Field(default=None)
    motivo: Optional[str] = Field(default=None)
    ausente: Optional[str] = Field(default=None)  # None pendiente, "0" realizada, "1" suspendida
    excluido: bool = Field(default=False, index=True)

    # ============================================
    # ESTADO
    # ============================================
    status: EstadoCirugiaEnum = Field(default=ESTADO_INICIAL, index=True)
    notas: Optional[str] = Field(default=None)
    operador: Optional[str] = Field(default=None)
    archivos: Optional[str] = Field(default=None)  # JSON con archivos recibidos

    notificado_at: Optional[datetime] = Field(default=None)
    documentacion_recibida_at: Optional[datetime] = Field(default=None)
    autorizado_at: Optional[datetime] = Field(default=None)
    confirmado_at: Optional[datetime] = Field(default=None)
    ultimo_mensaje_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # ============================================
    # RELACIONES
    # ============================================
    eventos: List["EventoCirugia"] = Relationship(
        back_populates="cirugia",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "order_by": "EventoCirugia.created_at",
        }
    )
    notificaciones: List["NotificacionCirugia"] = Relationship(
        back_populates="cirugia",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )

    # ============================================
    # MÉTODOS DE UTILIDAD
    # ============================================

    @property
    def clave(self) -> tuple:
        """Clave de reconciliación (id_paciente, fecha_cirugia)."""
        return (self.id_paciente, self.fecha_cirugia)

    def get_archivos(self) -> list:
        """Obtiene la lista de archivos recibidos."""
        if not self.archivos:
            return []
        try:
            return json.loads(self.archivos)
        except json.JSONDecodeError:
            return []

    def agregar_archivo(self, info: dict) -> None:
        """Agrega un archivo a la lista de documentación recibida."""
        archivos = self.get_archivos()
        archivos.append(info)
        self.archivos = json.dumps(archivos)

    def __repr__(self) -> str:
        return (
            f"Cirugia(id={self.id}, id_paciente={self.id_paciente}, "
            f"fecha={self.fecha_cirugia}, status={self.status})"
        )
