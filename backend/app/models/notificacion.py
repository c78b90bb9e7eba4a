"""
Modelo de Notificación enviada.
Registra qué umbrales (horas antes de la cirugía) ya dispararon un mensaje.
"""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import UniqueConstraint
from typing import Optional, TYPE_CHECKING
from datetime import datetime
import uuid

if TYPE_CHECKING:
    from app.models.cirugia import Cirugia


class NotificacionCirugia(SQLModel, table=True):
    """
    Umbral ya notificado para una cirugía.

    Se escribe solo después de que el proveedor confirmó el envío.
    La restricción única garantiza a lo sumo un registro por umbral.
    """
    __tablename__ = "notificacion_cirugia"
    __table_args__ = (
        UniqueConstraint("cirugia_id", "umbral_horas", name="uq_notificacion_umbral"),
    )

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True
    )

    cirugia_id: str = Field(foreign_key="cirugia.id", index=True)
    umbral_horas: int
    telefono: str
    enviado_at: datetime = Field(default_factory=datetime.utcnow)

    cirugia: Optional["Cirugia"] = Relationship(back_populates="notificaciones")

    def __repr__(self) -> str:
        return f"NotificacionCirugia(cirugia_id={self.cirugia_id}, umbral={self.umbral_horas}h)"
