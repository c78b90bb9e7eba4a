"""
Modelo de Evento de Cirugía.
Historial de estados (solo se agregan filas, nunca se modifican).
"""
from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from datetime import datetime
import uuid
import json

from app.models.enums import EstadoCirugiaEnum, AccionCirugiaEnum

if TYPE_CHECKING:
    from app.models.cirugia import Cirugia


class EventoCirugia(SQLModel, table=True):
    """
    Registro de una transición de estado o de una notificación enviada.

    Cada transición queda atribuida (performed_by) y fechada (created_at).
    """
    __tablename__ = "evento_cirugia"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True
    )

    cirugia_id: str = Field(foreign_key="cirugia.id", index=True)

    accion: AccionCirugiaEnum = Field(index=True)
    from_status: Optional[EstadoCirugiaEnum] = Field(default=None)
    to_status: EstadoCirugiaEnum

    details: Optional[str] = Field(default=None)
    performed_by: str = Field(default="bot")

    # La acción no correspondía al estado actual según la tabla de transiciones
    fuera_de_secuencia: bool = Field(default=False)

    datos_adicionales: Optional[str] = Field(default=None)  # JSON

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)

    cirugia: Optional["Cirugia"] = Relationship(back_populates="eventos")

    def set_metadata(self, data: dict) -> None:
        self.datos_adicionales = json.dumps(data)

    def get_metadata(self) -> dict:
        if not self.datos_adicionales:
            return {}
        try:
            return json.loads(self.datos_adicionales)
        except json.JSONDecodeError:
            return {}

    @property
    def event_type(self) -> str:
        """Nombre del evento con el formato 'lila_to_amarillo'."""
        origen = self.from_status.value if self.from_status else "nuevo"
        return f"{origen}_to_{self.to_status.value}"

    def __repr__(self) -> str:
        return f"EventoCirugia(cirugia_id={self.cirugia_id}, {self.event_type}, por={self.performed_by})"
