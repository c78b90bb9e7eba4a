"""
Modelos de Configuración y Plantillas de mensajes.
"""
from sqlmodel import SQLModel, Field
from typing import Optional, List
from datetime import datetime
import uuid
import json

from app.models.enums import TipoPlantillaEnum


class ConfiguracionSistema(SQLModel, table=True):
    """
    Configuración editable en tiempo de ejecución.

    Los valores nulos caen al default de Settings.
    """
    __tablename__ = "configuracionsistema"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True
    )

    default_area_code: Optional[str] = Field(default=None)

    # JSON con la lista de horas antes de la cirugía, ej: "[72, 48]"
    umbrales_horas: Optional[str] = Field(default=None)

    notificaciones_activas: bool = Field(default=True)

    updated_at: datetime = Field(default_factory=datetime.utcnow)
    updated_by: Optional[str] = Field(default=None)

    def get_umbrales(self) -> Optional[List[int]]:
        """Umbrales configurados o None si no hay override."""
        if not self.umbrales_horas:
            return None
        try:
            return [int(h) for h in json.loads(self.umbrales_horas)]
        except (json.JSONDecodeError, TypeError, ValueError):
            return None

    def set_umbrales(self, umbrales: List[int]) -> None:
        self.umbrales_horas = json.dumps(sorted(set(umbrales), reverse=True))

    def __repr__(self) -> str:
        return f"ConfiguracionSistema(area={self.default_area_code}, umbrales={self.umbrales_horas})"


class PlantillaMensaje(SQLModel, table=True):
    """
    Plantilla de mensaje de WhatsApp.

    obra_social_pattern = "*" es la plantilla por defecto del tipo.
    Placeholders: {nombre} {fecha} {medico} {obra_social} {dni}
    """
    __tablename__ = "plantilla_mensaje"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True
    )

    tipo: TipoPlantillaEnum = Field(index=True)
    obra_social_pattern: str = Field(default="*", index=True)
    contenido: str
    activo: bool = Field(default=True)

    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def __repr__(self) -> str:
        return f"PlantillaMensaje(tipo={self.tipo}, obra_social={self.obra_social_pattern})"
