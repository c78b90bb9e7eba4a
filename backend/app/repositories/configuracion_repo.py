"""
Repository de Configuración y Plantillas.
"""
from typing import List, Optional
from sqlmodel import Session, select
from datetime import datetime

from app.repositories.base import BaseRepository
from app.models.configuracion import ConfiguracionSistema, PlantillaMensaje
from app.models.enums import TipoPlantillaEnum

PATRON_DEFAULT = "*"


class ConfiguracionRepository(BaseRepository[ConfiguracionSistema]):
    """Repository para la configuración editable del sistema."""

    def __init__(self, session: Session):
        super().__init__(session, ConfiguracionSistema)

    def obtener_configuracion(self) -> Optional[ConfiguracionSistema]:
        return self.session.exec(select(ConfiguracionSistema)).first()

    def obtener_o_crear(self) -> ConfiguracionSistema:
        """
        Obtiene la configuración o crea una vacía (todo cae a Settings).

        Returns:
            La configuración
        """
        config = self.obtener_configuracion()
        if not config:
            config = ConfiguracionSistema()
            self.session.add(config)
            self.session.commit()
            self.session.refresh(config)
        return config

    def actualizar_configuracion(
        self,
        default_area_code: Optional[str] = None,
        umbrales_horas: Optional[List[int]] = None,
        notificaciones_activas: Optional[bool] = None,
        updated_by: Optional[str] = None,
    ) -> ConfiguracionSistema:
        """
        Actualiza los valores indicados; los None no se tocan.

        Args:
            default_area_code: Código de área por defecto
            umbrales_horas: Horas antes de la cirugía en que se avisa
            notificaciones_activas: Habilita el aviso programado
            updated_by: Usuario que hace el cambio

        Returns:
            La configuración actualizada
        """
        config = self.obtener_o_crear()

        if default_area_code is not None:
            config.default_area_code = default_area_code
        if umbrales_horas is not None:
            config.set_umbrales(umbrales_horas)
        if notificaciones_activas is not None:
            config.notificaciones_activas = notificaciones_activas

        config.updated_by = updated_by
        config.updated_at = datetime.utcnow()

        return self.guardar(config)


class PlantillaMensajeRepository(BaseRepository[PlantillaMensaje]):
    """Repository para plantillas de mensajes."""

    def __init__(self, session: Session):
        super().__init__(session, PlantillaMensaje)

    def buscar_plantilla(
        self,
        tipo: TipoPlantillaEnum,
        obra_social: Optional[str] = None
    ) -> Optional[PlantillaMensaje]:
        """
        Busca la plantilla activa de un tipo para una obra social.

        Primero la de la obra social exacta (sin distinguir mayúsculas),
        después la de patrón "*".
        """
        query = select(PlantillaMensaje).where(
            PlantillaMensaje.tipo == tipo,
            PlantillaMensaje.activo == True  # noqa: E712
        )
        plantillas = list(self.session.exec(query).all())

        if obra_social:
            buscada = obra_social.strip().lower()
            for plantilla in plantillas:
                if plantilla.obra_social_pattern.strip().lower() == buscada:
                    return plantilla

        for plantilla in plantillas:
            if plantilla.obra_social_pattern == PATRON_DEFAULT:
                return plantilla
        return None
