"""
Servicio de Configuración.

Combina los valores de Settings (entorno / .env) con los overrides
guardados en ConfiguracionSistema, y los cachea por un tiempo.
"""
from dataclasses import dataclass, field
from typing import Callable, List, Optional
import logging
import threading
import time

from sqlmodel import Session

from app.config import Settings, settings as settings_default
from app.core.exceptions import ConfiguracionError
from app.repositories.configuracion_repo import ConfiguracionRepository
from app.utils.telefonos import limpiar_codigo_area

logger = logging.getLogger("gestion_cirugias.configuracion")


@dataclass(frozen=True)
class ConfiguracionEfectiva:
    """Valores de configuración ya resueltos."""
    default_area_code: str
    umbrales_horas: List[int] = field(default_factory=list)
    notificaciones_activas: bool = True
    updated_by: Optional[str] = None


def resolver_configuracion(session: Session, base: Settings = settings_default) -> ConfiguracionEfectiva:
    """
    Lee la configuración de la base y completa con Settings lo que falte.

    Args:
        session: Sesión de base de datos
        base: Settings con los valores por defecto

    Returns:
        ConfiguracionEfectiva
    """
    guardada = ConfiguracionRepository(session).obtener_configuracion()

    area = base.DEFAULT_AREA_CODE
    umbrales = list(base.NOTIFICACION_UMBRALES_HORAS)
    activas = True
    updated_by = None

    if guardada is not None:
        if guardada.default_area_code:
            area = guardada.default_area_code
        umbrales = guardada.get_umbrales() or umbrales
        activas = guardada.notificaciones_activas
        updated_by = guardada.updated_by

    return ConfiguracionEfectiva(
        default_area_code=limpiar_codigo_area(area),
        umbrales_horas=sorted(set(umbrales), reverse=True),
        notificaciones_activas=activas,
        updated_by=updated_by,
    )


class ConfiguracionCache:
    """
    Cache de la configuración efectiva con vencimiento.

    Uso:
        cache = ConfiguracionCache(ttl_segundos=60)
        config = cache.obtener(session)
        ...
        cache.invalidar()  # después de guardar cambios
    """

    def __init__(
        self,
        ttl_segundos: float = settings_default.CONFIG_CACHE_TTL_SEGUNDOS,
        base: Settings = settings_default,
        reloj: Callable[[], float] = time.monotonic,
    ):
        self.ttl_segundos = ttl_segundos
        self.base = base
        self._reloj = reloj
        self._valor: Optional[ConfiguracionEfectiva] = None
        self._leido_en = 0.0
        self._lock = threading.Lock()

    def obtener(self, session: Session) -> ConfiguracionEfectiva:
        with self._lock:
            ahora = self._reloj()
            if self._valor is None or ahora - self._leido_en >= self.ttl_segundos:
                self._valor = resolver_configuracion(session, self.base)
                self._leido_en = ahora
            return self._valor

    def invalidar(self) -> None:
        with self._lock:
            self._valor = None


class ConfiguracionService:
    """Lectura y actualización de la configuración editable."""

    def __init__(self, session: Session, cache: ConfiguracionCache):
        self.session = session
        self.cache = cache
        self.repo = ConfiguracionRepository(session)

    def obtener(self) -> ConfiguracionEfectiva:
        return self.cache.obtener(self.session)

    def actualizar(
        self,
        default_area_code: Optional[str] = None,
        umbrales_horas: Optional[List[int]] = None,
        notificaciones_activas: Optional[bool] = None,
        updated_by: Optional[str] = None,
    ) -> ConfiguracionEfectiva:
        """
        Guarda los cambios e invalida la cache.

        Raises:
            ConfiguracionError: Si el código de área o los umbrales no son válidos
        """
        if default_area_code is not None:
            default_area_code = limpiar_codigo_area(default_area_code)
            if not 2 <= len(default_area_code) <= 4:
                raise ConfiguracionError("El código de área debe tener entre 2 y 4 dígitos")

        if umbrales_horas is not None:
            if not umbrales_horas or any(h <= 0 for h in umbrales_horas):
                raise ConfiguracionError("Los umbrales deben ser horas positivas")

        self.repo.actualizar_configuracion(
            default_area_code=default_area_code,
            umbrales_horas=umbrales_horas,
            notificaciones_activas=notificaciones_activas,
            updated_by=updated_by,
        )
        self.cache.invalidar()
        logger.info(f"Configuración actualizada por {updated_by}")
        return self.cache.obtener(self.session)


# Cache compartida por la API y el proceso en background
configuracion_cache = ConfiguracionCache()


def get_configuracion_cache() -> ConfiguracionCache:
    """Dependency de FastAPI con la cache compartida."""
    return configuracion_cache
