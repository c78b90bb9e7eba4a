"""
Configuración de logging del sistema.

Todos los módulos escriben bajo el logger raíz 'gestion_cirugias'
(ej: 'gestion_cirugias.importacion', 'gestion_cirugias.notificaciones').
"""
import logging
from typing import Optional

from app.config import settings

LOGGER_RAIZ = 'gestion_cirugias'

# Librerías que hablan demasiado en nivel INFO
LOGGERS_RUIDOSOS = ('urllib3', 'sqlalchemy.engine')


def configurar_logging(nivel: Optional[str] = None) -> logging.Logger:
    """
    Configura y retorna el logger principal del sistema.

    Args:
        nivel: Nivel de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Si no se indica se usa settings.LOG_LEVEL.

    Returns:
        Logger configurado
    """
    if nivel is None:
        nivel = settings.LOG_LEVEL

    nivel_num = getattr(logging, nivel.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_RAIZ)
    logger.setLevel(nivel_num)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(settings.LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
        )
        logger.addHandler(handler)

    if not settings.DEBUG:
        for nombre in LOGGERS_RUIDOSOS:
            logging.getLogger(nombre).setLevel(logging.WARNING)

    return logger


logger = configurar_logging()
