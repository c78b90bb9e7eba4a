"""
Utilidades compartidas del sistema.
"""
from app.utils.telefonos import (
    normalizar_telefono,
    normalizar_telefonos_masivo,
    detectar_codigo_area,
    es_telefono_canonico,
)
from app.utils.validators import parsear_fecha, parsear_id_paciente
from app.utils.formatters import formatear_fecha_larga, completar_plantilla
from app.utils.logger import configurar_logging, logger

__all__ = [
    "normalizar_telefono",
    "normalizar_telefonos_masivo",
    "detectar_codigo_area",
    "es_telefono_canonico",
    "parsear_fecha",
    "parsear_id_paciente",
    "formatear_fecha_larga",
    "completar_plantilla",
    "configurar_logging",
    "logger",
]
