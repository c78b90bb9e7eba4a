"""
Funciones de formateo para mensajes y respuestas.
"""
from datetime import date
from typing import Any, Optional

from app.utils.constants import MESES_ES


def formatear_fecha_larga(fecha: Optional[date]) -> str:
    """
    Formatea una fecha al estilo es-AR.

    Args:
        fecha: Fecha a formatear

    Returns:
        Texto como "19 de febrero de 2026", o '' si no hay fecha
    """
    if not fecha:
        return ""
    return f"{fecha.day} de {MESES_ES[fecha.month - 1]} de {fecha.year}"


def completar_plantilla(plantilla: Optional[str], cirugia: Any) -> str:
    """
    Reemplaza los placeholders de una plantilla con datos de la cirugía.

    Placeholders: {nombre} {fecha} {medico} {obra_social} {dni}
    """
    if not plantilla:
        return ""
    valores = {
        "{nombre}": cirugia.nombre or "",
        "{fecha}": formatear_fecha_larga(cirugia.fecha_cirugia),
        "{medico}": cirugia.medico or "",
        "{obra_social}": cirugia.obra_social or "",
        "{dni}": cirugia.dni or "",
    }
    texto = plantilla
    for clave, valor in valores.items():
        texto = texto.replace(clave, valor)
    return texto


def formatear_horas(horas: float) -> str:
    """Formatea horas restantes: '72h', '1h 30m'."""
    total_min = int(round(horas * 60))
    h, m = divmod(total_min, 60)
    if m == 0:
        return f"{h}h"
    return f"{h}h {m}m"

