"""
Funciones de validación y conversión de celdas de planilla.

Solo cubren las conversiones que la reconciliación necesita para comparar
filas: fecha de cirugía, id de paciente y los filtros de exclusión.
"""
import re
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional

# Día 0 del sistema de fechas de Excel (con el bug del 29/02/1900)
EXCEL_EPOCH = date(1899, 12, 30)

_ISO = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$')
_DMY = re.compile(r'^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})$')
_DMY_CORTO = re.compile(r'^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2})$')
_YMD = re.compile(r'^(\d{4})[/\-.](\d{1,2})[/\-.](\d{1,2})$')
_CON_HORA = re.compile(r'^(\S+)[\sT]\d{1,2}:\d{2}(:\d{2})?')


def limpiar_texto(valor: Any) -> str:
    """Convierte una celda a texto sin espacios extremos."""
    if valor is None:
        return ""
    if isinstance(valor, float) and valor.is_integer():
        valor = int(valor)
    return str(valor).strip()


def _armar_fecha(anio: int, mes: int, dia: int) -> Optional[date]:
    try:
        return date(anio, mes, dia)
    except ValueError:
        return None


def parsear_fecha(valor: Any) -> Optional[date]:
    """
    Convierte la celda de fecha de la planilla a date.

    Acepta date/datetime, número de serie de Excel, YYYY-MM-DD,
    DD/MM/YYYY, DD/MM/YY, YYYY/MM/DD y cualquiera de ellos seguido de hora.

    Returns:
        La fecha o None si no se pudo interpretar
    """
    if valor is None or valor == "":
        return None
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    if isinstance(valor, (int, float)) and not isinstance(valor, bool):
        if valor <= 0:
            return None
        return EXCEL_EPOCH + timedelta(days=int(valor))

    texto = str(valor).strip()
    con_hora = _CON_HORA.match(texto)
    if con_hora:
        texto = con_hora.group(1)

    m = _ISO.match(texto)
    if m:
        return _armar_fecha(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = _DMY.match(texto)
    if m:
        return _armar_fecha(int(m.group(3)), int(m.group(2)), int(m.group(1)))

    m = _DMY_CORTO.match(texto)
    if m:
        anio = int(m.group(3))
        anio += 1900 if anio > 50 else 2000
        return _armar_fecha(anio, int(m.group(2)), int(m.group(1)))

    m = _YMD.match(texto)
    if m:
        return _armar_fecha(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    return None


def parsear_entero_positivo(valor: Any) -> Optional[int]:
    """
    Convierte a entero positivo un valor leído de la planilla.

    Acepta 123, 123.0, "123" y "123.0". Cualquier otra cosa devuelve None.
    """
    if valor is None or isinstance(valor, bool):
        return None
    if isinstance(valor, int):
        return valor if valor > 0 else None
    if isinstance(valor, float):
        return int(valor) if valor.is_integer() and valor > 0 else None

    texto = str(valor).strip()
    if re.match(r'^\d+(\.0+)?$', texto):
        numero = int(texto.split('.')[0])
        return numero if numero > 0 else None
    return None


def parsear_id_paciente(valor: Any) -> Optional[int]:
    """Id de paciente como entero, o None si no es un entero positivo."""
    return parsear_entero_positivo(valor)


def tiene_prefijo_excluido(nombre: str, prefijos: Iterable[str]) -> Optional[str]:
    """
    Devuelve el prefijo excluido con el que empieza el nombre, si hay alguno.
    La comparación ignora mayúsculas y espacios extremos.
    """
    nombre_upper = (nombre or "").upper().strip()
    for prefijo in prefijos:
        if nombre_upper.startswith(prefijo.upper()):
            return prefijo
    return None


def coincide_modulo_excluido(*textos: Optional[str], modulos: Iterable[str]) -> Optional[str]:
    """
    Devuelve el módulo excluido contenido en alguno de los textos.

    Ej: "Fertilidad - Consulta" coincide con el módulo "Fertilidad".
    """
    modulos = list(modulos)
    for texto in textos:
        texto_lower = (texto or "").lower()
        if not texto_lower:
            continue
        for modulo in modulos:
            if modulo.lower() in texto_lower:
                return modulo
    return None


def normalizar_ausente(valor: Any) -> Optional[str]:
    """Celda Ausente: vacío -> None, cualquier otro valor -> texto recortado."""
    texto = limpiar_texto(valor)
    return texto or None
