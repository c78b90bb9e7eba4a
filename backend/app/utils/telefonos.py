"""
Normalización de teléfonos al formato WhatsApp Argentina.

Formato objetivo: 549 + código de área + número local (13 dígitos).
Ejemplo: 2645438114 -> 5492645438114

Las reglas se evalúan en orden fijo y gana la primera que resuelve el
número. Una regla puede además reescribir los dígitos para las reglas
siguientes (ej: el 0 troncal se quita aunque el número no quede completo).

Nunca lanza excepciones: un número que no se puede normalizar se informa
con valido=False y una nota que explica el motivo.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

from app.utils.constants import (
    PREFIJO_WHATSAPP_AR,
    LONGITUD_CANONICA,
    LONGITUD_NACIONAL,
    MINIMO_DIGITOS,
    PREFIJO_MOVIL,
    TABLAS_QUINCE_INTERNO,
    TABLAS_DETECCION_AREA,
)

NO_DIGITOS = re.compile(r"\D")


@dataclass(frozen=True)
class ResultadoTelefono:
    """Resultado de normalizar un teléfono."""
    original: str
    digitos: str
    normalizado: str
    valido: bool
    nota: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original": self.original,
            "normalized": self.normalizado,
            "valid": self.valido,
            "note": self.nota,
        }


class Salida(NamedTuple):
    """Decisión final de una regla."""
    normalizado: str
    valido: bool
    nota: str


# Una regla devuelve (Salida, dígitos) si resolvió el número,
# o (None, dígitos) para seguir con las reglas siguientes.
Transformacion = Callable[[str, str], Tuple[Optional[Salida], str]]


@dataclass(frozen=True)
class ReglaTelefono:
    nombre: str
    aplica: Callable[[str], bool]
    transforma: Transformacion


# ============================================
# TABLAS DE CÓDIGOS DE ÁREA
# ============================================

def quitar_quince_interno(digitos: str, tablas: Iterable[frozenset] = TABLAS_QUINCE_INTERNO) -> str:
    """
    Quita el 15 que aparece justo después de un código de área conocido.

    Ej: 264-15-5438114 -> 2645438114

    Recorre las tablas del código más corto al más largo y se queda con
    la primera coincidencia. Si no hay coincidencia devuelve los dígitos
    sin cambios.
    """
    for tabla in tablas:
        for codigo in tabla:
            resto = digitos[len(codigo):]
            if digitos.startswith(codigo) and resto.startswith(PREFIJO_MOVIL):
                return codigo + resto[len(PREFIJO_MOVIL):]
    return digitos


def detectar_codigo_area(digitos: str, tablas: Iterable[frozenset] = TABLAS_DETECCION_AREA) -> str:
    """
    Detecta el código de área de un número nacional.

    Args:
        digitos: Dígitos del número (código de área + número local)
        tablas: Tablas a recorrer, por defecto de 4 a 2 dígitos

    Returns:
        El código de área más largo que coincide, o '' si ninguno
    """
    for tabla in tablas:
        for codigo in tabla:
            if digitos.startswith(codigo):
                return codigo
    return ""


# ============================================
# REGLAS
# ============================================

def _con_area_por_defecto(local: str, area: str, etiqueta: str) -> Salida:
    if not area:
        return Salida(
            "", False,
            f"Empieza con {etiqueta} sin código de área. Se requiere código de área para normalizar."
        )
    completo = PREFIJO_WHATSAPP_AR + area + local
    if len(completo) != LONGITUD_CANONICA:
        return Salida(
            "", False,
            f"Empieza con {etiqueta}: con código de área {area} quedan {len(completo)} dígitos"
        )
    return Salida(completo, True, f"Reemplazado {etiqueta} con código de área {area}")


def _ya_normalizado(digitos: str, area: str) -> Tuple[Optional[Salida], str]:
    return Salida(digitos, True, "Ya normalizado"), digitos


def _agregar_nueve(digitos: str, area: str) -> Tuple[Optional[Salida], str]:
    return Salida(PREFIJO_WHATSAPP_AR + digitos[2:], True, "Agregado 9 después de 54"), digitos


def _quitar_cero_troncal(digitos: str, area: str) -> Tuple[Optional[Salida], str]:
    digitos = digitos[1:]
    if digitos.startswith(PREFIJO_MOVIL):
        return _con_area_por_defecto(digitos[len(PREFIJO_MOVIL):], area, "015"), digitos

    digitos = quitar_quince_interno(digitos)
    if len(digitos) == LONGITUD_NACIONAL:
        return Salida(PREFIJO_WHATSAPP_AR + digitos, True, "Quitado 0 inicial, agregado 549"), digitos
    # Sigue con el 0 (y el 15 interno) ya quitados
    return None, digitos


def _movil_sin_area(digitos: str, area: str) -> Tuple[Optional[Salida], str]:
    return _con_area_por_defecto(digitos[len(PREFIJO_MOVIL):], area, "15"), digitos


def _agregar_prefijo(digitos: str, area: str) -> Tuple[Optional[Salida], str]:
    return (
        Salida(PREFIJO_WHATSAPP_AR + digitos, True, "Agregado 549 (10 dígitos con código de área)"),
        digitos,
    )


def _quitar_quince_once_digitos(digitos: str, area: str) -> Tuple[Optional[Salida], str]:
    limpio = quitar_quince_interno(digitos)
    if len(limpio) == LONGITUD_NACIONAL:
        return Salida(PREFIJO_WHATSAPP_AR + limpio, True, "Quitado 15 interno, agregado 549"), digitos
    return None, digitos


def _ya_normalizado_13(digitos: str, area: str) -> Tuple[Optional[Salida], str]:
    return Salida(digitos, True, "Ya normalizado (13 dígitos)"), digitos


REGLAS_TELEFONO: Tuple[ReglaTelefono, ...] = (
    ReglaTelefono(
        "internacional_completo",
        lambda d: d.startswith(PREFIJO_WHATSAPP_AR) and len(d) == LONGITUD_CANONICA,
        _ya_normalizado,
    ),
    ReglaTelefono(
        "internacional_sin_nueve",
        lambda d: d.startswith("54") and not d.startswith(PREFIJO_WHATSAPP_AR) and len(d) == 12,
        _agregar_nueve,
    ),
    ReglaTelefono(
        "cero_troncal",
        lambda d: d.startswith("0"),
        _quitar_cero_troncal,
    ),
    ReglaTelefono(
        "movil_sin_codigo_area",
        lambda d: d.startswith(PREFIJO_MOVIL) and 8 <= len(d) <= 10,
        _movil_sin_area,
    ),
    ReglaTelefono(
        "nacional_10_digitos",
        lambda d: len(d) == LONGITUD_NACIONAL,
        _agregar_prefijo,
    ),
    ReglaTelefono(
        "quince_interno_11_digitos",
        lambda d: len(d) == 11,
        _quitar_quince_once_digitos,
    ),
    ReglaTelefono(
        "internacional_13_digitos",
        lambda d: len(d) == LONGITUD_CANONICA and d.startswith(PREFIJO_WHATSAPP_AR),
        _ya_normalizado_13,
    ),
)


# ============================================
# API PÚBLICA
# ============================================

def _texto_original(raw: Any) -> str:
    if raw is None:
        return ""
    # Excel entrega los números como float (2645438114.0)
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    return str(raw).strip()


def limpiar_codigo_area(codigo: Optional[str]) -> str:
    """Deja solo los dígitos del código de área y quita el 0 inicial."""
    if not codigo:
        return ""
    return NO_DIGITOS.sub("", str(codigo)).lstrip("0")


def normalizar_telefono(raw: Any, default_area_code: Optional[str] = "") -> ResultadoTelefono:
    """
    Normaliza un teléfono al formato WhatsApp Argentina: 549XXXXXXXXXX.

    Args:
        raw: Teléfono en cualquier formato (espacios, guiones, paréntesis,
            0 troncal, 15 de celular, con o sin código de país)
        default_area_code: Código de área a usar cuando el número viene sin
            él (ej: '264' para San Juan)

    Returns:
        ResultadoTelefono. Si valido es False, normalizado no debe usarse
        para enviar mensajes.
    """
    original = _texto_original(raw)
    digitos_originales = NO_DIGITOS.sub("", original)
    area = limpiar_codigo_area(default_area_code)

    if len(digitos_originales) < MINIMO_DIGITOS:
        return ResultadoTelefono(original, digitos_originales, "", False, "Número muy corto o vacío")

    digitos = digitos_originales
    for regla in REGLAS_TELEFONO:
        if not regla.aplica(digitos):
            continue
        salida, digitos = regla.transforma(digitos, area)
        if salida is not None:
            return ResultadoTelefono(original, digitos_originales, *salida)

    return ResultadoTelefono(
        original,
        digitos_originales,
        digitos if len(digitos) >= LONGITUD_NACIONAL else "",
        False,
        f"Formato no reconocido ({len(digitos)} dígitos)",
    )


def es_telefono_canonico(telefono: Optional[str]) -> bool:
    """True si el teléfono ya está en formato 549 + 10 dígitos."""
    return (
        bool(telefono)
        and telefono.isdigit()
        and len(telefono) == LONGITUD_CANONICA
        and telefono.startswith(PREFIJO_WHATSAPP_AR)
    )


@dataclass
class ResultadoMasivo:
    """Registros decorados y resumen de una normalización masiva."""
    records: List[Dict[str, Any]] = field(default_factory=list)
    detalles: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.detalles)

    @property
    def validos(self) -> int:
        return sum(1 for d in self.detalles if d["valid"])

    @property
    def invalidos(self) -> int:
        return self.total - self.validos

    def resumen(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "valid": self.validos,
            "invalid": self.invalidos,
            "details": self.detalles,
        }


def normalizar_telefonos_masivo(
    records: List[Dict[str, Any]],
    phone_field: str = "telefono",
    default_area_code: Optional[str] = "",
) -> ResultadoMasivo:
    """
    Normaliza el teléfono de cada registro.

    Los registros de entrada no se modifican: se devuelven copias con los
    campos _telefono_normalizado, _telefono_original, _telefono_valido y
    _telefono_nota.
    """
    resultado = ResultadoMasivo()

    for indice, record in enumerate(records, start=1):
        tel = normalizar_telefono(record.get(phone_field) or "", default_area_code)

        resultado.detalles.append({
            "row": indice,
            "nombre": record.get("nombre") or record.get("Nombre") or record.get("name") or "",
            "original": tel.original,
            "normalized": tel.normalizado,
            "valid": tel.valido,
            "note": tel.nota,
        })
        resultado.records.append({
            **record,
            "_telefono_normalizado": tel.normalizado,
            "_telefono_original": tel.original,
            "_telefono_valido": tel.valido,
            "_telefono_nota": tel.nota,
        })

    return resultado
