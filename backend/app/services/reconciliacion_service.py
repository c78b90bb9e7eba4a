"""
Servicio de Reconciliación de planillas quirúrgicas.

Toma las filas de la planilla, descarta las que no son cirugías
(bloques, módulos excluidos, datos incompletos), normaliza teléfonos y
decide contra lo ya guardado qué se inserta, qué se actualiza y qué
queda igual. La clave de una cirugía es (id_paciente, fecha_cirugia).

Ubicación: app/services/reconciliacion_service.py
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union
import logging

from sqlmodel import Session

from app.config import settings
from app.models.cirugia import Cirugia
from app.models.enums import ESTADO_INICIAL
from app.repositories.cirugia_repo import CirugiaRepository
from app.schemas.cirugia import FilaPlanilla
from app.utils.constants import CAMPOS_ACTUALIZABLES
from app.utils.telefonos import ResultadoTelefono, normalizar_telefono
from app.utils.validators import (
    parsear_fecha,
    parsear_id_paciente,
    tiene_prefijo_excluido,
    coincide_modulo_excluido,
    normalizar_ausente,
)

logger = logging.getLogger("gestion_cirugias.importacion")

Clave = Tuple[int, date]
FilaEntrada = Union[FilaPlanilla, Dict[str, Any]]


@dataclass
class FilaRechazada:
    fila: int
    nombre: str
    motivo: str


@dataclass
class ActualizacionPendiente:
    """Cirugía existente y los campos que la planilla trae distintos."""
    cirugia: Cirugia
    cambios: Dict[str, Any]
    fila: int


@dataclass
class InsercionPendiente:
    cirugia: Cirugia
    fila: int


@dataclass
class ResultadoReconciliacion:
    """Plan de escritura para una planilla. No modifica nada por sí mismo."""
    to_insert: List[InsercionPendiente] = field(default_factory=list)
    to_update: List[ActualizacionPendiente] = field(default_factory=list)
    rejected: List[FilaRechazada] = field(default_factory=list)
    sin_cambios: List[Cirugia] = field(default_factory=list)
    duplicados: int = 0
    telefonos_validos: int = 0
    telefonos_invalidos: int = 0
    detalles_telefonos: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total_aceptadas(self) -> int:
        return len(self.to_insert) + len(self.to_update) + len(self.sin_cambios)


@dataclass
class ResultadoImportacion:
    insertados: int = 0
    actualizados: int = 0
    sin_cambios: int = 0
    duplicados: int = 0
    rechazados: List[FilaRechazada] = field(default_factory=list)
    errores: List[Dict[str, Any]] = field(default_factory=list)
    telefonos: Dict[str, int] = field(default_factory=dict)


# ============================================
# RECONCILIACIÓN (sin acceso a base de datos)
# ============================================

def _texto_o_none(valor: str) -> Optional[str]:
    return valor or None


def _motivo_rechazo(
    fila: FilaPlanilla,
    fecha: Optional[date],
    id_paciente: Optional[int],
    prefijos_excluidos: Sequence[str],
    modulos_excluidos: Sequence[str],
) -> Optional[str]:
    prefijo = tiene_prefijo_excluido(fila.nombre, prefijos_excluidos)
    if prefijo:
        return f"Nombre comienza con '{prefijo}'"

    modulo = coincide_modulo_excluido(fila.modulo, fila.descripcion, modulos=modulos_excluidos)
    if modulo:
        return f"Módulo excluido: {modulo}"

    if not fila.nombre:
        return "Falta el nombre"
    if fecha is None:
        return f"Fecha inválida: '{fila.fecha}'"
    if id_paciente is None:
        return f"Id de paciente inválido: '{fila.id_paciente}'"
    return None


def _datos_cirugia(fila: FilaPlanilla, tel: ResultadoTelefono) -> Dict[str, Any]:
    """Campos descriptivos de la cirugía tal como los trae la planilla."""
    return {
        "nombre": fila.nombre,
        "dni": _texto_o_none(fila.dni),
        "obra_social": _texto_o_none(fila.obra_social),
        # Sin teléfono canónico se guarda el texto original para verlo en pantalla
        "telefono": tel.normalizado if tel.valido else tel.original,
        "telefono_original": tel.original,
        "telefono_valido": tel.valido,
        "telefono_nota": tel.nota,
        "modulo": _texto_o_none(fila.modulo),
        "descripcion": _texto_o_none(fila.descripcion),
        "medico": _texto_o_none(fila.medico),
        "grupo_agendas": _texto_o_none(fila.grupo_agendas),
        "motivo": _texto_o_none(fila.motivo),
        "ausente": normalizar_ausente(fila.ausente),
    }


def reconciliar(
    filas: Iterable[FilaEntrada],
    existentes: Dict[Clave, Cirugia],
    default_area_code: str = "",
    prefijos_excluidos: Optional[Sequence[str]] = None,
    modulos_excluidos: Optional[Sequence[str]] = None,
) -> ResultadoReconciliacion:
    """
    Decide qué hacer con cada fila de la planilla.

    Args:
        filas: Filas de la planilla (FilaPlanilla o dict con alias)
        existentes: Cirugías ya guardadas, por clave
        default_area_code: Código de área para teléfonos sin él
        prefijos_excluidos: Prefijos de nombre que no son pacientes.
            Por defecto, settings.PREFIJOS_NOMBRE_EXCLUIDOS
        modulos_excluidos: Módulos que no son cirugías.
            Por defecto, settings.MODULOS_EXCLUIDOS

    Returns:
        ResultadoReconciliacion. Las cirugías existentes no se modifican:
        los cambios quedan en ActualizacionPendiente.cambios.
    """
    if prefijos_excluidos is None:
        prefijos_excluidos = settings.PREFIJOS_NOMBRE_EXCLUIDOS
    if modulos_excluidos is None:
        modulos_excluidos = settings.MODULOS_EXCLUIDOS

    resultado = ResultadoReconciliacion()
    aceptadas: Dict[Clave, Tuple[int, FilaPlanilla, ResultadoTelefono]] = {}

    for posicion, entrada in enumerate(filas, start=1):
        fila = entrada if isinstance(entrada, FilaPlanilla) else FilaPlanilla.model_validate(entrada)
        numero = fila.fila or posicion

        fecha = parsear_fecha(fila.fecha)
        id_paciente = parsear_id_paciente(fila.id_paciente)

        motivo = _motivo_rechazo(fila, fecha, id_paciente, prefijos_excluidos, modulos_excluidos)
        if motivo:
            resultado.rejected.append(FilaRechazada(numero, fila.nombre, motivo))
            continue

        clave = (id_paciente, fecha)
        if clave in aceptadas:
            # La misma cirugía repetida en la planilla: queda la última
            resultado.duplicados += 1
            logger.debug(f"Fila {numero} repite la clave {clave} de la fila {aceptadas[clave][0]}")

        aceptadas[clave] = (numero, fila, normalizar_telefono(fila.telefono, default_area_code))

    for clave, (numero, fila, tel) in aceptadas.items():
        if tel.valido:
            resultado.telefonos_validos += 1
        else:
            resultado.telefonos_invalidos += 1
        resultado.detalles_telefonos.append({
            "row": numero,
            "nombre": fila.nombre,
            **tel.to_dict(),
        })

        datos = _datos_cirugia(fila, tel)
        existente = existentes.get(clave)

        if existente is None:
            nueva = Cirugia(
                id_paciente=clave[0],
                fecha_cirugia=clave[1],
                status=ESTADO_INICIAL,
                **datos,
            )
            resultado.to_insert.append(InsercionPendiente(nueva, numero))
            continue

        cambios = {
            campo: datos[campo]
            for campo in CAMPOS_ACTUALIZABLES
            if getattr(existente, campo) != datos[campo]
        }
        if cambios:
            resultado.to_update.append(ActualizacionPendiente(existente, cambios, numero))
        else:
            resultado.sin_cambios.append(existente)

    return resultado


# ============================================
# IMPORTACIÓN
# ============================================

class ImportacionService:
    """
    Servicio de importación de planillas.

    Maneja:
    - Vista previa (qué se insertaría, actualizaría o rechazaría)
    - Importación con escritura por fila
    """

    def __init__(
        self,
        session: Session,
        default_area_code: Optional[str] = None,
        prefijos_excluidos: Optional[Sequence[str]] = None,
        modulos_excluidos: Optional[Sequence[str]] = None,
    ):
        self.session = session
        self.repo = CirugiaRepository(session)
        self.default_area_code = default_area_code or settings.DEFAULT_AREA_CODE
        self.prefijos_excluidos = prefijos_excluidos
        self.modulos_excluidos = modulos_excluidos

    def _reconciliar(self, filas: List[FilaEntrada], default_area_code: Optional[str]) -> ResultadoReconciliacion:
        parseadas = [
            f if isinstance(f, FilaPlanilla) else FilaPlanilla.model_validate(f)
            for f in filas
        ]
        claves = [
            (parsear_id_paciente(f.id_paciente), parsear_fecha(f.fecha))
            for f in parseadas
        ]
        existentes = self.repo.buscar_por_claves(
            c for c in claves if c[0] is not None and c[1] is not None
        )
        return reconciliar(
            parseadas,
            existentes,
            default_area_code=default_area_code or self.default_area_code,
            prefijos_excluidos=self.prefijos_excluidos,
            modulos_excluidos=self.modulos_excluidos,
        )

    def previsualizar(self, filas: List[FilaEntrada], default_area_code: Optional[str] = None) -> ResultadoReconciliacion:
        """
        Reconcilia sin escribir nada.

        Sirve para revisar teléfonos inválidos y filas rechazadas antes
        de importar.
        """
        return self._reconciliar(filas, default_area_code)

    def importar(self, filas: List[FilaEntrada], default_area_code: Optional[str] = None) -> ResultadoImportacion:
        """
        Importa la planilla.

        Las filas nuevas entran en estado LILA. Las existentes conservan
        estado e historial y solo refrescan los datos descriptivos.
        Un error en una fila no afecta a las demás.

        Args:
            filas: Filas de la planilla
            default_area_code: Código de área para esta importación

        Returns:
            ResultadoImportacion
        """
        plan = self._reconciliar(filas, default_area_code)

        resultado = ResultadoImportacion(
            sin_cambios=len(plan.sin_cambios),
            duplicados=plan.duplicados,
            rechazados=plan.rejected,
            telefonos={
                "validos": plan.telefonos_validos,
                "invalidos": plan.telefonos_invalidos,
            },
        )

        inserciones = self.repo.insertar_varias([p.cirugia for p in plan.to_insert])
        for pendiente, fila in zip(plan.to_insert, inserciones):
            if not fila.exito:
                resultado.errores.append({
                    "fila": pendiente.fila, "nombre": pendiente.cirugia.nombre, "error": fila.error
                })
            elif fila.accion == "actualizada":
                resultado.actualizados += 1
            else:
                resultado.insertados += 1

        for pendiente in plan.to_update:
            for campo, valor in pendiente.cambios.items():
                setattr(pendiente.cirugia, campo, valor)
        actualizaciones = self.repo.actualizar_varias([p.cirugia for p in plan.to_update])
        for pendiente, fila in zip(plan.to_update, actualizaciones):
            if fila.exito:
                resultado.actualizados += 1
            else:
                resultado.errores.append({
                    "fila": pendiente.fila, "nombre": pendiente.cirugia.nombre, "error": fila.error
                })

        logger.info(
            f"Importación: {resultado.insertados} nuevas, {resultado.actualizados} actualizadas, "
            f"{resultado.sin_cambios} sin cambios, {len(resultado.rechazados)} rechazadas, "
            f"{len(resultado.errores)} con error"
        )
        if plan.telefonos_invalidos:
            logger.warning(f"{plan.telefonos_invalidos} teléfonos no se pudieron normalizar")

        return resultado
