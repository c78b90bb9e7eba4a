"""
Servicio de Estados de Cirugía.

Circuito normal:
    LILA --documentación recibida--> AMARILLO --autorizar--> VERDE
    VERDE --paciente confirma--> AZUL
Desde LILA, AMARILLO o VERDE se puede marcar un problema (ROJO).
La intervención manual mueve a cualquier estado.

La tabla de transiciones es orientativa: una acción fuera de secuencia
se aplica igual (al estado destino de la acción) pero queda registrada
como fuera_de_secuencia y con un warning en el log.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Tuple
import logging

from sqlmodel import Session

from app.core.exceptions import CirugiaNotFoundError
from app.models.cirugia import Cirugia
from app.models.evento_cirugia import EventoCirugia
from app.models.enums import (
    AccionCirugiaEnum,
    AusenteEnum,
    EstadoCirugiaEnum,
    TipoPlantillaEnum,
    ESTADOS_NO_TERMINALES,
)
from app.repositories.cirugia_repo import CirugiaRepository
from app.services.whatsapp_service import MensajeriaService

logger = logging.getLogger("gestion_cirugias.estados")


TRANSICIONES: Dict[Tuple[EstadoCirugiaEnum, AccionCirugiaEnum], EstadoCirugiaEnum] = {
    (EstadoCirugiaEnum.LILA, AccionCirugiaEnum.DOCUMENTACION_RECIBIDA): EstadoCirugiaEnum.AMARILLO,
    (EstadoCirugiaEnum.AMARILLO, AccionCirugiaEnum.AUTORIZAR): EstadoCirugiaEnum.VERDE,
    (EstadoCirugiaEnum.VERDE, AccionCirugiaEnum.CONFIRMAR_ASISTENCIA): EstadoCirugiaEnum.AZUL,
    **{
        (estado, AccionCirugiaEnum.MARCAR_PROBLEMA): EstadoCirugiaEnum.ROJO
        for estado in ESTADOS_NO_TERMINALES
    },
}

# Estado al que lleva cada acción cuando no está en la tabla
DESTINO_ACCION: Dict[AccionCirugiaEnum, EstadoCirugiaEnum] = {
    AccionCirugiaEnum.DOCUMENTACION_RECIBIDA: EstadoCirugiaEnum.AMARILLO,
    AccionCirugiaEnum.AUTORIZAR: EstadoCirugiaEnum.VERDE,
    AccionCirugiaEnum.CONFIRMAR_ASISTENCIA: EstadoCirugiaEnum.AZUL,
    AccionCirugiaEnum.MARCAR_PROBLEMA: EstadoCirugiaEnum.ROJO,
}

# Mensaje que se envía al paciente después de la transición
PLANTILLA_POR_ACCION: Dict[AccionCirugiaEnum, TipoPlantillaEnum] = {
    AccionCirugiaEnum.AUTORIZAR: TipoPlantillaEnum.AUTORIZACION,
    AccionCirugiaEnum.CONFIRMAR_ASISTENCIA: TipoPlantillaEnum.INDICACIONES,
}


@dataclass
class ResultadoTransicion:
    """Resultado de una acción sobre el estado de una cirugía."""
    exito: bool
    mensaje: str
    cirugia_id: str
    from_status: Optional[EstadoCirugiaEnum] = None
    to_status: Optional[EstadoCirugiaEnum] = None
    fuera_de_secuencia: bool = False
    mensaje_enviado: Optional[bool] = None


def siguiente_estado(
    estado: EstadoCirugiaEnum,
    accion: AccionCirugiaEnum
) -> Tuple[EstadoCirugiaEnum, bool]:
    """
    Estado destino de una acción.

    Returns:
        (estado destino, fuera_de_secuencia)
    """
    destino = TRANSICIONES.get((estado, accion))
    if destino is not None:
        return destino, False
    return DESTINO_ACCION[accion], True


class EstadoService:
    """
    Servicio para las transiciones de estado.

    Maneja:
    - Documentación recibida, autorización, confirmación y problema
    - Intervención manual
    - Resultado de la cirugía (columna Ausente)
    """

    def __init__(self, session: Session, mensajeria: Optional[MensajeriaService] = None):
        self.session = session
        self.repo = CirugiaRepository(session)
        self.mensajeria = mensajeria

    def _registrar_evento(
        self,
        cirugia: Cirugia,
        accion: AccionCirugiaEnum,
        desde: Optional[EstadoCirugiaEnum],
        hasta: EstadoCirugiaEnum,
        operador: str,
        detalles: Optional[str] = None,
        fuera_de_secuencia: bool = False,
        metadata: Optional[dict] = None,
    ) -> EventoCirugia:
        evento = EventoCirugia(
            cirugia_id=cirugia.id,
            accion=accion,
            from_status=desde,
            to_status=hasta,
            details=detalles,
            performed_by=operador,
            fuera_de_secuencia=fuera_de_secuencia,
        )
        if metadata:
            evento.set_metadata(metadata)
        self.session.add(evento)
        return evento

    def _aplicar_efectos(
        self,
        cirugia: Cirugia,
        accion: AccionCirugiaEnum,
        operador: str,
        detalles: Optional[str],
        archivo: Optional[dict],
    ) -> None:
        ahora = datetime.utcnow()
        if accion == AccionCirugiaEnum.DOCUMENTACION_RECIBIDA:
            if archivo:
                cirugia.agregar_archivo({**archivo, "recibido_at": ahora.isoformat()})
            cirugia.documentacion_recibida_at = ahora
        elif accion == AccionCirugiaEnum.AUTORIZAR:
            cirugia.autorizado_at = ahora
            cirugia.operador = operador
        elif accion == AccionCirugiaEnum.CONFIRMAR_ASISTENCIA:
            cirugia.confirmado_at = ahora
        elif accion == AccionCirugiaEnum.MARCAR_PROBLEMA:
            cirugia.notas = detalles

    def aplicar_accion(
        self,
        cirugia_id: str,
        accion: AccionCirugiaEnum,
        operador: str = "bot",
        detalles: Optional[str] = None,
        archivo: Optional[dict] = None,
    ) -> ResultadoTransicion:
        """
        Aplica una acción del circuito normal.

        Args:
            cirugia_id: ID de la cirugía
            accion: Acción a aplicar (no INTERVENCION_MANUAL)
            operador: Usuario o "bot"
            detalles: Texto libre para el historial
            archivo: Datos del archivo recibido (solo documentación)

        Returns:
            ResultadoTransicion. Si la cirugía no existe, exito=False.
        """
        if accion not in DESTINO_ACCION:
            raise ValueError(f"Acción {accion.value} no se aplica con aplicar_accion")

        cirugia = self.repo.obtener_por_id(cirugia_id)
        if not cirugia:
            return ResultadoTransicion(False, f"Cirugía {cirugia_id} no encontrada", cirugia_id)

        desde = cirugia.status
        hasta, fuera_de_secuencia = siguiente_estado(desde, accion)

        if fuera_de_secuencia:
            logger.warning(
                f"Cirugía {cirugia_id}: acción {accion.value} fuera de secuencia "
                f"desde {desde.value}, pasa a {hasta.value}"
            )

        self._aplicar_efectos(cirugia, accion, operador, detalles, archivo)
        cirugia.status = hasta
        cirugia.updated_at = datetime.utcnow()
        self.session.add(cirugia)
        self._registrar_evento(
            cirugia, accion, desde, hasta, operador,
            detalles=detalles,
            fuera_de_secuencia=fuera_de_secuencia,
            metadata=archivo,
        )
        self.session.commit()
        self.session.refresh(cirugia)

        logger.info(f"Cirugía {cirugia_id}: {desde.value} -> {hasta.value} ({accion.value}, {operador})")

        resultado = ResultadoTransicion(
            True,
            f"Estado actualizado a {hasta.value}",
            cirugia_id,
            from_status=desde,
            to_status=hasta,
            fuera_de_secuencia=fuera_de_secuencia,
        )

        tipo = PLANTILLA_POR_ACCION.get(accion)
        if tipo is not None and self.mensajeria is not None:
            # Un envío fallido no deshace la transición
            envio = self.mensajeria.enviar_plantilla(cirugia, tipo)
            resultado.mensaje_enviado = envio.success
            if not envio.success:
                resultado.mensaje += f" (mensaje no enviado: {envio.error})"

        return resultado

    def marcar_documentacion_recibida(
        self,
        cirugia_id: str,
        archivo: Optional[dict] = None,
        operador: str = "bot"
    ) -> ResultadoTransicion:
        return self.aplicar_accion(
            cirugia_id, AccionCirugiaEnum.DOCUMENTACION_RECIBIDA, operador,
            detalles="Documentación recibida", archivo=archivo,
        )

    def autorizar(self, cirugia_id: str, operador: str) -> ResultadoTransicion:
        return self.aplicar_accion(
            cirugia_id, AccionCirugiaEnum.AUTORIZAR, operador, detalles="Autorizada"
        )

    def confirmar_asistencia(self, cirugia_id: str, operador: str = "bot") -> ResultadoTransicion:
        return self.aplicar_accion(
            cirugia_id, AccionCirugiaEnum.CONFIRMAR_ASISTENCIA, operador,
            detalles="Paciente confirmó asistencia",
        )

    def marcar_problema(self, cirugia_id: str, motivo: str, operador: str) -> ResultadoTransicion:
        return self.aplicar_accion(
            cirugia_id, AccionCirugiaEnum.MARCAR_PROBLEMA, operador, detalles=motivo
        )

    def intervencion_manual(
        self,
        cirugia_id: str,
        nuevo_estado: EstadoCirugiaEnum,
        motivo: str,
        operador: str,
    ) -> ResultadoTransicion:
        """
        Cambia el estado sin pasar por la tabla de transiciones.

        Args:
            cirugia_id: ID de la cirugía
            nuevo_estado: Cualquier estado
            motivo: Motivo del cambio, queda en el historial
            operador: Usuario que interviene

        Returns:
            ResultadoTransicion
        """
        cirugia = self.repo.obtener_por_id(cirugia_id)
        if not cirugia:
            return ResultadoTransicion(False, f"Cirugía {cirugia_id} no encontrada", cirugia_id)

        desde = cirugia.status
        cirugia.status = nuevo_estado
        cirugia.operador = operador
        cirugia.updated_at = datetime.utcnow()
        self.session.add(cirugia)
        self._registrar_evento(
            cirugia, AccionCirugiaEnum.INTERVENCION_MANUAL, desde, nuevo_estado, operador,
            detalles=f"Intervención manual: {motivo}",
        )
        self.session.commit()

        logger.info(
            f"Cirugía {cirugia_id}: intervención manual {desde.value} -> {nuevo_estado.value} por {operador}"
        )
        return ResultadoTransicion(
            True,
            f"Estado cambiado manualmente a {nuevo_estado.value}",
            cirugia_id,
            from_status=desde,
            to_status=nuevo_estado,
        )

    def actualizar_ausente(self, cirugia_id: str, valor: Optional[AusenteEnum]) -> Cirugia:
        """
        Registra el resultado de la cirugía.

        Args:
            cirugia_id: ID de la cirugía
            valor: None (pendiente), REALIZADA o SUSPENDIDA

        Raises:
            CirugiaNotFoundError: Si la cirugía no existe
        """
        cirugia = self.repo.obtener_por_id(cirugia_id)
        if not cirugia:
            raise CirugiaNotFoundError(cirugia_id)

        cirugia.ausente = valor.value if valor is not None else None
        cirugia.updated_at = datetime.utcnow()
        return self.repo.guardar(cirugia)

    def actualizar_exclusion(self, cirugia_id: str, excluido: bool, operador: str = "admin") -> Cirugia:
        """
        Saca la cirugía (o la devuelve) de listados, estadísticas y avisos.

        La reimportación de la planilla no toca este valor.

        Raises:
            CirugiaNotFoundError: Si la cirugía no existe
        """
        cirugia = self.repo.obtener_por_id(cirugia_id)
        if not cirugia:
            raise CirugiaNotFoundError(cirugia_id)

        cirugia.excluido = excluido
        cirugia.operador = operador
        cirugia.updated_at = datetime.utcnow()
        logger.info(f"Cirugía {cirugia_id} {'excluida' if excluido else 'incluida'} por {operador}")
        return self.repo.guardar(cirugia)
