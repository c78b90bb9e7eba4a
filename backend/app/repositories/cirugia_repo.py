"""
Repository de Cirugía.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select, func

from app.repositories.base import BaseRepository
from app.models.cirugia import Cirugia
from app.models.notificacion import NotificacionCirugia
from app.models.enums import EstadoCirugiaEnum, FiltroAusenteEnum, AusenteEnum
from app.utils.constants import CAMPOS_ACTUALIZABLES

logger = logging.getLogger("gestion_cirugias.repositorio")

# SQLite limita la cantidad de parámetros por consulta
TAMANIO_LOTE = 500

Clave = Tuple[int, date]


@dataclass
class ResultadoFila:
    """Resultado de persistir una cirugía dentro de una operación masiva."""
    exito: bool
    clave: Clave
    accion: str  # "insertada" | "actualizada"
    cirugia_id: Optional[str] = None
    error: Optional[str] = None


class CirugiaRepository(BaseRepository[Cirugia]):
    """Repository para operaciones de cirugías."""

    def __init__(self, session: Session):
        super().__init__(session, Cirugia)

    # ============================================
    # BÚSQUEDAS
    # ============================================

    def obtener_por_clave(self, id_paciente: int, fecha_cirugia: date) -> Optional[Cirugia]:
        query = select(Cirugia).where(
            Cirugia.id_paciente == id_paciente,
            Cirugia.fecha_cirugia == fecha_cirugia,
        )
        return self.session.exec(query).first()

    def buscar_por_claves(self, claves: Iterable[Clave]) -> Dict[Clave, Cirugia]:
        """
        Busca las cirugías existentes para un conjunto de claves.

        Args:
            claves: Pares (id_paciente, fecha_cirugia)

        Returns:
            Diccionario clave -> cirugía, solo con las claves que existen
        """
        buscadas = set(claves)
        if not buscadas:
            return {}

        ids = sorted({id_paciente for id_paciente, _ in buscadas})
        encontradas: Dict[Clave, Cirugia] = {}
        for inicio in range(0, len(ids), TAMANIO_LOTE):
            lote = ids[inicio:inicio + TAMANIO_LOTE]
            query = select(Cirugia).where(Cirugia.id_paciente.in_(lote))
            for cirugia in self.session.exec(query).all():
                if cirugia.clave in buscadas:
                    encontradas[cirugia.clave] = cirugia
        return encontradas

    def listar(
        self,
        status: Optional[EstadoCirugiaEnum] = None,
        desde: Optional[date] = None,
        hasta: Optional[date] = None,
        ausente: FiltroAusenteEnum = FiltroAusenteEnum.PENDIENTES,
        incluir_excluidas: bool = False,
        limite: int = 500,
    ) -> List[Cirugia]:
        """
        Lista cirugías ordenadas por fecha.

        Args:
            status: Filtrar por estado
            desde: Fecha mínima (inclusive)
            hasta: Fecha máxima (inclusive)
            ausente: pending, completed, suspended, history o all
            incluir_excluidas: Incluir filas marcadas como excluidas
            limite: Máximo de registros

        Returns:
            Lista de cirugías
        """
        query = select(Cirugia)

        if status is not None:
            query = query.where(Cirugia.status == status)
        if desde is not None:
            query = query.where(Cirugia.fecha_cirugia >= desde)
        if hasta is not None:
            query = query.where(Cirugia.fecha_cirugia <= hasta)
        if not incluir_excluidas:
            query = query.where(Cirugia.excluido == False)  # noqa: E712

        if ausente == FiltroAusenteEnum.PENDIENTES:
            query = query.where(Cirugia.ausente == None)  # noqa: E711
        elif ausente == FiltroAusenteEnum.REALIZADAS:
            query = query.where(Cirugia.ausente == AusenteEnum.REALIZADA.value)
        elif ausente == FiltroAusenteEnum.SUSPENDIDAS:
            query = query.where(Cirugia.ausente == AusenteEnum.SUSPENDIDA.value)
        elif ausente == FiltroAusenteEnum.HISTORIAL:
            query = query.where(Cirugia.ausente != None)  # noqa: E711

        query = query.order_by(Cirugia.fecha_cirugia, Cirugia.nombre).limit(limite)
        return list(self.session.exec(query).all())

    def candidatas_notificacion(self, desde: date, hasta: date) -> List[Cirugia]:
        """
        Cirugías que pueden recibir el aviso programado.

        Estado LILA, no excluidas, pendientes (sin Ausente) y con
        teléfono válido, con fecha entre desde y hasta.
        """
        query = select(Cirugia).where(
            Cirugia.status == EstadoCirugiaEnum.LILA,
            Cirugia.excluido == False,  # noqa: E712
            Cirugia.ausente == None,  # noqa: E711
            Cirugia.telefono_valido == True,  # noqa: E712
            Cirugia.fecha_cirugia >= desde,
            Cirugia.fecha_cirugia <= hasta,
        ).order_by(Cirugia.fecha_cirugia)
        return list(self.session.exec(query).all())

    def umbrales_notificados(self, cirugia_id: str) -> Set[int]:
        """Umbrales (en horas) que ya dispararon un mensaje para la cirugía."""
        query = select(NotificacionCirugia.umbral_horas).where(
            NotificacionCirugia.cirugia_id == cirugia_id
        )
        return set(self.session.exec(query).all())

    def contar_por_estado(self) -> Dict[str, int]:
        """Cantidad de cirugías no excluidas por estado."""
        query = (
            select(Cirugia.status, func.count())
            .where(Cirugia.excluido == False)  # noqa: E712
            .group_by(Cirugia.status)
        )
        return {
            getattr(status, "value", status): cantidad
            for status, cantidad in self.session.exec(query).all()
        }

    def contar_por_ausente(self) -> Dict[Optional[str], int]:
        """Cantidad de cirugías no excluidas por valor de Ausente."""
        query = (
            select(Cirugia.ausente, func.count())
            .where(Cirugia.excluido == False)  # noqa: E712
            .group_by(Cirugia.ausente)
        )
        return {ausente: cantidad for ausente, cantidad in self.session.exec(query).all()}

    # ============================================
    # ESCRITURAS MASIVAS
    # ============================================

    def insertar_varias(self, cirugias: List[Cirugia]) -> List[ResultadoFila]:
        """
        Inserta cirugías nuevas, cada una en su propio savepoint.

        Si la clave ya existe (otra importación la insertó entre la lectura
        y la escritura) la fila se aplica como actualización del registro
        existente.

        Returns:
            Un ResultadoFila por cirugía, en el mismo orden
        """
        resultados = []
        for cirugia in cirugias:
            try:
                with self.session.begin_nested():
                    self.session.add(cirugia)
                    self.session.flush()
                resultados.append(
                    ResultadoFila(True, cirugia.clave, "insertada", cirugia_id=cirugia.id)
                )
            except IntegrityError:
                logger.info(
                    f"Clave {cirugia.clave} ya existe al insertar, se reintenta como actualización"
                )
                resultados.append(self._reintentar_como_actualizacion(cirugia))
            except SQLAlchemyError as e:
                logger.error(f"Error insertando cirugía {cirugia.clave}: {e}")
                resultados.append(
                    ResultadoFila(False, cirugia.clave, "insertada", error=str(e))
                )

        self.session.commit()
        return resultados

    def actualizar_varias(self, cirugias: List[Cirugia]) -> List[ResultadoFila]:
        """
        Guarda cambios de cirugías existentes, cada una en su propio savepoint.

        Returns:
            Un ResultadoFila por cirugía, en el mismo orden
        """
        resultados = []
        for cirugia in cirugias:
            try:
                with self.session.begin_nested():
                    cirugia.updated_at = datetime.utcnow()
                    self.session.add(cirugia)
                    self.session.flush()
                resultados.append(
                    ResultadoFila(True, cirugia.clave, "actualizada", cirugia_id=cirugia.id)
                )
            except SQLAlchemyError as e:
                logger.error(f"Error actualizando cirugía {cirugia.clave}: {e}")
                resultados.append(
                    ResultadoFila(False, cirugia.clave, "actualizada", cirugia.id, error=str(e))
                )

        self.session.commit()
        return resultados

    def _reintentar_como_actualizacion(self, nueva: Cirugia) -> ResultadoFila:
        clave = nueva.clave
        existente = self.obtener_por_clave(*clave)
        if existente is None:
            return ResultadoFila(False, clave, "insertada", error="Conflicto de clave sin registro existente")

        try:
            with self.session.begin_nested():
                for campo in CAMPOS_ACTUALIZABLES:
                    setattr(existente, campo, getattr(nueva, campo))
                existente.updated_at = datetime.utcnow()
                self.session.add(existente)
                self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error actualizando cirugía {clave} tras conflicto: {e}")
            return ResultadoFila(False, clave, "actualizada", existente.id, error=str(e))

        return ResultadoFila(True, clave, "actualizada", cirugia_id=existente.id)

    # ============================================
    # PURGA
    # ============================================

    def purgar(self, cirugia: Cirugia) -> None:
        """Borra la cirugía con su historial y sus notificaciones."""
        logger.warning(f"Purga administrativa de cirugía {cirugia.id} {cirugia.clave}")
        self.eliminar(cirugia)
