"""
Servicio de Notificaciones programadas.

Cada cierto tiempo revisa las cirugías en LILA y manda el aviso por
WhatsApp cuando faltan N horas o menos (umbrales configurables, por
defecto 72 y 48). Cada umbral dispara a lo sumo un mensaje: el registro
en NotificacionCirugia se escribe solo si el proveedor confirmó el envío.
Junto con el primer aviso sale el pedido de documentación.

Ubicación: app/services/notificacion_service.py
"""
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FuturesTimeoutError, wait
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional
import logging
import threading
import time as reloj

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.config import settings
from app.models.cirugia import Cirugia
from app.models.evento_cirugia import EventoCirugia
from app.models.notificacion import NotificacionCirugia
from app.models.enums import AccionCirugiaEnum, TipoPlantillaEnum
from app.repositories.cirugia_repo import CirugiaRepository
from app.services.configuracion_service import ConfiguracionEfectiva
from app.services.whatsapp_service import EnviadorMensajes, MensajeriaService, ResultadoEnvio
from app.utils.formatters import formatear_horas

logger = logging.getLogger("gestion_cirugias.notificaciones")


@dataclass
class ResultadoNotificacion:
    cirugia_id: str
    nombre: str
    umbral_horas: Optional[int]
    enviado: bool
    error: Optional[str] = None
    categoria_documentacion: Optional[str] = None


@dataclass
class ResultadoProcesoNotificaciones:
    """Resumen de una pasada del proceso de notificaciones."""
    procesadas: int = 0
    enviadas: int = 0
    fallidas: int = 0
    omitidas: int = 0
    en_curso: int = 0
    resultados: List[ResultadoNotificacion] = field(default_factory=list)


@dataclass
class AvisoPendiente:
    """Mensajes a enviar a una cirugía en esta pasada."""
    cirugia: Cirugia
    umbrales: List[int]
    mensaje: str
    # Solo con el primer aviso de la cirugía
    solicitud: Optional[str] = None
    categoria_documentacion: Optional[str] = None

    @property
    def umbral(self) -> int:
        return min(self.umbrales)


@dataclass(frozen=True)
class ResultadoAviso:
    """Respuesta del proveedor al aviso y, si se mandó, al pedido de documentación."""
    aviso: ResultadoEnvio
    solicitud: Optional[ResultadoEnvio] = None
    categoria_documentacion: Optional[str] = None

    @property
    def error_solicitud(self) -> Optional[str]:
        if self.solicitud is None or self.solicitud.success:
            return None
        return f"Pedido de documentación no enviado: {self.solicitud.error}"


@dataclass
class EnvioEnCurso:
    cirugia_id: str
    umbrales: List[int]
    telefono: str
    futuro: Future


class EnviosEnCurso:
    """
    Avisos que pasaron el límite de espera pero ya estaban en el proveedor.

    Mientras una cirugía figura acá no recibe otro aviso. Cuando el envío
    termina, la pasada siguiente registra los umbrales si el proveedor
    confirmó, o deja la cirugía elegible otra vez si falló.
    """

    def __init__(self):
        self._envios: Dict[str, EnvioEnCurso] = {}
        self._lock = threading.Lock()

    def agregar(self, envio: EnvioEnCurso) -> None:
        with self._lock:
            self._envios[envio.cirugia_id] = envio

    def contiene(self, cirugia_id: str) -> bool:
        with self._lock:
            return cirugia_id in self._envios

    def retirar_terminados(self) -> List[EnvioEnCurso]:
        with self._lock:
            terminados = [e for e in self._envios.values() if e.futuro.done()]
            for envio in terminados:
                del self._envios[envio.cirugia_id]
            return terminados

    def esperar(self, timeout: Optional[float] = None) -> int:
        """Espera a los envíos en curso. Devuelve cuántos siguen sin terminar."""
        with self._lock:
            futuros = [e.futuro for e in self._envios.values()]
        _, pendientes = wait(futuros, timeout=timeout)
        return len(pendientes)

    def __len__(self) -> int:
        with self._lock:
            return len(self._envios)


def horas_restantes(fecha_cirugia: date, ahora: datetime, hora_referencia: int) -> float:
    """Horas entre ahora y la fecha de la cirugía a la hora de referencia."""
    inicio = datetime.combine(fecha_cirugia, time(hour=hora_referencia))
    return (inicio - ahora).total_seconds() / 3600


def umbrales_cruzados(horas: float, umbrales: Iterable[int]) -> List[int]:
    """
    Umbrales alcanzados a las horas restantes indicadas.

    Ej: con 50 horas restantes y umbrales [72, 48] devuelve [72].
    Una cirugía ya pasada (horas <= 0) no cruza ningún umbral.
    """
    return sorted((h for h in umbrales if 0 < horas <= h), reverse=True)


def enviar_aviso(enviador: EnviadorMensajes, telefono: str, aviso: AvisoPendiente) -> ResultadoAviso:
    """Corre en el pool: manda el aviso y, si salió, el pedido de documentación."""
    resultado = enviador.enviar(telefono, aviso.mensaje)
    if not resultado.success or aviso.solicitud is None:
        return ResultadoAviso(resultado)
    solicitud = enviador.enviar(telefono, aviso.solicitud)
    return ResultadoAviso(resultado, solicitud, aviso.categoria_documentacion)


class NotificacionService:
    """
    Servicio para el aviso automático previo a la cirugía.

    Los envíos corren en un pool de hilos. La pasada espera a todos hasta
    un mismo límite (timeout_envio desde que se encolaron): los que no
    empezaron se cancelan y los que siguen en el proveedor pasan a
    EnviosEnCurso. La sesión de base de datos solo se usa desde el hilo
    que llama.
    """

    def __init__(
        self,
        session: Session,
        enviador: EnviadorMensajes,
        config: ConfiguracionEfectiva,
        hora_referencia: int = settings.HORA_REFERENCIA_CIRUGIA,
        timeout_envio: float = settings.ENVIO_TIMEOUT_SEGUNDOS,
        max_workers: int = settings.ENVIO_MAX_WORKERS,
        envios: Optional[EnviosEnCurso] = None,
    ):
        self.session = session
        self.repo = CirugiaRepository(session)
        self.mensajeria = MensajeriaService(session, enviador)
        self.enviador = enviador
        self.config = config
        self.hora_referencia = hora_referencia
        self.timeout_envio = timeout_envio
        self.max_workers = max_workers
        self.envios = envios if envios is not None else EnviosEnCurso()

    def procesar_notificaciones_programadas(self, ahora: Optional[datetime] = None) -> ResultadoProcesoNotificaciones:
        """
        Revisa las cirugías candidatas y envía los avisos que correspondan.

        Args:
            ahora: Momento de referencia (hora local). Por defecto, datetime.now()

        Returns:
            ResultadoProcesoNotificaciones con el detalle por cirugía
        """
        ahora = ahora or datetime.now()
        resultado = ResultadoProcesoNotificaciones()

        # Los envíos de pasadas anteriores se registran aunque hoy esté apagado
        self.registrar_envios_tardios(resultado)

        if not self.config.notificaciones_activas:
            logger.info("Notificaciones desactivadas en la configuración")
            return resultado
        umbrales = self.config.umbrales_horas
        if not umbrales:
            return resultado

        hasta = (ahora + timedelta(hours=max(umbrales))).date()
        candidatas = self.repo.candidatas_notificacion(ahora.date(), hasta)

        pendientes = []
        for cirugia in candidatas:
            resultado.procesadas += 1
            if self.envios.contiene(cirugia.id):
                resultado.en_curso += 1
                continue
            horas = horas_restantes(cirugia.fecha_cirugia, ahora, self.hora_referencia)
            ya_notificados = self.repo.umbrales_notificados(cirugia.id)
            nuevos = [h for h in umbrales_cruzados(horas, umbrales) if h not in ya_notificados]
            if not nuevos:
                resultado.omitidas += 1
                continue
            logger.debug(f"Cirugía {cirugia.id}: faltan {formatear_horas(horas)}, umbrales {nuevos}")
            pendientes.append(self._armar_aviso(cirugia, nuevos, primero=not ya_notificados))

        if pendientes:
            self._enviar_pendientes(pendientes, resultado)

        logger.info(
            f"Notificaciones: {resultado.procesadas} revisadas, {resultado.enviadas} enviadas, "
            f"{resultado.fallidas} fallidas, {resultado.en_curso} en curso, "
            f"{resultado.omitidas} sin umbral pendiente"
        )
        return resultado

    def _armar_aviso(self, cirugia: Cirugia, umbrales: List[int], primero: bool) -> AvisoPendiente:
        aviso = AvisoPendiente(
            cirugia=cirugia,
            umbrales=umbrales,
            mensaje=self.mensajeria.armar_mensaje(cirugia, TipoPlantillaEnum.NOTIFICACION),
        )
        if primero:
            aviso.categoria_documentacion, aviso.solicitud = (
                self.mensajeria.armar_solicitud_documentacion(cirugia)
            )
        return aviso

    def _enviar_pendientes(self, pendientes: List[AvisoPendiente], resultado: ResultadoProcesoNotificaciones) -> None:
        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futuros = [
                (aviso, executor.submit(enviar_aviso, self.enviador, aviso.cirugia.telefono, aviso))
                for aviso in pendientes
            ]
            limite = reloj.monotonic() + self.timeout_envio

            for aviso, futuro in futuros:
                cirugia = aviso.cirugia
                envio = self._esperar_envio(aviso, futuro, limite)

                if envio is None:
                    resultado.en_curso += 1
                    error = f"Sin respuesta del proveedor en {self.timeout_envio}s, el envío sigue en curso"
                    logger.warning(f"Aviso {aviso.umbral}h a cirugía {cirugia.id}: {error}")
                    resultado.resultados.append(
                        ResultadoNotificacion(cirugia.id, cirugia.nombre, aviso.umbral, False, error)
                    )
                    continue

                if envio.aviso.success:
                    self._registrar_envio(cirugia, aviso.umbrales, cirugia.telefono, envio)
                    resultado.enviadas += 1
                    error = envio.error_solicitud
                else:
                    resultado.fallidas += 1
                    error = envio.aviso.error
                    logger.warning(f"Aviso {aviso.umbral}h a cirugía {cirugia.id} no enviado: {error}")
                resultado.resultados.append(ResultadoNotificacion(
                    cirugia.id, cirugia.nombre, aviso.umbral, envio.aviso.success, error,
                    envio.categoria_documentacion,
                ))
        finally:
            # Lo que no empezó se cancela; lo que está en el proveedor sigue en su hilo
            executor.shutdown(wait=False, cancel_futures=True)

    def _esperar_envio(self, aviso: AvisoPendiente, futuro: Future, limite: float) -> Optional[ResultadoAviso]:
        """
        Espera el envío hasta el límite de la pasada.

        Returns:
            ResultadoAviso, o None si el envío ya había empezado y no
            terminó a tiempo (queda en EnviosEnCurso)
        """
        try:
            return futuro.result(timeout=max(0.0, limite - reloj.monotonic()))
        except FuturesTimeoutError:
            if futuro.cancel():
                return ResultadoAviso(ResultadoEnvio(False, f"No se llegó a enviar en {self.timeout_envio}s"))
            self.envios.agregar(
                EnvioEnCurso(aviso.cirugia.id, aviso.umbrales, aviso.cirugia.telefono, futuro)
            )
            return None
        except Exception as e:
            logger.exception(f"Error inesperado enviando a cirugía {aviso.cirugia.id}")
            return ResultadoAviso(ResultadoEnvio(False, str(e)))

    def registrar_envios_tardios(
        self, resultado: Optional[ResultadoProcesoNotificaciones] = None
    ) -> ResultadoProcesoNotificaciones:
        """Registra los envíos en curso que el proveedor terminó de responder."""
        if resultado is None:
            resultado = ResultadoProcesoNotificaciones()
        for envio in self.envios.retirar_terminados():
            try:
                respuesta = envio.futuro.result()
            except Exception as e:
                respuesta = ResultadoAviso(ResultadoEnvio(False, str(e)))

            if not respuesta.aviso.success:
                logger.warning(
                    f"Aviso en curso a cirugía {envio.cirugia_id} falló: {respuesta.aviso.error}. "
                    f"Vuelve a quedar pendiente"
                )
                continue

            cirugia = self.repo.obtener_por_id(envio.cirugia_id)
            if cirugia is None:
                logger.warning(f"Aviso entregado a cirugía {envio.cirugia_id} que ya no existe")
                continue

            self._registrar_envio(cirugia, envio.umbrales, envio.telefono, respuesta)
            resultado.enviadas += 1
            resultado.resultados.append(ResultadoNotificacion(
                cirugia.id, cirugia.nombre, min(envio.umbrales), True,
                respuesta.error_solicitud, respuesta.categoria_documentacion,
            ))
            logger.info(f"Aviso a cirugía {cirugia.id} confirmado después del límite de espera")
        return resultado

    def _registrar_envio(
        self,
        cirugia: Cirugia,
        umbrales: List[int],
        telefono: str,
        envio: ResultadoAviso,
    ) -> None:
        """Marca los umbrales como notificados. El estado no cambia."""
        enviado_at = datetime.utcnow()
        for umbral in umbrales:
            self.session.add(NotificacionCirugia(
                cirugia_id=cirugia.id,
                umbral_horas=umbral,
                telefono=telefono,
                enviado_at=enviado_at,
            ))

        cirugia.notificado_at = enviado_at
        cirugia.ultimo_mensaje_at = enviado_at
        self.session.add(cirugia)

        detalle = f"Aviso enviado ({min(umbrales)}h antes)"
        if envio.solicitud is not None and envio.solicitud.success:
            detalle += f". Documentación pedida: {envio.categoria_documentacion}"

        evento = EventoCirugia(
            cirugia_id=cirugia.id,
            accion=AccionCirugiaEnum.NOTIFICACION,
            from_status=cirugia.status,
            to_status=cirugia.status,
            details=detalle,
            performed_by="bot",
        )
        evento.set_metadata({
            "umbrales_horas": umbrales,
            "telefono": telefono,
            "solicitud_documentacion": envio.categoria_documentacion if envio.solicitud else None,
        })
        self.session.add(evento)

        try:
            self.session.commit()
        except IntegrityError:
            # Otra pasada registró el mismo umbral mientras se enviaba
            self.session.rollback()
            logger.warning(f"Umbrales {umbrales} de cirugía {cirugia.id} ya estaban registrados")


# Registro compartido por la API y el proceso en background
envios_en_curso = EnviosEnCurso()


def get_envios_en_curso() -> EnviosEnCurso:
    """Dependency de FastAPI con el registro compartido."""
    return envios_en_curso
