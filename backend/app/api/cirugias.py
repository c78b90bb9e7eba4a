"""
Endpoints de Cirugías.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from app.core.database import get_session
from app.core.exceptions import CirugiaNotFoundError
from app.models.enums import EstadoCirugiaEnum, FiltroAusenteEnum
from app.repositories.cirugia_repo import CirugiaRepository
from app.schemas.cirugia import (
    AusenteRequest,
    CirugiaDetalleResponse,
    CirugiaResponse,
    DocumentacionRequest,
    EstadisticasCirugiasResponse,
    ExclusionRequest,
    ImportacionRequest,
    ImportacionResponse,
    IntervencionManualRequest,
    OperadorRequest,
    PreviewImportacionResponse,
    ProblemaRequest,
    TransicionResponse,
)
from app.schemas.responses import MessageResponse
from app.services.configuracion_service import ConfiguracionCache, get_configuracion_cache
from app.services.estadisticas_service import EstadisticasService
from app.services.estado_service import EstadoService, ResultadoTransicion
from app.services.reconciliacion_service import ImportacionService
from app.services.whatsapp_service import EnviadorMensajes, MensajeriaService, get_enviador

router = APIRouter()


def _importacion_service(session: Session, cache: ConfiguracionCache) -> ImportacionService:
    config = cache.obtener(session)
    return ImportacionService(session, default_area_code=config.default_area_code)


def _respuesta_transicion(resultado: ResultadoTransicion) -> TransicionResponse:
    if not resultado.exito:
        raise HTTPException(status_code=404, detail=resultado.mensaje)
    return TransicionResponse(
        success=resultado.exito,
        message=resultado.mensaje,
        cirugia_id=resultado.cirugia_id,
        from_status=resultado.from_status,
        to_status=resultado.to_status,
        fuera_de_secuencia=resultado.fuera_de_secuencia,
        mensaje_enviado=resultado.mensaje_enviado,
    )


# ============================================
# CONSULTAS
# ============================================

@router.get("", response_model=List[CirugiaResponse])
def listar_cirugias(
    status: Optional[EstadoCirugiaEnum] = None,
    desde: Optional[date] = None,
    hasta: Optional[date] = None,
    ausente: FiltroAusenteEnum = FiltroAusenteEnum.PENDIENTES,
    limite: int = Query(default=500, ge=1, le=5000),
    session: Session = Depends(get_session)
):
    """Lista cirugías ordenadas por fecha."""
    repo = CirugiaRepository(session)
    return repo.listar(status=status, desde=desde, hasta=hasta, ausente=ausente, limite=limite)


@router.get("/estadisticas", response_model=EstadisticasCirugiasResponse)
def obtener_estadisticas(session: Session = Depends(get_session)):
    """Cantidad de cirugías por estado y por resultado."""
    return EstadisticasCirugiasResponse(**EstadisticasService(session).obtener_estadisticas())


@router.get("/{cirugia_id}", response_model=CirugiaDetalleResponse)
def obtener_cirugia(cirugia_id: str, session: Session = Depends(get_session)):
    """Obtiene una cirugía con su historial de estados."""
    cirugia = CirugiaRepository(session).obtener_por_id(cirugia_id)
    if not cirugia:
        raise HTTPException(status_code=404, detail="Cirugía no encontrada")
    return cirugia


@router.delete("/{cirugia_id}", response_model=MessageResponse)
def purgar_cirugia(cirugia_id: str, session: Session = Depends(get_session)):
    """Borra definitivamente una cirugía y su historial."""
    repo = CirugiaRepository(session)
    cirugia = repo.obtener_por_id(cirugia_id)
    if not cirugia:
        raise HTTPException(status_code=404, detail="Cirugía no encontrada")
    repo.purgar(cirugia)
    return MessageResponse(success=True, message="Cirugía eliminada")


# ============================================
# IMPORTACIÓN DE PLANILLA
# ============================================

@router.post("/importar/preview", response_model=PreviewImportacionResponse)
def previsualizar_importacion(
    data: ImportacionRequest,
    session: Session = Depends(get_session),
    cache: ConfiguracionCache = Depends(get_configuracion_cache)
):
    """Muestra qué haría la importación sin guardar nada."""
    plan = _importacion_service(session, cache).previsualizar(data.filas, data.default_area_code)
    return PreviewImportacionResponse(
        total=len(data.filas),
        a_insertar=len(plan.to_insert),
        a_actualizar=len(plan.to_update),
        sin_cambios=len(plan.sin_cambios),
        duplicados=plan.duplicados,
        rechazadas=[vars(r) for r in plan.rejected],
        telefonos_validos=plan.telefonos_validos,
        telefonos_invalidos=plan.telefonos_invalidos,
        telefonos=plan.detalles_telefonos,
    )


@router.post("/importar", response_model=ImportacionResponse)
def importar_planilla(
    data: ImportacionRequest,
    session: Session = Depends(get_session),
    cache: ConfiguracionCache = Depends(get_configuracion_cache)
):
    """Importa las filas de la planilla quirúrgica."""
    resultado = _importacion_service(session, cache).importar(data.filas, data.default_area_code)
    return ImportacionResponse(
        insertados=resultado.insertados,
        actualizados=resultado.actualizados,
        sin_cambios=resultado.sin_cambios,
        duplicados=resultado.duplicados,
        rechazados=[vars(r) for r in resultado.rechazados],
        errores=resultado.errores,
        telefonos=resultado.telefonos,
    )


# ============================================
# TRANSICIONES DE ESTADO
# ============================================

@router.post("/{cirugia_id}/documentacion", response_model=TransicionResponse)
def documentacion_recibida(
    cirugia_id: str,
    data: DocumentacionRequest,
    session: Session = Depends(get_session)
):
    """Registra la documentación recibida (LILA -> AMARILLO)."""
    archivo = data.model_dump(include={"filename", "url"}, exclude_none=True) or None
    resultado = EstadoService(session).marcar_documentacion_recibida(
        cirugia_id, archivo=archivo, operador=data.operador
    )
    return _respuesta_transicion(resultado)


@router.post("/{cirugia_id}/autorizar", response_model=TransicionResponse)
def autorizar_cirugia(
    cirugia_id: str,
    data: OperadorRequest,
    session: Session = Depends(get_session),
    enviador: EnviadorMensajes = Depends(get_enviador)
):
    """Autoriza la cirugía (AMARILLO -> VERDE) y avisa al paciente."""
    service = EstadoService(session, MensajeriaService(session, enviador))
    return _respuesta_transicion(service.autorizar(cirugia_id, data.operador))


@router.post("/{cirugia_id}/confirmar", response_model=TransicionResponse)
def confirmar_asistencia(
    cirugia_id: str,
    data: OperadorRequest,
    session: Session = Depends(get_session),
    enviador: EnviadorMensajes = Depends(get_enviador)
):
    """El paciente confirmó asistencia (VERDE -> AZUL); se envían indicaciones."""
    service = EstadoService(session, MensajeriaService(session, enviador))
    return _respuesta_transicion(service.confirmar_asistencia(cirugia_id, data.operador))


@router.post("/{cirugia_id}/problema", response_model=TransicionResponse)
def marcar_problema(
    cirugia_id: str,
    data: ProblemaRequest,
    session: Session = Depends(get_session)
):
    """Marca un problema (-> ROJO)."""
    resultado = EstadoService(session).marcar_problema(cirugia_id, data.motivo, data.operador)
    return _respuesta_transicion(resultado)


@router.post("/{cirugia_id}/intervencion-manual", response_model=TransicionResponse)
def intervencion_manual(
    cirugia_id: str,
    data: IntervencionManualRequest,
    session: Session = Depends(get_session)
):
    """Cambia el estado a mano, queda registrado con el operador."""
    resultado = EstadoService(session).intervencion_manual(
        cirugia_id, data.nuevo_estado, data.motivo, data.operador
    )
    return _respuesta_transicion(resultado)


@router.put("/{cirugia_id}/ausente", response_model=CirugiaResponse)
def actualizar_ausente(
    cirugia_id: str,
    data: AusenteRequest,
    session: Session = Depends(get_session)
):
    """Registra si la cirugía se realizó, se suspendió o sigue pendiente."""
    try:
        return EstadoService(session).actualizar_ausente(cirugia_id, data.ausente)
    except CirugiaNotFoundError:
        raise HTTPException(status_code=404, detail="Cirugía no encontrada")


@router.put("/{cirugia_id}/excluido", response_model=CirugiaResponse)
def actualizar_exclusion(
    cirugia_id: str,
    data: ExclusionRequest,
    session: Session = Depends(get_session)
):
    """Excluye la cirugía de listados, estadísticas y avisos (o la vuelve a incluir)."""
    try:
        return EstadoService(session).actualizar_exclusion(cirugia_id, data.excluido, data.operador)
    except CirugiaNotFoundError:
        raise HTTPException(status_code=404, detail="Cirugía no encontrada")
