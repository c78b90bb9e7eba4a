"""
Enumeraciones del sistema.
Centralizadas para evitar imports circulares.
"""
from enum import Enum


class EstadoCirugiaEnum(str, Enum):
    """
    Estado de una cirugía en el circuito de confirmación por WhatsApp.

    LILA → AMARILLO → VERDE → AZUL, con ROJO como estado lateral.
    """
    LILA = "lila"            # Cargada, pendiente de notificación
    AMARILLO = "amarillo"    # Documentación recibida, en revisión
    VERDE = "verde"          # Autorizada, esperando confirmación del paciente
    AZUL = "azul"            # Paciente confirmó asistencia
    ROJO = "rojo"            # Problema detectado


class AccionCirugiaEnum(str, Enum):
    """Acciones que disparan un cambio de estado."""
    DOCUMENTACION_RECIBIDA = "documentacion_recibida"
    AUTORIZAR = "autorizar"
    CONFIRMAR_ASISTENCIA = "confirmar_asistencia"
    MARCAR_PROBLEMA = "marcar_problema"
    INTERVENCION_MANUAL = "intervencion_manual"
    # No cambia de estado: solo queda en el historial
    NOTIFICACION = "notificacion"


class TipoPlantillaEnum(str, Enum):
    """Tipos de mensaje que el sistema envía al paciente."""
    NOTIFICACION = "notificacion"
    SOLICITUD_DOC = "solicitud_doc"
    AUTORIZACION = "autorizacion"
    INDICACIONES = "indicaciones"


class AusenteEnum(str, Enum):
    """
    Valores de la columna Ausente de la planilla.
    Vacío (None en base) significa pendiente.
    """
    REALIZADA = "0"
    SUSPENDIDA = "1"


class FiltroAusenteEnum(str, Enum):
    """Filtros de listado por resultado de la cirugía."""
    PENDIENTES = "pending"
    REALIZADAS = "completed"
    SUSPENDIDAS = "suspended"
    HISTORIAL = "history"
    TODAS = "all"


# ============================================
# CONSTANTES RELACIONADAS CON ENUMS
# ============================================

# Estados desde los que se puede marcar un problema
ESTADOS_NO_TERMINALES = [
    EstadoCirugiaEnum.LILA,
    EstadoCirugiaEnum.AMARILLO,
    EstadoCirugiaEnum.VERDE,
]

ESTADO_INICIAL = EstadoCirugiaEnum.LILA
