"""
Servicio de mensajería por WhatsApp.

El envío real lo hace BuilderBot; el resto del sistema solo conoce el
protocolo EnviadorMensajes, así los tests usan un enviador en memoria.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Tuple
import logging

import requests
from sqlmodel import Session

from app.config import settings
from app.core.exceptions import TelefonoInvalidoError
from app.models.cirugia import Cirugia
from app.models.enums import TipoPlantillaEnum
from app.repositories.configuracion_repo import PATRON_DEFAULT, PlantillaMensajeRepository
from app.utils.constants import CATEGORIAS_DOCUMENTACION, PLANTILLAS_DEFAULT
from app.utils.formatters import completar_plantilla
from app.utils.telefonos import es_telefono_canonico

logger = logging.getLogger("gestion_cirugias.whatsapp")


@dataclass(frozen=True)
class ResultadoEnvio:
    """Respuesta del proveedor a un envío."""
    success: bool
    error: Optional[str] = None


class EnviadorMensajes(Protocol):
    """Cualquier objeto capaz de mandar un mensaje a un teléfono canónico."""

    def enviar(self, telefono: str, mensaje: str) -> ResultadoEnvio:
        ...


class BuilderBotEnviador:
    """
    Enviador que usa la API REST de BuilderBot.

    Nunca lanza excepciones: los errores de red o de la API se devuelven
    como ResultadoEnvio(success=False).
    """

    def __init__(
        self,
        url: str = settings.BUILDERBOT_URL,
        api_key: str = settings.BUILDERBOT_API_KEY,
        timeout: float = settings.ENVIO_TIMEOUT_SEGUNDOS,
    ):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout

    def enviar(self, telefono: str, mensaje: str) -> ResultadoEnvio:
        if not self.url:
            return ResultadoEnvio(False, "BuilderBot no configurado (BUILDERBOT_URL vacío)")
        if not es_telefono_canonico(telefono):
            return ResultadoEnvio(False, TelefonoInvalidoError(telefono).message)

        payload = {
            "messages": {"content": mensaje},
            "number": telefono,
            "checkIfExists": False,
        }
        headers = {
            "Content-Type": "application/json",
            "x-api-builderbot": self.api_key,
        }
        try:
            response = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Error de red enviando a {telefono}: {e}")
            return ResultadoEnvio(False, str(e))

        if response.status_code >= 400:
            logger.error(f"BuilderBot respondió {response.status_code} para {telefono}: {response.text}")
            return ResultadoEnvio(False, f"HTTP {response.status_code}: {response.text}")

        return ResultadoEnvio(True)


def categoria_documentacion(obra_social: Optional[str]) -> str:
    """
    Categoría de la obra social para elegir el pedido de documentación.

    Ej: "IOSFA PROVINCIA" -> "Provincia", "OSDE 210" -> "Prepaga",
    "OSEP" -> "*".
    """
    buscada = (obra_social or "").upper()
    for categoria, claves in CATEGORIAS_DOCUMENTACION:
        if any(clave in buscada for clave in claves):
            return categoria
    return PATRON_DEFAULT


class MensajeriaService:
    """
    Arma mensajes desde plantillas y los envía.

    La plantilla se elige por tipo y obra social: primero la específica,
    después la de patrón "*" y por último el texto por defecto.
    """

    def __init__(self, session: Session, enviador: EnviadorMensajes):
        self.session = session
        self.enviador = enviador
        self.plantilla_repo = PlantillaMensajeRepository(session)

    def obtener_plantilla(self, tipo: TipoPlantillaEnum, obra_social: Optional[str] = None) -> str:
        plantilla = self.plantilla_repo.buscar_plantilla(tipo, obra_social)
        if plantilla:
            return plantilla.contenido
        return PLANTILLAS_DEFAULT[tipo.value]

    def armar_mensaje(self, cirugia: Cirugia, tipo: TipoPlantillaEnum) -> str:
        return completar_plantilla(self.obtener_plantilla(tipo, cirugia.obra_social), cirugia)

    def armar_solicitud_documentacion(self, cirugia: Cirugia) -> Tuple[str, str]:
        """
        Pedido de documentación que sigue al primer aviso.

        La plantilla se busca por categoría de obra social (Provincia,
        Jerárquicos, Prepaga) y no por el nombre exacto.

        Returns:
            (categoria, mensaje)
        """
        categoria = categoria_documentacion(cirugia.obra_social)
        plantilla = self.obtener_plantilla(TipoPlantillaEnum.SOLICITUD_DOC, categoria)
        return categoria, completar_plantilla(plantilla, cirugia)

    def enviar_plantilla(self, cirugia: Cirugia, tipo: TipoPlantillaEnum) -> ResultadoEnvio:
        """
        Envía a la cirugía el mensaje del tipo indicado.

        Args:
            cirugia: Cirugía destinataria (usa su teléfono canónico)
            tipo: Tipo de plantilla

        Returns:
            ResultadoEnvio. Si fue exitoso actualiza ultimo_mensaje_at.
        """
        if not cirugia.telefono_valido:
            return ResultadoEnvio(False, TelefonoInvalidoError(cirugia.telefono).message)

        resultado = self.enviador.enviar(cirugia.telefono, self.armar_mensaje(cirugia, tipo))
        if resultado.success:
            cirugia.ultimo_mensaje_at = datetime.utcnow()
            self.session.add(cirugia)
            self.session.commit()
            logger.info(f"Mensaje '{tipo.value}' enviado a cirugía {cirugia.id}")
        else:
            logger.warning(f"No se pudo enviar '{tipo.value}' a cirugía {cirugia.id}: {resultado.error}")
        return resultado


def get_enviador() -> EnviadorMensajes:
    """Dependency de FastAPI con el enviador configurado."""
    return BuilderBotEnviador()
