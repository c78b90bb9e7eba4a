"""
Servicio de estadísticas de cirugías.
"""
from typing import Dict

from sqlmodel import Session

from app.models.enums import AusenteEnum, EstadoCirugiaEnum
from app.repositories.cirugia_repo import CirugiaRepository


class EstadisticasService:
    """
    Conteos para el tablero.

    Una cirugía con Ausente "0" cuenta como realizada y con "1" como
    suspendida, además de contar en su estado.
    """

    def __init__(self, session: Session):
        self.repo = CirugiaRepository(session)

    def obtener_estadisticas(self) -> Dict[str, int]:
        por_estado = self.repo.contar_por_estado()
        por_ausente = self.repo.contar_por_ausente()

        estadisticas = {estado.value: por_estado.get(estado.value, 0) for estado in EstadoCirugiaEnum}
        estadisticas["realizada"] = por_ausente.get(AusenteEnum.REALIZADA.value, 0)
        estadisticas["suspendida"] = por_ausente.get(AusenteEnum.SUSPENDIDA.value, 0)
        estadisticas["total"] = sum(por_estado.values())
        return estadisticas
