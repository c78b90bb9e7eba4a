"""
Fixtures de pytest para tests.
"""
import threading
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session
from sqlmodel.pool import StaticPool

from app.core.database import crear_engine, get_session
from app.services.configuracion_service import ConfiguracionCache, get_configuracion_cache
from app.services.notificacion_service import EnviosEnCurso, get_envios_en_curso
from app.services.whatsapp_service import ResultadoEnvio, get_enviador
from main import app


class EnviadorFalso:
    """
    Enviador en memoria.

    Guarda cada envío en `enviados`. Con `falla=True` responde error y con
    `bloqueo` (threading.Event) queda esperando hasta que se libere.
    """

    def __init__(self, falla=False, bloqueo=None, telefonos_colgados=()):
        self.falla = falla
        self.bloqueo = bloqueo
        self.telefonos_colgados = set(telefonos_colgados)
        self.enviados = []
        self._lock = threading.Lock()

    def enviar(self, telefono, mensaje):
        if self.bloqueo is not None and (not self.telefonos_colgados or telefono in self.telefonos_colgados):
            self.bloqueo.wait(timeout=5)
        if self.falla:
            return ResultadoEnvio(False, "Proveedor no disponible")
        with self._lock:
            self.enviados.append((telefono, mensaje))
        return ResultadoEnvio(True)


# Engine para tests (SQLite en memoria)
@pytest.fixture(name="engine")
def engine_fixture():
    """Crea un engine de test en memoria."""
    engine = crear_engine("sqlite://", poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Crea una sesión de test."""
    with Session(engine) as session:
        yield session


@pytest.fixture
def enviador():
    """Enviador falso que siempre confirma."""
    return EnviadorFalso()


@pytest.fixture
def config_cache():
    """Cache que relee la configuración en cada consulta."""
    return ConfiguracionCache(ttl_segundos=0)


@pytest.fixture(name="client")
def client_fixture(session, enviador, config_cache):
    """Crea un cliente de test con sesión, enviador, cache y envíos en curso propios."""
    def get_session_override():
        yield session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_enviador] = lambda: enviador
    app.dependency_overrides[get_configuracion_cache] = lambda: config_cache
    envios = EnviosEnCurso()
    app.dependency_overrides[get_envios_en_curso] = lambda: envios

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


# Fixtures de datos de prueba

@pytest.fixture
def fila_planilla():
    """Factory de filas de planilla como las entrega el lector de Excel."""
    def _fila(**campos):
        fila = {
            "fecha": "2026-03-10",
            "id_paciente": 1001,
            "nombre": "PEREZ JUAN",
            "telefono": "2645438114",
            "descripcion": "Colecistectomía laparoscópica",
            "motivo": "Litiasis vesicular",
            "ausente": None,
            "grupo_agendas": "Cirugía General",
            "medico": "Dr. Gómez",
            "obra_social": "OSEP",
            "dni": "30111222",
        }
        fila.update(campos)
        return fila

    return _fila


@pytest.fixture
def crear_cirugia(session):
    """Factory fixture para crear cirugías."""
    from app.models.cirugia import Cirugia
    from app.models.enums import EstadoCirugiaEnum

    contador = {"id": 5000}

    def _crear_cirugia(
        fecha_cirugia=date(2026, 3, 10),
        status=EstadoCirugiaEnum.LILA,
        telefono="5492645438114",
        telefono_valido=True,
        **campos
    ):
        contador["id"] += 1
        datos = {
            "id_paciente": contador["id"],
            "nombre": "PACIENTE PRUEBA",
            "telefono_original": telefono,
            "medico": "Dr. Gómez",
            "obra_social": "OSEP",
        }
        datos.update(campos)
        cirugia = Cirugia(
            fecha_cirugia=fecha_cirugia,
            status=status,
            telefono=telefono,
            telefono_valido=telefono_valido,
            **datos
        )
        session.add(cirugia)
        session.commit()
        session.refresh(cirugia)
        return cirugia

    return _crear_cirugia
