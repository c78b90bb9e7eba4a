"""
Tests para las notificaciones programadas.
"""
import threading
from datetime import date, datetime, timedelta

from fastapi import status
from sqlmodel import select

from app.models.configuracion import PlantillaMensaje
from app.models.enums import AccionCirugiaEnum, EstadoCirugiaEnum, TipoPlantillaEnum
from app.models.evento_cirugia import EventoCirugia
from app.models.notificacion import NotificacionCirugia
from app.services.configuracion_service import ConfiguracionEfectiva
from app.services.notificacion_service import (
    EnviosEnCurso,
    NotificacionService,
    horas_restantes,
    umbrales_cruzados,
)

from conftest import EnviadorFalso

CONFIG = ConfiguracionEfectiva("264", [72, 48])
FECHA = date(2026, 3, 10)


def _service(session, enviador, config=CONFIG, **kwargs):
    return NotificacionService(session, enviador, config, hora_referencia=8, **kwargs)


def _umbrales_registrados(session, cirugia_id):
    query = select(NotificacionCirugia.umbral_horas).where(
        NotificacionCirugia.cirugia_id == cirugia_id
    )
    return sorted(session.exec(query).all())


def _avisos(enviador):
    """Teléfonos que recibieron el aviso de cirugía, en orden."""
    return [telefono for telefono, mensaje in enviador.enviados if "le recordamos" in mensaje]


def _solicitudes(enviador):
    return [telefono for telefono, mensaje in enviador.enviados if "orden médica" in mensaje]


class TestUmbrales:
    """Tests para el cálculo de horas y umbrales."""

    def test_horas_restantes(self):
        """Test horas hasta la hora de referencia del día de la cirugía."""
        assert horas_restantes(FECHA, datetime(2026, 3, 7, 8, 0), 8) == 72
        assert horas_restantes(FECHA, datetime(2026, 3, 9, 20, 0), 8) == 12
        assert horas_restantes(FECHA, datetime(2026, 3, 10, 9, 0), 8) == -1

    def test_umbrales_cruzados(self):
        """Test umbrales alcanzados, del mayor al menor."""
        assert umbrales_cruzados(72, [48, 72]) == [72]
        assert umbrales_cruzados(72.5, [72, 48]) == []
        assert umbrales_cruzados(30, [72, 48]) == [72, 48]
        assert umbrales_cruzados(0, [72, 48]) == []
        assert umbrales_cruzados(-5, [72, 48]) == []


class TestNotificacionService:
    """Tests para NotificacionService."""

    def test_justo_72_horas_envia_una_sola_vez(self, session, crear_cirugia, enviador):
        """Test a 72h exactas se envía y una segunda pasada no repite."""
        cirugia = crear_cirugia(fecha_cirugia=FECHA, nombre="PEREZ JUAN")
        ahora = datetime(2026, 3, 7, 8, 0)
        service = _service(session, enviador)

        primera = service.procesar_notificaciones_programadas(ahora)
        segunda = service.procesar_notificaciones_programadas(ahora)

        assert primera.enviadas == 1
        assert primera.resultados[0].umbral_horas == 72
        assert segunda.enviadas == 0
        assert segunda.omitidas == 1
        assert _avisos(enviador) == ["5492645438114"]
        assert "PEREZ JUAN" in enviador.enviados[0][1]
        assert _umbrales_registrados(session, cirugia.id) == [72]

    def test_umbral_de_48_despues_del_de_72(self, session, crear_cirugia, enviador):
        """Test cada umbral dispara su propio mensaje."""
        cirugia = crear_cirugia(fecha_cirugia=FECHA)
        service = _service(session, enviador)

        service.procesar_notificaciones_programadas(datetime(2026, 3, 7, 9, 0))
        service.procesar_notificaciones_programadas(datetime(2026, 3, 8, 7, 0))
        resultado = service.procesar_notificaciones_programadas(datetime(2026, 3, 8, 8, 0))

        assert resultado.enviadas == 1
        assert resultado.resultados[0].umbral_horas == 48
        assert resultado.resultados[0].categoria_documentacion is None
        assert len(_avisos(enviador)) == 2
        # El pedido de documentación sale solo con el primer aviso
        assert len(_solicitudes(enviador)) == 1
        assert _umbrales_registrados(session, cirugia.id) == [48, 72]

    def test_varios_umbrales_cruzados_un_solo_mensaje(self, session, crear_cirugia, enviador):
        """Test con ambos umbrales pendientes sale un mensaje y se registran los dos."""
        cirugia = crear_cirugia(fecha_cirugia=FECHA)

        resultado = _service(session, enviador).procesar_notificaciones_programadas(
            datetime(2026, 3, 9, 8, 0)
        )

        assert resultado.enviadas == 1
        assert len(_avisos(enviador)) == 1
        assert _umbrales_registrados(session, cirugia.id) == [48, 72]

    def test_envio_fallido_queda_pendiente(self, session, crear_cirugia):
        """Test si el proveedor falla no se registra y la próxima pasada reintenta."""
        cirugia = crear_cirugia(fecha_cirugia=FECHA)
        ahora = datetime(2026, 3, 7, 10, 0)

        fallida = _service(session, EnviadorFalso(falla=True)).procesar_notificaciones_programadas(ahora)
        assert fallida.fallidas == 1
        assert fallida.resultados[0].error == "Proveedor no disponible"
        assert fallida.resultados[0].categoria_documentacion is None
        assert _umbrales_registrados(session, cirugia.id) == []

        enviador = EnviadorFalso()
        reintento = _service(session, enviador).procesar_notificaciones_programadas(ahora)
        assert reintento.enviadas == 1
        assert _umbrales_registrados(session, cirugia.id) == [72]

    def test_envio_colgado_no_frena_a_los_demas(self, session, crear_cirugia):
        """Test un envío sin respuesta queda en curso y el resto sigue."""
        colgada = crear_cirugia(fecha_cirugia=FECHA, telefono="5492640000001")
        normal = crear_cirugia(fecha_cirugia=FECHA, telefono="5492640000002")
        bloqueo = threading.Event()
        enviador = EnviadorFalso(bloqueo=bloqueo, telefonos_colgados={"5492640000001"})
        envios = EnviosEnCurso()

        try:
            resultado = _service(
                session, enviador, timeout_envio=0.2, max_workers=2, envios=envios
            ).procesar_notificaciones_programadas(datetime(2026, 3, 7, 10, 0))
        finally:
            bloqueo.set()

        assert resultado.enviadas == 1
        assert resultado.en_curso == 1
        assert resultado.fallidas == 0
        por_id = {r.cirugia_id: r for r in resultado.resultados}
        assert not por_id[colgada.id].enviado
        assert "sigue en curso" in por_id[colgada.id].error
        assert por_id[normal.id].enviado
        assert envios.contiene(colgada.id)
        assert _umbrales_registrados(session, colgada.id) == []
        assert _umbrales_registrados(session, normal.id) == [72]

    def test_envio_en_curso_no_se_repite(self, session, crear_cirugia):
        """Test un envío que pasó el límite no se reenvía y se registra al confirmarse."""
        primera_cirugia = crear_cirugia(fecha_cirugia=FECHA, telefono="5492640000001")
        segunda_cirugia = crear_cirugia(fecha_cirugia=FECHA, telefono="5492640000002")
        bloqueo = threading.Event()
        enviador = EnviadorFalso(bloqueo=bloqueo)
        envios = EnviosEnCurso()
        service = _service(session, enviador, timeout_envio=0.2, max_workers=1, envios=envios)
        ahora = datetime(2026, 3, 7, 10, 0)

        try:
            primera = service.procesar_notificaciones_programadas(ahora)
        finally:
            bloqueo.set()

        # Una quedó en el proveedor y la otra no llegó a salir
        assert primera.enviadas == 0
        assert primera.en_curso == 1
        assert primera.fallidas == 1
        assert len(envios) == 1
        assert envios.esperar(timeout=5) == 0

        segunda = service.procesar_notificaciones_programadas(ahora)
        tercera = service.procesar_notificaciones_programadas(ahora)

        assert segunda.enviadas == 2
        assert tercera.enviadas == 0
        assert len(envios) == 0
        assert sorted(_avisos(enviador)) == ["5492640000001", "5492640000002"]
        assert _umbrales_registrados(session, primera_cirugia.id) == [72]
        assert _umbrales_registrados(session, segunda_cirugia.id) == [72]

    def test_envio_en_curso_que_falla_queda_pendiente(self, session, crear_cirugia):
        """Test si el envío en curso termina en error la cirugía vuelve a ser elegible."""
        cirugia = crear_cirugia(fecha_cirugia=FECHA)
        bloqueo = threading.Event()
        envios = EnviosEnCurso()
        ahora = datetime(2026, 3, 7, 10, 0)

        try:
            primera = _service(
                session, EnviadorFalso(falla=True, bloqueo=bloqueo), timeout_envio=0.2, envios=envios
            ).procesar_notificaciones_programadas(ahora)
        finally:
            bloqueo.set()
        assert primera.en_curso == 1
        assert envios.esperar(timeout=5) == 0

        enviador = EnviadorFalso()
        segunda = _service(session, enviador, envios=envios).procesar_notificaciones_programadas(ahora)

        assert segunda.enviadas == 1
        assert _avisos(enviador) == ["5492645438114"]
        assert _umbrales_registrados(session, cirugia.id) == [72]

    def test_primer_aviso_pide_documentacion(self, session, crear_cirugia, enviador):
        """Test después del primer aviso sale el pedido de documentación de su categoría."""
        session.add(PlantillaMensaje(
            tipo=TipoPlantillaEnum.SOLICITUD_DOC, obra_social_pattern="Prepaga",
            contenido="{nombre}: envíe la orden de {obra_social}",
        ))
        session.commit()
        cirugia = crear_cirugia(fecha_cirugia=FECHA, nombre="PEREZ JUAN", obra_social="OSDE 210")

        resultado = _service(session, enviador).procesar_notificaciones_programadas(
            datetime(2026, 3, 7, 10, 0)
        )

        assert resultado.enviadas == 1
        assert resultado.resultados[0].categoria_documentacion == "Prepaga"
        assert resultado.resultados[0].error is None
        assert len(enviador.enviados) == 2
        assert "le recordamos" in enviador.enviados[0][1]
        assert enviador.enviados[1] == ("5492645438114", "PEREZ JUAN: envíe la orden de OSDE 210")

        evento = session.exec(
            select(EventoCirugia).where(EventoCirugia.cirugia_id == cirugia.id)
        ).one()
        assert "Prepaga" in evento.details
        assert evento.get_metadata()["solicitud_documentacion"] == "Prepaga"

    def test_no_cambia_el_estado(self, session, crear_cirugia, enviador):
        """Test el aviso queda en el historial pero la cirugía sigue en LILA."""
        cirugia = crear_cirugia(fecha_cirugia=FECHA)

        _service(session, enviador).procesar_notificaciones_programadas(datetime(2026, 3, 7, 10, 0))

        session.refresh(cirugia)
        assert cirugia.status == EstadoCirugiaEnum.LILA
        assert cirugia.notificado_at is not None
        evento = session.exec(
            select(EventoCirugia).where(EventoCirugia.cirugia_id == cirugia.id)
        ).one()
        assert evento.accion == AccionCirugiaEnum.NOTIFICACION
        assert evento.from_status == evento.to_status == EstadoCirugiaEnum.LILA
        assert evento.get_metadata()["umbrales_horas"] == [72]

    def test_cirugias_no_elegibles(self, session, crear_cirugia, enviador):
        """Test teléfono inválido, otro estado, ausente cargado o excluida no se avisan."""
        crear_cirugia(fecha_cirugia=FECHA, telefono="abc", telefono_valido=False)
        crear_cirugia(fecha_cirugia=FECHA, status=EstadoCirugiaEnum.AMARILLO)
        crear_cirugia(fecha_cirugia=FECHA, ausente="1")
        crear_cirugia(fecha_cirugia=FECHA, excluido=True)

        resultado = _service(session, enviador).procesar_notificaciones_programadas(
            datetime(2026, 3, 7, 10, 0)
        )

        assert resultado.procesadas == 0
        assert enviador.enviados == []

    def test_fuera_de_ventana(self, session, crear_cirugia, enviador):
        """Test cirugías lejanas o ya pasadas no se avisan."""
        crear_cirugia(fecha_cirugia=date(2026, 3, 20))
        crear_cirugia(fecha_cirugia=date(2026, 3, 7))

        resultado = _service(session, enviador).procesar_notificaciones_programadas(
            datetime(2026, 3, 7, 10, 0)
        )

        assert resultado.enviadas == 0
        assert enviador.enviados == []

    def test_notificaciones_desactivadas(self, session, crear_cirugia, enviador):
        """Test con las notificaciones apagadas no se revisa nada."""
        crear_cirugia(fecha_cirugia=FECHA)
        config = ConfiguracionEfectiva("264", [72, 48], notificaciones_activas=False)

        resultado = _service(session, enviador, config=config).procesar_notificaciones_programadas(
            datetime(2026, 3, 7, 10, 0)
        )

        assert resultado.procesadas == 0
        assert enviador.enviados == []


class TestNotificacionesApi:
    """Tests para el endpoint de proceso manual."""

    def test_procesar(self, client, crear_cirugia, enviador):
        """Test una pasada por API con una cirugía dentro de la ventana."""
        crear_cirugia(fecha_cirugia=date.today() + timedelta(days=2))

        response = client.post("/api/notificaciones/procesar")
        assert response.status_code == status.HTTP_200_OK

        data = response.json()
        assert data["enviadas"] == 1
        assert data["resultados"][0]["enviado"] is True
        assert data["resultados"][0]["categoria_documentacion"] == "*"
        assert data["en_curso"] == 0
        assert len(_avisos(enviador)) == 1
        assert len(_solicitudes(enviador)) == 1

        response = client.post("/api/notificaciones/procesar")
        assert response.json()["enviadas"] == 0
