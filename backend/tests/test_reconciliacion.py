"""
Tests para la reconciliación e importación de planillas.
"""
from datetime import date

import pytest
from fastapi import status
from sqlmodel import select

from app.config import settings
from app.models.cirugia import Cirugia
from app.models.enums import EstadoCirugiaEnum
from app.repositories.cirugia_repo import CirugiaRepository
from app.services.estado_service import EstadoService
from app.services.reconciliacion_service import ImportacionService, reconciliar
from app.utils.validators import parsear_fecha, parsear_id_paciente


class TestConversionCeldas:
    """Tests para las conversiones de celdas de la planilla."""

    @pytest.mark.parametrize("valor, esperado", [
        ("2026-03-10", date(2026, 3, 10)),
        ("10/03/2026", date(2026, 3, 10)),
        ("10-03-26", date(2026, 3, 10)),
        ("2026/03/10", date(2026, 3, 10)),
        ("10/03/2026 08:30", date(2026, 3, 10)),
        ("2026-03-10T08:30:00", date(2026, 3, 10)),
        (46091, date(2026, 3, 10)),
        (date(2026, 3, 10), date(2026, 3, 10)),
    ])
    def test_parsear_fecha(self, valor, esperado):
        """Test formatos de fecha aceptados."""
        assert parsear_fecha(valor) == esperado

    @pytest.mark.parametrize("valor", [None, "", "mañana", "31/02/2026", 0])
    def test_parsear_fecha_invalida(self, valor):
        """Test fechas que no se pueden interpretar."""
        assert parsear_fecha(valor) is None

    @pytest.mark.parametrize("valor, esperado", [
        (123, 123), (123.0, 123), ("123", 123), ("123.0", 123), (" 42 ", 42),
        ("abc", None), (12.5, None), (None, None), (0, None), (True, None),
    ])
    def test_parsear_id_paciente(self, valor, esperado):
        """Test conversión del id de paciente."""
        assert parsear_id_paciente(valor) == esperado


class TestReconciliar:
    """Tests para reconciliar (sin base de datos)."""

    def test_fila_nueva_entra_en_lila(self, fila_planilla):
        """Test una fila sin cirugía existente se inserta en LILA."""
        resultado = reconciliar([fila_planilla()], {}, default_area_code="264")

        assert len(resultado.to_insert) == 1
        nueva = resultado.to_insert[0].cirugia
        assert nueva.status == EstadoCirugiaEnum.LILA
        assert nueva.clave == (1001, date(2026, 3, 10))
        assert nueva.telefono == "5492645438114"
        assert nueva.telefono_valido is True

    def test_bloque_quirurgico_rechazado(self, fila_planilla):
        """Test filas de bloque quirúrgico no son pacientes."""
        resultado = reconciliar([fila_planilla(nombre="BLOQUE QUIRURGICO")], {})

        assert resultado.to_insert == []
        assert len(resultado.rejected) == 1
        assert "BLOQUE" in resultado.rejected[0].motivo

    def test_prefijo_excluido_sin_distinguir_mayusculas(self, fila_planilla):
        """Test el prefijo se compara sin mayúsculas y sin espacios extremos."""
        resultado = reconciliar([fila_planilla(nombre="  bloque tarde")], {})
        assert len(resultado.rejected) == 1

    @pytest.mark.parametrize("campos", [
        {"modulo": "Fertilidad"},
        {"descripcion": "TRANSFERENCIA EMBRIONARIA - ciclo 2"},
        {"modulo": "Bloque Médico"},
    ])
    def test_modulo_excluido_rechazado(self, fila_planilla, campos):
        """Test módulos que no son cirugías."""
        resultado = reconciliar([fila_planilla(**campos)], {})
        assert len(resultado.rejected) == 1
        assert resultado.rejected[0].motivo.startswith("Módulo excluido")

    def test_modulos_excluidos_se_leen_al_reconciliar(self, fila_planilla, monkeypatch):
        """Test un cambio en settings se aplica sin reiniciar."""
        monkeypatch.setattr(settings, "MODULOS_EXCLUIDOS", ["Odontología"])

        resultado = reconciliar([fila_planilla(modulo="Odontología general")], {})

        assert len(resultado.rejected) == 1
        assert resultado.rejected[0].motivo == "Módulo excluido: Odontología"

    @pytest.mark.parametrize("campos, motivo", [
        ({"nombre": ""}, "Falta el nombre"),
        ({"fecha": "sin fecha"}, "Fecha inválida"),
        ({"id_paciente": "X-12"}, "Id de paciente inválido"),
    ])
    def test_datos_incompletos_rechazados(self, fila_planilla, campos, motivo):
        """Test filas sin nombre, fecha o id de paciente válidos."""
        resultado = reconciliar([fila_planilla(**campos)], {})
        assert len(resultado.rejected) == 1
        assert resultado.rejected[0].motivo.startswith(motivo)
        assert resultado.rejected[0].fila == 1

    def test_numero_de_fila_ilegible_usa_la_posicion(self, fila_planilla):
        """Test un _rowIndex no numérico no invalida la fila."""
        resultado = reconciliar(
            [fila_planilla(_rowIndex=7), fila_planilla(nombre="", _rowIndex="fila dos")], {}
        )

        assert resultado.to_insert[0].fila == 7
        assert resultado.rejected[0].fila == 2

    def test_telefono_invalido_no_rechaza(self, fila_planilla):
        """Test un teléfono inválido no descarta la fila."""
        resultado = reconciliar([fila_planilla(telefono="abc")], {}, default_area_code="264")

        assert resultado.rejected == []
        assert len(resultado.to_insert) == 1
        nueva = resultado.to_insert[0].cirugia
        assert nueva.telefono_valido is False
        assert nueva.telefono == "abc"
        assert resultado.telefonos_invalidos == 1

    def test_alias_de_columnas(self):
        """Test la planilla puede traer los nombres de columna alternativos."""
        fila = {
            "Date_Fecha": "10/03/2026",
            "idPaciente": "1001.0",
            "Nombre": "PEREZ JUAN",
            "telefono1": 2645438114.0,
            "Descrip": "Hernioplastia",
            "GrupoAgendas": "Cirugía General",
        }
        resultado = reconciliar([fila], {})

        nueva = resultado.to_insert[0].cirugia
        assert nueva.clave == (1001, date(2026, 3, 10))
        assert nueva.descripcion == "Hernioplastia"
        assert nueva.grupo_agendas == "Cirugía General"
        assert nueva.telefono == "5492645438114"

    def test_duplicados_en_la_planilla_gana_la_ultima(self, fila_planilla):
        """Test dos filas con la misma clave: queda la última."""
        filas = [
            fila_planilla(motivo="Primera"),
            fila_planilla(motivo="Segunda"),
        ]
        resultado = reconciliar(filas, {})

        assert resultado.duplicados == 1
        assert len(resultado.to_insert) == 1
        assert resultado.to_insert[0].cirugia.motivo == "Segunda"
        assert resultado.to_insert[0].fila == 2

    def test_existente_sin_cambios(self, fila_planilla):
        """Test la misma fila que ya está guardada no genera actualización."""
        filas = [fila_planilla()]
        plan = reconciliar(filas, {}, default_area_code="264")
        guardada = plan.to_insert[0].cirugia

        resultado = reconciliar(filas, {guardada.clave: guardada}, default_area_code="264")

        assert resultado.to_insert == []
        assert resultado.to_update == []
        assert resultado.sin_cambios == [guardada]

    def test_existente_con_cambios_conserva_estado(self, crear_cirugia, fila_planilla):
        """Test una fila con datos nuevos actualiza sin tocar el estado."""
        existente = crear_cirugia(
            id_paciente=1001, status=EstadoCirugiaEnum.VERDE, motivo="Viejo"
        )
        resultado = reconciliar(
            [fila_planilla(motivo="Nuevo")],
            {existente.clave: existente},
            default_area_code="264",
        )

        assert len(resultado.to_update) == 1
        pendiente = resultado.to_update[0]
        assert pendiente.cambios["motivo"] == "Nuevo"
        assert "status" not in pendiente.cambios
        # La cirugía guardada no se modifica hasta importar
        assert existente.motivo == "Viejo"
        assert existente.status == EstadoCirugiaEnum.VERDE


class TestImportacionService:
    """Tests para ImportacionService."""

    def test_importar_inserta_y_cuenta_telefonos(self, session, fila_planilla):
        """Test importación inicial."""
        filas = [
            fila_planilla(),
            fila_planilla(id_paciente=1002, nombre="GOMEZ ANA", telefono="abc"),
            fila_planilla(id_paciente=1003, nombre="BLOQUE QUIRURGICO"),
        ]
        resultado = ImportacionService(session, default_area_code="264").importar(filas)

        assert resultado.insertados == 2
        assert resultado.actualizados == 0
        assert len(resultado.rechazados) == 1
        assert resultado.errores == []
        assert resultado.telefonos == {"validos": 1, "invalidos": 1}
        assert CirugiaRepository(session).contar() == 2

    def test_importar_dos_veces_es_idempotente(self, session, fila_planilla):
        """Test reimportar la misma planilla no crea registros ni cambia estados."""
        filas = [fila_planilla(), fila_planilla(id_paciente=1002, nombre="GOMEZ ANA")]
        service = ImportacionService(session, default_area_code="264")
        service.importar(filas)

        cirugia = session.exec(select(Cirugia).where(Cirugia.id_paciente == 1001)).one()
        cirugia.status = EstadoCirugiaEnum.AMARILLO
        session.add(cirugia)
        session.commit()

        resultado = service.importar(filas)

        assert resultado.insertados == 0
        assert resultado.actualizados == 0
        assert resultado.sin_cambios == 2
        assert CirugiaRepository(session).contar() == 2
        session.refresh(cirugia)
        assert cirugia.status == EstadoCirugiaEnum.AMARILLO

    def test_reimportar_actualiza_datos_descriptivos(self, session, fila_planilla):
        """Test una reimportación con cambios actualiza sin perder el estado."""
        service = ImportacionService(session, default_area_code="264")
        service.importar([fila_planilla()])

        cirugia = session.exec(select(Cirugia)).one()
        cirugia.status = EstadoCirugiaEnum.VERDE
        session.add(cirugia)
        session.commit()

        resultado = service.importar([fila_planilla(medico="Dra. Ruiz", ausente="1")])

        assert resultado.actualizados == 1
        session.refresh(cirugia)
        assert cirugia.medico == "Dra. Ruiz"
        assert cirugia.ausente == "1"
        assert cirugia.status == EstadoCirugiaEnum.VERDE

    def test_reimportar_conserva_la_exclusion(self, session, fila_planilla):
        """Test una cirugía excluida a mano sigue excluida después de reimportar."""
        service = ImportacionService(session, default_area_code="264")
        service.importar([fila_planilla()])
        cirugia = session.exec(select(Cirugia)).one()
        EstadoService(session).actualizar_exclusion(cirugia.id, True, "mgarcia")

        resultado = service.importar([fila_planilla(medico="Dra. Ruiz")])

        assert resultado.actualizados == 1
        session.refresh(cirugia)
        assert cirugia.medico == "Dra. Ruiz"
        assert cirugia.excluido is True

    def test_conflicto_de_clave_se_aplica_como_actualizacion(self, session, crear_cirugia):
        """Test insertar una clave que ya existe actualiza el registro existente."""
        existente = crear_cirugia(id_paciente=2001, motivo="Original")
        repo = CirugiaRepository(session)

        duplicada = Cirugia(
            id_paciente=2001,
            fecha_cirugia=existente.fecha_cirugia,
            nombre="PACIENTE PRUEBA",
            motivo="Desde otra importación",
            telefono="5492645438114",
            telefono_original="2645438114",
            telefono_valido=True,
        )
        resultados = repo.insertar_varias([duplicada])

        assert resultados[0].exito
        assert resultados[0].accion == "actualizada"
        assert resultados[0].cirugia_id == existente.id
        assert repo.contar() == 1
        session.refresh(existente)
        assert existente.motivo == "Desde otra importación"

    def test_previsualizar_no_escribe(self, session, fila_planilla):
        """Test la vista previa no guarda nada."""
        plan = ImportacionService(session, default_area_code="264").previsualizar(
            [fila_planilla(), fila_planilla(id_paciente=1002, telefono="12")]
        )

        assert len(plan.to_insert) == 2
        assert plan.telefonos_invalidos == 1
        assert CirugiaRepository(session).contar() == 0


class TestImportacionApi:
    """Tests para los endpoints de importación."""

    def test_preview(self, client, fila_planilla):
        """Test vista previa con detalle de teléfonos y rechazos."""
        response = client.post(
            "/api/cirugias/importar/preview",
            json={"filas": [
                fila_planilla(),
                fila_planilla(id_paciente=1002, telefono="155438114"),
                fila_planilla(id_paciente=1003, nombre="BLOQUE QUIRURGICO"),
            ]}
        )
        assert response.status_code == status.HTTP_200_OK

        data = response.json()
        assert data["total"] == 3
        assert data["a_insertar"] == 2
        assert data["telefonos_validos"] == 2
        assert data["rechazadas"][0]["fila"] == 3
        assert data["telefonos"][1]["normalized"] == "5492645438114"

    def test_importar(self, client, fila_planilla):
        """Test importación por API y listado posterior."""
        response = client.post(
            "/api/cirugias/importar",
            json={"filas": [fila_planilla(), fila_planilla(id_paciente=1002)]}
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["insertados"] == 2

        response = client.get("/api/cirugias", params={"ausente": "all"})
        assert len(response.json()) == 2
        assert all(c["status"] == "lila" for c in response.json())

    def test_numero_de_fila_no_numerico(self, client, fila_planilla):
        """Test un _rowIndex de texto no rompe la importación."""
        response = client.post(
            "/api/cirugias/importar",
            json={"filas": [fila_planilla(nombre="BLOQUE TARDE", _rowIndex="A1")]}
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["rechazados"][0]["fila"] == 1
