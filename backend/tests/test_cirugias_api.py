"""
Tests para los endpoints de consulta de cirugías.
"""
from datetime import date

from fastapi import status
from sqlmodel import select

from app.models.enums import EstadoCirugiaEnum
from app.models.evento_cirugia import EventoCirugia
from app.models.notificacion import NotificacionCirugia
from app.services.estado_service import EstadoService


class TestListarCirugias:
    """Tests para el listado."""

    def test_listar_pendientes_por_defecto(self, client, crear_cirugia):
        """Test por defecto solo se listan las cirugías sin resultado."""
        crear_cirugia(nombre="PENDIENTE")
        crear_cirugia(nombre="REALIZADA", ausente="0")
        crear_cirugia(nombre="SUSPENDIDA", ausente="1")

        response = client.get("/api/cirugias")
        assert response.status_code == status.HTTP_200_OK
        assert [c["nombre"] for c in response.json()] == ["PENDIENTE"]

    def test_filtros_de_ausente(self, client, crear_cirugia):
        """Test filtros completed, suspended, history y all."""
        crear_cirugia(nombre="PENDIENTE")
        crear_cirugia(nombre="REALIZADA", ausente="0")
        crear_cirugia(nombre="SUSPENDIDA", ausente="1")

        def nombres(filtro):
            response = client.get("/api/cirugias", params={"ausente": filtro})
            return sorted(c["nombre"] for c in response.json())

        assert nombres("completed") == ["REALIZADA"]
        assert nombres("suspended") == ["SUSPENDIDA"]
        assert nombres("history") == ["REALIZADA", "SUSPENDIDA"]
        assert nombres("all") == ["PENDIENTE", "REALIZADA", "SUSPENDIDA"]

    def test_filtro_por_estado_y_fechas(self, client, crear_cirugia):
        """Test filtrar por estado y rango de fechas."""
        crear_cirugia(fecha_cirugia=date(2026, 3, 9), status=EstadoCirugiaEnum.VERDE, nombre="A")
        crear_cirugia(fecha_cirugia=date(2026, 3, 10), status=EstadoCirugiaEnum.VERDE, nombre="B")
        crear_cirugia(fecha_cirugia=date(2026, 3, 10), nombre="C")

        response = client.get("/api/cirugias", params={"status": "verde"})
        assert [c["nombre"] for c in response.json()] == ["A", "B"]

        response = client.get("/api/cirugias", params={"desde": "2026-03-10", "hasta": "2026-03-10"})
        assert [c["nombre"] for c in response.json()] == ["B", "C"]

    def test_excluidas_no_se_listan(self, client, crear_cirugia):
        """Test las filas excluidas no aparecen."""
        crear_cirugia(excluido=True)
        response = client.get("/api/cirugias", params={"ausente": "all"})
        assert response.json() == []


class TestDetalleCirugia:
    """Tests para detalle y purga."""

    def test_detalle_con_eventos(self, client, session, crear_cirugia):
        """Test el detalle incluye el historial."""
        cirugia = crear_cirugia()
        EstadoService(session).marcar_documentacion_recibida(cirugia.id, operador="bot")

        response = client.get(f"/api/cirugias/{cirugia.id}")
        assert response.status_code == status.HTTP_200_OK

        data = response.json()
        assert data["status"] == "amarillo"
        assert len(data["eventos"]) == 1
        assert data["eventos"][0]["from_status"] == "lila"
        assert data["eventos"][0]["to_status"] == "amarillo"

    def test_detalle_inexistente(self, client):
        """Test cirugía que no existe."""
        response = client.get("/api/cirugias/no-existe")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_purgar_borra_historial_y_notificaciones(self, client, session, crear_cirugia):
        """Test la purga elimina la cirugía con sus registros asociados."""
        cirugia = crear_cirugia()
        cirugia_id = cirugia.id
        EstadoService(session).marcar_problema(cirugia_id, "Sin cama", "admin")
        session.add(NotificacionCirugia(cirugia_id=cirugia_id, umbral_horas=72, telefono=cirugia.telefono))
        session.commit()

        response = client.delete(f"/api/cirugias/{cirugia_id}")
        assert response.status_code == status.HTTP_200_OK

        assert client.get(f"/api/cirugias/{cirugia_id}").status_code == status.HTTP_404_NOT_FOUND
        assert session.exec(select(EventoCirugia)).all() == []
        assert session.exec(select(NotificacionCirugia)).all() == []

    def test_purgar_inexistente(self, client):
        """Test purgar una cirugía que no existe."""
        response = client.delete("/api/cirugias/no-existe")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestExclusion:
    """Tests para excluir e incluir cirugías a mano."""

    def test_excluir_y_volver_a_incluir(self, client, crear_cirugia):
        """Test una cirugía excluida sale del listado y de las estadísticas."""
        cirugia = crear_cirugia(nombre="PEREZ JUAN")

        response = client.put(
            f"/api/cirugias/{cirugia.id}/excluido", json={"excluido": True, "operador": "mgarcia"}
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["excluido"] is True
        assert client.get("/api/cirugias").json() == []
        assert client.get("/api/cirugias/estadisticas").json()["lila"] == 0

        response = client.put(f"/api/cirugias/{cirugia.id}/excluido", json={"excluido": False})
        assert response.json()["excluido"] is False
        assert [c["nombre"] for c in client.get("/api/cirugias").json()] == ["PEREZ JUAN"]

    def test_excluir_cirugia_inexistente(self, client):
        response = client.put("/api/cirugias/no-existe/excluido", json={"excluido": True})
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestEstadisticas:
    """Tests para el endpoint de estadísticas."""

    def test_estadisticas(self, client, crear_cirugia):
        """Test conteos por estado y por resultado."""
        crear_cirugia()
        crear_cirugia()
        crear_cirugia(status=EstadoCirugiaEnum.VERDE, ausente="0")
        crear_cirugia(status=EstadoCirugiaEnum.ROJO, ausente="1")
        crear_cirugia(excluido=True)

        response = client.get("/api/cirugias/estadisticas")
        assert response.status_code == status.HTTP_200_OK

        data = response.json()
        assert data["lila"] == 2
        assert data["verde"] == 1
        assert data["rojo"] == 1
        assert data["amarillo"] == 0
        assert data["realizada"] == 1
        assert data["suspendida"] == 1
        assert data["total"] == 4


class TestHealth:
    """Tests para el health check."""

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == status.HTTP_200_OK
