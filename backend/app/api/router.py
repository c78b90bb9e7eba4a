"""
Router principal que agrupa todos los sub-routers.
"""
from fastapi import APIRouter

from app.api import health
from app.api import cirugias
from app.api import notificaciones
from app.api import telefonos
from app.api import configuracion

api_router = APIRouter()

# ============================================
# INCLUIR TODOS LOS ROUTERS
# ============================================

api_router.include_router(health.router)

api_router.include_router(
    cirugias.router,
    prefix="/cirugias",
    tags=["Cirugías"]
)

api_router.include_router(
    notificaciones.router,
    prefix="/notificaciones",
    tags=["Notificaciones"]
)

api_router.include_router(
    telefonos.router,
    prefix="/telefonos",
    tags=["Teléfonos"]
)

api_router.include_router(
    configuracion.router,
    prefix="/configuracion",
    tags=["Configuración"]
)
