"""
API Principal del Sistema de Gestión de Cirugías.
Importación de planillas quirúrgicas, estados y avisos por WhatsApp.
"""
import asyncio

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.router import api_router
from app.config import settings
from app.core.background_tasks import cerrar_envios_en_curso, proceso_notificaciones
from app.core.database import create_db_and_tables
from app.services.notificacion_service import envios_en_curso
from app.utils.logger import configurar_logging

logger = configurar_logging()

# Crear aplicación
app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION
)

# Configurar CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

app.include_router(api_router, prefix="/api")


# ============================================
# EVENTOS DE INICIO Y CIERRE
# ============================================

@app.on_event("startup")
async def on_startup():
    create_db_and_tables()

    if settings.PROCESO_NOTIFICACIONES_ACTIVO:
        asyncio.create_task(proceso_notificaciones())
    else:
        logger.info("Proceso de notificaciones desactivado (PROCESO_NOTIFICACIONES_ACTIVO=false)")


@app.on_event("shutdown")
async def on_shutdown():
    if not len(envios_en_curso):
        return
    sin_terminar = await asyncio.to_thread(cerrar_envios_en_curso, settings.ENVIO_TIMEOUT_SEGUNDOS)
    if sin_terminar:
        logger.warning(f"{sin_terminar} avisos siguen en el proveedor al cerrar, sin registrar")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
