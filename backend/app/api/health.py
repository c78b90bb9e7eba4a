"""
Endpoints de Health Check.
"""
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from datetime import datetime

from app.config import settings
from app.core.database import check_database_health

router = APIRouter(
    prefix="/health",
    tags=["health"],
    responses={
        200: {"description": "Sistema saludable"},
        503: {"description": "Base de datos no disponible"}
    }
)


@router.get("", summary="Health Check General", response_model=None)
def health_check() -> JSONResponse:
    """
    Estado de la aplicación y de la base de datos.
    Retorna 503 si la base no responde.
    """
    db_ok = check_database_health()
    return JSONResponse(
        status_code=status.HTTP_200_OK if db_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if db_ok else "unhealthy",
            "database": "ok" if db_ok else "error",
            "timestamp": datetime.now().isoformat(),
            "version": settings.APP_VERSION,
            "environment": settings.APP_ENV,
        }
    )
