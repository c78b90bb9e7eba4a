"""
Configuración centralizada de la aplicación.
Todas las configuraciones en un solo lugar para fácil mantenimiento.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Configuración principal del sistema."""

    # ============================================
    # APLICACIÓN
    # ============================================
    APP_TITLE: str = "Sistema de Gestión de Cirugías"
    APP_DESCRIPTION: str = "Importación de planillas quirúrgicas y confirmación por WhatsApp"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"
    DEBUG: bool = False

    # ============================================
    # BASE DE DATOS
    # ============================================
    DATABASE_URL: str = "sqlite:///./gestion_cirugias.db"

    # ============================================
    # CORS
    # ============================================
    CORS_ORIGINS: List[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["*"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    # ============================================
    # TELÉFONOS
    # ============================================
    DEFAULT_AREA_CODE: str = "264"  # San Juan

    # ============================================
    # IMPORTACIÓN DE PLANILLAS
    # ============================================
    MODULOS_EXCLUIDOS: List[str] = [
        "Transferencia embrionaria",
        "Fertilidad",
        "Bloque Médico",
    ]
    PREFIJOS_NOMBRE_EXCLUIDOS: List[str] = ["BLOQUE"]

    # ============================================
    # NOTIFICACIONES AUTOMÁTICAS
    # ============================================
    NOTIFICACION_UMBRALES_HORAS: List[int] = [72, 48]
    HORA_REFERENCIA_CIRUGIA: int = 8  # hora local asumida para fecha_cirugia
    PROCESO_NOTIFICACIONES_ACTIVO: bool = False
    PROCESO_NOTIFICACIONES_INTERVALO: int = 900  # segundos
    ENVIO_TIMEOUT_SEGUNDOS: float = 20.0
    ENVIO_MAX_WORKERS: int = 4
    CONFIG_CACHE_TTL_SEGUNDOS: int = 60

    # ============================================
    # WHATSAPP (BuilderBot)
    # ============================================
    BUILDERBOT_URL: str = ""
    BUILDERBOT_API_KEY: str = ""

    # ============================================
    # LOGGING
    # ============================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Instancia global de configuración
settings = Settings()
