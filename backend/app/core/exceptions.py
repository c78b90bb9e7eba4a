"""
Excepciones personalizadas del sistema.

Los errores de normalización de teléfonos y las filas rechazadas NO son
excepciones: se informan en los resultados de importación. Estas clases
cubren los casos en que una operación no puede continuar.
"""


class BaseAppException(Exception):
    """
    Excepción base de la aplicación.
    Todas las excepciones personalizadas heredan de esta.
    """
    def __init__(self, message: str, code: str = "ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


# ============================================
# ERRORES DE NO ENCONTRADO
# ============================================

class NotFoundError(BaseAppException):
    """Recurso no encontrado."""
    def __init__(self, resource: str, identifier: str):
        super().__init__(
            f"{resource} con identificador '{identifier}' no encontrado",
            "NOT_FOUND"
        )
        self.resource = resource
        self.identifier = identifier


class CirugiaNotFoundError(NotFoundError):
    """Cirugía no encontrada."""
    def __init__(self, cirugia_id: str):
        super().__init__("Cirugía", cirugia_id)


# ============================================
# ERRORES DE NOTIFICACIÓN
# ============================================

class NotificacionError(BaseAppException):
    """El proveedor de mensajería rechazó o no confirmó un envío."""
    def __init__(self, message: str, telefono: str = None):
        super().__init__(message, "NOTIFICACION_ERROR")
        self.telefono = telefono


class TelefonoInvalidoError(NotificacionError):
    """Se intentó enviar a un teléfono que no está en formato canónico."""
    def __init__(self, telefono: str):
        super().__init__(
            f"Teléfono '{telefono}' no normalizado, no se puede enviar",
            telefono
        )


# ============================================
# ERRORES DE CONFIGURACIÓN
# ============================================

class ConfiguracionError(BaseAppException):
    """Valor de configuración inválido."""
    def __init__(self, message: str):
        super().__init__(message, "CONFIGURACION_ERROR")
