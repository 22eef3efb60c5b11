"""
Excepciones relacionadas con autenticación y autorización.
"""
from app.shared.exceptions.base import AppException


class AuthException(AppException):
    """Excepción base para errores de autenticación."""

    def __init__(self, message: str, error_code: str = "AUTH_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=401,
            error_code=error_code,
            details=details
        )


class UnauthorizedException(AuthException):
    """Excepción para acceso no autorizado (secreto o token inválido)."""

    def __init__(self, message: str = "No autorizado"):
        super().__init__(
            message=message,
            error_code="UNAUTHORIZED"
        )


class ForbiddenException(AppException):
    """Excepción para acceso prohibido (rol insuficiente)."""

    def __init__(self, message: str = "Acceso prohibido"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="FORBIDDEN"
        )


class ServerMisconfiguredException(AppException):
    """Excepción cuando falta configuración obligatoria en el servidor."""

    def __init__(self, setting_name: str):
        super().__init__(
            message=f"Configuracion del servidor incompleta: {setting_name}",
            status_code=500,
            error_code="SERVER_MISCONFIGURED",
            details={"setting": setting_name}
        )
