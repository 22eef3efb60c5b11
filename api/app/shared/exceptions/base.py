"""
Excepción base de la aplicación.

Cada subclase fija su código HTTP y un `error_code` estable que los
clientes usan para distinguir casos (OPERATION_LOCKED, SYNC_ALREADY_RUNNING...).
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Error de dominio con representación HTTP.

    Args:
        message: Mensaje legible
        status_code: Código de estado HTTP
        error_code: Código estable para clientes
        details: Datos adicionales (se serializan tal cual)
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error_code, "message": self.message, "details": self.details}
