"""
Excepciones relacionadas con la lógica de dominio.
"""
from typing import Any

from app.shared.exceptions.base import AppException


class DomainException(AppException):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR", details=None):
        super().__init__(
            message=message,
            status_code=400,
            error_code=error_code,
            details=details
        )


class EntityNotFoundException(DomainException):
    """Excepción cuando no se encuentra una entidad."""

    def __init__(self, entity_name: str, entity_id: Any):
        super().__init__(
            message=f"{entity_name} con ID {entity_id} no encontrado",
            error_code="ENTITY_NOT_FOUND",
            details={"entity": entity_name, "id": str(entity_id)}
        )
        self.status_code = 404


class ValidationException(DomainException):
    """Excepción para errores de validación."""

    def __init__(self, message: str, field: str = None):
        details = {"field": field} if field else None
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details=details
        )


class OperationLockedException(DomainException):
    """Excepcion cuando otra ejecucion del mismo scope tiene el lock."""

    def __init__(self, scope_key: str):
        super().__init__(
            message=f"La operacion '{scope_key}' ya esta en curso",
            error_code="OPERATION_LOCKED",
            details={"scope_key": scope_key}
        )
        self.status_code = 429


class SyncJobAlreadyRunningException(DomainException):
    """Excepcion cuando la empresa ya tiene un job en estado processing."""

    def __init__(self, company_id: int, job_id: int):
        super().__init__(
            message="La sincronizacion ya esta en curso para esta empresa",
            error_code="SYNC_ALREADY_RUNNING",
            details={"company_id": company_id, "job_id": job_id}
        )
        self.status_code = 409


class SyncJobNotCancellableException(DomainException):
    """Excepcion cuando se intenta cancelar un job que no esta en processing."""

    def __init__(self, job_id: int, status: str):
        super().__init__(
            message="Solo se pueden cancelar jobs en estado processing",
            error_code="SYNC_JOB_NOT_CANCELLABLE",
            details={"job_id": job_id, "status": status}
        )
        self.status_code = 409


class InvalidSyncJobTransitionException(DomainException):
    """Excepcion cuando se intenta mover un job que ya esta en estado terminal."""

    def __init__(self, job_id: int, current: str, target: str):
        super().__init__(
            message=f"Transicion invalida del job {job_id}: {current} -> {target}",
            error_code="INVALID_SYNC_JOB_TRANSITION",
            details={"job_id": job_id, "current": current, "target": target}
        )
        self.status_code = 409
