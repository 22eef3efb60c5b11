"""
Auditoría de operaciones: cada `start` se cierra exactamente una vez con `finish`.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Dict, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.infrastructure.database.models import OperationLogModel
from app.shared.constants.sync_constants import ERROR_MESSAGE_MAX_LENGTH, OperationStatus
from app.shared.utils.datetime_utils import DateTimeUtils


@dataclass
class OperationLogHandle:
    """
    Handle mutable que recibe el bloque `track`.

    El bloque puede ajustar el estado final, los detalles y la meta antes de salir.
    """

    log_id: int
    status: OperationStatus = OperationStatus.SUCCESS
    details: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)


def _status_value(status: Any) -> str:
    return status.value if isinstance(status, OperationStatus) else str(status)


class OperationLog:
    """
    Registro de operaciones en `operation_logs`.

    Args:
        session_factory: Factory de sesiones
        clock: Función que retorna "ahora" (aware UTC)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        *,
        clock: Callable[[], datetime] = DateTimeUtils.now_utc,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    async def start(
        self,
        operation: str,
        *,
        company_id: Optional[int] = None,
        user_id: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> int:
        """
        Crea un registro en estado `started`.

        Returns:
            int: ID del registro
        """
        async with self._session_factory() as db:
            entry = OperationLogModel(
                operation=operation,
                status=OperationStatus.STARTED.value,
                company_id=company_id,
                user_id=user_id,
                meta=meta or {},
                started_at=self._clock(),
            )
            db.add(entry)
            await db.commit()
            return entry.id

    async def finish(
        self,
        log_id: int,
        status: OperationStatus,
        *,
        details: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Cierra el registro con un estado terminal y calcula la duración.

        Un registro ya cerrado no se vuelve a modificar.
        """
        async with self._session_factory() as db:
            entry = await db.get(OperationLogModel, log_id)
            if entry is None:
                logger.warning(f"OperationLog {log_id} no existe; se ignora finish")
                return
            if entry.status != OperationStatus.STARTED.value:
                logger.warning(f"OperationLog {log_id} ya finalizado con estado {entry.status}")
                return

            finished_at = self._clock()
            started_at = DateTimeUtils.ensure_utc(entry.started_at)
            elapsed = DateTimeUtils.ensure_utc(finished_at) - started_at

            entry.status = _status_value(status)
            entry.details = details[:ERROR_MESSAGE_MAX_LENGTH] if details else None
            entry.finished_at = finished_at
            entry.duration_ms = max(0, int(elapsed.total_seconds() * 1000))
            if meta:
                entry.meta = {**(entry.meta or {}), **meta}
            await db.commit()

    async def record(
        self,
        operation: str,
        status: OperationStatus,
        *,
        company_id: Optional[int] = None,
        user_id: Optional[str] = None,
        details: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Registra una operación que terminó sin ejecutarse (ej. `blocked`)."""
        now = self._clock()
        async with self._session_factory() as db:
            entry = OperationLogModel(
                operation=operation,
                status=_status_value(status),
                company_id=company_id,
                user_id=user_id,
                details=details,
                meta=meta or {},
                started_at=now,
                finished_at=now,
                duration_ms=0,
            )
            db.add(entry)
            await db.commit()
            return entry.id

    @asynccontextmanager
    async def track(
        self,
        operation: str,
        *,
        company_id: Optional[int] = None,
        user_id: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[OperationLogHandle]:
        """
        Envuelve un bloque: `started` al entrar, `success` (o el estado del
        handle) al salir, `error` con el mensaje si el bloque lanza.
        """
        log_id = await self.start(operation, company_id=company_id, user_id=user_id, meta=meta)
        handle = OperationLogHandle(log_id=log_id)
        try:
            yield handle
        except Exception as exc:
            await self.finish(log_id, OperationStatus.ERROR, details=str(exc), meta=handle.meta)
            raise
        await self.finish(log_id, handle.status, details=handle.details, meta=handle.meta)
