"""
Lock advisory respaldado por una fila con `scope_key` único.

No hay espera ni cola: `acquire` es un único intento. Un holder que murió
sin liberar deja de bloquear cuando vence su TTL, porque el siguiente
`acquire` purga la fila expirada en la misma transacción.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import AsyncIterator, Callable, Optional, Union

from loguru import logger
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.infrastructure.database.models import OperationLockModel
from app.shared.utils.datetime_utils import DateTimeUtils

LOCK_REASON_LOCKED = "locked"
LOCK_REASON_ERROR = "error"


@dataclass(frozen=True)
class LockAcquireResult:
    """Resultado de `OperationLock.acquire`."""

    ok: bool
    reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def locked(self) -> bool:
        return self.reason == LOCK_REASON_LOCKED


def _as_timedelta(ttl: Union[timedelta, float, int]) -> timedelta:
    if isinstance(ttl, timedelta):
        return ttl
    return timedelta(seconds=ttl)


class OperationLock:
    """
    Exclusión mutua por scope sobre la tabla `operation_locks`.

    Args:
        session_factory: Factory de sesiones; cada llamada usa su propia transacción
        clock: Función que retorna "ahora" (aware UTC); inyectable en tests
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        *,
        clock: Callable[[], datetime] = DateTimeUtils.now_utc,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    async def acquire(
        self,
        scope_key: str,
        operation: str,
        ttl: Union[timedelta, float, int],
        *,
        company_id: Optional[int] = None,
        user_id: Optional[str] = None,
    ) -> LockAcquireResult:
        """
        Intenta tomar el lock de `scope_key`.

        Args:
            scope_key: Identificador único de lo que se protege (ej. "SYNC:daily")
            operation: Nombre de la operación (auditoría)
            ttl: Vida del lock (timedelta o segundos)
            company_id: Empresa asociada (opcional)
            user_id: Usuario que dispara la operación (opcional)

        Returns:
            LockAcquireResult: ok=True si se tomó; reason="locked" si otro lo
            tiene; reason="error" ante cualquier otro fallo del store
        """
        now = self._clock()
        expires_at = now + _as_timedelta(ttl)

        async with self._session_factory() as db:
            try:
                await db.execute(
                    delete(OperationLockModel).where(
                        OperationLockModel.scope_key == scope_key,
                        OperationLockModel.expires_at <= now,
                    )
                )
                db.add(
                    OperationLockModel(
                        scope_key=scope_key,
                        operation=operation,
                        company_id=company_id,
                        user_id=user_id,
                        expires_at=expires_at,
                    )
                )
                await db.commit()
            except IntegrityError:
                await db.rollback()
                logger.warning(f"Lock ocupado: scope_key={scope_key} operation={operation}")
                return LockAcquireResult(ok=False, reason=LOCK_REASON_LOCKED)
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"Error tomando lock {scope_key}: {e}")
                return LockAcquireResult(ok=False, reason=LOCK_REASON_ERROR, error=str(e))

        logger.debug(f"Lock tomado: scope_key={scope_key} expires_at={expires_at.isoformat()}")
        return LockAcquireResult(ok=True)

    async def release(self, scope_key: str) -> None:
        """Libera el lock. Idempotente: no falla si no existe."""
        async with self._session_factory() as db:
            await db.execute(delete(OperationLockModel).where(OperationLockModel.scope_key == scope_key))
            await db.commit()
        logger.debug(f"Lock liberado: scope_key={scope_key}")

    @asynccontextmanager
    async def held(
        self,
        scope_key: str,
        operation: str,
        ttl: Union[timedelta, float, int],
        *,
        company_id: Optional[int] = None,
        user_id: Optional[str] = None,
    ) -> AsyncIterator[LockAcquireResult]:
        """
        Context manager: intenta tomar el lock y lo libera al salir si se tomó.

        El llamador debe revisar `result.ok` antes de trabajar.
        """
        result = await self.acquire(scope_key, operation, ttl, company_id=company_id, user_id=user_id)
        try:
            yield result
        finally:
            if result.ok:
                await self.release(scope_key)
