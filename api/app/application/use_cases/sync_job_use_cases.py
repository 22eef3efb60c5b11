"""
Máquina de estados de los jobs de sincronización de declaraciones.

    processing -> completed | cancelled | error

Los estados terminales son finales. Los contadores de progreso solo crecen.
Un error de chunk se agrega a `sync_job_errors` y el job sigue: puede
terminar `completed` con errores registrados. La cancelación la pide un
operador y el loop la observa entre chunks; lo ya guardado no se revierte.

Ninguna operación hace commit: el llamador define la unidad de trabajo.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from loguru import logger
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.models import OperationLogModel, SyncJobErrorModel, SyncJobModel
from app.infrastructure.repositories.sync_job_repository import SyncJobRepository
from app.shared.constants.sync_constants import (
    ERROR_MESSAGE_MAX_LENGTH,
    OPERATION_ADMIN_CANCEL_SYNC_JOB,
    SYNC_JOB_PAGE_SIZE_DEFAULT,
    SYNC_JOB_PAGE_SIZE_MAX,
    OperationStatus,
    SyncJobStatus,
)
from app.shared.exceptions.domain import (
    EntityNotFoundException,
    InvalidSyncJobTransitionException,
    SyncJobNotCancellableException,
)
from app.shared.utils.datetime_utils import DateTimeUtils
from app.shared.utils.period_splitter import DateRange

CHUNK_ERROR_MAX_LENGTH = 2000


def truncate(message: Optional[str], limit: int = ERROR_MESSAGE_MAX_LENGTH) -> Optional[str]:
    if message is None:
        return None
    return message[:limit]


class SyncJobUseCases:
    """
    Transiciones y consultas de `sync_jobs`.

    Args:
        db: Sesión de base de datos
        clock: Función que retorna "ahora" (aware UTC)
    """

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = DateTimeUtils.now_utc):
        self.db = db
        self.repository = SyncJobRepository(db)
        self._clock = clock

    async def create(
        self,
        company_id: int,
        date_from: datetime,
        date_to: datetime,
        total_chunks: int,
    ) -> SyncJobModel:
        job = await self.repository.create(
            company_id=company_id,
            status=SyncJobStatus.PROCESSING.value,
            date_from=date_from,
            date_to=date_to,
            total_chunks_60_1=total_chunks,
            completed_chunks_60_1=0,
            total_guids=0,
            completed_61_1=0,
        )
        logger.info(f"SyncJob {job.id} creado para empresa {company_id} ({total_chunks} chunks)")
        return job

    async def get(self, job_id: int) -> SyncJobModel:
        job = await self.repository.get_by_id(job_id)
        if job is None:
            raise EntityNotFoundException("SyncJob", job_id)
        return job

    async def get_active_for_company(self, company_id: int) -> Optional[SyncJobModel]:
        return await self.repository.get_processing_for_company(company_id)

    async def is_cancelled(self, job_id: int) -> bool:
        """True si el job fue cancelado (o ya no existe)."""
        status = await self.repository.get_status(job_id)
        return status is None or status == SyncJobStatus.CANCELLED.value

    async def set_phase_1_total(self, job_id: int, total_chunks: int) -> None:
        await self.repository.update_fields(job_id, total_chunks_60_1=total_chunks, updated_at=self._clock())

    async def complete_chunk(self, job_id: int) -> None:
        """Incrementa el progreso de fase 1."""
        await self.db.execute(
            update(SyncJobModel)
            .where(SyncJobModel.id == job_id)
            .values(
                completed_chunks_60_1=SyncJobModel.completed_chunks_60_1 + 1,
                updated_at=self._clock(),
            )
            .execution_options(synchronize_session=False)
        )

    async def record_chunk_error(
        self,
        job_id: int,
        chunk_number: int,
        chunk: DateRange,
        message: str,
        *,
        error_code: Optional[str],
        retry_attempts: int,
        is_retried: bool,
    ) -> SyncJobErrorModel:
        """Agrega el error de un chunk; el job sigue en processing."""
        logger.warning(f"SyncJob {job_id}: chunk {chunk_number} falló ({error_code}): {message}")
        return await self.repository.add_error(
            sync_job_id=job_id,
            chunk_number=chunk_number,
            date_from=chunk.start,
            date_to=chunk.end,
            error_message=truncate(message, CHUNK_ERROR_MAX_LENGTH),
            error_code=error_code,
            retry_attempts=retry_attempts,
            is_retried=is_retried,
        )

    async def set_total_guids(self, job_id: int, total_guids: int, error_message: Optional[str] = None) -> None:
        """Cierra la fase 1: total de GUIDs a detallar y resumen de errores."""
        await self.repository.update_fields(
            job_id,
            total_guids=total_guids,
            error_message=truncate(error_message),
            updated_at=self._clock(),
        )

    async def set_completed_guids(self, job_id: int, completed: int) -> None:
        """Persiste el progreso de fase 2 sin retroceder nunca el contador."""
        await self.db.execute(
            update(SyncJobModel)
            .where(SyncJobModel.id == job_id, SyncJobModel.completed_61_1 < completed)
            .values(completed_61_1=completed, updated_at=self._clock())
            .execution_options(synchronize_session=False)
        )

    async def complete_guid(self, job_id: int) -> None:
        """Incrementa en uno el progreso de fase 2."""
        await self.db.execute(
            update(SyncJobModel)
            .where(SyncJobModel.id == job_id)
            .values(completed_61_1=SyncJobModel.completed_61_1 + 1, updated_at=self._clock())
            .execution_options(synchronize_session=False)
        )

    async def complete(self, job_id: int) -> None:
        await self._transition(job_id, SyncJobStatus.COMPLETED)

    async def fail(self, job_id: int, message: str) -> None:
        await self._transition(job_id, SyncJobStatus.ERROR, error_message=truncate(message))

    async def cancel(self, job_id: int) -> SyncJobModel:
        """
        Cancela un job en processing.

        Raises:
            EntityNotFoundException: Si el job no existe
            SyncJobNotCancellableException: Si el job no está en processing
        """
        job = await self.get(job_id)
        cancelled = await self.repository.transition(
            job_id,
            SyncJobStatus.PROCESSING.value,
            status=SyncJobStatus.CANCELLED.value,
            cancelled_at=self._clock(),
            updated_at=self._clock(),
        )
        if not cancelled:
            status = await self.repository.get_status(job_id)
            raise SyncJobNotCancellableException(job_id, status or job.status)
        await self.db.refresh(job)
        logger.info(f"SyncJob {job_id} cancelado")
        return job

    async def cancel_for_company(self, company_id: int) -> Optional[SyncJobModel]:
        """Cancela el job activo de la empresa, si hay uno."""
        job = await self.repository.get_processing_for_company(company_id)
        if job is None:
            return None
        return await self.cancel(job.id)

    async def cancel_by_id(self, job_id: int, user_id: Optional[str] = None) -> SyncJobModel:
        """Cancelación administrativa: registra la operación en la misma transacción."""
        job = await self.cancel(job_id)
        now = self._clock()
        self.db.add(
            OperationLogModel(
                operation=OPERATION_ADMIN_CANCEL_SYNC_JOB,
                status=OperationStatus.SUCCESS.value,
                company_id=job.company_id,
                user_id=user_id,
                meta={"sync_job_id": job.id},
                started_at=now,
                finished_at=now,
                duration_ms=0,
            )
        )
        await self.db.flush()
        return job

    async def list_jobs(
        self,
        *,
        status: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        query: Optional[str] = None,
        page: int = 1,
        page_size: int = SYNC_JOB_PAGE_SIZE_DEFAULT,
    ) -> Dict[str, Any]:
        """Listado administrativo paginado (status "all" o vacío = todos)."""
        page = max(1, page)
        page_size = max(1, min(SYNC_JOB_PAGE_SIZE_MAX, page_size))
        rows, total = await self.repository.list_jobs(
            status=None if status in (None, "", "all") else status,
            created_from=created_from,
            created_to=created_to,
            query=query or None,
            page=page,
            page_size=page_size,
        )
        return {"items": rows, "total": total, "page": page, "page_size": page_size}

    async def get_errors(self, job_id: int) -> List[SyncJobErrorModel]:
        await self.get(job_id)
        return await self.repository.get_errors(job_id)

    async def _transition(self, job_id: int, target: SyncJobStatus, **fields: Any) -> None:
        moved = await self.repository.transition(
            job_id,
            SyncJobStatus.PROCESSING.value,
            status=target.value,
            updated_at=self._clock(),
            **fields,
        )
        if moved:
            logger.info(f"SyncJob {job_id} -> {target.value}")
            return
        current = await self.repository.get_status(job_id)
        if current is None:
            raise EntityNotFoundException("SyncJob", job_id)
        raise InvalidSyncJobTransitionException(job_id, current, target.value)
