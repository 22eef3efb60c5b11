"""
Repositorio de jobs de sincronización y sus errores por chunk.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.models import CompanyModel, SyncJobErrorModel, SyncJobModel
from app.shared.constants.sync_constants import SyncJobStatus


class SyncJobRepository:
    """Acceso a `sync_jobs` y `sync_job_errors`."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, job_id: int) -> Optional[SyncJobModel]:
        return await self.db.get(SyncJobModel, job_id)

    async def get_status(self, job_id: int) -> Optional[str]:
        """Lee el estado sin pasar por el identity map (lo puede cambiar otro proceso)."""
        result = await self.db.execute(select(SyncJobModel.status).where(SyncJobModel.id == job_id))
        return result.scalar_one_or_none()

    async def get_processing_for_company(self, company_id: int) -> Optional[SyncJobModel]:
        result = await self.db.execute(
            select(SyncJobModel)
            .where(
                SyncJobModel.company_id == company_id,
                SyncJobModel.status == SyncJobStatus.PROCESSING.value,
            )
            .order_by(SyncJobModel.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> SyncJobModel:
        job = SyncJobModel(**fields)
        self.db.add(job)
        await self.db.flush()
        return job

    async def update_fields(self, job_id: int, **fields: Any) -> None:
        await self.db.execute(update(SyncJobModel).where(SyncJobModel.id == job_id).values(**fields))

    async def transition(self, job_id: int, from_status: str, **fields: Any) -> bool:
        """
        UPDATE condicionado al estado actual (compare-and-set).

        Returns:
            bool: True si la fila seguía en `from_status` y se actualizó
        """
        result = await self.db.execute(
            update(SyncJobModel)
            .where(SyncJobModel.id == job_id, SyncJobModel.status == from_status)
            .values(**fields)
        )
        return result.rowcount == 1

    async def add_error(self, **fields: Any) -> SyncJobErrorModel:
        error = SyncJobErrorModel(**fields)
        self.db.add(error)
        await self.db.flush()
        return error

    async def count_errors(self, job_id: int) -> int:
        result = await self.db.execute(
            select(func.count(SyncJobErrorModel.id)).where(SyncJobErrorModel.sync_job_id == job_id)
        )
        return int(result.scalar_one() or 0)

    async def get_errors(self, job_id: int) -> List[SyncJobErrorModel]:
        result = await self.db.execute(
            select(SyncJobErrorModel)
            .where(SyncJobErrorModel.sync_job_id == job_id)
            .order_by(SyncJobErrorModel.chunk_number, SyncJobErrorModel.id)
        )
        return list(result.scalars().all())

    async def list_jobs(
        self,
        *,
        status: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        query: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Lista jobs con nombre de empresa y cantidad de errores.

        Returns:
            Tuple[List[dict], int]: filas de la página y total
        """
        errors_count = (
            select(func.count(SyncJobErrorModel.id))
            .where(SyncJobErrorModel.sync_job_id == SyncJobModel.id)
            .correlate(SyncJobModel)
            .scalar_subquery()
        )

        conditions = []
        if status:
            conditions.append(SyncJobModel.status == status)
        if created_from:
            conditions.append(SyncJobModel.created_at >= created_from)
        if created_to:
            conditions.append(SyncJobModel.created_at <= created_to)
        if query:
            pattern = f"%{query.strip()}%"
            conditions.append(or_(CompanyModel.name.ilike(pattern), CompanyModel.edrpou.ilike(pattern)))

        base = select(SyncJobModel.id).join(CompanyModel, CompanyModel.id == SyncJobModel.company_id)
        if conditions:
            base = base.where(*conditions)
        total = await self.db.execute(select(func.count()).select_from(base.subquery()))

        stmt = (
            select(SyncJobModel, CompanyModel.name, CompanyModel.edrpou, errors_count.label("errors_count"))
            .join(CompanyModel, CompanyModel.id == SyncJobModel.company_id)
            .order_by(SyncJobModel.created_at.desc(), SyncJobModel.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        if conditions:
            stmt = stmt.where(*conditions)

        result = await self.db.execute(stmt)
        rows = [
            {
                "job": job,
                "company_name": company_name,
                "company_edrpou": company_edrpou,
                "errors_count": int(count or 0),
            }
            for job, company_name, company_edrpou, count in result.all()
        ]
        return rows, int(total.scalar_one() or 0)
