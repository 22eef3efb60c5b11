"""
Casos de uso del resumen derivado de declaraciones.

El resumen es una proyección recalculable en cualquier momento desde
`xml_data`: recalcularlo con el mismo payload deja exactamente el mismo
estado (upsert por declaration_id + reemplazo de códigos HS).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.services.declaration_summary_extractor import has_61_1_data
from app.application.services.declaration_xml_mapper import SummaryData, extract_summary
from app.infrastructure.database.models import DeclarationModel
from app.infrastructure.repositories.declaration_repository import DeclarationRepository
from app.shared.constants.sync_constants import BACKFILL_DEFAULT_BATCH_SIZE, BACKFILL_MAX_BATCH_SIZE
from app.shared.utils.statistics_cache import StatisticsCache


@dataclass(frozen=True)
class BackfillBatchResult:
    processed: int
    updated: int
    next_cursor: Optional[int]
    done: bool
    batch_size: int


def clamp_batch_size(batch_size: Optional[int]) -> int:
    if batch_size is None:
        return BACKFILL_DEFAULT_BATCH_SIZE
    return max(1, min(BACKFILL_MAX_BATCH_SIZE, int(batch_size)))


class DeclarationSummaryUseCases:
    """
    Recalculo de resúmenes.

    No hace commit: el llamador define la unidad de trabajo (request o chunk).
    """

    def __init__(self, db: AsyncSession, statistics_cache: Optional[StatisticsCache] = None):
        self.db = db
        self.repository = DeclarationRepository(db)
        self.statistics_cache = statistics_cache

    async def update_declaration_summary(
        self,
        declaration_id: int,
        payload: Any,
        company_id: Optional[int] = None,
    ) -> Optional[SummaryData]:
        """
        Recalcula y guarda el resumen de una declaración.

        Sin payload o sin datos útiles, se eliminan resumen y códigos HS.

        Args:
            declaration_id: ID de la declaración
            payload: `xml_data` (sobre JSON o XML crudo)
            company_id: Empresa (para invalidar su cache); se busca si falta

        Returns:
            Optional[SummaryData]: Resumen guardado o None si se eliminó
        """
        summary = extract_summary(payload) if payload else None

        if summary is None:
            await self.repository.delete_summary(declaration_id)
        else:
            await self.repository.upsert_summary(declaration_id, summary.summary_columns())
            await self.repository.replace_hs_codes(declaration_id, summary.hs_codes)

        await self._invalidate_statistics(declaration_id, company_id)
        return summary

    async def backfill_batch(
        self,
        company_id: int,
        batch_size: Optional[int] = None,
        cursor: Optional[int] = None,
    ) -> BackfillBatchResult:
        """
        Recalcula una página de resúmenes de la empresa.

        Pensado para que un cliente lo llame en loop pasando `next_cursor`
        hasta recibir `done`.
        """
        size = clamp_batch_size(batch_size)
        page = await self.repository.scanner_with_payload(company_id).scan(self.db, size, cursor)

        updated = 0
        for declaration in page.rows:
            await self.update_declaration_summary(declaration.id, declaration.xml_data, company_id)
            if has_61_1_data(declaration.xml_data):
                updated += 1

        logger.info(
            f"Backfill resúmenes empresa={company_id}: procesadas={len(page.rows)} "
            f"con 61.1={updated} cursor={page.next_cursor}"
        )
        return BackfillBatchResult(
            processed=len(page.rows),
            updated=updated,
            next_cursor=page.next_cursor,
            done=page.done,
            batch_size=size,
        )

    async def update_all_for_company(self, company_id: int, batch_size: int = BACKFILL_MAX_BATCH_SIZE) -> int:
        """
        Recalcula todos los resúmenes de la empresa, commit por página.

        Returns:
            int: Declaraciones procesadas
        """
        processed = 0
        scanner = self.repository.scanner_with_payload(company_id)
        async for page in scanner.iter_batches(self.db, clamp_batch_size(batch_size)):
            for declaration in page.rows:
                await self.update_declaration_summary(declaration.id, declaration.xml_data, company_id)
            await self.db.commit()
            processed += len(page.rows)
        logger.success(f"Resúmenes recalculados para empresa {company_id}: {processed}")
        return processed

    async def _invalidate_statistics(self, declaration_id: int, company_id: Optional[int]) -> None:
        if self.statistics_cache is None:
            return
        if company_id is None:
            result = await self.db.execute(
                select(DeclarationModel.company_id).where(DeclarationModel.id == declaration_id)
            )
            company_id = result.scalar_one_or_none()
        if company_id is not None:
            self.statistics_cache.invalidate(company_id)
