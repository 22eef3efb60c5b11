"""
Estadísticas agregadas de declaraciones por empresa, con cache.
"""
from typing import Any, Dict

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.repositories.declaration_repository import DeclarationRepository
from app.shared.utils.statistics_cache import StatisticsCache


class DeclarationStatisticsUseCases:
    """Lee estadísticas desde la cache o las recalcula desde la base."""

    def __init__(self, db: AsyncSession, statistics_cache: StatisticsCache):
        self.repository = DeclarationRepository(db)
        self.statistics_cache = statistics_cache

    async def get_statistics(self, company_id: int, force_refresh: bool = False) -> Dict[str, Any]:
        """
        Retorna las estadísticas de la empresa.

        Args:
            company_id: ID de la empresa
            force_refresh: Ignora la cache y recalcula

        Returns:
            Dict[str, Any]: Agregados más `cached` indicando el origen
        """
        if not force_refresh:
            cached = self.statistics_cache.get(company_id)
            if cached is not None:
                return {**cached, "cached": True}

        statistics = await self.repository.get_statistics(company_id)
        self.statistics_cache.set(company_id, statistics)
        logger.debug(f"Estadísticas recalculadas para empresa {company_id}")
        return {**statistics, "cached": False}
