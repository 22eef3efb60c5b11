"""
Repositorio de tipos de cambio.
"""
from datetime import date, datetime
from typing import Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.models import ExchangeRateModel
from app.infrastructure.database.upsert import dialect_insert
from app.infrastructure.external.nbu.nbu_client import NbuRate
from app.shared.utils.datetime_utils import DateTimeUtils


class ExchangeRateRepository:
    """Acceso a `exchange_rates`. Único por (date, currency_code)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def upsert_rates(
        self,
        day: date,
        rates: Iterable[NbuRate],
        *,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Inserta o actualiza todas las monedas de un día.

        Las filas existentes conservan su id y `created_at`; se actualizan
        rate, currency_name y updated_at.

        Args:
            day: Fecha de los rates
            rates: Filas normalizadas del NBU
            now: Timestamp a escribir en updated_at

        Returns:
            int: Cantidad de monedas escritas
        """
        now = now or DateTimeUtils.now_utc()
        # Una sola fila por moneda: ON CONFLICT no admite claves repetidas en el mismo INSERT
        by_code: Dict[str, NbuRate] = {}
        for rate in rates:
            by_code[rate.currency_code] = rate
        if not by_code:
            return 0

        rows = [
            {
                "date": day,
                "currency_code": code,
                "rate": rate.rate,
                "currency_name": rate.currency_name,
                "updated_at": now,
            }
            for code, rate in by_code.items()
        ]
        stmt = dialect_insert(self.db, ExchangeRateModel).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=["date", "currency_code"],
            set_={
                "rate": stmt.excluded.rate,
                "currency_name": stmt.excluded.currency_name,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self.db.execute(stmt)
        return len(rows)

    async def has_rates_for_day(self, day: date) -> bool:
        result = await self.db.execute(
            select(ExchangeRateModel.id).where(ExchangeRateModel.date == day).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def get_rate(self, currency_code: str, day: date) -> Optional[float]:
        """Retorna el rate guardado de una moneda para un día."""
        result = await self.db.execute(
            select(ExchangeRateModel.rate).where(
                ExchangeRateModel.date == day,
                ExchangeRateModel.currency_code == currency_code.strip().upper(),
            )
        )
        return result.scalar_one_or_none()

    async def get_for_day(self, day: date) -> list[ExchangeRateModel]:
        result = await self.db.execute(
            select(ExchangeRateModel)
            .where(ExchangeRateModel.date == day)
            .order_by(ExchangeRateModel.currency_code)
        )
        return list(result.scalars().all())
