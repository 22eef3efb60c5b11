"""
Casos de uso para sincronizar tipos de cambio NBU en la base de datos.

Dos modos sobre las mismas primitivas:
- Full: [hoy - N años, hoy], un request por día, upsert idempotente.
- Daily (gap-fill): últimos 30 días, solo los días sin ninguna fila.

Cada día es su propia transacción: un corte a mitad de corrida deja todos
los días previos persistidos, y volver a disparar el sync es seguro.
Un fallo de un día se loguea y no corta el loop; los días sin datos no se
reintentan automáticamente.
"""

from __future__ import annotations

import asyncio
import inspect
from datetime import date, timedelta
from typing import Awaitable, Callable, Optional, Union

from loguru import logger
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.config import settings
from app.infrastructure.external.nbu.nbu_client import NbuClient
from app.infrastructure.repositories.exchange_rate_repository import ExchangeRateRepository
from app.shared.utils.datetime_utils import DateTimeUtils

ProgressCallback = Callable[[date, int, int], Union[None, Awaitable[None]]]


def _today() -> date:
    return DateTimeUtils.now_utc().date()


def years_ago(day: date, years: int) -> date:
    """Resta años a una fecha; 29/02 cae en 28/02 si el año destino no es bisiesto."""
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return day.replace(year=day.year - years, day=28)


async def notify_progress(callback: Optional[ProgressCallback], day: date, processed: int, total: int) -> None:
    if callback is None:
        return
    result = callback(day, processed, total)
    if inspect.isawaitable(result):
        await result


class ExchangeRateSyncUseCases:
    """
    Orquestador de syncs de tipos de cambio.

    Args:
        session_factory: Factory de sesiones (una transacción por día)
        nbu_client: Cliente HTTP del NBU (bloqueante, se llama en thread)
        day_delay_ms: Pausa entre días para no saturar el API
        sleep: Función de espera (inyectable en tests)
        today: Función que retorna la fecha de hoy
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        nbu_client: NbuClient,
        *,
        day_delay_ms: int = settings.EXCHANGE_RATE_DAY_DELAY_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        today: Callable[[], date] = _today,
    ) -> None:
        self._session_factory = session_factory
        self._nbu = nbu_client
        self._day_delay_s = max(0, day_delay_ms) / 1000
        self._sleep = sleep
        self._today = today

    async def sync_for_date(self, day: date) -> int:
        """
        Descarga y guarda todas las monedas de un día.

        Returns:
            int: Filas escritas (0 si el NBU no tiene datos para ese día)
        """
        rates = await asyncio.to_thread(self._nbu.fetch_rates, day)
        if not rates:
            logger.info(f"Tipos de cambio: sin datos NBU para {day.isoformat()}")
            return 0

        async with self._session_factory() as db:
            try:
                count = await ExchangeRateRepository(db).upsert_rates(day, rates)
                await db.commit()
            except Exception:
                await db.rollback()
                raise

        logger.debug(f"Tipos de cambio: {count} monedas guardadas para {day.isoformat()}")
        return count

    async def sync_for_period(
        self,
        start: date,
        end: date,
        on_progress: Optional[ProgressCallback] = None,
    ) -> int:
        """
        Sincroniza cada día de [start, end] en orden ascendente.

        Args:
            start: Primer día (inclusive)
            end: Último día (inclusive)
            on_progress: Callback (día, días procesados, días totales) tras cada día

        Returns:
            int: Total de filas escritas
        """
        days = list(DateTimeUtils.iter_days(start, end))
        total_days = len(days)
        total_synced = 0

        logger.info(f"Tipos de cambio: sync de {days[0].isoformat()} a {days[-1].isoformat()} ({total_days} días)")

        for index, day in enumerate(days, start=1):
            try:
                total_synced += await self.sync_for_date(day)
            except Exception as e:
                logger.error(f"Tipos de cambio: error sincronizando {day.isoformat()}: {e}")

            await notify_progress(on_progress, day, index, total_days)

            if index < total_days and self._day_delay_s:
                await self._sleep(self._day_delay_s)

        logger.success(f"Tipos de cambio: sync finalizado, {total_synced} filas")
        return total_synced

    async def sync_full(
        self,
        years: int = settings.EXCHANGE_RATE_FULL_YEARS,
        on_progress: Optional[ProgressCallback] = None,
    ) -> int:
        """Backfill completo de los últimos `years` años."""
        end = self._today()
        return await self.sync_for_period(years_ago(end, years), end, on_progress)

    async def sync_missing(
        self,
        days: int = settings.EXCHANGE_RATE_GAP_DAYS,
        on_progress: Optional[ProgressCallback] = None,
    ) -> int:
        """
        Rellena huecos de los últimos `days` días.

        Un día con al menos una fila se considera completo y no se vuelve a
        consultar, aunque le falten monedas.
        """
        end = self._today()
        all_days = list(DateTimeUtils.iter_days(end - timedelta(days=days), end))
        total_days = len(all_days)
        total_synced = 0
        skipped = 0

        for index, day in enumerate(all_days, start=1):
            try:
                async with self._session_factory() as db:
                    already_synced = await ExchangeRateRepository(db).has_rates_for_day(day)
                if already_synced:
                    skipped += 1
                else:
                    total_synced += await self.sync_for_date(day)
                    if index < total_days and self._day_delay_s:
                        await self._sleep(self._day_delay_s)
            except Exception as e:
                logger.error(f"Tipos de cambio: error rellenando {day.isoformat()}: {e}")

            await notify_progress(on_progress, day, index, total_days)

        logger.success(
            f"Tipos de cambio: gap-fill finalizado, {total_synced} filas, {skipped} días ya presentes"
        )
        return total_synced

    async def get_rate_from_db(self, currency_code: str, day: date) -> Optional[float]:
        async with self._session_factory() as db:
            return await ExchangeRateRepository(db).get_rate(currency_code, day)
