"""
Herramientas de administración: auditoría y reparación de tipos de cambio.

Ambas producen eventos (dicts) para streaming NDJSON, una línea por paso,
así un barrido largo es observable sin polling:
- start: rango y cantidad de días
- progress: contadores acumulados tras cada día
- mismatch: (auditoría) diferencia entre DB y NBU
- error: (reparación) fallo al guardar un día
- aborted: el cliente se desconectó
- done: contadores finales
"""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Tuple

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.application.use_cases.exchange_rate_sync_use_cases import years_ago
from app.core.config import settings
from app.infrastructure.external.nbu.nbu_client import NbuClient
from app.infrastructure.repositories.exchange_rate_repository import ExchangeRateRepository
from app.shared.utils.datetime_utils import DateTimeUtils

AUDIT_CURRENCY = "USD"
RATE_TOLERANCE = 1e-6
MIN_YEARS = 1
MAX_YEARS = 10

AbortCheck = Callable[[], Awaitable[bool]]
Event = Dict[str, Any]


def resolve_audit_range(
    *,
    years: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """
    Calcula el rango a auditar.

    - `years` se acota a [1, 10] (default 3) y define el inicio si falta `date_from`
    - `date_to` default hoy
    - si el inicio queda después del fin, se intercambian
    """
    today = today or DateTimeUtils.now_utc().date()
    years = min(MAX_YEARS, max(MIN_YEARS, years if years is not None else 3))
    end = date_to or today
    start = date_from or years_ago(end, years)
    if start > end:
        start, end = end, start
    return start, end


async def _never_abort() -> bool:
    return False


class ExchangeRateAuditUseCases:
    """
    Auditoría (solo lectura) y reparación (upsert) de tipos de cambio.

    Args:
        session_factory: Factory de sesiones
        nbu_client: Cliente del NBU
        day_delay_ms: Pausa entre días
        sleep: Función de espera (inyectable en tests)
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        nbu_client: NbuClient,
        *,
        day_delay_ms: int = settings.AUDIT_DAY_DELAY_MS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._session_factory = session_factory
        self._nbu = nbu_client
        self._day_delay_s = max(0, day_delay_ms) / 1000
        self._sleep = sleep

    async def audit(
        self,
        start: date,
        end: date,
        *,
        currency_code: str = AUDIT_CURRENCY,
        should_abort: AbortCheck = _never_abort,
    ) -> AsyncIterator[Event]:
        """Compara día a día el rate guardado contra el NBU."""
        days = list(DateTimeUtils.iter_days(start, end))
        total_days = len(days)
        checked = mismatches = db_missing = nbu_missing = errors = 0

        yield {"type": "start", "start": days[0].isoformat(), "end": days[-1].isoformat(), "totalDays": total_days}

        for index, day in enumerate(days, start=1):
            if await should_abort():
                logger.warning(f"Auditoría de tipos de cambio abortada en {day.isoformat()}")
                yield {"type": "aborted", "date": day.isoformat(), "checked": checked}
                return

            error_message: Optional[str] = None
            async with self._session_factory() as db:
                try:
                    db_rate = await ExchangeRateRepository(db).get_rate(currency_code, day)
                except SQLAlchemyError as e:
                    error_message = str(e)

            if error_message is not None:
                errors += 1
                logger.error(f"Auditoría de tipos de cambio: error leyendo {day.isoformat()}: {error_message}")
                yield {"type": "error", "date": day.isoformat(), "message": error_message}
            else:
                nbu_rate = await asyncio.to_thread(self._nbu.fetch_rate, currency_code, day)
                if db_rate is None:
                    db_missing += 1
                if nbu_rate is None:
                    nbu_missing += 1
                if db_rate is not None and nbu_rate is not None and abs(db_rate - nbu_rate) > RATE_TOLERANCE:
                    mismatches += 1
                    yield {
                        "type": "mismatch",
                        "date": day.isoformat(),
                        "dbRate": db_rate,
                        "nbuRate": nbu_rate,
                        "diff": db_rate - nbu_rate,
                    }

            checked += 1
            yield {
                "type": "progress",
                "checked": checked,
                "totalDays": total_days,
                "date": day.isoformat(),
                "mismatches": mismatches,
                "dbMissing": db_missing,
                "nbuMissing": nbu_missing,
                "errors": errors,
            }

            if index < total_days and self._day_delay_s:
                await self._sleep(self._day_delay_s)

        logger.success(f"Auditoría de tipos de cambio: {checked} días, {mismatches} diferencias")
        yield {
            "type": "done",
            "checked": checked,
            "totalDays": total_days,
            "mismatches": mismatches,
            "dbMissing": db_missing,
            "nbuMissing": nbu_missing,
            "errors": errors,
        }

    async def fix(
        self,
        start: date,
        end: date,
        *,
        should_abort: AbortCheck = _never_abort,
    ) -> AsyncIterator[Event]:
        """Vuelve a descargar y guardar todas las monedas de cada día del rango."""
        days = list(DateTimeUtils.iter_days(start, end))
        total_days = len(days)
        checked_days = upserted = nbu_missing_days = errors = 0

        yield {"type": "start", "start": days[0].isoformat(), "end": days[-1].isoformat(), "totalDays": total_days}

        for index, day in enumerate(days, start=1):
            if await should_abort():
                logger.warning(f"Reparación de tipos de cambio abortada en {day.isoformat()}")
                yield {"type": "aborted", "date": day.isoformat(), "checkedDays": checked_days}
                return

            rates = await asyncio.to_thread(self._nbu.fetch_rates, day)
            if not rates:
                nbu_missing_days += 1
            else:
                error_message: Optional[str] = None
                async with self._session_factory() as db:
                    try:
                        upserted += await ExchangeRateRepository(db).upsert_rates(day, rates)
                        await db.commit()
                    except SQLAlchemyError as e:
                        await db.rollback()
                        error_message = str(e)
                if error_message is not None:
                    errors += 1
                    logger.error(f"Reparación de tipos de cambio: error guardando {day.isoformat()}: {error_message}")
                    yield {"type": "error", "date": day.isoformat(), "message": error_message}

            checked_days += 1
            yield {
                "type": "progress",
                "checkedDays": checked_days,
                "totalDays": total_days,
                "date": day.isoformat(),
                "upserted": upserted,
                "nbuMissingDays": nbu_missing_days,
                "errors": errors,
            }

            if index < total_days and self._day_delay_s:
                await self._sleep(self._day_delay_s)

        logger.success(f"Reparación de tipos de cambio: {upserted} filas en {checked_days} días")
        yield {
            "type": "done",
            "checkedDays": checked_days,
            "totalDays": total_days,
            "upserted": upserted,
            "nbuMissingDays": nbu_missing_days,
            "errors": errors,
        }
