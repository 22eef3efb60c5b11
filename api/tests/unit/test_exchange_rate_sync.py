"""
Tests unitarios para la sincronización de tipos de cambio.
"""
from datetime import date, datetime, timezone
from typing import Dict, List, Optional

import pytest
from sqlalchemy import func, select

from app.application.use_cases.exchange_rate_sync_use_cases import ExchangeRateSyncUseCases, years_ago
from app.infrastructure.database.models import ExchangeRateModel
from app.infrastructure.external.nbu.nbu_client import NbuRate
from app.infrastructure.repositories.exchange_rate_repository import ExchangeRateRepository


class FakeNbu:
    """NBU en memoria: rates por día, con días que fallan."""

    def __init__(self, rates: Optional[Dict[date, List[NbuRate]]] = None, failing: tuple = ()):
        self.rates = rates or {}
        self.failing = set(failing)
        self.calls: List[date] = []

    def fetch_rates(self, day, currency_code=None):
        self.calls.append(day)
        if day in self.failing:
            raise RuntimeError(f"fallo simulado {day}")
        return self.rates.get(day)

    def fetch_rate(self, currency_code, day):
        for rate in self.rates.get(day) or []:
            if rate.currency_code == currency_code:
                return rate.rate
        return None


def _usd_eur(usd=41.0, eur=45.0):
    return [NbuRate("USD", "Долар США", usd), NbuRate("EUR", "Євро", eur)]


async def _all_rates(session_factory):
    async with session_factory() as db:
        result = await db.execute(select(ExchangeRateModel).order_by(ExchangeRateModel.date, ExchangeRateModel.currency_code))
        return list(result.scalars().all())


@pytest.mark.asyncio
async def test_sync_for_date_is_idempotent(session_factory, recording_sleep):
    day = date(2024, 1, 15)
    nbu = FakeNbu({day: _usd_eur()})
    use_cases = ExchangeRateSyncUseCases(session_factory, nbu, sleep=recording_sleep)

    assert await use_cases.sync_for_date(day) == 2
    first = await _all_rates(session_factory)

    nbu.rates[day] = _usd_eur(usd=41.5)
    assert await use_cases.sync_for_date(day) == 2
    second = await _all_rates(session_factory)

    assert len(second) == 2
    assert [row.id for row in first] == [row.id for row in second]
    assert {row.currency_code: row.rate for row in second} == {"USD": 41.5, "EUR": 45.0}


@pytest.mark.asyncio
async def test_upsert_updates_rate_name_and_updated_at(db_session):
    repository = ExchangeRateRepository(db_session)
    day = date(2024, 1, 15)
    first_write = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)
    second_write = datetime(2024, 1, 16, 10, 0, tzinfo=timezone.utc)

    await repository.upsert_rates(day, [NbuRate("USD", "Dollar", 41.0)], now=first_write)
    await db_session.commit()
    await repository.upsert_rates(day, [NbuRate("USD", "Долар США", 41.3)], now=second_write)
    await db_session.commit()

    rows = (
        await db_session.execute(select(ExchangeRateModel).execution_options(populate_existing=True))
    ).scalars().all()
    assert len(rows) == 1
    assert rows[0].rate == 41.3
    assert rows[0].currency_name == "Долар США"
    assert rows[0].updated_at.replace(tzinfo=timezone.utc) == second_write


@pytest.mark.asyncio
async def test_sync_for_date_without_data_writes_nothing(session_factory, recording_sleep):
    use_cases = ExchangeRateSyncUseCases(session_factory, FakeNbu(), sleep=recording_sleep)

    assert await use_cases.sync_for_date(date(2024, 1, 13)) == 0
    assert await _all_rates(session_factory) == []


@pytest.mark.asyncio
async def test_sync_for_period_continues_after_failures_and_reports_progress(session_factory, recording_sleep):
    days = [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]
    nbu = FakeNbu({day: _usd_eur() for day in days}, failing=(date(2024, 1, 2),))
    use_cases = ExchangeRateSyncUseCases(session_factory, nbu, day_delay_ms=100, sleep=recording_sleep)
    progress = []

    total = await use_cases.sync_for_period(days[0], days[-1], on_progress=lambda d, n, t: progress.append((d, n, t)))

    assert total == 4
    assert nbu.calls == days
    assert progress == [(days[0], 1, 3), (days[1], 2, 3), (days[2], 3, 3)]
    assert recording_sleep.calls == [0.1, 0.1]
    assert {row.date for row in await _all_rates(session_factory)} == {days[0], days[2]}


@pytest.mark.asyncio
async def test_sync_for_period_accepts_async_progress_callback(session_factory, recording_sleep):
    day = date(2024, 1, 1)
    use_cases = ExchangeRateSyncUseCases(session_factory, FakeNbu({day: _usd_eur()}), sleep=recording_sleep)
    seen = []

    async def on_progress(current, processed, total):
        seen.append(processed)

    await use_cases.sync_for_period(day, day, on_progress=on_progress)

    assert seen == [1]
    assert recording_sleep.calls == []


@pytest.mark.asyncio
async def test_gap_fill_skips_days_with_any_row(session_factory, recording_sleep):
    today = date(2024, 1, 10)
    partial_day = date(2024, 1, 8)
    async with session_factory() as db:
        await ExchangeRateRepository(db).upsert_rates(partial_day, [NbuRate("USD", "Долар США", 41.0)])
        await db.commit()

    nbu = FakeNbu({day: _usd_eur() for day in (date(2024, 1, 7), partial_day, date(2024, 1, 9), today)})
    use_cases = ExchangeRateSyncUseCases(session_factory, nbu, sleep=recording_sleep, today=lambda: today)

    await use_cases.sync_missing(days=3)

    assert nbu.calls == [date(2024, 1, 7), date(2024, 1, 9), today]
    async with session_factory() as db:
        partial_rows = await ExchangeRateRepository(db).get_for_day(partial_day)
    # El día parcial sigue con una sola moneda: no se reconcilia
    assert [row.currency_code for row in partial_rows] == ["USD"]


@pytest.mark.asyncio
async def test_sync_full_covers_years_back_until_today(session_factory, recording_sleep):
    today = date(2024, 3, 1)
    nbu = FakeNbu()
    use_cases = ExchangeRateSyncUseCases(session_factory, nbu, day_delay_ms=0, sleep=recording_sleep, today=lambda: today)

    await use_cases.sync_full(years=1)

    assert nbu.calls[0] == date(2023, 3, 1)
    assert nbu.calls[-1] == today
    assert len(nbu.calls) == 367
    assert recording_sleep.calls == []


@pytest.mark.asyncio
async def test_get_rate_from_db(session_factory, recording_sleep):
    day = date(2024, 1, 15)
    use_cases = ExchangeRateSyncUseCases(session_factory, FakeNbu({day: _usd_eur()}), sleep=recording_sleep)
    await use_cases.sync_for_date(day)

    assert await use_cases.get_rate_from_db("usd", day) == 41.0
    assert await use_cases.get_rate_from_db("PLN", day) is None


def test_years_ago_handles_leap_day():
    assert years_ago(date(2024, 2, 29), 1) == date(2023, 2, 28)
    assert years_ago(date(2024, 3, 1), 3) == date(2021, 3, 1)


@pytest.mark.asyncio
async def test_rows_are_unique_per_day_and_currency(session_factory, recording_sleep):
    day = date(2024, 1, 15)
    use_cases = ExchangeRateSyncUseCases(session_factory, FakeNbu({day: _usd_eur()}), sleep=recording_sleep)

    for _ in range(3):
        await use_cases.sync_for_date(day)

    async with session_factory() as db:
        count = (await db.execute(select(func.count(ExchangeRateModel.id)))).scalar_one()
    assert count == 2
