"""
Tests unitarios para el endpoint de sync programado de tipos de cambio.

Verifica el contrato HTTP:
- 500 sin secreto configurado, 401 con secreto inválido.
- 400 con tipo desconocido (antes de tomar el lock).
- 429 y registro `blocked` si el lock está tomado.
- 200 con `totalSynced` en el caso feliz.
"""
from __future__ import annotations

from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from app.api.v1.dependencies.use_case_deps import get_exchange_rate_sync_use_cases
from app.application.use_cases.exchange_rate_sync_use_cases import ExchangeRateSyncUseCases
from app.core.config import settings
from app.infrastructure.database.models import ExchangeRateModel, OperationLogModel
from app.infrastructure.database.session import get_session_factory
from app.infrastructure.external.nbu.nbu_client import NbuRate
from app.infrastructure.operations.operation_lock import OperationLock

SECRET = "cron-secret"


class DailyNbu:
    """Devuelve un USD fijo para cualquier día."""

    def __init__(self):
        self.calls = []

    def fetch_rates(self, day, currency_code=None):
        self.calls.append(day)
        return [NbuRate("USD", "Долар США", 41.0)]

    def fetch_rate(self, currency_code, day):
        return 41.0


@pytest.fixture
def nbu() -> DailyNbu:
    return DailyNbu()


@pytest.fixture
def app_with_overrides(session_factory, nbu, recording_sleep, monkeypatch):
    from main import create_application

    monkeypatch.setattr(settings, "EXCHANGE_RATES_SYNC_SECRET", SECRET)
    app = create_application()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_exchange_rate_sync_use_cases] = lambda: ExchangeRateSyncUseCases(
        session_factory, nbu, sleep=recording_sleep, today=lambda: date(2024, 3, 31)
    )
    yield app
    app.dependency_overrides.clear()


async def _request(app, method="GET", **kwargs):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.request(method, "/api/v1/exchange-rates/sync", **kwargs)


@pytest.mark.asyncio
async def test_missing_secret_configuration_returns_500(app_with_overrides, monkeypatch):
    monkeypatch.setattr(settings, "EXCHANGE_RATES_SYNC_SECRET", "")

    response = await _request(app_with_overrides, params={"secret": "cualquiera"})

    assert response.status_code == 500
    assert response.json()["error"] == "SERVER_MISCONFIGURED"


@pytest.mark.asyncio
async def test_wrong_secret_returns_401(app_with_overrides, nbu):
    response = await _request(app_with_overrides, headers={"Authorization": "Bearer otro"})

    assert response.status_code == 401
    assert nbu.calls == []


@pytest.mark.asyncio
async def test_unknown_type_returns_400(app_with_overrides, session_factory):
    response = await _request(app_with_overrides, params={"secret": SECRET, "type": "weekly"})

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"
    async with session_factory() as db:
        assert (await db.execute(select(OperationLogModel))).scalars().all() == []


@pytest.mark.asyncio
async def test_held_lock_returns_429_and_records_blocked(app_with_overrides, session_factory, nbu):
    lock = OperationLock(session_factory)
    assert (await lock.acquire("SYNC:daily", "EXCHANGE_RATES_SYNC", 600)).ok

    response = await _request(app_with_overrides, params={"secret": SECRET, "type": "daily"})

    assert response.status_code == 429
    assert response.json()["error"] == "OPERATION_LOCKED"
    assert nbu.calls == []
    async with session_factory() as db:
        logs = (await db.execute(select(OperationLogModel))).scalars().all()
    assert [log.status for log in logs] == ["blocked"]


@pytest.mark.asyncio
async def test_daily_sync_fills_gap_and_releases_lock(app_with_overrides, session_factory, nbu):
    response = await _request(
        app_with_overrides, method="POST", headers={"Authorization": f"Bearer {SECRET}"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["totalSynced"] == 31
    assert len(nbu.calls) == 31

    async with session_factory() as db:
        rows = (await db.execute(select(ExchangeRateModel))).scalars().all()
        logs = (await db.execute(select(OperationLogModel))).scalars().all()
    assert len(rows) == 31
    assert [(log.status, log.meta["totalSynced"]) for log in logs] == [("success", 31)]
    assert (await OperationLock(session_factory).acquire("SYNC:daily", "EXCHANGE_RATES_SYNC", 60)).ok


@pytest.mark.asyncio
async def test_second_daily_run_skips_present_days(app_with_overrides, nbu):
    await _request(app_with_overrides, params={"secret": SECRET})
    nbu.calls.clear()

    response = await _request(app_with_overrides, params={"secret": SECRET})

    assert response.json()["totalSynced"] == 0
    assert nbu.calls == []
