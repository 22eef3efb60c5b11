"""
Tests unitarios para OperationLog.
"""
import pytest

from app.infrastructure.database.models import OperationLogModel
from app.infrastructure.operations.operation_log import OperationLog
from app.shared.constants.sync_constants import OperationStatus


async def _get(session_factory, log_id):
    async with session_factory() as db:
        return await db.get(OperationLogModel, log_id)


@pytest.mark.asyncio
async def test_start_then_finish_sets_duration(session_factory, clock):
    operation_log = OperationLog(session_factory, clock=clock)

    log_id = await operation_log.start("EXCHANGE_RATES_SYNC", meta={"type": "daily"})
    clock.advance(seconds=2, milliseconds=500)
    await operation_log.finish(log_id, OperationStatus.SUCCESS, meta={"totalSynced": 42})

    entry = await _get(session_factory, log_id)
    assert entry.status == "success"
    assert entry.duration_ms == 2500
    assert entry.meta == {"type": "daily", "totalSynced": 42}


@pytest.mark.asyncio
async def test_finish_is_applied_only_once(session_factory, clock):
    operation_log = OperationLog(session_factory, clock=clock)

    log_id = await operation_log.start("EXCHANGE_RATES_SYNC")
    await operation_log.finish(log_id, OperationStatus.ERROR, details="primero")
    await operation_log.finish(log_id, OperationStatus.SUCCESS, details="segundo")

    entry = await _get(session_factory, log_id)
    assert entry.status == "error"
    assert entry.details == "primero"


@pytest.mark.asyncio
async def test_details_are_truncated(session_factory, clock):
    operation_log = OperationLog(session_factory, clock=clock)

    log_id = await operation_log.start("DECLARATIONS_SYNC")
    await operation_log.finish(log_id, OperationStatus.ERROR, details="x" * 2000)

    entry = await _get(session_factory, log_id)
    assert len(entry.details) == 500


@pytest.mark.asyncio
async def test_track_marks_error_and_reraises(session_factory, clock):
    operation_log = OperationLog(session_factory, clock=clock)

    with pytest.raises(ValueError):
        async with operation_log.track("DECLARATIONS_SYNC", company_id=3) as handle:
            log_id = handle.log_id
            raise ValueError("fallo de red")

    entry = await _get(session_factory, log_id)
    assert entry.status == "error"
    assert entry.details == "fallo de red"
    assert entry.company_id == 3


@pytest.mark.asyncio
async def test_record_writes_blocked_entry(session_factory, clock):
    operation_log = OperationLog(session_factory, clock=clock)

    log_id = await operation_log.record("EXCHANGE_RATES_SYNC", OperationStatus.BLOCKED, details="Lock ocupado")

    entry = await _get(session_factory, log_id)
    assert entry.status == "blocked"
    assert entry.duration_ms == 0
    assert entry.finished_at is not None
