"""
Tests unitarios para CursorScanner.
"""
import math

import pytest

from app.infrastructure.database.models import DeclarationModel
from app.infrastructure.repositories.cursor_scanner import CursorScanner


async def _seed(session_factory, company_id, count, xml_data="{}"):
    async with session_factory() as db:
        db.add_all(
            DeclarationModel(company_id=company_id, customs_id=f"guid-{i}", xml_data=xml_data)
            for i in range(count)
        )
        await db.commit()


@pytest.mark.asyncio
@pytest.mark.parametrize("total, batch_size", [(10, 3), (9, 3), (1, 5), (5, 1)])
async def test_scan_visits_every_row_once_in_ceil_calls(session_factory, company, total, batch_size):
    await _seed(session_factory, company.id, total)
    scanner = CursorScanner(DeclarationModel, filters=[DeclarationModel.company_id == company.id])

    seen = []
    calls = 0
    pages_with_rows = 0
    cursor = None
    async with session_factory() as db:
        while True:
            page = await scanner.scan(db, batch_size, cursor)
            calls += 1
            pages_with_rows += 1 if page.rows else 0
            seen.extend(row.id for row in page.rows)
            if page.done:
                break
            cursor = page.next_cursor

    assert len(seen) == total
    assert seen == sorted(set(seen))
    assert pages_with_rows == math.ceil(total / batch_size)
    # Un llamado extra vacío cuando total es múltiplo del batch
    expected_calls = math.ceil(total / batch_size) + (1 if total % batch_size == 0 else 0)
    assert calls == expected_calls


@pytest.mark.asyncio
async def test_empty_table_returns_done_without_cursor(session_factory, company):
    scanner = CursorScanner(DeclarationModel)

    async with session_factory() as db:
        page = await scanner.scan(db, 10)

    assert page.rows == []
    assert page.next_cursor is None
    assert page.done is True


@pytest.mark.asyncio
async def test_resume_from_cursor_skips_processed_rows(session_factory, company):
    await _seed(session_factory, company.id, 6)
    scanner = CursorScanner(DeclarationModel)

    async with session_factory() as db:
        first = await scanner.scan(db, 4)
        resumed = await scanner.scan(db, 4, first.next_cursor)

    assert first.next_cursor == first.rows[-1].id
    assert first.done is False
    assert len(resumed.rows) == 2
    assert resumed.done is True
    assert all(row.id > first.next_cursor for row in resumed.rows)


@pytest.mark.asyncio
async def test_selected_columns_and_filters(session_factory, company):
    await _seed(session_factory, company.id, 3)
    async with session_factory() as db:
        db.add(DeclarationModel(company_id=company.id, customs_id=None, xml_data=None))
        await db.commit()

    scanner = CursorScanner(
        DeclarationModel,
        DeclarationModel.id,
        filters=[DeclarationModel.customs_id.is_not(None)],
        columns=[DeclarationModel.id, DeclarationModel.customs_id],
    )
    async with session_factory() as db:
        page = await scanner.scan(db, 10)

    assert [row.customs_id for row in page.rows] == ["guid-0", "guid-1", "guid-2"]
    assert page.next_cursor == page.rows[-1].id


@pytest.mark.asyncio
async def test_iter_batches_walks_the_whole_table(session_factory, company):
    await _seed(session_factory, company.id, 7)
    scanner = CursorScanner(DeclarationModel)

    async with session_factory() as db:
        pages = [page async for page in scanner.iter_batches(db, 3)]

    assert [len(page.rows) for page in pages] == [3, 3, 1]


@pytest.mark.asyncio
async def test_invalid_batch_size_raises(session_factory):
    async with session_factory() as db:
        with pytest.raises(ValueError):
            await CursorScanner(DeclarationModel).scan(db, 0)
