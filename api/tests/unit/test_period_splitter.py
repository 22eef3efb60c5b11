"""
Tests unitarios para la división de períodos en chunks.
"""
import random
from datetime import date, datetime, timedelta, timezone

import pytest

from app.shared.utils.period_splitter import DateRange, split_period


def test_splits_ten_days_in_chunks_of_seven():
    chunks = split_period(date(2023, 1, 1), date(2023, 1, 10), max_days=7)

    assert len(chunks) == 2
    assert chunks[0].start == datetime(2023, 1, 1, 0, 0, 0)
    assert chunks[0].end == datetime(2023, 1, 7, 23, 59, 59, 999000)
    assert chunks[1].start == datetime(2023, 1, 8, 0, 0, 0)
    assert chunks[1].end == datetime(2023, 1, 10, 23, 59, 59, 999000)


def test_single_day_produces_one_chunk():
    chunks = split_period(date(2024, 2, 29), date(2024, 2, 29), max_days=45)

    assert chunks == [
        DateRange(datetime(2024, 2, 29), datetime(2024, 2, 29, 23, 59, 59, 999000)),
    ]
    assert chunks[0].days == 1


def test_reversed_range_is_swapped():
    forward = split_period(date(2023, 1, 1), date(2023, 3, 1), max_days=45)
    backward = split_period(date(2023, 3, 1), date(2023, 1, 1), max_days=45)

    assert forward == backward


def test_chunks_are_contiguous_and_cover_the_whole_range():
    start = date(2022, 1, 1)
    end = date(2023, 12, 31)

    chunks = split_period(start, end, max_days=45)

    assert chunks[0].start.date() == start
    assert chunks[-1].end.date() == end
    for previous, current in zip(chunks, chunks[1:]):
        assert current.start - previous.end == timedelta(milliseconds=1)
    assert all(chunk.days <= 45 for chunk in chunks)
    assert sum(chunk.days for chunk in chunks) == (end - start).days + 1


def test_partial_hours_are_normalized_to_full_days():
    start = datetime(2024, 5, 3, 15, 30, tzinfo=timezone.utc)
    end = datetime(2024, 5, 4, 1, 15, tzinfo=timezone.utc)

    chunks = split_period(start, end, max_days=7)

    assert len(chunks) == 1
    assert chunks[0].start == datetime(2024, 5, 3, tzinfo=timezone.utc)
    assert chunks[0].end == datetime(2024, 5, 4, 23, 59, 59, 999000, tzinfo=timezone.utc)


def test_max_days_of_one_gives_one_chunk_per_day():
    chunks = split_period(date(2024, 1, 1), date(2024, 1, 5), max_days=1)

    assert [chunk.start.date() for chunk in chunks] == [date(2024, 1, d) for d in range(1, 6)]


@pytest.mark.parametrize("max_days", [0, -3])
def test_invalid_max_days_raises(max_days):
    with pytest.raises(ValueError):
        split_period(date(2024, 1, 1), date(2024, 1, 5), max_days=max_days)


def _generated_ranges():
    """Rangos pseudoaleatorios reproducibles, incluidos invertidos y m mayor al rango."""
    rng = random.Random(20240101)
    base = date(2020, 1, 1)
    cases = []
    for max_days in (1, 2, 7, 45, 400):
        for _ in range(12):
            start = base + timedelta(days=rng.randint(0, 1500))
            end = start + timedelta(days=rng.randint(0, 200))
            if rng.random() < 0.5:
                start, end = end, start
            cases.append((start, end, max_days))
    return cases


@pytest.mark.parametrize("start, end, max_days", _generated_ranges())
def test_split_properties_hold_for_generated_ranges(start, end, max_days):
    chunks = split_period(start, end, max_days=max_days)
    low, high = min(start, end), max(start, end)

    assert chunks[0].start == datetime(low.year, low.month, low.day)
    assert chunks[-1].end == datetime(high.year, high.month, high.day, 23, 59, 59, 999000)
    for previous, current in zip(chunks, chunks[1:]):
        assert current.start.date() == previous.end.date() + timedelta(days=1)
        assert current.start == datetime(current.start.year, current.start.month, current.start.day)
    assert all(1 <= chunk.days <= max_days for chunk in chunks)
    assert sum(chunk.days for chunk in chunks) == (high - low).days + 1
    assert split_period(end, start, max_days=max_days) == chunks
