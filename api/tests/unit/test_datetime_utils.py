"""
Tests unitarios para DateTimeUtils.
"""
from datetime import date, datetime, timezone

import pytest

from app.shared.utils.datetime_utils import DateTimeUtils


@pytest.mark.parametrize(
    "value, expected",
    [
        ("20240115T093000", "20240115"),
        ("20240115", "20240115"),
        ("15.01.2024", "20240115"),
        ("2024-01-15", "20240115"),
        ("2024-01-15T10:00:00Z", "20240115"),
        ("  20240115  ", "20240115"),
    ],
)
def test_parse_to_yyyymmdd_accepts_customs_formats(value, expected):
    assert DateTimeUtils.parse_to_yyyymmdd(value) == expected


@pytest.mark.parametrize("value", [None, "", "   ", "---", "15/01/2024", "yesterday"])
def test_parse_to_yyyymmdd_rejects_unknown_values(value):
    assert DateTimeUtils.parse_to_yyyymmdd(value) is None


def test_format_yyyymmdd():
    assert DateTimeUtils.format_yyyymmdd(date(2024, 3, 7)) == "20240307"
    assert DateTimeUtils.format_yyyymmdd(datetime(2024, 3, 7, 23, 59)) == "20240307"


def test_parse_registered_returns_aware_utc():
    parsed = DateTimeUtils.parse_registered("20250116T120000")

    assert parsed == datetime(2025, 1, 16, 12, 0, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", [None, "", "2025-01-16", "20251316T120000"])
def test_parse_registered_invalid_values(value):
    assert DateTimeUtils.parse_registered(value) is None


def test_ensure_utc_assumes_naive_is_utc():
    naive = datetime(2024, 1, 1, 10, 0)

    assert DateTimeUtils.ensure_utc(naive) == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def test_iter_days_is_inclusive_and_swaps():
    days = list(DateTimeUtils.iter_days(date(2024, 3, 2), date(2024, 2, 28)))

    assert days == [date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1), date(2024, 3, 2)]
