"""
Tests unitarios para NbuClient (sesión HTTP mockeada).
"""
from datetime import date
from unittest.mock import MagicMock

import pytest
import requests

from app.infrastructure.external.nbu.nbu_client import NbuClient, NbuRate


def _response(status_code=200, payload=None, json_error=False):
    resp = MagicMock()
    resp.status_code = status_code
    if json_error:
        resp.json.side_effect = ValueError("invalid json")
    else:
        resp.json.return_value = payload
    return resp


def _client(resp=None, side_effect=None):
    session = MagicMock()
    if side_effect is not None:
        session.get.side_effect = side_effect
    else:
        session.get.return_value = resp
    return NbuClient(session=session, base_url="https://nbu.test/exchange"), session


def test_fetch_rates_normalizes_rows_and_sends_params():
    payload = [
        {"r030": 840, "txt": " Долар США ", "rate": 41.2, "cc": " usd ", "exchangedate": "15.01.2024"},
        {"r030": 978, "txt": "Євро", "rate": 45, "cc": "EUR", "exchangedate": "15.01.2024"},
    ]
    client, session = _client(_response(payload=payload))

    rates = client.fetch_rates(date(2024, 1, 15))

    assert rates == [
        NbuRate("USD", "Долар США", 41.2, 840, "15.01.2024"),
        NbuRate("EUR", "Євро", 45.0, 978, "15.01.2024"),
    ]
    _, kwargs = session.get.call_args
    assert kwargs["params"] == {"date": "20240115", "json": ""}


def test_fetch_rates_with_currency_filter_adds_valcode():
    client, session = _client(_response(payload=[{"cc": "USD", "rate": 41.0, "txt": "Долар"}]))

    client.fetch_rates(date(2024, 1, 15), "usd")

    _, kwargs = session.get.call_args
    assert kwargs["params"]["valcode"] == "USD"


def test_rows_without_code_or_numeric_rate_are_skipped():
    payload = [
        {"cc": "", "rate": 1.0},
        {"cc": "PLN", "rate": "10.2"},
        {"cc": "GBP", "rate": True},
        {"cc": "CHF", "rate": 47.5, "txt": "Франк"},
        "garbage",
    ]
    client, _ = _client(_response(payload=payload))

    rates = client.fetch_rates(date(2024, 1, 15))

    assert [rate.currency_code for rate in rates] == ["CHF"]


@pytest.mark.parametrize(
    "resp",
    [
        _response(status_code=500, payload=[]),
        _response(payload=[]),
        _response(payload={"error": "bad"}),
        _response(json_error=True),
        _response(payload=[{"cc": "", "rate": 1}]),
    ],
)
def test_missing_data_returns_none(resp):
    client, _ = _client(resp)

    assert client.fetch_rates(date(2024, 1, 15)) is None


def test_network_error_returns_none():
    client, _ = _client(side_effect=requests.ConnectionError("down"))

    assert client.fetch_rates(date(2024, 1, 15)) is None


def test_fetch_rate_returns_matching_currency():
    client, _ = _client(_response(payload=[{"cc": "USD", "rate": 41.25, "txt": "Долар"}]))

    assert client.fetch_rate("usd", date(2024, 1, 15)) == 41.25


def test_fetch_rate_returns_none_without_match():
    client, _ = _client(_response(payload=[{"cc": "EUR", "rate": 45.0, "txt": "Євро"}]))

    assert client.fetch_rate("USD", date(2024, 1, 15)) is None
