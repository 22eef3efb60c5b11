"""
Tests unitarios para CustomsGatewayClient y la clasificación de reintentos.
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
import requests

from app.infrastructure.external.customs.gateway_client import (
    WAIT_CHANNEL_TIMEOUT_S,
    WAIT_NETWORK_ERROR_S,
    WAIT_SERVER_ERROR_S,
    WAIT_TIMEOUT_S,
    CustomsGatewayClient,
    CustomsGatewayError,
    retry_wait_seconds,
)

DATE_FROM = datetime(2024, 1, 1, tzinfo=timezone.utc)
DATE_TO = datetime(2024, 2, 14, 23, 59, 59, tzinfo=timezone.utc)


def _response(status_code=200, payload=None, text="", json_error=False):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
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
    return CustomsGatewayClient("https://gateway.test/", "secret-token", session=session), session


@pytest.mark.parametrize(
    "error, expected",
    [
        (CustomsGatewayError("Gateway 500: boom", status_code=500), WAIT_SERVER_ERROR_S),
        (CustomsGatewayError("Gateway 400: Channel timeout", status_code=400), WAIT_CHANNEL_TIMEOUT_S),
        (CustomsGatewayError("Gateway 400: bad request", status_code=400), None),
        (CustomsGatewayError("connection error", code="ECONNRESET"), WAIT_NETWORK_ERROR_S),
        (CustomsGatewayError("timeout: read", code="ETIMEDOUT"), WAIT_TIMEOUT_S),
        (CustomsGatewayError("Gateway 403: forbidden", status_code=403), None),
        (RuntimeError("timeout"), None),
    ],
)
def test_retry_wait_seconds(error, expected):
    assert retry_wait_seconds(error) == expected


def test_error_code_prefers_status():
    assert CustomsGatewayError("x", status_code=502, code="ECONNRESET").error_code == "502"
    assert CustomsGatewayError("x", code="ECONNRESET").error_code == "ECONNRESET"
    assert CustomsGatewayError("x").error_code == "UNKNOWN"


def test_list_declarations_sends_period_and_token():
    client, session = _client(_response(payload={"md": [{"guid": "g-1"}, "basura"]}))

    result = client.list_declarations(DATE_FROM, DATE_TO)

    assert result.error is None
    assert result.declarations == [{"guid": "g-1"}]
    args, kwargs = session.get.call_args
    assert args[0] == "https://gateway.test/declarations"
    assert kwargs["params"] == {"date_from": "20240101", "date_to": "20240214"}
    assert kwargs["headers"]["Authorization"] == "Bearer secret-token"


def test_list_declarations_single_item_is_wrapped():
    client, _ = _client(_response(payload={"md": {"guid": "g-1"}}))

    assert client.list_declarations(DATE_FROM, DATE_TO).declarations == [{"guid": "g-1"}]


def test_list_declarations_reported_error():
    client, _ = _client(_response(payload={"error": "Service unavailable"}))

    result = client.list_declarations(DATE_FROM, DATE_TO)

    assert result.error == "Service unavailable"
    assert result.declarations == []


def test_list_declarations_invalid_structure():
    client, _ = _client(_response(payload=["no", "es", "dict"]))

    assert client.list_declarations(DATE_FROM, DATE_TO).error == "Invalid Response Structure"


def test_http_error_is_raised_with_status():
    client, _ = _client(_response(status_code=500, text="Internal error"))

    with pytest.raises(CustomsGatewayError) as exc_info:
        client.list_declarations(DATE_FROM, DATE_TO)

    assert exc_info.value.status_code == 500
    assert retry_wait_seconds(exc_info.value) == WAIT_SERVER_ERROR_S


@pytest.mark.parametrize(
    "raised, code",
    [(requests.Timeout("slow"), "ETIMEDOUT"), (requests.ConnectionError("reset"), "ECONNRESET")],
)
def test_transport_errors_are_mapped(raised, code):
    client, _ = _client(side_effect=raised)

    with pytest.raises(CustomsGatewayError) as exc_info:
        client.get_declaration_details("g-1")

    assert exc_info.value.code == code


def test_non_json_response_is_an_error():
    client, _ = _client(_response(json_error=True))

    with pytest.raises(CustomsGatewayError):
        client.get_declaration_details("g-1")


def test_get_declaration_details():
    client, session = _client(_response(payload={"xml": "<ccd/>"}))

    result = client.get_declaration_details("g-1")

    assert result.xml == "<ccd/>"
    assert session.get.call_args[0][0] == "https://gateway.test/declarations/g-1"


def test_get_declaration_details_blank_xml():
    client, _ = _client(_response(payload={"xml": "   "}))

    result = client.get_declaration_details("g-1")

    assert result.xml is None
    assert result.error is None
