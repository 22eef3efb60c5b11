"""
Cliente del gateway de la aduana (listas 60.1 y detalle 61.1).

La firma de requests y las credenciales de la empresa viven en el gateway;
este cliente solo habla JSON sobre HTTP con un bearer token.

- requests (bloqueante); el orquestador lo llama vía asyncio.to_thread
- errores HTTP y de red se levantan como CustomsGatewayError con
  `status_code`/`code` para que el llamador decida si reintentar
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Protocol

import requests
from loguru import logger

from app.shared.utils.datetime_utils import DateTimeUtils

# Segundos de espera antes del reintento según tipo de error
WAIT_TIMEOUT_S = 5.0
WAIT_SERVER_ERROR_S = 8.0
WAIT_CHANNEL_TIMEOUT_S = 12.0
WAIT_NETWORK_ERROR_S = 10.0

NETWORK_ERROR_CODES = frozenset({"ECONNRESET", "ECONNREFUSED", "ENOTFOUND", "EAI_AGAIN", "EPIPE"})
CHANNEL_TIMEOUT_MARKERS = ("channel timeout", "sendtimeout", "время ожидания")


class CustomsGatewayError(RuntimeError):
    """Error de integración con el gateway aduanero."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code

    @property
    def error_code(self) -> str:
        if self.status_code is not None:
            return str(self.status_code)
        return self.code or "UNKNOWN"


@dataclass(frozen=True)
class DeclarationListResult:
    """
    Resultado de una consulta 60.1.

    `error` indica un fallo reportado por la aduana; lista vacía sin error
    significa período sin declaraciones.
    """

    declarations: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


@dataclass(frozen=True)
class DeclarationDetailsResult:
    xml: Optional[str] = None
    error: Optional[str] = None


class DeclarationSource(Protocol):
    """Fuente de declaraciones que consume el orquestador de sync."""

    def list_declarations(self, date_from: datetime, date_to: datetime) -> DeclarationListResult:
        ...

    def get_declaration_details(self, guid: str) -> DeclarationDetailsResult:
        ...


def retry_wait_seconds(error: Exception) -> Optional[float]:
    """
    Clasifica un error para el reintento de un chunk.

    Returns:
        Optional[float]: segundos a esperar antes de reintentar, o None si no es reintentable
    """
    if not isinstance(error, CustomsGatewayError):
        return None
    message = str(error).lower()

    if error.status_code == 500:
        return WAIT_SERVER_ERROR_S
    if error.status_code == 400 and any(marker in message for marker in CHANNEL_TIMEOUT_MARKERS):
        return WAIT_CHANNEL_TIMEOUT_S
    if error.code in NETWORK_ERROR_CODES:
        return WAIT_NETWORK_ERROR_S
    if error.code == "ETIMEDOUT" or "timeout" in message:
        return WAIT_TIMEOUT_S
    return None


class CustomsGatewayClient:
    """
    Implementación HTTP de `DeclarationSource`.

    Args:
        base_url: URL base del gateway
        token: Bearer token de la empresa
        session: requests.Session reutilizable (inyectable en tests)
        timeout_s: Timeout por request (las listas de 45 días pueden tardar)
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        session: Optional[requests.Session] = None,
        timeout_s: int = 90,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._session = session or requests.Session()
        self._timeout_s = timeout_s

    def _request_json(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        url = f"{self._base_url}{path}"
        headers = {"Authorization": f"Bearer {self._token}", "Accept": "application/json"}
        try:
            resp = self._session.get(url, params=params, headers=headers, timeout=self._timeout_s)
        except requests.Timeout as e:
            raise CustomsGatewayError(f"timeout: {e}", code="ETIMEDOUT") from e
        except requests.ConnectionError as e:
            raise CustomsGatewayError(f"connection error: {e}", code="ECONNRESET") from e
        except requests.RequestException as e:
            raise CustomsGatewayError(f"request error: {e}") from e

        if resp.status_code >= 400:
            raise CustomsGatewayError(
                f"Gateway {resp.status_code}: {resp.text[:500]}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise CustomsGatewayError("Respuesta del gateway no es JSON", status_code=resp.status_code) from e

    def list_declarations(self, date_from: datetime, date_to: datetime) -> DeclarationListResult:
        payload = self._request_json(
            "/declarations",
            {
                "date_from": DateTimeUtils.format_yyyymmdd(date_from),
                "date_to": DateTimeUtils.format_yyyymmdd(date_to),
            },
        )
        if not isinstance(payload, dict):
            return DeclarationListResult(error="Invalid Response Structure")
        if payload.get("error"):
            return DeclarationListResult(error=str(payload["error"]))
        items = payload.get("md") or []
        if not isinstance(items, list):
            items = [items]
        logger.debug(f"Gateway 60.1: {len(items)} declaraciones {date_from.date()}..{date_to.date()}")
        return DeclarationListResult(declarations=[item for item in items if isinstance(item, dict)])

    def get_declaration_details(self, guid: str) -> DeclarationDetailsResult:
        payload = self._request_json(f"/declarations/{guid}")
        if not isinstance(payload, dict):
            return DeclarationDetailsResult(error="Invalid Response Structure")
        if payload.get("error"):
            return DeclarationDetailsResult(error=str(payload["error"]))
        xml = payload.get("xml")
        return DeclarationDetailsResult(xml=xml if isinstance(xml, str) and xml.strip() else None)
