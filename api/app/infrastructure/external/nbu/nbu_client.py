"""
Cliente mínimo del API de tipos de cambio del NBU (bank.gov.ua).

- requests (bloqueante); los casos de uso async lo llaman vía asyncio.to_thread
- un request por día: devuelve la tabla completa de monedas de esa fecha
- "sin datos" (status != 200, array vacío, JSON inválido, error de red) se
  reporta como None, nunca como excepción
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional

import requests
from loguru import logger

from app.shared.utils.datetime_utils import DateTimeUtils

DEFAULT_NBU_URL = "https://bank.gov.ua/NBUStatService/v1/statdirectory/exchange"


@dataclass(frozen=True)
class NbuRate:
    """Fila de tipo de cambio normalizada."""

    currency_code: str
    currency_name: str
    rate: float
    r030: Optional[int] = None
    exchange_date: Optional[str] = None


def _parse_rate(item: Any) -> Optional[NbuRate]:
    """
    Normaliza un item del API. Retorna None si le falta código o el rate no es numérico.
    """
    if not isinstance(item, dict):
        return None
    code = str(item.get("cc") or "").strip().upper()
    if not code:
        return None
    raw_rate = item.get("rate")
    if isinstance(raw_rate, bool) or not isinstance(raw_rate, (int, float)):
        return None
    r030 = item.get("r030")
    return NbuRate(
        currency_code=code,
        currency_name=str(item.get("txt") or "").strip(),
        rate=float(raw_rate),
        r030=r030 if isinstance(r030, int) else None,
        exchange_date=item.get("exchangedate"),
    )


class NbuClient:
    """
    Cliente HTTP del NBU.

    Args:
        session: requests.Session reutilizable (inyectable en tests)
        base_url: Endpoint `statdirectory/exchange`
        timeout_s: Timeout por request
    """

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = DEFAULT_NBU_URL,
        timeout_s: int = 30,
    ) -> None:
        self._session = session or requests.Session()
        self._base_url = base_url
        self._timeout_s = timeout_s

    def build_params(self, day: date, currency_code: Optional[str] = None) -> dict[str, str]:
        params = {"date": DateTimeUtils.format_yyyymmdd(day), "json": ""}
        if currency_code:
            params["valcode"] = currency_code.strip().upper()
        return params

    def fetch_rates(self, day: date, currency_code: Optional[str] = None) -> Optional[List[NbuRate]]:
        """
        Descarga la tabla de tipos de cambio de un día.

        Args:
            day: Fecha a consultar
            currency_code: Filtro opcional por moneda (ej. "USD")

        Returns:
            Optional[List[NbuRate]]: Filas válidas, o None si no hay datos
        """
        params = self.build_params(day, currency_code)
        try:
            resp = self._session.get(
                self._base_url,
                params=params,
                headers={"Accept": "application/json"},
                timeout=self._timeout_s,
            )
        except requests.RequestException as e:
            logger.warning(f"NBU: error de red para {params['date']}: {e}")
            return None

        if resp.status_code != 200:
            logger.warning(f"NBU: status {resp.status_code} para {params['date']}")
            return None

        try:
            payload = resp.json()
        except ValueError:
            logger.warning(f"NBU: respuesta no JSON para {params['date']}")
            return None

        if not isinstance(payload, list) or not payload:
            logger.info(f"NBU: sin datos para {params['date']}")
            return None

        rates = [rate for rate in (_parse_rate(item) for item in payload) if rate is not None]
        return rates or None

    def fetch_rate(self, currency_code: str, day: date) -> Optional[float]:
        """Retorna el rate de una moneda para un día, o None si no hay dato."""
        rates = self.fetch_rates(day, currency_code)
        if not rates:
            return None
        code = currency_code.strip().upper()
        for rate in rates:
            if rate.currency_code == code:
                return rate.rate
        return None
