"""
Mapeo del payload de una declaración a los campos tipados de su resumen.

El XML 61.1 se recorre como árbol (ElementTree) y se leen campos por
nombre de elemento; los nombres de representante, transportista y banco
siguen saliendo del extractor acotado para conservar su contrato.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from xml.etree import ElementTree as ET

from app.application.services.declaration_summary_extractor import (
    clean_value,
    extract_rep_carrier_bank,
    normalize_group,
    parse_payload,
)
from app.shared.constants.sync_constants import (
    CLIENT_GROUP_CONTRACT_HOLDER,
    CLIENT_GROUP_RECIPIENT,
    CLIENT_GROUP_REPRESENTATIVE,
    CLIENT_GROUP_SENDER,
)
from app.shared.utils.datetime_utils import DateTimeUtils


@dataclass(frozen=True)
class SummaryData:
    """Campos del resumen más los códigos HS distintos de la declaración."""

    customs_value: Optional[float] = None
    currency: Optional[str] = None
    total_items: Optional[int] = None
    customs_office: Optional[str] = None
    declarant_name: Optional[str] = None
    sender_name: Optional[str] = None
    recipient_name: Optional[str] = None
    contract_holder: Optional[str] = None
    representative_name: Optional[str] = None
    carrier_name: Optional[str] = None
    bank_name: Optional[str] = None
    declaration_type: Optional[str] = None
    registered_date: Optional[datetime] = None
    invoice_value: Optional[float] = None
    invoice_currency: Optional[str] = None
    invoice_value_uah: Optional[float] = None
    exchange_rate: Optional[float] = None
    transport_details: Optional[str] = None
    hs_codes: List[str] = field(default_factory=list)
    has_details: bool = False

    def summary_columns(self) -> Dict[str, Any]:
        """Columnas de `declaration_summaries` (sin hs_codes ni flags)."""
        data = asdict(self)
        data.pop("hs_codes")
        data.pop("has_details")
        return data


def _local_name(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _children(elem: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in elem if _local_name(child.tag) == name]


def _child_text(elem: ET.Element, name: str) -> Optional[str]:
    for child in elem:
        if _local_name(child.tag) == name:
            return clean_value("".join(child.itertext()))
    return None


def _to_float(value: Optional[str]) -> Optional[float]:
    """'123,45' -> 123.45. Cero o inválido -> None."""
    if not value:
        return None
    try:
        number = float(value.replace(",", "."))
    except ValueError:
        return None
    return number or None


def _to_int(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        number = int(value.strip())
    except ValueError:
        return None
    return number or None


def _normalize_hs_code(value: Optional[str]) -> Optional[str]:
    digits = "".join(ch for ch in (value or "") if ch.isdigit())
    return digits or None


def _client_name(clients: List[ET.Element], group: str) -> Optional[str]:
    for client in clients:
        if normalize_group(_child_text(client, "ccd_cl_gr")) == group:
            return _child_text(client, "ccd_cl_name")
    return None


def _declaration_type(root: ET.Element) -> Optional[str]:
    parts = [_child_text(root, tag) for tag in ("ccd_01_01", "ccd_01_02", "ccd_01_03")]
    present = [part for part in parts if part]
    return " / ".join(present) if present else None


def _transport_details(root: ET.Element) -> Optional[str]:
    labels = []
    for transport in _children(root, "ccd_transport"):
        name = _child_text(transport, "ccd_trn_name")
        country = _child_text(transport, "ccd_trn_cnt")
        if name:
            labels.append(f"{name} ({country})" if country else name)
    if labels:
        return ", ".join(labels)
    return _child_text(root, "ccd_21_04")


def map_61_1(xml: str) -> Optional[SummaryData]:
    """
    Mapea el XML 61.1 completo.

    Returns:
        Optional[SummaryData]: None si el XML no parsea
    """
    try:
        root = ET.fromstring(xml)
    except ET.ParseError:
        return None

    clients = _children(root, "ccd_clients") + _children(root, "ccd_client")
    names = extract_rep_carrier_bank(xml)

    hs_codes: List[str] = []
    for goods in _children(root, "ccd_goods"):
        code = _normalize_hs_code(_child_text(goods, "ccd_33_01"))
        if code and code not in hs_codes:
            hs_codes.append(code)

    return SummaryData(
        customs_value=_to_float(_child_text(root, "ccd_12_01")),
        currency=_child_text(root, "ccd_22_cur") or "UAH",
        total_items=_to_int(_child_text(root, "ccd_05_01")),
        customs_office=_child_text(root, "ccd_07_01"),
        declarant_name=_child_text(root, "ccd_54_02") or _client_name(clients, CLIENT_GROUP_REPRESENTATIVE),
        sender_name=_client_name(clients, CLIENT_GROUP_SENDER),
        recipient_name=_client_name(clients, CLIENT_GROUP_RECIPIENT),
        contract_holder=_client_name(clients, CLIENT_GROUP_CONTRACT_HOLDER),
        representative_name=names.representative_name,
        carrier_name=names.carrier_name,
        bank_name=names.bank_name,
        declaration_type=_declaration_type(root),
        registered_date=DateTimeUtils.parse_registered(_child_text(root, "ccd_registered")),
        invoice_value=_to_float(_child_text(root, "ccd_22_02")),
        invoice_currency=_child_text(root, "ccd_22_01"),
        invoice_value_uah=_to_float(_child_text(root, "ccd_22_03")),
        exchange_rate=_to_float(_child_text(root, "ccd_23_01")),
        transport_details=_transport_details(root),
        hs_codes=hs_codes,
        has_details=True,
    )


def _str_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    return clean_value(str(value))


def map_60_1(data60: Dict[str, Any]) -> Optional[SummaryData]:
    """Campos básicos disponibles en la lista 60.1."""
    summary = SummaryData(
        declaration_type=_str_or_none(data60.get("ccd_type")),
        customs_office=_str_or_none(data60.get("ccd_07_01")),
        registered_date=DateTimeUtils.parse_registered(_str_or_none(data60.get("ccd_registered"))),
        transport_details=_str_or_none(data60.get("trn_all")),
    )
    if not any(summary.summary_columns().values()):
        return None
    return summary


def extract_summary(payload: Any) -> Optional[SummaryData]:
    """
    Calcula el resumen de un `xml_data`.

    Prioridad: detalle 61.1 si parsea; si no, campos básicos de 60.1.

    Returns:
        Optional[SummaryData]: None si no hay nada útil
    """
    parsed = parse_payload(payload)
    if parsed.data61_1:
        mapped = map_61_1(parsed.data61_1)
        if mapped is not None:
            return mapped
    if parsed.data60_1:
        return map_60_1(parsed.data60_1)
    return None
