"""
Extracción acotada de representante, transportista y banco desde el XML 61.1.

Función pura y total: no hace I/O y nunca lanza, así se puede fuzzear
directamente. Usa patrones no codiciosos limitados a los delimitadores de
cada registro (`<ccd_client>`, `<ccd_bank>`); no es un parser general.
Para el resto de campos del resumen se usa `declaration_xml_mapper`.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple

from app.shared.constants.sync_constants import (
    CLIENT_GROUP_CARRIER,
    CLIENT_GROUP_REPRESENTATIVE,
    EMPTY_PLACEHOLDER,
)

MAX_CLIENT_BLOCKS = 2000

_CLIENT_BLOCK_RE = re.compile(
    r"<ccd_clients\b[^>]*>[\s\S]*?</ccd_clients>|<ccd_client\b[^>]*>[\s\S]*?</ccd_client>",
    re.IGNORECASE,
)
_BANK_BLOCK_RE = re.compile(r"<ccd_bank\b[^>]*>[\s\S]*?</ccd_bank>", re.IGNORECASE)
_NON_DIGITS_RE = re.compile(r"\D")


@dataclass(frozen=True)
class RepCarrierBank:
    representative_name: Optional[str] = None
    carrier_name: Optional[str] = None
    bank_name: Optional[str] = None


@dataclass(frozen=True)
class DeclarationPayload:
    """Contenido útil de `Declaration.xml_data`."""

    data60_1: Optional[dict] = None
    data61_1: Optional[str] = None


def parse_payload(payload: Any) -> DeclarationPayload:
    """
    Separa el sobre JSON del XML crudo.

    - `{` o `[` al inicio: sobre JSON con `data60_1` (dict) y/o `data61_1` (XML)
    - `<` al inicio: XML 61.1 crudo (registros antiguos)
    - cualquier otra cosa, o JSON inválido: sin datos
    """
    if not isinstance(payload, str):
        return DeclarationPayload()
    trimmed = payload.strip()
    if not trimmed:
        return DeclarationPayload()

    if trimmed[0] in "{[":
        try:
            parsed = json.loads(trimmed)
        except (ValueError, RecursionError):
            return DeclarationPayload()
        if not isinstance(parsed, dict):
            return DeclarationPayload()
        data60 = parsed.get("data60_1")
        data61 = parsed.get("data61_1")
        return DeclarationPayload(
            data60_1=data60 if isinstance(data60, dict) else None,
            data61_1=data61 if isinstance(data61, str) and data61.strip() else None,
        )

    if trimmed[0] == "<":
        return DeclarationPayload(data61_1=trimmed)

    return DeclarationPayload()


def has_61_1_data(payload: Any) -> bool:
    """Indica si el payload trae el detalle 61.1."""
    return parse_payload(payload).data61_1 is not None


def clean_value(value: Optional[str]) -> Optional[str]:
    """Vacío o el placeholder '---' se tratan como ausencia de dato."""
    if value is None:
        return None
    text = value.strip()
    if not text or text == EMPTY_PLACEHOLDER:
        return None
    return text


def normalize_group(value: Optional[str]) -> str:
    """'014' -> '14'; deja solo dígitos y quita ceros a la izquierda."""
    digits = _NON_DIGITS_RE.sub("", value or "")
    return digits.lstrip("0")


def extract_first_tag_text(xml: str, tag: str) -> Optional[str]:
    """Texto del primer `<tag>...</tag>` (sin mayúsculas/minúsculas), recortado."""
    pattern = re.compile(rf"<{re.escape(tag)}\b[^>]*>([\s\S]*?)</{re.escape(tag)}>", re.IGNORECASE)
    match = pattern.search(xml)
    if not match:
        return None
    return match.group(1).strip()


def iter_client_blocks(xml: str) -> Iterator[str]:
    for index, match in enumerate(_CLIENT_BLOCK_RE.finditer(xml)):
        if index >= MAX_CLIENT_BLOCKS:
            return
        yield match.group(0)


def client_entries(xml: str) -> List[Tuple[str, Optional[str]]]:
    """Lista de (grupo normalizado, nombre crudo) de cada cliente del XML."""
    return [
        (normalize_group(extract_first_tag_text(block, "ccd_cl_gr")), extract_first_tag_text(block, "ccd_cl_name"))
        for block in iter_client_blocks(xml)
    ]


def find_client_name(entries: List[Tuple[str, Optional[str]]], group: str) -> Optional[str]:
    """
    Nombre del primer cliente del grupo. El primero gana aunque su nombre
    sea '---' (en ese caso el resultado es None).
    """
    for entry_group, name in entries:
        if entry_group == group:
            return clean_value(name)
    return None


def extract_bank_name(xml: str) -> Optional[str]:
    match = _BANK_BLOCK_RE.search(xml)
    if not match:
        return None
    return clean_value(extract_first_tag_text(match.group(0), "ccd_bn_name"))


def extract_rep_carrier_bank(payload: Any) -> RepCarrierBank:
    """
    Extrae representante (grupo 14), transportista (grupo 50) y banco.

    Args:
        payload: `xml_data` de la declaración (sobre JSON o XML crudo)

    Returns:
        RepCarrierBank: Tres strings opcionales; todo None si no hay 61.1
    """
    xml = parse_payload(payload).data61_1
    if not xml:
        return RepCarrierBank()

    entries = client_entries(xml)
    return RepCarrierBank(
        representative_name=find_client_name(entries, CLIENT_GROUP_REPRESENTATIVE),
        carrier_name=find_client_name(entries, CLIENT_GROUP_CARRIER),
        bank_name=extract_bank_name(xml),
    )
