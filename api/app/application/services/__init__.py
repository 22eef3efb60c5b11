"""
Servicios de aplicacion.

Funciones puras sobre el payload de las declaraciones: extracción
acotada de nombres y mapeo del resumen.
"""
from app.application.services.declaration_summary_extractor import (
    RepCarrierBank,
    extract_rep_carrier_bank,
    parse_payload,
)
from app.application.services.declaration_xml_mapper import SummaryData, extract_summary

__all__ = [
    "RepCarrierBank",
    "extract_rep_carrier_bank",
    "parse_payload",
    "SummaryData",
    "extract_summary",
]
