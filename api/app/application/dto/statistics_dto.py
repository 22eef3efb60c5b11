"""
DTO de estadísticas de declaraciones.
"""
from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel


class DeclarationStatisticsDTO(BaseModel):
    total_declarations: int
    by_status: Dict[str, int]
    summaries_count: int
    total_customs_value: float
    total_invoice_value_uah: float
    last_declaration_date: Optional[datetime] = None
    cached: bool
