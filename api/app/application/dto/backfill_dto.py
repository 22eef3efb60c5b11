"""
DTOs del backfill de resúmenes de declaraciones.
"""
from typing import Optional

from pydantic import BaseModel, Field


class BackfillSummariesRequestDTO(BaseModel):
    """Página de backfill solicitada por el cliente."""

    batch_size: Optional[int] = Field(None, alias="batchSize", description="Tamaño de página (1..500)")
    cursor: Optional[int] = Field(None, description="Último id procesado")

    class Config:
        populate_by_name = True


class BackfillSummariesResponseDTO(BaseModel):
    """Resultado de una página de backfill."""

    success: bool = True
    processed: int
    updated: int
    next_cursor: Optional[int] = Field(None, alias="nextCursor")
    done: bool
    batch_size: int = Field(..., alias="batchSize")

    class Config:
        populate_by_name = True
