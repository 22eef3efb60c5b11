"""
DTOs de sincronización y auditoría de tipos de cambio.
"""
from pydantic import BaseModel, Field


class ExchangeRateSyncResponseDTO(BaseModel):
    """Respuesta del sync programado de tipos de cambio."""

    success: bool
    message: str
    total_synced: int = Field(0, alias="totalSynced")

    class Config:
        populate_by_name = True
