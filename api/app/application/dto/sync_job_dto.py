"""
DTOs de jobs de sincronización de declaraciones.
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class DeclarationSyncRequestDTO(BaseModel):
    """Rango a sincronizar; sin fechas se usan los últimos tres años."""

    date_from: Optional[date] = Field(None, alias="dateFrom")
    date_to: Optional[date] = Field(None, alias="dateTo")

    class Config:
        populate_by_name = True


class DeclarationSyncStartedDTO(BaseModel):
    success: bool = True
    job_id: int = Field(..., alias="jobId")
    total_chunks: int = Field(..., alias="totalChunks")
    date_from: datetime = Field(..., alias="dateFrom")
    date_to: datetime = Field(..., alias="dateTo")

    class Config:
        populate_by_name = True


class SyncJobDTO(BaseModel):
    """Estado y progreso de un job."""

    id: int
    company_id: int
    status: str
    date_from: datetime
    date_to: datetime
    total_chunks_60_1: int
    completed_chunks_60_1: int
    total_guids: int
    completed_61_1: int
    error_message: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ActiveSyncJobResponseDTO(BaseModel):
    job: Optional[SyncJobDTO] = None


class SyncJobListItemDTO(SyncJobDTO):
    """Job con datos de la empresa para el listado administrativo."""

    company_name: Optional[str] = None
    company_edrpou: Optional[str] = None
    errors_count: int = 0


class SyncJobListResponseDTO(BaseModel):
    items: List[SyncJobListItemDTO]
    total: int
    page: int
    page_size: int


class SyncJobErrorDTO(BaseModel):
    id: int
    sync_job_id: int
    chunk_number: int
    date_from: datetime
    date_to: datetime
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    retry_attempts: int
    is_retried: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
