"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .exchange_rate_dto import ExchangeRateSyncResponseDTO
from .backfill_dto import BackfillSummariesRequestDTO, BackfillSummariesResponseDTO
from .sync_job_dto import (
    ActiveSyncJobResponseDTO,
    DeclarationSyncRequestDTO,
    DeclarationSyncStartedDTO,
    SyncJobDTO,
    SyncJobErrorDTO,
    SyncJobListItemDTO,
    SyncJobListResponseDTO,
)
from .statistics_dto import DeclarationStatisticsDTO

__all__ = [
    "ExchangeRateSyncResponseDTO",
    "BackfillSummariesRequestDTO",
    "BackfillSummariesResponseDTO",
    "ActiveSyncJobResponseDTO",
    "DeclarationSyncRequestDTO",
    "DeclarationSyncStartedDTO",
    "SyncJobDTO",
    "SyncJobErrorDTO",
    "SyncJobListItemDTO",
    "SyncJobListResponseDTO",
    "DeclarationStatisticsDTO",
]
