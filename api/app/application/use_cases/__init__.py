"""
Casos de uso de la aplicacion.
"""
from .exchange_rate_sync_use_cases import ExchangeRateSyncUseCases
from .exchange_rate_audit_use_cases import ExchangeRateAuditUseCases
from .declaration_summary_use_cases import DeclarationSummaryUseCases
from .declaration_statistics_use_cases import DeclarationStatisticsUseCases
from .sync_job_use_cases import SyncJobUseCases
from .declaration_sync_use_cases import DeclarationSyncUseCases

__all__ = [
    "ExchangeRateSyncUseCases",
    "ExchangeRateAuditUseCases",
    "DeclarationSummaryUseCases",
    "DeclarationStatisticsUseCases",
    "SyncJobUseCases",
    "DeclarationSyncUseCases",
]
