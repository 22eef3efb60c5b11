"""
Dependencias para inyeccion de casos de uso.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.v1.dependencies.infrastructure_deps import (
    get_declaration_source,
    get_nbu_client,
    get_operation_lock,
    get_operation_log,
    get_statistics_cache,
)
from app.application.use_cases.declaration_statistics_use_cases import DeclarationStatisticsUseCases
from app.application.use_cases.declaration_summary_use_cases import DeclarationSummaryUseCases
from app.application.use_cases.declaration_sync_use_cases import DeclarationSyncUseCases
from app.application.use_cases.exchange_rate_audit_use_cases import ExchangeRateAuditUseCases
from app.application.use_cases.exchange_rate_sync_use_cases import ExchangeRateSyncUseCases
from app.application.use_cases.sync_job_use_cases import SyncJobUseCases
from app.infrastructure.database.session import get_db, get_session_factory
from app.infrastructure.external.customs.gateway_client import DeclarationSource
from app.infrastructure.external.nbu.nbu_client import NbuClient
from app.infrastructure.operations.operation_lock import OperationLock
from app.infrastructure.operations.operation_log import OperationLog
from app.shared.utils.statistics_cache import StatisticsCache


def get_exchange_rate_sync_use_cases(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    nbu_client: NbuClient = Depends(get_nbu_client),
) -> ExchangeRateSyncUseCases:
    """
    Dependencia para obtener los casos de uso de sync de tipos de cambio.

    Returns:
        ExchangeRateSyncUseCases: Instancia con sesión por día
    """
    return ExchangeRateSyncUseCases(session_factory, nbu_client)


def get_exchange_rate_audit_use_cases(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    nbu_client: NbuClient = Depends(get_nbu_client),
) -> ExchangeRateAuditUseCases:
    return ExchangeRateAuditUseCases(session_factory, nbu_client)


async def get_declaration_summary_use_cases(
    db: AsyncSession = Depends(get_db),
    statistics_cache: StatisticsCache = Depends(get_statistics_cache),
) -> DeclarationSummaryUseCases:
    """
    Dependencia para obtener los casos de uso de resúmenes.

    Args:
        db: Sesion de base de datos (commit al terminar la request)
        statistics_cache: Cache a invalidar en cada escritura

    Returns:
        DeclarationSummaryUseCases: Instancia de casos de uso
    """
    return DeclarationSummaryUseCases(db, statistics_cache)


async def get_declaration_statistics_use_cases(
    db: AsyncSession = Depends(get_db),
    statistics_cache: StatisticsCache = Depends(get_statistics_cache),
) -> DeclarationStatisticsUseCases:
    return DeclarationStatisticsUseCases(db, statistics_cache)


async def get_sync_job_use_cases(db: AsyncSession = Depends(get_db)) -> SyncJobUseCases:
    return SyncJobUseCases(db)


def get_declaration_sync_use_cases(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    source: DeclarationSource = Depends(get_declaration_source),
    lock: OperationLock = Depends(get_operation_lock),
    operation_log: OperationLog = Depends(get_operation_log),
    statistics_cache: StatisticsCache = Depends(get_statistics_cache),
) -> DeclarationSyncUseCases:
    """
    Dependencia para obtener el orquestador de sync de declaraciones.

    Returns:
        DeclarationSyncUseCases: Orquestador con lock, auditoría y cache
    """
    return DeclarationSyncUseCases(
        session_factory,
        source,
        lock=lock,
        operation_log=operation_log,
        statistics_cache=statistics_cache,
    )
