"""
Dependencias de infraestructura: clientes externos, lock, auditoría y cache.
"""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.config import settings
from app.infrastructure.database.session import get_session_factory
from app.infrastructure.external.customs.gateway_client import CustomsGatewayClient
from app.infrastructure.external.nbu.nbu_client import NbuClient
from app.infrastructure.operations.operation_lock import OperationLock
from app.infrastructure.operations.operation_log import OperationLog
from app.shared.exceptions.auth import ServerMisconfiguredException
from app.shared.utils.statistics_cache import StatisticsCache


def get_nbu_client() -> NbuClient:
    return NbuClient(base_url=settings.NBU_API_URL, timeout_s=settings.NBU_TIMEOUT_SECONDS)


def get_declaration_source() -> CustomsGatewayClient:
    """
    Cliente del gateway aduanero.

    Raises:
        ServerMisconfiguredException: Si falta CUSTOMS_GATEWAY_URL
    """
    if not settings.CUSTOMS_GATEWAY_URL:
        raise ServerMisconfiguredException("CUSTOMS_GATEWAY_URL")
    return CustomsGatewayClient(
        settings.CUSTOMS_GATEWAY_URL,
        settings.CUSTOMS_GATEWAY_TOKEN,
        timeout_s=settings.CUSTOMS_GATEWAY_TIMEOUT_SECONDS,
    )


def get_statistics_cache(request: Request) -> StatisticsCache:
    """Cache de estadísticas compartida por la aplicación (creada en el factory)."""
    return request.app.state.statistics_cache


def get_operation_lock(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> OperationLock:
    return OperationLock(session_factory)


def get_operation_log(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> OperationLog:
    return OperationLog(session_factory)
