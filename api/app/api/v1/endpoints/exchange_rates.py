"""
Endpoint del sync programado de tipos de cambio NBU.

Lo llama un cron externo con el secreto compartido, por header
`Authorization: Bearer <secreto>` o por query `?secret=`.
"""
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, status
from loguru import logger

from app.api.v1.dependencies.infrastructure_deps import get_operation_lock, get_operation_log
from app.api.v1.dependencies.use_case_deps import get_exchange_rate_sync_use_cases
from app.application.dto.exchange_rate_dto import ExchangeRateSyncResponseDTO
from app.application.use_cases.exchange_rate_sync_use_cases import ExchangeRateSyncUseCases
from app.core.config import settings
from app.infrastructure.operations.operation_lock import LOCK_REASON_LOCKED, OperationLock
from app.infrastructure.operations.operation_log import OperationLog
from app.shared.constants.sync_constants import (
    OPERATION_EXCHANGE_RATES_SYNC,
    ExchangeRateSyncType,
    OperationStatus,
)
from app.shared.exceptions.auth import ServerMisconfiguredException, UnauthorizedException
from app.shared.exceptions.base import AppException
from app.shared.exceptions.domain import OperationLockedException, ValidationException


router = APIRouter(prefix="/exchange-rates", tags=["Exchange Rates"])


def _provided_secret(authorization: Optional[str], secret: Optional[str]) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return secret


def _check_secret(provided: Optional[str]) -> None:
    expected = settings.EXCHANGE_RATES_SYNC_SECRET
    if not expected:
        raise ServerMisconfiguredException("EXCHANGE_RATES_SYNC_SECRET")
    if not provided or not secrets.compare_digest(provided, expected):
        raise UnauthorizedException("Secreto de sincronizacion invalido")


def _parse_type(sync_type: str) -> ExchangeRateSyncType:
    try:
        return ExchangeRateSyncType(sync_type)
    except ValueError:
        raise ValidationException("Tipo de sync invalido. Use 'full' o 'daily'", field="type") from None


async def _run_sync(
    sync_type: ExchangeRateSyncType,
    use_cases: ExchangeRateSyncUseCases,
    lock: OperationLock,
    operation_log: OperationLog,
) -> ExchangeRateSyncResponseDTO:
    scope_key = f"SYNC:{sync_type.value}"
    acquired = await lock.acquire(scope_key, OPERATION_EXCHANGE_RATES_SYNC, settings.EXCHANGE_RATE_LOCK_TTL_SECONDS)
    if not acquired.ok:
        if acquired.reason == LOCK_REASON_LOCKED:
            await operation_log.record(
                OPERATION_EXCHANGE_RATES_SYNC,
                OperationStatus.BLOCKED,
                details=f"Lock {scope_key} ocupado",
                meta={"type": sync_type.value},
            )
            raise OperationLockedException(scope_key)
        raise AppException(
            message="No se pudo tomar el lock de sincronizacion",
            status_code=500,
            error_code="LOCK_ERROR",
            details={"scope_key": scope_key},
        )

    try:
        async with operation_log.track(OPERATION_EXCHANGE_RATES_SYNC, meta={"type": sync_type.value}) as handle:
            if sync_type is ExchangeRateSyncType.FULL:
                total_synced = await use_cases.sync_full()
            else:
                total_synced = await use_cases.sync_missing()
            handle.meta["totalSynced"] = total_synced
    finally:
        await lock.release(scope_key)

    logger.success(f"Sync de tipos de cambio '{sync_type.value}' completado: {total_synced} filas")
    return ExchangeRateSyncResponseDTO(
        success=True,
        message=f"Sync '{sync_type.value}' completado",
        total_synced=total_synced,
    )


@router.api_route(
    "/sync",
    methods=["GET", "POST"],
    response_model=ExchangeRateSyncResponseDTO,
    status_code=status.HTTP_200_OK,
    summary="Sincronizar tipos de cambio NBU"
)
async def sync_exchange_rates(
    sync_type: str = Query("daily", alias="type", description="full (3 años) o daily (huecos de 30 días)"),
    secret: Optional[str] = Query(None, description="Secreto compartido (alternativa al header)"),
    authorization: Optional[str] = Header(None),
    use_cases: ExchangeRateSyncUseCases = Depends(get_exchange_rate_sync_use_cases),
    lock: OperationLock = Depends(get_operation_lock),
    operation_log: OperationLog = Depends(get_operation_log),
) -> ExchangeRateSyncResponseDTO:
    """
    Ejecuta el sync de tipos de cambio.

    - 500 si el secreto no está configurado
    - 401 si el secreto no coincide
    - 400 si el tipo no es full/daily
    - 429 si otro sync del mismo tipo tiene el lock
    """
    _check_secret(_provided_secret(authorization, secret))
    parsed_type = _parse_type(sync_type)
    return await _run_sync(parsed_type, use_cases, lock, operation_log)
