"""
Endpoints de administración: backfill de resúmenes y auditoría de tipos de cambio.
"""
import json
from datetime import date
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from app.api.v1.dependencies.access_deps import CompanyAccess, require_admin_token, require_company_writer
from app.api.v1.dependencies.use_case_deps import (
    get_declaration_summary_use_cases,
    get_exchange_rate_audit_use_cases,
)
from app.application.dto.backfill_dto import BackfillSummariesRequestDTO, BackfillSummariesResponseDTO
from app.application.use_cases.declaration_summary_use_cases import DeclarationSummaryUseCases
from app.application.use_cases.exchange_rate_audit_use_cases import (
    ExchangeRateAuditUseCases,
    resolve_audit_range,
)

NDJSON_MEDIA_TYPE = "application/x-ndjson"

router = APIRouter(prefix="/admin", tags=["Admin"])


async def _ndjson(events: AsyncIterator[Dict[str, Any]]) -> AsyncIterator[str]:
    async for event in events:
        yield json.dumps(event, ensure_ascii=False) + "\n"


@router.post(
    "/backfill-summaries",
    response_model=BackfillSummariesResponseDTO,
    summary="Recalcular una página de resúmenes"
)
async def backfill_summaries(
    dto: Optional[BackfillSummariesRequestDTO] = None,
    access: CompanyAccess = Depends(require_company_writer),
    use_cases: DeclarationSummaryUseCases = Depends(get_declaration_summary_use_cases),
) -> BackfillSummariesResponseDTO:
    """
    Recalcula hasta `batchSize` resúmenes de la empresa activa a partir de `cursor`.

    El cliente repite la llamada con `nextCursor` hasta recibir `done`.
    """
    dto = dto or BackfillSummariesRequestDTO()
    result = await use_cases.backfill_batch(access.company_id, dto.batch_size, dto.cursor)
    return BackfillSummariesResponseDTO(
        processed=result.processed,
        updated=result.updated,
        next_cursor=result.next_cursor,
        done=result.done,
        batch_size=result.batch_size,
    )


@router.get("/audit-exchange-rates", summary="Auditar tipos de cambio contra el NBU")
async def audit_exchange_rates(
    request: Request,
    years: Optional[int] = Query(None, description="Años hacia atrás (1..10, default 3)"),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    _: str = Depends(require_admin_token),
    use_cases: ExchangeRateAuditUseCases = Depends(get_exchange_rate_audit_use_cases),
) -> StreamingResponse:
    """Stream NDJSON de eventos start/mismatch/progress/done (solo lectura)."""
    start, end = resolve_audit_range(years=years, date_from=date_from, date_to=date_to)
    events = use_cases.audit(start, end, should_abort=request.is_disconnected)
    return StreamingResponse(_ndjson(events), media_type=NDJSON_MEDIA_TYPE)


@router.post("/fix-exchange-rates", summary="Reparar tipos de cambio desde el NBU")
async def fix_exchange_rates(
    request: Request,
    years: Optional[int] = Query(None, description="Años hacia atrás (1..10, default 3)"),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    _: str = Depends(require_admin_token),
    use_cases: ExchangeRateAuditUseCases = Depends(get_exchange_rate_audit_use_cases),
) -> StreamingResponse:
    """Stream NDJSON de la reparación: vuelve a guardar todas las monedas de cada día."""
    start, end = resolve_audit_range(years=years, date_from=date_from, date_to=date_to)
    events = use_cases.fix(start, end, should_abort=request.is_disconnected)
    return StreamingResponse(_ndjson(events), media_type=NDJSON_MEDIA_TYPE)
