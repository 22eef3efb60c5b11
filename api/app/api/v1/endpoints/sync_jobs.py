"""
Endpoints administrativos de jobs de sincronización.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.api.v1.dependencies.access_deps import require_admin_token
from app.api.v1.dependencies.use_case_deps import get_sync_job_use_cases
from app.application.dto.sync_job_dto import (
    SyncJobDTO,
    SyncJobErrorDTO,
    SyncJobListItemDTO,
    SyncJobListResponseDTO,
)
from app.application.use_cases.sync_job_use_cases import SyncJobUseCases
from app.shared.constants.sync_constants import SYNC_JOB_PAGE_SIZE_DEFAULT


router = APIRouter(prefix="/admin/sync-jobs", tags=["Admin Sync Jobs"])


@router.get("", response_model=SyncJobListResponseDTO, summary="Listar jobs de sincronización")
async def list_sync_jobs(
    status: Optional[str] = Query(None, description="processing|completed|cancelled|error|all"),
    created_from: Optional[datetime] = Query(None, alias="from"),
    created_to: Optional[datetime] = Query(None, alias="to"),
    q: Optional[str] = Query(None, description="Nombre o EDRPOU de la empresa"),
    page: int = Query(1, ge=1),
    page_size: int = Query(SYNC_JOB_PAGE_SIZE_DEFAULT, alias="pageSize"),
    _: str = Depends(require_admin_token),
    use_cases: SyncJobUseCases = Depends(get_sync_job_use_cases),
) -> SyncJobListResponseDTO:
    result = await use_cases.list_jobs(
        status=status,
        created_from=created_from,
        created_to=created_to,
        query=q,
        page=page,
        page_size=page_size,
    )
    items = [
        SyncJobListItemDTO(
            **SyncJobDTO.model_validate(row["job"]).model_dump(),
            company_name=row["company_name"],
            company_edrpou=row["company_edrpou"],
            errors_count=row["errors_count"],
        )
        for row in result["items"]
    ]
    return SyncJobListResponseDTO(
        items=items,
        total=result["total"],
        page=result["page"],
        page_size=result["page_size"],
    )


@router.get("/{job_id}/errors", response_model=List[SyncJobErrorDTO], summary="Errores por chunk de un job")
async def get_sync_job_errors(
    job_id: int,
    _: str = Depends(require_admin_token),
    use_cases: SyncJobUseCases = Depends(get_sync_job_use_cases),
) -> List[SyncJobErrorDTO]:
    errors = await use_cases.get_errors(job_id)
    return [SyncJobErrorDTO.model_validate(error) for error in errors]


@router.post("/{job_id}/cancel", response_model=SyncJobDTO, summary="Cancelar un job")
async def cancel_sync_job(
    job_id: int,
    _: str = Depends(require_admin_token),
    use_cases: SyncJobUseCases = Depends(get_sync_job_use_cases),
) -> SyncJobDTO:
    """409 si el job no está en processing."""
    job = await use_cases.cancel_by_id(job_id)
    return SyncJobDTO.model_validate(job)
