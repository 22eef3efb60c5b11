"""
Endpoints de sincronización de declaraciones de la empresa activa.
"""
from typing import Optional

from fastapi import APIRouter, Depends, status

from app.api.v1.dependencies.access_deps import CompanyAccess, get_company_access, require_company_writer
from app.api.v1.dependencies.use_case_deps import get_declaration_sync_use_cases, get_sync_job_use_cases
from app.application.dto.sync_job_dto import (
    ActiveSyncJobResponseDTO,
    DeclarationSyncRequestDTO,
    DeclarationSyncStartedDTO,
    SyncJobDTO,
)
from app.application.use_cases.declaration_sync_use_cases import DeclarationSyncUseCases
from app.application.use_cases.sync_job_use_cases import SyncJobUseCases


router = APIRouter(prefix="/sync/declarations", tags=["Declaration Sync"])


@router.post(
    "",
    response_model=DeclarationSyncStartedDTO,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Iniciar sincronización de declaraciones"
)
async def start_declaration_sync(
    dto: Optional[DeclarationSyncRequestDTO] = None,
    access: CompanyAccess = Depends(require_company_writer),
    use_cases: DeclarationSyncUseCases = Depends(get_declaration_sync_use_cases),
) -> DeclarationSyncStartedDTO:
    """
    Crea el job y lo ejecuta en background.

    - 409 si la empresa ya tiene un job en processing
    - 429 si otra sincronización de la empresa tiene el lock
    """
    dto = dto or DeclarationSyncRequestDTO()
    started = await use_cases.start_sync(
        access.company_id,
        date_from=dto.date_from,
        date_to=dto.date_to,
        user_id=access.user_id,
    )
    return DeclarationSyncStartedDTO(
        job_id=started.job_id,
        total_chunks=started.total_chunks,
        date_from=started.date_from,
        date_to=started.date_to,
    )


@router.get("/active", response_model=ActiveSyncJobResponseDTO, summary="Job activo de la empresa")
async def get_active_declaration_sync(
    access: CompanyAccess = Depends(get_company_access),
    use_cases: SyncJobUseCases = Depends(get_sync_job_use_cases),
) -> ActiveSyncJobResponseDTO:
    job = await use_cases.get_active_for_company(access.company_id)
    return ActiveSyncJobResponseDTO(job=SyncJobDTO.model_validate(job) if job else None)


@router.post("/cancel", response_model=ActiveSyncJobResponseDTO, summary="Cancelar el job activo")
async def cancel_declaration_sync(
    access: CompanyAccess = Depends(require_company_writer),
    use_cases: SyncJobUseCases = Depends(get_sync_job_use_cases),
) -> ActiveSyncJobResponseDTO:
    """Marca como `cancelled` el job en processing; el loop se detiene en la próxima unidad."""
    job = await use_cases.cancel_for_company(access.company_id)
    return ActiveSyncJobResponseDTO(job=SyncJobDTO.model_validate(job) if job else None)
