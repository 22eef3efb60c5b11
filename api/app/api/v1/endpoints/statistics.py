"""
Endpoint de estadísticas de declaraciones de la empresa activa.
"""
from fastapi import APIRouter, Depends, Query

from app.api.v1.dependencies.access_deps import CompanyAccess, get_company_access
from app.api.v1.dependencies.use_case_deps import get_declaration_statistics_use_cases
from app.application.dto.statistics_dto import DeclarationStatisticsDTO
from app.application.use_cases.declaration_statistics_use_cases import DeclarationStatisticsUseCases


router = APIRouter(prefix="/statistics", tags=["Statistics"])


@router.get("/declarations", response_model=DeclarationStatisticsDTO, summary="Estadísticas de declaraciones")
async def get_declaration_statistics(
    refresh: bool = Query(False, description="Ignora la cache y recalcula"),
    access: CompanyAccess = Depends(get_company_access),
    use_cases: DeclarationStatisticsUseCases = Depends(get_declaration_statistics_use_cases),
) -> DeclarationStatisticsDTO:
    statistics = await use_cases.get_statistics(access.company_id, force_refresh=refresh)
    return DeclarationStatisticsDTO(**statistics)
