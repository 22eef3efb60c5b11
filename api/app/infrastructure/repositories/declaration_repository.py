"""
Repositorio de declaraciones, resúmenes y códigos HS.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import delete, distinct, func, not_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.database.models import (
    DeclarationHsCodeModel,
    DeclarationModel,
    DeclarationSummaryModel,
)
from app.infrastructure.database.upsert import dialect_insert
from app.infrastructure.repositories.cursor_scanner import CursorScanner
from app.shared.utils.datetime_utils import DateTimeUtils

DATA61_1_MARKER = '"data61_1"'
LEADING_WHITESPACE = " \t\r\n"


def details_present():
    """
    Condición SQL: `xml_data` trae 61.1, en el sobre JSON o como XML crudo (registros antiguos).
    """
    return or_(
        DeclarationModel.xml_data.contains(DATA61_1_MARKER),
        func.ltrim(DeclarationModel.xml_data, LEADING_WHITESPACE).like("<%"),
    )


class DeclarationRepository:
    """Acceso a `declarations` y sus proyecciones derivadas."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, declaration_id: int) -> Optional[DeclarationModel]:
        return await self.db.get(DeclarationModel, declaration_id)

    async def find_by_guid_or_mrn(
        self,
        company_id: int,
        customs_id: Optional[str],
        mrn: Optional[str],
    ) -> Optional[DeclarationModel]:
        """Busca una declaración de la empresa por GUID aduanero o por MRN."""
        conditions = []
        if customs_id:
            conditions.append(DeclarationModel.customs_id == customs_id)
        if mrn:
            conditions.append(DeclarationModel.mrn == mrn)
        if not conditions:
            return None

        result = await self.db.execute(
            select(DeclarationModel)
            .where(DeclarationModel.company_id == company_id, or_(*conditions))
            .order_by(DeclarationModel.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_by_guid(self, company_id: int, customs_id: str) -> Optional[DeclarationModel]:
        return await self.find_by_guid_or_mrn(company_id, customs_id, None)

    async def create(self, **fields: Any) -> DeclarationModel:
        declaration = DeclarationModel(**fields)
        self.db.add(declaration)
        await self.db.flush()
        return declaration

    async def has_summary(self, declaration_id: int) -> bool:
        result = await self.db.execute(
            select(DeclarationSummaryModel.id).where(DeclarationSummaryModel.declaration_id == declaration_id)
        )
        return result.scalar_one_or_none() is not None

    async def get_summary(self, declaration_id: int) -> Optional[DeclarationSummaryModel]:
        result = await self.db.execute(
            select(DeclarationSummaryModel).where(DeclarationSummaryModel.declaration_id == declaration_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_hs_codes(self, declaration_id: int) -> list[str]:
        result = await self.db.execute(
            select(DeclarationHsCodeModel.hs_code)
            .where(DeclarationHsCodeModel.declaration_id == declaration_id)
            .order_by(DeclarationHsCodeModel.hs_code)
        )
        return list(result.scalars().all())

    async def upsert_summary(self, declaration_id: int, columns: Dict[str, Any]) -> None:
        """
        Inserta o actualiza el resumen de la declaración (clave: declaration_id).
        """
        values = {**columns, "declaration_id": declaration_id, "updated_at": DateTimeUtils.now_utc()}
        stmt = dialect_insert(self.db, DeclarationSummaryModel).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["declaration_id"],
            set_={key: getattr(stmt.excluded, key) for key in values if key != "declaration_id"},
        )
        await self.db.execute(stmt)

    async def replace_hs_codes(self, declaration_id: int, hs_codes: Iterable[str]) -> None:
        await self.db.execute(
            delete(DeclarationHsCodeModel).where(DeclarationHsCodeModel.declaration_id == declaration_id)
        )
        codes = list(dict.fromkeys(hs_codes))
        if codes:
            self.db.add_all(
                DeclarationHsCodeModel(declaration_id=declaration_id, hs_code=code) for code in codes
            )
        await self.db.flush()

    async def delete_summary(self, declaration_id: int) -> None:
        """Elimina resumen y códigos HS."""
        await self.db.execute(
            delete(DeclarationHsCodeModel).where(DeclarationHsCodeModel.declaration_id == declaration_id)
        )
        await self.db.execute(
            delete(DeclarationSummaryModel).where(DeclarationSummaryModel.declaration_id == declaration_id)
        )

    def scanner_with_payload(self, company_id: int) -> CursorScanner:
        """Escáner sobre las declaraciones de la empresa que tienen `xml_data`."""
        return CursorScanner(
            DeclarationModel,
            DeclarationModel.id,
            filters=[
                DeclarationModel.company_id == company_id,
                DeclarationModel.xml_data.is_not(None),
            ],
        )

    def scanner_missing_details(
        self,
        company_id: int,
        date_from: datetime,
        date_to: datetime,
    ) -> CursorScanner:
        """
        Escáner (id, customs_id) de declaraciones del período sin detalle 61.1.

        No selecciona `xml_data`: en empresas grandes puede ser muy pesado.
        """
        return CursorScanner(
            DeclarationModel,
            DeclarationModel.id,
            filters=[
                DeclarationModel.company_id == company_id,
                DeclarationModel.customs_id.is_not(None),
                DeclarationModel.date >= date_from,
                DeclarationModel.date <= date_to,
                or_(
                    DeclarationModel.xml_data.is_(None),
                    not_(details_present()),
                ),
            ],
            columns=[DeclarationModel.id, DeclarationModel.customs_id],
        )

    async def count_distinct_guids(self, company_id: int, date_from: datetime, date_to: datetime) -> int:
        result = await self.db.execute(
            select(func.count(distinct(DeclarationModel.customs_id))).where(
                DeclarationModel.company_id == company_id,
                DeclarationModel.customs_id.is_not(None),
                DeclarationModel.date >= date_from,
                DeclarationModel.date <= date_to,
            )
        )
        return int(result.scalar_one() or 0)

    async def get_statistics(self, company_id: int) -> Dict[str, Any]:
        """Agregados de declaraciones y resúmenes de la empresa."""
        by_status_rows = await self.db.execute(
            select(DeclarationModel.status, func.count(DeclarationModel.id))
            .where(DeclarationModel.company_id == company_id)
            .group_by(DeclarationModel.status)
        )
        by_status = {status: int(count) for status, count in by_status_rows.all()}

        totals = await self.db.execute(
            select(
                func.count(DeclarationSummaryModel.id),
                func.coalesce(func.sum(DeclarationSummaryModel.customs_value), 0.0),
                func.coalesce(func.sum(DeclarationSummaryModel.invoice_value_uah), 0.0),
            )
            .join(DeclarationModel, DeclarationModel.id == DeclarationSummaryModel.declaration_id)
            .where(DeclarationModel.company_id == company_id)
        )
        summaries_count, customs_value, invoice_value_uah = totals.one()

        last_date = await self.db.execute(
            select(func.max(DeclarationModel.date)).where(DeclarationModel.company_id == company_id)
        )

        return {
            "total_declarations": sum(by_status.values()),
            "by_status": by_status,
            "summaries_count": int(summaries_count or 0),
            "total_customs_value": float(customs_value or 0.0),
            "total_invoice_value_uah": float(invoice_value_uah or 0.0),
            "last_declaration_date": last_date.scalar_one_or_none(),
        }
