"""
CLI: recalcula los resúmenes de declaraciones desde `xml_data`.

Uso recomendado:
  - Después de cambiar el mapeo del resumen o el extractor de nombres.
  - Es idempotente: puede cortarse y volver a ejecutarse sin problema.

Ejecución:
  python -m scripts.backfill_summaries                  # Todas las empresas
  python -m scripts.backfill_summaries --company 12     # Solo una empresa
  python -m scripts.backfill_summaries --batch-size 200
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from loguru import logger

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

load_dotenv(_API_ROOT / ".env", override=False)

from sqlalchemy import select  # noqa: E402

from app.application.use_cases.declaration_summary_use_cases import DeclarationSummaryUseCases  # noqa: E402
from app.infrastructure.database.models import CompanyModel  # noqa: E402
from app.infrastructure.database.session import close_db, get_session_factory  # noqa: E402
from app.shared.constants.sync_constants import BACKFILL_MAX_BATCH_SIZE  # noqa: E402


async def _company_ids(company_id: Optional[int]) -> List[int]:
    if company_id is not None:
        return [company_id]
    async with get_session_factory()() as db:
        result = await db.execute(select(CompanyModel.id).order_by(CompanyModel.id))
        return list(result.scalars().all())


async def run(company_id: Optional[int], batch_size: int) -> int:
    """
    Recalcula empresa por empresa, con commit por página.

    Returns:
        int: Declaraciones procesadas en total
    """
    total = 0
    for current in await _company_ids(company_id):
        async with get_session_factory()() as db:
            total += await DeclarationSummaryUseCases(db).update_all_for_company(current, batch_size)
    logger.success(f"Backfill de resúmenes terminado: {total} declaraciones")
    return total


def main() -> int:
    parser = argparse.ArgumentParser(description="Recalcula resúmenes de declaraciones.")
    parser.add_argument("--company", type=int, default=None, help="ID de empresa (default: todas)")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=BACKFILL_MAX_BATCH_SIZE,
        help=f"Declaraciones por página (1..{BACKFILL_MAX_BATCH_SIZE})",
    )
    args = parser.parse_args()

    async def _main() -> None:
        try:
            await run(args.company, args.batch_size)
        finally:
            await close_db()

    asyncio.run(_main())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
