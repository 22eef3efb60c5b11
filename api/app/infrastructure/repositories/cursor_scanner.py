"""
Paginación por keyset sobre una tabla ordenada por una clave creciente.

Una corrida interrumpida se reanuda pasando el último id visto como cursor.
El procesamiento de cada fila debe ser idempotente: volver a escanear con
un cursor igual o anterior nunca corrompe estado (entrega at-least-once).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncIterator, Generic, List, Optional, Sequence, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

RowT = TypeVar("RowT")


@dataclass(frozen=True)
class CursorPage(Generic[RowT]):
    """Página devuelta por `CursorScanner.scan`."""

    rows: List[RowT]
    next_cursor: Optional[Any]
    done: bool


class CursorScanner(Generic[RowT]):
    """
    Escáner keyset genérico.

    Args:
        model: Modelo ORM a recorrer
        key_column: Columna estrictamente creciente (normalmente `id`)
        filters: Condiciones WHERE adicionales
        columns: Columnas a seleccionar; si se omite se cargan entidades completas
    """

    def __init__(
        self,
        model: Any,
        key_column: Any = None,
        *,
        filters: Sequence[Any] = (),
        columns: Optional[Sequence[Any]] = None,
    ) -> None:
        self._model = model
        self._key_column = key_column if key_column is not None else model.id
        self._filters = list(filters)
        self._columns = list(columns) if columns else None

    def _key_of(self, row: Any) -> Any:
        return getattr(row, self._key_column.key)

    async def scan(self, db: AsyncSession, batch_size: int, cursor: Optional[Any] = None) -> CursorPage[RowT]:
        """
        Retorna hasta `batch_size` filas con clave > cursor, en orden ascendente.

        Args:
            db: Sesión de base de datos
            batch_size: Tamaño de página (>= 1)
            cursor: Última clave procesada; None empieza desde el principio

        Returns:
            CursorPage: filas, siguiente cursor (None si no hubo filas) y done
        """
        if batch_size < 1:
            raise ValueError(f"batch_size debe ser >= 1 (recibido {batch_size})")

        stmt = select(*self._columns) if self._columns else select(self._model)
        stmt = stmt.where(*self._filters) if self._filters else stmt
        if cursor is not None:
            stmt = stmt.where(self._key_column > cursor)
        stmt = stmt.order_by(self._key_column.asc()).limit(batch_size)

        result = await db.execute(stmt)
        rows = list(result.all() if self._columns else result.scalars().all())

        next_cursor = self._key_of(rows[-1]) if rows else None
        return CursorPage(rows=rows, next_cursor=next_cursor, done=len(rows) < batch_size)

    async def iter_batches(
        self,
        db: AsyncSession,
        batch_size: int,
        cursor: Optional[Any] = None,
    ) -> AsyncIterator[CursorPage[RowT]]:
        """Recorre la tabla completa llevando el cursor hacia adelante."""
        while True:
            page = await self.scan(db, batch_size, cursor)
            if page.rows:
                yield page
            if page.done:
                return
            cursor = page.next_cursor
