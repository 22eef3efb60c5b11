"""
División de rangos de fechas en chunks acotados.

Los APIs externos limitan el tamaño de cada request (la aduana acepta como
máximo 45 días por consulta 60.1); los syncs trabajan chunk a chunk para
acotar memoria y exposición a fallos por request.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List

from app.shared.utils.datetime_utils import DateLike, DateTimeUtils

DEFAULT_MAX_DAYS = 45


@dataclass(frozen=True)
class DateRange:
    """Sub-rango [start, end] alineado a días completos."""

    start: datetime
    end: datetime

    @property
    def days(self) -> int:
        """Cantidad de días calendario que cubre el rango."""
        return (self.end.date() - self.start.date()).days + 1


def split_period(start: DateLike, end: DateLike, max_days: int = DEFAULT_MAX_DAYS) -> List[DateRange]:
    """
    Divide [start, end] en chunks contiguos de como máximo `max_days` días.

    - start se normaliza a 00:00:00.000 y end a 23:59:59.999, así un input
      con hora parcial nunca deja huecos.
    - Si start > end se intercambian.
    - El último chunk puede ser más corto.

    Args:
        start: Inicio del rango (inclusive)
        end: Fin del rango (inclusive)
        max_days: Largo máximo de cada chunk en días

    Returns:
        List[DateRange]: Chunks ordenados ascendentemente

    Raises:
        ValueError: Si max_days < 1
    """
    if max_days < 1:
        raise ValueError(f"max_days debe ser >= 1 (recibido {max_days})")

    first = DateTimeUtils.as_datetime(start)
    last = DateTimeUtils.as_datetime(end)
    if first > last:
        first, last = last, first

    range_start = DateTimeUtils.start_of_day(first)
    range_end = DateTimeUtils.end_of_day(last)

    chunks: List[DateRange] = []
    current = range_start
    while current < range_end:
        chunk_end = DateTimeUtils.end_of_day(current + timedelta(days=max_days - 1))
        if chunk_end > range_end:
            chunk_end = range_end
        chunks.append(DateRange(start=current, end=chunk_end))
        current = DateTimeUtils.start_of_day(chunk_end + timedelta(days=1))

    return chunks
