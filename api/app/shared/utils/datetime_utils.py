"""
Utilidades para manejo de fechas y horas.
"""
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional, Union

DateLike = Union[date, datetime]

_YYYYMMDD_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_YYYYMMDD_T_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})T")
_DOTTED_RE = re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})$")
_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_REGISTERED_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})")


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""

    @staticmethod
    def now_utc() -> datetime:
        """
        Obtiene la fecha y hora actual en UTC.

        Returns:
            datetime: Fecha y hora actual en UTC
        """
        return datetime.now(timezone.utc)

    @staticmethod
    def ensure_utc(dt: datetime) -> datetime:
        """
        Normaliza datetime a UTC (aware).

        SQLite devuelve datetimes naive aunque la columna sea timezone=True;
        se asume que todo lo persistido está en UTC.
        """
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    @staticmethod
    def as_datetime(value: DateLike) -> datetime:
        """Convierte un `date` a `datetime` a medianoche; deja `datetime` intacto."""
        if isinstance(value, datetime):
            return value
        return datetime.combine(value, time.min)

    @staticmethod
    def start_of_day(value: DateLike) -> datetime:
        """Retorna el día a las 00:00:00.000 (conserva tzinfo)."""
        dt = DateTimeUtils.as_datetime(value)
        return dt.replace(hour=0, minute=0, second=0, microsecond=0)

    @staticmethod
    def end_of_day(value: DateLike) -> datetime:
        """Retorna el día a las 23:59:59.999 (conserva tzinfo)."""
        dt = DateTimeUtils.as_datetime(value)
        return dt.replace(hour=23, minute=59, second=59, microsecond=999000)

    @staticmethod
    def to_date(value: DateLike) -> date:
        """Trunca un datetime a su fecha calendario."""
        if isinstance(value, datetime):
            return value.date()
        return value

    @staticmethod
    def iter_days(start: DateLike, end: DateLike) -> Iterator[date]:
        """
        Itera cada día calendario del rango inclusivo [start, end].

        Si start > end se intercambian.
        """
        first = DateTimeUtils.to_date(start)
        last = DateTimeUtils.to_date(end)
        if first > last:
            first, last = last, first
        current = first
        while current <= last:
            yield current
            current += timedelta(days=1)

    @staticmethod
    def format_yyyymmdd(value: DateLike) -> str:
        """Formatea una fecha como YYYYMMDD (formato del API NBU)."""
        return DateTimeUtils.to_date(value).strftime("%Y%m%d")

    @staticmethod
    def parse_to_yyyymmdd(value: Optional[str]) -> Optional[str]:
        """
        Normaliza distintos formatos de fecha de la aduana a YYYYMMDD.

        Acepta:
        - YYYYMMDDTHHMMSS (ccd_registered)
        - YYYYMMDD
        - DD.MM.YYYY
        - YYYY-MM-DD (con o sin hora)

        Args:
            value: Texto de fecha

        Returns:
            Optional[str]: Fecha en YYYYMMDD o None si no se reconoce
        """
        if value is None:
            return None
        text = str(value).strip()
        if not text or text == "---":
            return None

        match = _YYYYMMDD_T_RE.match(text) or _YYYYMMDD_RE.match(text)
        if match:
            return "".join(match.groups())

        match = _DOTTED_RE.match(text)
        if match:
            day, month, year = match.groups()
            return f"{year}{month}{day}"

        match = _ISO_DATE_RE.match(text)
        if match:
            return "".join(match.groups())

        return None

    @staticmethod
    def parse_registered(value: Optional[str]) -> Optional[datetime]:
        """
        Parsea `ccd_registered` (YYYYMMDDTHHMMSS) a datetime UTC.

        Returns:
            Optional[datetime]: None si el valor falta o es inválido
        """
        if not value:
            return None
        match = _REGISTERED_RE.match(str(value).strip())
        if not match:
            return None
        try:
            return datetime(*(int(part) for part in match.groups()), tzinfo=timezone.utc)
        except ValueError:
            return None
