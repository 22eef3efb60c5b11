"""
Cache en memoria de estadísticas calculadas por empresa.

Se inyecta explícitamente en los casos de uso que la leen o la invalidan;
toda escritura sobre declaraciones debe llamar a `invalidate(key)`.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Hashable, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    value: T
    timestamp: float
    last_sync_timestamp: Optional[float] = None


class StatisticsCache(Generic[T]):
    """
    Cache clave -> (valor, timestamp) con TTL.

    Args:
        ttl_seconds: Vida máxima de una entrada
        clock: Función que retorna segundos monotónicos (inyectable en tests)
    """

    def __init__(self, ttl_seconds: float = 30 * 60, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry[T]] = {}

    def get(self, key: Hashable) -> Optional[T]:
        """Retorna el valor cacheado o None si no existe o expiró."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry):
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(self, key: Hashable, value: T, last_sync_timestamp: Optional[float] = None) -> None:
        self._entries[key] = CacheEntry(
            value=value,
            timestamp=self._clock(),
            last_sync_timestamp=last_sync_timestamp,
        )

    def invalidate(self, key: Hashable) -> bool:
        """
        Elimina la entrada de `key`.

        Returns:
            bool: True si había una entrada
        """
        removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug(f"StatisticsCache: invalidada clave {key}")
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Elimina entradas expiradas. Retorna cuántas se eliminaron."""
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def should_refresh(self, key: Hashable, last_sync_timestamp: Optional[float] = None) -> bool:
        """
        Indica si hay que recalcular: no hay entrada, expiró, o hubo un sync
        posterior al que se usó para calcularla.
        """
        entry = self._entries.get(key)
        if entry is None or self._is_expired(entry):
            return True
        if last_sync_timestamp is not None:
            if entry.last_sync_timestamp is None or last_sync_timestamp > entry.last_sync_timestamp:
                return True
        return False

    def __len__(self) -> int:
        return len(self._entries)

    def _is_expired(self, entry: CacheEntry[Any]) -> bool:
        return self._clock() - entry.timestamp > self._ttl_seconds
