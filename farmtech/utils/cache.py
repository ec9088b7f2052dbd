"""
Caché TTL en memoria

Caché clave/valor con tiempo de vida por entrada. Lo usa MetricStore
para no releer el backend en cada consulta del dashboard.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional

from farmtech.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    """Valor en caché con su instante de escritura."""
    value: Any
    cached_at: float

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        """Verifica si la entrada expiró."""
        return now - self.cached_at >= ttl_seconds


class TTLCache:
    """
    Caché en memoria con expiración por tiempo.

    El reloj es inyectable para poder simular el paso del tiempo en tests.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_size: int = 1000,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Inicializa el caché.

        Args:
            ttl_seconds: Tiempo de vida en segundos (default: 5 minutos)
            max_size: Tamaño máximo del caché
            clock: Función que retorna segundos monótonos
        """
        self._cache: Dict[Hashable, CacheEntry] = {}
        self._ttl = ttl_seconds
        self._max_size = max_size
        self._clock = clock or time.monotonic
        self.hits = 0
        self.misses = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: Hashable) -> Optional[Any]:
        """Obtiene el valor si existe y no expiró."""
        entry = self._cache.get(key)
        if entry is None:
            self.misses += 1
            return None

        if entry.is_expired(self._clock(), self._ttl):
            del self._cache[key]
            self.misses += 1
            return None

        self.hits += 1
        return entry.value

    def set(self, key: Hashable, value: Any) -> None:
        """Guarda un valor en caché."""
        if key not in self._cache and len(self._cache) >= self._max_size:
            self._evict()
        self._cache[key] = CacheEntry(value=value, cached_at=self._clock())

    def invalidate(self, key: Hashable) -> None:
        """Invalida una entrada del caché."""
        self._cache.pop(key, None)

    def clear(self) -> None:
        """Limpia todo el caché."""
        if self._cache:
            logger.debug(f"Caché invalidado ({len(self._cache)} entradas)")
        self._cache.clear()

    def _evict(self) -> None:
        """Elimina expirados y, si no alcanza, la entrada más antigua."""
        now = self._clock()
        expired_keys = [
            k for k, v in self._cache.items()
            if v.is_expired(now, self._ttl)
        ]
        for k in expired_keys:
            del self._cache[k]

        if len(self._cache) >= self._max_size:
            oldest = min(self._cache, key=lambda k: self._cache[k].cached_at)
            del self._cache[oldest]

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None
