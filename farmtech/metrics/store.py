"""
Metric Store

Persistencia de la colección de métricas sobre un StorageBackend.
Toda la colección se guarda como un único JSON bajo una clave:

    {"data": [<registro>, ...], "lastUpdated": "<iso-8601>"}

Las lecturas pasan por un caché TTL con una entrada por forma de
consulta; cualquier escritura exitosa lo invalida completo.
"""

import asyncio
import json
from datetime import datetime
from typing import Any, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from config.constants import MetricType
from farmtech.models.metric import (
    DateLike,
    DateRange,
    MetricRecord,
    utc_now,
    validate_date_range,
)
from farmtech.storage.protocols import StorageBackend
from farmtech.utils.cache import TTLCache
from farmtech.utils.errors import StorageError, ValidationError, error_registry
from farmtech.utils.logger import get_logger

logger = get_logger(__name__)

RangeLike = Union[DateRange, Mapping[str, Any], Tuple[DateLike, DateLike]]

_ALL_KEY: Tuple[str] = ("all",)


def _type_value(metric_type: Union[MetricType, str]) -> str:
    return metric_type.value if isinstance(metric_type, MetricType) else str(metric_type)


class MetricStore:
    """
    Repositorio de MetricRecord con caché de lectura.

    Las lecturas nunca lanzan por fallos del backend (retornan lista
    vacía) y las escrituras retornan False en lugar de lanzar.
    """

    def __init__(
        self,
        storage: StorageBackend,
        storage_key: Optional[str] = None,
        cache: Optional[TTLCache] = None,
        cache_ttl_seconds: Optional[float] = None,
        seed_sample_data: Optional[bool] = None,
        sample_days: Optional[int] = None,
        sample_seed: Optional[int] = None,
        max_range_days: Optional[int] = None,
    ):
        from config.settings import settings

        self.storage = storage
        self.storage_key = storage_key or settings.ANALYTICS_STORAGE_KEY
        self.cache = cache or TTLCache(
            ttl_seconds=(
                settings.ANALYTICS_CACHE_TTL_SECONDS
                if cache_ttl_seconds is None else cache_ttl_seconds
            )
        )
        self.seed_sample_data = (
            settings.ANALYTICS_SEED_SAMPLE_DATA if seed_sample_data is None else seed_sample_data
        )
        self.sample_days = sample_days or settings.ANALYTICS_SAMPLE_DAYS
        self.sample_seed = settings.ANALYTICS_SAMPLE_SEED if sample_seed is None else sample_seed
        self.max_range_days = max_range_days or settings.ANALYTICS_MAX_RANGE_DAYS

        self._last_sync: Optional[datetime] = None
        self._write_lock = asyncio.Lock()

        logger.info(
            f"MetricStore inicializado: key={self.storage_key}, "
            f"ttl={self.cache.ttl_seconds}s, seed={self.seed_sample_data}"
        )

    @property
    def last_sync(self) -> Optional[datetime]:
        """Instante del último guardado exitoso."""
        return self._last_sync

    # =========================================================================
    # LECTURA / ESCRITURA
    # =========================================================================

    async def get_all(self) -> List[MetricRecord]:
        """
        Retorna todos los registros en orden de inserción.

        En la primera ejecución (clave ausente) genera y guarda los
        datos de ejemplo si está habilitado. Si la lectura falla
        retorna lista vacía.
        """
        records = await self._load()
        return records if records is not None else []

    async def _load(self) -> Optional[List[MetricRecord]]:
        """
        Lee la colección completa.

        Returns:
            Los registros, o None si el backend falló o el payload está
            corrupto (distinto de una colección vacía)
        """
        cached = self.cache.get(_ALL_KEY)
        if cached is not None:
            return list(cached)

        try:
            payload = await self.storage.read(self.storage_key)
        except StorageError as e:
            error_registry.record(e)
            logger.error(f"Error leyendo analítica de '{self.storage_key}': {e.message}")
            return None

        if payload is None:
            return await self._bootstrap()

        records = self._deserialize(payload)
        if records is None:
            return None

        self.cache.set(_ALL_KEY, records)
        return list(records)

    async def save_all(self, records: Iterable[Union[MetricRecord, Mapping[str, Any]]]) -> bool:
        """
        Reemplaza la colección completa.

        Returns:
            True si se guardó; False si el backend falló

        Raises:
            ValidationError: Si algún elemento no es un registro válido
        """
        records = [MetricRecord.from_dict(r) for r in records]
        now = utc_now()
        payload = json.dumps(
            {
                "data": [r.to_dict() for r in records],
                "lastUpdated": now.isoformat(),
            },
            ensure_ascii=False,
        )

        try:
            written = await self.storage.write(self.storage_key, payload)
        except StorageError as e:
            error_registry.record(e)
            logger.error(f"Error guardando analítica en '{self.storage_key}': {e.message}")
            return False

        if not written:
            logger.error(f"El backend rechazó la escritura de '{self.storage_key}'")
            return False

        self.cache.clear()
        self.cache.set(_ALL_KEY, records)
        self._last_sync = now
        logger.debug(f"Guardados {len(records)} registros en '{self.storage_key}'")
        return True

    async def add(self, record: Union[MetricRecord, Mapping[str, Any]]) -> Optional[MetricRecord]:
        """
        Valida y agrega un registro.

        Un id ya guardado no se duplica: se retorna el registro sin
        volver a escribir.

        Returns:
            El registro guardado, o None si la lectura o la persistencia
            fallaron

        Raises:
            ValidationError: Si el registro no es válido
        """
        record = MetricRecord.from_dict(record)
        added = await self.add_many([record])
        return record if added is not None else None

    async def add_many(
        self,
        records: Iterable[Union[MetricRecord, Mapping[str, Any]]],
    ) -> Optional[List[MetricRecord]]:
        """
        Agrega los registros cuyo id no esté guardado todavía.

        Si la colección actual no se pudo leer no escribe nada, para no
        reemplazarla por una lista parcial.

        Returns:
            Los registros agregados (vacía si todos existían), o None si
            la lectura o la persistencia fallaron

        Raises:
            ValidationError: Si algún registro no es válido
        """
        records = [MetricRecord.from_dict(r) for r in records]

        async with self._write_lock:
            existing = await self._load()
            if existing is None:
                logger.error(
                    f"No se agregan {len(records)} registros: "
                    f"no se pudo leer '{self.storage_key}'"
                )
                return None

            known = {r.id for r in existing}
            new_records = []
            for record in records:
                if record.id in known:
                    logger.debug(f"Registro {record.id} ya guardado; se omite")
                    continue
                known.add(record.id)
                new_records.append(record)

            if new_records and not await self.save_all(existing + new_records):
                return None

        return new_records

    def clear_cache(self) -> None:
        self.cache.clear()

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    async def get_by_type(
        self,
        metric_type: Union[MetricType, str],
        date_range: Optional[RangeLike] = None,
    ) -> List[MetricRecord]:
        """Registros de un tipo, opcionalmente en un rango (inclusivo)."""
        type_value = _type_value(metric_type)
        resolved = self.resolve_range(date_range)

        key = ("type", type_value) + self._range_key(resolved)
        return await self._cached_query(
            key,
            lambda r: r.metric_type.value == type_value
            and (resolved is None or resolved.contains(r.timestamp)),
        )

    async def get_by_date_range(
        self,
        start: DateLike,
        end: DateLike,
        metric_types: Optional[Sequence[Union[MetricType, str]]] = None,
    ) -> List[MetricRecord]:
        """Registros en [start, end], opcionalmente filtrados por tipos."""
        resolved = validate_date_range(start, end, self.max_range_days)
        types = (
            tuple(sorted(_type_value(t) for t in metric_types))
            if metric_types is not None else None
        )

        key = ("range", types) + self._range_key(resolved)
        return await self._cached_query(
            key,
            lambda r: resolved.contains(r.timestamp)
            and (types is None or r.metric_type.value in types),
        )

    async def get_by_category(
        self,
        category: str,
        date_range: Optional[RangeLike] = None,
    ) -> List[MetricRecord]:
        """Registros de una categoría, opcionalmente en un rango."""
        resolved = self.resolve_range(date_range)

        key = ("category", category) + self._range_key(resolved)
        return await self._cached_query(
            key,
            lambda r: r.category == category
            and (resolved is None or resolved.contains(r.timestamp)),
        )

    def resolve_range(self, date_range: Optional[RangeLike]) -> Optional[DateRange]:
        """
        Normaliza y valida un rango opcional.

        Raises:
            RangeError: Si el rango es inválido
        """
        if date_range is None:
            return None
        coerced = DateRange.coerce(date_range)
        return validate_date_range(coerced.start, coerced.end, self.max_range_days)

    # =========================================================================
    # INTERNOS
    # =========================================================================

    async def _cached_query(self, key: Hashable, predicate) -> List[MetricRecord]:
        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        records = await self._load()
        if records is None:
            # Lectura fallida: no se cachea el resultado vacío
            return []

        result = sorted(
            (r for r in records if predicate(r)),
            key=lambda r: r.timestamp,
        )
        self.cache.set(key, result)
        return list(result)

    @staticmethod
    def _range_key(date_range: Optional[DateRange]) -> Tuple[Optional[str], Optional[str]]:
        if date_range is None:
            return (None, None)
        return (date_range.start.isoformat(), date_range.end.isoformat())

    def _deserialize(self, payload: str) -> Optional[List[MetricRecord]]:
        """Parsea el payload; None si está corrupto."""
        try:
            parsed = json.loads(payload)
        except ValueError as e:
            logger.error(f"Payload corrupto en '{self.storage_key}': {e}")
            return None

        # Formato antiguo: lista directa de registros
        data = parsed.get("data", []) if isinstance(parsed, dict) else parsed
        if not isinstance(data, list):
            logger.error(f"Payload sin lista 'data' en '{self.storage_key}'")
            return None

        records = []
        skipped = 0
        for item in data:
            try:
                records.append(MetricRecord.from_dict(item))
            except ValidationError as e:
                skipped += 1
                logger.warning(f"Registro descartado al leer: {e.message}")

        if skipped:
            logger.warning(f"{skipped} registros inválidos descartados de '{self.storage_key}'")
        return records

    async def _bootstrap(self) -> List[MetricRecord]:
        """Siembra datos de ejemplo en la primera ejecución."""
        if not self.seed_sample_data:
            return []

        from farmtech.metrics.sample_data import generate_sample_records

        records = generate_sample_records(days=self.sample_days, seed=self.sample_seed)
        if await self.save_all(records):
            logger.info(f"Analítica inicializada con {len(records)} registros de ejemplo")
        else:
            logger.warning("No se pudieron guardar los datos de ejemplo")
        return list(records)
