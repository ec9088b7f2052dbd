"""
Metrics Aggregators

Agrupa registros en buckets de calendario (día, semana, mes, año)
sumando valores y contando registros por bucket.

Claves de bucket (UTC):
- daily:   YYYY-MM-DD
- weekly:  YYYY-MM-DD del domingo que inicia la semana
- monthly: YYYY-MM
- yearly:  YYYY
"""

from datetime import datetime, timedelta
from typing import Dict, Any, Optional, List, Iterable, Union
from dataclasses import dataclass

from config.constants import Granularity, MetricType
from farmtech.models.metric import MetricRecord
from farmtech.utils.errors import ValidationError
from farmtech.utils.logger import get_logger

logger = get_logger(__name__)

GranularityLike = Union[Granularity, str]


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class AggregatedPoint:
    """Valor agregado de un bucket."""

    bucket: str
    value: float
    count: int
    metric_type: Optional[str]
    granularity: Granularity
    category: Optional[str] = None

    @property
    def average(self) -> float:
        if self.count == 0:
            return 0.0
        return self.value / self.count

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "date": self.bucket,
            "value": self.value,
            "count": self.count,
            "metricType": self.metric_type,
            "aggregationType": self.granularity.value,
        }
        if self.category is not None:
            data["category"] = self.category
        return data


@dataclass
class TimeSeriesPoint:
    """Punto en una serie temporal."""

    timestamp: datetime
    value: float
    count: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "value": round(self.value, 2),
            "count": self.count,
        }


# ============================================================================
# BUCKETS
# ============================================================================

def parse_granularity(granularity: GranularityLike) -> Granularity:
    """
    Raises:
        ValidationError: Si la granularidad no está soportada
    """
    try:
        return Granularity(granularity)
    except ValueError as e:
        raise ValidationError(
            f"Granularidad no soportada: {granularity}",
            field="granularity",
        ) from e


def bucket_start(timestamp: datetime, granularity: GranularityLike) -> datetime:
    """Inicio del bucket que contiene el instante."""
    granularity = parse_granularity(granularity)
    day = timestamp.replace(hour=0, minute=0, second=0, microsecond=0)

    if granularity == Granularity.DAILY:
        return day
    if granularity == Granularity.WEEKLY:
        # Inicio de semana (domingo)
        return day - timedelta(days=(day.weekday() + 1) % 7)
    if granularity == Granularity.MONTHLY:
        return day.replace(day=1)
    return day.replace(month=1, day=1)


def bucket_key(timestamp: datetime, granularity: GranularityLike) -> str:
    """Clave textual del bucket (ordenable lexicográficamente)."""
    granularity = parse_granularity(granularity)
    start = bucket_start(timestamp, granularity)

    if granularity == Granularity.MONTHLY:
        return f"{start.year:04d}-{start.month:02d}"
    if granularity == Granularity.YEARLY:
        return f"{start.year:04d}"
    return start.date().isoformat()


def aggregate_records(
    records: Iterable[MetricRecord],
    granularity: GranularityLike = Granularity.DAILY,
    metric_type: Optional[str] = None,
    category: Optional[str] = None,
) -> List[AggregatedPoint]:
    """
    Agrupa registros por bucket.

    Args:
        records: Registros a agregar (cualquier orden)
        granularity: daily, weekly, monthly o yearly
        metric_type: Tipo a reportar en cada punto (default: el del primer registro del bucket)
        category: Categoría a reportar en cada punto

    Returns:
        Puntos ordenados ascendentemente por clave de bucket
    """
    granularity = parse_granularity(granularity)
    buckets: Dict[str, AggregatedPoint] = {}

    for record in records:
        key = bucket_key(record.timestamp, granularity)
        point = buckets.get(key)
        if point is None:
            buckets[key] = AggregatedPoint(
                bucket=key,
                value=record.value,
                count=1,
                metric_type=metric_type or record.metric_type.value,
                granularity=granularity,
                category=category,
            )
        else:
            point.value += record.value
            point.count += 1

    return [buckets[k] for k in sorted(buckets)]


# ============================================================================
# ENGINE
# ============================================================================

class AggregationEngine:
    """
    Agregador de métricas por período sobre un MetricStore.

    Proporciona agregaciones por tipo y por categoría, y series
    temporales listas para graficar.
    """

    def __init__(self, store):
        self.store = store
        logger.info("AggregationEngine inicializado")

    async def aggregate(
        self,
        metric_type: Union[MetricType, str],
        granularity: GranularityLike = Granularity.DAILY,
        date_range=None,
    ) -> List[AggregatedPoint]:
        """
        Agrega un tipo de métrica por bucket.

        Raises:
            RangeError: Si el rango es inválido
            ValidationError: Si la granularidad no está soportada
        """
        granularity = parse_granularity(granularity)
        records = await self.store.get_by_type(metric_type, date_range)
        points = aggregate_records(records, granularity)

        logger.debug(
            f"Agregados {len(records)} registros de {getattr(metric_type, 'value', metric_type)} "
            f"en {len(points)} buckets ({granularity.value})"
        )
        return points

    async def aggregate_by_category(
        self,
        category: str,
        granularity: GranularityLike = Granularity.DAILY,
        date_range=None,
    ) -> List[AggregatedPoint]:
        """Agrega todos los tipos de una categoría (p. ej. financial)."""
        granularity = parse_granularity(granularity)
        records = await self.store.get_by_category(category, date_range)
        return aggregate_records(records, granularity, metric_type=None, category=category)

    async def time_series(
        self,
        metric_type: Union[MetricType, str],
        granularity: GranularityLike = Granularity.DAILY,
        date_range=None,
        metric: str = "value",
    ) -> List[TimeSeriesPoint]:
        """
        Serie temporal de un tipo de métrica.

        Args:
            metric: "value" (suma), "count" o "average"

        Returns:
            Puntos con el inicio del bucket como timestamp
        """
        if metric not in ("value", "count", "average"):
            raise ValidationError(f"Métrica de serie no soportada: {metric}", field="metric")

        granularity = parse_granularity(granularity)
        records = await self.store.get_by_type(metric_type, date_range)

        starts: Dict[str, datetime] = {}
        for record in records:
            starts.setdefault(
                bucket_key(record.timestamp, granularity),
                bucket_start(record.timestamp, granularity),
            )

        series = []
        for point in aggregate_records(records, granularity):
            if metric == "count":
                value = float(point.count)
            elif metric == "average":
                value = point.average
            else:
                value = point.value
            series.append(TimeSeriesPoint(
                timestamp=starts[point.bucket],
                value=value,
                count=point.count,
            ))

        return series
