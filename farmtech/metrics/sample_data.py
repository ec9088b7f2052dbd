"""
Datos de Ejemplo

Genera registros sintéticos para que el dashboard no esté vacío en la
primera ejecución: un registro por día y por tipo durante N días.
"""

import random
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from config.constants import AggregationType, MetricType, category_for
from farmtech.models.metric import MetricRecord, ensure_utc, utc_now

# Tipo de métrica -> rango inclusivo de valores enteros
SAMPLE_VALUE_RANGES: List[Tuple[MetricType, int, int]] = [
    (MetricType.USER_REGISTRATIONS, 1, 10),
    (MetricType.ACTIVE_USERS, 20, 69),
    (MetricType.REVENUE, 5000, 14999),
    (MetricType.ORDERS_COUNT, 5, 24),
    (MetricType.UPLOADS_COUNT, 3, 17),
    (MetricType.UPLOADS_APPROVED, 2, 13),
]


def generate_sample_records(
    days: int = 30,
    now: Optional[datetime] = None,
    seed: Optional[int] = None,
) -> List[MetricRecord]:
    """
    Genera registros de ejemplo para los últimos `days` días (hoy incluido).

    Args:
        days: Cantidad de días hacia atrás
        now: Instante de referencia (default: ahora en UTC)
        seed: Semilla para resultados reproducibles

    Returns:
        Lista de MetricRecord ordenada por día, de más antiguo a hoy
    """
    rng = random.Random(seed)
    reference = ensure_utc(now) if now else utc_now()

    records = []
    for offset in range(days - 1, -1, -1):
        day = reference - timedelta(days=offset)
        for metric_type, low, high in SAMPLE_VALUE_RANGES:
            records.append(MetricRecord.create(
                metric_type=metric_type,
                value=rng.randint(low, high),
                timestamp=day,
                aggregation_type=AggregationType.DAILY,
                category=category_for(metric_type),
            ))

    return records
