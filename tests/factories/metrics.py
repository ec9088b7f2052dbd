"""
Factory para MetricRecord

Proporciona payloads JSON (claves camelCase) de registros de métricas.
"""

import factory
from factory import LazyAttribute, Sequence
import json
import random
from datetime import datetime
from typing import List, Optional

from farmtech.models.metric import MetricRecord, utc_now
from tests.factories.base import DictFactory, days_ago


class MetricRecordFactory(DictFactory):
    """
    Factory para payloads de registros de métricas.

    Ejemplos:
        # Registro básico (revenue)
        payload = MetricRecordFactory()

        # Pedido
        payload = MetricRecordFactory(order=True)

        # Venta de un material concreto
        payload = MetricRecordFactory(material_sale=True, metadata={"materialId": "m-1"})
    """

    class Meta:
        model = dict

    id = Sequence(lambda n: f"analytics_test_{n:05d}")

    # Tipo de métrica
    metricType = "revenue"

    # Valor numérico
    value = LazyAttribute(lambda _: float(random.randint(1000, 15000)))

    # Timestamp
    timestamp = factory.LazyFunction(utc_now)

    # Metadata
    metadata = factory.LazyFunction(lambda: {})

    aggregationType = "daily"

    class Params:
        """
        Variantes comunes de registros.
        """

        # Usuarios activos del día
        active_users = factory.Trait(
            metricType="active_users",
            value=LazyAttribute(lambda _: float(random.randint(20, 69))),
        )

        # Pedido creado
        order = factory.Trait(
            metricType="orders_count",
            value=1.0,
            metadata=factory.LazyFunction(lambda: {
                "orderId": f"ord-{random.randint(1000, 9999)}",
                "itemCount": random.randint(1, 5),
            }),
        )

        # Venta de material
        material_sale = factory.Trait(
            metricType="materials_sold",
            value=LazyAttribute(lambda _: float(random.randint(1, 10))),
            metadata=factory.LazyFunction(lambda: {
                "materialId": f"mat-{random.randint(1, 5)}",
                "materialName": "Urea 50kg",
                "category": "fertilizer",
            }),
        )

        # Upload de cultivo enviado
        upload = factory.Trait(
            metricType="uploads_count",
            value=LazyAttribute(lambda _: float(random.randint(3, 17))),
            metadata=factory.LazyFunction(lambda: {"cropType": "wheat"}),
        )


def build_records(
    size: int,
    metric_type: str = "revenue",
    value: Optional[float] = None,
    now: Optional[datetime] = None,
    **kwargs,
) -> List[MetricRecord]:
    """
    Crea `size` registros validados, uno por día hacia atrás desde `now`.

    Returns:
        Lista ordenada del más antiguo al más reciente
    """
    records = []
    for offset in range(size - 1, -1, -1):
        payload = MetricRecordFactory(
            metricType=metric_type,
            timestamp=days_ago(offset, now),
            **({"value": value} if value is not None else {}),
            **kwargs,
        )
        records.append(MetricRecord.from_dict(payload))
    return records


def stored_payload(records: List[MetricRecord], last_updated: Optional[datetime] = None) -> str:
    """Payload JSON tal como lo guarda MetricStore."""
    return json.dumps({
        "data": [r.to_dict() for r in records],
        "lastUpdated": (last_updated or utc_now()).isoformat(),
    })
