"""
Factories para Tests

Proporciona factories para crear payloads de registros de métricas
de forma limpia y reutilizable. Sigue el patrón Factory de factory-boy.

Uso:
    from tests.factories import MetricRecordFactory

    # Payload con valores por defecto (claves camelCase)
    payload = MetricRecordFactory()

    # Con valores personalizados
    payload = MetricRecordFactory(metricType="orders_count", value=3)

    # Variantes
    payload = MetricRecordFactory(material_sale=True)

    # Múltiples payloads
    payloads = MetricRecordFactory.create_batch(5)
"""

from tests.factories.metrics import MetricRecordFactory, build_records, stored_payload

__all__ = [
    # Metrics factories
    "MetricRecordFactory",
    "build_records",
    "stored_payload",
]
