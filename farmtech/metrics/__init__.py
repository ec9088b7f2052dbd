"""
Metrics Module

Pipeline de analítica del marketplace.

Componentes:
- IngestionQueue / EventTracker: Reciben eventos y los persisten en lotes
- MetricStore: Colección de registros con caché TTL
- AggregationEngine: Agrega datos por día, semana, mes o año
- SummaryCalculator: Resumen del dashboard y tasas de crecimiento
- AnalyticsService: Reportes, exportación y health check

Uso:
    from farmtech.core import AppContext

    ctx = AppContext.create()
    await ctx.initialize()

    ctx.tracker.track_order_created(order_id="ord-1", total_amount=1200.0)
    summary = await ctx.analytics.generate_dashboard_summary()

    await ctx.shutdown()
"""

from farmtech.metrics.store import MetricStore

from farmtech.metrics.aggregators import (
    AggregationEngine,
    AggregatedPoint,
    TimeSeriesPoint,
    aggregate_records,
    bucket_key,
)

from farmtech.metrics.summary import (
    SummaryCalculator,
    PeriodMetrics,
    GrowthMetrics,
    DashboardSummary,
    growth_rate,
)

from farmtech.metrics.buffer import EventBuffer

from farmtech.metrics.ingestion import (
    IngestionQueue,
    QueueState,
)

from farmtech.metrics.tracker import EventTracker

from farmtech.metrics.service import AnalyticsService

__all__ = [
    "MetricStore",
    "AggregationEngine",
    "AggregatedPoint",
    "TimeSeriesPoint",
    "aggregate_records",
    "bucket_key",
    "SummaryCalculator",
    "PeriodMetrics",
    "GrowthMetrics",
    "DashboardSummary",
    "growth_rate",
    "EventBuffer",
    "IngestionQueue",
    "QueueState",
    "EventTracker",
    "AnalyticsService",
]
