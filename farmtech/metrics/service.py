"""
Analytics Service

Boundary de consultas para el dashboard de administración.
Combina MetricStore, AggregationEngine, SummaryCalculator e
IngestionQueue en reportes listos para mostrar.

Reportes:
- Crecimiento de usuarios, ingresos, pedidos y uploads
- Popularidad de materiales (top 10)
- Resumen del dashboard con crecimiento semanal
- Exportación/importación (JSON y CSV)
- Health check y cierre ordenado
"""

import csv
import io
import json
from enum import Enum
from typing import Dict, Any, Optional, List, Sequence, Union

from config.constants import (
    GrowthPeriod,
    Granularity,
    MetricType,
    SUPPORTED_EXPORT_FORMATS,
)
from farmtech.metrics.aggregators import AggregatedPoint, AggregationEngine
from farmtech.metrics.ingestion import IngestionQueue
from farmtech.metrics.store import MetricStore
from farmtech.metrics.summary import (
    DashboardSummary,
    GrowthMetrics,
    SummaryCalculator,
    approval_rates,
    growth_rate,
    overall_approval_rate,
    period_metrics,
)
from farmtech.models.metric import DateRange, MetricRecord, utc_now
from farmtech.utils.errors import RangeError, StorageError, ValidationError, error_registry
from farmtech.utils.logger import get_logger, LogContext

logger = get_logger(__name__)

CSV_COLUMNS = [
    "id",
    "metricType",
    "value",
    "timestamp",
    "aggregationType",
    "category",
    "createdAt",
    "updatedAt",
    "metadata",
]

TOP_MATERIALS_LIMIT = 10


class HealthStatus(str, Enum):
    """Estados de salud del servicio."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


def _series(records: Sequence[MetricRecord], language: str = "en") -> List[Dict[str, Any]]:
    """Filas {date, value, formattedValue} para graficar."""
    return [
        {
            "date": r.timestamp.isoformat(),
            "value": r.value,
            "formattedValue": r.formatted_value(language),
        }
        for r in records
    ]


class AnalyticsService:
    """
    Servicio de analítica para el dashboard.

    Uso:
        service = ctx.analytics
        await service.initialize()

        summary = await service.generate_dashboard_summary()
        export = await service.export_analytics("csv", DateRange.last_days(7))
    """

    def __init__(
        self,
        store: MetricStore,
        aggregator: AggregationEngine,
        summary: SummaryCalculator,
        queue: IngestionQueue,
    ):
        self.store = store
        self.aggregator = aggregator
        self.summary = summary
        self.queue = queue
        logger.info("AnalyticsService inicializado")

    # =========================================================================
    # CICLO DE VIDA
    # =========================================================================

    async def initialize(self) -> None:
        """
        Carga la colección.

        La siembra de datos de ejemplo ocurre dentro de MetricStore solo
        cuando la clave no existe en el backend.
        """
        logger.info("Inicializando servicio de analítica...")

        records = await self.store.get_all()

        logger.info(f"Servicio de analítica inicializado ({len(records)} registros)")

    async def shutdown(self) -> None:
        """Vacía la cola de ingesta y cierra el backend si corresponde."""
        logger.info("Cerrando servicio de analítica...")
        await self.queue.shutdown()

        close = getattr(self.store.storage, "close", None)
        if close is not None:
            await close()

        logger.info("Servicio de analítica cerrado")

    async def health_check(self) -> Dict[str, Any]:
        """Estado del servicio y detalles de la cola."""
        try:
            records = await self.store.get_all()
            last_sync = self.store.last_sync
            return {
                "status": HealthStatus.HEALTHY.value,
                "details": {
                    "totalAnalyticsRecords": len(records),
                    "queueSize": self.queue.pending,
                    "batchProcessorActive": self.queue.is_active,
                    "lastSync": last_sync.isoformat() if last_sync else None,
                    "queue": self.queue.stats(),
                    "errors": error_registry.get_counts(),
                },
            }
        except Exception as e:
            logger.error(f"Error en health check de analítica: {e}")
            return {
                "status": HealthStatus.UNHEALTHY.value,
                "details": {"error": str(e)},
            }

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    async def get_analytics_by_type(self, metric_type, date_range=None) -> List[MetricRecord]:
        return await self.store.get_by_type(metric_type, date_range)

    async def get_analytics_by_date_range(
        self,
        start,
        end,
        metric_types: Optional[Sequence[Union[MetricType, str]]] = None,
    ) -> List[MetricRecord]:
        return await self.store.get_by_date_range(start, end, metric_types)

    async def get_analytics_by_category(self, category: str, date_range=None) -> List[MetricRecord]:
        return await self.store.get_by_category(category, date_range)

    async def get_aggregated_metrics(
        self,
        metric_type,
        granularity: Union[Granularity, str] = Granularity.DAILY,
        date_range=None,
    ) -> List[AggregatedPoint]:
        return await self.aggregator.aggregate(metric_type, granularity, date_range)

    async def get_dashboard_summary(self, date_range=None) -> DashboardSummary:
        return await self.summary.dashboard_summary(date_range)

    async def get_growth_metrics(
        self,
        metric_type,
        period: Union[GrowthPeriod, str] = GrowthPeriod.WEEK,
    ) -> GrowthMetrics:
        return await self.summary.growth_metrics(metric_type, period)

    # =========================================================================
    # REPORTES
    # =========================================================================

    def _require_range(self, date_range) -> DateRange:
        """Los reportes siempre necesitan un rango explícito."""
        resolved = self.store.resolve_range(date_range)
        if resolved is None:
            raise RangeError("El reporte requiere un rango de fechas")
        return resolved

    async def _period_summary(self, metric_type: MetricType, records, date_range: DateRange) -> Dict[str, Any]:
        """Total, promedio diario, crecimiento contra el período anterior y pico."""
        current = period_metrics(records, date_range)
        previous = await self.summary.previous_period_metrics(metric_type, date_range)
        return {
            "total": current.total,
            "averageDaily": current.average,
            "growthRate": growth_rate(current.total, previous.total),
            "peakDay": current.peak,
        }

    async def get_user_growth_metrics(self, date_range, language: str = "en") -> Dict[str, Any]:
        """Registros y usuarios activos del rango con su resumen."""
        resolved = self._require_range(date_range)
        registrations = await self.store.get_by_type(MetricType.USER_REGISTRATIONS, resolved)
        active_users = await self.store.get_by_type(MetricType.ACTIVE_USERS, resolved)

        stats = await self._period_summary(MetricType.USER_REGISTRATIONS, registrations, resolved)
        return {
            "registrations": _series(registrations, language),
            "activeUsers": _series(active_users, language),
            "summary": {
                "totalRegistrations": stats["total"],
                "averageDaily": stats["averageDaily"],
                "growthRate": stats["growthRate"],
                "peakDay": stats["peakDay"],
            },
        }

    async def get_revenue_metrics(self, date_range, language: str = "en") -> Dict[str, Any]:
        """Ingresos, valor de pedidos e ingresos por materiales."""
        resolved = self._require_range(date_range)
        revenue = await self.store.get_by_type(MetricType.REVENUE, resolved)
        orders_value = await self.store.get_by_type(MetricType.ORDERS_VALUE, resolved)
        materials_revenue = await self.store.get_by_type(MetricType.MATERIALS_REVENUE, resolved)

        stats = await self._period_summary(MetricType.REVENUE, revenue, resolved)
        return {
            "revenue": _series(revenue, language),
            "ordersValue": _series(orders_value, language),
            "materialsRevenue": _series(materials_revenue, language),
            "summary": {
                "totalRevenue": stats["total"],
                "averageDaily": stats["averageDaily"],
                "growthRate": stats["growthRate"],
                "peakDay": stats["peakDay"],
            },
        }

    async def get_order_metrics(self, date_range, language: str = "en") -> Dict[str, Any]:
        """Pedidos, valor promedio de pedido y tasa de conversión."""
        resolved = self._require_range(date_range)
        orders_count = await self.store.get_by_type(MetricType.ORDERS_COUNT, resolved)
        average_order_value = await self.store.get_by_type(MetricType.AVERAGE_ORDER_VALUE, resolved)
        conversion_rate = await self.store.get_by_type(MetricType.CONVERSION_RATE, resolved)

        stats = await self._period_summary(MetricType.ORDERS_COUNT, orders_count, resolved)
        return {
            "ordersCount": _series(orders_count, language),
            "averageOrderValue": _series(average_order_value, language),
            "conversionRate": _series(conversion_rate, language),
            "summary": {
                "totalOrders": stats["total"],
                "averageDaily": stats["averageDaily"],
                "growthRate": stats["growthRate"],
                "peakDay": stats["peakDay"],
            },
        }

    async def get_upload_metrics(self, date_range, language: str = "en") -> Dict[str, Any]:
        """Uploads, aprobados y tasa de aprobación por día."""
        resolved = self._require_range(date_range)
        uploads = await self.store.get_by_type(MetricType.UPLOADS_COUNT, resolved)
        approved = await self.store.get_by_type(MetricType.UPLOADS_APPROVED, resolved)

        rates = approval_rates(uploads, approved)
        stats = await self._period_summary(MetricType.UPLOADS_COUNT, uploads, resolved)
        return {
            "uploadsCount": _series(uploads, language),
            "uploadsApproved": _series(approved, language),
            "approvalRates": [r.to_dict() for r in rates],
            "summary": {
                "totalUploads": stats["total"],
                "averageDaily": stats["averageDaily"],
                "growthRate": stats["growthRate"],
                "overallApprovalRate": overall_approval_rate(rates),
            },
        }

    async def get_material_popularity(self, date_range) -> Dict[str, Any]:
        """Top 10 de materiales por unidades vendidas, con su ingreso."""
        resolved = self._require_range(date_range)
        sold = await self.store.get_by_type(MetricType.MATERIALS_SOLD, resolved)
        revenue = await self.store.get_by_type(MetricType.MATERIALS_REVENUE, resolved)

        stats: Dict[str, Dict[str, Any]] = {}
        for record in sold:
            material_id = record.metadata.get("materialId") or "unknown"
            entry = stats.setdefault(material_id, {
                "id": material_id,
                "name": record.metadata.get("materialName") or "Unknown Material",
                "totalSold": 0.0,
                "totalRevenue": 0.0,
                "category": record.metadata.get("category") or "unknown",
            })
            entry["totalSold"] += record.value

        # Solo se suma ingreso a materiales con ventas en el rango
        for record in revenue:
            material_id = record.metadata.get("materialId") or "unknown"
            if material_id in stats:
                stats[material_id]["totalRevenue"] += record.value

        popular = sorted(stats.values(), key=lambda m: m["totalSold"], reverse=True)
        return {
            "popularMaterials": popular[:TOP_MATERIALS_LIMIT],
            "summary": {
                "totalMaterialsSold": sum(r.value for r in sold),
                "totalMaterialsRevenue": sum(r.value for r in revenue),
                "uniqueMaterials": len(stats),
            },
        }

    async def generate_dashboard_summary(self, date_range=None) -> Dict[str, Any]:
        """Resumen del dashboard más crecimiento semanal de usuarios, ingresos y pedidos."""
        resolved = self.store.resolve_range(date_range) or self.summary.default_range()
        summary = await self.summary.dashboard_summary(resolved)

        user_growth = await self.summary.growth_metrics(MetricType.USER_REGISTRATIONS, GrowthPeriod.WEEK)
        revenue_growth = await self.summary.growth_metrics(MetricType.REVENUE, GrowthPeriod.WEEK)
        order_growth = await self.summary.growth_metrics(MetricType.ORDERS_COUNT, GrowthPeriod.WEEK)

        return {
            **summary.to_dict(),
            "growth": {
                "users": user_growth.growth_rate,
                "revenue": revenue_growth.growth_rate,
                "orders": order_growth.growth_rate,
            },
            "dateRange": resolved.to_dict(),
        }

    # =========================================================================
    # EXPORTACIÓN / IMPORTACIÓN
    # =========================================================================

    async def export_analytics(
        self,
        format: str = "json",
        date_range=None,
        admin_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Exporta registros (todos o los de un rango).

        Returns:
            {"records", "exportedAt", "format", "totalRecords"}; en CSV
            además "content" con el archivo completo

        Raises:
            ValidationError: Si el formato no está soportado
            RangeError: Si el rango es inválido
        """
        if format not in SUPPORTED_EXPORT_FORMATS:
            raise ValidationError(f"Formato de exportación no soportado: {format}", field="format")

        with LogContext(admin_id=admin_id, action="export_analytics"):
            resolved = self.store.resolve_range(date_range)
            if resolved is None:
                records = await self.store.get_all()
            else:
                records = await self.store.get_by_date_range(resolved.start, resolved.end)

            rows = [r.to_dict() for r in records]
            export = {
                "records": rows,
                "exportedAt": utc_now().isoformat(),
                "format": format,
                "totalRecords": len(rows),
            }
            if format == "csv":
                export["content"] = self._to_csv(rows)

            logger.info(f"Exportados {len(rows)} registros ({format})")
            return export

    async def import_analytics(
        self,
        payload: Union[str, Dict[str, Any], List[Dict[str, Any]]],
        persist: bool = False,
    ) -> List[MetricRecord]:
        """
        Reconstruye registros desde un export.

        Args:
            payload: Dict de export_analytics, su JSON, o lista de registros
            persist: Si True agrega al almacén los ids que no existan

        Raises:
            ValidationError: Si el payload o algún registro es inválido
            StorageError: Si persist=True y la lectura o el guardado fallan
        """
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError as e:
                raise ValidationError(f"JSON de importación inválido: {e}") from e

        if isinstance(payload, dict):
            # "analytics" es la clave de exports antiguos
            items = payload.get("records", payload.get("analytics"))
        else:
            items = payload

        if not isinstance(items, list):
            raise ValidationError("El payload de importación no contiene registros", field="records")

        records = [MetricRecord.from_dict(item) for item in items]

        if persist and records:
            new_records = await self.store.add_many(records)
            if new_records is None:
                raise StorageError("No se pudieron persistir los registros importados")
            logger.info(f"Importados {len(new_records)} registros nuevos")

        return records

    @staticmethod
    def _to_csv(rows: List[Dict[str, Any]]) -> str:
        output = io.StringIO()
        writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL)
        writer.writerow(CSV_COLUMNS)
        for row in rows:
            writer.writerow([
                json.dumps(row.get(col), ensure_ascii=False) if col == "metadata" else row.get(col)
                for col in CSV_COLUMNS
            ])
        return output.getvalue()
