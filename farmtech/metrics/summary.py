"""
Summary Calculator

Métricas derivadas para el dashboard: totales por período, tasa de
crecimiento entre ventanas, resumen general y tasas de aprobación.
"""

from datetime import datetime, timedelta
from typing import Dict, Any, Optional, List, Iterable, Callable, Union
from dataclasses import dataclass

from config.constants import GROWTH_PERIOD_DAYS, GrowthPeriod, MetricType
from farmtech.models.metric import DateRange, MetricRecord, utc_now
from farmtech.utils.errors import ValidationError
from farmtech.utils.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class PeriodMetrics:
    """Total, promedio diario y pico de un período."""

    total: float = 0.0
    average: float = 0.0
    peak: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "average": round(self.average, 2),
            "peak": self.peak,
        }


@dataclass
class GrowthMetrics:
    """Comparación de la ventana actual contra la anterior."""

    current: float
    previous: float
    growth_rate: float
    period: GrowthPeriod

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current,
            "previous": self.previous,
            "growthRate": self.growth_rate,
            "period": self.period.value,
        }


@dataclass
class DashboardSummary:
    """
    Resumen del dashboard.

    active_users es el máximo diario observado en el rango y
    total_users lo replica; no hay conteo real de usuarios únicos.
    """

    new_registrations: float = 0.0
    active_users: float = 0.0
    total_users: float = 0.0
    total_revenue: float = 0.0
    total_orders: float = 0.0
    total_uploads: float = 0.0
    approved_uploads: float = 0.0
    conversion_rate: float = 0.0
    average_order_value: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalUsers": self.total_users,
            "newRegistrations": self.new_registrations,
            "activeUsers": self.active_users,
            "totalRevenue": self.total_revenue,
            "totalOrders": self.total_orders,
            "totalUploads": self.total_uploads,
            "approvedUploads": self.approved_uploads,
            "conversionRate": self.conversion_rate,
            "averageOrderValue": self.average_order_value,
        }


@dataclass
class ApprovalRate:
    """Tasa de aprobación de uploads de un día."""

    date: datetime
    total_uploads: float
    approved_uploads: float
    approval_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "totalUploads": self.total_uploads,
            "approvedUploads": self.approved_uploads,
            "approvalRate": self.approval_rate,
        }


# ============================================================================
# FUNCIONES PURAS
# ============================================================================

def growth_rate(current: float, previous: float) -> float:
    """
    Crecimiento porcentual redondeado a 2 decimales.

    Con previous == 0 retorna 100 si current > 0, si no 0.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round(((current - previous) / previous) * 100, 2)


def period_metrics(records: Iterable[MetricRecord], date_range: DateRange) -> PeriodMetrics:
    """Total, promedio por día (días redondeados hacia arriba) y pico."""
    values = [r.value for r in records]
    total = sum(values)
    return PeriodMetrics(
        total=total,
        average=total / date_range.days,
        peak=max(values, default=0.0),
    )


def approval_rates(
    uploads: Iterable[MetricRecord],
    approved: Iterable[MetricRecord],
) -> List[ApprovalRate]:
    """
    Empareja cada registro de uploads con el de aprobados del mismo día UTC.

    Si hay varios aprobados en el día se usa el primero.
    """
    approved_by_day: Dict[Any, MetricRecord] = {}
    for record in approved:
        approved_by_day.setdefault(record.timestamp.date(), record)

    rows = []
    for upload in uploads:
        match = approved_by_day.get(upload.timestamp.date())
        approved_value = match.value if match else 0.0
        rate = (approved_value / upload.value) * 100 if match and upload.value > 0 else 0.0
        rows.append(ApprovalRate(
            date=upload.timestamp,
            total_uploads=upload.value,
            approved_uploads=approved_value,
            approval_rate=round(rate, 2),
        ))
    return rows


def overall_approval_rate(rows: Iterable[ApprovalRate]) -> float:
    """Aprobados / subidos sobre todas las filas, en porcentaje."""
    rows = list(rows)
    if not rows:
        return 0.0
    total = sum(r.total_uploads for r in rows)
    approved = sum(r.approved_uploads for r in rows)
    return round((approved / total) * 100, 2) if total > 0 else 0.0


def parse_growth_period(period: Union[GrowthPeriod, str]) -> GrowthPeriod:
    try:
        return GrowthPeriod(period)
    except ValueError as e:
        raise ValidationError(f"Período de crecimiento no soportado: {period}", field="period") from e


# ============================================================================
# CALCULATOR
# ============================================================================

class SummaryCalculator:
    """
    Calculadora de métricas derivadas sobre un MetricStore.

    El reloj es inyectable para fijar "ahora" en tests.
    """

    def __init__(
        self,
        store,
        default_range_days: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        from config.settings import settings

        self.store = store
        self.default_range_days = default_range_days or settings.ANALYTICS_DEFAULT_RANGE_DAYS
        self._clock = clock or utc_now
        logger.info("SummaryCalculator inicializado")

    def now(self) -> datetime:
        return self._clock()

    def default_range(self) -> DateRange:
        return DateRange.last_days(self.default_range_days, now=self.now())

    # Expuestas también como métodos para quien reciba solo la calculadora
    period_metrics = staticmethod(period_metrics)
    growth_rate = staticmethod(growth_rate)
    overall_approval_rate = staticmethod(overall_approval_rate)

    async def dashboard_summary(self, date_range=None) -> DashboardSummary:
        """
        Resumen del rango (default: últimos 30 días).

        Raises:
            RangeError: Si el rango es inválido
        """
        resolved = self.store.resolve_range(date_range) or self.default_range()
        records = await self.store.get_by_date_range(resolved.start, resolved.end)

        summary = DashboardSummary()
        for record in records:
            if record.metric_type == MetricType.USER_REGISTRATIONS:
                summary.new_registrations += record.value
            elif record.metric_type == MetricType.ACTIVE_USERS:
                # Máximo diario, no suma
                summary.active_users = max(summary.active_users, record.value)
            elif record.metric_type == MetricType.REVENUE:
                summary.total_revenue += record.value
            elif record.metric_type == MetricType.ORDERS_COUNT:
                summary.total_orders += record.value
            elif record.metric_type == MetricType.UPLOADS_COUNT:
                summary.total_uploads += record.value
            elif record.metric_type == MetricType.UPLOADS_APPROVED:
                summary.approved_uploads += record.value

        summary.total_users = summary.active_users
        if summary.active_users > 0:
            summary.conversion_rate = (summary.total_orders / summary.active_users) * 100
        if summary.total_orders > 0:
            summary.average_order_value = summary.total_revenue / summary.total_orders

        logger.debug(f"Resumen calculado sobre {len(records)} registros")
        return summary

    async def growth_metrics(
        self,
        metric_type: Union[MetricType, str],
        period: Union[GrowthPeriod, str] = GrowthPeriod.WEEK,
    ) -> GrowthMetrics:
        """
        Compara [ahora - L, ahora] contra [ahora - 2L, ahora - L).

        L es 1, 7 o 30 días según el período.
        """
        period = parse_growth_period(period)
        length = timedelta(days=GROWTH_PERIOD_DAYS[period])
        now = self.now()
        boundary = now - length

        current_records = await self.store.get_by_date_range(boundary, now, [metric_type])
        previous_records = await self.store.get_by_date_range(
            boundary - length, boundary, [metric_type]
        )

        current = sum(r.value for r in current_records)
        previous = sum(r.value for r in previous_records if r.timestamp < boundary)

        return GrowthMetrics(
            current=current,
            previous=previous,
            growth_rate=growth_rate(current, previous),
            period=period,
        )

    async def previous_period_metrics(
        self,
        metric_type: Union[MetricType, str],
        date_range,
    ) -> PeriodMetrics:
        """Métricas de la ventana de igual duración anterior al rango."""
        resolved = DateRange.coerce(date_range)
        previous = resolved.previous()
        records = await self.store.get_by_type(metric_type, previous)
        return period_metrics(
            (r for r in records if r.timestamp < previous.end),
            previous,
        )
