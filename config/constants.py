"""
Constantes del sistema

Define valores que no cambian durante la ejecución:
tipos de métrica, tipos de agregación, granularidades y
la tabla fija de categorías por tipo de métrica.
"""

from enum import Enum


class MetricType(str, Enum):
    """Tipos de métrica que se pueden registrar"""
    USER_GROWTH = "user_growth"
    USER_REGISTRATIONS = "user_registrations"
    ACTIVE_USERS = "active_users"
    REVENUE = "revenue"
    ORDERS_COUNT = "orders_count"
    ORDERS_VALUE = "orders_value"
    UPLOADS_COUNT = "uploads_count"
    UPLOADS_APPROVED = "uploads_approved"
    MATERIALS_SOLD = "materials_sold"
    MATERIALS_REVENUE = "materials_revenue"
    PAYMENT_SUBMISSIONS = "payment_submissions"
    PAYMENT_APPROVALS = "payment_approvals"
    CONVERSION_RATE = "conversion_rate"
    AVERAGE_ORDER_VALUE = "average_order_value"


class AggregationType(str, Enum):
    """Tipo de agregación natural de un registro"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    REAL_TIME = "real_time"


class Granularity(str, Enum):
    """Granularidades soportadas por el motor de agregación"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class GrowthPeriod(str, Enum):
    """Ventanas de comparación para crecimiento"""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class StorageBackendType(str, Enum):
    """Backends de almacenamiento disponibles"""
    MEMORY = "memory"
    FILE = "file"
    DATABASE = "database"


# Duración en días de cada ventana de crecimiento
GROWTH_PERIOD_DAYS = {
    GrowthPeriod.DAY: 1,
    GrowthPeriod.WEEK: 7,
    GrowthPeriod.MONTH: 30,
}

DEFAULT_CATEGORY = "general"

# Tabla fija tipo de métrica -> categoría
METRIC_CATEGORIES = {
    MetricType.USER_REGISTRATIONS: "users",
    MetricType.ACTIVE_USERS: "users",
    MetricType.USER_GROWTH: "users",
    MetricType.REVENUE: "financial",
    MetricType.ORDERS_VALUE: "financial",
    MetricType.MATERIALS_REVENUE: "financial",
    MetricType.AVERAGE_ORDER_VALUE: "financial",
    MetricType.ORDERS_COUNT: "orders",
    MetricType.UPLOADS_COUNT: "uploads",
    MetricType.UPLOADS_APPROVED: "uploads",
    MetricType.MATERIALS_SOLD: "materials",
    MetricType.PAYMENT_SUBMISSIONS: "payments",
    MetricType.PAYMENT_APPROVALS: "payments",
    MetricType.CONVERSION_RATE: "conversion",
}

REVENUE_METRICS = frozenset({
    MetricType.REVENUE,
    MetricType.ORDERS_VALUE,
    MetricType.MATERIALS_REVENUE,
    MetricType.AVERAGE_ORDER_VALUE,
})

COUNT_METRICS = frozenset({
    MetricType.USER_REGISTRATIONS,
    MetricType.ACTIVE_USERS,
    MetricType.ORDERS_COUNT,
    MetricType.UPLOADS_COUNT,
    MetricType.UPLOADS_APPROVED,
    MetricType.MATERIALS_SOLD,
    MetricType.PAYMENT_SUBMISSIONS,
    MetricType.PAYMENT_APPROVALS,
})

SUPPORTED_EXPORT_FORMATS = ("json", "csv")


def category_for(metric_type) -> str:
    """Resuelve la categoría de un tipo de métrica (o 'general')."""
    try:
        return METRIC_CATEGORIES.get(MetricType(metric_type), DEFAULT_CATEGORY)
    except ValueError:
        return DEFAULT_CATEGORY
