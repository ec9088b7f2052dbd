"""
Modelo de Registro de Métrica

Un MetricRecord es un punto de dato inmutable con marca de tiempo.
Se serializa con claves camelCase (metricType, aggregationType, ...)
para ser compatible con los datos ya guardados bajo la clave
"farmtech_analytics".
"""

import math
import random
import string
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from config.constants import (
    AggregationType,
    COUNT_METRICS,
    MetricType,
    REVENUE_METRICS,
    category_for,
)
from farmtech.utils.errors import RangeError, ValidationError

DateLike = Union[datetime, date, str]


def utc_now() -> datetime:
    """Instante actual en UTC (aware)."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Normaliza un datetime a UTC; los naive se interpretan como UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_record_id() -> str:
    """Genera un id del estilo analytics_<epoch-ms>_<aleatorio>."""
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"analytics_{int(time.time() * 1000)}_{suffix}"


# ============================================================================
# NOMBRES PARA MOSTRAR
# ============================================================================

DISPLAY_NAMES: Dict[str, Dict[MetricType, str]] = {
    "en": {
        MetricType.USER_GROWTH: "User Growth",
        MetricType.USER_REGISTRATIONS: "New Registrations",
        MetricType.ACTIVE_USERS: "Active Users",
        MetricType.REVENUE: "Total Revenue",
        MetricType.ORDERS_COUNT: "Total Orders",
        MetricType.ORDERS_VALUE: "Orders Value",
        MetricType.UPLOADS_COUNT: "Total Uploads",
        MetricType.UPLOADS_APPROVED: "Approved Uploads",
        MetricType.MATERIALS_SOLD: "Materials Sold",
        MetricType.MATERIALS_REVENUE: "Materials Revenue",
        MetricType.PAYMENT_SUBMISSIONS: "Payment Submissions",
        MetricType.PAYMENT_APPROVALS: "Payment Approvals",
        MetricType.CONVERSION_RATE: "Conversion Rate",
        MetricType.AVERAGE_ORDER_VALUE: "Average Order Value",
    },
    "hi": {
        MetricType.USER_GROWTH: "उपयोगकर्ता वृद्धि",
        MetricType.USER_REGISTRATIONS: "नए पंजीकरण",
        MetricType.ACTIVE_USERS: "सक्रिय उपयोगकर्ता",
        MetricType.REVENUE: "कुल राजस्व",
        MetricType.ORDERS_COUNT: "कुल ऑर्डर",
        MetricType.ORDERS_VALUE: "ऑर्डर मूल्य",
        MetricType.UPLOADS_COUNT: "कुल अपलोड",
        MetricType.UPLOADS_APPROVED: "स्वीकृत अपलोड",
        MetricType.MATERIALS_SOLD: "बेची गई सामग्री",
        MetricType.MATERIALS_REVENUE: "सामग्री राजस्व",
        MetricType.PAYMENT_SUBMISSIONS: "भुगतान सबमिशन",
        MetricType.PAYMENT_APPROVALS: "भुगतान अनुमोदन",
        MetricType.CONVERSION_RATE: "रूपांतरण दर",
        MetricType.AVERAGE_ORDER_VALUE: "औसत ऑर्डर मूल्य",
    },
    "mr": {
        MetricType.USER_GROWTH: "वापरकर्ता वाढ",
        MetricType.USER_REGISTRATIONS: "नवीन नोंदणी",
        MetricType.ACTIVE_USERS: "सक्रिय वापरकर्ते",
        MetricType.REVENUE: "एकूण महसूल",
        MetricType.ORDERS_COUNT: "एकूण ऑर्डर",
        MetricType.ORDERS_VALUE: "ऑर्डर मूल्य",
        MetricType.UPLOADS_COUNT: "एकूण अपलोड",
        MetricType.UPLOADS_APPROVED: "मंजूर अपलोड",
        MetricType.MATERIALS_SOLD: "विकली गेलेली सामग्री",
        MetricType.MATERIALS_REVENUE: "सामग्री महसूल",
        MetricType.PAYMENT_SUBMISSIONS: "पेमेंट सबमिशन",
        MetricType.PAYMENT_APPROVALS: "पेमेंट मंजुरी",
        MetricType.CONVERSION_RATE: "रूपांतरण दर",
        MetricType.AVERAGE_ORDER_VALUE: "सरासरी ऑर्डर मूल्य",
    },
}

# Marathi usa dígitos devanagari por defecto
_DEVANAGARI_DIGITS = str.maketrans("0123456789", "०१२३४५६७८९")


def _group_indian(integer_part: str) -> str:
    """Agrupa dígitos al estilo indio: 12,34,567."""
    if len(integer_part) <= 3:
        return integer_part
    head, tail = integer_part[:-3], integer_part[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_number(number: float, language: str = "en", decimals: Optional[int] = None) -> str:
    """
    Formatea un número con agrupación india.

    Args:
        number: Valor a formatear
        language: en, hi o mr
        decimals: Decimales fijos; None usa hasta 3 y recorta ceros

    Returns:
        Cadena formateada, p. ej. "1,23,456.5"
    """
    sign = "-" if number < 0 else ""
    if decimals is None:
        text = f"{abs(number):.3f}".rstrip("0").rstrip(".")
    else:
        text = f"{abs(number):.{decimals}f}"

    integer_part, _, fraction = text.partition(".")
    result = sign + _group_indian(integer_part)
    if fraction:
        result += "." + fraction

    if language == "mr":
        result = result.translate(_DEVANAGARI_DIGITS)
    return result


def format_currency(amount: float, language: str = "en") -> str:
    """Formatea un importe en rupias (INR), p. ej. "₹1,23,456.00"."""
    formatted = format_number(abs(amount), language, decimals=2)
    return f"-₹{formatted}" if amount < 0 else f"₹{formatted}"


# ============================================================================
# METRIC RECORD
# ============================================================================

class MetricRecord(BaseModel):
    """
    Registro inmutable de una métrica.

    Construir con MetricRecord.create(...) o MetricRecord.from_dict(...)
    para obtener ValidationError del dominio en lugar del de pydantic.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(default_factory=generate_record_id)
    metric_type: MetricType
    value: float
    timestamp: datetime = Field(
        default_factory=utc_now,
        validation_alias=AliasChoices("timestamp", "date"),
    )
    metadata: Dict[str, Any] = Field(default_factory=dict)
    aggregation_type: AggregationType = AggregationType.DAILY
    category: str = Field(default="", validate_default=True)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v:
            raise ValueError("id no puede estar vacío")
        return v

    @field_validator("value", mode="before")
    @classmethod
    def validate_value(cls, v: Any) -> float:
        """Solo números finitos; bool y strings se rechazan."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("value debe ser numérico")
        if not math.isfinite(v):
            raise ValueError("value debe ser finito")
        return v

    @field_validator("timestamp", "created_at", "updated_at")
    @classmethod
    def normalize_datetime(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("category")
    @classmethod
    def derive_category(cls, v: str, info: ValidationInfo) -> str:
        """Categoría derivada del tipo cuando no se proporciona."""
        if v:
            return v
        metric_type = info.data.get("metric_type")
        return category_for(metric_type) if metric_type else ""

    # =========================================================================
    # CONSTRUCCIÓN
    # =========================================================================

    @classmethod
    def create(cls, **data: Any) -> "MetricRecord":
        """
        Crea un registro validado.

        Raises:
            ValidationError: Si algún campo no es válido
        """
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise _to_domain_error(e) from e

    @classmethod
    def from_dict(cls, data: Any) -> "MetricRecord":
        """
        Reconstruye un registro desde su forma JSON (claves camelCase).

        Raises:
            ValidationError: Si el payload no es un dict o es inválido
        """
        if isinstance(data, cls):
            return data
        if not isinstance(data, dict):
            raise ValidationError(
                f"Se esperaba un dict, se recibió {type(data).__name__}"
            )
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise _to_domain_error(e) from e

    def to_dict(self) -> Dict[str, Any]:
        """Forma JSON con claves camelCase y fechas ISO-8601."""
        return self.model_dump(mode="json", by_alias=True)

    # =========================================================================
    # HELPERS DERIVADOS
    # =========================================================================

    def is_revenue_metric(self) -> bool:
        return self.metric_type in REVENUE_METRICS

    def is_count_metric(self) -> bool:
        return self.metric_type in COUNT_METRICS

    def is_growth_metric(self) -> bool:
        return self.metric_type == MetricType.USER_GROWTH

    def bucket_bounds(self) -> Tuple[datetime, datetime]:
        """
        Intervalo natural [inicio, fin) según el tipo de agregación.

        real_time retorna un intervalo de ancho cero en el propio timestamp.
        """
        ts = self.timestamp
        day_start = ts.replace(hour=0, minute=0, second=0, microsecond=0)

        if self.aggregation_type == AggregationType.DAILY:
            return day_start, day_start + timedelta(days=1)

        if self.aggregation_type == AggregationType.WEEKLY:
            # Semanas que empiezan en domingo
            start = day_start - timedelta(days=(ts.weekday() + 1) % 7)
            return start, start + timedelta(days=7)

        if self.aggregation_type == AggregationType.MONTHLY:
            start = day_start.replace(day=1)
            if start.month == 12:
                end = start.replace(year=start.year + 1, month=1)
            else:
                end = start.replace(month=start.month + 1)
            return start, end

        if self.aggregation_type == AggregationType.YEARLY:
            start = day_start.replace(month=1, day=1)
            return start, start.replace(year=start.year + 1)

        return ts, ts

    def display_name(self, language: str = "en") -> str:
        """Nombre legible del tipo de métrica (en, hi, mr)."""
        names = DISPLAY_NAMES.get(language) or DISPLAY_NAMES["en"]
        return names.get(self.metric_type) or DISPLAY_NAMES["en"].get(
            self.metric_type, self.metric_type.value
        )

    def formatted_value(self, language: str = "en") -> str:
        """Valor formateado según el tipo de métrica."""
        if self.is_revenue_metric():
            return format_currency(self.value, language)

        if self.metric_type == MetricType.CONVERSION_RATE:
            # Se guarda ya como porcentaje
            return f"{self.value:.2f}%"

        if self.is_growth_metric():
            prefix = "+" if self.value > 0 else ""
            return f"{prefix}{self.value:.1f}%"

        return format_number(self.value, language)


def _to_domain_error(error: PydanticValidationError) -> ValidationError:
    """Convierte el error de pydantic en ValidationError del dominio."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    messages = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
        for err in error.errors()
    )
    return ValidationError(f"Registro de métrica inválido: {messages}", field=field or None)


# ============================================================================
# RANGOS DE FECHAS
# ============================================================================

def parse_instant(value: DateLike, field: str = "date") -> datetime:
    """
    Convierte datetime, date o string ISO-8601 a datetime UTC.

    Raises:
        RangeError: Si el valor no se puede interpretar como fecha
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str):
        raise RangeError(f"Fecha inválida en {field}: {value!r}")
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError as e:
        raise RangeError(f"Fecha inválida en {field}: {value!r}") from e


@dataclass(frozen=True)
class DateRange:
    """Rango de fechas [start, end] con instantes UTC."""
    start: datetime
    end: datetime

    def __post_init__(self):
        object.__setattr__(self, "start", parse_instant(self.start, "start"))
        object.__setattr__(self, "end", parse_instant(self.end, "end"))

    @property
    def span(self) -> timedelta:
        return self.end - self.start

    @property
    def days(self) -> int:
        """Días del rango redondeados hacia arriba; un rango vacío cuenta 1."""
        return max(1, math.ceil(self.span.total_seconds() / 86400))

    def contains(self, instant: datetime, inclusive_end: bool = True) -> bool:
        if inclusive_end:
            return self.start <= instant <= self.end
        return self.start <= instant < self.end

    def previous(self) -> "DateRange":
        """Ventana de igual duración inmediatamente anterior."""
        return DateRange(self.start - self.span, self.start)

    @classmethod
    def last_days(cls, days: int, now: Optional[datetime] = None) -> "DateRange":
        """Rango de los últimos N días hasta ahora."""
        end = ensure_utc(now) if now else utc_now()
        return cls(end - timedelta(days=days), end)

    @classmethod
    def coerce(cls, value: Any) -> "DateRange":
        """Acepta DateRange, tupla (start, end) o dict {"start", "end"}."""
        if isinstance(value, cls):
            return value
        if isinstance(value, dict):
            if "start" not in value or "end" not in value:
                raise RangeError("El rango requiere 'start' y 'end'")
            return cls(value["start"], value["end"])
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return cls(value[0], value[1])
        raise RangeError(f"Rango de fechas no soportado: {value!r}")

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def validate_date_range(
    start: DateLike,
    end: DateLike,
    max_days: int = 365,
) -> DateRange:
    """
    Valida y construye un DateRange.

    Raises:
        RangeError: Fecha no parseable, inicio posterior al fin o
            duración mayor a max_days
    """
    date_range = DateRange(start, end)

    if date_range.start > date_range.end:
        raise RangeError("La fecha de inicio debe ser anterior a la de fin")

    if date_range.span.total_seconds() / 86400 > max_days:
        raise RangeError(
            f"El rango no puede exceder {max_days} días",
            max_days=max_days,
        )

    return date_range
