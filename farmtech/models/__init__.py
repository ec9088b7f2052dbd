"""Modelos Pydantic para validación"""
from farmtech.models.metric import (
    MetricRecord,
    DateRange,
    validate_date_range,
    parse_instant,
    utc_now,
)
