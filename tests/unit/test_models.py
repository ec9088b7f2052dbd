"""
Tests para el modelo MetricRecord y los rangos de fechas.
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from pydantic import ValidationError as PydanticValidationError

from config.constants import AggregationType, MetricType
from farmtech.models.metric import (
    DateRange,
    MetricRecord,
    format_currency,
    format_number,
    parse_instant,
    validate_date_range,
)
from farmtech.utils.errors import ErrorCategory, RangeError, ValidationError


class TestMetricRecordCreation:
    """Tests para construcción y validación de MetricRecord."""

    def test_create_derives_category(self):
        """La categoría sale de la tabla fija por tipo."""
        record = MetricRecord.create(metric_type="revenue", value=1500)
        assert record.metric_type == MetricType.REVENUE
        assert record.category == "financial"
        assert record.value == 1500.0

    def test_create_generates_id(self):
        """El id generado tiene el formato analytics_<ms>_<sufijo>."""
        record = MetricRecord.create(metric_type="orders_count", value=1)
        prefix, millis, suffix = record.id.split("_", 2)
        assert prefix == "analytics"
        assert millis.isdigit()
        assert len(suffix) == 9

    def test_explicit_category_is_kept(self):
        record = MetricRecord.create(metric_type="revenue", value=1, category="custom")
        assert record.category == "custom"

    def test_category_helper_defaults_to_general(self):
        """Tipos fuera de la tabla caen en la categoría general."""
        from config.constants import category_for
        assert category_for("page_views") == "general"
        assert category_for(MetricType.USER_GROWTH) == "users"

    @pytest.mark.parametrize("value", ["10", True, None, float("nan"), float("inf")])
    def test_invalid_value_raises(self, value):
        """Solo números finitos son válidos."""
        with pytest.raises(ValidationError) as exc_info:
            MetricRecord.create(metric_type="revenue", value=value)
        assert exc_info.value.category == ErrorCategory.VALIDATION

    def test_unknown_metric_type_raises(self):
        with pytest.raises(ValidationError):
            MetricRecord.create(metric_type="page_views", value=1)

    def test_missing_metric_type_raises(self):
        with pytest.raises(ValidationError):
            MetricRecord.create(value=1)

    def test_naive_timestamp_is_utc(self):
        """Un datetime naive se interpreta como UTC."""
        record = MetricRecord.create(
            metric_type="revenue",
            value=1,
            timestamp=datetime(2024, 6, 15, 10, 30),
        )
        assert record.timestamp == datetime(2024, 6, 15, 10, 30, tzinfo=timezone.utc)

    def test_record_is_immutable(self):
        record = MetricRecord.create(metric_type="revenue", value=1)
        with pytest.raises(PydanticValidationError):
            record.value = 2


class TestMetricRecordSerialization:
    """Tests para la forma JSON camelCase."""

    def test_to_dict_uses_camel_case(self, make_record):
        data = make_record(metricType="orders_count", value=3).to_dict()
        assert set(data) == {
            "id", "metricType", "value", "timestamp", "metadata",
            "aggregationType", "category", "createdAt", "updatedAt",
        }
        assert data["metricType"] == "orders_count"
        assert data["aggregationType"] == "daily"
        assert data["category"] == "orders"

    def test_from_dict_roundtrip(self, make_record):
        """to_dict -> from_dict reconstruye un registro igual."""
        record = make_record(metadata={"orderId": "ord-1"})
        assert MetricRecord.from_dict(record.to_dict()) == record

    def test_from_dict_accepts_legacy_date_key(self):
        record = MetricRecord.from_dict({
            "metricType": "revenue",
            "value": 100,
            "date": "2024-06-01T08:00:00+00:00",
        })
        assert record.timestamp == datetime(2024, 6, 1, 8, tzinfo=timezone.utc)

    def test_from_dict_rejects_non_dict(self):
        with pytest.raises(ValidationError):
            MetricRecord.from_dict(["revenue", 100])

    def test_from_dict_returns_same_instance(self, make_record):
        record = make_record()
        assert MetricRecord.from_dict(record) is record


class TestMetricRecordHelpers:
    """Tests para los helpers derivados."""

    def test_metric_kind_predicates(self):
        revenue = MetricRecord.create(metric_type="orders_value", value=10)
        orders = MetricRecord.create(metric_type="orders_count", value=1)
        growth = MetricRecord.create(metric_type="user_growth", value=5)

        assert revenue.is_revenue_metric() and not revenue.is_count_metric()
        assert orders.is_count_metric() and not orders.is_revenue_metric()
        assert growth.is_growth_metric()

    def test_weekly_bucket_starts_on_sunday(self):
        record = MetricRecord.create(
            metric_type="revenue",
            value=1,
            timestamp=datetime(2024, 6, 15, 18, tzinfo=timezone.utc),
            aggregation_type=AggregationType.WEEKLY,
        )
        start, end = record.bucket_bounds()
        assert start == datetime(2024, 6, 9, tzinfo=timezone.utc)
        assert end - start == timedelta(days=7)

    def test_monthly_bucket_wraps_year(self):
        record = MetricRecord.create(
            metric_type="revenue",
            value=1,
            timestamp=datetime(2024, 12, 20, tzinfo=timezone.utc),
            aggregation_type="monthly",
        )
        assert record.bucket_bounds() == (
            datetime(2024, 12, 1, tzinfo=timezone.utc),
            datetime(2025, 1, 1, tzinfo=timezone.utc),
        )

    def test_real_time_bucket_is_zero_width(self):
        ts = datetime(2024, 6, 15, 12, 5, tzinfo=timezone.utc)
        record = MetricRecord.create(
            metric_type="revenue", value=1, timestamp=ts, aggregation_type="real_time"
        )
        assert record.bucket_bounds() == (ts, ts)

    def test_display_name_by_language(self):
        record = MetricRecord.create(metric_type="revenue", value=1)
        assert record.display_name("en") == "Total Revenue"
        assert record.display_name("hi") == "कुल राजस्व"
        assert record.display_name("fr") == "Total Revenue"

    def test_formatted_values(self):
        """Moneda, tasa de conversión, crecimiento y conteos."""
        assert MetricRecord.create(metric_type="revenue", value=123456).formatted_value() == "₹1,23,456.00"
        assert MetricRecord.create(metric_type="conversion_rate", value=31.25).formatted_value() == "31.25%"
        assert MetricRecord.create(metric_type="user_growth", value=12.34).formatted_value() == "+12.3%"
        assert MetricRecord.create(metric_type="orders_count", value=1234).formatted_value("mr") == "१,२३४"


class TestNumberFormatting:
    """Tests para el formato numérico indio."""

    @pytest.mark.parametrize("number,expected", [
        (0, "0"),
        (999, "999"),
        (1500, "1,500"),
        (1234567.891, "12,34,567.891"),
        (2.5, "2.5"),
        (-1500, "-1,500"),
    ])
    def test_format_number(self, number, expected):
        assert format_number(number) == expected

    def test_format_currency_negative(self):
        assert format_currency(-2500) == "-₹2,500.00"


class TestDateRange:
    """Tests para DateRange y validate_date_range."""

    def test_parse_date_only_string(self):
        assert parse_instant("2024-06-01") == datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_parse_date_object(self):
        assert parse_instant(date(2024, 6, 1)) == datetime(2024, 6, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["not-a-date", 12345, None])
    def test_unparsable_raises_range_error(self, value):
        with pytest.raises(RangeError):
            parse_instant(value)

    def test_start_after_end_raises(self):
        with pytest.raises(RangeError):
            validate_date_range("2024-06-10", "2024-06-01")

    def test_span_over_max_raises(self):
        with pytest.raises(RangeError) as exc_info:
            validate_date_range("2023-01-01", "2024-01-03")
        assert exc_info.value.max_days == 365

    def test_exactly_max_span_is_valid(self):
        date_range = validate_date_range("2023-01-01", "2024-01-01")
        assert date_range.days == 365

    def test_days_rounds_up(self):
        date_range = DateRange("2024-06-01T00:00:00", "2024-06-02T12:00:00")
        assert date_range.days == 2

    def test_empty_range_counts_one_day(self):
        assert DateRange("2024-06-01", "2024-06-01").days == 1

    def test_previous_has_same_span(self):
        date_range = DateRange("2024-06-08", "2024-06-15")
        previous = date_range.previous()
        assert previous.end == date_range.start
        assert previous.span == date_range.span

    def test_contains_inclusive_and_exclusive(self):
        date_range = DateRange("2024-06-01", "2024-06-02")
        assert date_range.contains(date_range.end)
        assert not date_range.contains(date_range.end, inclusive_end=False)

    def test_coerce_variants(self):
        expected = DateRange("2024-06-01", "2024-06-07")
        assert DateRange.coerce({"start": "2024-06-01", "end": "2024-06-07"}) == expected
        assert DateRange.coerce(("2024-06-01", "2024-06-07")) == expected
        assert DateRange.coerce(expected) is expected

    def test_coerce_invalid_raises(self):
        with pytest.raises(RangeError):
            DateRange.coerce({"start": "2024-06-01"})
        with pytest.raises(RangeError):
            DateRange.coerce("2024-06-01")
