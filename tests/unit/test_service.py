"""
Tests para AnalyticsService.
"""

import csv
import io
import json
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock

from config.constants import MetricType
from farmtech.core.context import AppContext
from farmtech.metrics.service import CSV_COLUMNS, HealthStatus
from farmtech.models.metric import DateRange
from farmtech.utils.errors import RangeError, StorageError, ValidationError

from tests.factories import stored_payload


class TestExportImport:
    """Tests de exportación e importación."""

    @pytest.mark.asyncio
    async def test_json_export_then_import_reconstructs_range(self, context, week_of_records, make_record, fixed_now):
        """Lo exportado de un rango se reconstruye igual al importarlo."""
        old = make_record(timestamp=fixed_now - timedelta(days=60))
        await context.store.save_all(week_of_records + [old])
        date_range = DateRange.last_days(3, now=fixed_now)

        export = await context.analytics.export_analytics("json", date_range)
        imported = await context.analytics.import_analytics(export["records"])

        expected = [r for r in week_of_records if date_range.contains(r.timestamp)]
        assert export["format"] == "json"
        assert export["totalRecords"] == len(expected) == 9
        assert sorted(imported, key=lambda r: r.id) == sorted(expected, key=lambda r: r.id)

    @pytest.mark.asyncio
    async def test_export_without_range_returns_everything(self, context, week_of_records):
        await context.store.save_all(week_of_records)

        export = await context.analytics.export_analytics()

        assert export["totalRecords"] == 21
        assert "exportedAt" in export
        assert "content" not in export

    @pytest.mark.asyncio
    async def test_csv_export(self, context, make_record, fixed_now):
        record = make_record(metricType="orders_count", value=2, metadata={"orderId": "ord-1"}, timestamp=fixed_now)
        await context.store.save_all([record])

        export = await context.analytics.export_analytics("csv", admin_id="admin-1")

        rows = list(csv.reader(io.StringIO(export["content"])))
        assert rows[0] == CSV_COLUMNS
        assert len(rows) == 2
        row = dict(zip(CSV_COLUMNS, rows[1]))
        assert row["id"] == record.id
        assert row["metricType"] == "orders_count"
        assert json.loads(row["metadata"]) == {"orderId": "ord-1"}

    @pytest.mark.asyncio
    async def test_unsupported_format_raises(self, context):
        with pytest.raises(ValidationError):
            await context.analytics.export_analytics("xml")

    @pytest.mark.asyncio
    async def test_import_from_json_string_and_legacy_key(self, context, make_record):
        record = make_record()
        payload = json.dumps({"analytics": [record.to_dict()]})

        assert await context.analytics.import_analytics(payload) == [record]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", ["{roto", {"records": "nada"}, 42])
    async def test_import_invalid_payload_raises(self, context, payload):
        with pytest.raises(ValidationError):
            await context.analytics.import_analytics(payload)

    @pytest.mark.asyncio
    async def test_import_persist_merges_new_ids(self, context, make_record):
        existing = make_record()
        await context.store.save_all([existing])
        new = make_record()

        await context.analytics.import_analytics(
            {"records": [existing.to_dict(), new.to_dict()]}, persist=True
        )

        stored = await context.store.get_all()
        assert [r.id for r in stored] == [existing.id, new.id]

    @pytest.mark.asyncio
    async def test_import_persist_failure_raises(self, context, memory_storage, make_record):
        memory_storage.fail_writes = True
        with pytest.raises(StorageError):
            await context.analytics.import_analytics([make_record().to_dict()], persist=True)

    @pytest.mark.asyncio
    async def test_import_persist_after_failed_read_keeps_history(self, context, memory_storage, make_record):
        existing = make_record()
        await context.store.save_all([existing])
        context.store.clear_cache()

        memory_storage.fail_reads = True
        with pytest.raises(StorageError):
            await context.analytics.import_analytics([make_record().to_dict()], persist=True)

        memory_storage.fail_reads = False
        assert await context.store.get_all() == [existing]


class TestReports:
    """Tests de los reportes del dashboard."""

    @pytest.mark.asyncio
    async def test_revenue_metrics(self, context, week_of_records, make_record, fixed_now):
        previous = make_record(metricType="revenue", value=5000, timestamp=fixed_now - timedelta(days=10))
        await context.store.save_all(week_of_records + [previous])

        report = await context.analytics.get_revenue_metrics(DateRange.last_days(7, now=fixed_now))

        summary = report["summary"]
        assert len(report["revenue"]) == 7
        assert summary["totalRevenue"] == 7021
        assert summary["averageDaily"] == pytest.approx(7021 / 7)
        assert summary["peakDay"] == 1006
        assert summary["growthRate"] == round((7021 - 5000) / 5000 * 100, 2)
        assert report["revenue"][0]["formattedValue"].startswith("₹")

    @pytest.mark.asyncio
    async def test_reports_require_range(self, context):
        with pytest.raises(RangeError):
            await context.analytics.get_revenue_metrics(None)

    @pytest.mark.asyncio
    async def test_user_growth_metrics_in_hindi(self, context, make_record, fixed_now):
        await context.store.save_all([
            make_record(metricType="user_registrations", value=1234, timestamp=fixed_now),
        ])

        report = await context.analytics.get_user_growth_metrics(
            DateRange.last_days(7, now=fixed_now), language="mr"
        )

        assert report["summary"]["totalRegistrations"] == 1234
        assert report["registrations"][0]["formattedValue"] == "१,२३४"

    @pytest.mark.asyncio
    async def test_order_metrics(self, context, week_of_records, fixed_now):
        await context.store.save_all(week_of_records)

        report = await context.analytics.get_order_metrics(DateRange.last_days(7, now=fixed_now))

        assert report["summary"]["totalOrders"] == 35
        assert report["averageOrderValue"] == []

    @pytest.mark.asyncio
    async def test_upload_metrics(self, context, make_record, fixed_now):
        await context.store.save_all([
            make_record(metricType="uploads_count", value=10, timestamp=fixed_now),
            make_record(metricType="uploads_approved", value=7, timestamp=fixed_now),
        ])

        report = await context.analytics.get_upload_metrics(DateRange.last_days(7, now=fixed_now))

        assert report["approvalRates"][0]["approvalRate"] == 70.0
        assert report["summary"]["overallApprovalRate"] == 70.0

    @pytest.mark.asyncio
    async def test_material_popularity(self, context, make_record, fixed_now):
        def sold(material_id, quantity):
            return make_record(
                material_sale=True, value=quantity, timestamp=fixed_now,
                metadata={"materialId": material_id, "materialName": material_id.upper()},
            )

        await context.store.save_all([
            sold("mat-1", 3),
            sold("mat-2", 5),
            sold("mat-1", 4),
            make_record(metricType="materials_revenue", value=700, timestamp=fixed_now,
                        metadata={"materialId": "mat-1"}),
            make_record(metricType="materials_revenue", value=99, timestamp=fixed_now,
                        metadata={"materialId": "mat-3"}),
        ])

        report = await context.analytics.get_material_popularity(DateRange.last_days(7, now=fixed_now))

        popular = report["popularMaterials"]
        assert [m["id"] for m in popular] == ["mat-1", "mat-2"]
        assert popular[0]["totalSold"] == 7
        assert popular[0]["totalRevenue"] == 700
        assert popular[0]["category"] == "unknown"
        assert report["summary"] == {
            "totalMaterialsSold": 12,
            "totalMaterialsRevenue": 799,
            "uniqueMaterials": 2,
        }

    @pytest.mark.asyncio
    async def test_generate_dashboard_summary(self, context, week_of_records):
        await context.store.save_all(week_of_records)

        result = await context.analytics.generate_dashboard_summary()

        assert result["totalOrders"] == 35
        assert result["activeUsers"] == 26
        assert set(result["growth"]) == {"users", "revenue", "orders"}
        assert set(result["dateRange"]) == {"start", "end"}

    @pytest.mark.asyncio
    async def test_query_passthroughs(self, context, week_of_records, fixed_now):
        await context.store.save_all(week_of_records)
        service = context.analytics

        assert len(await service.get_analytics_by_type(MetricType.REVENUE)) == 7
        assert len(await service.get_analytics_by_category("users")) == 7
        assert len(await service.get_analytics_by_date_range(fixed_now - timedelta(days=2), fixed_now)) == 9
        assert len(await service.get_aggregated_metrics("orders_count", "weekly")) == 1
        assert (await service.get_dashboard_summary()).total_orders == 35
        assert (await service.get_growth_metrics("orders_count", "week")).current == 35


class TestLifecycle:
    """Tests de inicialización, salud y cierre."""

    @pytest.mark.asyncio
    async def test_initialize_seeds_when_enabled(self, memory_storage):
        ctx = AppContext.create_for_testing(
            storage=memory_storage, seed_sample_data=True, sample_days=2, sample_seed=3,
        )
        await ctx.initialize()
        try:
            assert len(await ctx.store.get_all()) == 12
            assert ctx.is_initialized
        finally:
            await ctx.shutdown()

    @pytest.mark.asyncio
    async def test_initialize_keeps_existing_empty_collection(self, memory_storage):
        """Una colección vacía ya guardada no se vuelve a sembrar."""
        memory_storage._data["test_analytics"] = stored_payload([])
        ctx = AppContext.create_for_testing(
            storage=memory_storage, storage_key="test_analytics",
            seed_sample_data=True, sample_days=2, sample_seed=3,
        )
        await ctx.initialize()
        try:
            assert await ctx.store.get_all() == []
            assert memory_storage.writes == 0
        finally:
            await ctx.shutdown()

    @pytest.mark.asyncio
    async def test_initialize_after_failed_read_writes_nothing(self, memory_storage, make_record):
        originals = [make_record(), make_record()]
        memory_storage._data["test_analytics"] = stored_payload(originals)
        ctx = AppContext.create_for_testing(
            storage=memory_storage, storage_key="test_analytics",
            seed_sample_data=True, sample_days=2, sample_seed=3,
        )

        memory_storage.fail_reads = True
        await ctx.initialize()
        memory_storage.fail_reads = False
        try:
            assert memory_storage.writes == 0
            assert await ctx.store.get_all() == originals
        finally:
            await ctx.shutdown()

    @pytest.mark.asyncio
    async def test_health_check(self, context, make_record):
        await context.store.save_all([make_record()])
        context.tracker.track_page_view("dashboard")

        health = await context.analytics.health_check()

        details = health["details"]
        assert health["status"] == HealthStatus.HEALTHY.value
        assert details["totalAnalyticsRecords"] == 1
        assert details["queueSize"] == 1
        assert details["batchProcessorActive"] is True
        assert details["lastSync"] is not None

    @pytest.mark.asyncio
    async def test_health_check_unhealthy(self, context):
        context.store.get_all = AsyncMock(side_effect=RuntimeError("boom"))

        health = await context.analytics.health_check()

        assert health["status"] == HealthStatus.UNHEALTHY.value
        assert health["details"]["error"] == "boom"

    @pytest.mark.asyncio
    async def test_shutdown_flushes_pending_events(self, context, memory_storage):
        context.tracker.track_revenue(300.0, source="payment")

        await context.shutdown()

        payload = json.loads(await memory_storage.read("test_analytics"))
        assert [item["metricType"] for item in payload["data"]] == ["revenue"]
        assert not context.queue.is_active
