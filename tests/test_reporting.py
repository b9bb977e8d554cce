"""
Reporting tests: numeric coercion, lane and driver aggregation, customer
growth and the CSV export.
"""
import logging
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.models.load import Load
from app.schemas.reporting import ReportFilter
from app.services.reporting import (
    CSV_HEADERS,
    UNKNOWN_DRIVER,
    AdvancedReportingService,
    build_customer_growth,
    build_revenue_analytics,
    build_trend_analysis,
    coerce_amount,
    summarize_loads,
)


def _load(pickup="Houston", delivery="Dallas", rate=1000, miles=250, driver_id=None, customer="Acme", created_at=None):
    return SimpleNamespace(
        pickup_location=pickup,
        delivery_location=delivery,
        rate=rate,
        miles=miles,
        assigned_driver_id=driver_id,
        customer_name=customer,
        created_at=created_at or datetime(2026, 1, 10),
    )


async def _store_load(db_session, company_id, load_number, rate, miles, created_at, **extra) -> Load:
    load = Load(
        id=str(uuid.uuid4()),
        company_id=company_id,
        load_number=load_number,
        customer_name=extra.pop("customer_name", "Acme Imports"),
        pickup_location=extra.pop("pickup_location", "Houston"),
        delivery_location=extra.pop("delivery_location", "Dallas"),
        rate=Decimal(str(rate)),
        miles=miles,
        status=extra.pop("status", "delivered"),
        created_at=created_at,
        updated_at=created_at,
        **extra,
    )
    db_session.add(load)
    await db_session.commit()
    return load


class TestCoerceAmount:
    def test_mixed_numeric_types_sum(self):
        loads = [_load(rate=100), _load(rate=Decimal("200")), _load(rate="300")]

        assert summarize_loads(loads).total_revenue == 600

    def test_unparsable_and_missing_values_count_as_zero(self):
        assert coerce_amount(None) == 0.0
        assert coerce_amount("n/a") == 0.0
        assert coerce_amount(" 12.50 ") == 12.5


class TestSummaries:
    def test_empty_input_avoids_division_by_zero(self):
        summary = summarize_loads([])

        assert summary.total_loads == 0
        assert summary.avg_revenue_per_mile == 0.0
        assert summary.avg_revenue_per_load == 0.0

    def test_missing_miles_keeps_revenue_per_mile_at_zero(self):
        summary = summarize_loads([_load(rate=500, miles=None)])

        assert summary.total_miles == 0
        assert summary.avg_revenue_per_mile == 0.0
        assert summary.avg_revenue_per_load == 500


class TestRevenueAnalytics:
    def test_lanes_and_drivers_rank_by_revenue(self):
        loads = [
            _load("Houston", "Dallas", 1000, 250, driver_id="d1"),
            _load("Houston", "Dallas", 1200, 250, driver_id="d2"),
            _load("Austin", "El Paso", 3000, 600, driver_id="d1"),
            _load("Austin", "Waco", 400, 100),
        ]

        analytics = build_revenue_analytics(loads, {"d1": "Alice Driver"})

        assert analytics.total_revenue == 5600
        assert analytics.revenue_per_mile == 5600 / 1200
        assert analytics.revenue_per_lane == 5600 / 3
        assert analytics.revenue_per_driver == 5600 / 2
        assert [lane.lane for lane in analytics.top_performing_lanes] == [
            "Austin → El Paso",
            "Houston → Dallas",
            "Austin → Waco",
        ]
        houston = analytics.top_performing_lanes[1]
        assert houston.loads == 2
        assert houston.avg_rate == 1100
        assert analytics.top_performing_drivers[0].driver_name == "Alice Driver"
        assert analytics.top_performing_drivers[0].efficiency == 4000 / 850
        assert analytics.top_performing_drivers[1].driver_name == UNKNOWN_DRIVER

    def test_limit_caps_ranked_lists(self):
        loads = [_load(pickup=f"Origin {i}", rate=100 + i) for i in range(5)]

        analytics = build_revenue_analytics(loads, {}, limit=2)

        assert [lane.revenue for lane in analytics.top_performing_lanes] == [104, 103]


class TestTrends:
    def test_monthly_buckets_apply_expense_ratio(self):
        loads = [
            _load(rate=1000, created_at=datetime(2026, 1, 5)),
            _load(rate=3000, created_at=datetime(2026, 1, 20)),
            _load(rate=500, created_at=datetime(2026, 2, 1)),
        ]

        trends = build_trend_analysis(loads, expense_ratio=0.7)

        assert [point.month for point in trends.monthly_revenue] == ["2026-01", "2026-02"]
        assert trends.monthly_revenue[0].avg_rate == 2000
        assert trends.profit_margin_trend[0].margin == pytest.approx(30.0)
        assert trends.profit_margin_trend[1].expenses == pytest.approx(350.0)

    def test_customer_growth_tracks_new_and_retained(self):
        growth = build_customer_growth(
            ["2026-01", "2026-02", "2026-03"],
            {"2026-01": {"Acme", "Globex"}, "2026-02": {"Acme", "Initech"}, "2026-03": set()},
        )

        assert [(g.new_customers, g.total_customers) for g in growth] == [(2, 2), (1, 3), (0, 3)]
        assert growth[0].retention == 100.0
        assert growth[1].retention == 50.0
        assert growth[2].retention == 0.0


class TestAdvancedReportingService:
    @pytest.mark.asyncio
    async def test_custom_report_filters_by_date_and_company(self, db_session, company, other_company):
        await _store_load(db_session, company.id, "LD-1", 1000, 200, datetime(2026, 3, 1, 9))
        await _store_load(db_session, company.id, "LD-2", 1500, 300, datetime(2026, 3, 31, 23))
        await _store_load(db_session, company.id, "LD-3", 900, 100, datetime(2026, 4, 1, 0, 30))
        await _store_load(db_session, other_company.id, "LD-1", 5000, 500, datetime(2026, 3, 10))
        service = AdvancedReportingService(db_session)

        report = await service.generate_custom_report(
            company.id, ReportFilter(start_date=date(2026, 3, 1), end_date=date(2026, 3, 31))
        )

        assert sorted(row.load_number for row in report.data) == ["LD-1", "LD-2"]
        assert report.summary.total_revenue == 2500
        assert report.summary.avg_revenue_per_mile == 5.0

    @pytest.mark.asyncio
    async def test_kpis_count_recent_loads(self, db_session, company):
        now = datetime.utcnow()
        await _store_load(db_session, company.id, "LD-1", 1000, 200, now - timedelta(days=2))
        await _store_load(db_session, company.id, "LD-2", 1000, 200, now - timedelta(days=3), status="in_transit")
        await _store_load(db_session, company.id, "LD-3", 1000, 200, now - timedelta(days=20))
        service = AdvancedReportingService(db_session)

        week = await service.get_kpi_metrics(company.id, "week")
        month = await service.get_kpi_metrics(company.id, "month")

        assert week.total_loads == 2
        assert week.completed_loads == 1
        assert week.in_transit_loads == 1
        assert week.completion_rate == 50.0
        assert month.total_loads == 3

    @pytest.mark.asyncio
    async def test_csv_export_has_header_and_one_row_per_load(self, db_session, company):
        load = await _store_load(
            db_session,
            company.id,
            "LD-1",
            1250.5,
            300,
            datetime(2026, 3, 4, 12),
            pickup_location="Port of Houston, TX",
        )
        service = AdvancedReportingService(db_session)

        content = await service.export_to_csv(company.id, ReportFilter())

        lines = content.splitlines()
        assert lines[0] == ",".join(CSV_HEADERS)
        assert lines[1] == f'{load.id},"Port of Houston, TX",Dallas,1250.5,300.0,delivered,2026-03-04'
        assert len(lines) == 2

    @pytest.mark.asyncio
    async def test_query_failures_are_logged_and_reraised(self, db_session, company, monkeypatch, caplog):
        company_id = company.id
        service = AdvancedReportingService(db_session)

        async def broken_execute(*args, **kwargs):
            raise RuntimeError("connection lost")

        monkeypatch.setattr(db_session, "execute", broken_execute)

        with caplog.at_level(logging.ERROR, logger="app.services.reporting"):
            with pytest.raises(RuntimeError):
                await service.generate_custom_report(company_id, ReportFilter())
            with pytest.raises(RuntimeError):
                await service.get_revenue_analytics(company_id, date(2026, 3, 1), date(2026, 3, 31))
            with pytest.raises(RuntimeError):
                await service.get_trend_analysis(company_id)
            with pytest.raises(RuntimeError):
                await service.get_kpi_metrics(company_id, "week")

        assert [record.getMessage() for record in caplog.records] == [
            "Error generating custom report",
            "Error fetching revenue analytics",
            "Error fetching trend analysis",
            "Error fetching KPI metrics",
        ]
