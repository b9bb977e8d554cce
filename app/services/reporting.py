from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Sequence

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.tenant_isolation import scoped_select
from app.models.driver import Driver
from app.models.load import Load
from app.schemas.reporting import (
    CustomerGrowthPoint,
    CustomReport,
    CustomReportRow,
    CustomReportSummary,
    DriverPerformance,
    KPIMetrics,
    LanePerformance,
    MonthlyRevenue,
    ProfitMarginPoint,
    ReportFilter,
    RevenueAnalytics,
    TrendAnalysis,
)

logger = logging.getLogger(__name__)
settings = get_settings()

CSV_HEADERS = ["Load ID", "Pickup", "Delivery", "Rate", "Miles", "Status", "Date"]
UNKNOWN_DRIVER = "Unknown Driver"


def coerce_amount(value) -> float:
    """Numbers may come back from the store as Decimal, int, float or text."""
    if value is None:
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    try:
        return float(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError):
        logger.warning("unparsable_amount", extra={"value": str(value)})
        return 0.0


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def lane_key(load) -> str:
    return f"{load.pickup_location} → {load.delivery_location}"


def summarize_loads(loads: Sequence) -> CustomReportSummary:
    total_revenue = sum(coerce_amount(load.rate) for load in loads)
    total_miles = sum(coerce_amount(load.miles) for load in loads)
    return CustomReportSummary(
        total_loads=len(loads),
        total_revenue=total_revenue,
        total_miles=total_miles,
        avg_revenue_per_mile=_ratio(total_revenue, total_miles),
        avg_revenue_per_load=_ratio(total_revenue, len(loads)),
    )


def analyze_lanes(loads: Iterable) -> Dict[str, Dict[str, float]]:
    lanes: Dict[str, Dict[str, float]] = {}
    for load in loads:
        current = lanes.setdefault(lane_key(load), {"revenue": 0.0, "loads": 0, "miles": 0.0})
        current["revenue"] += coerce_amount(load.rate)
        current["loads"] += 1
        current["miles"] += coerce_amount(load.miles)
    return lanes


def analyze_drivers(loads: Iterable) -> Dict[str, Dict[str, float]]:
    drivers: Dict[str, Dict[str, float]] = {}
    for load in loads:
        if not load.assigned_driver_id:
            continue
        current = drivers.setdefault(load.assigned_driver_id, {"revenue": 0.0, "loads": 0, "miles": 0.0})
        current["revenue"] += coerce_amount(load.rate)
        current["loads"] += 1
        current["miles"] += coerce_amount(load.miles)
    return drivers


def build_revenue_analytics(
    loads: Sequence,
    driver_names: Dict[str, str],
    limit: int = 10,
) -> RevenueAnalytics:
    total_revenue = sum(coerce_amount(load.rate) for load in loads)
    total_miles = sum(coerce_amount(load.miles) for load in loads)

    lanes = analyze_lanes(loads)
    top_lanes = sorted(
        (
            LanePerformance(
                lane=lane,
                revenue=data["revenue"],
                loads=int(data["loads"]),
                avg_rate=_ratio(data["revenue"], data["loads"]),
            )
            for lane, data in lanes.items()
        ),
        key=lambda item: item.revenue,
        reverse=True,
    )[:limit]

    drivers = analyze_drivers(loads)
    top_drivers = sorted(
        (
            DriverPerformance(
                driver_id=driver_id,
                driver_name=driver_names.get(driver_id, UNKNOWN_DRIVER),
                revenue=data["revenue"],
                loads=int(data["loads"]),
                efficiency=_ratio(data["revenue"], data["miles"]),
            )
            for driver_id, data in drivers.items()
        ),
        key=lambda item: item.revenue,
        reverse=True,
    )[:limit]

    return RevenueAnalytics(
        total_revenue=total_revenue,
        revenue_per_mile=_ratio(total_revenue, total_miles),
        revenue_per_lane=_ratio(total_revenue, len(lanes)),
        revenue_per_driver=_ratio(total_revenue, len(drivers)),
        top_performing_lanes=top_lanes,
        top_performing_drivers=top_drivers,
    )


def build_trend_analysis(loads: Sequence, expense_ratio: float) -> TrendAnalysis:
    monthly: Dict[str, Dict[str, float]] = {}
    customers_by_month: Dict[str, set] = {}
    for load in loads:
        month = load.created_at.strftime("%Y-%m")
        rate = coerce_amount(load.rate)
        current = monthly.setdefault(month, {"revenue": 0.0, "loads": 0, "expenses": 0.0})
        current["revenue"] += rate
        current["loads"] += 1
        current["expenses"] += rate * expense_ratio
        if load.customer_name:
            customers_by_month.setdefault(month, set()).add(load.customer_name)

    months = sorted(monthly)
    monthly_revenue = [
        MonthlyRevenue(
            month=month,
            revenue=monthly[month]["revenue"],
            loads=int(monthly[month]["loads"]),
            avg_rate=_ratio(monthly[month]["revenue"], monthly[month]["loads"]),
        )
        for month in months
    ]
    margin_trend = [
        ProfitMarginPoint(
            month=month,
            margin=_ratio(monthly[month]["revenue"] - monthly[month]["expenses"], monthly[month]["revenue"]) * 100,
            revenue=monthly[month]["revenue"],
            expenses=monthly[month]["expenses"],
        )
        for month in months
    ]
    return TrendAnalysis(
        monthly_revenue=monthly_revenue,
        profit_margin_trend=margin_trend,
        customer_growth=build_customer_growth(months, customers_by_month),
    )


def build_customer_growth(months: List[str], customers_by_month: Dict[str, set]) -> List[CustomerGrowthPoint]:
    """
    New customers are those whose first load falls in the month. Retention is
    the share of the previous month's customers that booked again.
    """
    seen: set = set()
    previous: set = set()
    growth = []
    for month in months:
        active = customers_by_month.get(month, set())
        new_customers = active - seen
        seen |= active
        retention = _ratio(len(active & previous), len(previous)) * 100 if previous else 100.0
        growth.append(
            CustomerGrowthPoint(
                month=month,
                new_customers=len(new_customers),
                total_customers=len(seen),
                retention=round(retention, 2),
            )
        )
        previous = active
    return growth


def kpi_window_start(period: str, now: datetime) -> datetime:
    if period == "week":
        return now - timedelta(days=7)
    if period == "quarter":
        return now - relativedelta(months=3)
    return now - relativedelta(months=1)


class AdvancedReportingService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _loads(
        self,
        company_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        customer_name: Optional[str] = None,
        driver_id: Optional[str] = None,
    ) -> List[Load]:
        query = scoped_select(Load, company_id).order_by(Load.created_at.desc())
        if start is not None:
            query = query.where(Load.created_at >= start)
        if end is not None:
            query = query.where(Load.created_at < end)
        if customer_name:
            query = query.where(Load.customer_name == customer_name)
        if driver_id:
            query = query.where(Load.assigned_driver_id == driver_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    def _day_bounds(start_date: Optional[date], end_date: Optional[date]):
        start = datetime.combine(start_date, time.min) if start_date else None
        end = datetime.combine(end_date + timedelta(days=1), time.min) if end_date else None
        return start, end

    async def generate_custom_report(self, company_id: str, filters: ReportFilter) -> CustomReport:
        start, end = self._day_bounds(filters.start_date, filters.end_date)
        try:
            loads = await self._loads(company_id, start, end, filters.customer_name, filters.driver_id)
        except Exception as exc:
            logger.exception("Error generating custom report", extra={"company_id": company_id, "error": str(exc)})
            raise
        rows = [
            CustomReportRow(
                load_id=load.id,
                load_number=load.load_number,
                pickup_location=load.pickup_location,
                delivery_location=load.delivery_location,
                rate=coerce_amount(load.rate),
                miles=coerce_amount(load.miles),
                status=load.status,
                created_at=load.created_at,
                assigned_driver_id=load.assigned_driver_id,
            )
            for load in loads
        ]
        return CustomReport(summary=summarize_loads(loads), data=rows, filters=filters)

    async def get_revenue_analytics(self, company_id: str, start_date: date, end_date: date) -> RevenueAnalytics:
        start, end = self._day_bounds(start_date, end_date)
        try:
            loads = await self._loads(company_id, start, end)
            drivers = await self.db.execute(scoped_select(Driver, company_id))
            driver_names = {driver.id: driver.full_name for driver in drivers.scalars().all()}
        except Exception as exc:
            logger.exception("Error fetching revenue analytics", extra={"company_id": company_id, "error": str(exc)})
            raise
        return build_revenue_analytics(loads, driver_names, settings.top_n_results)

    async def get_trend_analysis(self, company_id: str, months: int = 12) -> TrendAnalysis:
        now = datetime.utcnow()
        try:
            loads = await self._loads(company_id, now - relativedelta(months=months), now + timedelta(seconds=1))
        except Exception as exc:
            logger.exception("Error fetching trend analysis", extra={"company_id": company_id, "error": str(exc)})
            raise
        return build_trend_analysis(loads, settings.estimated_expense_ratio)

    async def get_kpi_metrics(self, company_id: str, period: str = "month") -> KPIMetrics:
        now = datetime.utcnow()
        try:
            loads = await self._loads(company_id, kpi_window_start(period, now), now + timedelta(seconds=1))
        except Exception as exc:
            logger.exception("Error fetching KPI metrics", extra={"company_id": company_id, "period": period, "error": str(exc)})
            raise
        total_revenue = sum(coerce_amount(load.rate) for load in loads)
        completed = [load for load in loads if load.status == "delivered"]
        in_transit = [load for load in loads if load.status == "in_transit"]
        return KPIMetrics(
            period=period,
            total_loads=len(loads),
            completed_loads=len(completed),
            in_transit_loads=len(in_transit),
            total_revenue=total_revenue,
            avg_revenue_per_load=_ratio(total_revenue, len(loads)),
            completion_rate=_ratio(len(completed), len(loads)) * 100,
            on_time_delivery_rate=settings.on_time_delivery_rate,
            customer_satisfaction_score=settings.customer_satisfaction_score,
        )

    async def export_to_csv(self, company_id: str, filters: ReportFilter) -> str:
        report = await self.generate_custom_report(company_id, filters)
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for row in report.data:
            writer.writerow(
                [
                    row.load_id,
                    row.pickup_location,
                    row.delivery_location,
                    row.rate,
                    row.miles,
                    row.status,
                    row.created_at.date().isoformat(),
                ]
            )
        return buffer.getvalue()
