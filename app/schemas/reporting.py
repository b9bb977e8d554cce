from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ReportFilter(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    customer_name: Optional[str] = None
    driver_id: Optional[str] = None


class CustomReportRow(BaseModel):
    load_id: str
    load_number: str
    pickup_location: str
    delivery_location: str
    rate: float
    miles: float
    status: str
    created_at: datetime
    assigned_driver_id: Optional[str] = None


class CustomReportSummary(BaseModel):
    total_loads: int
    total_revenue: float
    total_miles: float
    avg_revenue_per_mile: float
    avg_revenue_per_load: float


class CustomReport(BaseModel):
    summary: CustomReportSummary
    data: List[CustomReportRow] = Field(default_factory=list)
    filters: ReportFilter


class LanePerformance(BaseModel):
    lane: str
    revenue: float
    loads: int
    avg_rate: float


class DriverPerformance(BaseModel):
    driver_id: str
    driver_name: str
    revenue: float
    loads: int
    efficiency: float  # revenue per mile


class RevenueAnalytics(BaseModel):
    total_revenue: float
    revenue_per_mile: float
    revenue_per_lane: float
    revenue_per_driver: float
    top_performing_lanes: List[LanePerformance] = Field(default_factory=list)
    top_performing_drivers: List[DriverPerformance] = Field(default_factory=list)


class MonthlyRevenue(BaseModel):
    month: str  # YYYY-MM
    revenue: float
    loads: int
    avg_rate: float


class ProfitMarginPoint(BaseModel):
    month: str
    margin: float
    revenue: float
    expenses: float


class CustomerGrowthPoint(BaseModel):
    month: str
    new_customers: int
    total_customers: int
    retention: float


class TrendAnalysis(BaseModel):
    monthly_revenue: List[MonthlyRevenue] = Field(default_factory=list)
    profit_margin_trend: List[ProfitMarginPoint] = Field(default_factory=list)
    customer_growth: List[CustomerGrowthPoint] = Field(default_factory=list)


KPIPeriod = Literal["week", "month", "quarter"]


class KPIMetrics(BaseModel):
    period: KPIPeriod
    total_loads: int
    completed_loads: int
    in_transit_loads: int
    total_revenue: float
    avg_revenue_per_load: float
    completion_rate: float
    on_time_delivery_rate: float
    customer_satisfaction_score: float
