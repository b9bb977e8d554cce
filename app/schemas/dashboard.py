from datetime import datetime
from typing import Dict

from pydantic import BaseModel, Field


class DashboardFleetMetrics(BaseModel):
    total_trucks: int
    available_trucks: int
    active_drivers: int
    available_drivers: int


class DashboardDispatchMetrics(BaseModel):
    total_loads: int
    active_loads: int
    loads_by_status: Dict[str, int] = Field(default_factory=dict)
    on_time_delivery_rate: float


class DashboardAccountingMetrics(BaseModel):
    revenue_this_month: float
    outstanding_invoices: int
    outstanding_amount: float
    profit_margin: float


class DashboardMetrics(BaseModel):
    fleet: DashboardFleetMetrics
    dispatch: DashboardDispatchMetrics
    accounting: DashboardAccountingMetrics
    generated_at: datetime
