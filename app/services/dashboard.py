from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.tenant_isolation import scoped_select
from app.models.accounting import Bill, Invoice
from app.models.driver import Driver
from app.models.equipment import Truck
from app.models.load import Load
from app.schemas.dashboard import (
    DashboardAccountingMetrics,
    DashboardDispatchMetrics,
    DashboardFleetMetrics,
    DashboardMetrics,
)
from app.services.reporting import coerce_amount

logger = logging.getLogger(__name__)

ACTIVE_LOAD_STATUSES = ("dispatched", "in_transit")
OPEN_INVOICE_STATUSES = ("pending", "sent", "overdue")


def on_time_delivery_rate(loads: List[Load]) -> float:
    """Share of delivered loads that arrived on or before their delivery date."""
    delivered = [load for load in loads if load.status == "delivered"]
    if not delivered:
        return 100.0
    on_time = [
        load
        for load in delivered
        if load.delivery_date is None or load.delivered_at is None or load.delivered_at.date() <= load.delivery_date
    ]
    return round(len(on_time) / len(delivered) * 100, 2)


class DashboardService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _all(self, model, company_id: str) -> list:
        result = await self.db.execute(scoped_select(model, company_id))
        return list(result.scalars().all())

    async def get_dashboard_metrics(self, company_id: str, today: Optional[date] = None) -> DashboardMetrics:
        today = today or datetime.utcnow().date()
        try:
            loads = await self._all(Load, company_id)
            drivers = await self._all(Driver, company_id)
            trucks = await self._all(Truck, company_id)
            invoices = await self._all(Invoice, company_id)
            bills = await self._all(Bill, company_id)
        except Exception as exc:
            logger.exception("Error fetching dashboard metrics", extra={"company_id": company_id, "error": str(exc)})
            raise

        active_trucks = [truck for truck in trucks if truck.is_active]
        active_drivers = [driver for driver in drivers if driver.is_active]

        month_start = today.replace(day=1)
        revenue_this_month = sum(
            coerce_amount(invoice.amount) for invoice in invoices if month_start <= invoice.issue_date <= today
        )
        open_invoices = [invoice for invoice in invoices if invoice.status in OPEN_INVOICE_STATUSES]
        total_revenue = sum(coerce_amount(invoice.amount) for invoice in invoices)
        total_expenses = sum(coerce_amount(bill.total_amount) for bill in bills)

        return DashboardMetrics(
            fleet=DashboardFleetMetrics(
                total_trucks=len(active_trucks),
                available_trucks=sum(1 for truck in active_trucks if truck.status == "available"),
                active_drivers=len(active_drivers),
                available_drivers=sum(1 for driver in active_drivers if driver.status == "available"),
            ),
            dispatch=DashboardDispatchMetrics(
                total_loads=len(loads),
                active_loads=sum(1 for load in loads if load.status in ACTIVE_LOAD_STATUSES),
                loads_by_status=dict(Counter(load.status for load in loads)),
                on_time_delivery_rate=on_time_delivery_rate(loads),
            ),
            accounting=DashboardAccountingMetrics(
                revenue_this_month=round(revenue_this_month, 2),
                outstanding_invoices=len(open_invoices),
                outstanding_amount=round(sum(coerce_amount(invoice.amount) for invoice in open_invoices), 2),
                profit_margin=(total_revenue - total_expenses) / total_revenue * 100 if total_revenue > 0 else 0.0,
            ),
            generated_at=datetime.utcnow(),
        )
