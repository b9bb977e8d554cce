"""Load billing: base rate, accessorials and expenses rolled up into stored totals."""
from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.tenant_isolation import EntityNotFoundError, get_entity_by_id, scoped_select
from app.models.load import Load
from app.models.load_billing import LoadAccessorial, LoadBilling, LoadExpense
from app.schemas.load_billing import AccessorialCreate, ExpenseCreate, LoadBillingCreate

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _money(value) -> Decimal:
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def recalculate_totals(billing: LoadBilling) -> LoadBilling:
    """Recompute the stored totals from the base rate and child rows."""
    if billing.rate_type == "per_mile" and billing.rate_per_mile is not None and billing.total_miles:
        subtotal = _money(billing.rate_per_mile) * _money(billing.total_miles)
    else:
        subtotal = _money(billing.base_rate)

    total_accessorials = sum(
        (_money(item.amount) * _money(item.quantity if item.quantity is not None else 1)
         for item in billing.accessorials if item.is_billable),
        Decimal("0"),
    )
    total_expenses = sum((_money(item.amount) for item in billing.expenses), Decimal("0"))
    tax_amount = _money(billing.tax_amount)

    billing.subtotal = subtotal.quantize(CENT)
    billing.total_accessorials = total_accessorials.quantize(CENT)
    billing.total_expenses = total_expenses.quantize(CENT)
    billing.total_amount = (subtotal + total_accessorials + tax_amount).quantize(CENT)
    return billing


class LoadBillingService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _find_billing(self, company_id: str, load_id: str) -> Optional[LoadBilling]:
        result = await self.db.execute(
            scoped_select(LoadBilling, company_id)
            .where(LoadBilling.load_id == load_id)
            .options(selectinload(LoadBilling.accessorials), selectinload(LoadBilling.expenses))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_billing(self, company_id: str, load_id: str) -> LoadBilling:
        billing = await self._find_billing(company_id, load_id)
        if billing is None:
            raise EntityNotFoundError("Billing not found for load")
        return billing

    async def create_billing(self, company_id: str, load_id: str, payload: LoadBillingCreate) -> LoadBilling:
        load = await get_entity_by_id(self.db, Load, load_id, company_id, error_message="Load not found")
        if await self._find_billing(company_id, load_id) is not None:
            raise ValueError("Billing already exists for this load")

        billing = LoadBilling(
            id=str(uuid.uuid4()),
            load_id=load.id,
            company_id=company_id,
            base_rate=_money(payload.base_rate),
            rate_type=payload.rate_type,
            rate_per_mile=_money(payload.rate_per_mile) if payload.rate_per_mile is not None else None,
            total_miles=payload.total_miles,
            customer_name=payload.customer_name or load.customer_name,
            customer_terms=payload.customer_terms,
            tax_amount=_money(payload.tax_amount),
            billing_notes=payload.billing_notes,
            billing_status="pending",
            accessorials=[],
            expenses=[],
        )
        recalculate_totals(billing)
        self.db.add(billing)
        await self.db.commit()
        return await self.get_billing(company_id, load_id)

    async def add_accessorial(self, company_id: str, load_id: str, payload: AccessorialCreate) -> LoadBilling:
        billing = await self.get_billing(company_id, load_id)
        billing.accessorials.append(
            LoadAccessorial(
                id=str(uuid.uuid4()),
                load_id=load_id,
                company_id=company_id,
                charge_type=payload.charge_type,
                description=payload.description,
                amount=_money(payload.amount),
                quantity=_money(payload.quantity),
                is_billable=payload.is_billable,
            )
        )
        return await self._save(company_id, billing)

    async def remove_accessorial(self, company_id: str, load_id: str, accessorial_id: str) -> LoadBilling:
        billing = await self.get_billing(company_id, load_id)
        item = next((a for a in billing.accessorials if a.id == accessorial_id), None)
        if item is None:
            raise EntityNotFoundError("Accessorial not found")
        billing.accessorials.remove(item)
        return await self._save(company_id, billing)

    async def add_expense(self, company_id: str, load_id: str, payload: ExpenseCreate) -> LoadBilling:
        billing = await self.get_billing(company_id, load_id)
        billing.expenses.append(
            LoadExpense(
                id=str(uuid.uuid4()),
                load_id=load_id,
                company_id=company_id,
                category=payload.category,
                description=payload.description,
                amount=_money(payload.amount),
                driver_id=payload.driver_id,
                vendor=payload.vendor,
            )
        )
        return await self._save(company_id, billing)

    async def remove_expense(self, company_id: str, load_id: str, expense_id: str) -> LoadBilling:
        billing = await self.get_billing(company_id, load_id)
        item = next((e for e in billing.expenses if e.id == expense_id), None)
        if item is None:
            raise EntityNotFoundError("Expense not found")
        billing.expenses.remove(item)
        return await self._save(company_id, billing)

    async def _save(self, company_id: str, billing: LoadBilling) -> LoadBilling:
        recalculate_totals(billing)
        await self.db.commit()
        logger.info(
            "load_billing_totals_updated",
            extra={"company_id": company_id, "load_id": billing.load_id, "total_amount": str(billing.total_amount)},
        )
        return await self.get_billing(company_id, billing.load_id)
