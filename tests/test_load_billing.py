"""
Load billing tests: stored totals follow accessorial and expense changes.
"""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.core.tenant_isolation import EntityNotFoundError
from app.schemas.load import LoadCreate
from app.schemas.load_billing import AccessorialCreate, ExpenseCreate, LoadBillingCreate
from app.services.dispatch import DispatchService
from app.services.load_billing import LoadBillingService, recalculate_totals


async def _load_id(db_session, company_id: str) -> str:
    result = await DispatchService(db_session).create_load_with_dispatch(
        company_id,
        LoadCreate(
            customer_name="Acme Imports",
            pickup_location="Port of Houston",
            delivery_location="Dallas, TX",
            rate=1850,
            pickup_date=date(2026, 3, 2),
        ),
    )
    return result.load_id


class TestRecalculateTotals:
    def test_per_mile_rate_and_non_billable_accessorials(self):
        billing = SimpleNamespace(
            rate_type="per_mile",
            rate_per_mile=Decimal("2.50"),
            total_miles=400,
            base_rate=Decimal("0"),
            tax_amount=Decimal("25"),
            accessorials=[
                SimpleNamespace(amount=Decimal("75"), quantity=Decimal("2"), is_billable=True),
                SimpleNamespace(amount=Decimal("150"), quantity=Decimal("1"), is_billable=False),
            ],
            expenses=[SimpleNamespace(amount=Decimal("310.40"))],
        )

        recalculate_totals(billing)

        assert billing.subtotal == Decimal("1000.00")
        assert billing.total_accessorials == Decimal("150.00")
        assert billing.total_expenses == Decimal("310.40")
        assert billing.total_amount == Decimal("1175.00")

    def test_per_mile_without_miles_falls_back_to_base_rate(self):
        billing = SimpleNamespace(
            rate_type="per_mile",
            rate_per_mile=Decimal("2.50"),
            total_miles=None,
            base_rate=Decimal("1800"),
            tax_amount=None,
            accessorials=[],
            expenses=[],
        )

        recalculate_totals(billing)

        assert billing.total_amount == Decimal("1800.00")


class TestLoadBillingService:
    @pytest.mark.asyncio
    async def test_create_billing_defaults_customer_from_load(self, db_session, company):
        load_id = await _load_id(db_session, company.id)
        service = LoadBillingService(db_session)

        billing = await service.create_billing(company.id, load_id, LoadBillingCreate(base_rate=1850))

        assert billing.customer_name == "Acme Imports"
        assert billing.billing_status == "pending"
        assert billing.subtotal == Decimal("1850.00")
        assert billing.total_amount == Decimal("1850.00")

    @pytest.mark.asyncio
    async def test_second_billing_for_same_load_is_rejected(self, db_session, company):
        load_id = await _load_id(db_session, company.id)
        service = LoadBillingService(db_session)
        await service.create_billing(company.id, load_id, LoadBillingCreate(base_rate=1850))

        with pytest.raises(ValueError):
            await service.create_billing(company.id, load_id, LoadBillingCreate(base_rate=1900))

    @pytest.mark.asyncio
    async def test_accessorials_and_expenses_update_totals(self, db_session, company):
        load_id = await _load_id(db_session, company.id)
        service = LoadBillingService(db_session)
        await service.create_billing(company.id, load_id, LoadBillingCreate(base_rate=1850, tax_amount=50))

        billing = await service.add_accessorial(
            company.id,
            load_id,
            AccessorialCreate(charge_type="detention", description="3 hours detention", amount=75, quantity=3),
        )
        assert billing.total_accessorials == Decimal("225.00")
        assert billing.total_amount == Decimal("2125.00")

        billing = await service.add_expense(
            company.id, load_id, ExpenseCreate(category="fuel", description="Fuel stop", amount=412.35)
        )
        assert billing.total_expenses == Decimal("412.35")
        # Expenses are carrier costs and do not change what the customer owes
        assert billing.total_amount == Decimal("2125.00")

        accessorial_id = billing.accessorials[0].id
        billing = await service.remove_accessorial(company.id, load_id, accessorial_id)
        assert billing.accessorials == []
        assert billing.total_amount == Decimal("1900.00")

        billing = await service.remove_expense(company.id, load_id, billing.expenses[0].id)
        assert billing.total_expenses == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_unknown_child_rows_raise_not_found(self, db_session, company):
        load_id = await _load_id(db_session, company.id)
        service = LoadBillingService(db_session)
        await service.create_billing(company.id, load_id, LoadBillingCreate(base_rate=1850))

        with pytest.raises(EntityNotFoundError):
            await service.remove_accessorial(company.id, load_id, "missing")
        with pytest.raises(EntityNotFoundError):
            await service.remove_expense(company.id, load_id, "missing")

    @pytest.mark.asyncio
    async def test_other_company_cannot_bill_or_read(self, db_session, company, other_company):
        load_id = await _load_id(db_session, company.id)
        service = LoadBillingService(db_session)
        await service.create_billing(company.id, load_id, LoadBillingCreate(base_rate=1850))

        with pytest.raises(EntityNotFoundError):
            await service.get_billing(other_company.id, load_id)
        with pytest.raises(EntityNotFoundError):
            await service.create_billing(other_company.id, load_id, LoadBillingCreate(base_rate=1))
