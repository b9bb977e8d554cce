"""
Recurring invoice templates and the invoices materialized from them.

State lives behind ``RecurringBillingRepository``. The database-backed
repository is the default; the in-memory one is for sandbox deployments
(``RECURRING_BILLING_STORE=memory``) and loses everything on restart.
"""
from __future__ import annotations

import logging
import re
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Protocol

from dateutil.relativedelta import relativedelta
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.tenant_isolation import EntityNotFoundError, scoped_select
from app.models.recurring_billing import (
    FREQUENCIES,
    ONE_TIME_TEMPLATE_ID,
    RecurringInvoiceTemplate,
    SubscriptionInvoice,
)
from app.schemas.recurring_billing import (
    BillingAnalytics,
    ContractTemplateCreate,
    OneTimeInvoiceCreate,
    RecurringTemplateCreate,
    SubscriptionInvoiceResponse,
)

logger = logging.getLogger(__name__)
settings = get_settings()

CENT = Decimal("0.01")
NET_TERMS = re.compile(r"Net (\d+)", re.IGNORECASE)

_FREQUENCY_STEPS = {
    "weekly": relativedelta(days=7),
    "bi-weekly": relativedelta(days=14),
    "monthly": relativedelta(months=1),
    "quarterly": relativedelta(months=3),
    "yearly": relativedelta(years=1),
}

# Average number of billing periods per month
_MONTHLY_FACTORS = {
    "weekly": Decimal("4.33"),
    "bi-weekly": Decimal("2.17"),
    "monthly": Decimal("1"),
    "quarterly": Decimal("1") / Decimal("3"),
    "yearly": Decimal("1") / Decimal("12"),
}


def calculate_next_run_date(current: date, frequency: str) -> date:
    """
    Advance ``current`` by one billing period.

    Month arithmetic clamps to the last day of the target month, so
    Jan 31 + 1 month is Feb 28 (or 29) rather than spilling into March.
    """
    try:
        return current + _FREQUENCY_STEPS[frequency]
    except KeyError:
        raise ValueError(f"Unsupported frequency: {frequency}") from None


def calculate_due_date(invoice_date: date, terms: Optional[str]) -> date:
    match = NET_TERMS.search(terms or "")
    days = int(match.group(1)) if match else settings.default_payment_terms_days
    return invoice_date + timedelta(days=days)


def monthly_recurring_amount(amount, frequency: str) -> Decimal:
    return Decimal(str(amount)) * _MONTHLY_FACTORS.get(frequency, Decimal("1"))


def tax_for(amount, tax_rate) -> Decimal:
    return (Decimal(str(amount)) * Decimal(str(tax_rate)) / 100).quantize(CENT)


def format_invoice_number(year: int, sequence: int) -> str:
    return f"REC-{year}-{sequence:04d}"


def is_template_due(template: RecurringInvoiceTemplate, today: date) -> bool:
    if not template.is_active or template.next_run_date > today:
        return False
    return template.end_date is None or template.next_run_date <= template.end_date


# Template columns changed while an invoice is generated
TEMPLATE_STATE_FIELDS = ("next_run_date", "last_invoice_date", "invoice_count", "is_active", "updated_at")


class RecurringBillingRepository(Protocol):
    async def add_template(self, template: RecurringInvoiceTemplate) -> None: ...

    async def get_template(
        self, template_id: str, company_id: Optional[str] = None, for_update: bool = False
    ) -> Optional[RecurringInvoiceTemplate]: ...

    async def list_templates(self, company_id: str) -> List[RecurringInvoiceTemplate]: ...

    async def list_due_template_ids(self, today: date, company_id: Optional[str] = None) -> List[str]: ...

    async def add_invoice(self, invoice: SubscriptionInvoice) -> None: ...

    async def list_invoices(self, company_id: str, template_id: Optional[str] = None) -> List[SubscriptionInvoice]: ...

    async def count_invoices(self, company_id: str) -> int: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


class SqlAlchemyRecurringBillingRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def add_template(self, template: RecurringInvoiceTemplate) -> None:
        self.db.add(template)

    async def get_template(
        self, template_id: str, company_id: Optional[str] = None, for_update: bool = False
    ) -> Optional[RecurringInvoiceTemplate]:
        query = select(RecurringInvoiceTemplate).where(RecurringInvoiceTemplate.id == template_id)
        if company_id is not None:
            query = query.where(RecurringInvoiceTemplate.company_id == company_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def list_templates(self, company_id: str) -> List[RecurringInvoiceTemplate]:
        result = await self.db.execute(
            scoped_select(RecurringInvoiceTemplate, company_id).order_by(RecurringInvoiceTemplate.next_run_date)
        )
        return list(result.scalars().all())

    async def list_due_template_ids(self, today: date, company_id: Optional[str] = None) -> List[str]:
        query = select(RecurringInvoiceTemplate.id).where(
            RecurringInvoiceTemplate.is_active.is_(True),
            RecurringInvoiceTemplate.next_run_date <= today,
            (RecurringInvoiceTemplate.end_date.is_(None))
            | (RecurringInvoiceTemplate.next_run_date <= RecurringInvoiceTemplate.end_date),
        )
        if company_id is not None:
            query = query.where(RecurringInvoiceTemplate.company_id == company_id)
        result = await self.db.execute(
            query.order_by(RecurringInvoiceTemplate.next_run_date, RecurringInvoiceTemplate.id)
        )
        return list(result.scalars().all())

    async def add_invoice(self, invoice: SubscriptionInvoice) -> None:
        self.db.add(invoice)

    async def list_invoices(self, company_id: str, template_id: Optional[str] = None) -> List[SubscriptionInvoice]:
        query = scoped_select(SubscriptionInvoice, company_id).order_by(
            SubscriptionInvoice.created_at.desc(), SubscriptionInvoice.invoice_number.desc()
        )
        if template_id:
            query = query.where(SubscriptionInvoice.recurring_template_id == template_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_invoices(self, company_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(SubscriptionInvoice).where(SubscriptionInvoice.company_id == company_id)
        )
        return int(result.scalar() or 0)

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()


class InMemoryRecurringBillingRepository:
    """
    Process-local store keyed by id. Nothing survives a restart.

    Writes since the last commit are tracked so that rollback can drop new
    rows and restore the templates it handed out.
    """

    def __init__(self) -> None:
        self.templates: Dict[str, RecurringInvoiceTemplate] = {}
        self.invoices: Dict[str, SubscriptionInvoice] = {}
        self._new_templates: List[str] = []
        self._new_invoices: List[str] = []
        self._snapshots: Dict[str, Dict[str, Any]] = {}

    def _snapshot(self, template: RecurringInvoiceTemplate) -> None:
        if template.id not in self._snapshots:
            self._snapshots[template.id] = {field: getattr(template, field) for field in TEMPLATE_STATE_FIELDS}

    async def add_template(self, template: RecurringInvoiceTemplate) -> None:
        self.templates[template.id] = template
        self._new_templates.append(template.id)

    async def get_template(
        self, template_id: str, company_id: Optional[str] = None, for_update: bool = False
    ) -> Optional[RecurringInvoiceTemplate]:
        template = self.templates.get(template_id)
        if template is None or (company_id is not None and template.company_id != company_id):
            return None
        self._snapshot(template)
        return template

    async def list_templates(self, company_id: str) -> List[RecurringInvoiceTemplate]:
        templates = [t for t in self.templates.values() if t.company_id == company_id]
        return sorted(templates, key=lambda t: t.next_run_date)

    async def list_due_template_ids(self, today: date, company_id: Optional[str] = None) -> List[str]:
        due = [
            t
            for t in self.templates.values()
            if is_template_due(t, today) and (company_id is None or t.company_id == company_id)
        ]
        return [t.id for t in sorted(due, key=lambda t: (t.next_run_date, t.id))]

    async def add_invoice(self, invoice: SubscriptionInvoice) -> None:
        self.invoices[invoice.id] = invoice
        self._new_invoices.append(invoice.id)

    async def list_invoices(self, company_id: str, template_id: Optional[str] = None) -> List[SubscriptionInvoice]:
        invoices = [
            i
            for i in self.invoices.values()
            if i.company_id == company_id and (not template_id or i.recurring_template_id == template_id)
        ]
        return sorted(invoices, key=lambda i: (i.created_at, i.invoice_number), reverse=True)

    async def count_invoices(self, company_id: str) -> int:
        return sum(1 for i in self.invoices.values() if i.company_id == company_id)

    async def commit(self) -> None:
        self._new_templates.clear()
        self._new_invoices.clear()
        self._snapshots.clear()

    async def rollback(self) -> None:
        for invoice_id in self._new_invoices:
            self.invoices.pop(invoice_id, None)
        for template_id in self._new_templates:
            self.templates.pop(template_id, None)
        for template_id, state in self._snapshots.items():
            template = self.templates.get(template_id)
            if template is not None:
                for field, value in state.items():
                    setattr(template, field, value)
        await self.commit()


_memory_repository = InMemoryRecurringBillingRepository()


def build_repository(db: AsyncSession) -> RecurringBillingRepository:
    if settings.recurring_billing_store == "memory":
        return _memory_repository
    return SqlAlchemyRecurringBillingRepository(db)


def to_invoice_response(invoice: SubscriptionInvoice) -> SubscriptionInvoiceResponse:
    return SubscriptionInvoiceResponse.model_validate(invoice)


class AutomatedBillingService:
    def __init__(self, repository: RecurringBillingRepository) -> None:
        self.repository = repository

    async def _next_invoice_number(self, company_id: str, today: date) -> str:
        count = await self.repository.count_invoices(company_id)
        return format_invoice_number(today.year, count + 1)

    async def create_recurring_template(
        self,
        company_id: str,
        payload: RecurringTemplateCreate,
        commit: bool = True,
    ) -> RecurringInvoiceTemplate:
        if payload.frequency not in FREQUENCIES:
            raise ValueError(f"Unsupported frequency: {payload.frequency}")
        now = datetime.utcnow()
        tax_rate = settings.default_tax_rate if payload.tax_rate is None else payload.tax_rate
        template = RecurringInvoiceTemplate(
            id=str(uuid.uuid4()),
            company_id=company_id,
            customer_id=payload.customer_id,
            template_name=payload.template_name,
            description=payload.description,
            amount=Decimal(str(payload.amount)),
            tax_rate=Decimal(str(tax_rate)),
            frequency=payload.frequency,
            terms=payload.terms,
            line_items=[item.model_dump() for item in payload.line_items],
            start_date=payload.start_date,
            next_run_date=calculate_next_run_date(payload.start_date, payload.frequency),
            end_date=payload.end_date,
            last_invoice_date=None,
            invoice_count=0,
            is_active=payload.is_active,
            created_at=now,
            updated_at=now,
        )
        await self.repository.add_template(template)
        if commit:
            await self.repository.commit()
        logger.info("recurring_template_created", extra={"company_id": company_id, "template_id": template.id})
        return template

    async def get_recurring_templates(self, company_id: str) -> List[RecurringInvoiceTemplate]:
        return await self.repository.list_templates(company_id)

    async def update_template_status(self, company_id: str, template_id: str, is_active: bool) -> RecurringInvoiceTemplate:
        template = await self.repository.get_template(template_id, company_id)
        if template is None:
            raise EntityNotFoundError("Recurring template not found")
        template.is_active = is_active
        template.updated_at = datetime.utcnow()
        await self.repository.commit()
        return template

    async def get_generated_invoices(self, company_id: str, template_id: Optional[str] = None) -> List[SubscriptionInvoice]:
        return await self.repository.list_invoices(company_id, template_id)

    async def _generate_invoice(self, template: RecurringInvoiceTemplate, today: date) -> SubscriptionInvoice:
        tax_amount = tax_for(template.amount, template.tax_rate)
        invoice = SubscriptionInvoice(
            id=str(uuid.uuid4()),
            company_id=template.company_id,
            customer_id=template.customer_id,
            recurring_template_id=template.id,
            invoice_number=await self._next_invoice_number(template.company_id, today),
            description=template.description or template.template_name,
            amount=Decimal(str(template.amount)),
            tax_amount=tax_amount,
            total_amount=Decimal(str(template.amount)) + tax_amount,
            due_date=calculate_due_date(today, template.terms),
            status="draft",
            created_at=datetime.utcnow(),
        )
        await self.repository.add_invoice(invoice)
        return invoice

    async def process_due_recurring_invoices(
        self,
        today: Optional[date] = None,
        company_id: Optional[str] = None,
    ) -> List[SubscriptionInvoiceResponse]:
        """
        Materialize one invoice for every active template that is due.

        With ``company_id`` only that company's templates are touched; without
        it every company is scanned, which only the scheduler does. Each
        template is locked, re-checked and committed on its own; a failing
        template is rolled back and logged, and the scan moves on.
        """
        today = today or datetime.utcnow().date()
        generated: List[SubscriptionInvoiceResponse] = []

        for template_id in await self.repository.list_due_template_ids(today, company_id):
            try:
                template = await self.repository.get_template(template_id, company_id, for_update=True)
                # A concurrent run may have billed it since the scan
                if template is None or not is_template_due(template, today):
                    await self.repository.rollback()
                    continue
                invoice = await self._generate_invoice(template, today)
                template.next_run_date = calculate_next_run_date(template.next_run_date, template.frequency)
                template.last_invoice_date = today
                template.invoice_count = (template.invoice_count or 0) + 1
                template.updated_at = datetime.utcnow()
                await self.repository.commit()
                generated.append(to_invoice_response(invoice))
                logger.info(
                    "recurring_invoice_generated",
                    extra={
                        "company_id": invoice.company_id,
                        "template_id": template_id,
                        "invoice_number": invoice.invoice_number,
                    },
                )
            except Exception as exc:
                await self.repository.rollback()
                logger.exception(
                    "Failed to generate invoice for template",
                    extra={"template_id": template_id, "error": str(exc)},
                )

        return generated

    async def get_billing_analytics(self, company_id: str, today: Optional[date] = None) -> BillingAnalytics:
        today = today or datetime.utcnow().date()
        templates = await self.get_recurring_templates(company_id)
        invoices = await self.get_generated_invoices(company_id)
        active = [t for t in templates if t.is_active]

        total_recurring_revenue = sum(
            (monthly_recurring_amount(t.amount, t.frequency) for t in active),
            Decimal("0"),
        )
        paid = [i for i in invoices if i.status == "paid"]
        collection_rate = len(paid) / len(invoices) * 100 if invoices else 0.0
        average_invoice_value = (
            float(sum((Decimal(str(i.total_amount)) for i in invoices), Decimal("0"))) / len(invoices)
            if invoices
            else 0.0
        )

        horizon = today + timedelta(days=settings.upcoming_invoice_window_days)
        upcoming = []
        for template in active:
            if template.next_run_date > horizon:
                continue
            tax_amount = tax_for(template.amount, template.tax_rate)
            upcoming.append(
                SubscriptionInvoiceResponse(
                    id=f"upcoming-{template.id}",
                    company_id=template.company_id,
                    customer_id=template.customer_id,
                    recurring_template_id=template.id,
                    invoice_number=f"UPCOMING-{template.template_name}",
                    description=template.description,
                    amount=float(template.amount),
                    tax_amount=float(tax_amount),
                    total_amount=float(Decimal(str(template.amount)) + tax_amount),
                    due_date=calculate_due_date(template.next_run_date, template.terms),
                    status="draft",
                    created_at=datetime.combine(template.next_run_date, datetime.min.time()),
                )
            )

        return BillingAnalytics(
            total_recurring_revenue=round(float(total_recurring_revenue), 2),
            active_templates=len(active),
            total_invoices_generated=len(invoices),
            collection_rate=collection_rate,
            average_invoice_value=average_invoice_value,
            upcoming_invoices=upcoming,
        )

    async def generate_one_time_invoice(
        self,
        company_id: str,
        payload: OneTimeInvoiceCreate,
        commit: bool = True,
    ) -> SubscriptionInvoice:
        today = datetime.utcnow().date()
        tax_rate = settings.default_tax_rate if payload.tax_rate is None else payload.tax_rate
        amount = Decimal(str(payload.amount))
        tax_amount = tax_for(amount, tax_rate)
        invoice = SubscriptionInvoice(
            id=str(uuid.uuid4()),
            company_id=company_id,
            customer_id=payload.customer_id,
            recurring_template_id=ONE_TIME_TEMPLATE_ID,
            invoice_number=await self._next_invoice_number(company_id, today),
            description=payload.description,
            amount=amount,
            tax_amount=tax_amount,
            total_amount=amount + tax_amount,
            due_date=payload.due_date,
            status="draft",
            created_at=datetime.utcnow(),
        )
        await self.repository.add_invoice(invoice)
        if commit:
            await self.repository.commit()
        return invoice

    async def create_contract_template(
        self,
        company_id: str,
        payload: ContractTemplateCreate,
        today: Optional[date] = None,
    ) -> RecurringInvoiceTemplate:
        """Monthly template for a service contract, plus a one-time setup fee invoice when one is charged."""
        today = today or datetime.utcnow().date()
        end_date = None if payload.auto_renew else today + relativedelta(months=payload.contract_length)

        template = await self.create_recurring_template(
            company_id,
            RecurringTemplateCreate(
                customer_id=payload.customer_id,
                template_name=payload.contract_name,
                description=payload.service_description,
                amount=payload.monthly_rate,
                tax_rate=settings.default_tax_rate,
                frequency="monthly",
                start_date=today,
                end_date=end_date,
                is_active=True,
                terms=payload.terms,
                line_items=[
                    {
                        "description": payload.service_description,
                        "quantity": 1,
                        "rate": payload.monthly_rate,
                        "amount": payload.monthly_rate,
                    }
                ],
            ),
            commit=False,
        )

        if payload.setup_fee and payload.setup_fee > 0:
            await self.generate_one_time_invoice(
                company_id,
                OneTimeInvoiceCreate(
                    customer_id=payload.customer_id,
                    description=f"{payload.contract_name} - Setup Fee",
                    amount=payload.setup_fee,
                    due_date=today + timedelta(days=settings.setup_fee_due_days),
                ),
                commit=False,
            )

        await self.repository.commit()
        return template
