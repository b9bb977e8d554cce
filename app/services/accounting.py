from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.tenant_isolation import get_entity_by_id, scoped_select
from app.models.accounting import Bill, Invoice
from app.models.load import Load
from app.schemas.accounting import (
    AccountingMetrics,
    BillCreate,
    FinancialReport,
    InvoiceCreate,
    ReportLine,
    ReportSection,
    TransactionEntry,
)
from app.services.reporting import coerce_amount

logger = logging.getLogger(__name__)
settings = get_settings()

REPORT_TYPES = ("profit_loss", "balance_sheet", "cash_flow")


def _build_number(prefix: str) -> str:
    timestamp = datetime.utcnow().strftime("%Y%m%d%H%M%S")
    return f"{prefix}-{timestamp}-{uuid.uuid4().hex[:6].upper()}"


def _total(values: Iterable) -> float:
    return round(sum(coerce_amount(value) for value in values), 2)


def _section(lines: Dict[str, float]) -> ReportSection:
    breakdown = [ReportLine(category=category, amount=round(amount, 2)) for category, amount in lines.items()]
    return ReportSection(total=round(sum(lines.values()), 2), breakdown=breakdown)


def _in_range(value: Optional[date], start: Optional[date], end: Optional[date]) -> bool:
    if value is None:
        return False
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


class AccountingService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create_invoice(self, company_id: str, payload: InvoiceCreate) -> Invoice:
        if payload.load_id:
            await get_entity_by_id(self.db, Load, payload.load_id, company_id, error_message="Load not found")
        invoice = Invoice(
            id=str(uuid.uuid4()),
            company_id=company_id,
            load_id=payload.load_id,
            invoice_number=payload.invoice_number or _build_number("INV"),
            customer_name=payload.customer_name,
            amount=Decimal(str(payload.amount)),
            status="pending",
            issue_date=payload.issue_date,
            due_date=payload.due_date or payload.issue_date + timedelta(days=settings.default_payment_terms_days),
        )
        self.db.add(invoice)
        await self.db.commit()
        await self.db.refresh(invoice)
        return invoice

    async def list_invoices(self, company_id: str, status_filter: Optional[str] = None) -> List[Invoice]:
        query = scoped_select(Invoice, company_id).order_by(Invoice.issue_date.desc(), Invoice.created_at.desc())
        if status_filter:
            query = query.where(Invoice.status == status_filter)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def mark_invoice_paid(self, company_id: str, invoice_id: str, paid_date: Optional[date] = None) -> Invoice:
        invoice = await get_entity_by_id(self.db, Invoice, invoice_id, company_id, error_message="Invoice not found")
        if invoice.status == "cancelled":
            raise ValueError("Cannot pay a cancelled invoice")
        invoice.status = "paid"
        invoice.paid_date = paid_date or datetime.utcnow().date()
        await self.db.commit()
        await self.db.refresh(invoice)
        return invoice

    async def create_bill(self, company_id: str, payload: BillCreate) -> Bill:
        subtotal = Decimal(str(payload.subtotal))
        tax_amount = Decimal(str(payload.tax_amount))
        total = subtotal + tax_amount
        bill = Bill(
            id=str(uuid.uuid4()),
            company_id=company_id,
            bill_number=payload.bill_number or _build_number("BILL"),
            vendor_name=payload.vendor_name,
            category=payload.category,
            bill_date=payload.bill_date,
            due_date=payload.due_date or payload.bill_date + timedelta(days=settings.default_payment_terms_days),
            subtotal=subtotal,
            tax_amount=tax_amount,
            total_amount=total,
            paid_amount=Decimal("0"),
            remaining_balance=total,
            status="pending",
        )
        self.db.add(bill)
        await self.db.commit()
        await self.db.refresh(bill)
        return bill

    async def list_bills(self, company_id: str, status_filter: Optional[str] = None) -> List[Bill]:
        query = scoped_select(Bill, company_id).order_by(Bill.bill_date.desc(), Bill.created_at.desc())
        if status_filter:
            query = query.where(Bill.status == status_filter)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def record_bill_payment(self, company_id: str, bill_id: str, amount: float) -> Bill:
        bill = await get_entity_by_id(self.db, Bill, bill_id, company_id, error_message="Bill not found")
        payment = Decimal(str(amount))
        remaining = Decimal(str(bill.remaining_balance))
        if payment > remaining:
            raise ValueError("Payment exceeds remaining balance")

        bill.paid_amount = Decimal(str(bill.paid_amount)) + payment
        bill.remaining_balance = remaining - payment
        bill.status = "paid" if bill.remaining_balance <= 0 else "partial"
        await self.db.commit()
        await self.db.refresh(bill)
        logger.info("bill_payment_recorded", extra={"company_id": company_id, "bill_id": bill_id, "amount": str(payment)})
        return bill

    async def list_transactions(self, company_id: str, limit: int = 100) -> List[TransactionEntry]:
        """Invoices and bills merged into one ledger view, newest first."""
        invoices = await self.list_invoices(company_id)
        bills = await self.list_bills(company_id)
        entries = [
            TransactionEntry(
                id=invoice.id,
                kind="invoice",
                number=invoice.invoice_number,
                counterparty=invoice.customer_name,
                amount=coerce_amount(invoice.amount),
                status=invoice.status,
                date=invoice.issue_date,
            )
            for invoice in invoices
        ] + [
            TransactionEntry(
                id=bill.id,
                kind="bill",
                number=bill.bill_number,
                counterparty=bill.vendor_name,
                amount=-coerce_amount(bill.total_amount),
                status=bill.status,
                date=bill.bill_date,
            )
            for bill in bills
        ]
        entries.sort(key=lambda entry: entry.date, reverse=True)
        return entries[:limit]

    async def get_accounting_metrics(self, company_id: str, today: Optional[date] = None) -> AccountingMetrics:
        today = today or datetime.utcnow().date()
        try:
            invoices = await self.list_invoices(company_id)
            bills = await self.list_bills(company_id)
            load_count = await self.db.execute(
                select(func.count()).select_from(Load).where(Load.company_id == company_id)
            )
            loads = int(load_count.scalar() or 0)
        except Exception as exc:
            logger.exception("Error fetching accounting metrics", extra={"company_id": company_id, "error": str(exc)})
            raise

        total_revenue = _total(invoice.amount for invoice in invoices)
        total_expenses = _total(bill.total_amount for bill in bills)
        net_profit = round(total_revenue - total_expenses, 2)
        return AccountingMetrics(
            total_revenue=total_revenue,
            total_expenses=total_expenses,
            net_profit=net_profit,
            profit_margin=net_profit / total_revenue * 100 if total_revenue > 0 else 0.0,
            total_invoices=len(invoices),
            paid_invoices=sum(1 for invoice in invoices if invoice.status == "paid"),
            overdue_invoices=sum(
                1 for invoice in invoices if invoice.status not in ("paid", "cancelled") and invoice.due_date < today
            ),
            avg_revenue_per_load=total_revenue / loads if loads else 0.0,
        )

    async def generate_financial_report(
        self,
        company_id: str,
        report_type: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> FinancialReport:
        if report_type not in REPORT_TYPES:
            raise ValueError(f"Unsupported report type: {report_type}")
        period = f"{start_date.isoformat() if start_date else 'Beginning'} to {end_date.isoformat() if end_date else 'Present'}"

        try:
            invoices = await self.list_invoices(company_id)
            bills = await self.list_bills(company_id)
        except Exception as exc:
            logger.exception(
                "Error generating financial report",
                extra={"company_id": company_id, "report_type": report_type, "error": str(exc)},
            )
            raise

        if report_type == "profit_loss":
            return self._profit_loss(invoices, bills, start_date, end_date, period)
        if report_type == "balance_sheet":
            return self._balance_sheet(invoices, bills, end_date, period)
        return self._cash_flow(invoices, bills, start_date, end_date, period)

    @staticmethod
    def _expense_lines(bills: Iterable[Bill], amount_of) -> Dict[str, float]:
        lines: Dict[str, float] = {}
        for bill in bills:
            category = bill.category or bill.vendor_name or "General Expense"
            lines[category] = lines.get(category, 0.0) + coerce_amount(amount_of(bill))
        return lines

    def _profit_loss(self, invoices, bills, start_date, end_date, period) -> FinancialReport:
        revenue = _section(
            {"Freight Revenue": _total(i.amount for i in invoices if _in_range(i.issue_date, start_date, end_date))}
        )
        expenses = _section(
            self._expense_lines(
                (b for b in bills if _in_range(b.bill_date, start_date, end_date)),
                lambda bill: bill.total_amount,
            )
        )
        return FinancialReport(
            type="profit_loss",
            period=period,
            revenue=revenue,
            expenses=expenses,
            net_income=round(revenue.total - expenses.total, 2),
        )

    def _balance_sheet(self, invoices, bills, end_date, period) -> FinancialReport:
        as_of = end_date or datetime.utcnow().date()
        issued = [i for i in invoices if i.issue_date <= as_of]
        received = [b for b in bills if b.bill_date <= as_of]

        collected = _total(i.amount for i in issued if i.status == "paid" and i.paid_date and i.paid_date <= as_of)
        receivable = _total(i.amount for i in issued if i.status not in ("paid", "cancelled"))
        paid_out = _total(b.paid_amount for b in received)
        payable = _total(b.remaining_balance for b in received)

        assets = _section({"Cash": round(collected - paid_out, 2), "Accounts Receivable": receivable})
        liabilities = _section({"Accounts Payable": payable})
        revenue = _section({"Freight Revenue": _total(i.amount for i in issued)})
        expenses = _section(self._expense_lines(received, lambda bill: bill.total_amount))
        return FinancialReport(
            type="balance_sheet",
            period=period,
            revenue=revenue,
            expenses=expenses,
            net_income=round(revenue.total - expenses.total, 2),
            assets=assets,
            liabilities=liabilities,
            equity=round(assets.total - liabilities.total, 2),
        )

    def _cash_flow(self, invoices, bills, start_date, end_date, period) -> FinancialReport:
        cash_in = _section(
            {
                "Customer Payments": _total(
                    i.amount for i in invoices if i.status == "paid" and _in_range(i.paid_date, start_date, end_date)
                )
            }
        )
        cash_out = _section(
            self._expense_lines(
                (b for b in bills if _in_range(b.bill_date, start_date, end_date)),
                lambda bill: bill.paid_amount,
            )
        )
        return FinancialReport(
            type="cash_flow",
            period=period,
            revenue=cash_in,
            expenses=cash_out,
            net_income=round(cash_in.total - cash_out.total, 2),
        )
