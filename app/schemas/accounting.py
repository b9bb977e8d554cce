from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class InvoiceCreate(BaseModel):
    invoice_number: Optional[str] = None
    customer_name: Optional[str] = None
    load_id: Optional[str] = None
    amount: float = Field(..., gt=0)
    issue_date: date
    due_date: Optional[date] = None  # issue_date + default terms when omitted


class InvoiceResponse(BaseModel):
    id: str
    invoice_number: str
    customer_name: Optional[str] = None
    load_id: Optional[str] = None
    amount: float
    status: str
    issue_date: date
    due_date: date
    paid_date: Optional[date] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class InvoicePaid(BaseModel):
    paid_date: Optional[date] = None


class BillCreate(BaseModel):
    bill_number: Optional[str] = None
    vendor_name: Optional[str] = None
    category: Optional[str] = None
    bill_date: date
    due_date: Optional[date] = None
    subtotal: float = Field(..., ge=0)
    tax_amount: float = Field(default=0, ge=0)


class BillResponse(BaseModel):
    id: str
    bill_number: str
    vendor_name: Optional[str] = None
    category: Optional[str] = None
    bill_date: date
    due_date: date
    subtotal: float
    tax_amount: float
    total_amount: float
    paid_amount: float
    remaining_balance: float
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BillPayment(BaseModel):
    amount: float = Field(..., gt=0)


class TransactionEntry(BaseModel):
    id: str
    kind: Literal["invoice", "bill"]
    number: str
    counterparty: Optional[str] = None
    amount: float
    status: str
    date: date


class AccountingMetrics(BaseModel):
    total_revenue: float
    total_expenses: float
    net_profit: float
    profit_margin: float
    total_invoices: int
    paid_invoices: int
    overdue_invoices: int
    avg_revenue_per_load: float


ReportType = Literal["profit_loss", "balance_sheet", "cash_flow"]


class ReportLine(BaseModel):
    category: str
    amount: float


class ReportSection(BaseModel):
    total: float
    breakdown: List[ReportLine] = Field(default_factory=list)


class FinancialReport(BaseModel):
    type: ReportType
    period: str
    revenue: ReportSection
    expenses: ReportSection
    net_income: float
    assets: Optional[ReportSection] = None
    liabilities: Optional[ReportSection] = None
    equity: Optional[float] = None
