from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Frequency = Literal["weekly", "bi-weekly", "monthly", "quarterly", "yearly"]


class LineItem(BaseModel):
    description: str
    quantity: float = 1
    rate: float
    amount: float


class RecurringTemplateCreate(BaseModel):
    customer_id: str
    template_name: str
    description: Optional[str] = None
    amount: float = Field(..., gt=0)
    tax_rate: Optional[float] = Field(default=None, ge=0)  # percent; company default when omitted
    frequency: Frequency
    start_date: date
    end_date: Optional[date] = None
    is_active: bool = True
    terms: str = "Net 30"
    line_items: List[LineItem] = Field(default_factory=list)


class RecurringTemplateResponse(BaseModel):
    id: str
    customer_id: str
    template_name: str
    description: Optional[str] = None
    amount: float
    tax_rate: float
    frequency: str
    terms: str
    line_items: List[LineItem] = Field(default_factory=list)
    start_date: date
    next_run_date: date
    end_date: Optional[date] = None
    last_invoice_date: Optional[date] = None
    invoice_count: int
    is_active: bool

    model_config = {"from_attributes": True}


class TemplateStatusUpdate(BaseModel):
    is_active: bool


class SubscriptionInvoiceResponse(BaseModel):
    id: str
    company_id: str
    customer_id: str
    recurring_template_id: str
    invoice_number: str
    description: Optional[str] = None
    amount: float
    tax_amount: float
    total_amount: float
    due_date: date
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ContractTemplateCreate(BaseModel):
    customer_id: str
    contract_name: str
    service_description: str
    monthly_rate: float = Field(..., gt=0)
    setup_fee: Optional[float] = Field(default=None, ge=0)
    contract_length: int = Field(..., gt=0)  # months
    auto_renew: bool = False
    terms: str = "Net 30"


class OneTimeInvoiceCreate(BaseModel):
    customer_id: str
    description: str
    amount: float = Field(..., gt=0)
    due_date: date
    tax_rate: Optional[float] = Field(default=None, ge=0)


class BillingAnalytics(BaseModel):
    total_recurring_revenue: float
    active_templates: int
    total_invoices_generated: int
    collection_rate: float
    average_invoice_value: float
    upcoming_invoices: List[SubscriptionInvoiceResponse] = Field(default_factory=list)

