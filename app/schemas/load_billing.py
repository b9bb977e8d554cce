from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class LoadBillingCreate(BaseModel):
    base_rate: float = Field(..., ge=0)
    rate_type: Literal["flat", "per_mile"] = "flat"
    rate_per_mile: Optional[float] = None
    total_miles: Optional[int] = None
    customer_name: Optional[str] = None  # Defaults to the load's customer
    customer_terms: str = "NET30"
    tax_amount: float = 0
    billing_notes: Optional[str] = None


class AccessorialCreate(BaseModel):
    charge_type: str
    description: str
    amount: float
    quantity: float = 1
    is_billable: bool = True


class ExpenseCreate(BaseModel):
    category: str
    description: str
    amount: float
    driver_id: Optional[str] = None
    vendor: Optional[str] = None


class AccessorialResponse(BaseModel):
    id: str
    charge_type: str
    description: str
    amount: float
    quantity: float
    is_billable: bool

    model_config = {"from_attributes": True}


class ExpenseResponse(BaseModel):
    id: str
    category: str
    description: str
    amount: float
    driver_id: Optional[str] = None
    vendor: Optional[str] = None
    reimbursement_status: str

    model_config = {"from_attributes": True}


class LoadBillingResponse(BaseModel):
    id: str
    load_id: str
    base_rate: float
    rate_type: str
    rate_per_mile: Optional[float] = None
    total_miles: Optional[int] = None
    billing_status: str
    customer_name: str
    customer_terms: str
    subtotal: float
    total_accessorials: float
    total_expenses: float
    tax_amount: float
    total_amount: float
    accessorials: List[AccessorialResponse] = Field(default_factory=list)
    expenses: List[ExpenseResponse] = Field(default_factory=list)
    updated_at: datetime

    model_config = {"from_attributes": True}
