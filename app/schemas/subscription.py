"""
Subscription Pydantic schemas
Amounts are in cents, matching Stripe prices
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

PlanId = Literal["starter", "professional", "enterprise"]


class SubscriptionStatusResponse(BaseModel):
    """Local subscription row merged with the live Stripe price"""
    status: str
    message: Optional[str] = None
    id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    plan_id: Optional[str] = None
    plan_name: Optional[str] = None
    amount: Optional[int] = None
    billing_cycle: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    trial_start: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None


class AddonCreate(BaseModel):
    addon_id: str
    addon_name: str
    price: int = Field(..., ge=0)


class AddonResponse(BaseModel):
    id: str
    addon_id: str
    addon_name: str
    price: int
    status: str
    added_at: datetime
    removed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PlanUpdate(BaseModel):
    plan_id: str


class SubscriptionActionResult(BaseModel):
    success: bool
    message: Optional[str] = None


class SubscriptionOverview(BaseModel):
    subscription: SubscriptionStatusResponse
    addons: List[AddonResponse] = Field(default_factory=list)
