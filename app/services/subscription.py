"""
Subscription service for Stripe integration
Keeps the local subscription/add-on rows in step with Stripe
"""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, List, Optional

import stripe
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import get_settings
from app.core.tenant_isolation import EntityNotFoundError, scoped_select
from app.models.billing import Subscription, SubscriptionAddon
from app.models.company import Company
from app.schemas.subscription import SubscriptionActionResult, SubscriptionStatusResponse

settings = get_settings()
logger = logging.getLogger(__name__)

stripe.api_key = settings.get_stripe_secret_key()

DEFAULT_PLAN = "professional"
PLAN_NAMES = {
    "starter": "Starter Plan",
    "professional": "Professional Plan",
    "enterprise": "Enterprise Plan",
}
BILLING_PERIOD_DAYS = 30


class SubscriptionError(RuntimeError):
    """A Stripe call failed while changing a subscription."""


def resolve_plan(plan_id: str) -> tuple:
    """Return (plan_id, plan_name, amount_in_cents); unknown plans fall back to professional."""
    if plan_id not in settings.plan_pricing:
        plan_id = DEFAULT_PLAN
    return plan_id, PLAN_NAMES[plan_id], settings.plan_pricing[plan_id]


def _timestamp(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.utcfromtimestamp(value)


def _first_item(stripe_subscription: Any) -> Optional[Any]:
    items = stripe_subscription.get("items") or {}
    data = items.get("data") or []
    return data[0] if data else None


def _unit_amount(stripe_subscription: Any) -> Optional[int]:
    item = _first_item(stripe_subscription)
    if item is None:
        return None
    return item["price"]["unit_amount"]


class SubscriptionService:
    """Service for the tenant's HaulBase subscription"""

    def __init__(self, db: AsyncSession, stripe_client: Any = stripe):
        self.db = db
        self.stripe = stripe_client

    async def _find_subscription(self, company_id: str) -> Optional[Subscription]:
        result = await self.db.execute(
            select(Subscription)
            .options(selectinload(Subscription.addons))
            .where(Subscription.company_id == company_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _get_subscription(self, company_id: str) -> Subscription:
        subscription = await self._find_subscription(company_id)
        if not subscription:
            raise EntityNotFoundError("Subscription not found")
        return subscription

    async def _sync_company(self, company_id: str, subscription: Subscription) -> None:
        company = await self.db.get(Company, company_id)
        if company is not None:
            company.subscription_plan = subscription.plan_id
            company.subscription_status = subscription.status

    async def get_subscription(self, company_id: str) -> SubscriptionStatusResponse:
        subscription = await self._find_subscription(company_id)
        if not subscription:
            return SubscriptionStatusResponse(status="none", message="No active subscription found")

        amount = int(subscription.amount or 0)
        if subscription.stripe_subscription_id:
            try:
                stripe_subscription = self.stripe.Subscription.retrieve(subscription.stripe_subscription_id)
            except stripe.StripeError as e:
                logger.error(
                    "stripe_subscription_retrieve_failed",
                    extra={"company_id": company_id, "error": str(e)},
                )
                return SubscriptionStatusResponse(status="error", message="Failed to retrieve subscription")
            live_amount = _unit_amount(stripe_subscription)
            if live_amount is not None:
                amount = live_amount

        return SubscriptionStatusResponse(
            status=subscription.status,
            id=subscription.id,
            stripe_subscription_id=subscription.stripe_subscription_id,
            plan_id=subscription.plan_id,
            plan_name=subscription.plan_name,
            amount=amount,
            billing_cycle=subscription.billing_cycle,
            current_period_start=subscription.current_period_start,
            current_period_end=subscription.current_period_end,
            cancel_at_period_end=subscription.cancel_at_period_end,
            trial_start=subscription.trial_start,
            trial_end=subscription.trial_end,
            next_billing_date=subscription.current_period_end,
        )

    async def list_addons(self, company_id: str) -> List[SubscriptionAddon]:
        result = await self.db.execute(
            scoped_select(SubscriptionAddon, company_id)
            .where(SubscriptionAddon.status == "active")
            .order_by(SubscriptionAddon.added_at)
        )
        return list(result.scalars().all())

    async def add_addon(self, company_id: str, addon_id: str, addon_name: str, price: int) -> SubscriptionAddon:
        subscription = await self._get_subscription(company_id)
        if any(addon.addon_id == addon_id and addon.status == "active" for addon in subscription.addons):
            raise ValueError(f"Add-on {addon_id} is already active")

        addon = SubscriptionAddon(
            id=str(uuid.uuid4()),
            subscription_id=subscription.id,
            company_id=company_id,
            addon_id=addon_id,
            addon_name=addon_name,
            price=price,
            status="active",
            added_at=datetime.utcnow(),
        )
        self.db.add(addon)
        await self.db.commit()
        await self.db.refresh(addon)
        logger.info("subscription_addon_added", extra={"company_id": company_id, "addon_id": addon_id})
        return addon

    async def remove_addon(self, company_id: str, addon_id: str) -> SubscriptionActionResult:
        result = await self.db.execute(
            scoped_select(SubscriptionAddon, company_id).where(
                SubscriptionAddon.addon_id == addon_id,
                SubscriptionAddon.status == "active",
            )
        )
        addon = result.scalars().first()
        if not addon:
            raise EntityNotFoundError(f"Add-on {addon_id} not found")

        addon.status = "removed"
        addon.removed_at = datetime.utcnow()
        await self.db.commit()
        return SubscriptionActionResult(success=True, message=f"Add-on {addon_id} removed successfully")

    async def update_plan(self, company_id: str, plan_id: str) -> SubscriptionStatusResponse:
        plan_id, plan_name, amount = resolve_plan(plan_id)
        subscription = await self._find_subscription(company_id)
        now = datetime.utcnow()

        if subscription is None:
            subscription = Subscription(
                id=str(uuid.uuid4()),
                company_id=company_id,
                status="active",
                billing_cycle="monthly",
                current_period_start=now,
                current_period_end=now + timedelta(days=BILLING_PERIOD_DAYS),
                cancel_at_period_end=False,
            )
            self.db.add(subscription)
        elif subscription.stripe_subscription_id:
            try:
                stripe_subscription = self.stripe.Subscription.retrieve(subscription.stripe_subscription_id)
                item = _first_item(stripe_subscription)
                self.stripe.Subscription.modify(
                    subscription.stripe_subscription_id,
                    items=[
                        {
                            **({"id": item["id"]} if item is not None else {}),
                            "price_data": {
                                "currency": "usd",
                                "product": settings.stripe_product_id,
                                "recurring": {"interval": "month"},
                                "unit_amount": amount,
                            },
                        }
                    ],
                    metadata={"plan_id": plan_id},
                    proration_behavior="create_prorations",
                )
            except stripe.StripeError as e:
                logger.error(
                    "stripe_plan_update_failed",
                    extra={"company_id": company_id, "plan_id": plan_id, "error": str(e)},
                )
                raise SubscriptionError("Failed to update subscription plan") from e

        subscription.plan_id = plan_id
        subscription.plan_name = plan_name
        subscription.amount = amount
        await self._sync_company(company_id, subscription)
        await self.db.commit()
        logger.info("subscription_plan_updated", extra={"company_id": company_id, "plan_id": plan_id})
        return await self.get_subscription(company_id)

    async def cancel_subscription(self, company_id: str) -> SubscriptionActionResult:
        """Cancel at the end of the current billing period"""
        subscription = await self._get_subscription(company_id)
        if subscription.stripe_subscription_id:
            try:
                self.stripe.Subscription.modify(subscription.stripe_subscription_id, cancel_at_period_end=True)
            except stripe.StripeError as e:
                logger.error("stripe_cancel_failed", extra={"company_id": company_id, "error": str(e)})
                raise SubscriptionError("Failed to cancel subscription") from e

        subscription.cancel_at_period_end = True
        subscription.canceled_at = datetime.utcnow()
        await self.db.commit()
        logger.info("subscription_cancel_scheduled", extra={"company_id": company_id})
        return SubscriptionActionResult(success=True)

    async def reactivate_subscription(self, company_id: str) -> SubscriptionActionResult:
        subscription = await self._get_subscription(company_id)
        if subscription.stripe_subscription_id:
            try:
                self.stripe.Subscription.modify(subscription.stripe_subscription_id, cancel_at_period_end=False)
            except stripe.StripeError as e:
                logger.error("stripe_reactivate_failed", extra={"company_id": company_id, "error": str(e)})
                raise SubscriptionError("Failed to reactivate subscription") from e

        subscription.cancel_at_period_end = False
        subscription.canceled_at = None
        subscription.status = "active"
        await self._sync_company(company_id, subscription)
        await self.db.commit()
        return SubscriptionActionResult(success=True)

    async def company_for_stripe_subscription(self, stripe_subscription: Any) -> Optional[str]:
        """Checkout stamps company_id into the metadata; later events match on the Stripe id."""
        metadata = stripe_subscription.get("metadata") or {}
        if metadata.get("company_id"):
            return metadata["company_id"]
        result = await self.db.execute(
            select(Subscription.company_id).where(
                Subscription.stripe_subscription_id == stripe_subscription.get("id")
            )
        )
        return result.scalar_one_or_none()

    async def upsert_from_stripe(self, company_id: str, stripe_subscription: Any) -> Subscription:
        """Mirror a Stripe subscription object (webhook payload) into the local row"""
        subscription = await self._find_subscription(company_id)
        if subscription is None:
            subscription = Subscription(id=str(uuid.uuid4()), company_id=company_id)
            self.db.add(subscription)

        metadata = stripe_subscription.get("metadata") or {}
        plan_id, plan_name, amount = resolve_plan(metadata.get("plan_id") or subscription.plan_id or DEFAULT_PLAN)
        item = _first_item(stripe_subscription)
        if item is not None:
            amount = item["price"]["unit_amount"]
            recurring = item["price"].get("recurring") or {}
            subscription.billing_cycle = "yearly" if recurring.get("interval") == "year" else "monthly"

        subscription.stripe_subscription_id = stripe_subscription["id"]
        subscription.stripe_customer_id = stripe_subscription.get("customer")
        subscription.status = stripe_subscription.get("status") or "active"
        subscription.plan_id = plan_id
        subscription.plan_name = plan_name
        subscription.amount = amount
        subscription.current_period_start = _timestamp(stripe_subscription.get("current_period_start"))
        subscription.current_period_end = _timestamp(stripe_subscription.get("current_period_end"))
        subscription.cancel_at_period_end = bool(stripe_subscription.get("cancel_at_period_end"))
        subscription.canceled_at = _timestamp(stripe_subscription.get("canceled_at"))
        subscription.trial_start = _timestamp(stripe_subscription.get("trial_start"))
        subscription.trial_end = _timestamp(stripe_subscription.get("trial_end"))

        await self._sync_company(company_id, subscription)
        await self.db.commit()
        await self.db.refresh(subscription)
        logger.info(
            "subscription_synced_from_stripe",
            extra={"company_id": company_id, "stripe_subscription_id": subscription.stripe_subscription_id},
        )
        return subscription
