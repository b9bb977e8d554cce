"""
Subscription router for tenant plan and add-on management
"""
import logging
from typing import List

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.config import get_settings
from app.core.db import get_db
from app.core.tenant_isolation import EntityNotFoundError
from app.schemas.subscription import (
    AddonCreate,
    AddonResponse,
    PlanUpdate,
    SubscriptionActionResult,
    SubscriptionOverview,
    SubscriptionStatusResponse,
)
from app.services.subscription import SubscriptionError, SubscriptionService

router = APIRouter()
logger = logging.getLogger(__name__)
settings = get_settings()

SUBSCRIPTION_EVENTS = (
    "customer.subscription.created",
    "customer.subscription.updated",
    "customer.subscription.deleted",
)


async def _service(db: AsyncSession = Depends(get_db)) -> SubscriptionService:
    return SubscriptionService(db)


@router.get("", response_model=SubscriptionOverview)
async def get_subscription(
    company_id: str = Depends(deps.get_current_company),
    service: SubscriptionService = Depends(_service),
) -> SubscriptionOverview:
    """Current plan with its active add-ons"""
    subscription = await service.get_subscription(company_id)
    addons = await service.list_addons(company_id)
    return SubscriptionOverview(
        subscription=subscription,
        addons=[AddonResponse.model_validate(addon) for addon in addons],
    )


@router.put("/plan", response_model=SubscriptionStatusResponse)
async def update_plan(
    payload: PlanUpdate,
    company_id: str = Depends(deps.get_current_company),
    service: SubscriptionService = Depends(_service),
) -> SubscriptionStatusResponse:
    try:
        return await service.update_plan(company_id, payload.plan_id)
    except SubscriptionError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.get("/addons", response_model=List[AddonResponse])
async def list_addons(
    company_id: str = Depends(deps.get_current_company),
    service: SubscriptionService = Depends(_service),
) -> List[AddonResponse]:
    addons = await service.list_addons(company_id)
    return [AddonResponse.model_validate(addon) for addon in addons]


@router.post("/addons", response_model=AddonResponse, status_code=status.HTTP_201_CREATED)
async def add_addon(
    payload: AddonCreate,
    company_id: str = Depends(deps.get_current_company),
    service: SubscriptionService = Depends(_service),
) -> AddonResponse:
    try:
        addon = await service.add_addon(company_id, payload.addon_id, payload.addon_name, payload.price)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return AddonResponse.model_validate(addon)


@router.delete("/addons/{addon_id}", response_model=SubscriptionActionResult)
async def remove_addon(
    addon_id: str,
    company_id: str = Depends(deps.get_current_company),
    service: SubscriptionService = Depends(_service),
) -> SubscriptionActionResult:
    try:
        return await service.remove_addon(company_id, addon_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/cancel", response_model=SubscriptionActionResult)
async def cancel_subscription(
    company_id: str = Depends(deps.get_current_company),
    service: SubscriptionService = Depends(_service),
) -> SubscriptionActionResult:
    try:
        return await service.cancel_subscription(company_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SubscriptionError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/reactivate", response_model=SubscriptionActionResult)
async def reactivate_subscription(
    company_id: str = Depends(deps.get_current_company),
    service: SubscriptionService = Depends(_service),
) -> SubscriptionActionResult:
    try:
        return await service.reactivate_subscription(company_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except SubscriptionError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    service: SubscriptionService = Depends(_service),
) -> dict:
    """
    Stripe webhook for subscription lifecycle events.
    Authenticated by the Stripe signature rather than a session token.
    """
    if not settings.stripe_webhook_secret:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Webhook not configured")

    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    if not sig_header:
        logger.error("stripe_webhook_missing_signature")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing signature")

    try:
        event = stripe.Webhook.construct_event(payload, sig_header, settings.stripe_webhook_secret)
    except ValueError as e:
        logger.error("stripe_webhook_invalid_payload", extra={"error": str(e)})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload")
    except stripe.SignatureVerificationError as e:
        logger.error("stripe_webhook_invalid_signature", extra={"error": str(e)})
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

    event_type = event["type"]
    if event_type not in SUBSCRIPTION_EVENTS:
        return {"status": "ignored", "event_type": event_type}

    stripe_subscription = event["data"]["object"]
    company_id = await service.company_for_stripe_subscription(stripe_subscription)
    if company_id is None:
        logger.warning(
            "stripe_webhook_unknown_subscription",
            extra={"stripe_subscription_id": stripe_subscription.get("id"), "event_type": event_type},
        )
        return {"status": "ignored", "event_type": event_type}

    await service.upsert_from_stripe(company_id, stripe_subscription)
    return {"status": "success", "event_type": event_type}
