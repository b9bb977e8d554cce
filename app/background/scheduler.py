from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.core.config import get_settings
from app.core.db import AsyncSessionFactory
from app.services.automated_billing import AutomatedBillingService, build_repository

logger = logging.getLogger(__name__)
settings = get_settings()

billing_scheduler = AsyncIOScheduler()


async def process_recurring_billing() -> None:
    """Generate invoices for every recurring template that has come due."""
    async with AsyncSessionFactory() as session:
        service = AutomatedBillingService(build_repository(session))
        try:
            generated = await service.process_due_recurring_invoices()
        except Exception as exc:
            logger.exception("Recurring billing job failed", extra={"error": str(exc)})
            return
        logger.info("recurring_billing_cycle", extra={"generated": len(generated)})


def start_scheduler() -> None:
    if billing_scheduler.running:
        return
    billing_scheduler.add_job(
        process_recurring_billing,
        "interval",
        minutes=settings.recurring_billing_interval_minutes,
        id="recurring-billing",
        max_instances=1,
        coalesce=True,
    )
    billing_scheduler.start()
    logger.info(
        "Recurring billing scheduler started",
        extra={"interval_minutes": settings.recurring_billing_interval_minutes},
    )


def shutdown_scheduler() -> None:
    if billing_scheduler.running:
        billing_scheduler.shutdown(wait=False)
