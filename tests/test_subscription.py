"""
Subscription tests against a recording stand-in for the Stripe module.
"""
from types import SimpleNamespace

import pytest
import stripe

from app.core.tenant_isolation import EntityNotFoundError
from app.models import Company
from app.services.subscription import SubscriptionError, SubscriptionService, resolve_plan


class FakeStripeSubscriptions:
    def __init__(self, unit_amount=14900, fail_with=None):
        self.unit_amount = unit_amount
        self.fail_with = fail_with
        self.modified = []

    def retrieve(self, subscription_id):
        if self.fail_with is not None:
            raise self.fail_with
        return {"id": subscription_id, "items": {"data": [{"id": "si_1", "price": {"unit_amount": self.unit_amount}}]}}

    def modify(self, subscription_id, **params):
        if self.fail_with is not None:
            raise self.fail_with
        self.modified.append((subscription_id, params))
        return {"id": subscription_id, **params}


def _client(**kwargs):
    subscriptions = FakeStripeSubscriptions(**kwargs)
    return SimpleNamespace(Subscription=subscriptions), subscriptions


def _stripe_payload(**overrides):
    payload = {
        "id": "sub_123",
        "customer": "cus_9",
        "status": "active",
        "metadata": {"plan_id": "professional"},
        "items": {"data": [{"id": "si_1", "price": {"unit_amount": 14900, "recurring": {"interval": "month"}}}]},
        "current_period_start": 1767225600,  # 2026-01-01
        "current_period_end": 1769904000,  # 2026-02-01
        "cancel_at_period_end": False,
    }
    payload.update(overrides)
    return payload


class TestResolvePlan:
    def test_known_and_unknown_plans(self):
        assert resolve_plan("enterprise") == ("enterprise", "Enterprise Plan", 29900)
        assert resolve_plan("platinum") == ("professional", "Professional Plan", 14900)


class TestSubscriptionService:
    @pytest.mark.asyncio
    async def test_no_subscription(self, db_session, company):
        client, _ = _client()

        status = await SubscriptionService(db_session, client).get_subscription(company.id)

        assert status.status == "none"
        assert status.message == "No active subscription found"

    @pytest.mark.asyncio
    async def test_update_plan_creates_local_subscription(self, db_session, company):
        client, calls = _client()
        company_id = company.id

        status = await SubscriptionService(db_session, client).update_plan(company_id, "starter")

        assert status.plan_id == "starter"
        assert status.amount == 9900
        assert status.status == "active"
        assert calls.modified == []
        refreshed = await db_session.get(Company, company_id)
        assert refreshed.subscription_plan == "starter"

    @pytest.mark.asyncio
    async def test_sync_from_stripe_then_read_live_amount(self, db_session, company):
        client, _ = _client(unit_amount=19900)
        service = SubscriptionService(db_session, client)

        local = await service.upsert_from_stripe(
            company.id,
            _stripe_payload(items={"data": [{"id": "si_1", "price": {"unit_amount": 149000, "recurring": {"interval": "year"}}}]}),
        )
        assert local.billing_cycle == "yearly"
        assert local.stripe_customer_id == "cus_9"
        assert local.current_period_end.year == 2026

        status = await service.get_subscription(company.id)
        assert status.amount == 19900
        assert status.next_billing_date == local.current_period_end

    @pytest.mark.asyncio
    async def test_stripe_read_failure_reports_error_status(self, db_session, company):
        client, subscriptions = _client()
        service = SubscriptionService(db_session, client)
        await service.upsert_from_stripe(company.id, _stripe_payload())
        subscriptions.fail_with = stripe.StripeError("network down")

        status = await service.get_subscription(company.id)

        assert status.status == "error"
        assert status.message == "Failed to retrieve subscription"

    @pytest.mark.asyncio
    async def test_plan_change_is_pushed_to_stripe(self, db_session, company):
        client, subscriptions = _client(unit_amount=29900)
        service = SubscriptionService(db_session, client)
        await service.upsert_from_stripe(company.id, _stripe_payload())

        status = await service.update_plan(company.id, "enterprise")

        subscription_id, params = subscriptions.modified[0]
        assert subscription_id == "sub_123"
        assert params["items"][0]["id"] == "si_1"
        assert params["items"][0]["price_data"]["unit_amount"] == 29900
        assert params["metadata"] == {"plan_id": "enterprise"}
        assert params["proration_behavior"] == "create_prorations"
        assert status.plan_name == "Enterprise Plan"

    @pytest.mark.asyncio
    async def test_plan_change_failure_leaves_plan_untouched(self, db_session, company):
        client, subscriptions = _client()
        service = SubscriptionService(db_session, client)
        await service.upsert_from_stripe(company.id, _stripe_payload())
        subscriptions.fail_with = stripe.StripeError("card declined")

        with pytest.raises(SubscriptionError):
            await service.update_plan(company.id, "enterprise")

        subscriptions.fail_with = None
        assert (await service.get_subscription(company.id)).plan_id == "professional"

    @pytest.mark.asyncio
    async def test_cancel_and_reactivate(self, db_session, company):
        client, subscriptions = _client()
        service = SubscriptionService(db_session, client)
        await service.upsert_from_stripe(company.id, _stripe_payload())

        assert (await service.cancel_subscription(company.id)).success is True
        status = await service.get_subscription(company.id)
        assert status.cancel_at_period_end is True

        await service.reactivate_subscription(company.id)
        status = await service.get_subscription(company.id)
        assert status.cancel_at_period_end is False
        assert [params for _, params in subscriptions.modified] == [
            {"cancel_at_period_end": True},
            {"cancel_at_period_end": False},
        ]

    @pytest.mark.asyncio
    async def test_cancel_without_subscription_is_not_found(self, db_session, company):
        client, _ = _client()

        with pytest.raises(EntityNotFoundError):
            await SubscriptionService(db_session, client).cancel_subscription(company.id)


class TestAddons:
    @pytest.mark.asyncio
    async def test_add_list_and_remove(self, db_session, company):
        client, _ = _client()
        service = SubscriptionService(db_session, client)
        await service.update_plan(company.id, "professional")

        addon = await service.add_addon(company.id, "advanced_analytics", "Advanced Analytics", 4900)
        assert addon.status == "active"
        with pytest.raises(ValueError):
            await service.add_addon(company.id, "advanced_analytics", "Advanced Analytics", 4900)

        assert [a.addon_id for a in await service.list_addons(company.id)] == ["advanced_analytics"]

        result = await service.remove_addon(company.id, "advanced_analytics")
        assert result.message == "Add-on advanced_analytics removed successfully"
        assert await service.list_addons(company.id) == []

        again = await service.add_addon(company.id, "advanced_analytics", "Advanced Analytics", 4900)
        assert again.id != addon.id

    @pytest.mark.asyncio
    async def test_remove_unknown_addon(self, db_session, company):
        client, _ = _client()
        service = SubscriptionService(db_session, client)
        await service.update_plan(company.id, "professional")

        with pytest.raises(EntityNotFoundError):
            await service.remove_addon(company.id, "container_management")

    @pytest.mark.asyncio
    async def test_addons_require_a_subscription(self, db_session, company):
        client, _ = _client()

        with pytest.raises(EntityNotFoundError):
            await SubscriptionService(db_session, client).add_addon(company.id, "x", "X", 100)


class TestWebhookCompanyLookup:
    @pytest.mark.asyncio
    async def test_company_from_metadata(self, db_session, company):
        client, _ = _client()
        payload = _stripe_payload(metadata={"company_id": company.id})

        assert await SubscriptionService(db_session, client).company_for_stripe_subscription(payload) == company.id

    @pytest.mark.asyncio
    async def test_company_from_existing_subscription(self, db_session, company):
        client, _ = _client()
        service = SubscriptionService(db_session, client)
        await service.upsert_from_stripe(company.id, _stripe_payload())

        assert await service.company_for_stripe_subscription(_stripe_payload()) == company.id
        assert await service.company_for_stripe_subscription(_stripe_payload(id="sub_unknown")) is None
