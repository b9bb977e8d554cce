"""
HTTP tests for the API surface: authentication, tenant scoping and a few
end-to-end flows through the routers.
"""
from datetime import date, timedelta

import pytest
import stripe
from sqlalchemy import select

from app.models.billing import Subscription
from app.routers import subscription as subscription_router
from tests.conftest import auth_headers, make_driver

LOAD = {
    "customer_name": "Acme Imports",
    "pickup_location": "Port of Houston",
    "delivery_location": "Dallas, TX",
    "rate": 1850,
    "miles": 250,
    "pickup_date": "2026-03-02",
}


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthz(self, app_client):
        response = await app_client.get("/api/healthz")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_root(self, app_client):
        response = await app_client.get("/")

        assert response.status_code == 200


class TestAuthentication:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "path",
        ["/api/loads", "/api/dashboard/metrics", "/api/tms/transactions", "/api/payroll/runs", "/api/subscription"],
    )
    async def test_missing_token_is_rejected(self, app_client, path):
        response = await app_client.get(path)

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_garbage_token_is_rejected(self, app_client):
        response = await app_client.get("/api/loads", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401


class TestLoadsApi:
    @pytest.mark.asyncio
    async def test_create_then_fetch(self, app_client, company):
        headers = auth_headers(company.id)

        created = await app_client.post("/api/loads", json=LOAD, headers=headers)
        assert created.status_code == 201
        load_id = created.json()["load_id"]

        fetched = await app_client.get(f"/api/loads/{load_id}", headers=headers)
        assert fetched.status_code == 200
        assert fetched.json()["customer_name"] == "Acme Imports"
        assert fetched.json()["dispatch_status"] == "planning"

        listed = await app_client.get("/api/loads", params={"status": "pending"}, headers=headers)
        assert [load["id"] for load in listed.json()] == [load_id]

    @pytest.mark.asyncio
    async def test_other_tenant_gets_404(self, app_client, company, other_company):
        created = await app_client.post("/api/loads", json=LOAD, headers=auth_headers(company.id))
        load_id = created.json()["load_id"]

        response = await app_client.get(f"/api/loads/{load_id}", headers=auth_headers(other_company.id))

        assert response.status_code == 404
        listed = await app_client.get("/api/loads", headers=auth_headers(other_company.id))
        assert listed.json() == []

    @pytest.mark.asyncio
    async def test_billing_flow(self, app_client, company):
        headers = auth_headers(company.id)
        load_id = (await app_client.post("/api/loads", json=LOAD, headers=headers)).json()["load_id"]

        missing = await app_client.get(f"/api/loads/{load_id}/billing", headers=headers)
        assert missing.status_code == 404

        created = await app_client.post(f"/api/loads/{load_id}/billing", json={"base_rate": 1850}, headers=headers)
        assert created.status_code == 201

        updated = await app_client.post(
            f"/api/loads/{load_id}/billing/accessorials",
            json={"charge_type": "lumper", "description": "Lumper fee", "amount": 120},
            headers=headers,
        )
        assert updated.json()["total_amount"] == 1970.0

    @pytest.mark.asyncio
    async def test_duplicate_load_number_is_bad_request(self, app_client, company):
        headers = auth_headers(company.id)
        first = await app_client.post("/api/loads", json={**LOAD, "load_number": "LD-1"}, headers=headers)
        second = await app_client.post("/api/loads", json={**LOAD, "load_number": "LD-1"}, headers=headers)

        assert first.status_code == 201
        assert second.status_code == 400
        assert "LD-1" in second.json()["detail"]

    @pytest.mark.asyncio
    async def test_foreign_driver_is_not_found(self, app_client, db_session, company, other_company):
        outsider = await make_driver(db_session, other_company.id, "Dave")

        response = await app_client.post(
            "/api/loads", json={**LOAD, "assigned_driver_id": outsider.id}, headers=auth_headers(company.id)
        )

        assert response.status_code == 404
        listed = await app_client.get("/api/loads", headers=auth_headers(company.id))
        assert listed.json() == []

    @pytest.mark.asyncio
    async def test_calendar_rejects_inverted_range(self, app_client, company):
        response = await app_client.get(
            "/api/dispatch/calendar",
            params={"start_date": "2026-03-05", "end_date": "2026-03-01"},
            headers=auth_headers(company.id),
        )

        assert response.status_code == 400


class TestReportingApi:
    @pytest.mark.asyncio
    async def test_csv_export(self, app_client, company):
        headers = auth_headers(company.id)
        await app_client.post("/api/loads", json=LOAD, headers=headers)

        response = await app_client.post("/api/reporting/export/csv", json={}, headers=headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        lines = response.text.splitlines()
        assert lines[0] == "Load ID,Pickup,Delivery,Rate,Miles,Status,Date"
        assert len(lines) == 2


class TestAccountingApi:
    @pytest.mark.asyncio
    async def test_recurring_template_lifecycle(self, app_client, company, other_company):
        headers = auth_headers(company.id)
        template = {
            "customer_id": "cust-1",
            "template_name": "Yard Storage",
            "amount": 500,
            "frequency": "monthly",
            "start_date": "2026-01-01",
        }

        created = await app_client.post("/api/tms/transactions/recurring/templates", json=template, headers=headers)
        assert created.status_code == 201
        template_id = created.json()["id"]
        assert created.json()["next_run_date"] == "2026-02-01"

        foreign = await app_client.patch(
            f"/api/tms/transactions/recurring/templates/{template_id}/status",
            json={"is_active": False},
            headers=auth_headers(other_company.id),
        )
        assert foreign.status_code == 404

        invalid = await app_client.post(
            "/api/tms/transactions/recurring/templates", json={**template, "frequency": "daily"}, headers=headers
        )
        assert invalid.status_code == 422

    @pytest.mark.asyncio
    async def test_manual_recurring_run_only_bills_the_caller(self, app_client, company, other_company):
        start = (date.today() - timedelta(days=70)).isoformat()
        template = {
            "customer_id": "cust-1",
            "template_name": "Yard Storage",
            "amount": 500,
            "frequency": "monthly",
            "start_date": start,
        }
        other_id = other_company.id
        other_headers = auth_headers(other_id)
        created = await app_client.post("/api/tms/transactions/recurring/templates", json=template, headers=other_headers)
        next_run = created.json()["next_run_date"]

        response = await app_client.post("/api/tms/transactions/recurring/process", headers=auth_headers(company.id))

        assert response.status_code == 200
        assert response.json() == []
        invoices = await app_client.get("/api/tms/transactions/recurring/invoices", headers=other_headers)
        assert invoices.json() == []
        templates = await app_client.get("/api/tms/transactions/recurring/templates", headers=other_headers)
        assert templates.json()[0]["next_run_date"] == next_run

        own = await app_client.post("/api/tms/transactions/recurring/process", headers=other_headers)
        assert [invoice["company_id"] for invoice in own.json()] == [other_id]

    @pytest.mark.asyncio
    async def test_unknown_report_type_is_bad_request(self, app_client, company):
        response = await app_client.get(
            "/api/tms/transactions/reports/trial_balance", headers=auth_headers(company.id)
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_bill_overpayment_is_bad_request(self, app_client, company):
        headers = auth_headers(company.id)
        bill = await app_client.post(
            "/api/tms/transactions/bills",
            json={"vendor_name": "Pilot", "bill_date": date(2026, 3, 1).isoformat(), "subtotal": 100},
            headers=headers,
        )

        response = await app_client.post(
            f"/api/tms/transactions/bills/{bill.json()['id']}/payments", json={"amount": 150}, headers=headers
        )

        assert response.status_code == 400


class TestDashboardAndSubscriptionApi:
    @pytest.mark.asyncio
    async def test_dashboard_metrics_for_new_company(self, app_client, company, truck):
        response = await app_client.get("/api/dashboard/metrics", headers=auth_headers(company.id))

        assert response.status_code == 200
        body = response.json()
        assert body["fleet"]["total_trucks"] == 1
        assert body["dispatch"]["total_loads"] == 0
        assert body["dispatch"]["on_time_delivery_rate"] == 100.0

    @pytest.mark.asyncio
    async def test_subscription_overview_without_subscription(self, app_client, company):
        response = await app_client.get("/api/subscription", headers=auth_headers(company.id))

        assert response.status_code == 200
        assert response.json()["subscription"]["status"] == "none"
        assert response.json()["addons"] == []

    @pytest.mark.asyncio
    async def test_addon_without_subscription_is_404(self, app_client, company):
        response = await app_client.post(
            "/api/subscription/addons",
            json={"addon_id": "advanced_analytics", "addon_name": "Advanced Analytics", "price": 4900},
            headers=auth_headers(company.id),
        )

        assert response.status_code == 404


class TestStripeWebhookApi:
    @pytest.fixture
    def webhook_secret(self, monkeypatch):
        monkeypatch.setattr(subscription_router.settings, "stripe_webhook_secret", "whsec_test")

    @staticmethod
    def _event(event_type: str, company_id: str) -> dict:
        return {
            "type": event_type,
            "data": {
                "object": {
                    "id": "sub_hook",
                    "customer": "cus_hook",
                    "status": "past_due",
                    "metadata": {"company_id": company_id, "plan_id": "enterprise"},
                    "items": {"data": [{"id": "si_1", "price": {"unit_amount": 29900, "recurring": {"interval": "month"}}}]},
                    "current_period_start": 1767225600,
                    "current_period_end": 1769904000,
                    "cancel_at_period_end": False,
                }
            },
        }

    @pytest.mark.asyncio
    async def test_missing_signature(self, app_client, webhook_secret):
        response = await app_client.post("/api/subscription/webhook", content=b"{}")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_signature(self, app_client, webhook_secret, monkeypatch):
        def reject(payload, sig_header, secret):
            raise stripe.SignatureVerificationError("bad signature", sig_header)

        monkeypatch.setattr(stripe.Webhook, "construct_event", reject)

        response = await app_client.post(
            "/api/subscription/webhook", content=b"{}", headers={"stripe-signature": "t=1,v1=bad"}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unrelated_event_is_ignored(self, app_client, company, webhook_secret, monkeypatch):
        event = self._event("invoice.paid", company.id)
        monkeypatch.setattr(stripe.Webhook, "construct_event", lambda payload, sig, secret: event)

        response = await app_client.post(
            "/api/subscription/webhook", content=b"{}", headers={"stripe-signature": "t=1,v1=ok"}
        )

        assert response.json() == {"status": "ignored", "event_type": "invoice.paid"}

    @pytest.mark.asyncio
    async def test_subscription_update_is_stored(self, app_client, db_session, company, webhook_secret, monkeypatch):
        company_id = company.id
        event = self._event("customer.subscription.updated", company_id)
        monkeypatch.setattr(stripe.Webhook, "construct_event", lambda payload, sig, secret: event)

        response = await app_client.post(
            "/api/subscription/webhook", content=b"{}", headers={"stripe-signature": "t=1,v1=ok"}
        )

        assert response.json() == {"status": "success", "event_type": "customer.subscription.updated"}
        stored = (
            await db_session.execute(select(Subscription).where(Subscription.company_id == company_id))
        ).scalar_one()
        assert stored.stripe_subscription_id == "sub_hook"
        assert stored.status == "past_due"
