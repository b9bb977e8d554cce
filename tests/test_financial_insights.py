"""
Financial insight tests. The OpenAI client is replaced with a stub that
returns canned chat replies, so nothing leaves the process.
"""
import json
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from app.schemas.insights import ExpenseTransaction, FinancialInsight
from app.services.financial_insights import (
    FinancialInsightsService,
    build_health_score,
    check_alerts,
    expense_growth_rate,
    extract_json_array,
    sort_by_severity,
)


def _chat_client(*replies):
    """Stub exposing ``chat.completions.create`` and recording each call."""
    calls = []
    queue = list(replies)

    async def create(**kwargs):
        calls.append(kwargs)
        reply = queue.pop(0) if queue else "[]"
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client, calls


def _data(revenue=100000.0, cash_flow=20000.0, growth_rate=0.0, completion_rate=0.5, monthly_trends=None):
    return {
        "revenue": {"total": revenue, "monthly": [], "average": 0.0},
        "expenses": {"total": revenue * 0.7, "growth_rate": growth_rate, "categories": []},
        "cash_flow": {"current": cash_flow, "trend": "positive"},
        "load_metrics": {"total": 10, "completed": 5, "completion_rate": completion_rate},
        "monthly_trends": monthly_trends or [],
        "performance_metrics": {"revenue_per_load": 0.0, "efficiency": 0.85},
    }


def _insight(severity: str) -> FinancialInsight:
    return FinancialInsight(id=severity, type="trend", severity=severity, title=severity, detected_at=datetime.utcnow())


class TestExtractJsonArray:
    def test_array_is_pulled_out_of_surrounding_prose(self):
        reply = 'Here you go:\n```json\n[{"title": "Fuel spike"}]\n```\nLet me know.'

        assert extract_json_array(reply) == [{"title": "Fuel spike"}]

    def test_reply_without_array_is_rejected(self):
        with pytest.raises(ValueError):
            extract_json_array("I could not find anything unusual.")

    def test_empty_reply_means_no_items(self):
        assert extract_json_array(None) == []


class TestLocalScoring:
    def test_health_score_components(self):
        score = build_health_score(_data())

        assert score.profitability == 90
        assert score.liquidity == 86
        assert score.efficiency == 68
        assert score.growth == 50
        assert score.overall == 73
        assert [factor.impact for factor in score.factors] == ["positive", "positive", "neutral", "neutral"]

    def test_liquidity_is_zero_without_expenses(self):
        score = build_health_score(_data(revenue=0.0, cash_flow=0.0, completion_rate=0.0))

        assert score.liquidity == 0
        assert score.profitability == 0

    def test_growth_compares_recent_months_to_earlier_ones(self):
        trends = [{"month": f"2026-0{i}", "total": total, "count": 1} for i, total in enumerate([100, 100, 100, 110, 110, 110], 1)]

        score = build_health_score(_data(monthly_trends=trends))

        assert score.growth == 70

    def test_expense_growth_rate_pads_short_history(self):
        assert expense_growth_rate([100, 100, 100, 150, 150, 150]) == 50.0
        assert expense_growth_rate([500, 500]) == 0.0

    def test_alerts_for_negative_cash_and_expense_growth(self):
        alerts = check_alerts(_data(cash_flow=-500.0, growth_rate=40.0))

        assert [alert.severity for alert in alerts] == ["critical", "high"]
        assert all(alert.action_required for alert in alerts)
        assert alerts[0].title == "Negative Cash Flow Detected"

    def test_no_alerts_for_healthy_numbers(self):
        assert check_alerts(_data()) == []

    def test_sort_puts_critical_first(self):
        ordered = sort_by_severity([_insight("low"), _insight("critical"), _insight("medium"), _insight("high")])

        assert [insight.severity for insight in ordered] == ["critical", "high", "medium", "low"]


class TestModelBackedInsights:
    @pytest.mark.asyncio
    async def test_anomalies_are_parsed_from_reply(self, db_session, company):
        reply = json.dumps(
            [
                {
                    "severity": "high",
                    "title": "Unusual Fuel Cost Spike",
                    "description": "Fuel up 35%",
                    "confidence": 0.92,
                    "affectedMetrics": ["fuel_costs"],
                    "estimatedSavings": 15000,
                }
            ]
        )
        client, calls = _chat_client(reply)
        service = FinancialInsightsService(db_session, client=client)

        insights = await service.detect_anomalies(company.id, _data())

        assert len(insights) == 1
        assert insights[0].type == "anomaly"
        assert insights[0].action_required is True
        assert insights[0].affected_metrics == ["fuel_costs"]
        assert insights[0].estimated_savings == 15000
        assert calls[0]["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_client_failure_degrades_to_empty_list(self, db_session, company):
        client, _ = _chat_client(RuntimeError("rate limited"))
        service = FinancialInsightsService(db_session, client=client)

        assert await service.analyze_trends(company.id, _data()) == []

    @pytest.mark.asyncio
    async def test_unparsable_reply_degrades_to_empty_list(self, db_session, company):
        client, _ = _chat_client("No recommendations today.")
        service = FinancialInsightsService(db_session, client=client)

        assert await service.generate_recommendations(company.id, _data()) == []

    @pytest.mark.asyncio
    async def test_missing_api_key_yields_no_model_insights(self, db_session, company):
        service = FinancialInsightsService(db_session)

        assert service.client is None
        assert await service.detect_anomalies(company.id, _data()) == []

    @pytest.mark.asyncio
    async def test_expense_categories_from_reply(self, db_session, company):
        reply = json.dumps([{"category": "Fuel & Gas", "amount": 850.0, "percentage": 85.0, "trend": "increasing"}])
        client, calls = _chat_client(reply)
        service = FinancialInsightsService(db_session, client=client)

        categories = await service.categorize_expenses(
            company.id,
            [ExpenseTransaction(description="Pilot diesel", amount=850.0, date=date(2026, 3, 2))],
        )

        assert categories[0].category == "Fuel & Gas"
        assert categories[0].trend == "increasing"
        assert "Pilot diesel" in calls[0]["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_cash_flow_prediction_accepts_camel_case(self, db_session, company):
        reply = json.dumps(
            [{"period": "2026-11", "predictedInflow": 1000, "predictedOutflow": 400, "netCashFlow": 600, "riskFactors": ["fuel"]}]
        )
        client, _ = _chat_client(reply)
        service = FinancialInsightsService(db_session, client=client)

        predictions = await service.predict_cash_flow(company.id)

        assert predictions[0].net_cash_flow == 600
        assert predictions[0].risk_factors == ["fuel"]

    @pytest.mark.asyncio
    async def test_dashboard_for_empty_company(self, db_session, company):
        client, _ = _chat_client()
        service = FinancialInsightsService(db_session, client=client)

        dashboard = await service.get_insights_for_dashboard(company.id)

        assert dashboard.total_insights == 0
        assert dashboard.critical_alerts == 0
        assert dashboard.health_score == 23
