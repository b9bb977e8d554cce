"""
Financial insights for a carrier: locally computed alerts and health score,
plus anomaly/trend/recommendation narration from an OpenAI chat model.

Model output is advisory. Every model call degrades to an empty list on any
failure, so an empty result means "no insights", not "no problems".
"""
from __future__ import annotations

import json
import logging
import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta
from openai import AsyncOpenAI
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.tenant_isolation import scoped_select
from app.models.accounting import Bill, Invoice
from app.models.load import Load
from app.schemas.insights import (
    CashFlowPrediction,
    ExpenseCategory,
    ExpenseTransaction,
    FinancialHealthScore,
    FinancialInsight,
    HealthFactor,
    InsightsDashboard,
    MonthlyCashFlow,
)
from app.services.reporting import coerce_amount

logger = logging.getLogger(__name__)
settings = get_settings()

SEVERITY_ORDER = {"critical": 4, "high": 3, "medium": 2, "low": 1}

EXPENSE_CATEGORIES = [
    "Fuel & Gas",
    "Vehicle Maintenance",
    "Insurance",
    "Driver Wages",
    "Equipment & Supplies",
    "Office Expenses",
    "Marketing & Sales",
    "Professional Services",
    "Licenses & Permits",
    "Other",
]


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def _insight_id() -> str:
    return f"insight_{uuid.uuid4().hex[:12]}"


def sort_by_severity(insights: List[FinancialInsight]) -> List[FinancialInsight]:
    return sorted(insights, key=lambda insight: SEVERITY_ORDER.get(insight.severity, 0), reverse=True)


def group_by_month(loads) -> List[Dict[str, Any]]:
    grouped: Dict[str, Dict[str, Any]] = {}
    for load in loads:
        month = load.created_at.strftime("%Y-%m")
        current = grouped.setdefault(month, {"month": month, "total": 0.0, "count": 0})
        current["total"] += coerce_amount(load.rate)
        current["count"] += 1
    return [grouped[month] for month in sorted(grouped)]


def expense_growth_rate(monthly_totals: List[float]) -> float:
    """Percent change of the last three months of expenses against the three before."""
    if len(monthly_totals) < 6:
        monthly_totals = [0.0] * (6 - len(monthly_totals)) + list(monthly_totals)
    earlier = sum(monthly_totals[-6:-3])
    recent = sum(monthly_totals[-3:])
    if earlier <= 0:
        return 0.0
    return round((recent - earlier) / earlier * 100, 2)


def profitability_score(data: Dict[str, Any]) -> float:
    revenue = data["revenue"]["total"]
    margin = (revenue - data["expenses"]["total"]) / revenue * 100 if revenue > 0 else 0.0
    return _clamp(margin * settings.profitability_score_multiplier)


def liquidity_score(data: Dict[str, Any]) -> float:
    monthly_expenses = data["expenses"]["total"] / 12
    if monthly_expenses <= 0:
        return 0.0
    return _clamp(data["cash_flow"]["current"] / monthly_expenses * settings.liquidity_score_multiplier)


def efficiency_score(data: Dict[str, Any]) -> float:
    completion_rate = data["load_metrics"]["completion_rate"] * 100
    efficiency = data["performance_metrics"]["efficiency"] * 100
    return (completion_rate + efficiency) / 2


def growth_score(data: Dict[str, Any]) -> float:
    trends = data["monthly_trends"]
    earlier = trends[:3]
    if not earlier:
        return float(settings.growth_score_baseline)
    recent = trends[-3:]
    recent_avg = sum(m["total"] for m in recent) / len(recent)
    earlier_avg = sum(m["total"] for m in earlier) / len(earlier)
    growth = (recent_avg - earlier_avg) / earlier_avg * 100 if earlier_avg > 0 else 0.0
    return _clamp(settings.growth_score_baseline + growth * settings.growth_score_multiplier)


def _impact(score: float) -> str:
    if score > settings.health_factor_positive_threshold:
        return "positive"
    if score > settings.health_factor_neutral_threshold:
        return "neutral"
    return "negative"


def _describe(score: float, strong: str, moderate: str, weak: str) -> str:
    impact = _impact(score)
    return strong if impact == "positive" else moderate if impact == "neutral" else weak


def build_health_score(data: Dict[str, Any]) -> FinancialHealthScore:
    profitability = profitability_score(data)
    liquidity = liquidity_score(data)
    efficiency = efficiency_score(data)
    growth = growth_score(data)
    overall = (profitability + liquidity + efficiency + growth) / 4

    factors = [
        HealthFactor(
            metric="Profit Margin",
            score=round(profitability),
            impact=_impact(profitability),
            description="Current profit margin indicates "
            f"{_describe(profitability, 'strong', 'moderate', 'weak')} profitability",
        ),
        HealthFactor(
            metric="Cash Flow",
            score=round(liquidity),
            impact=_impact(liquidity),
            description=f"Cash flow management is {_describe(liquidity, 'excellent', 'adequate', 'concerning')}",
        ),
        HealthFactor(
            metric="Operational Efficiency",
            score=round(efficiency),
            impact=_impact(efficiency),
            description="Operations are "
            f"{_describe(efficiency, 'highly efficient', 'moderately efficient', 'inefficient')}",
        ),
        HealthFactor(
            metric="Growth Trajectory",
            score=round(growth),
            impact=_impact(growth),
            description=f"Business growth is {_describe(growth, 'strong', 'steady', 'stagnant')}",
        ),
    ]
    return FinancialHealthScore(
        overall=round(overall),
        profitability=round(profitability),
        liquidity=round(liquidity),
        efficiency=round(efficiency),
        growth=round(growth),
        factors=factors,
    )


def check_alerts(data: Dict[str, Any]) -> List[FinancialInsight]:
    alerts = []
    now = datetime.utcnow()
    current_cash_flow = data["cash_flow"]["current"]
    if current_cash_flow < 0:
        alerts.append(
            FinancialInsight(
                id=_insight_id(),
                type="alert",
                severity="critical",
                title="Negative Cash Flow Detected",
                description=f"Current cash flow is {current_cash_flow:,.2f}, indicating potential liquidity issues",
                impact="Immediate threat to operational continuity",
                recommendations=[
                    "Review accounts receivable for collections",
                    "Delay non-critical expenses",
                    "Consider emergency financing options",
                ],
                confidence=1.0,
                detected_at=now,
                affected_metrics=["cash_flow", "liquidity"],
                action_required=True,
            )
        )

    growth_rate = data["expenses"]["growth_rate"]
    if growth_rate > settings.expense_growth_alert_threshold:
        alerts.append(
            FinancialInsight(
                id=_insight_id(),
                type="alert",
                severity="high",
                title="Rapid Expense Growth",
                description=f"Expenses have grown {growth_rate}% this period",
                impact="Eroding profit margins and financial stability",
                recommendations=[
                    "Conduct detailed expense analysis",
                    "Implement cost control measures",
                    "Review vendor contracts and rates",
                ],
                confidence=0.95,
                detected_at=now,
                affected_metrics=["expenses", "profit_margin"],
                action_required=True,
            )
        )
    return alerts


def extract_json_array(text: Optional[str]) -> List[Any]:
    """Pull the outermost JSON array out of a chat reply."""
    text = text or "[]"
    start = text.find("[")
    end = text.rfind("]") + 1
    if start < 0 or end <= start:
        raise ValueError("No JSON array found in model response")
    parsed = json.loads(text[start:end])
    if not isinstance(parsed, list):
        raise ValueError("Model response is not a JSON array")
    return parsed


def _default_client() -> Optional[AsyncOpenAI]:
    if not settings.openai_api_key:
        return None
    return AsyncOpenAI(api_key=settings.openai_api_key)


class FinancialInsightsService:
    def __init__(self, db: AsyncSession, client: Optional[Any] = None) -> None:
        self.db = db
        self.client = client if client is not None else _default_client()

    async def gather_financial_data(self, company_id: str) -> Dict[str, Any]:
        now = datetime.utcnow()
        result = await self.db.execute(
            scoped_select(Load, company_id).where(Load.created_at >= now - relativedelta(months=12))
        )
        loads = list(result.scalars().all())

        total_revenue = sum(coerce_amount(load.rate) for load in loads)
        completed = [load for load in loads if load.status == "delivered"]
        monthly = group_by_month(loads)
        bill_totals = await self._monthly_bill_totals(company_id, now.date(), months=6)

        return {
            "revenue": {
                "total": total_revenue,
                "monthly": monthly,
                "average": total_revenue / len(loads) if loads else 0.0,
            },
            "expenses": {
                "total": total_revenue * settings.estimated_expense_ratio,
                "growth_rate": expense_growth_rate(bill_totals),
                "categories": [],
            },
            "cash_flow": {
                "current": total_revenue * settings.estimated_cash_flow_ratio,
                "trend": "positive",
            },
            "load_metrics": {
                "total": len(loads),
                "completed": len(completed),
                "completion_rate": len(completed) / len(loads) if loads else 0.0,
            },
            "monthly_trends": monthly,
            "performance_metrics": {
                "revenue_per_load": total_revenue / len(loads) if loads else 0.0,
                "efficiency": settings.operational_efficiency,
            },
        }

    async def _monthly_bill_totals(self, company_id: str, today: date, months: int) -> List[float]:
        first_month = today.replace(day=1) - relativedelta(months=months - 1)
        result = await self.db.execute(scoped_select(Bill, company_id).where(Bill.bill_date >= first_month))
        totals = {(first_month + relativedelta(months=i)).strftime("%Y-%m"): 0.0 for i in range(months)}
        for bill in result.scalars().all():
            key = bill.bill_date.strftime("%Y-%m")
            if key in totals:
                totals[key] += coerce_amount(bill.total_amount)
        return [totals[key] for key in sorted(totals)]

    async def gather_historical_cash_flow(self, company_id: str, months: int = 12) -> List[MonthlyCashFlow]:
        """Paid invoices in, paid bills out, per calendar month."""
        first_month = datetime.utcnow().date().replace(day=1) - relativedelta(months=months - 1)
        buckets = {
            (first_month + relativedelta(months=i)).strftime("%Y-%m"): {"inflow": 0.0, "outflow": 0.0}
            for i in range(months)
        }

        invoices = await self.db.execute(
            scoped_select(Invoice, company_id).where(Invoice.status == "paid", Invoice.paid_date >= first_month)
        )
        for invoice in invoices.scalars().all():
            key = invoice.paid_date.strftime("%Y-%m")
            if key in buckets:
                buckets[key]["inflow"] += coerce_amount(invoice.amount)

        bills = await self.db.execute(scoped_select(Bill, company_id).where(Bill.bill_date >= first_month))
        for bill in bills.scalars().all():
            key = bill.bill_date.strftime("%Y-%m")
            if key in buckets:
                buckets[key]["outflow"] += coerce_amount(bill.paid_amount)

        return [
            MonthlyCashFlow(month=key, inflow=value["inflow"], outflow=value["outflow"], net=value["inflow"] - value["outflow"])
            for key, value in sorted(buckets.items())
        ]

    async def _ask_for_array(self, prompt: str, temperature: float) -> List[Any]:
        if self.client is None:
            raise RuntimeError("OpenAI client is not configured")
        response = await self.client.chat.completions.create(
            model=settings.openai_model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
        )
        return extract_json_array(response.choices[0].message.content)

    async def detect_anomalies(self, company_id: str, data: Dict[str, Any]) -> List[FinancialInsight]:
        prompt = f"""
Analyze the following financial data for anomalies and unusual patterns:

Revenue Data: {json.dumps(data["revenue"], default=str)}
Expense Data: {json.dumps(data["expenses"], default=str)}
Cash Flow: {json.dumps(data["cash_flow"], default=str)}
Load Performance: {json.dumps(data["load_metrics"], default=str)}

Identify any anomalies, unusual spending patterns, or concerning trends. For each anomaly:
1. Describe what's unusual
2. Assess the potential impact
3. Rate the severity (low/medium/high/critical)
4. Provide actionable recommendations

Return a JSON array of anomalies with this structure:
{{
  "type": "anomaly",
  "severity": "high",
  "title": "Unusual Fuel Cost Spike",
  "description": "Fuel costs increased 35% last month compared to historical average",
  "impact": "Reduced profit margins by 8%",
  "recommendations": ["Review fuel purchasing strategy", "Negotiate better rates"],
  "confidence": 0.92,
  "affectedMetrics": ["fuel_costs", "profit_margin"],
  "estimatedSavings": 15000
}}
"""
        try:
            items = await self._ask_for_array(prompt, temperature=0.3)
            now = datetime.utcnow()
            return [
                FinancialInsight.model_validate(
                    {
                        "type": "anomaly",
                        **item,
                        "id": _insight_id(),
                        "detected_at": now,
                        "action_required": item.get("severity") in ("high", "critical"),
                    }
                )
                for item in items
            ]
        except Exception as exc:
            logger.exception("Error detecting anomalies", extra={"company_id": company_id, "error": str(exc)})
            return []

    async def analyze_trends(self, company_id: str, data: Dict[str, Any]) -> List[FinancialInsight]:
        prompt = f"""
Analyze these financial trends over time:

Monthly Data: {json.dumps(data["monthly_trends"], default=str)}
Performance Metrics: {json.dumps(data["performance_metrics"], default=str)}

Identify significant trends in:
- Revenue growth/decline
- Cost patterns
- Profit margins
- Operational efficiency
- Market position

For each trend, provide insights about future implications and strategic recommendations.

Return JSON array with trend insights.
"""
        try:
            items = await self._ask_for_array(prompt, temperature=0.3)
            now = datetime.utcnow()
            return [
                FinancialInsight.model_validate(
                    {**item, "id": _insight_id(), "type": "trend", "detected_at": now, "action_required": False}
                )
                for item in items
            ]
        except Exception as exc:
            logger.exception("Error analyzing trends", extra={"company_id": company_id, "error": str(exc)})
            return []

    async def generate_recommendations(self, company_id: str, data: Dict[str, Any]) -> List[FinancialInsight]:
        prompt = f"""
Based on this transportation company's financial data, generate strategic recommendations:

Company Metrics: {json.dumps(data, default=str)}

Focus on:
1. Cost optimization opportunities
2. Revenue enhancement strategies
3. Operational efficiency improvements
4. Risk mitigation measures
5. Growth opportunities

Prioritize recommendations by potential impact and feasibility.

Return JSON array with actionable recommendations.
"""
        try:
            items = await self._ask_for_array(prompt, temperature=0.4)
            now = datetime.utcnow()
            return [
                FinancialInsight.model_validate(
                    {
                        **item,
                        "id": _insight_id(),
                        "type": "recommendation",
                        "detected_at": now,
                        "action_required": item.get("severity") == "high",
                    }
                )
                for item in items
            ]
        except Exception as exc:
            logger.exception("Error generating recommendations", extra={"company_id": company_id, "error": str(exc)})
            return []

    async def generate_financial_insights(self, company_id: str) -> List[FinancialInsight]:
        data = await self.gather_financial_data(company_id)
        insights: List[FinancialInsight] = []
        insights.extend(await self.detect_anomalies(company_id, data))
        insights.extend(await self.analyze_trends(company_id, data))
        insights.extend(await self.generate_recommendations(company_id, data))
        insights.extend(check_alerts(data))
        return sort_by_severity(insights)

    async def calculate_financial_health_score(self, company_id: str) -> FinancialHealthScore:
        data = await self.gather_financial_data(company_id)
        return build_health_score(data)

    async def get_insights_for_dashboard(self, company_id: str) -> InsightsDashboard:
        insights = await self.generate_financial_insights(company_id)
        health = await self.calculate_financial_health_score(company_id)
        return InsightsDashboard(
            critical_alerts=sum(1 for insight in insights if insight.severity == "critical"),
            total_insights=len(insights),
            top_insights=insights[: settings.dashboard_top_insights],
            health_score=health.overall,
        )

    async def categorize_expenses(
        self,
        company_id: str,
        transactions: List[ExpenseTransaction],
    ) -> List[ExpenseCategory]:
        payload = [transaction.model_dump(mode="json") for transaction in transactions]
        categories = "\n".join(f"- {name}" for name in EXPENSE_CATEGORIES)
        prompt = f"""
Categorize these transportation company expenses into standard categories:

Transactions: {json.dumps(payload)}

Standard categories:
{categories}

For each category, calculate total amount, percentage of total expenses, and trend.

Return JSON array of expense categories with amounts and percentages.
"""
        try:
            items = await self._ask_for_array(prompt, temperature=0.2)
            return [ExpenseCategory.model_validate(item) for item in items]
        except Exception as exc:
            logger.exception("Error categorizing expenses", extra={"company_id": company_id, "error": str(exc)})
            return []

    async def predict_cash_flow(self, company_id: str, months: int = 6) -> List[CashFlowPrediction]:
        history = await self.gather_historical_cash_flow(company_id)
        prompt = f"""
Based on this historical cash flow data, predict future cash flow for the next {months} months:

Historical Data: {json.dumps([month.model_dump() for month in history])}

Consider:
- Seasonal patterns
- Business growth trends
- Market conditions
- Historical payment cycles

Return JSON array of monthly predictions with confidence scores and risk factors.
"""
        try:
            items = await self._ask_for_array(prompt, temperature=0.3)
            return [CashFlowPrediction.model_validate(item) for item in items]
        except Exception as exc:
            logger.exception("Error predicting cash flow", extra={"company_id": company_id, "error": str(exc)})
            return []
