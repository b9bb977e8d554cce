from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field

InsightType = Literal["anomaly", "trend", "recommendation", "alert"]
Severity = Literal["low", "medium", "high", "critical"]


class FinancialInsight(BaseModel):
    """One insight, either computed locally (alerts) or parsed from the model's reply."""

    id: str
    type: InsightType
    severity: Severity = "medium"
    title: str
    description: str = ""
    impact: str = ""
    recommendations: List[str] = Field(default_factory=list)
    confidence: float = 0.0
    detected_at: datetime
    affected_metrics: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("affected_metrics", "affectedMetrics"),
    )
    estimated_savings: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("estimated_savings", "estimatedSavings"),
    )
    action_required: bool = False


class HealthFactor(BaseModel):
    metric: str
    score: int
    impact: Literal["positive", "negative", "neutral"]
    description: str


class FinancialHealthScore(BaseModel):
    overall: int
    profitability: int
    liquidity: int
    efficiency: int
    growth: int
    factors: List[HealthFactor] = Field(default_factory=list)


class InsightsDashboard(BaseModel):
    critical_alerts: int
    total_insights: int
    top_insights: List[FinancialInsight] = Field(default_factory=list)
    health_score: int


class ExpenseTransaction(BaseModel):
    description: str
    amount: float
    date: date
    vendor: Optional[str] = None


class ExpenseCategory(BaseModel):
    category: str
    amount: float = 0.0
    percentage: float = 0.0
    trend: Literal["increasing", "decreasing", "stable"] = "stable"
    confidence: float = 0.0


class CashFlowPrediction(BaseModel):
    period: str
    predicted_inflow: float = Field(default=0.0, validation_alias=AliasChoices("predicted_inflow", "predictedInflow"))
    predicted_outflow: float = Field(
        default=0.0, validation_alias=AliasChoices("predicted_outflow", "predictedOutflow")
    )
    net_cash_flow: float = Field(default=0.0, validation_alias=AliasChoices("net_cash_flow", "netCashFlow"))
    confidence: float = 0.0
    risk_factors: List[str] = Field(default_factory=list, validation_alias=AliasChoices("risk_factors", "riskFactors"))


class MonthlyCashFlow(BaseModel):
    month: str
    inflow: float
    outflow: float
    net: float
