from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.db import get_db
from app.schemas.insights import (
    CashFlowPrediction,
    ExpenseCategory,
    ExpenseTransaction,
    FinancialHealthScore,
    FinancialInsight,
    InsightsDashboard,
)
from app.schemas.reporting import CustomReport, KPIMetrics, KPIPeriod, ReportFilter, RevenueAnalytics, TrendAnalysis
from app.services.financial_insights import FinancialInsightsService
from app.services.reporting import AdvancedReportingService

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> AdvancedReportingService:
    return AdvancedReportingService(db)


async def _insights(db: AsyncSession = Depends(get_db)) -> FinancialInsightsService:
    return FinancialInsightsService(db)


@router.post("/custom", response_model=CustomReport)
async def custom_report(
    filters: ReportFilter,
    company_id: str = Depends(deps.get_current_company),
    service: AdvancedReportingService = Depends(_service),
) -> CustomReport:
    return await service.generate_custom_report(company_id, filters)


@router.get("/revenue", response_model=RevenueAnalytics)
async def revenue_analytics(
    start_date: date = Query(...),
    end_date: date = Query(...),
    company_id: str = Depends(deps.get_current_company),
    service: AdvancedReportingService = Depends(_service),
) -> RevenueAnalytics:
    if end_date < start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date must not precede start_date")
    return await service.get_revenue_analytics(company_id, start_date, end_date)


@router.get("/trends", response_model=TrendAnalysis)
async def trend_analysis(
    months: int = Query(default=12, ge=1, le=36),
    company_id: str = Depends(deps.get_current_company),
    service: AdvancedReportingService = Depends(_service),
) -> TrendAnalysis:
    return await service.get_trend_analysis(company_id, months)


@router.get("/kpi", response_model=KPIMetrics)
async def kpi_metrics(
    period: KPIPeriod = Query(default="month"),
    company_id: str = Depends(deps.get_current_company),
    service: AdvancedReportingService = Depends(_service),
) -> KPIMetrics:
    return await service.get_kpi_metrics(company_id, period)


@router.post("/export/csv")
async def export_csv(
    filters: ReportFilter,
    company_id: str = Depends(deps.get_current_company),
    service: AdvancedReportingService = Depends(_service),
) -> Response:
    content = await service.export_to_csv(company_id, filters)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="load-report.csv"'},
    )


@router.get("/insights", response_model=List[FinancialInsight])
async def financial_insights(
    company_id: str = Depends(deps.get_current_company),
    service: FinancialInsightsService = Depends(_insights),
) -> List[FinancialInsight]:
    return await service.generate_financial_insights(company_id)


@router.get("/insights/health-score", response_model=FinancialHealthScore)
async def financial_health_score(
    company_id: str = Depends(deps.get_current_company),
    service: FinancialInsightsService = Depends(_insights),
) -> FinancialHealthScore:
    return await service.calculate_financial_health_score(company_id)


@router.get("/insights/dashboard", response_model=InsightsDashboard)
async def insights_dashboard(
    company_id: str = Depends(deps.get_current_company),
    service: FinancialInsightsService = Depends(_insights),
) -> InsightsDashboard:
    return await service.get_insights_for_dashboard(company_id)


@router.post("/insights/categorize-expenses", response_model=List[ExpenseCategory])
async def categorize_expenses(
    transactions: List[ExpenseTransaction],
    company_id: str = Depends(deps.get_current_company),
    service: FinancialInsightsService = Depends(_insights),
) -> List[ExpenseCategory]:
    return await service.categorize_expenses(company_id, transactions)


@router.get("/insights/cash-flow", response_model=List[CashFlowPrediction])
async def cash_flow_prediction(
    months: int = Query(default=6, ge=1, le=24),
    company_id: str = Depends(deps.get_current_company),
    service: FinancialInsightsService = Depends(_insights),
) -> List[CashFlowPrediction]:
    return await service.predict_cash_flow(company_id, months)
