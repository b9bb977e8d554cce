import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.db import get_db
from app.schemas.dashboard import DashboardMetrics
from app.services.dashboard import DashboardService

router = APIRouter()
logger = logging.getLogger(__name__)


async def _service(db: AsyncSession = Depends(get_db)) -> DashboardService:
    return DashboardService(db)


@router.get("/metrics", response_model=DashboardMetrics)
async def get_dashboard_metrics(
    company_id: str = Depends(deps.get_current_company),
    service: DashboardService = Depends(_service),
) -> DashboardMetrics:
    try:
        return await service.get_dashboard_metrics(company_id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch dashboard metrics: {str(e)}")
