from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.db import get_db
from app.core.tenant_isolation import EntityNotFoundError
from app.schemas.dispatch import (
    DispatchCalendarResponse,
    DispatchLegResponse,
    DriverMobileResponse,
    LoadAssignmentResponse,
)
from app.services.dispatch import DispatchService

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> DispatchService:
    return DispatchService(db)


@router.post("/legs/{leg_id}/complete", response_model=DispatchLegResponse)
async def complete_leg(
    leg_id: str,
    company_id: str = Depends(deps.get_current_company),
    service: DispatchService = Depends(_service),
) -> DispatchLegResponse:
    try:
        leg = await service.complete_dispatch_leg(company_id, leg_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return DispatchLegResponse.model_validate(leg)


@router.get("/drivers/{driver_id}/assignments", response_model=List[LoadAssignmentResponse])
async def get_driver_assignments(
    driver_id: str,
    company_id: str = Depends(deps.get_current_company),
    service: DispatchService = Depends(_service),
) -> List[LoadAssignmentResponse]:
    assignments = await service.get_driver_assignments(company_id, driver_id)
    return [LoadAssignmentResponse.model_validate(assignment) for assignment in assignments]


@router.get("/calendar", response_model=DispatchCalendarResponse)
async def get_dispatch_calendar(
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    company_id: str = Depends(deps.get_current_company),
    service: DispatchService = Depends(_service),
) -> DispatchCalendarResponse:
    if start_date and end_date and end_date < start_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date must not precede start_date")
    return await service.get_dispatch_calendar(company_id, start_date, end_date)


@router.get("/drivers/{driver_id}/mobile", response_model=DriverMobileResponse)
async def get_driver_mobile_data(
    driver_id: str,
    company_id: str = Depends(deps.get_current_company),
    service: DispatchService = Depends(_service),
) -> DriverMobileResponse:
    return await service.get_driver_mobile_data(company_id, driver_id)
