from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.db import get_db
from app.core.tenant_isolation import EntityNotFoundError
from app.schemas.payroll import PayrollRunCreate, PayrollRunResponse, PayrollSummary, PaystubResponse
from app.services.payroll import PayrollService

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> PayrollService:
    return PayrollService(db)


@router.get("/summary", response_model=PayrollSummary)
async def get_payroll_summary(
    company_id: str = Depends(deps.get_current_company),
    service: PayrollService = Depends(_service),
) -> PayrollSummary:
    return await service.payroll_summary(company_id)


@router.get("/runs", response_model=List[PayrollRunResponse])
async def list_payroll_runs(
    company_id: str = Depends(deps.get_current_company),
    service: PayrollService = Depends(_service),
) -> List[PayrollRunResponse]:
    runs = await service.list_payroll_runs(company_id)
    return [PayrollRunResponse.model_validate(run) for run in runs]


@router.post("/runs", response_model=PayrollRunResponse, status_code=status.HTTP_201_CREATED)
async def create_payroll_run(
    payload: PayrollRunCreate,
    company_id: str = Depends(deps.get_current_company),
    service: PayrollService = Depends(_service),
) -> PayrollRunResponse:
    try:
        run = await service.create_payroll_run(company_id, payload)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return PayrollRunResponse.model_validate(run)


@router.post("/runs/{run_id}/approve", response_model=PayrollRunResponse)
async def approve_payroll_run(
    run_id: str,
    company_id: str = Depends(deps.get_current_company),
    user_id: str = Depends(deps.get_current_user_id),
    service: PayrollService = Depends(_service),
) -> PayrollRunResponse:
    try:
        run = await service.approve_payroll_run(company_id, run_id, approved_by=user_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return PayrollRunResponse.model_validate(run)


@router.get("/paystubs", response_model=List[PaystubResponse])
async def list_paystubs(
    run_id: Optional[str] = Query(default=None),
    employee_id: Optional[str] = Query(default=None),
    company_id: str = Depends(deps.get_current_company),
    service: PayrollService = Depends(_service),
) -> List[PaystubResponse]:
    paystubs = await service.get_paystubs(company_id, run_id=run_id, employee_id=employee_id)
    return [PaystubResponse.model_validate(paystub) for paystub in paystubs]
