from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.db import get_db
from app.core.tenant_isolation import EntityNotFoundError
from app.schemas.payroll import EmployeeCreate, EmployeeResponse, EmployeeTermination, EmployeeUpdate
from app.services.hr import HRService

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> HRService:
    return HRService(db)


@router.get("/employees", response_model=List[EmployeeResponse])
async def list_employees(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    company_id: str = Depends(deps.get_current_company),
    service: HRService = Depends(_service),
) -> List[EmployeeResponse]:
    employees = await service.list_employees(company_id, status_filter)
    return [EmployeeResponse.model_validate(employee) for employee in employees]


@router.post("/employees", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
async def create_employee(
    payload: EmployeeCreate,
    company_id: str = Depends(deps.get_current_company),
    service: HRService = Depends(_service),
) -> EmployeeResponse:
    try:
        employee = await service.create_employee(company_id, payload)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return EmployeeResponse.model_validate(employee)


@router.get("/employees/{employee_id}", response_model=EmployeeResponse)
async def get_employee(
    employee_id: str,
    company_id: str = Depends(deps.get_current_company),
    service: HRService = Depends(_service),
) -> EmployeeResponse:
    try:
        employee = await service.get_employee(company_id, employee_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return EmployeeResponse.model_validate(employee)


@router.patch("/employees/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: str,
    payload: EmployeeUpdate,
    company_id: str = Depends(deps.get_current_company),
    service: HRService = Depends(_service),
) -> EmployeeResponse:
    try:
        employee = await service.update_employee(company_id, employee_id, payload)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return EmployeeResponse.model_validate(employee)


@router.post("/employees/{employee_id}/terminate", response_model=EmployeeResponse)
async def terminate_employee(
    employee_id: str,
    payload: EmployeeTermination,
    company_id: str = Depends(deps.get_current_company),
    service: HRService = Depends(_service),
) -> EmployeeResponse:
    try:
        employee = await service.terminate_employee(company_id, employee_id, payload.termination_date)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return EmployeeResponse.model_validate(employee)
