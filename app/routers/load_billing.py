from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.db import get_db
from app.core.tenant_isolation import EntityNotFoundError
from app.schemas.load_billing import AccessorialCreate, ExpenseCreate, LoadBillingCreate, LoadBillingResponse
from app.services.load_billing import LoadBillingService

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> LoadBillingService:
    return LoadBillingService(db)


@router.get("/{load_id}/billing", response_model=LoadBillingResponse)
async def get_load_billing(
    load_id: str,
    company_id: str = Depends(deps.get_current_company),
    service: LoadBillingService = Depends(_service),
) -> LoadBillingResponse:
    try:
        billing = await service.get_billing(company_id, load_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return LoadBillingResponse.model_validate(billing)


@router.post("/{load_id}/billing", response_model=LoadBillingResponse, status_code=status.HTTP_201_CREATED)
async def create_load_billing(
    load_id: str,
    payload: LoadBillingCreate,
    company_id: str = Depends(deps.get_current_company),
    service: LoadBillingService = Depends(_service),
) -> LoadBillingResponse:
    try:
        billing = await service.create_billing(company_id, load_id, payload)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return LoadBillingResponse.model_validate(billing)


@router.post("/{load_id}/billing/accessorials", response_model=LoadBillingResponse)
async def add_accessorial(
    load_id: str,
    payload: AccessorialCreate,
    company_id: str = Depends(deps.get_current_company),
    service: LoadBillingService = Depends(_service),
) -> LoadBillingResponse:
    try:
        billing = await service.add_accessorial(company_id, load_id, payload)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return LoadBillingResponse.model_validate(billing)


@router.delete("/{load_id}/billing/accessorials/{accessorial_id}", response_model=LoadBillingResponse)
async def remove_accessorial(
    load_id: str,
    accessorial_id: str,
    company_id: str = Depends(deps.get_current_company),
    service: LoadBillingService = Depends(_service),
) -> LoadBillingResponse:
    try:
        billing = await service.remove_accessorial(company_id, load_id, accessorial_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return LoadBillingResponse.model_validate(billing)


@router.post("/{load_id}/billing/expenses", response_model=LoadBillingResponse)
async def add_expense(
    load_id: str,
    payload: ExpenseCreate,
    company_id: str = Depends(deps.get_current_company),
    service: LoadBillingService = Depends(_service),
) -> LoadBillingResponse:
    try:
        billing = await service.add_expense(company_id, load_id, payload)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return LoadBillingResponse.model_validate(billing)


@router.delete("/{load_id}/billing/expenses/{expense_id}", response_model=LoadBillingResponse)
async def remove_expense(
    load_id: str,
    expense_id: str,
    company_id: str = Depends(deps.get_current_company),
    service: LoadBillingService = Depends(_service),
) -> LoadBillingResponse:
    try:
        billing = await service.remove_expense(company_id, load_id, expense_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return LoadBillingResponse.model_validate(billing)
