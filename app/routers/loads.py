import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.db import get_db
from app.core.tenant_isolation import EntityNotFoundError
from app.schemas.dispatch import DispatchLegResponse, LoadDispatchResult
from app.schemas.load import LoadAssignDriver, LoadCreate, LoadResponse, LoadStatusUpdate
from app.services.dispatch import DispatchError, DispatchService
from app.services.load import LoadService

router = APIRouter()
logger = logging.getLogger(__name__)


async def _service(db: AsyncSession = Depends(get_db)) -> LoadService:
    return LoadService(db)


async def _dispatch_service(db: AsyncSession = Depends(get_db)) -> DispatchService:
    return DispatchService(db)


@router.get("", response_model=List[LoadResponse])
async def list_loads(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    company_id: str = Depends(deps.get_current_company),
    service: LoadService = Depends(_service),
) -> List[LoadResponse]:
    loads = await service.list_loads(company_id, status_filter)
    return [LoadResponse.model_validate(load) for load in loads]


@router.post("", response_model=LoadDispatchResult, status_code=status.HTTP_201_CREATED)
async def create_load(
    payload: LoadCreate,
    company_id: str = Depends(deps.get_current_company),
    service: DispatchService = Depends(_dispatch_service),
) -> LoadDispatchResult:
    """Create a load; multi-driver loads also get their legs and driver assignments."""
    try:
        return await service.create_load_with_dispatch(company_id, payload)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DispatchError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.get("/{load_id}", response_model=LoadResponse)
async def get_load(
    load_id: str,
    company_id: str = Depends(deps.get_current_company),
    service: LoadService = Depends(_service),
) -> LoadResponse:
    try:
        load = await service.get_load(company_id, load_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return LoadResponse.model_validate(load)


@router.patch("/{load_id}/status", response_model=LoadResponse)
async def update_load_status(
    load_id: str,
    payload: LoadStatusUpdate,
    company_id: str = Depends(deps.get_current_company),
    service: LoadService = Depends(_service),
) -> LoadResponse:
    try:
        load = await service.update_status(company_id, load_id, payload.status)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return LoadResponse.model_validate(load)


@router.patch("/{load_id}/assign", response_model=LoadResponse)
async def assign_load(
    load_id: str,
    payload: LoadAssignDriver,
    company_id: str = Depends(deps.get_current_company),
    service: LoadService = Depends(_service),
) -> LoadResponse:
    try:
        load = await service.assign_driver(company_id, load_id, payload.driver_id, payload.truck_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return LoadResponse.model_validate(load)


@router.get("/{load_id}/legs", response_model=List[DispatchLegResponse])
async def get_load_legs(
    load_id: str,
    company_id: str = Depends(deps.get_current_company),
    service: DispatchService = Depends(_dispatch_service),
) -> List[DispatchLegResponse]:
    legs = await service.get_dispatch_legs(company_id, load_id)
    return [DispatchLegResponse.model_validate(leg) for leg in legs]
