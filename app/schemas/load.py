from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.schemas.dispatch import DispatchLegCreate

TrailerType = Literal["container", "reefer", "tanker", "flatbed", "dryvan"]
LoadStatus = Literal["pending", "dispatched", "in_transit", "delivered", "cancelled"]


class LoadCreate(BaseModel):
    load_number: Optional[str] = None  # Auto-generated if not provided
    priority: Literal["normal", "urgent", "critical"] = "normal"

    customer_name: str
    customer_contact: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None

    pickup_location: str
    pickup_address: Optional[str] = None
    pickup_city: Optional[str] = None
    pickup_state: Optional[str] = None
    pickup_date: Optional[date] = None
    pickup_time: Optional[str] = None

    delivery_location: str
    delivery_address: Optional[str] = None
    delivery_city: Optional[str] = None
    delivery_state: Optional[str] = None
    delivery_date: Optional[date] = None
    delivery_time: Optional[str] = None

    commodity: Optional[str] = None
    weight: int = 0
    pieces: int = 1
    rate: float = 0
    rate_type: Literal["flat", "per_mile", "percentage"] = "flat"
    miles: Optional[int] = None
    assigned_driver_id: Optional[str] = None
    assigned_truck_id: Optional[str] = None
    notes: Optional[str] = None

    trailer_type: Optional[TrailerType] = None

    container_number: Optional[str] = None
    container_size: Optional[str] = None
    bol_number: Optional[str] = None
    ssl: Optional[str] = None
    vessel_name: Optional[str] = None
    port_of_loading: Optional[str] = None
    port_of_discharge: Optional[str] = None
    terminal: Optional[str] = None
    hazmat: Optional[bool] = None
    chassis_required: Optional[bool] = None
    chassis_type: Optional[str] = None
    chassis_provider: Optional[str] = None

    temperature: Optional[int] = None
    is_fsma_compliant: Optional[bool] = None

    liquid_type: Optional[str] = None
    wash_type: Optional[str] = None
    volume: Optional[int] = None

    load_length: Optional[float] = None
    load_width: Optional[float] = None
    load_height: Optional[float] = None
    tarp_required: Optional[bool] = None
    securement_type: Optional[str] = None

    pallet_count: Optional[int] = None
    is_stackable: Optional[bool] = None
    seal_number: Optional[str] = None

    is_multi_driver_load: bool = False
    dispatch_legs: List[DispatchLegCreate] = Field(default_factory=list)


class LoadResponse(BaseModel):
    id: str
    load_number: str
    status: str
    priority: str
    customer_name: str
    pickup_location: str
    delivery_location: str
    pickup_date: Optional[date] = None
    delivery_date: Optional[date] = None
    commodity: Optional[str] = None
    weight: int
    pieces: int
    rate: float
    rate_type: str
    miles: Optional[int] = None
    assigned_driver_id: Optional[str] = None
    assigned_truck_id: Optional[str] = None
    trailer_type: Optional[str] = None
    container_number: Optional[str] = None
    ssl: Optional[str] = None
    temperature: Optional[int] = None
    liquid_type: Optional[str] = None
    securement_type: Optional[str] = None
    pallet_count: Optional[int] = None
    is_multi_driver_load: bool
    dispatch_status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    dispatched_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LoadStatusUpdate(BaseModel):
    status: LoadStatus


class LoadAssignDriver(BaseModel):
    driver_id: str
    truck_id: Optional[str] = None
