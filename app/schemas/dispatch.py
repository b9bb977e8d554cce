from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class DispatchLegCreate(BaseModel):
    """One leg of a multi-driver plan. Order is the position in the submitted list."""
    action_type: Literal["pickup", "dropoff", "move", "return"]
    location: str
    driver_id: Optional[str] = None
    truck_id: Optional[str] = None
    trailer_id: Optional[str] = None
    chassis_id: Optional[str] = None
    eta: Optional[datetime] = None
    etd: Optional[datetime] = None
    notes: Optional[str] = None


class DispatchLegResponse(BaseModel):
    id: str
    load_id: str
    driver_id: Optional[str] = None
    truck_id: Optional[str] = None
    trailer_id: Optional[str] = None
    chassis_id: Optional[str] = None
    action_type: str
    location: str
    eta: Optional[datetime] = None
    etd: Optional[datetime] = None
    actual_arrival: Optional[datetime] = None
    actual_departure: Optional[datetime] = None
    completed: bool
    leg_order: int
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class LoadAssignmentResponse(BaseModel):
    id: str
    load_id: str
    driver_id: str
    truck_id: Optional[str] = None
    status: str
    assignment_notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class LoadDispatchResult(BaseModel):
    success: bool = True
    load_id: str
    load_number: str
    leg_count: int = 0
    assignment_count: int = 0


class DispatchCalendarEntry(BaseModel):
    leg_id: str
    load_id: str
    load_number: str
    customer_name: str
    leg_order: int
    action_type: str
    location: str
    eta: Optional[datetime] = None
    etd: Optional[datetime] = None
    completed: bool
    pickup_date: Optional[date] = None
    driver_id: Optional[str] = None
    driver_name: Optional[str] = None
    truck_id: Optional[str] = None
    truck_number: Optional[str] = None


class DispatchCalendarResponse(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    entries: List[DispatchCalendarEntry] = Field(default_factory=list)
    generated_at: datetime


class DriverMobileStop(BaseModel):
    leg: DispatchLegResponse
    load_id: str
    load_number: str
    customer_name: str
    pickup_location: str
    delivery_location: str
    load_status: str


class DriverMobileResponse(BaseModel):
    driver_id: str
    remaining_legs: List[DriverMobileStop] = Field(default_factory=list)
