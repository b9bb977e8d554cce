from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from app.models.base import Base

LOAD_STATUSES = ("pending", "dispatched", "in_transit", "delivered", "cancelled")
DISPATCH_STATUSES = ("planning", "assigned", "in_progress", "completed")

# Optional columns that only carry meaning for one trailer type
TRAILER_FIELDS = {
    "container": (
        "container_number",
        "container_size",
        "bol_number",
        "ssl",
        "vessel_name",
        "port_of_loading",
        "port_of_discharge",
        "terminal",
        "hazmat",
        "chassis_required",
        "chassis_type",
        "chassis_provider",
    ),
    "reefer": ("temperature", "is_fsma_compliant"),
    "tanker": ("liquid_type", "wash_type", "volume"),
    "flatbed": ("load_length", "load_width", "load_height", "tarp_required", "securement_type"),
    "dryvan": ("pallet_count", "is_stackable", "seal_number"),
}


class Load(Base):
    __tablename__ = "freight_load"
    __table_args__ = (
        UniqueConstraint("company_id", "load_number", name="uq_load_company_load_number"),
    )

    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)

    load_number = Column(String, nullable=False)
    status = Column(String, nullable=False, default="pending")
    priority = Column(String, nullable=False, default="normal")  # normal, urgent, critical

    customer_name = Column(String, nullable=False)
    customer_contact = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)

    pickup_location = Column(String, nullable=False)
    pickup_address = Column(String, nullable=True)
    pickup_city = Column(String, nullable=True)
    pickup_state = Column(String, nullable=True)
    pickup_date = Column(Date, nullable=True)
    pickup_time = Column(String, nullable=True)

    delivery_location = Column(String, nullable=False)
    delivery_address = Column(String, nullable=True)
    delivery_city = Column(String, nullable=True)
    delivery_state = Column(String, nullable=True)
    delivery_date = Column(Date, nullable=True)
    delivery_time = Column(String, nullable=True)

    commodity = Column(String, nullable=True)
    weight = Column(Integer, nullable=False, default=0)
    pieces = Column(Integer, nullable=False, default=1)

    rate = Column(Numeric(12, 2), nullable=False, default=0)
    rate_type = Column(String, nullable=False, default="flat")  # flat, per_mile, percentage
    miles = Column(Integer, nullable=True)

    assigned_driver_id = Column(String, ForeignKey("driver.id"), nullable=True, index=True)
    assigned_truck_id = Column(String, ForeignKey("truck.id"), nullable=True, index=True)
    notes = Column(Text, nullable=True)

    trailer_type = Column(String, nullable=True)  # container, reefer, tanker, flatbed, dryvan

    # Container
    container_number = Column(String, nullable=True)
    container_size = Column(String, nullable=True)  # 20ft, 40ft, 45ft
    bol_number = Column(String, nullable=True)
    ssl = Column(String, nullable=True)  # Steamship line
    vessel_name = Column(String, nullable=True)
    port_of_loading = Column(String, nullable=True)
    port_of_discharge = Column(String, nullable=True)
    terminal = Column(String, nullable=True)
    hazmat = Column(Boolean, nullable=True)
    chassis_required = Column(Boolean, nullable=True)
    chassis_type = Column(String, nullable=True)
    chassis_provider = Column(String, nullable=True)

    # Reefer
    temperature = Column(Integer, nullable=True)
    is_fsma_compliant = Column(Boolean, nullable=True)

    # Tanker
    liquid_type = Column(String, nullable=True)
    wash_type = Column(String, nullable=True)
    volume = Column(Integer, nullable=True)

    # Flatbed
    load_length = Column(Numeric(6, 2), nullable=True)
    load_width = Column(Numeric(6, 2), nullable=True)
    load_height = Column(Numeric(6, 2), nullable=True)
    tarp_required = Column(Boolean, nullable=True)
    securement_type = Column(String, nullable=True)

    # Dry van
    pallet_count = Column(Integer, nullable=True)
    is_stackable = Column(Boolean, nullable=True)
    seal_number = Column(String, nullable=True)

    is_multi_driver_load = Column(Boolean, nullable=False, default=False)
    dispatch_status = Column(String, nullable=False, default="planning")

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
    dispatched_at = Column(DateTime, nullable=True)
    picked_up_at = Column(DateTime, nullable=True)
    delivered_at = Column(DateTime, nullable=True)

    legs = relationship(
        "DispatchLeg",
        back_populates="load",
        cascade="all, delete-orphan",
        order_by="DispatchLeg.leg_order",
    )
    assignments = relationship("LoadAssignment", back_populates="load", cascade="all, delete-orphan")
    driver = relationship("Driver", foreign_keys=[assigned_driver_id])
    truck = relationship("Truck", foreign_keys=[assigned_truck_id])


class DispatchLeg(Base):
    __tablename__ = "dispatch_leg"
    __table_args__ = (
        UniqueConstraint("load_id", "leg_order", name="uq_dispatch_leg_load_order"),
    )

    id = Column(String, primary_key=True)
    load_id = Column(String, ForeignKey("freight_load.id"), nullable=False, index=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)
    driver_id = Column(String, ForeignKey("driver.id"), nullable=True, index=True)
    truck_id = Column(String, ForeignKey("truck.id"), nullable=True, index=True)
    trailer_id = Column(String, nullable=True)
    chassis_id = Column(String, nullable=True)

    action_type = Column(String, nullable=False)  # pickup, dropoff, move, return
    location = Column(Text, nullable=False)
    eta = Column(DateTime, nullable=True)
    etd = Column(DateTime, nullable=True)
    actual_arrival = Column(DateTime, nullable=True)
    actual_departure = Column(DateTime, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    leg_order = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    load = relationship("Load", back_populates="legs")
    driver = relationship("Driver")
    truck = relationship("Truck")


class LoadAssignment(Base):
    __tablename__ = "load_assignment"

    id = Column(String, primary_key=True)
    load_id = Column(String, ForeignKey("freight_load.id"), nullable=False, index=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)
    driver_id = Column(String, ForeignKey("driver.id"), nullable=False, index=True)
    truck_id = Column(String, ForeignKey("truck.id"), nullable=True)
    trailer_id = Column(String, nullable=True)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    assignment_notes = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="assigned")  # assigned, active, completed, cancelled

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    load = relationship("Load", back_populates="assignments")
