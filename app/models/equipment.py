from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import relationship

from app.models.base import Base


class Truck(Base):
    __table_args__ = (
        UniqueConstraint("company_id", "truck_number", name="uq_truck_company_truck_number"),
    )

    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)

    truck_number = Column(String, nullable=False)
    make = Column(String, nullable=True)
    model = Column(String, nullable=True)
    year = Column(Integer, nullable=True)
    vin = Column(String, nullable=True)
    license_plate = Column(String, nullable=True)
    registration_state = Column(String, nullable=True)
    status = Column(String, nullable=False, default="available")  # available, in_use, maintenance
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    company = relationship("Company", back_populates="trucks")
