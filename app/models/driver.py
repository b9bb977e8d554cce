from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import relationship

from app.models.base import Base


class Driver(Base):
    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)

    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)

    license_number = Column(String, nullable=True)
    license_class = Column(String, nullable=True)
    license_expiry = Column(Date, nullable=True)

    status = Column(String, nullable=False, default="available")  # available, assigned, on_duty, off_duty
    pay_rate = Column(Numeric(10, 2), nullable=True)
    pay_type = Column(String, nullable=True)  # mile, hourly, percentage
    hours_remaining = Column(Numeric(5, 2), nullable=True)  # HOS proxy
    current_location = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    company = relationship("Company", back_populates="drivers")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
