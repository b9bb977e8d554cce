from sqlalchemy import Boolean, Column, DateTime, String, func
from sqlalchemy.orm import relationship

from app.models.base import Base


class Company(Base):
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    zip_code = Column(String, nullable=True)
    dot_number = Column(String, nullable=True)
    mc_number = Column(String, nullable=True)

    subscription_plan = Column(String, nullable=False, default="starter")
    subscription_status = Column(String, nullable=False, default="trial")
    stripe_customer_id = Column(String, nullable=True)

    # Companies are never hard-deleted
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    drivers = relationship("Driver", back_populates="company")
    trucks = relationship("Truck", back_populates="company")
    subscription = relationship("Subscription", back_populates="company", uselist=False)
