from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from app.models.base import Base


class LoadBilling(Base):
    """Financial close-out of a single load. Totals are stored, not generated."""
    __tablename__ = "load_billing"

    id = Column(String, primary_key=True)
    load_id = Column(String, ForeignKey("freight_load.id"), nullable=False, unique=True, index=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)

    base_rate = Column(Numeric(12, 2), nullable=False)
    rate_type = Column(String, nullable=False, default="flat")  # flat, per_mile
    rate_per_mile = Column(Numeric(8, 2), nullable=True)
    total_miles = Column(Integer, nullable=True)

    billing_status = Column(String, nullable=False, default="pending")  # pending, invoiced, paid, disputed
    invoice_number = Column(String, nullable=True)
    invoice_date = Column(DateTime, nullable=True)
    due_date = Column(DateTime, nullable=True)
    paid_date = Column(DateTime, nullable=True)

    customer_name = Column(String, nullable=False)
    customer_terms = Column(String, nullable=False, default="NET30")

    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    total_accessorials = Column(Numeric(12, 2), nullable=False, default=0)
    total_expenses = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)

    billing_notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    accessorials = relationship("LoadAccessorial", back_populates="billing", cascade="all, delete-orphan")
    expenses = relationship("LoadExpense", back_populates="billing", cascade="all, delete-orphan")


class LoadAccessorial(Base):
    """Accessorial charges associated with a load (detention, lumper, etc.)"""
    __tablename__ = "load_accessorial"

    id = Column(String, primary_key=True)
    load_id = Column(String, ForeignKey("freight_load.id"), nullable=False, index=True)
    billing_id = Column(String, ForeignKey("load_billing.id"), nullable=False, index=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)

    charge_type = Column(String, nullable=False)  # detention, layover, lumper, tarp, fuel_surcharge, etc.
    description = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Numeric(10, 2), nullable=False, default=1)
    is_billable = Column(Boolean, nullable=False, default=True)
    customer_approved = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    billing = relationship("LoadBilling", back_populates="accessorials")


class LoadExpense(Base):
    __tablename__ = "load_expense"

    id = Column(String, primary_key=True)
    load_id = Column(String, ForeignKey("freight_load.id"), nullable=False, index=True)
    billing_id = Column(String, ForeignKey("load_billing.id"), nullable=False, index=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)

    category = Column(String, nullable=False)  # fuel, tolls, permits, repairs, lumper, parking
    description = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    driver_id = Column(String, ForeignKey("driver.id"), nullable=True)
    vendor = Column(String, nullable=True)
    reimbursement_status = Column(String, nullable=False, default="pending")  # pending, approved, paid, denied

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    billing = relationship("LoadBilling", back_populates="expenses")
