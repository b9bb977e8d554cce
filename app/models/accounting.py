from sqlalchemy import Column, Date, DateTime, ForeignKey, Numeric, String, func

from app.models.base import Base


class Invoice(Base):
    __tablename__ = "accounting_invoice"

    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)
    load_id = Column(String, ForeignKey("freight_load.id"), nullable=True, index=True)

    invoice_number = Column(String, nullable=False)
    customer_name = Column(String, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String, nullable=False, default="pending")  # pending, sent, paid, cancelled
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    paid_date = Column(Date, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())


class Bill(Base):
    __tablename__ = "accounting_bill"

    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)

    bill_number = Column(String, nullable=False)
    vendor_name = Column(String, nullable=True)
    category = Column(String, nullable=True)
    bill_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)
    paid_amount = Column(Numeric(12, 2), nullable=False, default=0)
    remaining_balance = Column(Numeric(12, 2), nullable=False, default=0)
    status = Column(String, nullable=False, default="pending")  # pending, partial, paid, overdue, cancelled

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
