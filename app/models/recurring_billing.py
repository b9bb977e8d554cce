from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text, UniqueConstraint, func

from app.models.base import Base

FREQUENCIES = ("weekly", "bi-weekly", "monthly", "quarterly", "yearly")
ONE_TIME_TEMPLATE_ID = "one-time"


class RecurringInvoiceTemplate(Base):
    __tablename__ = "recurring_invoice_template"

    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)
    customer_id = Column(String, nullable=False, index=True)

    template_name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)  # percent
    frequency = Column(String, nullable=False)
    terms = Column(String, nullable=False, default="Net 30")
    line_items = Column(JSON, nullable=False, default=list)

    start_date = Column(Date, nullable=False)
    next_run_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True)
    last_invoice_date = Column(Date, nullable=True)
    invoice_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())


class SubscriptionInvoice(Base):
    """Invoice materialized from a recurring template (or a one-time charge)."""
    __tablename__ = "subscription_invoice"
    __table_args__ = (
        UniqueConstraint("company_id", "invoice_number", name="uq_subscription_invoice_company_number"),
    )

    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)
    customer_id = Column(String, nullable=False, index=True)
    # Either a template id or ONE_TIME_TEMPLATE_ID, so no foreign key
    recurring_template_id = Column(String, nullable=False, index=True)

    invoice_number = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default="draft")  # draft, sent, paid, overdue, cancelled

    created_at = Column(DateTime, nullable=False)
