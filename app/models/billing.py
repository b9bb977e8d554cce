"""
Subscription database models for Stripe integration
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, func
from sqlalchemy.orm import relationship

from app.models.base import Base


class Subscription(Base):
    """
    Tenant subscription to HaulBase
    Synced with Stripe subscription
    """

    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, unique=True, index=True)

    stripe_subscription_id = Column(String, nullable=True, unique=True, index=True)
    stripe_customer_id = Column(String, nullable=True, index=True)
    plan_id = Column(String, nullable=False, default="starter")  # starter, professional, enterprise
    plan_name = Column(String, nullable=False, default="Starter Plan")
    amount = Column(Numeric(10, 2), nullable=False, default=0)  # cents per billing cycle
    status = Column(String, nullable=False, default="active")  # active, trialing, past_due, canceled, unpaid
    billing_cycle = Column(String, nullable=False, default="monthly")  # monthly, yearly

    current_period_start = Column(DateTime, nullable=True)
    current_period_end = Column(DateTime, nullable=True)
    cancel_at_period_end = Column(Boolean, nullable=False, default=False)
    canceled_at = Column(DateTime, nullable=True)
    trial_start = Column(DateTime, nullable=True)
    trial_end = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    company = relationship("Company", back_populates="subscription")
    addons = relationship("SubscriptionAddon", back_populates="subscription", cascade="all, delete-orphan")


class SubscriptionAddon(Base):
    __tablename__ = "subscription_addon"

    id = Column(String, primary_key=True)
    subscription_id = Column(String, ForeignKey("subscription.id"), nullable=False, index=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)

    addon_id = Column(String, nullable=False)  # container_management, advanced_analytics, ...
    addon_name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # cents
    status = Column(String, nullable=False, default="active")  # active, removed
    added_at = Column(DateTime, nullable=False, server_default=func.now())
    removed_at = Column(DateTime, nullable=True)

    subscription = relationship("Subscription", back_populates="addons")
