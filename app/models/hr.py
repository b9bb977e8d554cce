from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from app.models.base import Base


class Employee(Base):
    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)
    employee_number = Column(String, nullable=False)

    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=True)

    hire_date = Column(Date, nullable=False)
    termination_date = Column(Date, nullable=True)
    department = Column(String, nullable=True)
    position = Column(String, nullable=True)
    employment_type = Column(String, nullable=False, default="full_time")  # full_time, part_time, contractor
    status = Column(String, nullable=False, default="active")  # active, inactive, on_leave, terminated

    pay_type = Column(String, nullable=False)  # hourly, salary
    pay_rate = Column(Numeric(10, 2), nullable=False)  # hourly rate or annual salary
    pay_frequency = Column(String, nullable=False, default="bi_weekly")
    overtime_eligible = Column(Boolean, nullable=False, default=True)

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    paystubs = relationship("EmployeePaystub", back_populates="employee")


class PayrollRun(Base):
    __tablename__ = "payroll_run"

    id = Column(String, primary_key=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)

    payroll_date = Column(Date, nullable=False)
    pay_period_start = Column(Date, nullable=False)
    pay_period_end = Column(Date, nullable=False)
    check_date = Column(Date, nullable=False)
    payroll_type = Column(String, nullable=False, default="regular")  # regular, bonus, correction
    status = Column(String, nullable=False, default="draft")  # draft, approved, paid, cancelled
    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime, nullable=True)

    total_gross_pay = Column(Numeric(12, 2), nullable=False, default=0)
    total_net_pay = Column(Numeric(12, 2), nullable=False, default=0)
    total_taxes = Column(Numeric(12, 2), nullable=False, default=0)
    total_deductions = Column(Numeric(12, 2), nullable=False, default=0)
    employee_count = Column(Integer, nullable=False, default=0)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    paystubs = relationship("EmployeePaystub", back_populates="payroll_run", cascade="all, delete-orphan")


class EmployeePaystub(Base):
    __tablename__ = "employee_paystub"

    id = Column(String, primary_key=True)
    payroll_run_id = Column(String, ForeignKey("payroll_run.id"), nullable=False, index=True)
    employee_id = Column(String, ForeignKey("employee.id"), nullable=False, index=True)
    company_id = Column(String, ForeignKey("company.id"), nullable=False, index=True)

    pay_period_start = Column(Date, nullable=False)
    pay_period_end = Column(Date, nullable=False)
    pay_date = Column(Date, nullable=False)

    regular_hours = Column(Numeric(6, 2), nullable=False, default=0)
    overtime_hours = Column(Numeric(6, 2), nullable=False, default=0)
    regular_pay = Column(Numeric(10, 2), nullable=False, default=0)
    overtime_pay = Column(Numeric(10, 2), nullable=False, default=0)
    bonus_pay = Column(Numeric(10, 2), nullable=False, default=0)
    gross_pay = Column(Numeric(10, 2), nullable=False)

    federal_income_tax = Column(Numeric(10, 2), nullable=False, default=0)
    state_income_tax = Column(Numeric(10, 2), nullable=False, default=0)
    social_security_tax = Column(Numeric(10, 2), nullable=False, default=0)
    medicare_tax = Column(Numeric(10, 2), nullable=False, default=0)
    total_taxes = Column(Numeric(10, 2), nullable=False, default=0)
    total_deductions = Column(Numeric(10, 2), nullable=False, default=0)
    net_pay = Column(Numeric(10, 2), nullable=False)

    ytd_gross_pay = Column(Numeric(12, 2), nullable=False, default=0)
    ytd_net_pay = Column(Numeric(12, 2), nullable=False, default=0)
    ytd_federal_income_tax = Column(Numeric(12, 2), nullable=False, default=0)
    ytd_state_income_tax = Column(Numeric(12, 2), nullable=False, default=0)
    ytd_social_security_tax = Column(Numeric(12, 2), nullable=False, default=0)
    ytd_medicare_tax = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    payroll_run = relationship("PayrollRun", back_populates="paystubs")
    employee = relationship("Employee", back_populates="paystubs")
