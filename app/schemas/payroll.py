from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

PayType = Literal["hourly", "salary"]
PayFrequency = Literal["weekly", "bi_weekly", "semi_monthly", "monthly"]


class EmployeeCreate(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    hire_date: date
    department: Optional[str] = None
    position: Optional[str] = None
    employment_type: Literal["full_time", "part_time", "contractor"] = "full_time"
    pay_type: PayType
    pay_rate: float = Field(..., gt=0)  # hourly rate or annual salary
    pay_frequency: PayFrequency = "bi_weekly"
    overtime_eligible: bool = True


class EmployeeUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    status: Optional[Literal["active", "inactive", "on_leave"]] = None
    pay_type: Optional[PayType] = None
    pay_rate: Optional[float] = Field(default=None, gt=0)
    pay_frequency: Optional[PayFrequency] = None
    overtime_eligible: Optional[bool] = None


class EmployeeTermination(BaseModel):
    termination_date: Optional[date] = None


class EmployeeResponse(BaseModel):
    id: str
    employee_number: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    hire_date: date
    termination_date: Optional[date] = None
    department: Optional[str] = None
    position: Optional[str] = None
    employment_type: str
    status: str
    pay_type: str
    pay_rate: float
    pay_frequency: str
    overtime_eligible: bool
    is_active: bool

    model_config = {"from_attributes": True}


class EmployeeHours(BaseModel):
    employee_id: str
    hours: float = Field(default=0, ge=0)
    bonus_pay: float = Field(default=0, ge=0)


class PayrollRunCreate(BaseModel):
    period_start: date
    period_end: date
    check_date: date
    payroll_type: Literal["regular", "bonus", "correction"] = "regular"
    hours: List[EmployeeHours] = Field(default_factory=list)
    notes: Optional[str] = None


class PayrollRunResponse(BaseModel):
    id: str
    payroll_date: date
    pay_period_start: date
    pay_period_end: date
    check_date: date
    payroll_type: str
    status: str
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    total_gross_pay: float
    total_net_pay: float
    total_taxes: float
    total_deductions: float
    employee_count: int
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class PaystubResponse(BaseModel):
    id: str
    payroll_run_id: str
    employee_id: str
    pay_period_start: date
    pay_period_end: date
    pay_date: date
    regular_hours: float
    overtime_hours: float
    regular_pay: float
    overtime_pay: float
    bonus_pay: float
    gross_pay: float
    federal_income_tax: float
    state_income_tax: float
    social_security_tax: float
    medicare_tax: float
    total_taxes: float
    total_deductions: float
    net_pay: float
    ytd_gross_pay: float
    ytd_net_pay: float
    ytd_federal_income_tax: float
    ytd_state_income_tax: float
    ytd_social_security_tax: float
    ytd_medicare_tax: float

    model_config = {"from_attributes": True}


class PayrollSummary(BaseModel):
    total_employees: int
    ytd_gross_pay: float
    ytd_net_pay: float
    ytd_taxes_withheld: float
    draft_runs: int
    approved_runs: int
    last_processed: Optional[date] = None
    upcoming_payroll: date
