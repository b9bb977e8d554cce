"""Payroll service - paystub calculation engine, payroll runs and YTD totals."""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.tenant_isolation import EntityNotFoundError, get_entity_by_id, scoped_select
from app.models.hr import Employee, EmployeePaystub, PayrollRun
from app.schemas.payroll import EmployeeHours, PayrollRunCreate, PayrollSummary

logger = logging.getLogger(__name__)
settings = get_settings()

CENT = Decimal("0.01")
ZERO = Decimal("0")

# Figures carried forward into the year-to-date columns
YTD_FIELDS = {
    "ytd_gross_pay": "gross_pay",
    "ytd_net_pay": "net_pay",
    "ytd_federal_income_tax": "federal_income_tax",
    "ytd_state_income_tax": "state_income_tax",
    "ytd_social_security_tax": "social_security_tax",
    "ytd_medicare_tax": "medicare_tax",
}


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENT)


def periods_per_year(pay_frequency: str) -> int:
    try:
        return settings.pay_periods_per_year[pay_frequency]
    except KeyError:
        raise ValueError(f"Unsupported pay frequency: {pay_frequency}") from None


def overtime_threshold(pay_frequency: str) -> Decimal:
    """Regular hours allowed in one pay period before overtime applies."""
    weeks = Decimal("52") / Decimal(periods_per_year(pay_frequency))
    return _cents(Decimal(str(settings.overtime_weekly_threshold_hours)) * weeks)


def calculate_paystub(employee: Employee, hours: float = 0, bonus_pay: float = 0) -> Dict[str, Decimal]:
    """
    Period figures for one employee.

    Hourly employees are paid for the hours worked, with hours past the
    period threshold paid at the overtime multiplier when eligible. Salaried
    employees get their annual salary divided by the periods per year.
    Withholding is a flat percentage of gross per tax.
    """
    rate = Decimal(str(employee.pay_rate))
    worked = Decimal(str(hours))
    bonus = Decimal(str(bonus_pay))

    if employee.pay_type == "salary":
        regular_hours, overtime_hours = worked, ZERO
        regular_pay = rate / periods_per_year(employee.pay_frequency)
        overtime_pay = ZERO
    elif employee.pay_type == "hourly":
        threshold = overtime_threshold(employee.pay_frequency)
        if employee.overtime_eligible and worked > threshold:
            regular_hours, overtime_hours = threshold, worked - threshold
        else:
            regular_hours, overtime_hours = worked, ZERO
        regular_pay = regular_hours * rate
        overtime_pay = overtime_hours * rate * Decimal(str(settings.overtime_multiplier))
    else:
        raise ValueError(f"Unsupported pay type: {employee.pay_type}")

    regular_pay = _cents(regular_pay)
    overtime_pay = _cents(overtime_pay)
    gross = regular_pay + overtime_pay + _cents(bonus)

    federal = _cents(gross * Decimal(str(settings.federal_withholding_rate)))
    state = _cents(gross * Decimal(str(settings.state_withholding_rate)))
    social_security = _cents(gross * Decimal(str(settings.social_security_rate)))
    medicare = _cents(gross * Decimal(str(settings.medicare_rate)))
    total_taxes = federal + state + social_security + medicare
    deductions = ZERO

    return {
        "regular_hours": _cents(regular_hours),
        "overtime_hours": _cents(overtime_hours),
        "regular_pay": regular_pay,
        "overtime_pay": overtime_pay,
        "bonus_pay": _cents(bonus),
        "gross_pay": gross,
        "federal_income_tax": federal,
        "state_income_tax": state,
        "social_security_tax": social_security,
        "medicare_tax": medicare,
        "total_taxes": total_taxes,
        "total_deductions": deductions,
        "net_pay": gross - total_taxes - deductions,
    }


def next_payday(today: date) -> date:
    """Payroll goes out on Fridays."""
    days_until_friday = (4 - today.weekday()) % 7 or 7
    return today + timedelta(days=days_until_friday)


class PayrollService:
    """Service for payroll calculation and management."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _prior_ytd(self, company_id: str, employee_id: str, check_date: date) -> Dict[str, Decimal]:
        """Sum of the employee's earlier paystubs paid in the same calendar year."""
        columns = [func.coalesce(func.sum(getattr(EmployeePaystub, source)), 0) for source in YTD_FIELDS.values()]
        result = await self.db.execute(
            select(*columns)
            .join(PayrollRun, PayrollRun.id == EmployeePaystub.payroll_run_id)
            .where(
                EmployeePaystub.company_id == company_id,
                EmployeePaystub.employee_id == employee_id,
                EmployeePaystub.pay_date >= date(check_date.year, 1, 1),
                EmployeePaystub.pay_date <= check_date,
                PayrollRun.status != "cancelled",
            )
        )
        totals = result.one()
        return {ytd: Decimal(str(value or 0)) for ytd, value in zip(YTD_FIELDS, totals)}

    async def create_payroll_run(self, company_id: str, payload: PayrollRunCreate) -> PayrollRun:
        if payload.period_end < payload.period_start:
            raise ValueError("Pay period end must be on or after its start")

        result = await self.db.execute(
            scoped_select(Employee, company_id).where(Employee.status == "active").order_by(Employee.employee_number)
        )
        employees = {employee.id: employee for employee in result.scalars().all()}
        hours_by_employee: Dict[str, EmployeeHours] = {entry.employee_id: entry for entry in payload.hours}
        unknown = set(hours_by_employee) - set(employees)
        if unknown:
            raise EntityNotFoundError(f"Active employee not found: {', '.join(sorted(unknown))}")

        run = PayrollRun(
            id=str(uuid.uuid4()),
            company_id=company_id,
            payroll_date=datetime.utcnow().date(),
            pay_period_start=payload.period_start,
            pay_period_end=payload.period_end,
            check_date=payload.check_date,
            payroll_type=payload.payroll_type,
            status="draft",
            notes=payload.notes,
        )
        self.db.add(run)

        totals = {"gross": ZERO, "net": ZERO, "taxes": ZERO, "deductions": ZERO}
        stub_count = 0
        for employee in employees.values():
            entry = hours_by_employee.get(employee.id)
            figures = calculate_paystub(
                employee,
                hours=entry.hours if entry else 0,
                bonus_pay=entry.bonus_pay if entry else 0,
            )
            if figures["gross_pay"] <= 0:
                continue

            prior = await self._prior_ytd(company_id, employee.id, payload.check_date)
            ytd = {field: prior[field] + figures[source] for field, source in YTD_FIELDS.items()}
            self.db.add(
                EmployeePaystub(
                    id=str(uuid.uuid4()),
                    payroll_run_id=run.id,
                    employee_id=employee.id,
                    company_id=company_id,
                    pay_period_start=payload.period_start,
                    pay_period_end=payload.period_end,
                    pay_date=payload.check_date,
                    **figures,
                    **ytd,
                )
            )
            totals["gross"] += figures["gross_pay"]
            totals["net"] += figures["net_pay"]
            totals["taxes"] += figures["total_taxes"]
            totals["deductions"] += figures["total_deductions"]
            stub_count += 1

        run.total_gross_pay = totals["gross"]
        run.total_net_pay = totals["net"]
        run.total_taxes = totals["taxes"]
        run.total_deductions = totals["deductions"]
        run.employee_count = stub_count

        await self.db.commit()
        await self.db.refresh(run)
        logger.info(
            "payroll_run_created",
            extra={"company_id": company_id, "payroll_run_id": run.id, "employees": stub_count},
        )
        return run

    async def approve_payroll_run(self, company_id: str, run_id: str, approved_by: str) -> PayrollRun:
        run = await get_entity_by_id(self.db, PayrollRun, run_id, company_id, error_message="Payroll run not found")
        if run.status != "draft":
            raise ValueError(f"Cannot approve a payroll run in status {run.status}")
        run.status = "approved"
        run.approved_by = approved_by
        run.approved_at = datetime.utcnow()
        await self.db.commit()
        await self.db.refresh(run)
        return run

    async def list_payroll_runs(self, company_id: str) -> List[PayrollRun]:
        result = await self.db.execute(
            scoped_select(PayrollRun, company_id).order_by(PayrollRun.check_date.desc(), PayrollRun.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_paystubs(
        self,
        company_id: str,
        run_id: Optional[str] = None,
        employee_id: Optional[str] = None,
    ) -> List[EmployeePaystub]:
        query = scoped_select(EmployeePaystub, company_id).order_by(EmployeePaystub.pay_date.desc())
        if run_id:
            query = query.where(EmployeePaystub.payroll_run_id == run_id)
        if employee_id:
            query = query.where(EmployeePaystub.employee_id == employee_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def payroll_summary(self, company_id: str, today: Optional[date] = None) -> PayrollSummary:
        today = today or datetime.utcnow().date()
        employees = await self.db.execute(
            select(func.count()).select_from(Employee).where(
                Employee.company_id == company_id,
                Employee.status == "active",
            )
        )
        runs = [run for run in await self.list_payroll_runs(company_id) if run.check_date.year == today.year]
        counted = [run for run in runs if run.status in ("approved", "paid")]
        processed = [run.check_date for run in counted]

        return PayrollSummary(
            total_employees=int(employees.scalar() or 0),
            ytd_gross_pay=float(sum((Decimal(str(run.total_gross_pay)) for run in counted), ZERO)),
            ytd_net_pay=float(sum((Decimal(str(run.total_net_pay)) for run in counted), ZERO)),
            ytd_taxes_withheld=float(sum((Decimal(str(run.total_taxes)) for run in counted), ZERO)),
            draft_runs=sum(1 for run in runs if run.status == "draft"),
            approved_runs=len(counted),
            last_processed=max(processed) if processed else None,
            upcoming_payroll=next_payday(today),
        )
