"""
Payroll and HR tests: paystub math, overtime, year-to-date accumulation and
employee lifecycle.
"""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.core.tenant_isolation import EntityNotFoundError
from app.schemas.payroll import EmployeeCreate, EmployeeHours, EmployeeUpdate, PayrollRunCreate
from app.services.hr import HRService
from app.services.payroll import PayrollService, calculate_paystub, next_payday, overtime_threshold

from tests.conftest import make_employee


def _employee(pay_type="hourly", pay_rate="25.00", pay_frequency="weekly", overtime_eligible=True):
    return SimpleNamespace(
        pay_type=pay_type,
        pay_rate=Decimal(pay_rate),
        pay_frequency=pay_frequency,
        overtime_eligible=overtime_eligible,
    )


def _run(check_date: date, hours=None) -> PayrollRunCreate:
    return PayrollRunCreate(
        period_start=check_date.replace(day=1),
        period_end=check_date,
        check_date=check_date,
        hours=hours or [],
    )


class TestCalculatePaystub:
    def test_hourly_overtime_past_weekly_threshold(self):
        figures = calculate_paystub(_employee(), hours=45)

        assert figures["regular_hours"] == Decimal("40.00")
        assert figures["overtime_hours"] == Decimal("5.00")
        assert figures["regular_pay"] == Decimal("1000.00")
        assert figures["overtime_pay"] == Decimal("187.50")
        assert figures["gross_pay"] == Decimal("1187.50")
        assert figures["federal_income_tax"] == Decimal("261.25")
        assert figures["state_income_tax"] == Decimal("71.25")
        assert figures["net_pay"] == figures["gross_pay"] - figures["total_taxes"]

    def test_overtime_threshold_scales_with_pay_frequency(self):
        assert overtime_threshold("weekly") == Decimal("40.00")
        assert overtime_threshold("bi_weekly") == Decimal("80.00")

    def test_ineligible_employee_gets_straight_time(self):
        figures = calculate_paystub(_employee(overtime_eligible=False), hours=45)

        assert figures["overtime_hours"] == 0
        assert figures["regular_pay"] == Decimal("1125.00")

    def test_salary_is_split_across_pay_periods(self):
        figures = calculate_paystub(_employee("salary", "52000", "weekly"), hours=50, bonus_pay=250)

        assert figures["regular_pay"] == Decimal("1000.00")
        assert figures["overtime_pay"] == 0
        assert figures["gross_pay"] == Decimal("1250.00")

    def test_unknown_pay_type_and_frequency_are_rejected(self):
        with pytest.raises(ValueError):
            calculate_paystub(_employee(pay_type="commission"), hours=10)
        with pytest.raises(ValueError):
            calculate_paystub(_employee(pay_frequency="daily"), hours=10)

    def test_next_payday_is_the_following_friday(self):
        assert next_payday(date(2026, 10, 19)) == date(2026, 10, 23)
        assert next_payday(date(2026, 10, 23)) == date(2026, 10, 30)


class TestPayrollRuns:
    @pytest.mark.asyncio
    async def test_run_creates_stubs_and_totals(self, db_session, company):
        driver = await make_employee(db_session, company.id, "pat@foo.com")
        clerk = await make_employee(db_session, company.id, "sam@foo.com", pay_type="salary", pay_rate="52000")
        service = PayrollService(db_session)

        run = await service.create_payroll_run(
            company.id, _run(date(2026, 1, 9), [EmployeeHours(employee_id=driver.id, hours=45)])
        )

        assert run.status == "draft"
        assert run.employee_count == 2
        assert run.total_gross_pay == Decimal("2187.50")
        stubs = await service.get_paystubs(company.id, run_id=run.id)
        assert sorted(stub.employee_id for stub in stubs) == sorted([driver.id, clerk.id])

    @pytest.mark.asyncio
    async def test_zero_gross_employees_are_skipped(self, db_session, company):
        await make_employee(db_session, company.id, "idle@foo.com")
        service = PayrollService(db_session)

        run = await service.create_payroll_run(company.id, _run(date(2026, 1, 9)))

        assert run.employee_count == 0
        assert await service.get_paystubs(company.id, run_id=run.id) == []

    @pytest.mark.asyncio
    async def test_year_to_date_accumulates_within_the_year(self, db_session, company):
        employee = await make_employee(db_session, company.id, "pat@foo.com")
        service = PayrollService(db_session)
        hours = [EmployeeHours(employee_id=employee.id, hours=40)]

        await service.create_payroll_run(company.id, _run(date(2025, 12, 26), hours))
        await service.create_payroll_run(company.id, _run(date(2026, 1, 9), hours))
        second = await service.create_payroll_run(company.id, _run(date(2026, 1, 16), hours))

        stub = (await service.get_paystubs(company.id, run_id=second.id))[0]
        assert stub.gross_pay == Decimal("1000.00")
        assert Decimal(str(stub.ytd_gross_pay)) == Decimal("2000.00")
        assert Decimal(str(stub.ytd_federal_income_tax)) == Decimal("440.00")

    @pytest.mark.asyncio
    async def test_hours_for_unknown_employee_are_rejected(self, db_session, company, other_company):
        outsider = await make_employee(db_session, other_company.id, "x@bar.com")
        service = PayrollService(db_session)

        with pytest.raises(EntityNotFoundError):
            await service.create_payroll_run(
                company.id, _run(date(2026, 1, 9), [EmployeeHours(employee_id=outsider.id, hours=10)])
            )

    @pytest.mark.asyncio
    async def test_period_must_not_end_before_it_starts(self, db_session, company):
        service = PayrollService(db_session)
        payload = PayrollRunCreate(period_start=date(2026, 1, 9), period_end=date(2026, 1, 2), check_date=date(2026, 1, 9))

        with pytest.raises(ValueError):
            await service.create_payroll_run(company.id, payload)

    @pytest.mark.asyncio
    async def test_approval_and_summary(self, db_session, company):
        employee = await make_employee(db_session, company.id, "pat@foo.com")
        service = PayrollService(db_session)
        hours = [EmployeeHours(employee_id=employee.id, hours=40)]
        first = await service.create_payroll_run(company.id, _run(date(2026, 1, 9), hours))
        await service.create_payroll_run(company.id, _run(date(2026, 1, 16), hours))

        approved = await service.approve_payroll_run(company.id, first.id, "user-1")
        assert approved.status == "approved"
        assert approved.approved_by == "user-1"
        with pytest.raises(ValueError):
            await service.approve_payroll_run(company.id, first.id, "user-1")

        summary = await service.payroll_summary(company.id, today=date(2026, 1, 20))
        assert summary.total_employees == 1
        assert summary.ytd_gross_pay == 1000.0
        assert summary.draft_runs == 1
        assert summary.approved_runs == 1
        assert summary.last_processed == date(2026, 1, 9)
        assert summary.upcoming_payroll == date(2026, 1, 23)


class TestHRService:
    @pytest.mark.asyncio
    async def test_create_assigns_sequential_numbers(self, db_session, company):
        service = HRService(db_session)
        payload = dict(first_name="Pat", last_name="Lee", hire_date=date(2026, 1, 5), pay_type="hourly", pay_rate=24)

        first = await service.create_employee(company.id, EmployeeCreate(email="pat@foo.com", **payload))
        second = await service.create_employee(company.id, EmployeeCreate(email="lee@foo.com", **payload))

        assert first.employee_number == "EMP-00001"
        assert second.employee_number == "EMP-00002"
        with pytest.raises(ValueError):
            await service.create_employee(company.id, EmployeeCreate(email="PAT@foo.com", **payload))

    @pytest.mark.asyncio
    async def test_update_and_terminate(self, db_session, company):
        employee = await make_employee(db_session, company.id, "pat@foo.com")
        service = HRService(db_session)

        updated = await service.update_employee(company.id, employee.id, EmployeeUpdate(pay_rate=27.5, status="on_leave"))
        assert updated.pay_rate == Decimal("27.50")
        assert updated.is_active is False

        terminated = await service.terminate_employee(company.id, employee.id, date(2026, 2, 1))
        assert terminated.status == "terminated"
        assert terminated.termination_date == date(2026, 2, 1)
        with pytest.raises(ValueError):
            await service.update_employee(company.id, employee.id, EmployeeUpdate(position="Dispatcher"))

        assert await service.list_employees(company.id, "active") == []

    @pytest.mark.asyncio
    async def test_employees_are_scoped_to_company(self, db_session, company, other_company):
        employee = await make_employee(db_session, company.id, "pat@foo.com")
        service = HRService(db_session)

        with pytest.raises(EntityNotFoundError):
            await service.get_employee(other_company.id, employee.id)
        assert await service.list_employees(other_company.id) == []
