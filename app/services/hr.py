from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.tenant_isolation import get_entity_by_id, scoped_select
from app.models.hr import Employee
from app.schemas.payroll import EmployeeCreate, EmployeeUpdate

logger = logging.getLogger(__name__)


class HRService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _next_employee_number(self, company_id: str) -> str:
        result = await self.db.execute(
            select(func.count()).select_from(Employee).where(Employee.company_id == company_id)
        )
        return f"EMP-{int(result.scalar() or 0) + 1:05d}"

    async def create_employee(self, company_id: str, payload: EmployeeCreate) -> Employee:
        duplicate = await self.db.execute(
            scoped_select(Employee, company_id).where(func.lower(Employee.email) == payload.email.lower())
        )
        if duplicate.scalars().first():
            raise ValueError("An employee with this email already exists")

        employee = Employee(
            id=str(uuid.uuid4()),
            company_id=company_id,
            employee_number=await self._next_employee_number(company_id),
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            phone=payload.phone,
            hire_date=payload.hire_date,
            department=payload.department,
            position=payload.position,
            employment_type=payload.employment_type,
            status="active",
            pay_type=payload.pay_type,
            pay_rate=Decimal(str(payload.pay_rate)),
            pay_frequency=payload.pay_frequency,
            overtime_eligible=payload.overtime_eligible,
            is_active=True,
        )
        self.db.add(employee)
        await self.db.commit()
        await self.db.refresh(employee)
        logger.info("employee_created", extra={"company_id": company_id, "employee_id": employee.id})
        return employee

    async def list_employees(self, company_id: str, status_filter: Optional[str] = None) -> List[Employee]:
        query = scoped_select(Employee, company_id).order_by(Employee.last_name, Employee.first_name)
        if status_filter:
            query = query.where(Employee.status == status_filter)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_employee(self, company_id: str, employee_id: str) -> Employee:
        return await get_entity_by_id(self.db, Employee, employee_id, company_id, error_message="Employee not found")

    async def update_employee(self, company_id: str, employee_id: str, payload: EmployeeUpdate) -> Employee:
        employee = await self.get_employee(company_id, employee_id)
        if employee.status == "terminated":
            raise ValueError("Cannot update a terminated employee")

        updates = payload.model_dump(exclude_unset=True)
        if "pay_rate" in updates and updates["pay_rate"] is not None:
            updates["pay_rate"] = Decimal(str(updates["pay_rate"]))
        for field, value in updates.items():
            setattr(employee, field, value)
        if "status" in updates:
            employee.is_active = employee.status == "active"

        await self.db.commit()
        await self.db.refresh(employee)
        return employee

    async def terminate_employee(
        self,
        company_id: str,
        employee_id: str,
        termination_date: Optional[date] = None,
    ) -> Employee:
        """Employees are never deleted; terminated ones drop out of payroll runs."""
        employee = await self.get_employee(company_id, employee_id)
        employee.status = "terminated"
        employee.is_active = False
        employee.termination_date = termination_date or datetime.utcnow().date()
        await self.db.commit()
        await self.db.refresh(employee)
        logger.info("employee_terminated", extra={"company_id": company_id, "employee_id": employee_id})
        return employee
