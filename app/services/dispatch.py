from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.tenant_isolation import EntityNotFoundError, get_entity_by_id, scoped_select
from app.models.driver import Driver
from app.models.equipment import Truck
from app.models.load import TRAILER_FIELDS, DispatchLeg, Load, LoadAssignment
from app.schemas.dispatch import (
    DispatchCalendarEntry,
    DispatchCalendarResponse,
    DispatchLegCreate,
    DispatchLegResponse,
    DriverMobileResponse,
    DriverMobileStop,
    LoadDispatchResult,
)
from app.schemas.load import LoadCreate

logger = logging.getLogger(__name__)

# Columns copied from the payload regardless of trailer type
_BASE_LOAD_FIELDS = (
    "priority",
    "customer_name",
    "customer_contact",
    "customer_phone",
    "customer_email",
    "pickup_location",
    "pickup_address",
    "pickup_city",
    "pickup_state",
    "pickup_date",
    "pickup_time",
    "delivery_location",
    "delivery_address",
    "delivery_city",
    "delivery_state",
    "delivery_date",
    "delivery_time",
    "commodity",
    "weight",
    "pieces",
    "rate",
    "rate_type",
    "miles",
    "assigned_driver_id",
    "assigned_truck_id",
    "notes",
    "trailer_type",
)


class DispatchError(Exception):
    """Raised when a load and its dispatch plan could not be stored."""


def build_load_number() -> str:
    return f"LD-{datetime.utcnow():%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


def unique_driver_ids(legs: List[DispatchLegCreate]) -> List[str]:
    """Distinct non-empty driver ids across the legs, in first-appearance order."""
    seen: Dict[str, None] = {}
    for leg in legs:
        if leg.driver_id and leg.driver_id not in seen:
            seen[leg.driver_id] = None
    return list(seen)


class DispatchService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    def _build_load(self, company_id: str, payload: LoadCreate) -> Load:
        values = {field: getattr(payload, field) for field in _BASE_LOAD_FIELDS}
        # Only the fields of the selected trailer type are kept
        for field in TRAILER_FIELDS.get(payload.trailer_type or "", ()):
            values[field] = getattr(payload, field)

        return Load(
            id=str(uuid.uuid4()),
            company_id=company_id,
            load_number=payload.load_number or build_load_number(),
            status="pending",
            is_multi_driver_load=payload.is_multi_driver_load,
            dispatch_status="planning",
            **values,
        )

    def _build_legs(self, load: Load, legs: List[DispatchLegCreate]) -> List[DispatchLeg]:
        return [
            DispatchLeg(
                id=str(uuid.uuid4()),
                load_id=load.id,
                company_id=load.company_id,
                driver_id=leg.driver_id or None,
                truck_id=leg.truck_id,
                trailer_id=leg.trailer_id,
                chassis_id=leg.chassis_id,
                action_type=leg.action_type,
                location=leg.location,
                eta=leg.eta,
                etd=leg.etd,
                notes=leg.notes,
                completed=False,
                leg_order=index + 1,
            )
            for index, leg in enumerate(legs)
        ]

    def _build_assignments(self, load: Load, legs: List[DispatchLegCreate]) -> List[LoadAssignment]:
        assignments = []
        for driver_id in unique_driver_ids(legs):
            driver_legs = [(index + 1, leg) for index, leg in enumerate(legs) if leg.driver_id == driver_id]
            leg_numbers = [str(order) for order, _ in driver_legs]
            first_leg = driver_legs[0][1]
            assignments.append(
                LoadAssignment(
                    id=str(uuid.uuid4()),
                    load_id=load.id,
                    company_id=load.company_id,
                    driver_id=driver_id,
                    truck_id=first_leg.truck_id,
                    trailer_id=first_leg.trailer_id,
                    status="assigned",
                    assignment_notes=f"Assigned to leg(s) {', '.join(leg_numbers)}",
                )
            )
        return assignments

    async def _check_references(self, company_id: str, model, ids: List[str], label: str) -> None:
        """Every referenced driver or truck must belong to the company."""
        wanted = {entity_id for entity_id in ids if entity_id}
        if not wanted:
            return
        result = await self.db.execute(
            select(model.id).where(model.company_id == company_id, model.id.in_(wanted))
        )
        missing = wanted - set(result.scalars().all())
        if missing:
            raise EntityNotFoundError(f"{label} not found: {', '.join(sorted(missing))}")

    async def _check_load_number(self, company_id: str, load_number: Optional[str]) -> None:
        if not load_number:
            return
        result = await self.db.execute(
            select(Load.id).where(Load.company_id == company_id, Load.load_number == load_number)
        )
        if result.first() is not None:
            raise ValueError(f"Load number {load_number} already exists")

    async def create_load_with_dispatch(self, company_id: str, payload: LoadCreate) -> LoadDispatchResult:
        """
        Store a load and, for multi-driver loads, its legs and driver assignments.

        Drivers, trucks and the load number are checked first: a foreign or
        unknown driver or truck raises ``EntityNotFoundError`` and a load number
        already used by the company raises ``ValueError``. After that all rows
        are written in one transaction: on any failure nothing is persisted and
        ``DispatchError`` is raised.
        """
        plan_legs = payload.dispatch_legs if payload.is_multi_driver_load else []
        await self._check_references(
            company_id, Driver, [payload.assigned_driver_id] + [leg.driver_id for leg in plan_legs], "Driver"
        )
        await self._check_references(
            company_id, Truck, [payload.assigned_truck_id] + [leg.truck_id for leg in plan_legs], "Truck"
        )
        await self._check_load_number(company_id, payload.load_number)

        load = self._build_load(company_id, payload)
        load_id = load.id
        legs: List[DispatchLeg] = []
        assignments: List[LoadAssignment] = []

        try:
            self.db.add(load)
            await self.db.flush()

            if plan_legs:
                legs = self._build_legs(load, plan_legs)
                self.db.add_all(legs)
                await self.db.flush()

                assignments = self._build_assignments(load, plan_legs)
                self.db.add_all(assignments)
                load.dispatch_status = "assigned"
                await self.db.flush()

            await self.db.commit()
        except Exception as exc:
            await self.db.rollback()
            logger.exception(
                "Failed to create load",
                extra={"company_id": company_id, "load_id": load_id, "error": str(exc)},
            )
            raise DispatchError("Failed to create load") from exc

        logger.info(
            "load_created",
            extra={"company_id": company_id, "load_id": load.id, "legs": len(legs), "assignments": len(assignments)},
        )
        return LoadDispatchResult(
            load_id=load.id,
            load_number=load.load_number,
            leg_count=len(legs),
            assignment_count=len(assignments),
        )

    async def get_dispatch_legs(self, company_id: str, load_id: str) -> List[DispatchLeg]:
        result = await self.db.execute(
            scoped_select(DispatchLeg, company_id)
            .where(DispatchLeg.load_id == load_id)
            .order_by(DispatchLeg.leg_order)
        )
        return list(result.scalars().all())

    async def get_driver_assignments(self, company_id: str, driver_id: str) -> List[LoadAssignment]:
        result = await self.db.execute(
            scoped_select(LoadAssignment, company_id)
            .where(LoadAssignment.driver_id == driver_id)
            .order_by(LoadAssignment.created_at.desc())
        )
        return list(result.scalars().all())

    async def complete_dispatch_leg(self, company_id: str, leg_id: str) -> DispatchLeg:
        """Mark a leg complete. Repeating the call re-stamps the arrival time."""
        leg = await get_entity_by_id(self.db, DispatchLeg, leg_id, company_id, error_message="Dispatch leg not found")
        now = datetime.utcnow()
        leg.completed = True
        leg.actual_arrival = now
        leg.updated_at = now

        load = await get_entity_by_id(self.db, Load, leg.load_id, company_id)
        await self.db.flush()
        remaining = await self.db.execute(
            scoped_select(DispatchLeg, company_id).where(
                DispatchLeg.load_id == load.id,
                DispatchLeg.completed.is_(False),
            )
        )
        load.dispatch_status = "in_progress" if remaining.scalars().first() else "completed"

        await self.db.commit()
        await self.db.refresh(leg)
        return leg

    async def get_dispatch_calendar(
        self,
        company_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> DispatchCalendarResponse:
        """
        Legs with their load, driver and truck, limited to the date range.

        A leg is placed on the calendar by its ETA; legs without an ETA use
        the load's pickup date.
        """
        stmt = (
            select(DispatchLeg, Load, Driver, Truck)
            .join(Load, and_(Load.id == DispatchLeg.load_id, Load.company_id == company_id))
            .outerjoin(Driver, and_(Driver.id == DispatchLeg.driver_id, Driver.company_id == company_id))
            .outerjoin(Truck, and_(Truck.id == DispatchLeg.truck_id, Truck.company_id == company_id))
            .where(DispatchLeg.company_id == company_id)
            .order_by(Load.pickup_date, DispatchLeg.load_id, DispatchLeg.leg_order)
        )
        if start_date is not None:
            stmt = stmt.where(
                or_(
                    DispatchLeg.eta >= datetime.combine(start_date, time.min),
                    and_(DispatchLeg.eta.is_(None), Load.pickup_date >= start_date),
                )
            )
        if end_date is not None:
            stmt = stmt.where(
                or_(
                    DispatchLeg.eta < datetime.combine(end_date + timedelta(days=1), time.min),
                    and_(DispatchLeg.eta.is_(None), Load.pickup_date <= end_date),
                )
            )

        result = await self.db.execute(stmt)
        entries = [
            DispatchCalendarEntry(
                leg_id=leg.id,
                load_id=load.id,
                load_number=load.load_number,
                customer_name=load.customer_name,
                leg_order=leg.leg_order,
                action_type=leg.action_type,
                location=leg.location,
                eta=leg.eta,
                etd=leg.etd,
                completed=leg.completed,
                pickup_date=load.pickup_date,
                driver_id=leg.driver_id,
                driver_name=driver.full_name if driver else None,
                truck_id=leg.truck_id,
                truck_number=truck.truck_number if truck else None,
            )
            for leg, load, driver, truck in result.all()
        ]
        return DispatchCalendarResponse(
            start_date=start_date,
            end_date=end_date,
            entries=entries,
            generated_at=datetime.utcnow(),
        )

    async def get_driver_mobile_data(self, company_id: str, driver_id: str) -> DriverMobileResponse:
        """What is left to do for a driver: incomplete legs with their load."""
        result = await self.db.execute(
            select(DispatchLeg, Load)
            .join(Load, and_(Load.id == DispatchLeg.load_id, Load.company_id == company_id))
            .where(
                DispatchLeg.company_id == company_id,
                DispatchLeg.driver_id == driver_id,
                DispatchLeg.completed.is_(False),
            )
            .order_by(Load.pickup_date, Load.created_at, DispatchLeg.leg_order)
        )
        stops = [
            DriverMobileStop(
                leg=DispatchLegResponse.model_validate(leg),
                load_id=load.id,
                load_number=load.load_number,
                customer_name=load.customer_name,
                pickup_location=load.pickup_location,
                delivery_location=load.delivery_location,
                load_status=load.status,
            )
            for leg, load in result.all()
        ]
        return DriverMobileResponse(driver_id=driver_id, remaining_legs=stops)
