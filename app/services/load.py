from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.tenant_isolation import get_entity_by_id, scoped_select
from app.models.driver import Driver
from app.models.equipment import Truck
from app.models.load import Load

logger = logging.getLogger(__name__)

# Loads are never deleted, only moved through this graph
ALLOWED_TRANSITIONS: Dict[str, Set[str]] = {
    "pending": {"dispatched", "cancelled"},
    "dispatched": {"in_transit", "cancelled"},
    "in_transit": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}


class LoadService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_loads(self, company_id: str, status_filter: Optional[str] = None) -> List[Load]:
        query = scoped_select(Load, company_id).order_by(Load.created_at.desc())
        if status_filter:
            query = query.where(Load.status == status_filter)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_load(self, company_id: str, load_id: str) -> Load:
        return await get_entity_by_id(self.db, Load, load_id, company_id, error_message="Load not found")

    async def update_status(self, company_id: str, load_id: str, new_status: str) -> Load:
        load = await self.get_load(company_id, load_id)
        if new_status == load.status:
            return load
        if new_status not in ALLOWED_TRANSITIONS.get(load.status, set()):
            raise ValueError(f"Cannot move load from {load.status} to {new_status}")

        now = datetime.utcnow()
        load.status = new_status
        if new_status == "dispatched":
            load.dispatched_at = now
        elif new_status == "in_transit":
            load.picked_up_at = now
        elif new_status == "delivered":
            load.delivered_at = now

        await self.db.commit()
        await self.db.refresh(load)
        logger.info("load_status_changed", extra={"company_id": company_id, "load_id": load_id, "status": new_status})
        return load

    async def assign_driver(
        self,
        company_id: str,
        load_id: str,
        driver_id: str,
        truck_id: Optional[str] = None,
    ) -> Load:
        """Assign or reassign a load to a driver and/or truck of the same company."""
        load = await self.get_load(company_id, load_id)
        if load.status in ("delivered", "cancelled"):
            raise ValueError(f"Cannot assign a {load.status} load")

        driver = await get_entity_by_id(self.db, Driver, driver_id, company_id, error_message="Driver not found")
        load.assigned_driver_id = driver.id
        if truck_id:
            truck = await get_entity_by_id(self.db, Truck, truck_id, company_id, error_message="Truck not found")
            load.assigned_truck_id = truck.id

        driver.status = "assigned"
        await self.db.commit()
        await self.db.refresh(load)
        return load
