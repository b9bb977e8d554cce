"""
Tenant Isolation Utilities

Helper functions to ensure proper data isolation in multi-tenant queries.
All functions enforce company_id filtering to prevent cross-tenant data access.
"""

from typing import Optional, Type, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import Base

T = TypeVar("T", bound=Base)


class EntityNotFoundError(ValueError):
    """Raised when a row is missing or belongs to another company."""


def scoped_select(model: Type[T], company_id: str, company_id_field: str = "company_id") -> Select:
    """Start a SELECT for ``model`` already filtered to one company."""
    return select(model).where(getattr(model, company_id_field) == company_id)


async def get_entity_by_id(
    db: AsyncSession,
    model: Type[T],
    entity_id: str,
    company_id: str,
    company_id_field: str = "company_id",
    error_message: Optional[str] = None,
) -> T:
    """
    Safely retrieve an entity by ID with company_id filtering.

    An id that exists under a different company is indistinguishable from an
    id that does not exist at all.

    Raises:
        EntityNotFoundError: if entity not found or doesn't belong to company
    """
    query = scoped_select(model, company_id, company_id_field).where(model.id == entity_id)

    result = await db.execute(query)
    entity = result.scalar_one_or_none()

    if entity is None:
        raise EntityNotFoundError(error_message or f"{model.__name__} not found")

    return entity
