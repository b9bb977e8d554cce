"""
Shared test fixtures for all tests.
Provides an in-memory database, a test client and seed data.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENABLE_SCHEDULER", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.pop("OPENAI_API_KEY", None)

import uuid  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402
from datetime import date  # noqa: E402
from decimal import Decimal  # noqa: E402

import httpx  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.core.db import get_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Company, Driver, Employee, Truck  # noqa: E402
from app.models.base import Base  # noqa: E402


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    One in-memory SQLite database per test.
    StaticPool keeps every connection on the same database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def app_client(db_session: AsyncSession) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Create an async HTTP client for testing FastAPI endpoints with database session override.
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def auth_headers(company_id: str, user_id: str = "user-1") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, company_id)}"}


# ============================================================================
# Seed Data Fixtures - Minimal test data
# ============================================================================


async def _company(db_session: AsyncSession, name: str) -> Company:
    company = Company(id=str(uuid.uuid4()), name=name, subscription_plan="starter", subscription_status="active")
    db_session.add(company)
    await db_session.commit()
    return company


@pytest_asyncio.fixture
async def company(db_session: AsyncSession) -> Company:
    return await _company(db_session, "Foo Trucking")


@pytest_asyncio.fixture
async def other_company(db_session: AsyncSession) -> Company:
    return await _company(db_session, "Bar Freight")


async def make_driver(db_session: AsyncSession, company_id: str, first_name: str, last_name: str = "Driver") -> Driver:
    driver = Driver(
        id=str(uuid.uuid4()),
        company_id=company_id,
        first_name=first_name,
        last_name=last_name,
        status="available",
        is_active=True,
    )
    db_session.add(driver)
    await db_session.commit()
    return driver


async def make_truck(db_session: AsyncSession, company_id: str, truck_number: str) -> Truck:
    truck = Truck(
        id=str(uuid.uuid4()),
        company_id=company_id,
        truck_number=truck_number,
        status="available",
        is_active=True,
    )
    db_session.add(truck)
    await db_session.commit()
    return truck


@pytest_asyncio.fixture
async def drivers(db_session: AsyncSession, company: Company) -> list[Driver]:
    return [
        await make_driver(db_session, company.id, "Alice"),
        await make_driver(db_session, company.id, "Bob"),
        await make_driver(db_session, company.id, "Carol"),
    ]


@pytest_asyncio.fixture
async def truck(db_session: AsyncSession, company: Company) -> Truck:
    return await make_truck(db_session, company.id, "T-100")


async def make_employee(
    db_session: AsyncSession,
    company_id: str,
    email: str,
    pay_type: str = "hourly",
    pay_rate: str = "25.00",
    pay_frequency: str = "weekly",
) -> Employee:
    employee = Employee(
        id=str(uuid.uuid4()),
        company_id=company_id,
        employee_number=f"EMP-{uuid.uuid4().hex[:5]}",
        first_name="Pat",
        last_name=email.split("@")[0],
        email=email,
        hire_date=date(2024, 1, 2),
        employment_type="full_time",
        status="active",
        pay_type=pay_type,
        pay_rate=Decimal(pay_rate),
        pay_frequency=pay_frequency,
        overtime_eligible=True,
        is_active=True,
    )
    db_session.add(employee)
    await db_session.commit()
    return employee
