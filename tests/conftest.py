"""Pytest configuration and fixtures."""
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

from bulklink.database import Base, build_engine, get_db
from bulklink.rate_limit import limiter
from main import app
from tests.factories import make_bulk_purchase, make_link, make_scheme, make_user


@pytest.fixture
async def test_db():
    """Create test database."""
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with AsyncSessionLocal() as session:
        yield session

    await engine.dispose()


@pytest.fixture
async def client(test_db):
    """Create async test client bound to the test session."""
    async def override_get_db():
        yield test_db

    limiter.reset()
    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def clinic(test_db):
    return await make_user(test_db)


@pytest.fixture
async def admin(test_db):
    return await make_user(test_db, email="admin@example.com", user_role="admin")


@pytest.fixture
async def scheme(test_db):
    return await make_scheme(test_db)


@pytest.fixture
async def bulk_purchase(test_db, clinic, scheme):
    """100 purchased, 85 remaining."""
    return await make_bulk_purchase(test_db, clinic, scheme)


@pytest.fixture
async def patient_link(test_db, bulk_purchase):
    return await make_link(test_db, bulk_purchase)
