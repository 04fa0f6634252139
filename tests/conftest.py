"""
Shared test fixtures — async DB, session factory, FastAPI test client.
"""

from datetime import date, datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from vendorhub.database import Base, get_db, get_session_factory
from vendorhub.main import app
from vendorhub.models import ActivityLog, Contract, Document, Vendor


# ── Test Database (SQLite in-memory) ────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

# Fixed "now" for time-sensitive tests: midday so date maths is unambiguous
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture()
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def broken_factory():
    """Session factory over a database with no tables: every query fails."""
    engine = create_async_engine(TEST_DB_URL, echo=False)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture()
async def client(session_factory):
    """FastAPI test client with test DB injected."""

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ── Seed helpers ────────────────────────────────────────

async def add_vendor(session, name, created_at=None, **kwargs) -> Vendor:
    vendor = Vendor(name=name, created_at=created_at or NOW - timedelta(days=30), **kwargs)
    session.add(vendor)
    await session.commit()
    return vendor


async def add_contract(session, vendor, title, end_date: date, created_at=None, **kwargs) -> Contract:
    kwargs.setdefault("status", "draft")
    kwargs.setdefault("start_date", date(2025, 1, 1))
    contract = Contract(
        vendor_id=vendor.id if isinstance(vendor, Vendor) else vendor,
        title=title,
        end_date=end_date,
        created_at=created_at or NOW - timedelta(days=20),
        **kwargs,
    )
    session.add(contract)
    await session.commit()
    return contract


async def add_document(session, vendor_id, name, created_at=None, entity_type="vendor") -> Document:
    doc = Document(
        name=name,
        entity_type=entity_type,
        entity_id=vendor_id,
        file_path=f"{entity_type}/{vendor_id}/{name}",
        file_type="application/pdf",
        file_size=2048,
        created_at=created_at or NOW - timedelta(days=10),
    )
    session.add(doc)
    await session.commit()
    return doc


async def add_log(session, activity_type, created_at, **kwargs) -> ActivityLog:
    kwargs.setdefault("description", activity_type)
    entry = ActivityLog(activity_type=activity_type, created_at=created_at, **kwargs)
    session.add(entry)
    await session.commit()
    return entry
