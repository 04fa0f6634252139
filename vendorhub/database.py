"""
VendorHub — Async SQLAlchemy database setup.

Routes get a request-scoped session from ``get_db``. The recorder and the
feed composer open their own short sessions from ``get_session_factory``,
so an audit write or one failing feed source never shares a transaction
with the caller's change.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from vendorhub.config import settings


def _engine_options(url: str) -> dict:
    # SQLite (dev, tests) runs on a single shared connection; size a real pool for PostgreSQL
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }


engine = create_async_engine(settings.database_url, echo=False, **_engine_options(settings.database_url))

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """FastAPI dependency: the request's session."""
    async with async_session() as session:
        yield session


def get_session_factory() -> async_sessionmaker:
    """FastAPI dependency: factory for services that manage their own sessions."""
    return async_session


async def init_db() -> None:
    """Create any missing vendor, contract, document, profile and activity tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
