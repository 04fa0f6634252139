"""
Store gateway — bounded-time execution of read queries.

Every read the feed composer and the reporter issue goes through
``run_query`` so a slow or broken store surfaces as a ``FetchError``
naming the source, never as a raw driver exception.
"""

import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vendorhub.config import settings
from vendorhub.errors import FetchError

logger = logging.getLogger(__name__)


async def run_query(session: AsyncSession, stmt, source: str, params: dict | None = None):
    """Execute ``stmt`` with the configured timeout and return the Result."""
    try:
        return await asyncio.wait_for(
            session.execute(stmt, params) if params else session.execute(stmt),
            timeout=settings.store_timeout_secs,
        )
    except asyncio.TimeoutError as e:
        logger.warning("Store call for %s timed out after %.1fs", source, settings.store_timeout_secs)
        raise FetchError(source, f"Timed out loading {source.replace('_', ' ')}") from e
    except SQLAlchemyError as e:
        logger.warning("Store call for %s failed: %s", source, e)
        raise FetchError(source) from e


async def run_scalar(session: AsyncSession, stmt, source: str):
    result = await run_query(session, stmt, source)
    return result.scalar()
