"""
VendorHub — Activity log & feed API routes.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vendorhub.database import get_db, get_session_factory
from vendorhub.errors import envelope
from vendorhub.schemas.activity import RecordActivityRequest
from vendorhub.services.feed import FeedComposer
from vendorhub.services.identity import get_current_user_id
from vendorhub.services.recorder import ActivityRecorder, get_activity_page

logger = logging.getLogger(__name__)
activity_router = APIRouter(prefix="/activity", tags=["activity"])


def get_recorder(factory: async_sessionmaker = Depends(get_session_factory)) -> ActivityRecorder:
    return ActivityRecorder(factory)


def get_composer(factory: async_sessionmaker = Depends(get_session_factory)) -> FeedComposer:
    return FeedComposer(factory)


# ═══════════════════════════════════════════════════════
#  Feed
# ═══════════════════════════════════════════════════════

@activity_router.get("/feed")
async def get_feed(
    limit: int | None = Query(None, description="Maximum number of items"),
    since: datetime | None = Query(None, description="Drop items older than this"),
    composer: FeedComposer = Depends(get_composer),
):
    """Recent activity across the audit log, contracts and documents, newest first."""
    feed = await composer.compose_feed(limit=limit, since=since)
    return envelope(feed)


# ═══════════════════════════════════════════════════════
#  Raw log
# ═══════════════════════════════════════════════════════

@activity_router.get("/log")
async def list_activities(
    activity_type: str | None = Query(None),
    vendor_id: str | None = Query(None),
    contract_id: str | None = Query(None),
    offset: int = Query(0),
    limit: int = Query(50),
    db: AsyncSession = Depends(get_db),
):
    page = await get_activity_page(
        db, activity_type=activity_type, vendor_id=vendor_id,
        contract_id=contract_id, offset=offset, limit=limit,
    )
    return envelope(page)


@activity_router.get("/vendors/{vendor_id}")
async def get_vendor_activities(
    vendor_id: str,
    limit: int = Query(10),
    offset: int = Query(0),
    db: AsyncSession = Depends(get_db),
):
    return envelope(await get_activity_page(db, vendor_id=vendor_id, offset=offset, limit=limit))


@activity_router.get("/contracts/{contract_id}")
async def get_contract_activities(
    contract_id: str,
    limit: int = Query(10),
    offset: int = Query(0),
    db: AsyncSession = Depends(get_db),
):
    return envelope(await get_activity_page(db, contract_id=contract_id, offset=offset, limit=limit))


@activity_router.post("", status_code=201)
async def record_activity(
    req: RecordActivityRequest,
    recorder: ActivityRecorder = Depends(get_recorder),
    user_id: str | None = Depends(get_current_user_id),
):
    """Append an entry by hand. The description is stored verbatim."""
    result = await recorder.record(
        req.activity_type,
        subjects=req.subjects,
        description_template=req.description.replace("{", "{{").replace("}", "}}"),
        metadata=req.metadata,
        actor_id=user_id,
    )
    if result.error:
        return JSONResponse(status_code=result.error.status or 500, content=result.model_dump(mode="json"))
    return envelope(result.data)
