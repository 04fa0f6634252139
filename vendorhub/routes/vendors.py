"""
VendorHub — Vendor API routes.

Each mutation commits first and then records its activity entry. The
entry is best-effort: if it cannot be written the vendor change still
stands and the response is unchanged.
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vendorhub.database import get_db
from vendorhub.errors import NotFoundError, envelope
from vendorhub.models.vendor import Vendor
from vendorhub.routes.activity import get_recorder
from vendorhub.schemas.activity import ActivityType
from vendorhub.schemas.vendor import (
    VendorCreateRequest, VendorUpdateRequest, VendorRatingRequest,
    VendorResponse, VendorListResponse,
)
from vendorhub.services.identity import get_current_user_id
from vendorhub.services.recorder import ActivityRecorder, describe_status_change

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/vendors", tags=["vendors"])

_TRACKED_FIELDS = ("name", "email", "phone", "address", "status", "notes", "logo_url", "category")


def _vendor_to_response(v: Vendor) -> VendorResponse:
    resp = VendorResponse.model_validate(v)
    resp.rating = v.score
    return resp


async def _get_vendor_or_404(db: AsyncSession, vendor_id: str) -> Vendor:
    vendor = await db.get(Vendor, vendor_id)
    if not vendor:
        raise NotFoundError("Vendor", vendor_id)
    return vendor


@router.get("")
async def list_vendors(
    search: str | None = Query(None, description="Case-insensitive name filter"),
    db: AsyncSession = Depends(get_db),
):
    stmt = select(Vendor).order_by(Vendor.created_at.desc())
    if search:
        stmt = stmt.where(Vendor.name.ilike(f"%{search}%"))
    result = await db.execute(stmt)
    vendors = [_vendor_to_response(v) for v in result.scalars().all()]
    return envelope(VendorListResponse(vendors=vendors, total=len(vendors)))


@router.get("/{vendor_id}")
async def get_vendor(vendor_id: str, db: AsyncSession = Depends(get_db)):
    return envelope(_vendor_to_response(await _get_vendor_or_404(db, vendor_id)))


@router.post("", status_code=201)
async def create_vendor(
    req: VendorCreateRequest,
    db: AsyncSession = Depends(get_db),
    recorder: ActivityRecorder = Depends(get_recorder),
    user_id: str | None = Depends(get_current_user_id),
):
    vendor = Vendor(**req.model_dump(), created_by=user_id)
    db.add(vendor)
    await db.commit()
    await db.refresh(vendor)
    logger.info("🏢 Vendor created: %s (%s)", vendor.name, vendor.id)

    await recorder.log_vendor_activity(
        ActivityType.VENDOR_CREATED,
        vendor.id,
        actor_id=user_id,
        context={"vendor_name": vendor.name},
    )
    return envelope(_vendor_to_response(vendor))


@router.patch("/{vendor_id}")
async def update_vendor(
    vendor_id: str,
    req: VendorUpdateRequest,
    db: AsyncSession = Depends(get_db),
    recorder: ActivityRecorder = Depends(get_recorder),
    user_id: str | None = Depends(get_current_user_id),
):
    vendor = await _get_vendor_or_404(db, vendor_id)
    before = {f: getattr(vendor, f) for f in _TRACKED_FIELDS}

    updates = req.model_dump(exclude_unset=True)
    for field, value in updates.items():
        setattr(vendor, field, value)
    await db.commit()
    await db.refresh(vendor)

    after = {f: getattr(vendor, f) for f in _TRACKED_FIELDS}
    template, metadata = describe_status_change("vendor", before, after)
    await recorder.log_vendor_activity(
        ActivityType.VENDOR_UPDATED,
        vendor.id,
        description=template,
        metadata=metadata,
        actor_id=user_id,
        context={"vendor_name": vendor.name},
    )
    return envelope(_vendor_to_response(vendor))


@router.post("/{vendor_id}/rating")
async def rate_vendor(
    vendor_id: str,
    req: VendorRatingRequest,
    db: AsyncSession = Depends(get_db),
    recorder: ActivityRecorder = Depends(get_recorder),
    user_id: str | None = Depends(get_current_user_id),
):
    vendor = await _get_vendor_or_404(db, vendor_id)
    previous = vendor.score
    vendor.score = req.rating
    await db.commit()
    await db.refresh(vendor)

    await recorder.log_vendor_activity(
        ActivityType.VENDOR_RATED,
        vendor.id,
        metadata={"rating": req.rating, "previous_rating": previous},
        actor_id=user_id,
        context={"vendor_name": vendor.name},
    )
    return envelope(_vendor_to_response(vendor))


@router.delete("/{vendor_id}")
async def delete_vendor(
    vendor_id: str,
    db: AsyncSession = Depends(get_db),
    recorder: ActivityRecorder = Depends(get_recorder),
    user_id: str | None = Depends(get_current_user_id),
):
    vendor = await _get_vendor_or_404(db, vendor_id)
    name = vendor.name
    await db.delete(vendor)
    await db.commit()
    logger.info("🗑️ Vendor deleted: %s (%s)", name, vendor_id)

    # The entry keeps the id; the feed shows a placeholder once the row is gone
    await recorder.log_vendor_activity(
        ActivityType.VENDOR_DELETED,
        vendor_id,
        actor_id=user_id,
        context={"vendor_name": name},
    )
    return envelope({"deleted": vendor_id})
