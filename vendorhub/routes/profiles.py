"""
VendorHub — Profile API routes.

Profiles are keyed by the identity provider's user id, so every endpoint
acts on the caller's own profile.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vendorhub.database import get_db
from vendorhub.errors import ConflictError, NotFoundError, UnauthenticatedError, envelope
from vendorhub.models.vendor import Profile
from vendorhub.routes.activity import get_recorder
from vendorhub.schemas.activity import ActivityType
from vendorhub.schemas.profile import ProfileCreateRequest, ProfileUpdateRequest, ProfileResponse
from vendorhub.services.identity import get_current_user_id
from vendorhub.services.recorder import ActivityRecorder, changed_fields

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/profiles", tags=["profiles"])

_TRACKED_FIELDS = ("full_name", "email")


def require_user_id(user_id: str | None = Depends(get_current_user_id)) -> str:
    if not user_id:
        raise UnauthenticatedError()
    return user_id


async def _get_profile_or_404(db: AsyncSession, user_id: str) -> Profile:
    profile = await db.get(Profile, user_id)
    if not profile:
        raise NotFoundError("Profile", user_id)
    return profile


@router.get("/me")
async def get_current_profile(
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
):
    return envelope(ProfileResponse.model_validate(await _get_profile_or_404(db, user_id)))


@router.post("", status_code=201)
async def create_profile(
    req: ProfileCreateRequest,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
    recorder: ActivityRecorder = Depends(get_recorder),
):
    if await db.get(Profile, user_id):
        raise ConflictError("Profile", user_id)

    profile = Profile(id=user_id, **req.model_dump())
    db.add(profile)
    await db.commit()
    await db.refresh(profile)
    logger.info("👤 Profile created: %s", user_id)

    await recorder.log_user_activity(ActivityType.PROFILE_CREATED, user_id)
    return envelope(ProfileResponse.model_validate(profile))


@router.patch("/me")
async def update_profile(
    req: ProfileUpdateRequest,
    user_id: str = Depends(require_user_id),
    db: AsyncSession = Depends(get_db),
    recorder: ActivityRecorder = Depends(get_recorder),
):
    profile = await _get_profile_or_404(db, user_id)
    before = {f: getattr(profile, f) for f in _TRACKED_FIELDS}

    for field, value in req.model_dump(exclude_unset=True).items():
        setattr(profile, field, value)
    await db.commit()
    await db.refresh(profile)

    after = {f: getattr(profile, f) for f in _TRACKED_FIELDS}
    await recorder.log_user_activity(
        ActivityType.PROFILE_UPDATED,
        user_id,
        metadata={"changed_fields": changed_fields(before, after)},
    )
    return envelope(ProfileResponse.model_validate(profile))
