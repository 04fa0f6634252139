"""
VendorHub — Activity log & feed schemas.

Each activity type has its own fixed metadata shape; ``METADATA_MODELS``
is the tag → shape table and ``parse_metadata`` is the only way raw
metadata enters the log.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ActivityType(str, Enum):
    # Vendor activities
    VENDOR_CREATED = "vendor_created"
    VENDOR_UPDATED = "vendor_updated"
    VENDOR_DELETED = "vendor_deleted"
    VENDOR_RATED = "vendor_rated"

    # Contract activities
    CONTRACT_CREATED = "contract_created"
    CONTRACT_UPDATED = "contract_updated"
    CONTRACT_DELETED = "contract_deleted"
    CONTRACT_EXPIRING = "contract_expiring"

    # Document activities
    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_DELETED = "document_deleted"

    # User activities
    PROFILE_CREATED = "profile_created"
    PROFILE_UPDATED = "profile_updated"

    # Implicit: inferred from entity rows by the feed, never written to the log
    CONTRACT_SIGNED = "contract_signed"
    DOCUMENT_SUBMITTED = "document_submitted"


IMPLICIT_TYPES = frozenset({ActivityType.CONTRACT_SIGNED, ActivityType.DOCUMENT_SUBMITTED})
USER_TYPES = frozenset({ActivityType.PROFILE_CREATED, ActivityType.PROFILE_UPDATED})


# ── Metadata shapes ─────────────────────────────────────

class _Metadata(BaseModel):
    model_config = {"extra": "forbid"}


class EmptyMetadata(_Metadata):
    pass


class StatusChangeMetadata(_Metadata):
    previous_status: Optional[str] = None
    new_status: Optional[str] = None
    changed_fields: list[str] = []


class VendorRatedMetadata(_Metadata):
    rating: float = Field(..., ge=0, le=5)
    previous_rating: Optional[float] = Field(None, ge=0, le=5)


class DocumentMetadata(_Metadata):
    entity_type: str
    entity_id: str
    file_type: Optional[str] = None
    file_size: Optional[int] = Field(None, ge=0)


class ContractExpiringMetadata(_Metadata):
    days_to_expiry: int = Field(..., ge=0)


METADATA_MODELS: dict[ActivityType, type[_Metadata]] = {
    ActivityType.VENDOR_CREATED: EmptyMetadata,
    ActivityType.VENDOR_UPDATED: StatusChangeMetadata,
    ActivityType.VENDOR_DELETED: EmptyMetadata,
    ActivityType.VENDOR_RATED: VendorRatedMetadata,
    ActivityType.CONTRACT_CREATED: EmptyMetadata,
    ActivityType.CONTRACT_UPDATED: StatusChangeMetadata,
    ActivityType.CONTRACT_DELETED: EmptyMetadata,
    ActivityType.CONTRACT_EXPIRING: ContractExpiringMetadata,
    ActivityType.DOCUMENT_UPLOADED: DocumentMetadata,
    ActivityType.DOCUMENT_DELETED: DocumentMetadata,
    ActivityType.PROFILE_CREATED: EmptyMetadata,
    ActivityType.PROFILE_UPDATED: StatusChangeMetadata,
    ActivityType.CONTRACT_SIGNED: EmptyMetadata,
    ActivityType.DOCUMENT_SUBMITTED: EmptyMetadata,
}


def parse_metadata(activity_type: ActivityType, raw: dict[str, Any] | None) -> _Metadata:
    """Validate ``raw`` against the shape for ``activity_type``.

    Raises pydantic.ValidationError on a mismatch.
    """
    return METADATA_MODELS[activity_type].model_validate(raw or {})


# ── Log entries ─────────────────────────────────────────

class SubjectRefs(BaseModel):
    vendor_id: Optional[str] = None
    contract_id: Optional[str] = None
    document_id: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.vendor_id or self.contract_id or self.document_id)


class ActivityLogEntry(BaseModel):
    id: str
    created_at: datetime
    activity_type: ActivityType
    description: str
    icon: str = "📋"
    actor_id: Optional[str] = None
    subjects: SubjectRefs = SubjectRefs()
    metadata: dict[str, Any] = {}


class RecordActivityRequest(BaseModel):
    activity_type: ActivityType
    subjects: SubjectRefs = SubjectRefs()
    description: str = Field(..., min_length=1, max_length=1000)
    metadata: dict[str, Any] = {}


class ActivityLogPage(BaseModel):
    activities: list[ActivityLogEntry]
    total: int


# ── Feed ────────────────────────────────────────────────

class FeedItem(BaseModel):
    """One row of the recent-activity feed; computed per request, never stored."""
    id: str
    activity_type: ActivityType
    source: str
    description: str = ""
    icon: str = "📋"
    vendor_name: Optional[str] = None
    contract_title: Optional[str] = None
    document_name: Optional[str] = None
    actor_name: Optional[str] = None
    details: Optional[str] = None
    subjects: SubjectRefs = SubjectRefs()
    metadata: dict[str, Any] = {}
    timestamp: datetime
    time_ago: str = ""
    is_sample: bool = False


class FeedResponse(BaseModel):
    items: list[FeedItem]
    total: int
    failed_sources: list[str] = []
    is_sample: bool = False
