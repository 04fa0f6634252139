"""
Activity Recorder — append-only writer for the activity log.

The recorder is a side channel: entity routes commit their own change
first and then call ``record_quietly``. A failed audit write is logged
and reported back, but never undoes or blocks the mutation that caused it.
"""

import asyncio
import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vendorhub.config import settings
from vendorhub.errors import InputValidationError, ServiceError, WriteError
from vendorhub.models.activity_log import ActivityLog
from vendorhub.schemas.activity import (
    IMPLICIT_TYPES,
    USER_TYPES,
    ActivityLogEntry,
    ActivityLogPage,
    ActivityType,
    SubjectRefs,
    parse_metadata,
)
from vendorhub.schemas.api import ApiResponse
from vendorhub.services.store import run_query
from vendorhub.services.timefmt import as_utc

logger = logging.getLogger(__name__)


DEFAULT_TEMPLATES: dict[ActivityType, str] = {
    ActivityType.VENDOR_CREATED: "New vendor added: {vendor_name}",
    ActivityType.VENDOR_UPDATED: "Vendor updated: {vendor_name}",
    ActivityType.VENDOR_DELETED: "Vendor deleted: {vendor_name}",
    ActivityType.VENDOR_RATED: "{vendor_name} received a {rating:g}-star rating",
    ActivityType.CONTRACT_CREATED: "New contract created: {contract_title}",
    ActivityType.CONTRACT_UPDATED: "Contract updated: {contract_title}",
    ActivityType.CONTRACT_DELETED: "Contract deleted: {contract_title}",
    ActivityType.CONTRACT_EXPIRING: "{contract_title} expires in {days_to_expiry} days",
    ActivityType.DOCUMENT_UPLOADED: "New document uploaded: {document_name}",
    ActivityType.DOCUMENT_DELETED: "Document deleted: {document_name}",
    ActivityType.PROFILE_CREATED: "Profile created",
    ActivityType.PROFILE_UPDATED: "Profile updated",
}

ICONS: dict[ActivityType, str] = {
    ActivityType.VENDOR_CREATED: "🏢",
    ActivityType.VENDOR_UPDATED: "✏️",
    ActivityType.VENDOR_DELETED: "🗑️",
    ActivityType.VENDOR_RATED: "⭐",
    ActivityType.CONTRACT_CREATED: "📝",
    ActivityType.CONTRACT_UPDATED: "✏️",
    ActivityType.CONTRACT_DELETED: "🗑️",
    ActivityType.CONTRACT_EXPIRING: "⚠️",
    ActivityType.CONTRACT_SIGNED: "✅",
    ActivityType.DOCUMENT_UPLOADED: "📄",
    ActivityType.DOCUMENT_SUBMITTED: "📄",
    ActivityType.DOCUMENT_DELETED: "🗑️",
    ActivityType.PROFILE_CREATED: "👤",
    ActivityType.PROFILE_UPDATED: "👤",
}


# ═══════════════════════════════════════════════════════
#  Descriptions from before/after state
# ═══════════════════════════════════════════════════════

def changed_fields(before: dict, after: dict) -> list[str]:
    """Keys of ``after`` whose value differs from ``before``, in ``after`` order."""
    return [k for k, v in after.items() if before.get(k) != v]


def describe_status_change(kind: str, before: dict, after: dict) -> tuple[str, dict]:
    """Template + metadata for an update of a vendor or contract.

    ``kind`` is "vendor" or "contract"; the template uses ``{vendor_name}``
    or ``{contract_title}`` which the caller supplies as context.
    """
    name_key = "{vendor_name}" if kind == "vendor" else "{contract_title}"
    fields = changed_fields(before, after)
    metadata: dict[str, Any] = {"changed_fields": fields}

    if "status" in fields:
        metadata["previous_status"] = before.get("status") or "unset"
        metadata["new_status"] = after.get("status") or "unset"
        return f"{name_key} status changed from {{previous_status}} to {{new_status}}", metadata

    label = "Vendor" if kind == "vendor" else "Contract"
    if fields:
        return f"{label} updated: {name_key} ({', '.join(fields)})", metadata
    return f"{label} updated: {name_key}", metadata


def _coerce_type(activity_type: ActivityType | str) -> ActivityType:
    try:
        return ActivityType(activity_type)
    except ValueError:
        raise InputValidationError(f"Unknown activity type: {activity_type!r}", field="activity_type")


def to_entry(row: ActivityLog) -> ActivityLogEntry:
    return ActivityLogEntry(
        id=row.id,
        created_at=as_utc(row.created_at),
        activity_type=row.activity_type,
        description=row.description or "",
        icon=row.icon or "📋",
        actor_id=row.user_id,
        subjects=SubjectRefs(
            vendor_id=row.vendor_id,
            contract_id=row.contract_id,
            document_id=row.document_id,
        ),
        metadata=row.extra_data or {},
    )


# ═══════════════════════════════════════════════════════
#  Recorder
# ═══════════════════════════════════════════════════════

class ActivityRecorder:
    """Writes one ``ActivityLog`` row per call, each in its own session."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    def build_entry(
        self,
        activity_type: ActivityType | str,
        subjects: SubjectRefs | None = None,
        description_template: str | None = None,
        metadata: dict[str, Any] | None = None,
        actor_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> ActivityLog:
        """Validate the call and render the row. Touches no store."""
        kind = _coerce_type(activity_type)
        if kind in IMPLICIT_TYPES:
            raise InputValidationError(
                f"{kind.value} is inferred by the feed and cannot be recorded",
                field="activity_type",
            )

        subjects = subjects or SubjectRefs()
        if subjects.is_empty() and kind not in USER_TYPES:
            raise InputValidationError(
                "At least one subject reference is required", field="subjects"
            )

        try:
            meta = parse_metadata(kind, metadata).model_dump(exclude_none=True)
        except ValidationError as e:
            raise InputValidationError(
                f"Invalid metadata for {kind.value}: {e.errors()[0]['msg']}", field="metadata"
            )

        template = description_template or DEFAULT_TEMPLATES.get(kind, kind.value)
        try:
            description = template.format(**{**meta, **(context or {})})
        except (KeyError, IndexError, ValueError) as e:
            raise InputValidationError(
                f"Description template could not be rendered: {e}", field="description"
            )

        return ActivityLog(
            activity_type=kind.value,
            description=description,
            icon=ICONS.get(kind, "📋"),
            user_id=actor_id,
            vendor_id=subjects.vendor_id,
            contract_id=subjects.contract_id,
            document_id=subjects.document_id,
            extra_data=meta,
        )

    async def record(
        self,
        activity_type: ActivityType | str,
        subjects: SubjectRefs | None = None,
        description_template: str | None = None,
        metadata: dict[str, Any] | None = None,
        actor_id: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> ApiResponse:
        """
        Append one activity entry.

        Malformed input raises ``InputValidationError`` before the store is
        touched. A store failure comes back as ``ApiResponse.error`` with
        code ``write_error``; it is never raised.
        """
        row = self.build_entry(
            activity_type, subjects, description_template, metadata, actor_id, context,
        )

        try:
            async with self._session_factory() as session:
                session.add(row)
                await asyncio.wait_for(session.commit(), timeout=settings.store_timeout_secs)
        except (SQLAlchemyError, asyncio.TimeoutError) as e:
            logger.warning("Failed to write activity log (%s): %s", row.activity_type, e)
            err = WriteError(details={"activity_type": row.activity_type})
            return ApiResponse(data=None, error=err.to_api_error())

        logger.info("📋 %s: %s", row.activity_type, row.description)
        return ApiResponse(data=to_entry(row), error=None)

    async def record_quietly(self, activity_type: ActivityType | str, **kwargs) -> ActivityLogEntry | None:
        """Fire-and-forget variant for mutation routes: never raises."""
        try:
            result = await self.record(activity_type, **kwargs)
        except ServiceError as e:
            logger.warning("Activity %s not recorded: %s", activity_type, e.message)
            return None
        return result.data

    # ── per-entity helpers ─────────────────────────────
    # Used by the mutation routes; like record_quietly they never raise.

    async def log_vendor_activity(self, activity_type, vendor_id: str, description: str | None = None,
                                  metadata: dict | None = None, actor_id: str | None = None,
                                  context: dict | None = None) -> ActivityLogEntry | None:
        return await self.record_quietly(
            activity_type, subjects=SubjectRefs(vendor_id=vendor_id), description_template=description,
            metadata=metadata, actor_id=actor_id, context=context,
        )

    async def log_contract_activity(self, activity_type, contract_id: str, description: str | None = None,
                                    metadata: dict | None = None, actor_id: str | None = None,
                                    vendor_id: str | None = None,
                                    context: dict | None = None) -> ActivityLogEntry | None:
        return await self.record_quietly(
            activity_type, subjects=SubjectRefs(contract_id=contract_id, vendor_id=vendor_id),
            description_template=description, metadata=metadata, actor_id=actor_id, context=context,
        )

    async def log_document_activity(self, activity_type, document_id: str, description: str | None = None,
                                    metadata: dict | None = None, actor_id: str | None = None,
                                    context: dict | None = None) -> ActivityLogEntry | None:
        refs = SubjectRefs(document_id=document_id)
        meta = metadata or {}
        # Point the entry at the owning vendor/contract as well
        if meta.get("entity_type") == "vendor":
            refs.vendor_id = meta.get("entity_id")
        elif meta.get("entity_type") == "contract":
            refs.contract_id = meta.get("entity_id")
        return await self.record_quietly(
            activity_type, subjects=refs, description_template=description,
            metadata=metadata, actor_id=actor_id, context=context,
        )

    async def log_user_activity(self, activity_type, user_id: str, description: str | None = None,
                                metadata: dict | None = None) -> ActivityLogEntry | None:
        return await self.record_quietly(
            activity_type, description_template=description, metadata=metadata, actor_id=user_id,
        )


# ═══════════════════════════════════════════════════════
#  Reads
# ═══════════════════════════════════════════════════════

async def get_activity_page(
    session: AsyncSession,
    activity_type: ActivityType | str | None = None,
    vendor_id: str | None = None,
    contract_id: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> ActivityLogPage:
    """Activity entries newest first, with optional filters, plus the filtered total."""
    if limit < 1 or offset < 0:
        raise InputValidationError("limit must be positive and offset non-negative", field="limit")

    stmt = select(ActivityLog)
    count_stmt = select(func.count()).select_from(ActivityLog)
    # Rows written by other tools may carry types this service does not know
    filters = [ActivityLog.activity_type.in_([t.value for t in ActivityType])]
    if activity_type:
        filters.append(ActivityLog.activity_type == _coerce_type(activity_type).value)
    if vendor_id:
        filters.append(ActivityLog.vendor_id == vendor_id)
    if contract_id:
        filters.append(ActivityLog.contract_id == contract_id)
    for f in filters:
        stmt = stmt.where(f)
        count_stmt = count_stmt.where(f)

    total = (await run_query(session, count_stmt, "activity_log")).scalar() or 0
    result = await run_query(
        session,
        stmt.order_by(ActivityLog.created_at.desc()).offset(offset).limit(limit),
        "activity_log",
    )
    return ActivityLogPage(
        activities=[to_entry(row) for row in result.scalars().all()],
        total=total,
    )
