"""
Activity Feed Composer — merges the audit log and entity tables into one
recent-activity feed for the dashboard.

Sources
-------
``activity_log``        explicit entries written by the recorder
``recent_contracts``    active contracts, read as implicit "contract signed"
``recent_documents``    vendor documents, read as implicit "document submitted"
``expiring_contracts``  contracts ending inside the lookahead window; the
                        warning is synthesized on every call, never stored

Each source runs in its own short-lived session. A source that fails is
logged and skipped; the feed is built from whatever succeeded. Only when
every source fails does the composer fall back to the labelled sample feed.

Name lookups are batched: one ``IN (...)`` query per referenced table per
call, held in a dict that lives only as long as the call.
"""

import logging
import math
from datetime import datetime, time, timedelta, timezone
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vendorhub.config import settings
from vendorhub.errors import FetchError, InputValidationError
from vendorhub.models import ActivityLog, Contract, Document, Profile, Vendor
from vendorhub.schemas.activity import ActivityType, FeedItem, FeedResponse, SubjectRefs
from vendorhub.services.recorder import ICONS
from vendorhub.services.store import run_query
from vendorhub.services.timefmt import DAY, as_utc, format_time_ago

logger = logging.getLogger(__name__)

UNKNOWN_VENDOR = "Unknown Vendor"
UNKNOWN_CONTRACT = "Unknown Contract"
UNKNOWN_DOCUMENT = "Unknown Document"

SOURCES = ("activity_log", "recent_contracts", "recent_documents", "expiring_contracts")

# An explicit log entry of the value type already covers the implicit key type
_IMPLIED_BY = {
    ActivityType.CONTRACT_SIGNED: ActivityType.CONTRACT_CREATED,
    ActivityType.DOCUMENT_SUBMITTED: ActivityType.DOCUMENT_UPLOADED,
}


def days_to_expiry(end_date, now: datetime) -> int | None:
    """Whole days (rounded up) until ``end_date``; None once it has passed."""
    end = datetime.combine(end_date, time.min, tzinfo=timezone.utc)
    remaining = (end - as_utc(now)).total_seconds()
    if remaining <= 0:
        return None
    return math.ceil(remaining / DAY)


def _entity_ref(item: FeedItem) -> str | None:
    if item.activity_type in (ActivityType.DOCUMENT_UPLOADED, ActivityType.DOCUMENT_SUBMITTED):
        return item.subjects.document_id
    return item.subjects.contract_id


def _details(kind: ActivityType, metadata: dict) -> str | None:
    if kind == ActivityType.CONTRACT_EXPIRING and "days_to_expiry" in metadata:
        days = metadata["days_to_expiry"]
        return f"expires in {days} {'day' if days == 1 else 'days'}"
    if kind == ActivityType.VENDOR_RATED and "rating" in metadata:
        return f"received a {metadata['rating']:g}-star rating"
    if "new_status" in metadata:
        return f"{metadata.get('previous_status', 'unset')} → {metadata['new_status']}"
    return None


def sample_feed(now: datetime) -> list[FeedItem]:
    """Fixed placeholder feed shown when no source could be read."""
    rows = [
        (ActivityType.CONTRACT_SIGNED, "Example Cloud Co.", None, timedelta(hours=2)),
        (ActivityType.DOCUMENT_SUBMITTED, "Example Consulting Ltd.", None, timedelta(hours=5)),
        (ActivityType.CONTRACT_EXPIRING, "Example Logistics Inc.", "expires in 30 days", timedelta(days=1)),
        (ActivityType.VENDOR_RATED, "Example Software GmbH", "received a 5-star rating", timedelta(days=2)),
    ]
    return [
        FeedItem(
            id=f"sample-{n}",
            activity_type=kind,
            source="sample",
            description="Sample activity",
            icon=ICONS.get(kind, "📋"),
            vendor_name=vendor,
            details=details,
            timestamp=now - age,
            is_sample=True,
        )
        for n, (kind, vendor, details, age) in enumerate(rows, start=1)
    ]


async def lookup_names(
    session: AsyncSession, id_col, label_col, ids: Iterable[str | None], source: str,
) -> dict[str, str]:
    """One batched query mapping id → display label for every distinct id."""
    wanted = sorted({i for i in ids if i})
    if not wanted:
        return {}
    result = await run_query(session, select(id_col, label_col).where(id_col.in_(wanted)), source)
    return {row_id: label for row_id, label in result.all() if label}


class FeedComposer:
    """Builds the recent-activity feed. Stateless between calls."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        lookahead_days: int | None = None,
        sample_fallback: bool | None = None,
    ):
        self._session_factory = session_factory
        self.lookahead_days = lookahead_days if lookahead_days is not None else settings.expiry_lookahead_days
        self.sample_fallback = (
            sample_fallback if sample_fallback is not None else settings.feed_sample_fallback
        )

    # ── public ─────────────────────────────────────────

    async def compose_feed(
        self,
        limit: int | None = None,
        since: datetime | None = None,
        now: datetime | None = None,
    ) -> FeedResponse:
        limit = settings.feed_default_limit if limit is None else limit
        if limit < 1 or limit > settings.feed_max_limit:
            raise InputValidationError(
                f"limit must be between 1 and {settings.feed_max_limit}", field="limit"
            )
        now = as_utc(now) if now else datetime.now(timezone.utc)
        since = as_utc(since) if since else None

        fetchers = {
            "activity_log": lambda s: self._fetch_activity_log(s, limit, since),
            "recent_contracts": lambda s: self._fetch_recent_contracts(s, limit, since),
            "recent_documents": lambda s: self._fetch_recent_documents(s, limit, since),
            "expiring_contracts": lambda s: self._fetch_expiring_contracts(s, limit, now),
        }

        collected: dict[str, list[FeedItem]] = {}
        failed: list[str] = []
        for name, fetch in fetchers.items():
            try:
                async with self._session_factory() as session:
                    collected[name] = await fetch(session)
            except (FetchError, SQLAlchemyError) as e:
                logger.warning("Activity source %s unavailable: %s", name, e)
                failed.append(name)

        if not collected:
            if not self.sample_fallback:
                raise FetchError("activity_feed", "No activity source could be read")
            logger.error("All activity sources failed, serving sample feed")
            items = sample_feed(now)[:limit]
            for item in items:
                item.time_ago = format_time_ago(item.timestamp, now)
            return FeedResponse(items=items, total=len(items), failed_sources=failed, is_sample=True)

        items = self._merge(collected, limit, since)
        for item in items:
            item.time_ago = format_time_ago(item.timestamp, now)
        return FeedResponse(items=items, total=len(items), failed_sources=failed)

    # ── merge ──────────────────────────────────────────

    @staticmethod
    def _merge(collected: dict[str, list[FeedItem]], limit: int, since: datetime | None) -> list[FeedItem]:
        covered = {(item.activity_type, _entity_ref(item)) for item in collected.get("activity_log", [])}

        merged: list[FeedItem] = []
        for name in SOURCES:
            for item in collected.get(name, []):
                implied = _IMPLIED_BY.get(item.activity_type)
                if implied is not None:
                    if (implied, _entity_ref(item)) in covered:
                        continue
                if since is not None and item.timestamp < since:
                    continue
                merged.append(item)

        # sort() is stable, so equal timestamps keep source order
        merged.sort(key=lambda i: i.timestamp, reverse=True)
        return merged[:limit]

    # ── sources ────────────────────────────────────────

    async def _fetch_activity_log(self, session: AsyncSession, limit: int, since: datetime | None) -> list[FeedItem]:
        stmt = select(ActivityLog).order_by(ActivityLog.created_at.desc()).limit(limit)
        if since is not None:
            stmt = stmt.where(ActivityLog.created_at >= since)
        rows = (await run_query(session, stmt, "activity_log")).scalars().all()
        if not rows:
            return []

        # A failed name lookup leaves placeholders; the entries themselves are still good
        names: dict[str, dict[str, str]] = {}
        lookups = {
            "vendors": (Vendor.id, Vendor.name, [r.vendor_id for r in rows]),
            "contracts": (Contract.id, Contract.title, [r.contract_id for r in rows]),
            "documents": (Document.id, Document.name, [r.document_id for r in rows]),
            "profiles": (Profile.id, Profile.full_name, [r.user_id for r in rows]),
        }
        for table, (id_col, label_col, ids) in lookups.items():
            try:
                names[table] = await lookup_names(session, id_col, label_col, ids, table)
            except FetchError as e:
                logger.warning("Name lookup for %s failed, using placeholders: %s", table, e.message)
                names[table] = {}

        items = []
        for row in rows:
            try:
                kind = ActivityType(row.activity_type)
            except ValueError:
                logger.warning("Skipping activity %s with unknown type %r", row.id, row.activity_type)
                continue
            meta = row.extra_data or {}
            items.append(FeedItem(
                id=f"log-{row.id}",
                activity_type=kind,
                source="activity_log",
                description=row.description or "",
                icon=row.icon or ICONS.get(kind, "📋"),
                vendor_name=names["vendors"].get(row.vendor_id, UNKNOWN_VENDOR) if row.vendor_id else None,
                contract_title=(
                    names["contracts"].get(row.contract_id, UNKNOWN_CONTRACT) if row.contract_id else None
                ),
                document_name=(
                    names["documents"].get(row.document_id, UNKNOWN_DOCUMENT) if row.document_id else None
                ),
                actor_name=names["profiles"].get(row.user_id) if row.user_id else None,
                details=_details(kind, meta),
                subjects=SubjectRefs(
                    vendor_id=row.vendor_id,
                    contract_id=row.contract_id,
                    document_id=row.document_id,
                ),
                metadata=meta,
                timestamp=as_utc(row.created_at),
            ))
        return items

    async def _fetch_recent_contracts(self, session: AsyncSession, limit: int, since: datetime | None) -> list[FeedItem]:
        stmt = (
            select(Contract.id, Contract.title, Contract.vendor_id, Contract.created_at, Vendor.name)
            .outerjoin(Vendor, Vendor.id == Contract.vendor_id)
            .where(Contract.status == "active")
            .order_by(Contract.created_at.desc())
            .limit(limit)
        )
        if since is not None:
            stmt = stmt.where(Contract.created_at >= since)
        result = await run_query(session, stmt, "recent_contracts")

        kind = ActivityType.CONTRACT_SIGNED
        return [
            FeedItem(
                id=f"contract-{cid}",
                activity_type=kind,
                source="recent_contracts",
                description=f"Contract signed: {title}",
                icon=ICONS[kind],
                vendor_name=vendor_name or UNKNOWN_VENDOR,
                contract_title=title,
                subjects=SubjectRefs(vendor_id=vendor_id, contract_id=cid),
                timestamp=as_utc(created_at),
            )
            for cid, title, vendor_id, created_at, vendor_name in result.all()
        ]

    async def _fetch_recent_documents(self, session: AsyncSession, limit: int, since: datetime | None) -> list[FeedItem]:
        # documents.entity_id has no foreign key, so no join: fetch, then resolve vendors in one batch
        stmt = (
            select(Document)
            .where(Document.entity_type == "vendor")
            .order_by(Document.created_at.desc())
            .limit(limit)
        )
        if since is not None:
            stmt = stmt.where(Document.created_at >= since)
        docs = (await run_query(session, stmt, "recent_documents")).scalars().all()

        vendor_names = await lookup_names(
            session, Vendor.id, Vendor.name, (d.entity_id for d in docs), "recent_documents",
        )

        kind = ActivityType.DOCUMENT_SUBMITTED
        return [
            FeedItem(
                id=f"document-{doc.id}",
                activity_type=kind,
                source="recent_documents",
                description=f"Document submitted: {doc.name}",
                icon=ICONS[kind],
                vendor_name=vendor_names.get(doc.entity_id, UNKNOWN_VENDOR),
                document_name=doc.name,
                subjects=SubjectRefs(vendor_id=doc.entity_id, document_id=doc.id),
                metadata={"file_type": doc.file_type, "file_size": doc.file_size},
                timestamp=as_utc(doc.created_at),
            )
            for doc in docs
        ]

    async def _fetch_expiring_contracts(self, session: AsyncSession, limit: int, now: datetime) -> list[FeedItem]:
        window = timedelta(days=self.lookahead_days)
        stmt = (
            select(Contract.id, Contract.title, Contract.vendor_id, Contract.end_date, Vendor.name)
            .outerjoin(Vendor, Vendor.id == Contract.vendor_id)
            .where(Contract.end_date >= now.date())
            .where(Contract.end_date <= (now + window + timedelta(days=1)).date())
            .order_by(Contract.end_date.asc())
            .limit(limit)
        )
        result = await run_query(session, stmt, "expiring_contracts")

        kind = ActivityType.CONTRACT_EXPIRING
        # Start of the current UTC day: sorts with today's activity and is stable across calls
        stamped_at = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
        items = []
        for cid, title, vendor_id, end_date, vendor_name in result.all():
            days = days_to_expiry(end_date, now)
            if days is None or days > self.lookahead_days:
                continue
            meta = {"days_to_expiry": days}
            items.append(FeedItem(
                id=f"expiring-{cid}",
                activity_type=kind,
                source="expiring_contracts",
                description=f"{title} expires in {days} {'day' if days == 1 else 'days'}",
                icon=ICONS[kind],
                vendor_name=vendor_name or UNKNOWN_VENDOR,
                contract_title=title,
                details=_details(kind, meta),
                subjects=SubjectRefs(vendor_id=vendor_id, contract_id=cid),
                metadata=meta,
                timestamp=stamped_at,
            ))
        return items
