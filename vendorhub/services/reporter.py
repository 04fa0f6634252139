"""
Aggregation Reporter — dashboard rollups over vendors and contracts.

Grouping happens in memory after a scan because the label rules (trim,
default, capitalise) have to run per row before rows are grouped. When
``settings.aggregation_procedures`` is on, the named server-side
procedures are tried first and their rows pass through the same label
rules; a missing procedure falls back to the scan.

Unlike the activity feed, nothing here is ever substituted: a failed
query raises ``FetchError``.
"""

import logging
from collections import Counter
from typing import Iterable

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from vendorhub.config import settings
from vendorhub.errors import FetchError, InputValidationError
from vendorhub.models import Contract, Document, Vendor
from vendorhub.schemas.dashboard import (
    AggregateBucket,
    DashboardStats,
    RankedEntity,
    RecentContract,
    RecentVendor,
    ScorePoint,
    SpendBucket,
)
from vendorhub.services.store import run_query, run_scalar

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"
UNKNOWN = "Unknown"
UNKNOWN_VENDOR = "Unknown Vendor"
MAX_N = 100

_ENTITY_KINDS = {
    "vendor": "vendors",
    "vendors": "vendors",
    "contract": "contracts",
    "contracts": "contracts",
}

_STATUS_COLUMNS = {"vendors": Vendor.status, "contracts": Contract.status}

_RANK_FIELDS = {
    "vendors": {"score": (Vendor.id, Vendor.name, Vendor.score)},
    "contracts": {"value": (Contract.id, Contract.title, Contract.value)},
}

_PROCEDURES = {
    "category": "SELECT label, count FROM get_vendor_category_distribution(:filter_category)",
    "contract_status": "SELECT label, count FROM get_contract_status_distribution()",
    "spend": "SELECT label, total_spend FROM get_vendor_spend(:limit_param)",
}


def normalize_category(raw: str | None) -> str:
    return (raw or "").strip() or UNCATEGORIZED


def normalize_status(raw: str | None) -> str:
    status = (raw or "").strip()
    if not status:
        return UNKNOWN
    return status[0].upper() + status[1:]


def group_counts(labels: Iterable[str], weights: Iterable[int] | None = None) -> list[AggregateBucket]:
    """Count labels into buckets, largest first; ties by label."""
    counts: Counter = Counter()
    if weights is None:
        counts.update(labels)
    else:
        for label, weight in zip(labels, weights):
            counts[label] += weight
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [AggregateBucket(label=label, value=count) for label, count in ordered]


def _entity_kind(entity_kind: str) -> str:
    try:
        return _ENTITY_KINDS[entity_kind.lower()]
    except KeyError:
        raise InputValidationError(f"Unknown entity kind: {entity_kind!r}", field="entity_kind")


def _check_n(n: int) -> None:
    if n < 1 or n > MAX_N:
        raise InputValidationError(f"n must be between 1 and {MAX_N}", field="n")


class AggregationReporter:
    """Dashboard rollups, computed fresh on every call."""

    def __init__(self, session: AsyncSession, use_procedures: bool | None = None):
        self.session = session
        self.use_procedures = (
            use_procedures if use_procedures is not None else settings.aggregation_procedures
        )

    async def _procedure_rows(self, name: str, params: dict | None = None) -> list[tuple] | None:
        """Rows from a server-side procedure, or None when it is unavailable."""
        if not self.use_procedures:
            return None
        try:
            result = await run_query(self.session, text(_PROCEDURES[name]), f"procedure:{name}", params or {})
            return [tuple(row) for row in result.all()]
        except FetchError:
            logger.info("Procedure for %s unavailable, scanning instead", name)
            # Leave no aborted transaction behind for the scan
            await self.session.rollback()
            return None

    # ── distributions ──────────────────────────────────

    async def count_by_status(self, entity_kind: str) -> list[AggregateBucket]:
        kind = _entity_kind(entity_kind)

        if kind == "contracts":
            rows = await self._procedure_rows("contract_status")
            if rows is not None:
                return group_counts(
                    (normalize_status(label) for label, _ in rows),
                    (int(count or 0) for _, count in rows),
                )

        result = await run_query(self.session, select(_STATUS_COLUMNS[kind]), f"{kind}_status")
        return group_counts(normalize_status(status) for (status,) in result.all())

    async def count_by_category(self, filter_category: str | None = None) -> list[AggregateBucket]:
        """
        Vendors per category. Blank or missing categories count as
        "Uncategorized", so the bucket total always equals the number of
        vendors scanned (after ``filter_category``, if given).
        """
        wanted = normalize_category(filter_category) if filter_category else None

        rows = await self._procedure_rows("category", {"filter_category": filter_category})
        if rows is not None:
            labels = [normalize_category(label) for label, _ in rows]
            weights = [int(count or 0) for _, count in rows]
        else:
            result = await run_query(self.session, select(Vendor.category), "vendor_categories")
            labels = [normalize_category(category) for (category,) in result.all()]
            weights = [1] * len(labels)

        if wanted is not None:
            pairs = [(label, w) for label, w in zip(labels, weights) if label == wanted]
            labels = [label for label, _ in pairs]
            weights = [w for _, w in pairs]
        return group_counts(labels, weights)

    # ── rankings ───────────────────────────────────────

    async def top_n(self, entity_kind: str, rank_field: str, n: int) -> list[RankedEntity]:
        """Top ``n`` rows by ``rank_field``; rows without a value are left out."""
        kind = _entity_kind(entity_kind)
        _check_n(n)
        try:
            id_col, label_col, rank_col = _RANK_FIELDS[kind][rank_field]
        except KeyError:
            raise InputValidationError(
                f"{kind} cannot be ranked by {rank_field!r}", field="rank_field"
            )

        stmt = (
            select(id_col, label_col, rank_col)
            .where(rank_col.is_not(None))
            .order_by(rank_col.desc())
            .limit(n)
        )
        result = await run_query(self.session, stmt, f"top_{kind}")
        return [
            RankedEntity(id=row_id, label=label or UNKNOWN, value=value)
            for row_id, label, value in result.all()
        ]

    async def spend_by_vendor(self, n: int = 6) -> list[SpendBucket]:
        """
        Total contract value per vendor, largest first.

        Sums stay integers; the division to display units happens once per
        bucket at the end.
        """
        _check_n(n)
        divisor = settings.spend_display_divisor

        rows = await self._procedure_rows("spend", {"limit_param": n})
        if rows is not None:
            pairs = [((label or "").strip() or UNKNOWN_VENDOR, int(total or 0)) for label, total in rows]
        else:
            stmt = (
                select(Vendor.name, Contract.value)
                .select_from(Contract)
                .outerjoin(Vendor, Vendor.id == Contract.vendor_id)
            )
            result = await run_query(self.session, stmt, "vendor_spend")
            pairs = [((name or "").strip() or UNKNOWN_VENDOR, int(value or 0)) for name, value in result.all()]

        totals: dict[str, int] = {}
        for label, value in pairs:
            totals[label] = totals.get(label, 0) + value

        # sorted() is stable: equal totals keep first-seen order
        ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)[:n]
        return [
            SpendBucket(label=label, value=total / divisor, raw_total=total)
            for label, total in ranked
        ]

    async def recent_vendor_scores(self, limit: int = 10) -> list[ScorePoint]:
        """Scores of the most recently added rated vendors, oldest first for charting."""
        _check_n(limit)
        stmt = (
            select(Vendor.name, Vendor.score)
            .where(Vendor.score.is_not(None))
            .order_by(Vendor.created_at.desc())
            .limit(limit)
        )
        result = await run_query(self.session, stmt, "vendor_scores")
        points = [ScorePoint(label=name or UNKNOWN, score=float(score)) for name, score in result.all()]
        points.reverse()
        return points

    async def average_vendor_rating(self) -> float:
        result = await run_query(
            self.session, select(Vendor.score).where(Vendor.score.is_not(None)), "vendor_scores",
        )
        scores = [float(score) for (score,) in result.all()]
        if not scores:
            return 0.0
        return round(sum(scores) / len(scores), 1)

    # ── summary ────────────────────────────────────────

    async def dashboard_stats(self, recent: int = 5) -> DashboardStats:
        total_vendors = await run_scalar(
            self.session, select(func.count()).select_from(Vendor), "vendor_count",
        )
        active_vendors = await run_scalar(
            self.session,
            select(func.count()).select_from(Vendor).where(Vendor.status == "active"),
            "vendor_count",
        )
        active_contracts = await run_scalar(
            self.session,
            select(func.count()).select_from(Contract).where(Contract.status == "active"),
            "contract_count",
        )
        total_documents = await run_scalar(
            self.session, select(func.count()).select_from(Document), "document_count",
        )

        vendors = await run_query(
            self.session,
            select(Vendor.id, Vendor.name, Vendor.created_at).order_by(Vendor.created_at.desc()).limit(recent),
            "recent_vendors",
        )
        contracts = await run_query(
            self.session,
            select(Contract.id, Contract.title, Contract.created_at, Vendor.name)
            .outerjoin(Vendor, Vendor.id == Contract.vendor_id)
            .order_by(Contract.created_at.desc())
            .limit(recent),
            "recent_contracts",
        )

        return DashboardStats(
            total_vendors=total_vendors or 0,
            active_vendors=active_vendors or 0,
            active_contracts=active_contracts or 0,
            total_documents=total_documents or 0,
            recent_vendors=[
                RecentVendor(id=vid, name=name, created_at=created_at)
                for vid, name, created_at in vendors.all()
            ],
            recent_contracts=[
                RecentContract(
                    id=cid, title=title, vendor_name=vendor_name or UNKNOWN_VENDOR, created_at=created_at,
                )
                for cid, title, created_at, vendor_name in contracts.all()
            ],
        )
