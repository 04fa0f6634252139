"""
VendorHub — Dashboard aggregation API routes.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vendorhub.database import get_db
from vendorhub.errors import envelope
from vendorhub.services.reporter import AggregationReporter

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def get_reporter(db: AsyncSession = Depends(get_db)) -> AggregationReporter:
    return AggregationReporter(db)


@router.get("/stats")
async def dashboard_stats(reporter: AggregationReporter = Depends(get_reporter)):
    return envelope(await reporter.dashboard_stats())


@router.get("/categories")
async def category_distribution(
    filter_category: str | None = Query(None),
    reporter: AggregationReporter = Depends(get_reporter),
):
    return envelope(await reporter.count_by_category(filter_category))


@router.get("/status/{entity_kind}")
async def status_distribution(entity_kind: str, reporter: AggregationReporter = Depends(get_reporter)):
    return envelope(await reporter.count_by_status(entity_kind))


@router.get("/top/{entity_kind}")
async def top_ranked(
    entity_kind: str,
    rank_field: str = Query("score"),
    n: int = Query(4),
    reporter: AggregationReporter = Depends(get_reporter),
):
    return envelope(await reporter.top_n(entity_kind, rank_field, n))


@router.get("/spend")
async def spend_by_vendor(n: int = Query(6), reporter: AggregationReporter = Depends(get_reporter)):
    return envelope(await reporter.spend_by_vendor(n))


@router.get("/scores")
async def recent_vendor_scores(limit: int = Query(10), reporter: AggregationReporter = Depends(get_reporter)):
    return envelope(await reporter.recent_vendor_scores(limit))


@router.get("/rating")
async def average_rating(reporter: AggregationReporter = Depends(get_reporter)):
    return envelope({"average_rating": await reporter.average_vendor_rating()})
