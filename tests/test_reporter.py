"""
Tests for the Aggregation Reporter — label rules, integer spend, rankings,
procedure fallback and typed failures.
"""

from datetime import timedelta

import pytest

from vendorhub.errors import FetchError, InputValidationError
from vendorhub.services.reporter import (
    AggregationReporter,
    group_counts,
    normalize_category,
    normalize_status,
)

from tests.conftest import NOW, add_contract, add_document, add_vendor

END = (NOW + timedelta(days=365)).date()


class TestLabelRules:
    @pytest.mark.parametrize("raw,expected", [
        ("IT", "IT"), ("  Legal ", "Legal"), ("", "Uncategorized"), ("   ", "Uncategorized"), (None, "Uncategorized"),
    ])
    def test_category(self, raw, expected):
        assert normalize_category(raw) == expected

    @pytest.mark.parametrize("raw,expected", [
        ("active", "Active"), ("Active", "Active"), ("on_hold", "On_hold"), ("", "Unknown"), (None, "Unknown"),
    ])
    def test_status(self, raw, expected):
        assert normalize_status(raw) == expected

    def test_group_counts_order(self):
        buckets = group_counts(["b", "a", "b", "c", "a", "b"])
        assert [(b.label, b.value) for b in buckets] == [("b", 3), ("a", 2), ("c", 1)]

    def test_group_counts_weighted(self):
        buckets = group_counts(["x", "y", "x"], [2, 5, 1])
        assert [(b.label, b.value) for b in buckets] == [("y", 5), ("x", 3)]


class TestCountByCategory:
    async def _seed(self, db_session):
        for n, category in enumerate(["IT", " IT ", "", "   ", None, "Legal"]):
            await add_vendor(db_session, f"Vendor {n}", category=category)

    async def test_every_vendor_counted(self, db_session):
        await self._seed(db_session)
        buckets = await AggregationReporter(db_session).count_by_category()

        assert [(b.label, b.value) for b in buckets] == [("Uncategorized", 3), ("IT", 2), ("Legal", 1)]
        assert sum(b.value for b in buckets) == 6

    async def test_filter(self, db_session):
        await self._seed(db_session)
        buckets = await AggregationReporter(db_session).count_by_category(" IT")
        assert [(b.label, b.value) for b in buckets] == [("IT", 2)]

    async def test_empty(self, db_session):
        assert await AggregationReporter(db_session).count_by_category() == []

    async def test_procedure_unavailable_falls_back(self, db_session):
        await self._seed(db_session)
        buckets = await AggregationReporter(db_session, use_procedures=True).count_by_category()
        assert sum(b.value for b in buckets) == 6


class TestCountByStatus:
    async def test_contract_statuses_capitalised(self, db_session):
        acme = await add_vendor(db_session, "Acme")
        for n, status in enumerate(["active", "Active", "draft", "  "]):
            await add_contract(db_session, acme, f"C{n}", END, status=status)

        buckets = await AggregationReporter(db_session).count_by_status("contracts")
        assert [(b.label, b.value) for b in buckets] == [("Active", 2), ("Draft", 1), ("Unknown", 1)]

    async def test_vendor_statuses(self, db_session):
        await add_vendor(db_session, "A", status="active")
        await add_vendor(db_session, "B")

        buckets = await AggregationReporter(db_session).count_by_status("vendor")
        assert {b.label: b.value for b in buckets} == {"Active": 1, "Pending": 1}

    async def test_procedure_unavailable_falls_back(self, db_session):
        acme = await add_vendor(db_session, "Acme")
        await add_contract(db_session, acme, "C", END, status="active")

        buckets = await AggregationReporter(db_session, use_procedures=True).count_by_status("contracts")
        assert [(b.label, b.value) for b in buckets] == [("Active", 1)]

    async def test_unknown_kind(self, db_session):
        with pytest.raises(InputValidationError):
            await AggregationReporter(db_session).count_by_status("widgets")


class TestTopN:
    async def test_vendors_by_score_skip_unrated(self, db_session):
        for name, score in [("A", 4.5), ("B", None), ("C", 3.0), ("D", 5.0)]:
            await add_vendor(db_session, name, score=score)
        reporter = AggregationReporter(db_session)

        top = await reporter.top_n("vendors", "score", 2)
        assert [(r.label, r.value) for r in top] == [("D", 5.0), ("A", 4.5)]

        top = await reporter.top_n("vendors", "score", 10)
        assert [r.label for r in top] == ["D", "A", "C"]

    async def test_contracts_by_value(self, db_session):
        acme = await add_vendor(db_session, "Acme")
        for title, value in [("Small", 10), ("Big", 900000), ("Mid", 5000)]:
            await add_contract(db_session, acme, title, END, value=value)

        top = await AggregationReporter(db_session).top_n("contracts", "value", 2)
        assert [(r.label, r.value) for r in top] == [("Big", 900000), ("Mid", 5000)]

    async def test_bad_arguments(self, db_session):
        reporter = AggregationReporter(db_session)
        with pytest.raises(InputValidationError):
            await reporter.top_n("vendors", "value", 3)
        with pytest.raises(InputValidationError):
            await reporter.top_n("vendors", "score", 0)


class TestSpendByVendor:
    async def _seed(self, db_session):
        a = await add_vendor(db_session, "Vendor A")
        b = await add_vendor(db_session, "Vendor B")
        await add_contract(db_session, a, "A1", END, value=100000)
        await add_contract(db_session, a, "A2", END, value=250000)
        await add_contract(db_session, b, "B1", END, value=50000)

    async def test_totals_in_thousands(self, db_session):
        await self._seed(db_session)
        buckets = await AggregationReporter(db_session).spend_by_vendor()

        assert [(b.label, b.value, b.raw_total) for b in buckets] == [
            ("Vendor A", 350.0, 350000),
            ("Vendor B", 50.0, 50000),
        ]

    async def test_repeat_calls_identical(self, db_session):
        await self._seed(db_session)
        reporter = AggregationReporter(db_session)
        assert await reporter.spend_by_vendor() == await reporter.spend_by_vendor()

    async def test_top_n_and_missing_vendor(self, db_session):
        await self._seed(db_session)
        await add_contract(db_session, "ghost-vendor", "Orphan", END, value=1000)

        buckets = await AggregationReporter(db_session).spend_by_vendor(n=3)
        assert [b.label for b in buckets] == ["Vendor A", "Vendor B", "Unknown Vendor"]

        buckets = await AggregationReporter(db_session).spend_by_vendor(n=1)
        assert [b.label for b in buckets] == ["Vendor A"]

    async def test_procedure_unavailable_falls_back(self, db_session):
        await self._seed(db_session)
        buckets = await AggregationReporter(db_session, use_procedures=True).spend_by_vendor()
        assert buckets[0].value == 350.0


class TestDashboardSummary:
    async def test_stats(self, db_session):
        old = await add_vendor(db_session, "Old Co", created_at=NOW - timedelta(days=9), status="active")
        new = await add_vendor(db_session, "New Co", created_at=NOW - timedelta(days=1))
        await add_contract(db_session, old, "Live", END, status="active")
        await add_contract(db_session, new, "Draft", END)
        await add_document(db_session, new.id, "w9.pdf")

        stats = await AggregationReporter(db_session).dashboard_stats()
        assert stats.total_vendors == 2
        assert stats.active_vendors == 1
        assert stats.active_contracts == 1
        assert stats.total_documents == 1
        assert [v.name for v in stats.recent_vendors] == ["New Co", "Old Co"]
        assert {c.vendor_name for c in stats.recent_contracts} == {"Old Co", "New Co"}

    async def test_scores_and_average(self, db_session):
        for n, score in enumerate([4.5, 3.0, 5.0]):
            await add_vendor(db_session, f"V{n}", score=score, created_at=NOW - timedelta(days=10 - n))
        await add_vendor(db_session, "Unrated")
        reporter = AggregationReporter(db_session)

        points = await reporter.recent_vendor_scores(limit=2)
        assert [(p.label, p.score) for p in points] == [("V1", 3.0), ("V2", 5.0)]
        assert await reporter.average_vendor_rating() == 4.2

    async def test_average_without_ratings(self, db_session):
        assert await AggregationReporter(db_session).average_vendor_rating() == 0.0


class TestTypedFailures:
    async def test_no_fallback_data(self, broken_factory):
        async with broken_factory() as session:
            reporter = AggregationReporter(session)
            with pytest.raises(FetchError) as exc_info:
                await reporter.count_by_category()
            assert exc_info.value.source == "vendor_categories"

            with pytest.raises(FetchError):
                await reporter.spend_by_vendor()
            with pytest.raises(FetchError):
                await reporter.dashboard_stats()
