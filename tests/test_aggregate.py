"""Tests for statistics and distinct value collection."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import make_deal, write_table
from dealbook.engine.aggregate import Aggregator
from dealbook.engine.query import QueryEngine
from dealbook.engine.schema import DEAL_ADAPTER
from dealbook.engine.storage import ChunkStore
from dealbook.errors import TableNotFoundError


def _aggregator(data_dir: Path) -> Aggregator:
    return Aggregator(QueryEngine(ChunkStore(data_dir), {"deals": DEAL_ADAPTER}))


class TestStatistics:
    """Test the single-pass summary."""

    def test_average_ignores_missing_values(self, tmp_path: Path) -> None:
        write_table(
            tmp_path,
            "deals",
            [
                [make_deal(1, transaction_value=10), make_deal(2, transaction_value=20)],
                [make_deal(3, transaction_value=None), make_deal(4, transaction_value=30)],
            ],
        )
        stats = _aggregator(tmp_path).statistics("deals")

        assert stats.total_deals == 4
        assert stats.total_value == pytest.approx(60)
        assert stats.avg_deal_size == pytest.approx(20)
        assert stats.largest_deal == pytest.approx(30)

    def test_non_numeric_values_are_skipped(self, tmp_path: Path) -> None:
        write_table(
            tmp_path,
            "deals",
            [[
                make_deal(1, transaction_value="n/a"),
                make_deal(2, transaction_value=True),
                make_deal(3, transaction_value=8),
            ]],
        )
        stats = _aggregator(tmp_path).statistics("deals")
        assert stats.avg_deal_size == pytest.approx(8)
        assert stats.total_value == pytest.approx(8)

    def test_camel_case_chunks(self, tmp_path: Path) -> None:
        write_table(
            tmp_path,
            "deals",
            [[
                {"id": 1, "transactionValue": 5, "transactionStatus": "Completed"},
                {"id": 2, "transactionValue": 15, "transactionStatus": "Pending"},
            ]],
        )
        stats = _aggregator(tmp_path).statistics("deals")
        assert stats.total_value == pytest.approx(20)
        assert stats.completed_deals == 1
        assert stats.pending_deals == 1

    def test_status_counts(self, tmp_path: Path) -> None:
        statuses = ["Completed", "Completed", "Announced", "Pending", "Withdrawn", None]
        write_table(
            tmp_path,
            "deals",
            [[make_deal(i, transaction_status=s) for i, s in enumerate(statuses, start=1)]],
        )
        stats = _aggregator(tmp_path).statistics("deals")

        assert stats.completed_deals == 2
        assert stats.announced_deals == 1
        assert stats.pending_deals == 1
        assert stats.total_deals == 6

    def test_empty_table(self, tmp_path: Path) -> None:
        write_table(tmp_path, "deals", [], columns=["id"])
        stats = _aggregator(tmp_path).statistics("deals")
        assert stats.total_deals == 0
        assert stats.avg_deal_size == 0.0
        assert stats.largest_deal == 0.0

    def test_degraded_chunks_reported(self, small_deals_dir: Path) -> None:
        (small_deals_dir / "deals" / "chunk_2.json").write_text("{")
        stats = _aggregator(small_deals_dir).statistics("deals")
        assert stats.total_deals == 10
        assert stats.degraded_chunks == [2]

    def test_to_dict_uses_ui_names(self, small_deals_dir: Path) -> None:
        payload = _aggregator(small_deals_dir).statistics("deals").to_dict()
        assert set(payload) == {
            "totalDeals",
            "totalValue",
            "avgDealSize",
            "largestDeal",
            "completedDeals",
            "announcedDeals",
            "pendingDeals",
        }

    def test_unknown_table(self, small_deals_dir: Path) -> None:
        with pytest.raises(TableNotFoundError):
            _aggregator(small_deals_dir).statistics("other")


class TestFilterOptions:
    """Distinct values for the filter panel."""

    def test_sorted_and_unique(self, deals_dir: Path) -> None:
        options = _aggregator(deals_dir).filter_options("deals")

        assert options.transaction_types == ["Acquisition", "Divestiture", "Merger"]
        assert options.regions == ["Asia", "Europe", "North America"]
        assert options.industries == ["Energy", "Healthcare", "Retail", "Software"]

    def test_same_industry_in_both_fields(self, tmp_path: Path) -> None:
        write_table(
            tmp_path,
            "deals",
            [[
                make_deal(1, target_industry_1="Software", target_industry_2="Software"),
                make_deal(2, target_industry_1="Banking", target_industry_2=None),
                make_deal(3, target_industry_1="", target_industry_2="Software"),
            ]],
        )
        options = _aggregator(tmp_path).filter_options("deals")
        assert options.industries == ["Banking", "Software"]

    def test_distinct_values_accepts_storage_names(self, small_deals_dir: Path) -> None:
        aggregator = _aggregator(small_deals_dir)
        assert aggregator.distinct_values("deals", ("target_region",)) == [
            "Asia",
            "Europe",
            "North America",
        ]
