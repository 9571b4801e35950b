"""Tests for core data models."""

from __future__ import annotations

import threading
from unittest.mock import patch

import pytest

from dealbook.errors import ScanCancelled, ScanTimeout
from dealbook.models import (
    ChunkRead,
    DealStatistics,
    FilterOptions,
    QueryOptions,
    QueryResult,
    ScanControl,
    SortSpec,
    TableMetadata,
)


class TestTableMetadata:
    """Test TableMetadata parsing."""

    def test_from_dict(self) -> None:
        meta = TableMetadata.from_dict(
            {
                "name": "deals",
                "chunksCount": 3,
                "totalRows": 2037,
                "columns": ["id", "target_name"],
                "createdAt": "2024-01-01T00:00:00",
                "source": {"file": "db.xlsx"},
            }
        )

        assert meta.name == "deals"
        assert meta.chunks_count == 3
        assert meta.total_rows == 2037
        assert meta.columns == ["id", "target_name"]
        assert meta.updated_at is None
        assert meta.extra == {"source": {"file": "db.xlsx"}}

    def test_default_name(self) -> None:
        meta = TableMetadata.from_dict({"chunksCount": 1}, default_name="deals")
        assert meta.name == "deals"
        assert meta.total_rows is None

    def test_to_dict_round_trips_extra_keys(self) -> None:
        payload = {
            "name": "deals",
            "chunksCount": 2,
            "totalRows": 10,
            "columns": [],
            "createdAt": None,
            "updatedAt": None,
            "source": {"sha256": "abc"},
        }
        assert TableMetadata.from_dict(payload).to_dict() == payload

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"chunksCount": 1},
            {"name": "deals"},
            {"name": "deals", "chunksCount": -1},
            {"name": "deals", "chunksCount": 1.5},
            {"name": "deals", "chunksCount": True},
            {"name": "deals", "chunksCount": "3"},
            {"name": "deals", "chunksCount": 1, "columns": "id"},
        ],
    )
    def test_malformed(self, payload) -> None:
        with pytest.raises(ValueError):
            TableMetadata.from_dict(payload)


class TestChunkRead:
    def test_degraded_status(self) -> None:
        assert not ChunkRead("deals", 0, []).degraded
        assert ChunkRead("deals", 1, [], status="missing").degraded
        assert ChunkRead("deals", 2, [], status="corrupt").degraded


class TestSortSpec:
    def test_direction_is_normalized(self) -> None:
        spec = SortSpec("transactionValue", "DESC")
        assert spec.direction == "desc"
        assert spec.descending

    def test_default_ascending(self) -> None:
        assert not SortSpec("id").descending

    def test_invalid_direction(self) -> None:
        with pytest.raises(ValueError):
            SortSpec("id", "sideways")


class TestScanControl:
    """Cancellation and timeout at chunk boundaries."""

    def test_noop_by_default(self) -> None:
        control = ScanControl()
        for index in range(5):
            control.checkpoint("deals", index)

    def test_cancel(self) -> None:
        control = ScanControl()
        control.checkpoint("deals", 0)
        control.cancel()
        with pytest.raises(ScanCancelled) as excinfo:
            control.checkpoint("deals", 1)
        assert excinfo.value.chunk_index == 1

    def test_shared_event(self) -> None:
        event = threading.Event()
        control = ScanControl(cancel_event=event)
        event.set()
        with pytest.raises(ScanCancelled):
            control.checkpoint("deals", 0)

    def test_timeout_starts_on_first_checkpoint(self) -> None:
        control = ScanControl(timeout=1.0)
        with patch("dealbook.models.time.monotonic", side_effect=[100.0, 100.5, 101.5]):
            control.checkpoint("deals", 0)
            control.checkpoint("deals", 1)
            with pytest.raises(ScanTimeout) as excinfo:
                control.checkpoint("deals", 2)
        assert excinfo.value.timeout == 1.0
        assert "deals" in str(excinfo.value)


class TestQueryOptions:
    def test_defaults(self) -> None:
        options = QueryOptions()
        assert options.filter == {}
        assert options.limit is None
        assert options.offset == 0
        assert options.include_total

    @pytest.mark.parametrize("kwargs", [{"limit": -1}, {"offset": -5}])
    def test_negative_values(self, kwargs) -> None:
        with pytest.raises(ValueError):
            QueryOptions(**kwargs)


class TestResults:
    def test_query_result_degraded(self) -> None:
        assert not QueryResult([], 0, 0, None).degraded
        assert QueryResult([], 0, 0, None, degraded_chunks=[2]).degraded

    def test_statistics_to_dict(self) -> None:
        stats = DealStatistics(total_deals=2, total_value=30.0, avg_deal_size=15.0, largest_deal=20.0)
        payload = stats.to_dict()
        assert payload["totalDeals"] == 2
        assert payload["avgDealSize"] == 15.0
        assert "degradedChunks" not in payload

    def test_filter_options_to_dict(self) -> None:
        options = FilterOptions(transaction_types=["Merger"], regions=["Asia"])
        assert options.to_dict() == {
            "transactionTypes": ["Merger"],
            "regions": ["Asia"],
            "industries": [],
        }
