"""Single-pass summary statistics and distinct value collection."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Sequence, Set

import numpy as np

from dealbook.engine.query import QueryEngine
from dealbook.models import DealStatistics, FilterOptions, ScanControl

LOGGER = logging.getLogger(__name__)

STATUS_COUNTERS = {
    "Completed": "completed_deals",
    "Announced": "announced_deals",
    "Pending": "pending_deals",
}


def _numeric_values(records: Iterable[Mapping[str, Any]], field: str) -> np.ndarray:
    values = [
        record.get(field)
        for record in records
        if isinstance(record.get(field), (int, float)) and not isinstance(record.get(field), bool)
    ]
    return np.asarray(values, dtype="float64")


def _distinct_strings(records: Iterable[Mapping[str, Any]], fields: Sequence[str]) -> Set[str]:
    found: Set[str] = set()
    for record in records:
        for field in fields:
            value = record.get(field)
            if isinstance(value, str) and value:
                found.add(value)
    return found


class Aggregator:
    """Streams a table once to compute dashboard figures and filter choices."""

    def __init__(
        self,
        engine: QueryEngine,
        *,
        value_field: str = "transactionValue",
        status_field: str = "transactionStatus",
    ) -> None:
        self.engine = engine
        self.value_field = value_field
        self.status_field = status_field

    def statistics(self, table: str, *, control: ScanControl | None = None) -> DealStatistics:
        stats = DealStatistics()
        value_count = 0
        value_sum = 0.0
        largest: float | None = None

        for index, records, degraded in self.engine.iter_normalized(table, control=control):
            if degraded:
                stats.degraded_chunks.append(index)
            stats.total_deals += len(records)

            values = _numeric_values(records, self.value_field)
            if values.size:
                value_count += int(values.size)
                value_sum += float(values.sum())
                chunk_max = float(values.max())
                largest = chunk_max if largest is None else max(largest, chunk_max)

            for record in records:
                status = record.get(self.status_field)
                counter = STATUS_COUNTERS.get(status) if isinstance(status, str) else None
                if counter is not None:
                    setattr(stats, counter, getattr(stats, counter) + 1)

        stats.total_value = value_sum
        stats.avg_deal_size = value_sum / value_count if value_count else 0.0
        stats.largest_deal = largest if largest is not None else 0.0
        LOGGER.debug(
            "Statistics for %s: %d records, %d with values", table, stats.total_deals, value_count
        )
        return stats

    def distinct_values(
        self,
        table: str,
        fields: Sequence[str],
        *,
        control: ScanControl | None = None,
    ) -> List[str]:
        """Sorted distinct non-empty strings seen in any of ``fields``."""
        adapter = self.engine.adapter_for(table)
        canonical = adapter.canonical_fields_of(fields)
        found: Set[str] = set()
        for _, records, _ in self.engine.iter_normalized(table, control=control):
            found |= _distinct_strings(records, canonical)
        return sorted(found)

    def filter_options(self, table: str, *, control: ScanControl | None = None) -> FilterOptions:
        """Transaction types, regions and industries in one pass over the table."""
        types: Set[str] = set()
        regions: Set[str] = set()
        industries: Set[str] = set()
        for _, records, _ in self.engine.iter_normalized(table, control=control):
            types |= _distinct_strings(records, ("transactionType",))
            regions |= _distinct_strings(records, ("targetRegion",))
            industries |= _distinct_strings(records, ("targetIndustry1", "targetIndustry2"))
        return FilterOptions(
            transaction_types=sorted(types),
            regions=sorted(regions),
            industries=sorted(industries),
        )
