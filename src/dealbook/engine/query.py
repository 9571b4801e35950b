"""Paginated, filtered and sorted queries over chunked tables."""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, List, Mapping, Sequence, Tuple

from dealbook.engine.predicates import matches
from dealbook.engine.schema import IDENTITY_ADAPTER, RecordAdapter
from dealbook.engine.storage import ChunkStore
from dealbook.models import (
    FilterSpec,
    QueryOptions,
    QueryResult,
    Record,
    RecordPredicate,
    ScanControl,
    SortSpec,
)

LOGGER = logging.getLogger(__name__)


def _sort_key(field: str) -> Callable[[Mapping[str, Any]], Tuple]:
    def key(record: Mapping[str, Any]) -> Tuple:
        value = record.get(field)
        if value is None:
            return (0,)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return (1, 0, value)
        if isinstance(value, str):
            return (1, 1, value)
        # Mixed-type columns still need a total order
        return (1, 2, str(value))

    return key


def sort_records(records: List[Record], sort: SortSpec | None) -> List[Record]:
    """Stable sort; missing values go first ascending and last descending."""
    if sort is None or not sort.field:
        return records
    return sorted(records, key=_sort_key(sort.field), reverse=sort.descending)


def project(records: List[Record], fields: Sequence[str]) -> List[Record]:
    if not fields:
        return records
    return [{f: record[f] for f in fields if f in record} for record in records]


class QueryEngine:
    """Answers queries by streaming chunks from a :class:`ChunkStore`.

    Records are normalized through the table's :class:`RecordAdapter` as soon as
    a chunk is read, so filters, sorting, search and projection all see the
    canonical field names. Filter keys and sort fields may be given in either
    naming convention.
    """

    def __init__(
        self,
        store: ChunkStore,
        adapters: Mapping[str, RecordAdapter] | None = None,
    ) -> None:
        self.store = store
        self.adapters = dict(adapters or {})

    def adapter_for(self, table: str) -> RecordAdapter:
        return self.adapters.get(table, IDENTITY_ADAPTER)

    def iter_normalized(
        self, table: str, *, control: ScanControl | None = None
    ) -> Iterator[Tuple[int, List[Record], bool]]:
        """Yield ``(chunk_index, normalized_records, degraded)`` per chunk."""
        adapter = self.adapter_for(table)
        for chunk in self.store.iter_chunks(table, control=control):
            yield chunk.index, [adapter.normalize(r) for r in chunk.records], chunk.degraded

    def query(self, table: str, options: QueryOptions | None = None) -> QueryResult:
        options = options or QueryOptions()
        meta = self.store.require_table(table)
        adapter = self.adapter_for(table)

        spec = adapter.canonical_filter(options.filter)
        sort = None
        if options.sort is not None and options.sort.field:
            sort = SortSpec(adapter.canonical_field(options.sort.field), options.sort.direction)
        fields = adapter.canonical_fields_of(options.fields)
        post_filters = tuple(options.post_filters)

        offset = options.offset
        end = None if options.limit is None else offset + options.limit
        # Only a positive metadata row count stands in for the filtered total
        total_is_known = not spec and not post_filters and bool(meta.total_rows)
        # Sorting needs every match; so does counting a filtered total
        full_scan = sort is not None or (options.include_total and not total_is_known)

        page: List[Record] = []
        degraded: List[int] = []
        matched = 0
        stopped_early = False
        for index in range(meta.chunks_count):
            if not full_scan and end is not None and matched >= end:
                stopped_early = True
                break
            if options.control is not None:
                options.control.checkpoint(table, index)

            chunk = self.store.load_chunk(table, index)
            if chunk.degraded:
                degraded.append(index)
            hits = [
                record
                for record in map(adapter.normalize, chunk.records)
                if matches(record, spec) and all(p(record) for p in post_filters)
            ]

            if sort is not None:
                page.extend(hits)
            else:
                start = max(0, offset - matched)
                if end is None:
                    page.extend(hits[start:])
                else:
                    needed = end - max(matched, offset)
                    if needed > 0:
                        page.extend(hits[start : start + needed])
            matched += len(hits)

        if sort is not None:
            page = sort_records(page, sort)[offset:end]

        total: int | None = None
        if options.include_total:
            # A completed scan reports what it matched, not what metadata claims
            total = meta.total_rows if stopped_early else matched

        LOGGER.debug(
            "Query %s: %d rows (offset=%d, limit=%s, total=%s, degraded=%s)",
            table,
            len(page),
            offset,
            options.limit,
            total,
            degraded,
        )
        return QueryResult(
            data=project(page, fields),
            total=total,
            offset=offset,
            limit=options.limit,
            degraded_chunks=degraded,
        )

    def count(
        self,
        table: str,
        filter: FilterSpec | None = None,
        *,
        post_filters: Sequence[RecordPredicate] = (),
        control: ScanControl | None = None,
    ) -> int:
        """Number of records matching ``filter`` across the whole table."""
        result = self.query(
            table,
            QueryOptions(
                filter=dict(filter or {}),
                limit=0,
                post_filters=post_filters,
                control=control,
            ),
        )
        return result.total or 0

    def find_first(
        self,
        table: str,
        predicate: RecordPredicate,
        *,
        control: ScanControl | None = None,
    ) -> Record | None:
        for _, records, _ in self.iter_normalized(table, control=control):
            for record in records:
                if predicate(record):
                    return record
        return None

    def get_all_data(self, table: str) -> List[Record]:
        """Every record of ``table``, normalized. Holds the whole table in memory."""
        data: List[Record] = []
        for _, records, _ in self.iter_normalized(table):
            data.extend(records)
        return data
