"""Deal-level API used by the grid, filter panel and summary cards."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from openpyxl import Workbook

from dealbook.config import DEFAULT_TABLE
from dealbook.engine.aggregate import Aggregator
from dealbook.engine.predicates import AnyFieldIn, TextSearch
from dealbook.engine.query import QueryEngine
from dealbook.engine.schema import DEAL_ADAPTER
from dealbook.engine.storage import ChunkStore
from dealbook.errors import RecordNotFoundError
from dealbook.models import (
    DealStatistics,
    FilterOptions,
    FilterSpec,
    QueryOptions,
    Record,
    RecordPredicate,
    ScanControl,
    SortSpec,
)

LOGGER = logging.getLogger(__name__)

SEARCH_FIELDS: Tuple[str, ...] = ("targetName", "acquirerName", "divestorName", "dealSummary")
INDUSTRY_FIELDS: Tuple[str, ...] = ("targetIndustry1", "targetIndustry2")


@dataclass(slots=True)
class DealFilters:
    """Filter panel selections, in the shape the UI sends them."""

    transaction_types: List[str] = field(default_factory=list)
    start_date: str | None = None
    end_date: str | None = None
    min_size: float | None = None
    max_size: float | None = None
    regions: List[str] = field(default_factory=list)
    industries: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "DealFilters":
        payload = payload or {}
        return cls(
            transaction_types=list(payload.get("transactionTypes") or []),
            start_date=payload.get("startDate") or None,
            end_date=payload.get("endDate") or None,
            min_size=payload.get("minSize"),
            max_size=payload.get("maxSize"),
            regions=list(payload.get("regions") or []),
            industries=list(payload.get("industries") or []),
        )

    def to_filter_spec(self) -> FilterSpec:
        spec: FilterSpec = {}
        if self.transaction_types:
            spec["transactionType"] = list(self.transaction_types)
        if self.start_date or self.end_date:
            spec["announcementDate"] = {}
            if self.start_date:
                spec["announcementDate"]["gte"] = self.start_date
            if self.end_date:
                spec["announcementDate"]["lte"] = self.end_date
        if self.min_size is not None or self.max_size is not None:
            spec["transactionValue"] = {}
            if self.min_size is not None:
                spec["transactionValue"]["gte"] = self.min_size
            if self.max_size is not None:
                spec["transactionValue"]["lte"] = self.max_size
        if self.regions:
            spec["targetRegion"] = list(self.regions)
        return spec

    def post_filters(self) -> List[RecordPredicate]:
        if not self.industries:
            return []
        return [AnyFieldIn(INDUSTRY_FIELDS, tuple(self.industries))]


@dataclass(slots=True)
class DealsRequest:
    search_query: str = ""
    filters: DealFilters = field(default_factory=DealFilters)
    page: int = 0
    page_size: int = 100
    sort_field: str | None = "announcementDate"
    sort_direction: str = "desc"

    def query_options(self, *, paginate: bool = True) -> QueryOptions:
        post: List[RecordPredicate] = list(self.filters.post_filters())
        if self.search_query.strip():
            post.append(TextSearch(self.search_query, SEARCH_FIELDS))
        return QueryOptions(
            filter=self.filters.to_filter_spec(),
            limit=self.page_size if paginate else None,
            offset=self.page * self.page_size if paginate else 0,
            sort=SortSpec(self.sort_field, self.sort_direction) if self.sort_field else None,
            post_filters=post,
        )


@dataclass(slots=True)
class DealsPage:
    deals: List[Record]
    total_count: int
    degraded_chunks: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"deals": self.deals, "totalCount": self.total_count}


def _same_id(value: Any, wanted: Any) -> bool:
    """Loose id comparison so ``7``, ``7.0`` and ``"7"`` all find the same deal."""
    if value is None or wanted is None:
        return False
    if str(value).strip() == str(wanted).strip():
        return True
    try:
        return float(value) == float(wanted)
    except (TypeError, ValueError):
        return False


class DealService:
    """High-level API over the deals table."""

    def __init__(self, engine: QueryEngine, *, table: str = DEFAULT_TABLE) -> None:
        self.engine = engine
        self.table = table
        self.aggregator = Aggregator(engine)

    @classmethod
    def open(cls, data_dir: Path, *, table: str = DEFAULT_TABLE) -> "DealService":
        store = ChunkStore(data_dir)
        return cls(QueryEngine(store, {table: DEAL_ADAPTER}), table=table)

    def is_data_loaded(self) -> bool:
        meta = self.engine.store.get_table_metadata(self.table)
        return meta is not None and meta.chunks_count > 0

    def get_deals(
        self, request: DealsRequest | None = None, *, control: ScanControl | None = None
    ) -> DealsPage:
        request = request or DealsRequest()
        options = request.query_options()
        options.control = control
        result = self.engine.query(self.table, options)
        return DealsPage(
            deals=result.data,
            total_count=result.total or 0,
            degraded_chunks=result.degraded_chunks,
        )

    def get_statistics(self, *, control: ScanControl | None = None) -> DealStatistics:
        return self.aggregator.statistics(self.table, control=control)

    def get_deal_by_id(self, deal_id: Any) -> Record:
        deal = self.engine.find_first(self.table, lambda record: _same_id(record.get("id"), deal_id))
        if deal is None:
            raise RecordNotFoundError(self.table, deal_id)
        return deal

    def get_filter_options(self, *, control: ScanControl | None = None) -> FilterOptions:
        return self.aggregator.filter_options(self.table, control=control)

    def get_transaction_types(self) -> List[str]:
        return self.aggregator.distinct_values(self.table, ("transactionType",))

    def get_regions(self) -> List[str]:
        return self.aggregator.distinct_values(self.table, ("targetRegion",))

    def get_industries(self) -> List[str]:
        return self.aggregator.distinct_values(self.table, INDUSTRY_FIELDS)

    def export_deals(
        self,
        request: DealsRequest,
        path: Path,
        *,
        columns: Sequence[str] | None = None,
    ) -> int:
        """Write every deal matching ``request`` (ignoring pagination) to ``path``."""
        columns = list(columns or DEAL_ADAPTER.canonical_fields)
        result = self.engine.query(
            self.table, request.query_options(paginate=False)
        )

        workbook = Workbook(write_only=True)
        sheet = workbook.create_sheet(title="Deals")
        sheet.append(columns)
        for deal in result.data:
            sheet.append([deal.get(column) for column in columns])

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        workbook.save(path)
        LOGGER.info("Exported %d deals to %s", len(result.data), path)
        return len(result.data)
