"""Core dealbook data models."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Mapping, Sequence

from dealbook.errors import ScanCancelled, ScanTimeout

Record = Dict[str, Any]
FilterSpec = Dict[str, Any]
RecordPredicate = Callable[[Mapping[str, Any]], bool]
ChunkStatus = Literal["ok", "missing", "corrupt"]


def _non_negative_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{key}' must be a number, got {value!r}")
    if value < 0 or int(value) != value:
        raise ValueError(f"'{key}' must be a non-negative integer, got {value!r}")
    return int(value)


@dataclass(slots=True)
class TableMetadata:
    """Descriptor of one chunked table as written by the conversion step.

    ``total_rows`` is ``None`` when the descriptor does not record a row count.
    """

    name: str
    chunks_count: int
    total_rows: int | None
    columns: List[str] = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Any, *, default_name: str | None = None) -> "TableMetadata":
        """Build metadata from a descriptor, raising ``ValueError`` when malformed."""
        if not isinstance(payload, dict):
            raise ValueError("metadata descriptor must be a JSON object")

        name = payload.get("name") or default_name
        if not isinstance(name, str) or not name:
            raise ValueError("metadata descriptor has no table name")

        columns = payload.get("columns", [])
        if not isinstance(columns, list) or not all(isinstance(c, str) for c in columns):
            raise ValueError("'columns' must be a list of field names")

        known = {"name", "chunksCount", "totalRows", "columns", "createdAt", "updatedAt"}
        return cls(
            name=name,
            chunks_count=_non_negative_int(payload.get("chunksCount"), "chunksCount"),
            total_rows=(
                None
                if payload.get("totalRows") is None
                else _non_negative_int(payload["totalRows"], "totalRows")
            ),
            columns=list(columns),
            created_at=payload.get("createdAt"),
            updated_at=payload.get("updatedAt"),
            extra={k: v for k, v in payload.items() if k not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(self.extra)
        payload.update(
            {
                "name": self.name,
                "chunksCount": self.chunks_count,
                "totalRows": self.total_rows,
                "columns": list(self.columns),
                "createdAt": self.created_at,
                "updatedAt": self.updated_at,
            }
        )
        return payload


@dataclass(slots=True)
class ChunkRead:
    """Outcome of reading one chunk: its records and whether the read degraded."""

    table: str
    index: int
    records: List[Record]
    status: ChunkStatus = "ok"

    @property
    def degraded(self) -> bool:
        return self.status != "ok"


@dataclass(slots=True)
class SortSpec:
    field: str
    direction: Literal["asc", "desc"] = "asc"

    def __post_init__(self) -> None:
        direction = str(self.direction).lower()
        if direction not in ("asc", "desc"):
            raise ValueError(f"Sort direction must be 'asc' or 'desc', got {self.direction!r}")
        self.direction = direction  # type: ignore[assignment]

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


@dataclass(slots=True)
class ScanControl:
    """Cancellation and timeout checked once per chunk boundary.

    The clock starts on the first ``checkpoint`` call, so one control can be
    built ahead of time and handed to a query.
    """

    cancel_event: threading.Event | None = None
    timeout: float | None = None
    _deadline: float | None = field(default=None, init=False, repr=False)

    def cancel(self) -> None:
        if self.cancel_event is None:
            self.cancel_event = threading.Event()
        self.cancel_event.set()

    def checkpoint(self, table: str, chunk_index: int) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ScanCancelled(table, chunk_index)
        if self.timeout is None:
            return
        now = time.monotonic()
        if self._deadline is None:
            self._deadline = now + self.timeout
        elif now > self._deadline:
            raise ScanTimeout(table, chunk_index, self.timeout)


@dataclass(slots=True)
class QueryOptions:
    filter: FilterSpec = field(default_factory=dict)
    limit: int | None = None
    offset: int = 0
    fields: Sequence[str] = ()
    sort: SortSpec | None = None
    post_filters: Sequence[RecordPredicate] = ()
    include_total: bool = True
    control: ScanControl | None = None

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must be non-negative")
        if self.offset < 0:
            raise ValueError("offset must be non-negative")


@dataclass(slots=True)
class QueryResult:
    data: List[Record]
    total: int | None
    offset: int
    limit: int | None
    degraded_chunks: List[int] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.degraded_chunks)


@dataclass(slots=True)
class DealStatistics:
    total_deals: int = 0
    total_value: float = 0.0
    avg_deal_size: float = 0.0
    largest_deal: float = 0.0
    completed_deals: int = 0
    announced_deals: int = 0
    pending_deals: int = 0
    degraded_chunks: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalDeals": self.total_deals,
            "totalValue": self.total_value,
            "avgDealSize": self.avg_deal_size,
            "largestDeal": self.largest_deal,
            "completedDeals": self.completed_deals,
            "announcedDeals": self.announced_deals,
            "pendingDeals": self.pending_deals,
        }


@dataclass(slots=True)
class FilterOptions:
    transaction_types: List[str] = field(default_factory=list)
    regions: List[str] = field(default_factory=list)
    industries: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "transactionTypes": list(self.transaction_types),
            "regions": list(self.regions),
            "industries": list(self.industries),
        }
