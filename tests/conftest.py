"""Shared fixtures: small chunk directories written the way the importer does."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Dict, List, Sequence

import pytest

STATUSES = ("Completed", "Announced", "Pending", None)
TYPES = ("Acquisition", "Merger", "Divestiture")
REGIONS = ("North America", "Europe", "Asia")
INDUSTRIES = ("Software", "Healthcare", "Energy", "Retail")


def make_deal(i: int, **overrides: Any) -> Dict[str, Any]:
    """A snake_case deal record as written by the importer."""
    deal = {
        "id": i,
        "target_name": f"Target {i}",
        "announcement_date": f"20{10 + i % 14:02d}-{1 + i % 12:02d}-{1 + i % 28:02d}",
        "transaction_type": TYPES[i % len(TYPES)],
        "transaction_status": STATUSES[i % len(STATUSES)],
        "transaction_value": float(i % 50) * 10 if i % 7 else None,
        "divestor_name": None,
        "acquirer_name": f"Acquirer {i % 13}",
        "target_region": REGIONS[i % len(REGIONS)],
        "target_industry_1": INDUSTRIES[i % len(INDUSTRIES)],
        "target_industry_2": INDUSTRIES[(i + 1) % len(INDUSTRIES)] if i % 2 else None,
        "deal_summary": f"Deal number {i}",
    }
    deal.update(overrides)
    return deal


def write_table(
    data_dir: Path,
    table: str,
    chunks: Sequence[List[Dict[str, Any]]],
    *,
    total_rows: int | None = None,
    columns: Sequence[str] | None = None,
) -> Path:
    """Write nested chunks and ``_metadata.json`` for ``table``."""
    table_dir = data_dir / table
    table_dir.mkdir(parents=True, exist_ok=True)
    for index, records in enumerate(chunks):
        (table_dir / f"chunk_{index}.json").write_text(json.dumps(records), encoding="utf-8")
    rows = sum(len(c) for c in chunks) if total_rows is None else total_rows
    metadata = {
        "name": table,
        "chunksCount": len(chunks),
        "totalRows": rows,
        "columns": list(columns or (chunks[0][0].keys() if chunks and chunks[0] else [])),
        "createdAt": "2024-01-01T00:00:00+00:00",
        "updatedAt": "2024-01-01T00:00:00+00:00",
    }
    (table_dir / "_metadata.json").write_text(json.dumps(metadata), encoding="utf-8")
    return table_dir


def chunked(records: List[Dict[str, Any]], size: int) -> List[List[Dict[str, Any]]]:
    return [records[i * size : (i + 1) * size] for i in range(math.ceil(len(records) / size))]


@pytest.fixture
def deals_dir(tmp_path: Path) -> Path:
    """Three chunks of sizes 1000, 1000 and 37."""
    records = [make_deal(i) for i in range(1, 2038)]
    write_table(tmp_path, "deals", chunked(records, 1000))
    return tmp_path


@pytest.fixture
def small_deals_dir(tmp_path: Path) -> Path:
    """Three chunks of five deals each."""
    records = [make_deal(i) for i in range(1, 16)]
    write_table(tmp_path, "deals", chunked(records, 5))
    return tmp_path
