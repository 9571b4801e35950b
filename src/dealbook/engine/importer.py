"""Spreadsheet to chunk conversion."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator

from dealbook.config import DEFAULT_TABLE
from dealbook.engine.storage import ChunkStore
from dealbook.ingestion.excel_loader import STORAGE_COLUMNS, iter_deal_rows
from dealbook.utils.files import compute_sha256

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ImportStats:
    rows: int = 0
    chunks: int = 0
    skipped: int = 0
    source: Path | None = None
    sha256: str | None = None


class Importer:
    """Converts a deal spreadsheet into a chunked table."""

    def __init__(self, store: ChunkStore, *, table: str = DEFAULT_TABLE) -> None:
        self.store = store
        self.table = table

    def import_file(self, path: Path) -> ImportStats:
        path = Path(path)
        stats = ImportStats(source=path, sha256=compute_sha256(path))
        LOGGER.info("Importing %s into table %s", path, self.table)

        def numbered() -> Iterator[Dict[str, Any]]:
            next_id = 1
            for record in iter_deal_rows(path):
                if record is None:
                    stats.skipped += 1
                    continue
                yield {"id": next_id, **record}
                next_id += 1

        meta = self.store.write_table(
            self.table,
            numbered(),
            columns=STORAGE_COLUMNS,
            extra={"source": {"file": path.name, "sha256": stats.sha256}},
        )
        stats.rows = meta.total_rows
        stats.chunks = meta.chunks_count
        LOGGER.info(
            "Imported %d rows into %d chunks (%d blank rows skipped)",
            stats.rows,
            stats.chunks,
            stats.skipped,
        )
        return stats
