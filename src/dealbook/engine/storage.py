"""Chunked JSON flat-file store."""

from __future__ import annotations

import json
import logging
import re
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Sequence

from dealbook.config import CHUNK_SIZE, DEFAULT_TABLE
from dealbook.errors import DataDirectoryError, TableNotFoundError
from dealbook.models import ChunkRead, Record, ScanControl, TableMetadata
from dealbook.utils.files import write_json_atomic

LOGGER = logging.getLogger(__name__)

TABLE_METADATA_FILE = "_metadata.json"
GLOBAL_METADATA_FILE = "metadata.json"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class ChunkStore:
    """Read side (and ingest-time write side) of a directory of record chunks.

    Each table is a sequence of ``chunk_<i>.json`` files holding a JSON array of
    records plus a metadata descriptor. Metadata is loaded once at construction
    and never changes afterwards; re-importing requires a new store.
    """

    def __init__(self, data_dir: Path, *, chunk_size: int = CHUNK_SIZE) -> None:
        self.data_dir = Path(data_dir)
        self.chunk_size = chunk_size
        if not self.data_dir.exists():
            raise DataDirectoryError(self.data_dir)
        if not self.data_dir.is_dir():
            raise DataDirectoryError(self.data_dir, reason="is not a directory")
        self._metadata: Dict[str, TableMetadata] = self.load_metadata()

    def load_metadata(self) -> Dict[str, TableMetadata]:
        """Discover table descriptors; malformed ones are skipped with a warning."""
        tables: Dict[str, TableMetadata] = {}
        for table_dir in sorted(p for p in self.data_dir.iterdir() if p.is_dir()):
            if table_dir.name.startswith("."):
                continue
            descriptor = table_dir / TABLE_METADATA_FILE
            if not descriptor.exists():
                continue
            try:
                payload = json.loads(descriptor.read_text(encoding="utf-8"))
                # The directory name is the table's address on disk
                meta = TableMetadata.from_dict(payload, default_name=table_dir.name)
                meta.name = table_dir.name
            except (OSError, ValueError) as exc:
                LOGGER.warning("Skipping table %s: bad metadata (%s)", table_dir.name, exc)
                continue
            tables[meta.name] = meta
            LOGGER.debug("Loaded metadata for table: %s", meta.name)

        global_meta = self._load_global_metadata()
        if global_meta is not None and global_meta.name not in tables:
            tables[global_meta.name] = global_meta
            LOGGER.debug("Loaded metadata for table '%s' from global descriptor", global_meta.name)

        LOGGER.info("Loaded metadata for %d tables from %s", len(tables), self.data_dir)
        return tables

    def _load_global_metadata(self) -> TableMetadata | None:
        descriptor = self.data_dir / GLOBAL_METADATA_FILE
        if not descriptor.exists():
            return None
        try:
            payload = json.loads(descriptor.read_text(encoding="utf-8"))
            if not isinstance(payload, dict):
                raise ValueError("metadata descriptor must be a JSON object")
            payload = dict(payload)
            payload.setdefault("name", DEFAULT_TABLE)
            if payload.get("chunksCount") is None:
                payload["chunksCount"] = self._count_flat_chunks(payload["name"])
            return TableMetadata.from_dict(payload)
        except (OSError, ValueError) as exc:
            LOGGER.warning("Skipping global metadata %s: %s", descriptor, exc)
            return None

    def _count_flat_chunks(self, table: str) -> int:
        """Chunk count implied by the flat files ``chunk_path`` can resolve for ``table``.

        Gaps below the highest index are counted so they surface as missing chunks.
        """
        pattern = re.compile(rf"^(?:{re.escape(table)}_)?chunk_(\d+)\.json$")
        count = 0
        for path in self.data_dir.iterdir():
            match = pattern.match(path.name)
            if match and path.is_file():
                count = max(count, int(match.group(1)) + 1)
        return count

    def list_tables(self) -> set[str]:
        return set(self._metadata)

    def get_table_metadata(self, table: str) -> TableMetadata | None:
        return self._metadata.get(table)

    def require_table(self, table: str) -> TableMetadata:
        meta = self._metadata.get(table)
        if meta is None:
            raise TableNotFoundError(table)
        return meta

    def chunk_path(self, table: str, index: int) -> Path | None:
        """Locate a chunk file: nested layout first, then the flat layouts."""
        candidates = (
            self.data_dir / table / f"chunk_{index}.json",
            self.data_dir / f"{table}_chunk_{index}.json",
            self.data_dir / f"chunk_{index}.json",
        )
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        return None

    def load_chunk(self, table: str, index: int) -> ChunkRead:
        """Read one chunk, reporting missing or corrupt files instead of raising."""
        path = self.chunk_path(table, index)
        if path is None:
            LOGGER.warning("Chunk %d of table %s is missing", index, table)
            return ChunkRead(table, index, [], status="missing")

        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            LOGGER.warning("Error reading chunk %d from table %s: %s", index, table, exc)
            return ChunkRead(table, index, [], status="corrupt")

        if not isinstance(payload, list):
            LOGGER.warning("Chunk %d of table %s is not a record array", index, table)
            return ChunkRead(table, index, [], status="corrupt")

        records = [item for item in payload if isinstance(item, dict)]
        if len(records) != len(payload):
            LOGGER.warning(
                "Dropped %d non-record entries from chunk %d of table %s",
                len(payload) - len(records),
                index,
                table,
            )
        return ChunkRead(table, index, records)

    def read_chunk(self, table: str, index: int) -> List[Record]:
        return self.load_chunk(table, index).records

    def iter_chunks(
        self, table: str, *, start: int = 0, control: ScanControl | None = None
    ) -> Iterator[ChunkRead]:
        """Yield chunks in index order, one in memory at a time."""
        meta = self.require_table(table)
        for index in range(start, meta.chunks_count):
            if control is not None:
                control.checkpoint(table, index)
            yield self.load_chunk(table, index)

    def iter_records(self, table: str, *, control: ScanControl | None = None) -> Iterator[Record]:
        for chunk in self.iter_chunks(table, control=control):
            yield from chunk.records

    def get_all_records(self, table: str) -> List[Record]:
        """Materialize the whole table.

        Peak memory is the full table; prefer ``iter_records`` for single passes.
        """
        return list(self.iter_records(table))

    def write_table(
        self,
        table: str,
        records: Iterable[Mapping[str, Any]],
        *,
        columns: Sequence[str] | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> TableMetadata:
        """Write ``records`` as nested chunks plus ``_metadata.json``.

        Only used at ingest time. The table is built in a staging directory and
        swapped in once complete, so a failed import leaves the previous table
        untouched and no stale chunks survive a smaller re-import.
        """
        table_dir = self.data_dir / table
        staging = Path(
            tempfile.mkdtemp(dir=self.data_dir, prefix=f".{table}.", suffix=".staging")
        )
        try:
            seen_columns: List[str] = list(columns or [])
            batch: List[Dict[str, Any]] = []
            total = 0
            chunk_index = 0
            for record in records:
                row = dict(record)
                if columns is None:
                    seen_columns.extend(k for k in row if k not in seen_columns)
                batch.append(row)
                if len(batch) >= self.chunk_size:
                    write_json_atomic(staging / f"chunk_{chunk_index}.json", batch)
                    LOGGER.debug("Saved %d rows to %s chunk %d", len(batch), table, chunk_index)
                    total += len(batch)
                    chunk_index += 1
                    batch = []
            if batch:
                write_json_atomic(staging / f"chunk_{chunk_index}.json", batch)
                total += len(batch)
                chunk_index += 1

            now = _utc_now()
            previous = self._metadata.get(table)
            meta = TableMetadata(
                name=table,
                chunks_count=chunk_index,
                total_rows=total,
                columns=seen_columns,
                created_at=previous.created_at if previous and previous.created_at else now,
                updated_at=now,
                extra=dict(extra or {}),
            )
            write_json_atomic(staging / TABLE_METADATA_FILE, meta.to_dict())
            _swap_directory(staging, table_dir)
        except BaseException:
            LOGGER.error("Import into table %s failed; previous data kept", table)
            shutil.rmtree(staging, ignore_errors=True)
            raise

        LOGGER.info("Wrote %d rows in %d chunks to table %s", total, chunk_index, table)
        return meta


def _swap_directory(staging: Path, target: Path) -> None:
    """Move ``staging`` into place at ``target``, replacing any existing directory."""
    retired: Path | None = None
    if target.exists():
        retired = target.with_name(f".{target.name}.retired")
        shutil.rmtree(retired, ignore_errors=True)
        target.rename(retired)
    try:
        staging.rename(target)
    except OSError:
        if retired is not None:
            retired.rename(target)
        raise
    if retired is not None:
        shutil.rmtree(retired, ignore_errors=True)
