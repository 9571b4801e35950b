"""Exceptions raised by the deal query engine."""

from __future__ import annotations

from pathlib import Path


class DealbookError(Exception):
    """Base class for all dealbook errors."""


class NotFoundError(DealbookError):
    """Requested table or record does not exist."""


class TableNotFoundError(NotFoundError):
    def __init__(self, table: str) -> None:
        super().__init__(f"Table '{table}' not found")
        self.table = table


class RecordNotFoundError(NotFoundError):
    def __init__(self, table: str, record_id: object) -> None:
        super().__init__(f"Record with ID {record_id} not found in table '{table}'")
        self.table = table
        self.record_id = record_id


class DataDirectoryError(DealbookError):
    """The data directory is missing, so the engine cannot be initialized."""

    def __init__(self, path: Path, reason: str = "not found") -> None:
        super().__init__(f"Data directory {reason}: {path}")
        self.path = path


class ScanAborted(DealbookError):
    """A chunk scan stopped at a chunk boundary before finishing."""

    def __init__(self, table: str, chunk_index: int, message: str) -> None:
        super().__init__(f"{message} (table '{table}', before chunk {chunk_index})")
        self.table = table
        self.chunk_index = chunk_index


class ScanCancelled(ScanAborted):
    def __init__(self, table: str, chunk_index: int) -> None:
        super().__init__(table, chunk_index, "Scan cancelled")


class ScanTimeout(ScanAborted):
    def __init__(self, table: str, chunk_index: int, timeout: float) -> None:
        super().__init__(table, chunk_index, f"Scan exceeded {timeout:.2f}s timeout")
        self.timeout = timeout
