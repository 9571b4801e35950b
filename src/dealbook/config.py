"""Application configuration defaults."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path

DEFAULT_TABLE = "deals"
CHUNK_SIZE = 1000


def _get_default_data_dir() -> Path:
    """Get the default chunk directory based on platform and execution context."""
    user_dir = Path.home() / "Documents" / "Dealbook" / "data"

    # Frozen desktop bundles always read from the Documents folder
    if getattr(sys, "frozen", False):
        return user_dir

    local_dir = Path("data")
    if local_dir.exists():
        return local_dir

    return user_dir


@dataclass(slots=True)
class AppConfig:
    data_dir: Path | None = None
    table: str = DEFAULT_TABLE
    chunk_size: int = CHUNK_SIZE
    page_size: int = 100

    def __post_init__(self) -> None:
        if self.data_dir is None:
            self.data_dir = _get_default_data_dir()

    def resolve_data_dir(self, base_dir: Path | None = None) -> Path:
        if self.data_dir is None:
            self.data_dir = _get_default_data_dir()
        if Path(self.data_dir).is_absolute() or base_dir is None:
            return Path(self.data_dir)
        return base_dir / self.data_dir
