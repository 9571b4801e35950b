"""Utility helpers for working with files."""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Iterator

SPREADSHEET_SUFFIXES = {".xlsx", ".xlsm"}


def iter_spreadsheet_paths(inputs: Iterable[Path]) -> Iterator[Path]:
    """Yield spreadsheet paths from input paths, descending into directories."""
    for item in inputs:
        if item.is_dir():
            yield from iter_spreadsheet_paths(
                sorted(child for child in item.rglob("*") if child.is_file())
            )
        elif item.is_file() and item.suffix.lower() in SPREADSHEET_SUFFIXES:
            # Excel lock files sit next to open workbooks
            if not item.name.startswith("~$"):
                yield item


def compute_sha256(path: Path) -> str:
    """Compute SHA256 hash for a file."""
    sha = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1 << 20), b""):
            sha.update(chunk)
    return sha.hexdigest()


def write_json_atomic(path: Path, payload: Any) -> None:
    """Write JSON next to ``path`` and move it into place in one step."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
