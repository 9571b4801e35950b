"""Text helpers for field names and free-text matching."""

from __future__ import annotations

import re
from typing import Any

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Za-z])(?=[0-9])")


def camel_to_snake(name: str) -> str:
    """Convert ``targetIndustry1`` style names to ``target_industry_1``."""
    if not name or "_" in name:
        return name
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def contains_ci(haystack: Any, needle: Any) -> bool:
    """Case-insensitive substring test; only strings can contain anything."""
    if not isinstance(haystack, str):
        return False
    return str(needle).casefold() in haystack.casefold()
