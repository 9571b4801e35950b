"""Filter specification evaluation against single records.

A filter specification maps field names to one of:

* a literal value, matched with strict equality;
* a list, tuple or set of literals, matched by membership (empty means "any");
* an operator mapping using ``eq``, ``ne``, ``gt``, ``gte``, ``lt``, ``lte``
  and ``like``.

Clauses across fields, and operators within one field, are AND-ed. Evaluation
never raises for odd operand types: they simply do not match.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Collection, Dict, Mapping, Sequence

from dealbook.utils.text import contains_ci

LOGGER = logging.getLogger(__name__)

_ORDERING: Dict[str, Callable[[Any, Any], bool]] = {
    "gt": operator.gt,
    "gte": operator.ge,
    "lt": operator.lt,
    "lte": operator.le,
}
_MEMBERSHIP_TYPES = (list, tuple, set, frozenset)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_iso_date(value: Any) -> date | None:
    if not isinstance(value, str) or len(value) != 10:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def strict_equal(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion (``True`` never equals ``1``)."""
    if _is_number(left) and _is_number(right):
        return left == right
    if type(left) is not type(right):
        return False
    return left == right


def _ordered(op: str, value: Any, operand: Any) -> bool:
    compare = _ORDERING[op]
    if _is_number(value) and _is_number(operand):
        return compare(value, operand)
    left, right = _as_iso_date(value), _as_iso_date(operand)
    if left is not None and right is not None:
        return compare(left, right)
    return False


def match_operator(value: Any, op: str, operand: Any) -> bool:
    if op == "eq":
        return strict_equal(value, operand)
    if op == "ne":
        return not strict_equal(value, operand)
    if op in _ORDERING:
        return _ordered(op, value, operand)
    if op == "like":
        return contains_ci(value, operand)
    LOGGER.debug("Ignoring unknown filter operator %r", op)
    return True


def match_clause(record: Mapping[str, Any], field: str, clause: Any) -> bool:
    """Decide whether ``record`` satisfies the clause for one field."""
    value = record.get(field)
    if isinstance(clause, _MEMBERSHIP_TYPES):
        return not clause or any(strict_equal(value, item) for item in clause)
    if isinstance(clause, Mapping):
        return all(match_operator(value, op, operand) for op, operand in clause.items())
    return strict_equal(value, clause)


def matches(record: Mapping[str, Any], spec: Mapping[str, Any] | None) -> bool:
    if not spec:
        return True
    return all(match_clause(record, field, clause) for field, clause in spec.items())


@dataclass(frozen=True)
class TextSearch:
    """Free-text search: any of ``fields`` contains ``query`` (case-insensitive)."""

    query: str
    fields: Sequence[str]

    def __call__(self, record: Mapping[str, Any]) -> bool:
        needle = self.query.strip()
        if not needle:
            return True
        return any(contains_ci(record.get(f), needle) for f in self.fields)


@dataclass(frozen=True)
class AnyFieldIn:
    """Membership across several fields: any of ``fields`` holds one of ``values``."""

    fields: Sequence[str]
    values: Collection[Any]

    def __call__(self, record: Mapping[str, Any]) -> bool:
        if not self.values:
            return True
        return any(
            strict_equal(record.get(f), v) for f in self.fields for v in self.values
        )
