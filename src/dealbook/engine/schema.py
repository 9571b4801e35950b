"""Record schema adapter between storage (snake_case) and UI (camelCase) names."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Sequence, Tuple

from dealbook.models import Record
from dealbook.utils.text import camel_to_snake

DEAL_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("id", "id"),
    ("target_name", "targetName"),
    ("announcement_date", "announcementDate"),
    ("transaction_type", "transactionType"),
    ("transaction_status", "transactionStatus"),
    ("transaction_value", "transactionValue"),
    ("divestor_name", "divestorName"),
    ("acquirer_name", "acquirerName"),
    ("target_region", "targetRegion"),
    ("target_description", "targetDescription"),
    ("ev_ebitda_multiple", "evEbitdaMultiple"),
    ("ev_revenue_multiple", "evRevenueMultiple"),
    ("acquirer_country", "acquirerCountry"),
    ("target_industry_1", "targetIndustry1"),
    ("target_industry_2", "targetIndustry2"),
    ("deal_summary", "dealSummary"),
    ("transaction_considerations", "transactionConsiderations"),
    ("target_enterprise_value", "targetEnterpriseValue"),
    ("target_revenue", "targetRevenue"),
    ("target_ebitda", "targetEbitda"),
)


@dataclass(frozen=True)
class RecordAdapter:
    """Maps records between the storage naming and one canonical naming.

    ``pairs`` lists ``(storage_name, canonical_name)`` for every declared field.
    Normalized records contain every declared field (``None`` when absent) and
    keep undeclared fields unchanged.
    """

    pairs: Sequence[Tuple[str, str]] = ()
    _to_canonical: Dict[str, str] = field(init=False, repr=False, compare=False)
    _to_storage: Dict[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_to_canonical", {s: c for s, c in self.pairs})
        object.__setattr__(self, "_to_storage", {c: s for s, c in self.pairs})

    @property
    def canonical_fields(self) -> Tuple[str, ...]:
        return tuple(c for _, c in self.pairs)

    def canonical_field(self, name: str) -> str:
        """Canonical name for either spelling of a declared field."""
        if name in self._to_storage:
            return name
        return self._to_canonical.get(name, name)

    def storage_field(self, name: str) -> str:
        """Storage (chunk-native) name for either spelling of a declared field."""
        if name in self._to_canonical:
            return name
        if name in self._to_storage:
            return self._to_storage[name]
        return camel_to_snake(name) if self.pairs else name

    def normalize(self, record: Mapping[str, Any]) -> Record:
        if not self.pairs:
            return dict(record)

        out: Record = {}
        for storage, canonical in self.pairs:
            value = record.get(storage)
            if value is None:
                value = record.get(canonical)
            out[canonical] = value
        for key, value in record.items():
            if key not in self._to_canonical and key not in self._to_storage:
                out[key] = value
        return out

    def to_storage(self, record: Mapping[str, Any]) -> Record:
        """Reverse of ``normalize``: rename declared fields to storage names."""
        return {self.storage_field(k): v for k, v in record.items()}

    def canonical_filter(self, spec: Mapping[str, Any]) -> Dict[str, Any]:
        return {self.canonical_field(k): v for k, v in spec.items()}

    def canonical_fields_of(self, names: Iterable[str]) -> Tuple[str, ...]:
        return tuple(self.canonical_field(n) for n in names)


IDENTITY_ADAPTER = RecordAdapter()
DEAL_ADAPTER = RecordAdapter(DEAL_FIELDS)
