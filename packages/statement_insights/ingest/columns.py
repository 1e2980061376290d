"""Column mapper: header text to canonical field positions."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Literal

from ..errors import ColumnMappingError
from ..logging_setup import get_logger
from .decoder import Cell
from .header import normalize_cell

type CanonicalField = Literal["date", "narrative", "reference", "debit", "credit", "balance"]

CANONICAL_FIELDS: tuple[CanonicalField, ...] = (
    "date",
    "narrative",
    "reference",
    "debit",
    "credit",
    "balance",
)

# Ordered: earlier aliases win when a sheet carries several candidates.
COLUMN_ALIASES: Mapping[CanonicalField, tuple[str, ...]] = {
    "date": ("Date", "Txn Date", "Transaction Date", "Value Date"),
    "narrative": ("Details", "Description", "Narration", "Particulars"),
    "reference": (
        "Ref No/Cheque No",
        "Ref No./Cheque No.",
        "Ref No",
        "Reference No",
        "Cheque No",
        "Transaction ID",
    ),
    "debit": ("Debit", "Withdrawal", "Dr"),
    "credit": ("Credit", "Deposit", "Cr"),
    "balance": ("Balance", "Closing Balance", "Available Balance"),
}

_REFERENCE_HINTS = ("ref", "cheque")

_log = get_logger("statement_insights.ingest.columns")


@dataclass(frozen=True, slots=True)
class ColumnRef:
    index: int
    header: str


@dataclass(frozen=True, slots=True)
class ColumnMapping:
    """Fully resolved positions for all six canonical fields."""

    date: ColumnRef
    narrative: ColumnRef
    reference: ColumnRef
    debit: ColumnRef
    credit: ColumnRef
    balance: ColumnRef

    def cell(self, row: Sequence[Cell], field: CanonicalField) -> Cell:
        ref: ColumnRef = getattr(self, field)
        return row[ref.index] if ref.index < len(row) else None


def _find_column(headers: Sequence[str], field: CanonicalField) -> ColumnRef | None:
    normalized = [normalize_cell(h) for h in headers]
    for alias in COLUMN_ALIASES[field]:
        target = normalize_cell(alias)
        for i, h in enumerate(normalized):
            if h and h == target:
                return ColumnRef(index=i, header=str(headers[i]).strip())
    if field == "reference":
        for i, h in enumerate(normalized):
            if any(hint in h for hint in _REFERENCE_HINTS):
                return ColumnRef(index=i, header=str(headers[i]).strip())
    return None


def resolve_columns(headers: Sequence[Cell]) -> dict[CanonicalField, ColumnRef]:
    """Resolve as many canonical fields as possible (partial mapping)."""

    texts = ["" if h is None else str(h) for h in headers]
    found: dict[CanonicalField, ColumnRef] = {}
    for field in CANONICAL_FIELDS:
        ref = _find_column(texts, field)
        if ref is not None:
            found[field] = ref
    return found


def map_columns(headers: Sequence[Cell], *, header_row: int = 0) -> ColumnMapping:
    """Resolve all canonical fields or raise.

    Raises
    ------
    ColumnMappingError
        Listing every field that could not be resolved, in canonical order.
    """

    found = resolve_columns(headers)
    missing = [f for f in CANONICAL_FIELDS if f not in found]
    if missing:
        _log.info("unresolved columns %s in header row %d", missing, header_row)
        raise ColumnMappingError(missing, header_row=header_row)
    mapping = ColumnMapping(**found)
    _log.debug(
        "mapped columns: %s",
        ", ".join(f"{f}->{getattr(mapping, f).header}" for f in CANONICAL_FIELDS),
    )
    return mapping


__all__ = [
    "CanonicalField",
    "CANONICAL_FIELDS",
    "COLUMN_ALIASES",
    "ColumnRef",
    "ColumnMapping",
    "resolve_columns",
    "map_columns",
]
