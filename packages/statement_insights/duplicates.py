"""Composite-key deduplication and statement merging.

Two transactions are the same statement line when they fall on the same day
and carry the same bank reference. A blank reference is a reference like any
other: blank-reference lines on one day share a key.

All helpers keep the first-seen record for a key and never raise.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .logging_setup import get_logger
from .models import DateRange, MergeResult, Transaction

_log = get_logger("statement_insights.duplicates")


def composite_key(tx: Transaction) -> str:
    """``YYYYMMDD-<reference>`` with the reference stripped."""

    return f"{tx.date:%Y%m%d}-{tx.reference.strip()}"


def deduplicate_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Drop later records whose composite key was already seen.

    Idempotent: ``deduplicate(deduplicate(x)) == deduplicate(x)``.
    """

    seen: dict[str, Transaction] = {}
    for tx in transactions:
        seen.setdefault(composite_key(tx), tx)
    return list(seen.values())


def get_date_range(transactions: Sequence[Transaction]) -> DateRange | None:
    if not transactions:
        return None
    dates = [t.date for t in transactions]
    return DateRange(start=min(dates), end=max(dates))


def detect_overlapping_ranges(
    existing: Sequence[Transaction], incoming: Sequence[Transaction]
) -> list[DateRange]:
    """Intersection of the two sets' date spans, if any (informational)."""

    a = get_date_range(existing)
    b = get_date_range(incoming)
    if a is None or b is None:
        return []
    start = max(a.start, b.start)
    end = min(a.end, b.end)
    if start <= end:
        return [DateRange(start=start, end=end)]
    return []


def merge_statements(
    existing: Sequence[Transaction], incoming: Sequence[Transaction]
) -> MergeResult:
    """Merge a new upload into the existing set.

    Existing records win on key collisions, so user edits (tags, notes,
    review flags) survive re-uploading the same statement.
    """

    combined = [*existing, *incoming]
    merged = deduplicate_transactions(combined)
    result = MergeResult(
        transactions=tuple(merged),
        duplicates_removed=len(combined) - len(merged),
        new_transactions=len(merged) - len(existing),
        overlapping_periods=tuple(detect_overlapping_ranges(existing, incoming)),
    )
    _log.info(
        "merged %d incoming into %d existing: %d new, %d duplicates removed",
        len(incoming),
        len(existing),
        result.new_transactions,
        result.duplicates_removed,
    )
    return result


def are_duplicates(a: Transaction, b: Transaction) -> bool:
    return composite_key(a) == composite_key(b)


def find_duplicate_groups(transactions: Iterable[Transaction]) -> list[list[Transaction]]:
    """Groups (in first-seen order) of two or more records sharing a key."""

    groups: dict[str, list[Transaction]] = {}
    for tx in transactions:
        groups.setdefault(composite_key(tx), []).append(tx)
    return [g for g in groups.values() if len(g) > 1]


def sort_transactions_by_date(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Newest first; ties keep input order."""

    return sorted(transactions, key=lambda t: t.date, reverse=True)


__all__ = [
    "composite_key",
    "deduplicate_transactions",
    "get_date_range",
    "detect_overlapping_ranges",
    "merge_statements",
    "are_duplicates",
    "find_duplicate_groups",
    "sort_transactions_by_date",
]
