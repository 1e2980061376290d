"""Merchant grouping shared by the recurring and anomaly detectors."""

from __future__ import annotations

from collections.abc import Iterable

from ..extract import merchant_key
from ..models import Transaction


def debits_only(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.is_debit]


def group_by_merchant(transactions: Iterable[Transaction]) -> dict[str, list[Transaction]]:
    """Map merchant key to its transactions, both in first-seen order."""

    groups: dict[str, list[Transaction]] = {}
    for t in transactions:
        groups.setdefault(merchant_key(t.narrative), []).append(t)
    return groups


__all__ = ["debits_only", "group_by_merchant"]
