"""Running-balance metrics.

Transactions on the same day keep their input (statement) order, so the
"latest" balance of a day is the last one listed for it.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from ..models import BalanceMetrics, DateRange, Transaction


def _in_range(transactions: Sequence[Transaction], date_range: DateRange | None) -> list[Transaction]:
    if date_range is None:
        return list(transactions)
    return [t for t in transactions if date_range.contains(t.date)]


def _chronological(transactions: Sequence[Transaction]) -> list[Transaction]:
    # sorted() is stable, which keeps same-day statement order.
    return sorted(transactions, key=lambda t: t.date)


def calculate_balance_metrics(
    transactions: Sequence[Transaction], date_range: DateRange | None = None
) -> BalanceMetrics:
    """Current, highest, lowest and average balance over an optional range.

    An empty selection yields zeros and the range bounds (or ``None``).
    """

    selected = _chronological(_in_range(transactions, date_range))
    if not selected:
        return BalanceMetrics(
            current=0.0,
            highest=0.0,
            lowest=0.0,
            average=0.0,
            period_start=date_range.start if date_range else None,
            period_end=date_range.end if date_range else None,
        )
    balances = [t.balance for t in selected]
    return BalanceMetrics(
        current=selected[-1].balance,
        highest=max(balances),
        lowest=min(balances),
        average=sum(balances) / len(balances),
        period_start=selected[0].date,
        period_end=selected[-1].date,
    )


def get_current_balance(transactions: Sequence[Transaction]) -> float:
    if not transactions:
        return 0.0
    return _chronological(transactions)[-1].balance


def get_balance_at_date(transactions: Sequence[Transaction], on: date) -> float | None:
    """Balance after the last transaction on or before ``on`` (``None`` if none)."""

    before = [t for t in transactions if t.date <= on]
    if not before:
        return None
    return _chronological(before)[-1].balance


@dataclass(frozen=True, slots=True)
class BalanceChange:
    start_balance: float | None
    end_balance: float | None
    change: float | None
    percent_change: float | None


def calculate_balance_change(
    transactions: Sequence[Transaction], date_range: DateRange
) -> BalanceChange:
    start = get_balance_at_date(transactions, date_range.start)
    end = get_balance_at_date(transactions, date_range.end)
    if start is None or end is None:
        return BalanceChange(start, end, None, None)
    change = end - start
    percent = (change / abs(start)) * 100 if start != 0 else 0.0
    return BalanceChange(start, end, change, percent)


def get_balance_history(
    transactions: Sequence[Transaction], date_range: DateRange | None = None
) -> list[tuple[date, float]]:
    return [(t.date, t.balance) for t in _chronological(_in_range(transactions, date_range))]


def is_balance_below_threshold(transactions: Sequence[Transaction], threshold: float) -> bool:
    return get_current_balance(transactions) < threshold


def count_days_below_threshold(
    transactions: Sequence[Transaction],
    threshold: float,
    date_range: DateRange | None = None,
) -> int:
    """Days whose closing balance is below ``threshold``."""

    closing: dict[date, float] = {}
    for t in _chronological(_in_range(transactions, date_range)):
        closing[t.date] = t.balance
    return sum(1 for b in closing.values() if b < threshold)


__all__ = [
    "calculate_balance_metrics",
    "get_current_balance",
    "get_balance_at_date",
    "BalanceChange",
    "calculate_balance_change",
    "get_balance_history",
    "is_balance_below_threshold",
    "count_days_below_threshold",
]
