"""Income analysis over credits: sources, monthly trend, salary day, outliers."""

from __future__ import annotations

import statistics
from collections import Counter
from collections.abc import Iterable, Sequence

from ..models import IncomeAnalysis, MonthlyAmount, Transaction
from .cashflow import period_key

# First matching source wins; anything else is "Other Income".
INCOME_SOURCES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Salary", ("salary", "sal cr", "payroll")),
    ("Interest", ("interest", "int cr", "int.cr")),
    ("Refunds", ("refund", "reversal", "cashback")),
    ("Investments", ("dividend", "mutual fund", "redemption")),
    ("Transfers", ("transfer", "neft", "imps", "upi")),
)
OTHER_INCOME = "Other Income"
UNUSUAL_INCOME_RATIO = 2.0


def classify_income_source(narrative: str) -> str:
    text = narrative.lower()
    for source, hints in INCOME_SOURCES:
        if any(h in text for h in hints):
            return source
    return OTHER_INCOME


def _credits(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if not t.is_debit]


def detect_salary_day(credits: Sequence[Transaction]) -> int | None:
    """Most common day of month among the larger credits.

    A credit counts when it is at least the median credit and at least half
    the mean. ``None`` unless some day occurs twice.
    """

    if not credits:
        return None
    amounts = [t.amount for t in credits]
    threshold = max(statistics.median(amounts), statistics.fmean(amounts) * 0.5)
    large = [t for t in credits if t.amount >= threshold]
    if len(large) < 2:
        return None
    # most_common keeps first-seen order on ties.
    day, count = Counter(t.date.day for t in large).most_common(1)[0]
    return day if count >= 2 else None


def detect_unusual_income(
    credits: Sequence[Transaction], *, ratio: float = UNUSUAL_INCOME_RATIO
) -> list[Transaction]:
    if not credits:
        return []
    limit = statistics.fmean(t.amount for t in credits) * ratio
    return [t for t in credits if t.amount > limit]


def analyze_income(transactions: Sequence[Transaction]) -> IncomeAnalysis:
    credits = _credits(transactions)
    if not credits:
        return IncomeAnalysis(
            total_income=0.0, by_source={}, monthly_trend=(), salary_day=None, unusual_incomes=()
        )

    by_source: dict[str, float] = {}
    months: dict[str, float] = {}
    for t in credits:
        source = classify_income_source(t.narrative)
        by_source[source] = by_source.get(source, 0.0) + t.amount
        key = period_key(t.date, "monthly")
        months[key] = months.get(key, 0.0) + t.amount

    return IncomeAnalysis(
        total_income=sum(t.amount for t in credits),
        by_source=by_source,
        monthly_trend=tuple(MonthlyAmount(month=m, amount=months[m]) for m in sorted(months)),
        salary_day=detect_salary_day(credits),
        unusual_incomes=tuple(detect_unusual_income(credits)),
    )


__all__ = [
    "INCOME_SOURCES",
    "OTHER_INCOME",
    "classify_income_source",
    "detect_salary_day",
    "detect_unusual_income",
    "analyze_income",
]
