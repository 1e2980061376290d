"""Spending breakdowns over debits.

Every function ignores credits. Weekday buckets follow :meth:`date.weekday`
(Monday is 0, Sunday is 6). Month keys are ``YYYY-MM``.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from ..extract import extract_merchant_name
from ..models import (
    MerchantSpend,
    MonthlyAmount,
    PaymentChannel,
    SeasonalTrend,
    SpendingBreakdown,
    SpendingPattern,
    Tag,
    TimeOfMonthSpend,
    Transaction,
)
from .cashflow import period_key
from .grouping import debits_only

UNKNOWN_MERCHANT = "Unknown Merchant"
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def spending_by_tag(
    transactions: Iterable[Transaction], tags: Iterable[Tag] = ()
) -> dict[str, float]:
    """Debit totals per tag id.

    Every tag in ``tags`` appears (0.0 when unused). A debit carrying several
    tags counts toward each of them.
    """

    totals = {t.id: 0.0 for t in tags}
    for tx in debits_only(transactions):
        for tag_id in tx.tag_ids:
            totals[tag_id] = totals.get(tag_id, 0.0) + tx.amount
    return totals


def spending_by_merchant(transactions: Iterable[Transaction]) -> list[MerchantSpend]:
    """Per-merchant totals, largest total first."""

    acc: dict[str, list[Transaction]] = {}
    for tx in debits_only(transactions):
        merchant = extract_merchant_name(tx.narrative) or UNKNOWN_MERCHANT
        acc.setdefault(merchant, []).append(tx)

    out = []
    for merchant, txs in acc.items():
        total = sum(t.amount for t in txs)
        out.append(
            MerchantSpend(
                merchant=merchant,
                total_amount=total,
                transaction_count=len(txs),
                average_amount=total / len(txs),
                last_transaction=max(t.date for t in txs),
            )
        )
    # Stable sort: equal totals keep first-seen order.
    out.sort(key=lambda m: m.total_amount, reverse=True)
    return out


def top_merchants(transactions: Iterable[Transaction], limit: int = 10) -> list[MerchantSpend]:
    return spending_by_merchant(transactions)[: max(limit, 0)]


def spending_by_channel(transactions: Iterable[Transaction]) -> dict[PaymentChannel, float]:
    totals: dict[PaymentChannel, float] = {}
    for tx in debits_only(transactions):
        totals[tx.channel] = totals.get(tx.channel, 0.0) + tx.amount
    return totals


def spending_by_weekday(transactions: Iterable[Transaction]) -> tuple[float, ...]:
    totals = [0.0] * 7
    for tx in debits_only(transactions):
        totals[tx.date.weekday()] += tx.amount
    return tuple(totals)


def spending_by_time_of_month(transactions: Iterable[Transaction]) -> TimeOfMonthSpend:
    early = mid = late = 0.0
    for tx in debits_only(transactions):
        if tx.date.day <= 10:
            early += tx.amount
        elif tx.date.day <= 20:
            mid += tx.amount
        else:
            late += tx.amount
    return TimeOfMonthSpend(early=early, mid=mid, late=late)


def calculate_spending_breakdown(
    transactions: Sequence[Transaction], tags: Iterable[Tag] = ()
) -> SpendingBreakdown:
    return SpendingBreakdown(
        by_tag=spending_by_tag(transactions, tags),
        by_merchant=tuple(spending_by_merchant(transactions)),
        by_channel=spending_by_channel(transactions),
        by_weekday=spending_by_weekday(transactions),
        by_time_of_month=spending_by_time_of_month(transactions),
    )


def spending_percentages(by_tag: dict[str, float]) -> dict[str, float]:
    """Share (0..100) of each entry; empty when nothing was spent."""

    total = sum(by_tag.values())
    if total == 0:
        return {}
    return {tag_id: amount / total * 100 for tag_id, amount in by_tag.items()}


def category_spending_trend(
    transactions: Iterable[Transaction], tag_id: str
) -> list[MonthlyAmount]:
    """Monthly debit totals for one tag, months ascending."""

    months: dict[str, float] = {}
    for tx in debits_only(transactions):
        if tag_id in tx.tag_ids:
            key = period_key(tx.date, "monthly")
            months[key] = months.get(key, 0.0) + tx.amount
    return [MonthlyAmount(month=m, amount=months[m]) for m in sorted(months)]


def average_spending_by_tag(
    transactions: Iterable[Transaction], tags: Iterable[Tag]
) -> dict[str, float]:
    """Mean debit per tag id for ``tags`` (0.0 for an unused tag)."""

    sums: dict[str, float] = {}
    counts: dict[str, int] = {}
    for tx in debits_only(transactions):
        for tag_id in tx.tag_ids:
            sums[tag_id] = sums.get(tag_id, 0.0) + tx.amount
            counts[tag_id] = counts.get(tag_id, 0) + 1
    return {t.id: sums[t.id] / counts[t.id] if counts.get(t.id) else 0.0 for t in tags}


def highest_spending_day(transactions: Iterable[Transaction]) -> tuple[str, float]:
    """Weekday name with the largest debit total; Monday on a tie or no data."""

    totals = spending_by_weekday(transactions)
    best = max(range(7), key=lambda i: totals[i])
    return WEEKDAY_NAMES[best], totals[best]


def spending_diversity(by_tag: dict[str, float]) -> float:
    """Normalized Shannon entropy (0..100) of positive tag totals.

    0 when fewer than two tags carry spending; 100 when spending is split
    evenly.
    """

    amounts = [a for a in by_tag.values() if a > 0]
    if len(amounts) <= 1:
        return 0.0
    total = sum(amounts)
    entropy = -sum((a / total) * math.log2(a / total) for a in amounts)
    return entropy / math.log2(len(amounts)) * 100


def analyze_spending_patterns(transactions: Sequence[Transaction]) -> SpendingPattern:
    by_weekday = spending_by_weekday(transactions)

    per_month: dict[int, list[float]] = {}
    for tx in debits_only(transactions):
        per_month.setdefault(tx.date.month, []).append(tx.amount)

    return SpendingPattern(
        weekday_average=sum(by_weekday[:5]) / 5,
        weekend_average=sum(by_weekday[5:]) / 2,
        weekday_distribution=by_weekday,
        time_of_month=spending_by_time_of_month(transactions),
        seasonal_trends=tuple(
            SeasonalTrend(month=m, average_spend=sum(v) / len(v))
            for m, v in sorted(per_month.items())
        ),
    )


__all__ = [
    "UNKNOWN_MERCHANT",
    "WEEKDAY_NAMES",
    "spending_by_tag",
    "spending_by_merchant",
    "top_merchants",
    "spending_by_channel",
    "spending_by_weekday",
    "spending_by_time_of_month",
    "calculate_spending_breakdown",
    "spending_percentages",
    "category_spending_trend",
    "average_spending_by_tag",
    "highest_spending_day",
    "spending_diversity",
    "analyze_spending_patterns",
]
