"""Recurring-payment detection.

For each merchant group of debits:

1. keep members whose amount is within the tolerance band of the group mean
   (5% by default); at least two must survive;
2. measure day gaps between chronologically consecutive survivors;
3. classify the mean gap into a frequency band, or give up;
4. score confidence by how far the gaps stray from the ideal period.

Results are recomputed from scratch on every call.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta

from ..logging_setup import get_logger
from ..models import Frequency, RecurringCategory, RecurringPayment, Transaction
from ..settings import DEFAULT_THRESHOLDS, DetectionThresholds
from .grouping import debits_only, group_by_merchant

_log = get_logger("statement_insights.analytics.recurring")

# (min gap, max gap, frequency, ideal period in days); bounds inclusive.
FREQUENCY_BANDS: tuple[tuple[float, float, Frequency, int], ...] = (
    (4, 10, Frequency.WEEKLY, 7),
    (23, 37, Frequency.MONTHLY, 30),
    (75, 105, Frequency.QUARTERLY, 90),
    (335, 395, Frequency.YEARLY, 365),
)

PERIOD_DAYS: dict[Frequency, int] = {f: days for _lo, _hi, f, days in FREQUENCY_BANDS}

SUBSCRIPTION_HINTS = ("netflix", "spotify", "prime", "subscription", "membership")
INSTALLMENT_HINTS = ("emi", "loan", "finance", "bajaj")
UTILITY_HINTS = ("electric", "water", "gas", "internet", "mobile", "broadband", "utility")


def classify_frequency(intervals: Sequence[float]) -> tuple[Frequency, int] | None:
    """Band the mean interval; ``None`` when it falls between bands."""

    if not intervals:
        return None
    avg = sum(intervals) / len(intervals)
    for lo, hi, freq, days in FREQUENCY_BANDS:
        if lo <= avg <= hi:
            return freq, days
    return None


def interval_confidence(
    intervals: Sequence[float], ideal_days: int, *, divisor_fraction: float = 0.3
) -> int:
    """0..100 score: 100 when every gap equals the ideal period."""

    if not intervals:
        return 0
    mean_dev = sum(abs(i - ideal_days) for i in intervals) / len(intervals)
    raw = 100 - (mean_dev / (ideal_days * divisor_fraction)) * 100
    return round(max(0.0, min(100.0, raw)))


def categorize_recurring(
    merchant: str, amount: float, *, installment_amount: float = 5000.0
) -> RecurringCategory:
    """Name-based category; large unexplained amounts default to installment."""

    name = merchant.lower()
    if any(h in name for h in SUBSCRIPTION_HINTS):
        return RecurringCategory.SUBSCRIPTION
    if any(h in name for h in INSTALLMENT_HINTS):
        return RecurringCategory.INSTALLMENT
    if any(h in name for h in UTILITY_HINTS):
        return RecurringCategory.UTILITY
    if amount > installment_amount:
        return RecurringCategory.INSTALLMENT
    return RecurringCategory.OTHER


def _analyze_group(
    merchant: str, group: Sequence[Transaction], th: DetectionThresholds
) -> RecurringPayment | None:
    ordered = sorted(group, key=lambda t: t.date)
    mean = sum(t.amount for t in ordered) / len(ordered)
    if mean <= 0:
        return None

    survivors = [t for t in ordered if abs(t.amount - mean) / mean <= th.recurring_amount_tolerance]
    if len(survivors) < 2:
        return None

    intervals = [(b.date - a.date).days for a, b in zip(survivors, survivors[1:])]
    band = classify_frequency(intervals)
    if band is None:
        return None
    freq, ideal = band

    amount = sum(t.amount for t in survivors) / len(survivors)
    return RecurringPayment(
        merchant=merchant,
        amount=amount,
        frequency=freq,
        next_expected_date=survivors[-1].date + timedelta(days=ideal),
        category=categorize_recurring(
            merchant, amount, installment_amount=th.installment_amount
        ),
        confidence=interval_confidence(
            intervals, ideal, divisor_fraction=th.confidence_divisor_fraction
        ),
        occurrences=len(survivors),
    )


def detect_recurring_payments(
    transactions: Sequence[Transaction],
    *,
    thresholds: DetectionThresholds | None = None,
) -> list[RecurringPayment]:
    """Detect recurring debit obligations, one result per merchant at most.

    Never raises; fewer than two debits yields an empty list.
    """

    th = thresholds or DEFAULT_THRESHOLDS
    debits = debits_only(transactions)
    if len(debits) < 2:
        return []

    groups = group_by_merchant(debits)
    found: list[RecurringPayment] = []
    for merchant, group in groups.items():
        if len(group) < 2:
            continue
        rp = _analyze_group(merchant, group, th)
        if rp is not None:
            found.append(rp)

    _log.debug("recurring: %d merchant groups, %d recurring", len(groups), len(found))
    return found


__all__ = [
    "FREQUENCY_BANDS",
    "PERIOD_DAYS",
    "classify_frequency",
    "interval_confidence",
    "categorize_recurring",
    "detect_recurring_payments",
]
