"""Anomaly detection over debits.

Three independent passes, concatenated in this order:

- high-amount: a debit above ``high_amount_ratio`` times its merchant's mean
  (the mean includes the debit itself; groups need two or more members);
- duplicate: debits sharing amount (rounded), merchant and calendar day;
  every member of such a group is reported;
- spending-spike: every debit on a day whose total exceeds ``spike_ratio``
  times the mean daily total (over days with any debit).

A transaction can be reported by more than one pass.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from ..extract import merchant_key
from ..logging_setup import get_logger
from ..models import Anomaly, AnomalyType, Severity, Transaction
from ..settings import DEFAULT_THRESHOLDS, DetectionThresholds
from .grouping import debits_only, group_by_merchant

_log = get_logger("statement_insights.analytics.anomalies")


def _money(amount: float) -> str:
    return f"₹{amount:.2f}"


def determine_severity(
    amount: float, average: float, *, thresholds: DetectionThresholds | None = None
) -> Severity:
    th = thresholds or DEFAULT_THRESHOLDS
    if average <= 0:
        return Severity.HIGH
    ratio = amount / average
    if ratio > th.high_severity_ratio:
        return Severity.HIGH
    if ratio > th.high_amount_ratio:
        return Severity.MEDIUM
    return Severity.LOW


def detect_high_amount(
    transactions: Sequence[Transaction], *, thresholds: DetectionThresholds | None = None
) -> list[Anomaly]:
    th = thresholds or DEFAULT_THRESHOLDS
    out: list[Anomaly] = []
    for merchant, group in group_by_merchant(debits_only(transactions)).items():
        if len(group) < 2:
            continue
        mean = sum(t.amount for t in group) / len(group)
        if mean <= 0:
            continue
        limit = mean * th.high_amount_ratio
        for t in group:
            if t.amount > limit:
                out.append(
                    Anomaly(
                        transaction=t,
                        type=AnomalyType.HIGH_AMOUNT,
                        severity=determine_severity(t.amount, mean, thresholds=th),
                        description=(
                            f"Transaction amount ({_money(t.amount)}) is "
                            f"{round(t.amount / mean)}x higher than average for "
                            f"{merchant} ({_money(mean)})"
                        ),
                    )
                )
    return out


def detect_duplicate_groups(
    transactions: Sequence[Transaction], *, thresholds: DetectionThresholds | None = None
) -> list[list[Transaction]]:
    """Groups of two or more debits with equal amount, merchant and day."""

    th = thresholds or DEFAULT_THRESHOLDS
    groups: dict[tuple[str, str, date], list[Transaction]] = {}
    for t in debits_only(transactions):
        key = (f"{t.amount:.{th.duplicate_amount_places}f}", merchant_key(t.narrative), t.date)
        groups.setdefault(key, []).append(t)
    return [g for g in groups.values() if len(g) > 1]


def detect_duplicates(
    transactions: Sequence[Transaction], *, thresholds: DetectionThresholds | None = None
) -> list[Anomaly]:
    out: list[Anomaly] = []
    for group in detect_duplicate_groups(transactions, thresholds=thresholds):
        for t in group:
            out.append(
                Anomaly(
                    transaction=t,
                    type=AnomalyType.DUPLICATE,
                    severity=Severity.MEDIUM,
                    description=(
                        f"Potential duplicate transaction: {len(group)} transactions "
                        "with same amount, merchant, and date"
                    ),
                )
            )
    return out


def detect_spending_spikes(
    transactions: Sequence[Transaction], *, thresholds: DetectionThresholds | None = None
) -> list[Anomaly]:
    th = thresholds or DEFAULT_THRESHOLDS
    days: dict[date, list[Transaction]] = {}
    for t in debits_only(transactions):
        days.setdefault(t.date, []).append(t)
    if not days:
        return []

    totals = {d: sum(t.amount for t in txs) for d, txs in days.items()}
    mean = sum(totals.values()) / len(totals)
    if mean <= 0:
        return []
    limit = mean * th.spike_ratio

    out: list[Anomaly] = []
    for d, txs in days.items():
        total = totals[d]
        if total <= limit:
            continue
        severity = determine_severity(total, mean, thresholds=th)
        for t in txs:
            out.append(
                Anomaly(
                    transaction=t,
                    type=AnomalyType.SPENDING_SPIKE,
                    severity=severity,
                    description=(
                        f"Daily spending ({_money(total)}) is {round(total / mean)}x "
                        f"higher than average ({_money(mean)})"
                    ),
                )
            )
    return out


def detect_anomalies(
    transactions: Sequence[Transaction], *, thresholds: DetectionThresholds | None = None
) -> list[Anomaly]:
    """Run all passes; never raises on empty or degenerate input."""

    high = detect_high_amount(transactions, thresholds=thresholds)
    dupes = detect_duplicates(transactions, thresholds=thresholds)
    spikes = detect_spending_spikes(transactions, thresholds=thresholds)
    _log.debug(
        "anomalies: %d high-amount, %d duplicate, %d spending-spike",
        len(high),
        len(dupes),
        len(spikes),
    )
    return [*high, *dupes, *spikes]


__all__ = [
    "determine_severity",
    "detect_high_amount",
    "detect_duplicate_groups",
    "detect_duplicates",
    "detect_spending_spikes",
    "detect_anomalies",
]
