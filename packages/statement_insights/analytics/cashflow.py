"""Cash-flow aggregation by day, ISO week or month."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date

from ..models import CashFlowMetrics, DateRange, Granularity, Transaction, TransactionType


def period_key(d: date, granularity: Granularity) -> str:
    """``YYYY-MM-DD``, ``YYYY-Www`` (ISO week) or ``YYYY-MM``."""

    if granularity == "daily":
        return d.isoformat()
    if granularity == "weekly":
        iso_year, week, _ = d.isocalendar()
        return f"{iso_year}-W{week:02d}"
    return f"{d.year}-{d.month:02d}"


def _group(
    transactions: Iterable[Transaction], granularity: Granularity
) -> dict[str, list[Transaction]]:
    groups: dict[str, list[Transaction]] = {}
    for t in transactions:
        groups.setdefault(period_key(t.date, granularity), []).append(t)
    return groups


def daily_net_flows(transactions: Iterable[Transaction]) -> dict[date, float]:
    """Signed net flow per calendar day, in first-seen day order."""

    flows: dict[date, float] = {}
    for t in transactions:
        flows[t.date] = flows.get(t.date, 0.0) + t.net_flow
    return flows


def _period_metrics(period: str, transactions: Sequence[Transaction]) -> CashFlowMetrics:
    inflow = sum(t.amount for t in transactions if t.type is TransactionType.CREDIT)
    outflow = sum(t.amount for t in transactions if t.type is TransactionType.DEBIT)
    flows = daily_net_flows(transactions)
    days = len(flows) or 1
    return CashFlowMetrics(
        period=period,
        total_inflow=inflow,
        total_outflow=outflow,
        net_cash_flow=inflow - outflow,
        average_daily_inflow=inflow / days,
        average_daily_outflow=outflow / days,
        surplus_days=sum(1 for f in flows.values() if f > 0),
        deficit_days=sum(1 for f in flows.values() if f < 0),
    )


def calculate_cash_flow(
    transactions: Sequence[Transaction], granularity: Granularity = "monthly"
) -> list[CashFlowMetrics]:
    """One :class:`CashFlowMetrics` per period, periods in ascending order.

    Daily averages divide by the number of distinct days with activity in
    the period, not by its calendar length.
    """

    groups = _group(transactions, granularity)
    return [_period_metrics(k, groups[k]) for k in sorted(groups)]


def _in_range(transactions: Iterable[Transaction], date_range: DateRange | None) -> list[Transaction]:
    if date_range is None:
        return list(transactions)
    return [t for t in transactions if date_range.contains(t.date)]


def calculate_total_income(
    transactions: Iterable[Transaction], date_range: DateRange | None = None
) -> float:
    return sum(t.amount for t in _in_range(transactions, date_range) if t.type is TransactionType.CREDIT)


def calculate_total_expenses(
    transactions: Iterable[Transaction], date_range: DateRange | None = None
) -> float:
    return sum(t.amount for t in _in_range(transactions, date_range) if t.type is TransactionType.DEBIT)


def calculate_net_cash_flow(
    transactions: Sequence[Transaction], date_range: DateRange | None = None
) -> float:
    return calculate_total_income(transactions, date_range) - calculate_total_expenses(
        transactions, date_range
    )


def calculate_savings_rate(
    transactions: Sequence[Transaction], date_range: DateRange | None = None
) -> float:
    """Percent of income left after expenses; 0 when there is no income."""

    income = calculate_total_income(transactions, date_range)
    if income == 0:
        return 0.0
    return (income - calculate_total_expenses(transactions, date_range)) / income * 100


def identify_surplus_deficit_periods(
    transactions: Sequence[Transaction], granularity: Granularity = "monthly"
) -> tuple[list[str], list[str]]:
    """Return ``(surplus_periods, deficit_periods)``; break-even periods are in neither."""

    surplus: list[str] = []
    deficit: list[str] = []
    for m in calculate_cash_flow(transactions, granularity):
        if m.net_cash_flow > 0:
            surplus.append(m.period)
        elif m.net_cash_flow < 0:
            deficit.append(m.period)
    return surplus, deficit


__all__ = [
    "period_key",
    "daily_net_flows",
    "calculate_cash_flow",
    "calculate_total_income",
    "calculate_total_expenses",
    "calculate_net_cash_flow",
    "calculate_savings_rate",
    "identify_surplus_deficit_periods",
]
