"""Balance forecast and cash-flow projection.

Historical average daily income and expense (over the observed span, at
least one day) are projected forward, recurring obligations due in the window
are subtracted, and the result is anchored on the latest known balance. The
confidence band is the population standard deviation of per-day net flow
times the number of projected days, applied symmetrically.

Every function takes an explicit ``as_of`` date (default: today) so results
are reproducible.
"""

from __future__ import annotations

import calendar
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from .analytics.balance import get_current_balance
from .analytics.cashflow import daily_net_flows
from .analytics.recurring import detect_recurring_payments
from .logging_setup import get_logger
from .models import (
    BalanceForecast,
    CashFlowProjection,
    ConfidenceInterval,
    ForecastWarning,
    RecurringPayment,
    Transaction,
)
from .settings import DetectionThresholds

_log = get_logger("statement_insights.forecast")

PROJECTION_HORIZONS: tuple[int, ...] = (30, 60, 90)


@dataclass(frozen=True, slots=True)
class DailyAverages:
    income: float
    expense: float
    days_covered: int


def end_of_month(d: date) -> date:
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def calculate_daily_averages(transactions: Sequence[Transaction]) -> DailyAverages:
    """Average daily income and expense over the observed date span."""

    if not transactions:
        return DailyAverages(0.0, 0.0, 1)
    dates = [t.date for t in transactions]
    days = max(1, (max(dates) - min(dates)).days)
    income = sum(t.credit or 0.0 for t in transactions)
    expense = sum(t.debit or 0.0 for t in transactions)
    return DailyAverages(income / days, expense / days, days)


def daily_flow_std_dev(transactions: Sequence[Transaction]) -> float:
    """Population standard deviation of per-day net flow (0 below two transactions)."""

    if len(transactions) < 2:
        return 0.0
    flows = list(daily_net_flows(transactions).values())
    mean = sum(flows) / len(flows)
    return math.sqrt(sum((f - mean) ** 2 for f in flows) / len(flows))


def recurring_due(
    recurring: Sequence[RecurringPayment], start: date, end: date
) -> list[RecurringPayment]:
    """Recurring payments whose next expected date falls in ``[start, end]``."""

    return [r for r in recurring if start <= r.next_expected_date <= end]


def forecast_end_of_month_balance(
    transactions: Sequence[Transaction],
    recurring: Sequence[RecurringPayment] | None = None,
    *,
    as_of: date | None = None,
    thresholds: DetectionThresholds | None = None,
) -> BalanceForecast:
    """Predict the balance on the last day of ``as_of``'s month.

    Parameters
    ----------
    transactions:
        Historical transactions; the latest balance anchors the forecast.
    recurring:
        Detected recurring payments. When ``None`` they are detected from
        ``transactions``.
    as_of:
        Forecast reference date; defaults to today.

    Notes
    -----
    ``confidence_interval.low <= predicted_balance <= confidence_interval.high``
    always holds.
    """

    today = as_of or date.today()
    month_end = end_of_month(today)

    if not transactions:
        return BalanceForecast(
            date=month_end,
            predicted_balance=0.0,
            confidence_interval=ConfidenceInterval(0.0, 0.0),
            assumptions=("No transaction history available",),
        )

    current = get_current_balance(transactions)
    days_remaining = (month_end - today).days
    if days_remaining <= 0:
        return BalanceForecast(
            date=month_end,
            predicted_balance=current,
            confidence_interval=ConfidenceInterval(current, current),
            assumptions=("Already at end of month",),
        )

    if recurring is None:
        recurring = detect_recurring_payments(transactions, thresholds=thresholds)

    avg = calculate_daily_averages(transactions)
    due = sum(r.amount for r in recurring_due(recurring, today, month_end))
    predicted = current + (avg.income - avg.expense) * days_remaining - due
    margin = daily_flow_std_dev(transactions) * days_remaining

    _log.debug(
        "forecast as_of=%s: current=%.2f days=%d due=%.2f predicted=%.2f",
        today,
        current,
        days_remaining,
        due,
        predicted,
    )
    return BalanceForecast(
        date=month_end,
        predicted_balance=predicted,
        confidence_interval=ConfidenceInterval(predicted - margin, predicted + margin),
        assumptions=(
            f"Based on {len(transactions)} historical transactions",
            f"Average daily income: ₹{avg.income:.2f}",
            f"Average daily expenses: ₹{avg.expense:.2f}",
            f"{len(recurring)} recurring payments detected",
            f"Recurring payments due: ₹{due:.2f}",
            f"{days_remaining} days remaining in month",
        ),
    )


def generate_warnings(
    forecasts: Sequence[BalanceForecast], *, low_balance: float
) -> list[ForecastWarning]:
    """At most one warning per forecast.

    Negative prediction is critical. A positive prediction below
    ``low_balance``, or a band whose low end is negative, is a warning.
    """

    out: list[ForecastWarning] = []
    for f in forecasts:
        when = f.date.isoformat()
        if f.predicted_balance < 0:
            out.append(
                ForecastWarning(
                    type="negative_balance",
                    date=f.date,
                    message=(
                        "Account balance is predicted to go negative "
                        f"(₹{f.predicted_balance:.2f}) by {when}"
                    ),
                    severity="critical",
                )
            )
        elif f.predicted_balance < low_balance:
            out.append(
                ForecastWarning(
                    type="low_balance",
                    date=f.date,
                    message=(
                        "Account balance is predicted to fall below threshold "
                        f"(₹{f.predicted_balance:.2f}) by {when}"
                    ),
                    severity="warning",
                )
            )
        elif f.confidence_interval.low < 0:
            out.append(
                ForecastWarning(
                    type="negative_balance",
                    date=f.date,
                    message=(
                        "There is a risk of negative balance "
                        f"(worst case: ₹{f.confidence_interval.low:.2f}) by {when}"
                    ),
                    severity="warning",
                )
            )
    return out


def project_cash_flow(
    transactions: Sequence[Transaction],
    days: int,
    recurring: Sequence[RecurringPayment] | None = None,
    *,
    as_of: date | None = None,
    thresholds: DetectionThresholds | None = None,
) -> list[CashFlowProjection]:
    """Inflow/outflow projections for each standard horizon up to ``days``.

    Recurring payments due inside a horizon are added to its outflow.
    """

    if not transactions or days <= 0:
        return []
    today = as_of or date.today()
    if recurring is None:
        recurring = detect_recurring_payments(transactions, thresholds=thresholds)
    avg = calculate_daily_averages(transactions)

    out: list[CashFlowProjection] = []
    for horizon in (h for h in PROJECTION_HORIZONS if h <= days):
        due = recurring_due(recurring, today, today + timedelta(days=horizon))
        due_total = sum(r.amount for r in due)
        inflow = avg.income * horizon
        outflow = avg.expense * horizon + due_total
        out.append(
            CashFlowProjection(
                period=f"{horizon} days",
                horizon_days=horizon,
                expected_inflow=inflow,
                expected_outflow=outflow,
                net_flow=inflow - outflow,
                recurring_payments=tuple(due),
            )
        )
    return out


__all__ = [
    "PROJECTION_HORIZONS",
    "DailyAverages",
    "end_of_month",
    "calculate_daily_averages",
    "daily_flow_std_dev",
    "recurring_due",
    "forecast_end_of_month_balance",
    "generate_warnings",
    "project_cash_flow",
]
