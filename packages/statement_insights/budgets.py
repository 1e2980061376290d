"""Monthly budgets per tag: creation, utilisation and suggestions.

A :class:`Budget` caps debits tagged with ``tag_id`` during one ``YYYY-MM``
period. Utilisation is computed against the stored ledger on demand; nothing
here writes to the store.

Every function that depends on "now" takes an explicit ``as_of`` date.
"""

from __future__ import annotations

import calendar
import math
import uuid
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, date, datetime
from typing import Any

from pydantic import ValidationError

from .errors import BudgetValidationError
from .logging_setup import get_logger
from .models import Budget, BudgetState, BudgetStatus, Tag, Transaction

_log = get_logger("statement_insights.budgets")

WARNING_PERCENT = 80.0
EXCEEDED_PERCENT = 100.0
SUGGESTION_LOOKBACK_MONTHS = 3
SUGGESTION_MIN_SPEND = 100.0
SUGGESTION_BUFFER = 1.1
SUGGESTION_ROUNDING = 100


def period_of(d: date) -> str:
    return f"{d.year}-{d.month:02d}"


def _period_parts(period: str) -> tuple[int, int]:
    year, month = period.split("-")
    return int(year), int(month)


def _previous_periods(as_of: date, months: int) -> list[str]:
    # as_of's own month first, then back in time.
    out = []
    year, month = as_of.year, as_of.month
    for _ in range(months):
        out.append(f"{year}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return out


def _build(**fields: Any) -> Budget:
    try:
        return Budget(**fields)
    except ValidationError as e:
        raise BudgetValidationError(str(e)) from e


# ---------------------------
# Construction
# ---------------------------


def create_budget(
    tag_id: str,
    monthly_limit: float,
    period: str | None = None,
    *,
    budget_id: str | None = None,
    now: datetime | None = None,
) -> Budget:
    """New budget; ``period`` defaults to the month of ``now``.

    Raises
    ------
    BudgetValidationError
        When the limit is not positive or the period is not ``YYYY-MM``.
    """

    ts = now or datetime.now(UTC)
    return _build(
        id=budget_id or str(uuid.uuid4()),
        tag_id=tag_id,
        monthly_limit=monthly_limit,
        period=period or period_of(ts.date()),
        created_at=ts,
        updated_at=ts,
    )


def update_budget(
    budget: Budget, updates: Mapping[str, Any], *, now: datetime | None = None
) -> Budget:
    """Copy of ``budget`` with ``updates`` applied; ``id`` and ``created_at`` are fixed."""

    blocked = {"id", "created_at"}.intersection(updates)
    if blocked:
        raise BudgetValidationError(f"Cannot update fields: {', '.join(sorted(blocked))}")
    data = budget.model_dump()
    data.update(updates)
    data["updated_at"] = now or datetime.now(UTC)
    return _build(**data)


# ---------------------------
# Utilisation
# ---------------------------


def tag_spend_in_period(transactions: Iterable[Transaction], tag_id: str, period: str) -> float:
    """Debits tagged ``tag_id`` whose date falls in ``period``."""

    return sum(
        t.amount
        for t in transactions
        if t.is_debit and tag_id in t.tag_ids and period_of(t.date) == period
    )


def project_period_spend(current_spend: float, period: str, *, as_of: date) -> float:
    """End-of-period spend at the current daily pace.

    Past periods return ``current_spend`` unchanged and future periods 0.
    """

    year, month = _period_parts(period)
    if (year, month) < (as_of.year, as_of.month):
        return current_spend
    if (year, month) > (as_of.year, as_of.month):
        return 0.0
    days_in_month = calendar.monthrange(year, month)[1]
    return current_spend / as_of.day * days_in_month


def classify_utilisation(percent_used: float) -> BudgetState:
    if percent_used >= EXCEEDED_PERCENT:
        return BudgetState.EXCEEDED
    if percent_used >= WARNING_PERCENT:
        return BudgetState.WARNING
    return BudgetState.ON_TRACK


def get_budget_status(
    budget: Budget, transactions: Sequence[Transaction], *, as_of: date | None = None
) -> BudgetStatus:
    spent = tag_spend_in_period(transactions, budget.tag_id, budget.period)
    percent = spent / budget.monthly_limit * 100
    return BudgetStatus(
        budget=budget,
        current_spend=spent,
        percent_used=percent,
        remaining=budget.monthly_limit - spent,
        projected_end_of_month=project_period_spend(
            spent, budget.period, as_of=as_of or date.today()
        ),
        status=classify_utilisation(percent),
    )


def get_budget_statuses(
    budgets: Iterable[Budget], transactions: Sequence[Transaction], *, as_of: date | None = None
) -> list[BudgetStatus]:
    """Statuses in period then tag order."""

    ordered = sorted(budgets, key=lambda b: (b.period, b.tag_id))
    return [get_budget_status(b, transactions, as_of=as_of) for b in ordered]


# ---------------------------
# Suggestions
# ---------------------------


def average_monthly_tag_spend(
    transactions: Sequence[Transaction],
    tag_id: str,
    *,
    as_of: date,
    months: int = SUGGESTION_LOOKBACK_MONTHS,
) -> float:
    """Mean over the last ``months`` periods (``as_of``'s included) that had spend."""

    spends = [
        tag_spend_in_period(transactions, tag_id, p) for p in _previous_periods(as_of, months)
    ]
    active = [s for s in spends if s > 0]
    return sum(active) / len(active) if active else 0.0


def suggest_budgets(
    transactions: Sequence[Transaction],
    tags: Iterable[Tag],
    existing: Iterable[Budget] = (),
    *,
    as_of: date | None = None,
    now: datetime | None = None,
) -> list[Budget]:
    """Budgets for the ``as_of`` month for tags that have none yet.

    The limit is the recent monthly average plus 10%, rounded up to the next
    hundred. Tags averaging 100 or less get no suggestion.
    """

    today = as_of or date.today()
    period = period_of(today)
    covered = {b.tag_id for b in existing if b.period == period}

    out = []
    for tag in tags:
        if tag.id in covered:
            continue
        avg = average_monthly_tag_spend(transactions, tag.id, as_of=today)
        if avg <= SUGGESTION_MIN_SPEND:
            continue
        limit = math.ceil(avg * SUGGESTION_BUFFER / SUGGESTION_ROUNDING) * SUGGESTION_ROUNDING
        out.append(create_budget(tag.id, float(limit), period, now=now))
    _log.debug("suggested %d budgets for %s", len(out), period)
    return out


__all__ = [
    "WARNING_PERCENT",
    "EXCEEDED_PERCENT",
    "period_of",
    "create_budget",
    "update_budget",
    "tag_spend_in_period",
    "project_period_spend",
    "classify_utilisation",
    "get_budget_status",
    "get_budget_statuses",
    "average_monthly_tag_spend",
    "suggest_budgets",
]
