"""Financial health score.

Four components, each scored 0..100 and weighted:

============================  ======
savings rate                   0.30
budget adherence               0.25
spending diversity             0.25
emergency fund                 0.20
============================  ======

The overall score is the rounded weighted sum clamped to 0..100. The trend is
a band of that score (there is no score history to compare against).
"""

from __future__ import annotations

from collections.abc import Sequence

from ..budgets import tag_spend_in_period
from ..models import Budget, HealthScore, HealthScoreComponent, HealthTrend, Transaction
from .balance import get_current_balance
from .grouping import debits_only

SAVINGS_WEIGHT = 0.3
BUDGET_WEIGHT = 0.25
DIVERSITY_WEIGHT = 0.25
EMERGENCY_WEIGHT = 0.2

NO_DATA_RECOMMENDATION = "Upload transaction data to calculate health score"


def _clamp(score: float) -> int:
    return max(0, min(100, round(score)))


def savings_rate_component(transactions: Sequence[Transaction]) -> HealthScoreComponent:
    """Piecewise linear in the savings rate: 10% -> 40, 20% -> 70, 30% -> 90."""

    income = sum(t.amount for t in transactions if not t.is_debit)
    expenses = sum(t.amount for t in transactions if t.is_debit)
    if income == 0:
        return HealthScoreComponent(0, SAVINGS_WEIGHT, 0.0)

    rate = (income - expenses) / income * 100
    if rate < 0:
        score = 0.0
    elif rate < 10:
        score = rate * 4
    elif rate < 20:
        score = 40 + (rate - 10) * 3
    elif rate < 30:
        score = 70 + (rate - 20) * 2
    else:
        score = 90 + (rate - 30)
    return HealthScoreComponent(_clamp(score), SAVINGS_WEIGHT, round(rate, 1))


def _budget_score(percent_used: float) -> float:
    if percent_used <= 80:
        return 100.0
    if percent_used <= 100:
        return 100 - (percent_used - 80) * 1.5
    return max(0.0, 70 - (percent_used - 100) * 0.7)


def budget_adherence_component(
    transactions: Sequence[Transaction], budgets: Sequence[Budget]
) -> HealthScoreComponent:
    """Mean per-budget score; 50 when no budget is set."""

    if not budgets:
        return HealthScoreComponent(50, BUDGET_WEIGHT, 0.0)
    scores = [
        _budget_score(tag_spend_in_period(transactions, b.tag_id, b.period) / b.monthly_limit * 100)
        for b in budgets
    ]
    avg = round(sum(scores) / len(scores))
    return HealthScoreComponent(avg, BUDGET_WEIGHT, float(avg))


def spending_diversity_component(transactions: Sequence[Transaction]) -> HealthScoreComponent:
    """Normalized Herfindahl index over tag totals; ``value`` is the tag count."""

    debits = debits_only(transactions)
    if not debits:
        return HealthScoreComponent(50, DIVERSITY_WEIGHT, 0.0)

    by_tag: dict[str, float] = {}
    for t in debits:
        for tag_id in t.tag_ids:
            by_tag[tag_id] = by_tag.get(tag_id, 0.0) + t.amount
    total = sum(t.amount for t in debits)
    n = len(by_tag)
    if n <= 1:
        return HealthScoreComponent(50, DIVERSITY_WEIGHT, float(n))

    concentration = sum((a / total) ** 2 for a in by_tag.values())
    score = (1 - concentration) / (1 - 1 / n) * 100
    return HealthScoreComponent(_clamp(score), DIVERSITY_WEIGHT, float(n))


def emergency_fund_component(transactions: Sequence[Transaction]) -> HealthScoreComponent:
    """Months of average monthly expenses covered by the current balance."""

    if not transactions:
        return HealthScoreComponent(0, EMERGENCY_WEIGHT, 0.0)

    dates = [t.date for t in transactions]
    first, last = min(dates), max(dates)
    months = (last.year - first.year) * 12 + (last.month - first.month) + 1
    monthly_expenses = sum(t.amount for t in debits_only(transactions)) / months
    if monthly_expenses == 0:
        return HealthScoreComponent(50, EMERGENCY_WEIGHT, 0.0)

    covered = get_current_balance(transactions) / monthly_expenses
    if covered < 1:
        score = covered * 30
    elif covered < 3:
        score = 30 + (covered - 1) * 15
    elif covered < 6:
        score = 60 + (covered - 3) * 10
    else:
        score = 90 + (covered - 6) * 2
    return HealthScoreComponent(_clamp(score), EMERGENCY_WEIGHT, round(covered, 1))


def recommendations_for(
    savings: HealthScoreComponent,
    budget: HealthScoreComponent,
    diversity: HealthScoreComponent,
    emergency: HealthScoreComponent,
) -> list[str]:
    out: list[str] = []
    if savings.score < 40:
        out.append("Your savings rate is low. Try to save at least 10-20% of your income.")
    elif savings.score < 70:
        out.append("Good savings rate! Aim for 20-30% to build wealth faster.")
    else:
        out.append("Excellent savings rate! Keep up the great work.")

    if budget.score < 50:
        out.append(
            "You're exceeding your budgets. Review your spending categories and adjust limits."
        )
    elif budget.score < 80:
        out.append("Budget adherence needs improvement. Track your spending more closely.")

    if diversity.score < 40:
        out.append(
            "Your spending is concentrated in few categories. "
            "Consider diversifying to reduce risk."
        )

    if emergency.score < 30:
        out.append("Build an emergency fund covering at least 3-6 months of expenses.")
    elif emergency.score < 60:
        out.append("Your emergency fund is growing. Aim for 3-6 months of expenses.")
    elif emergency.score < 90:
        out.append(
            "Good emergency fund! Consider reaching 6 months of expenses for better security."
        )

    if len(out) == 1:
        out.append("Continue monitoring your finances regularly to maintain good health.")
    return out


def trend_for(score: int) -> HealthTrend:
    if score >= 70:
        return HealthTrend.IMPROVING
    if score >= 40:
        return HealthTrend.STABLE
    return HealthTrend.DECLINING


def calculate_health_score(
    transactions: Sequence[Transaction], budgets: Sequence[Budget] = ()
) -> HealthScore:
    if not transactions:
        return HealthScore(
            score=0,
            savings_rate=HealthScoreComponent(0, SAVINGS_WEIGHT, 0.0),
            budget_adherence=HealthScoreComponent(0, BUDGET_WEIGHT, 0.0),
            spending_diversity=HealthScoreComponent(0, DIVERSITY_WEIGHT, 0.0),
            emergency_fund=HealthScoreComponent(0, EMERGENCY_WEIGHT, 0.0),
            recommendations=(NO_DATA_RECOMMENDATION,),
            trend=HealthTrend.STABLE,
        )

    savings = savings_rate_component(transactions)
    budget = budget_adherence_component(transactions, budgets)
    diversity = spending_diversity_component(transactions)
    emergency = emergency_fund_component(transactions)

    weighted = sum(c.score * c.weight for c in (savings, budget, diversity, emergency))
    score = _clamp(weighted)
    return HealthScore(
        score=score,
        savings_rate=savings,
        budget_adherence=budget,
        spending_diversity=diversity,
        emergency_fund=emergency,
        recommendations=tuple(recommendations_for(savings, budget, diversity, emergency)),
        trend=trend_for(score),
    )


__all__ = [
    "SAVINGS_WEIGHT",
    "BUDGET_WEIGHT",
    "DIVERSITY_WEIGHT",
    "EMERGENCY_WEIGHT",
    "savings_rate_component",
    "budget_adherence_component",
    "spending_diversity_component",
    "emergency_fund_component",
    "recommendations_for",
    "trend_for",
    "calculate_health_score",
]
