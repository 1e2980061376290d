from datetime import UTC, date, datetime

import pytest

from statement_insights.budgets import (
    average_monthly_tag_spend,
    classify_utilisation,
    create_budget,
    get_budget_status,
    get_budget_statuses,
    project_period_spend,
    suggest_budgets,
    update_budget,
)
from statement_insights.errors import BudgetValidationError
from statement_insights.models import BudgetState, Tag

from tests.helpers.factories import make_tx

NOW = datetime(2024, 3, 5, 8, 0, tzinfo=UTC)


def _tag(tag_id: str) -> Tag:
    return Tag(id=tag_id, name=tag_id.title(), keywords=(tag_id,), created_at=NOW, updated_at=NOW)


def test_create_budget_defaults_to_current_month():
    budget = create_budget("food", 5000, now=NOW)
    assert budget.period == "2024-03"
    assert budget.created_at == budget.updated_at == NOW


@pytest.mark.parametrize("limit, period", [(0, "2024-01"), (-5, "2024-01"), (100, "2024/01")])
def test_create_budget_rejects_bad_input(limit, period):
    with pytest.raises(BudgetValidationError):
        create_budget("food", limit, period, now=NOW)


def test_update_budget():
    budget = create_budget("food", 5000, "2024-01", budget_id="b1", now=NOW)
    later = datetime(2024, 3, 6, tzinfo=UTC)
    updated = update_budget(budget, {"monthly_limit": 6000}, now=later)
    assert (updated.id, updated.monthly_limit, updated.updated_at) == ("b1", 6000, later)
    assert updated.created_at == NOW

    with pytest.raises(BudgetValidationError, match="id"):
        update_budget(budget, {"id": "b2"})
    with pytest.raises(BudgetValidationError):
        update_budget(budget, {"monthly_limit": -1})


def _january_food():
    return [
        make_tx(date(2024, 1, 5), "SWIGGY", debit=300, tag_ids=("food",)),
        make_tx(date(2024, 1, 10), "ZOMATO", debit=500, tag_ids=("food",)),
        make_tx(date(2024, 1, 10), "IRCTC", debit=999, tag_ids=("travel",)),
        make_tx(date(2024, 2, 1), "SWIGGY", debit=400, tag_ids=("food",)),
        make_tx(date(2024, 1, 12), "REFUND SWIGGY", credit=200, tag_ids=("food",)),
    ]


def test_budget_status_in_the_current_month():
    budget = create_budget("food", 1000, "2024-01", now=NOW)
    status = get_budget_status(budget, _january_food(), as_of=date(2024, 1, 10))
    assert status.current_spend == 800
    assert status.percent_used == 80
    assert status.remaining == 200
    assert status.projected_end_of_month == pytest.approx(2480)
    assert status.status is BudgetState.WARNING


def test_projection_outside_the_current_month():
    assert project_period_spend(800, "2024-01", as_of=date(2024, 2, 1)) == 800
    assert project_period_spend(800, "2024-01", as_of=date(2023, 12, 31)) == 0


@pytest.mark.parametrize(
    "percent, state",
    [(79.9, BudgetState.ON_TRACK), (80, BudgetState.WARNING), (100, BudgetState.EXCEEDED)],
)
def test_classify_utilisation(percent, state):
    assert classify_utilisation(percent) is state


def test_statuses_are_ordered_by_period_then_tag():
    budgets = [
        create_budget("travel", 100, "2024-01", now=NOW),
        create_budget("food", 100, "2024-02", now=NOW),
        create_budget("food", 100, "2024-01", now=NOW),
    ]
    statuses = get_budget_statuses(budgets, _january_food(), as_of=date(2024, 2, 15))
    assert [(s.budget.period, s.budget.tag_id) for s in statuses] == [
        ("2024-01", "food"),
        ("2024-01", "travel"),
        ("2024-02", "food"),
    ]
    assert statuses[1].status is BudgetState.EXCEEDED


def test_suggestions_skip_small_and_budgeted_tags():
    txs = [
        make_tx(date(2024, 1, 5), "SWIGGY", debit=300, tag_ids=("food",)),
        make_tx(date(2024, 3, 2), "ZOMATO", debit=500, tag_ids=("food",)),
        make_tx(date(2024, 3, 3), "METRO", debit=90, tag_ids=("travel",)),
        make_tx(date(2024, 3, 1), "LANDLORD", debit=20_000, tag_ids=("rent",)),
    ]
    as_of = date(2024, 3, 15)
    assert average_monthly_tag_spend(txs, "food", as_of=as_of) == 400

    existing = [create_budget("rent", 20_000, "2024-03", now=NOW)]
    tags = [_tag("food"), _tag("travel"), _tag("rent")]
    suggested = suggest_budgets(txs, tags, existing, as_of=as_of, now=NOW)
    assert [(b.tag_id, b.period, b.monthly_limit) for b in suggested] == [("food", "2024-03", 500)]

    rent_last_month = [create_budget("rent", 20_000, "2024-02", now=NOW)]
    later = suggest_budgets(txs, tags, rent_last_month, as_of=as_of, now=NOW)
    assert {b.tag_id for b in later} == {"food", "rent"}
