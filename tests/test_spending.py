from datetime import UTC, date, datetime

import pytest

from statement_insights.analytics.spending import (
    UNKNOWN_MERCHANT,
    analyze_spending_patterns,
    calculate_spending_breakdown,
    highest_spending_day,
    spending_by_tag,
    spending_by_time_of_month,
    spending_diversity,
    spending_percentages,
    top_merchants,
)
from statement_insights.models import PaymentChannel, Tag

from tests.helpers.factories import make_tx

NOW = datetime(2024, 1, 1, tzinfo=UTC)
MONDAY = date(2024, 1, 1)


def _tag(tag_id: str) -> Tag:
    return Tag(id=tag_id, name=tag_id.title(), keywords=(tag_id,), created_at=NOW, updated_at=NOW)


def test_spending_by_tag_counts_multi_tag_debits_for_each_tag():
    txs = [
        make_tx(MONDAY, "SWIGGY", debit=100, tag_ids=("food",)),
        make_tx(MONDAY, "IRCTC MEAL", debit=50, tag_ids=("food", "travel")),
        make_tx(MONDAY, "REFUND SWIGGY", credit=999, tag_ids=("food",)),
    ]
    totals = spending_by_tag(txs, [_tag("food"), _tag("travel"), _tag("rent")])
    assert totals == {"food": 150, "travel": 50, "rent": 0.0}


def test_top_merchants_orders_by_total_and_respects_limit():
    txs = [
        make_tx(date(2024, 1, 2), "UPI/DR/1/SWIGGY/ybl", debit=100),
        make_tx(date(2024, 1, 9), "UPI/DR/2/SWIGGY/ybl", debit=100),
        make_tx(date(2024, 1, 5), "UPI/DR/3/SWIGGY/ybl", debit=100),
        make_tx(date(2024, 1, 3), "UPI/DR/4/ZOMATO/ybl", debit=500),
        make_tx(date(2024, 1, 4), "UPI TO ID", debit=20),
        make_tx(date(2024, 1, 4), "UPI/CR/5/ACME/okaxis", credit=9000),
    ]
    top = top_merchants(txs, limit=2)
    assert [m.merchant for m in top] == ["Zomato", "Swiggy"]
    swiggy = top[1]
    assert swiggy.transaction_count == 3
    assert swiggy.average_amount == 100
    assert swiggy.last_transaction == date(2024, 1, 9)

    everyone = top_merchants(txs, limit=10)
    assert everyone[-1].merchant == UNKNOWN_MERCHANT
    assert top_merchants(txs, limit=0) == []


def test_time_of_month_boundaries():
    txs = [
        make_tx(date(2024, 1, d), "SHOP", debit=amount)
        for d, amount in ((10, 1), (11, 10), (20, 100), (21, 1000))
    ]
    split = spending_by_time_of_month(txs)
    assert (split.early, split.mid, split.late) == (1, 110, 1000)


def test_spending_patterns_average_weekdays_and_weekends():
    txs = [
        make_tx(MONDAY, "SHOP", debit=100),
        make_tx(date(2024, 1, 6), "SHOP", debit=60),
        make_tx(date(2024, 1, 7), "SHOP", debit=40),
        make_tx(date(2024, 2, 7), "SHOP", debit=30),
    ]
    pattern = analyze_spending_patterns(txs)
    assert pattern.weekday_average == pytest.approx(130 / 5)
    assert pattern.weekend_average == 50
    assert pattern.weekday_distribution[5] == 60
    assert [(s.month, s.average_spend) for s in pattern.seasonal_trends] == [
        (1, pytest.approx(200 / 3)),
        (2, 30),
    ]


def test_breakdown_groups_by_channel():
    txs = [
        make_tx(MONDAY, "UPI/DR/1/SWIGGY/ybl", debit=100),
        make_tx(MONDAY, "UPI/DR/2/ZOMATO/ybl", debit=50),
    ]
    breakdown = calculate_spending_breakdown(txs)
    assert breakdown.by_channel == {PaymentChannel.INSTANT_TRANSFER: 150}
    assert len(breakdown.by_merchant) == 2


def test_percentages_and_diversity():
    assert spending_percentages({}) == {}
    assert spending_percentages({"a": 0.0}) == {}
    assert spending_percentages({"a": 30, "b": 10}) == {"a": 75, "b": 25}

    assert spending_diversity({"a": 50, "b": 50}) == pytest.approx(100)
    assert spending_diversity({"a": 50, "b": 0}) == 0


def test_highest_spending_day_defaults_to_monday():
    assert highest_spending_day([]) == ("Monday", 0.0)
    assert highest_spending_day([make_tx(date(2024, 1, 6), "SHOP", debit=5)]) == ("Saturday", 5)
