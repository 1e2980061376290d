from datetime import date

import pytest

from statement_insights.analytics.income import (
    OTHER_INCOME,
    analyze_income,
    classify_income_source,
    detect_salary_day,
    detect_unusual_income,
)

from tests.helpers.factories import make_tx


@pytest.mark.parametrize(
    "narrative, source",
    [
        ("NEFT SALARY ACME CORP", "Salary"),
        ("INT CR 0001234", "Interest"),
        ("REFUND AMAZON ORDER", "Refunds"),
        ("MUTUAL FUND REDEMPTION", "Investments"),
        ("NEFT-PRIYA SHARMA-N123", "Transfers"),
        ("CASH DEPOSIT BRANCH", OTHER_INCOME),
    ],
)
def test_classify_income_source(narrative, source):
    assert classify_income_source(narrative) == source


def test_analyze_income():
    txs = [
        make_tx(date(2024, 1, 1), "NEFT SALARY ACME CORP", credit=50_000),
        make_tx(date(2024, 1, 15), "INT CR 0001234", credit=200),
        make_tx(date(2024, 2, 1), "NEFT SALARY ACME CORP", credit=50_000),
        make_tx(date(2024, 2, 20), "REFUND AMAZON ORDER", credit=300),
        make_tx(date(2024, 3, 1), "NEFT SALARY ACME CORP", credit=50_000),
        make_tx(date(2024, 3, 2), "RENT", debit=20_000),
    ]
    analysis = analyze_income(txs)
    assert analysis.total_income == 150_500
    assert analysis.by_source == {"Salary": 150_000, "Interest": 200, "Refunds": 300}
    assert [(m.month, m.amount) for m in analysis.monthly_trend] == [
        ("2024-01", 50_200),
        ("2024-02", 50_300),
        ("2024-03", 50_000),
    ]
    assert analysis.salary_day == 1
    assert analysis.unusual_incomes == ()


def test_salary_day_needs_a_repeated_day():
    credits = [
        make_tx(date(2024, 1, 1), "NEFT SALARY", credit=1000),
        make_tx(date(2024, 2, 5), "NEFT SALARY", credit=1000),
    ]
    assert detect_salary_day(credits) is None
    assert detect_salary_day(credits[:1]) is None
    assert detect_salary_day([]) is None


def test_unusual_income_is_above_twice_the_mean():
    credits = [make_tx(date(2024, 1, d), "UPI CR", credit=100) for d in (1, 2, 3)]
    bonus = make_tx(date(2024, 1, 4), "BONUS", credit=1000)
    assert detect_unusual_income([*credits, bonus]) == [bonus]


def test_no_credits():
    analysis = analyze_income([make_tx(date(2024, 1, 1), "RENT", debit=500)])
    assert analysis.total_income == 0
    assert analysis.by_source == {}
    assert analysis.monthly_trend == ()
    assert analysis.salary_day is None
