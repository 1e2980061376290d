from datetime import date

import pytest

from statement_insights.forecast import (
    calculate_daily_averages,
    daily_flow_std_dev,
    end_of_month,
    forecast_end_of_month_balance,
    generate_warnings,
    project_cash_flow,
)
from statement_insights.models import (
    BalanceForecast,
    ConfidenceInterval,
    Frequency,
    RecurringCategory,
    RecurringPayment,
)

from tests.helpers.factories import make_tx

AS_OF = date(2024, 1, 20)


def _history():
    return [
        make_tx(date(2024, 1, 1), "NEFT-EMPLOYER-SAL", credit=3000, balance=3000),
        make_tx(date(2024, 1, 5), "POS GROCER", debit=500, balance=2500),
        make_tx(date(2024, 1, 11), "ATM WDL", debit=500, balance=2000),
    ]


RENT = RecurringPayment(
    merchant="Landlord",
    amount=1000.0,
    frequency=Frequency.MONTHLY,
    next_expected_date=date(2024, 1, 25),
    category=RecurringCategory.OTHER,
    confidence=90,
    occurrences=3,
)


def test_end_of_month():
    assert end_of_month(date(2024, 2, 10)) == date(2024, 2, 29)
    assert end_of_month(date(2023, 12, 31)) == date(2023, 12, 31)


def test_daily_averages_use_observed_span():
    avg = calculate_daily_averages(_history())
    assert avg.days_covered == 10
    assert (avg.income, avg.expense) == (300, 100)
    assert calculate_daily_averages([make_tx(date(2024, 1, 1), "x", debit=70)]).days_covered == 1


def test_std_dev_needs_two_transactions():
    assert daily_flow_std_dev([make_tx(date(2024, 1, 1), "x", debit=70)]) == 0
    assert daily_flow_std_dev(_history()) > 0


def test_forecast_projects_remaining_days():
    f = forecast_end_of_month_balance(_history(), [], as_of=AS_OF)
    assert f.date == date(2024, 1, 31)
    # 2000 + (300 - 100) * 11
    assert f.predicted_balance == pytest.approx(4200)
    assert "11 days remaining in month" in f.assumptions
    assert "Average daily income: ₹300.00" in f.assumptions


def test_forecast_subtracts_recurring_due_in_window():
    f = forecast_end_of_month_balance(_history(), [RENT], as_of=AS_OF)
    assert f.predicted_balance == pytest.approx(3200)
    assert "Recurring payments due: ₹1000.00" in f.assumptions

    later = forecast_end_of_month_balance(_history(), [RENT], as_of=date(2024, 1, 26))
    assert "Recurring payments due: ₹0.00" in later.assumptions


@pytest.mark.parametrize("recurring", [None, [], [RENT]])
def test_forecast_band_contains_prediction(recurring):
    f = forecast_end_of_month_balance(_history(), recurring, as_of=AS_OF)
    low, high = f.confidence_interval.low, f.confidence_interval.high
    assert low <= f.predicted_balance <= high
    assert f.predicted_balance - low == pytest.approx(high - f.predicted_balance)


def test_forecast_without_history():
    f = forecast_end_of_month_balance([], as_of=AS_OF)
    assert f.predicted_balance == 0
    assert f.confidence_interval == ConfidenceInterval(0, 0)
    assert f.assumptions == ("No transaction history available",)


def test_forecast_on_last_day_returns_current_balance():
    f = forecast_end_of_month_balance(_history(), as_of=date(2024, 1, 31))
    assert f.predicted_balance == 2000
    assert f.confidence_interval == ConfidenceInterval(2000, 2000)
    assert f.assumptions == ("Already at end of month",)


def _forecast(predicted: float, low: float, high: float) -> BalanceForecast:
    return BalanceForecast(
        date=date(2024, 1, 31),
        predicted_balance=predicted,
        confidence_interval=ConfidenceInterval(low, high),
        assumptions=(),
    )


def test_warnings():
    negative, low, risky, fine = generate_warnings(
        [
            _forecast(-10, -500, 480),
            _forecast(500, 0, 1000),
            _forecast(5000, -100, 10100),
            _forecast(5000, 4000, 6000),
        ],
        low_balance=1000,
    ) + [None]
    assert (negative.type, negative.severity) == ("negative_balance", "critical")
    assert "go negative" in negative.message
    assert (low.type, low.severity) == ("low_balance", "warning")
    assert (risky.type, risky.severity) == ("negative_balance", "warning")
    assert "worst case: ₹-100.00" in risky.message
    assert fine is None


def test_cash_flow_projection_horizons():
    out = project_cash_flow(_history(), 60, [RENT], as_of=AS_OF)
    assert [p.horizon_days for p in out] == [30, 60]
    first = out[0]
    assert first.period == "30 days"
    assert first.expected_inflow == pytest.approx(9000)
    assert first.expected_outflow == pytest.approx(3000 + 1000)
    assert first.net_flow == pytest.approx(5000)
    assert first.recurring_payments == (RENT,)

    assert [p.horizon_days for p in project_cash_flow(_history(), 45, [], as_of=AS_OF)] == [30]
    assert project_cash_flow(_history(), 0, [], as_of=AS_OF) == []
    assert project_cash_flow([], 90, as_of=AS_OF) == []
