from datetime import date, timedelta

import pytest

from statement_insights.analytics.anomalies import (
    detect_anomalies,
    detect_duplicate_groups,
    detect_duplicates,
    detect_high_amount,
    detect_spending_spikes,
    determine_severity,
)
from statement_insights.models import AnomalyType, Severity

from tests.helpers.factories import make_tx

JAN1 = date(2024, 1, 1)


def _acme(day_offset: int, amount: float, ref: str | None = None):
    return make_tx(JAN1 + timedelta(days=day_offset), "UPI/DR/1/ACME/ok", debit=amount, reference=ref)


def test_high_amount_flags_member_above_three_times_mean():
    txs = [_acme(i, 100) for i in range(4)] + [_acme(10, 1000)]
    (a,) = detect_high_amount(txs)
    assert a.transaction.amount == 1000
    assert a.type is AnomalyType.HIGH_AMOUNT
    assert a.severity is Severity.MEDIUM
    assert a.description == (
        "Transaction amount (₹1000.00) is 4x higher than average for Acme (₹280.00)"
    )


def test_high_amount_escalates_to_high_severity():
    txs = [_acme(i, 100) for i in range(9)] + [_acme(20, 5000)]
    (a,) = detect_high_amount(txs)
    assert a.severity is Severity.HIGH


def test_high_amount_needs_a_group():
    assert detect_high_amount([_acme(0, 1_000_000)]) == []


def test_high_amount_needs_a_member_above_the_ratio():
    assert detect_high_amount([_acme(i, 100) for i in range(4)] + [_acme(10, 300)]) == []
    # 900 is exactly three times the group mean of 300.
    assert detect_high_amount([_acme(i, 100) for i in range(3)] + [_acme(10, 900)]) == []


def test_duplicates_flag_every_member():
    a = _acme(0, 250, ref="R1")
    b = _acme(0, 250, ref="R2")
    c = _acme(0, 251, ref="R3")
    assert detect_duplicate_groups([a, b, c]) == [[a, b]]

    found = detect_duplicates([a, b, c])
    assert [x.transaction for x in found] == [a, b]
    assert all(x.severity is Severity.MEDIUM for x in found)
    assert found[0].description == (
        "Potential duplicate transaction: 2 transactions with same amount, merchant, and date"
    )


@pytest.mark.parametrize(
    "moved",
    [
        make_tx(JAN1, "UPI/DR/1/GLOBEX/ok", debit=250, reference="R3"),
        make_tx(JAN1 + timedelta(days=1), "UPI/DR/1/ACME/ok", debit=250, reference="R3"),
    ],
    ids=["other-merchant", "other-day"],
)
def test_changing_merchant_or_day_leaves_the_duplicate_group(moved):
    a = _acme(0, 250, ref="R1")
    b = _acme(0, 250, ref="R2")
    c = _acme(0, 250, ref="R3")
    assert detect_duplicate_groups([a, b, c]) == [[a, b, c]]
    assert detect_duplicate_groups([a, b, moved]) == [[a, b]]
    assert moved not in [x.transaction for x in detect_duplicates([a, b, moved])]


def test_duplicates_ignore_credits():
    a = make_tx(JAN1, "UPI/CR/1/ACME/ok", credit=250, reference="R1")
    b = make_tx(JAN1, "UPI/CR/1/ACME/ok", credit=250, reference="R2")
    assert detect_duplicates([a, b]) == []


def test_spending_spike_flags_every_transaction_that_day():
    quiet = [make_tx(JAN1 + timedelta(days=i), f"shop {i}", debit=100) for i in range(3)]
    busy_day = JAN1 + timedelta(days=3)
    busy = [
        make_tx(busy_day, "UPI/DR/1/TV STORE/ok", debit=900),
        make_tx(busy_day, "UPI/DR/2/CAFE/ok", debit=100),
    ]
    found = detect_spending_spikes(quiet + busy)
    assert [a.transaction for a in found] == busy
    assert {a.severity for a in found} == {Severity.MEDIUM}
    assert found[0].description == "Daily spending (₹1000.00) is 3x higher than average (₹325.00)"


def test_detect_anomalies_concatenates_passes_and_allows_overlap():
    base = [_acme(i, 100, ref=f"R{i}") for i in range(5)]
    spike_a = _acme(10, 2000, ref="X1")
    spike_b = _acme(10, 2000, ref="X2")
    found = detect_anomalies(base + [spike_a, spike_b])

    kinds = [a.type for a in found]
    assert kinds == sorted(kinds, key=[AnomalyType.HIGH_AMOUNT, AnomalyType.DUPLICATE, AnomalyType.SPENDING_SPIKE].index)
    flagged_spike_a = {a.type for a in found if a.transaction is spike_a}
    assert flagged_spike_a == {AnomalyType.HIGH_AMOUNT, AnomalyType.DUPLICATE, AnomalyType.SPENDING_SPIKE}
    assert AnomalyType.UNUSUAL_MERCHANT not in kinds


def test_degenerate_inputs_never_raise():
    assert detect_anomalies([]) == []
    credits_only = [make_tx(JAN1, "salary", credit=1000)]
    assert detect_anomalies(credits_only) == []


def test_determine_severity():
    assert determine_severity(10, 0) is Severity.HIGH
    assert determine_severity(200, 100) is Severity.LOW
    assert determine_severity(400, 100) is Severity.MEDIUM
    assert determine_severity(600, 100) is Severity.HIGH
