from dataclasses import replace
from datetime import date

from statement_insights.duplicates import (
    are_duplicates,
    composite_key,
    deduplicate_transactions,
    detect_overlapping_ranges,
    find_duplicate_groups,
    get_date_range,
    merge_statements,
    sort_transactions_by_date,
)
from statement_insights.models import DateRange

from tests.helpers.factories import make_tx


def test_composite_key_is_day_and_reference():
    tx = make_tx(date(2024, 1, 5), "ATM", debit=100, reference="  R42 ")
    assert composite_key(tx) == "20240105-R42"


def test_blank_references_on_one_day_collapse():
    a = make_tx(date(2024, 1, 5), "ATM", debit=100, reference="")
    b = make_tx(date(2024, 1, 5), "POS", debit=250, reference="  ")
    c = make_tx(date(2024, 1, 6), "ATM", debit=100, reference="")
    assert composite_key(a) == "20240105-"
    assert are_duplicates(a, b)
    assert deduplicate_transactions([a, b, c]) == [a, c]


def test_same_reference_different_day_is_not_duplicate():
    a = make_tx(date(2024, 1, 5), "ATM", debit=100, reference="R1")
    b = make_tx(date(2024, 1, 6), "ATM", debit=100, reference="R1")
    assert not are_duplicates(a, b)


def test_dedupe_keeps_first_seen_and_is_idempotent():
    a = make_tx(date(2024, 1, 5), "first", debit=100, reference="R1")
    b = replace(a, narrative="second copy")
    c = make_tx(date(2024, 1, 6), "other", credit=50, reference="R2")
    once = deduplicate_transactions([a, b, c])
    assert once == [a, c]
    assert deduplicate_transactions(once) == once
    assert deduplicate_transactions([]) == []


def test_merge_reports_counts_and_overlap():
    existing = [
        make_tx(date(2024, 1, 1), "a", debit=10, reference="R1"),
        make_tx(date(2024, 1, 10), "b", debit=20, reference="R2"),
    ]
    incoming = [
        make_tx(date(2024, 1, 10), "b again", debit=20, reference="R2"),
        make_tx(date(2024, 1, 15), "c", debit=30, reference="R3"),
    ]
    result = merge_statements(existing, incoming)
    assert result.new_transactions == 1
    assert result.duplicates_removed == 1
    assert [t.reference for t in result.transactions] == ["R1", "R2", "R3"]
    assert result.transactions[1].narrative == "b"  # existing record wins
    assert result.overlapping_periods == (DateRange(date(2024, 1, 10), date(2024, 1, 10)),)


def test_merge_same_statement_twice_adds_nothing():
    txs = [make_tx(date(2024, 1, d), "x", debit=d, reference=f"R{d}") for d in (1, 2, 3)]
    first = merge_statements([], txs)
    second = merge_statements(first.transactions, txs)
    assert second.new_transactions == 0
    assert second.duplicates_removed == 3
    assert second.transactions == first.transactions


def test_merge_keeps_user_edits_on_existing_records():
    tx = make_tx(date(2024, 1, 1), "x", debit=5, reference="R1")
    edited = replace(tx, note="lunch", is_reviewed=True)
    result = merge_statements([edited], [tx])
    assert result.transactions == (edited,)


def test_disjoint_ranges_do_not_overlap():
    a = [make_tx(date(2024, 1, 1), "x", debit=1)]
    b = [make_tx(date(2024, 2, 1), "y", debit=1)]
    assert detect_overlapping_ranges(a, b) == []
    assert detect_overlapping_ranges([], b) == []


def test_date_range_and_sorting():
    txs = [
        make_tx(date(2024, 1, 3), "b", debit=1, reference="B"),
        make_tx(date(2024, 1, 1), "a", debit=1, reference="A"),
        make_tx(date(2024, 1, 3), "c", debit=1, reference="C"),
    ]
    assert get_date_range(txs) == DateRange(date(2024, 1, 1), date(2024, 1, 3))
    assert get_date_range([]) is None
    assert [t.reference for t in sort_transactions_by_date(txs)] == ["B", "C", "A"]


def test_find_duplicate_groups():
    a = make_tx(date(2024, 1, 1), "x", debit=1, reference="R")
    b = replace(a, narrative="y")
    c = make_tx(date(2024, 1, 2), "z", debit=1, reference="R")
    assert find_duplicate_groups([a, b, c]) == [[a, b]]
