import pytest

from statement_insights.errors import ColumnMappingError
from statement_insights.ingest.columns import map_columns, resolve_columns
from statement_insights.ingest.header import find_header_row, normalize_cell

from tests.helpers.factories import HEADER, sbi_grid


def test_normalize_cell_collapses_whitespace_and_case():
    assert normalize_cell("  Txn\n   DATE ") == "txn date"
    assert normalize_cell(None) == ""
    assert normalize_cell(42) == "42"


def test_header_found_below_account_details():
    grid = sbi_grid()
    assert find_header_row(grid) == 6


def test_header_accepts_dr_cr_abbreviations():
    grid = [
        ["Date", "Particulars", "Chq No", "Dr", "Cr", "Balance"],
        ["01/02/2024", "ATM WDL", "", "100", "", "900"],
    ]
    assert find_header_row(grid) == 0


def test_header_ignores_short_rows_and_respects_scan_window():
    grid = [["Date", "Details", "Balance"]] + [["x", "y", "z", "w"]] * 5 + [HEADER]
    assert find_header_row(grid) == 6
    assert find_header_row(grid, max_rows=6) is None


def test_header_missing_returns_none():
    assert find_header_row([["Name", "Amount", "Notes", "Total"]]) is None
    assert find_header_row([]) is None


def test_map_columns_resolves_aliases():
    mapping = map_columns(HEADER)
    assert mapping.date.index == 0  # "Txn Date" wins over "Value Date"
    assert mapping.narrative.header == "Description"
    assert mapping.reference.index == 3
    assert (mapping.debit.index, mapping.credit.index, mapping.balance.index) == (4, 5, 6)


def test_reference_falls_back_to_substring_match():
    headers = ["Date", "Narration", "Cheque/Ref Number", "Withdrawal", "Deposit", "Closing Balance"]
    mapping = map_columns(headers)
    assert mapping.reference.header == "Cheque/Ref Number"
    assert mapping.debit.header == "Withdrawal"
    assert mapping.balance.header == "Closing Balance"


def test_map_columns_lists_every_missing_field_in_order():
    with pytest.raises(ColumnMappingError) as ei:
        map_columns(["Date", "Details", "Amount", "Balance"], header_row=7)
    err = ei.value
    assert err.missing == ("reference", "debit", "credit")
    assert err.header_row == 7
    assert str(err).startswith("Could not detect required columns: reference, debit, credit")


def test_resolve_columns_is_partial():
    found = resolve_columns(["Date", None, "Balance"])
    assert set(found) == {"date", "balance"}


def test_cell_lookup_tolerates_short_rows():
    mapping = map_columns(HEADER)
    assert mapping.cell(["1 Jan 2024"], "balance") is None
    assert mapping.cell(["1 Jan 2024"], "date") == "1 Jan 2024"
