"""Header locator.

Bank exports put account details (holder name, branch, period) above the
transaction table. The locator scans a bounded prefix of the grid for the
first row that carries date, narrative, debit, credit and balance headings.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from ..logging_setup import get_logger
from .decoder import Cell

DEFAULT_SCAN_ROWS = 40
_MIN_HEADER_CELLS = 4

_WS_RE = re.compile(r"\s+")

_log = get_logger("statement_insights.ingest.header")


def normalize_cell(cell: Cell) -> str:
    """Lowercase, trim and collapse internal whitespace of a cell's text."""

    if cell is None:
        return ""
    return _WS_RE.sub(" ", str(cell)).strip().lower()


def _looks_like_header(cells: Sequence[str]) -> bool:
    has_date = any("date" in c for c in cells)
    has_narrative = any(
        "details" in c or "particulars" in c or "description" in c for c in cells
    )
    has_debit = any("debit" in c or c == "dr" for c in cells)
    has_credit = any("credit" in c or c == "cr" for c in cells)
    has_balance = any("balance" in c for c in cells)
    return has_date and has_narrative and has_debit and has_credit and has_balance


def find_header_row(
    grid: Sequence[Sequence[Cell]], *, max_rows: int = DEFAULT_SCAN_ROWS
) -> int | None:
    """Return the 0-based index of the header row, or ``None``.

    Rows with fewer than four cells are skipped. The reference column is not
    required here; the column mapper resolves it later.
    """

    for i, row in enumerate(grid[:max_rows]):
        if row is None or len(row) < _MIN_HEADER_CELLS:
            continue
        if _looks_like_header([normalize_cell(c) for c in row]):
            _log.debug("header row found at index %d", i)
            return i
    _log.debug("no header row in first %d rows", min(len(grid), max_rows))
    return None


__all__ = ["DEFAULT_SCAN_ROWS", "normalize_cell", "find_header_row"]
