"""Exception taxonomy for ``statement_insights``.

Fatal ingestion problems are raised as :class:`StatementError` subclasses by
the individual ingestion stages. :func:`statement_insights.ingest.statement.parse_statement`
is the single place that turns them into a user-facing diagnostic; callers of
the lower-level helpers see the exceptions directly.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal

type FormatErrorCode = Literal[
    "EMPTY_FILE",
    "NO_PASSWORD",
    "CORRUPTED_FILE",
]


class StatementError(Exception):
    """Base class for fatal statement ingestion errors."""


class FormatValidationError(StatementError):
    """The byte buffer is not a readable spreadsheet container."""

    def __init__(self, message: str, *, code: FormatErrorCode) -> None:
        super().__init__(message)
        self.code: FormatErrorCode = code


class DecodeError(StatementError):
    """The spreadsheet decoder could not produce a grid (bad password, corrupt data)."""

    def __init__(self, message: str, *, wrong_password: bool = False) -> None:
        super().__init__(message)
        self.wrong_password = wrong_password


class HeaderNotFoundError(StatementError):
    """No row in the scanned prefix looks like a transaction header."""


class ColumnMappingError(StatementError):
    """One or more canonical columns could not be resolved from the header row."""

    def __init__(self, missing: Sequence[str], *, header_row: int) -> None:
        self.missing: tuple[str, ...] = tuple(missing)
        self.header_row = header_row
        super().__init__(
            "Could not detect required columns: "
            + ", ".join(self.missing)
            + ". Expected: Date, Details, Ref No, Debit, Credit, Balance"
        )


class TagValidationError(ValueError):
    """Tag name/keyword/parent constraints were violated."""


class BudgetValidationError(ValueError):
    """A budget limit or period was rejected."""


class StoreError(RuntimeError):
    """The persistent store could not be opened or migrated."""


__all__ = [
    "FormatErrorCode",
    "StatementError",
    "FormatValidationError",
    "DecodeError",
    "HeaderNotFoundError",
    "ColumnMappingError",
    "TagValidationError",
    "BudgetValidationError",
    "StoreError",
]
