"""Statement ingestion pipeline.

``parse_statement`` runs the stages in order:

1. format check on the raw bytes (encrypted vs. plain container)
2. decode to a grid of typed cells
3. locate the header row
4. map header text to canonical columns (validated complete up front)
5. normalize every data row
6. deduplicate within the file

Stages raise :class:`~statement_insights.errors.StatementError`; this module
is the one place that turns such a failure into a single error diagnostic on
an empty :class:`~statement_insights.models.ParseResult`.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..duplicates import deduplicate_transactions, get_date_range
from ..errors import ColumnMappingError, DecodeError, HeaderNotFoundError, StatementError
from ..logging_setup import get_logger
from ..models import ParseDiagnostic, ParseResult, StatementMetadata, Transaction
from ..settings import Settings, load_settings
from .columns import map_columns
from .decoder import Decoder, Grid, decode_workbook
from .format_check import check_decryptable
from .header import find_header_row
from .normalize import is_blank_row, normalize_row

_log = get_logger("statement_insights.ingest.statement")

NO_DATA_MESSAGE = "No data found in the sheet"
NO_HEADER_MESSAGE = (
    "Could not find transaction header row. "
    "Expected columns: Date, Details, Debit, Credit, Balance"
)
NO_ROWS_MESSAGE = "No transaction data found after header row"


def _decode(decoder: Decoder, buffer: bytes, password: str | None) -> Grid:
    try:
        return decoder(buffer, password)
    except StatementError:
        raise
    except Exception as e:
        # Third-party decoders raise their own types; normalize them here.
        raise DecodeError(f"Failed to read spreadsheet: {e}") from e


def _extract(
    grid: Grid,
    *,
    file_name: str,
    imported_at: datetime,
    scan_rows: int,
) -> tuple[list[Transaction], list[ParseDiagnostic]]:
    if not grid or all(is_blank_row(r) for r in grid):
        raise StatementError(NO_DATA_MESSAGE)

    header_idx = find_header_row(grid, max_rows=scan_rows)
    if header_idx is None:
        raise HeaderNotFoundError(NO_HEADER_MESSAGE)

    data_rows = grid[header_idx + 1 :]
    if not data_rows:
        raise StatementError(NO_ROWS_MESSAGE)

    # Spreadsheet rows are 1-based; the header itself is row header_idx + 1.
    mapping = map_columns(grid[header_idx], header_row=header_idx + 1)

    transactions: list[Transaction] = []
    diagnostics: list[ParseDiagnostic] = []
    for offset, row in enumerate(data_rows):
        outcome = normalize_row(
            row,
            mapping,
            row_number=header_idx + offset + 2,
            source_file=file_name,
            imported_at=imported_at,
        )
        if outcome is None:
            continue
        if isinstance(outcome, ParseDiagnostic):
            _log.debug("row %d skipped: %s", outcome.row, outcome.message)
            diagnostics.append(outcome)
            continue
        transactions.append(outcome)

    _log.info(
        "extracted %d transactions from %d data rows (%d warnings)",
        len(transactions),
        len(data_rows),
        len(diagnostics),
    )
    return transactions, diagnostics


def _failure(
    error: StatementError, *, file_name: str, bank_name: str, parsed_at: datetime
) -> ParseResult:
    row = error.header_row if isinstance(error, ColumnMappingError) else 0
    diag = ParseDiagnostic(row=row, message=str(error), severity="error")
    return ParseResult(
        success=False,
        transactions=(),
        date_range=None,
        diagnostics=(diag,),
        metadata=StatementMetadata(
            file_name=file_name,
            bank_name=bank_name,
            statement_period=None,
            transaction_count=0,
            parsed_at=parsed_at,
        ),
    )


def parse_statement(
    buffer: bytes,
    *,
    file_name: str,
    password: str | None = None,
    decoder: Decoder | None = None,
    check_format: bool | None = None,
    settings: Settings | None = None,
    imported_at: datetime | None = None,
) -> ParseResult:
    """Parse one statement export into canonical transactions.

    Parameters
    ----------
    buffer:
        Raw file bytes.
    file_name:
        Recorded as ``source_file`` on every transaction and in metadata.
    password:
        Optional password for an encrypted workbook.
    decoder:
        Callable turning ``(buffer, password)`` into a grid. Defaults to
        :func:`~statement_insights.ingest.decoder.decode_workbook`.
    check_format:
        Run the magic-byte check before decoding. Defaults to ``True`` for
        the built-in decoder and ``False`` for a custom one, which owns its
        input format.
    settings:
        Header scan window and bank label; defaults to :func:`load_settings`.
    imported_at:
        Timestamp stamped on transactions and metadata; defaults to now (UTC).

    Returns
    -------
    ParseResult
        Never raises for bad input. Fatal problems produce zero transactions
        and exactly one error diagnostic. ``success`` is true when no
        error-severity diagnostic was emitted.
    """

    cfg = settings or load_settings()
    stamp = imported_at or datetime.now(UTC)
    decode = decoder or decode_workbook
    run_check = (decoder is None) if check_format is None else check_format

    try:
        if run_check:
            check_decryptable(buffer, password)
        grid = _decode(decode, buffer, password)
        raw, diagnostics = _extract(
            grid,
            file_name=file_name,
            imported_at=stamp,
            scan_rows=cfg.header_scan_rows,
        )
    except StatementError as e:
        _log.warning("failed to parse %s: %s", file_name, e)
        return _failure(e, file_name=file_name, bank_name=cfg.bank_label, parsed_at=stamp)

    transactions = deduplicate_transactions(raw)
    if len(transactions) != len(raw):
        _log.info("dropped %d in-file duplicates", len(raw) - len(transactions))

    date_range = get_date_range(transactions)
    return ParseResult(
        success=not any(d.severity == "error" for d in diagnostics),
        transactions=tuple(transactions),
        date_range=date_range,
        diagnostics=tuple(diagnostics),
        metadata=StatementMetadata(
            file_name=file_name,
            bank_name=cfg.bank_label,
            statement_period=date_range,
            transaction_count=len(transactions),
            parsed_at=stamp,
        ),
    )


def parse_statement_file(
    path: str | Path,
    *,
    password: str | None = None,
    decoder: Decoder | None = None,
    settings: Settings | None = None,
    imported_at: datetime | None = None,
) -> ParseResult:
    """Read ``path`` and delegate to :func:`parse_statement`.

    Filesystem errors (missing file, permissions) propagate to the caller.
    """

    p = Path(path)
    return parse_statement(
        p.read_bytes(),
        file_name=p.name,
        password=password,
        decoder=decoder,
        settings=settings,
        imported_at=imported_at,
    )


__all__ = [
    "NO_DATA_MESSAGE",
    "NO_HEADER_MESSAGE",
    "NO_ROWS_MESSAGE",
    "parse_statement",
    "parse_statement_file",
]
