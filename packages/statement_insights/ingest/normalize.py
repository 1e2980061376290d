"""Row normalizer: one grid row to one canonical :class:`Transaction`.

Cell parsers are lenient and return ``None`` instead of raising; the row-level
function decides whether a ``None`` is a silent skip or a warning.
"""

from __future__ import annotations

import hashlib
import json
import math
import re
from collections.abc import Sequence
from datetime import date, datetime, timedelta

from ..logging_setup import get_logger
from ..models import ParseDiagnostic, PaymentChannel, Transaction, TransactionType
from .columns import ColumnMapping
from .decoder import Cell

_log = get_logger("statement_insights.ingest.normalize")

# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

# Serial day 60 is the non-existent 1900-02-29, so modern serials count from
# 1899-12-30 rather than 1900-01-01.
_SERIAL_EPOCH = date(1899, 12, 30)

_MONTHS = {
    name: i
    for i, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}

_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_DAY_MONTH_NAME_RE = re.compile(r"(\d{1,2})[\s\-]([a-z]{3})[\s\-](\d{4})", re.IGNORECASE)
_DMY_RE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")


def _from_serial(serial: float) -> date | None:
    if math.isnan(serial) or math.isinf(serial) or serial < 1:
        return None
    try:
        return _SERIAL_EPOCH + timedelta(days=int(serial))
    except OverflowError:
        return None


def parse_date(value: Cell) -> date | None:
    """Parse a statement date cell.

    Accepted forms, tried in order: native ``date``/``datetime`` cells,
    spreadsheet serial numbers, ISO ``YYYY-MM-DD``, ``DD MMM YYYY`` (space or
    dash separated, month name case-insensitive) and ``DD/MM/YYYY``.
    Impossible calendar dates (``31 Feb``) yield ``None``.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, int | float):
        return _from_serial(float(value))

    s = str(value).strip()
    if not s:
        return None

    if _ISO_RE.match(s):
        try:
            return date.fromisoformat(s[:10])
        except ValueError:
            pass

    m = _DAY_MONTH_NAME_RE.search(s)
    if m:
        month = _MONTHS.get(m.group(2).lower())
        if month is not None:
            try:
                return date(int(m.group(3)), month, int(m.group(1)))
            except ValueError:
                return None

    m = _DMY_RE.search(s)
    if m:
        try:
            return date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
        except ValueError:
            return None

    return None


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


def parse_amount(value: Cell) -> float | None:
    """Parse an amount cell; blank, ``-`` and non-numeric text give ``None``.

    Thousands separators are stripped. A blank cell is never read as zero.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        f = float(value)
        return None if math.isnan(f) or math.isinf(f) else f
    if isinstance(value, date):
        return None

    s = str(value).replace(",", "").strip()
    if s == "" or s == "-":
        return None
    try:
        f = float(s)
    except ValueError:
        return None
    return None if math.isnan(f) or math.isinf(f) else f


# ---------------------------------------------------------------------------
# Payment channel
# ---------------------------------------------------------------------------

# First family with a matching pattern wins.
_CHANNEL_RULES: tuple[tuple[PaymentChannel, tuple[re.Pattern[str], ...]], ...] = (
    (PaymentChannel.INSTANT_TRANSFER, (re.compile(r"UPI"), re.compile(r"UNIFIED PAYMENT"))),
    (PaymentChannel.WIRE, (re.compile(r"NEFT"), re.compile(r"NATIONAL ELECTRONIC"))),
    (
        PaymentChannel.IMMEDIATE_TRANSFER,
        (re.compile(r"IMPS"), re.compile(r"IMMEDIATE PAYMENT")),
    ),
    (
        PaymentChannel.ATM,
        (re.compile(r"ATM"), re.compile(r"CASH WITHDRAWAL"), re.compile(r"\bCWD\b")),
    ),
    (
        PaymentChannel.POINT_OF_SALE,
        (re.compile(r"POS"), re.compile(r"POINT OF SALE"), re.compile(r"CARD PURCHASE")),
    ),
    (
        PaymentChannel.CHEQUE,
        (
            re.compile(r"CHEQUE"),
            re.compile(r"\bCHQ\b"),
            re.compile(r"CHECK"),
            re.compile(r"CLEARING"),
            re.compile(r"\bCLG\b"),
        ),
    ),
)


def detect_channel(narrative: str | None) -> PaymentChannel:
    if not narrative:
        return PaymentChannel.OTHER
    upper = narrative.upper()
    for channel, patterns in _CHANNEL_RULES:
        if any(p.search(upper) for p in patterns):
            return channel
    return PaymentChannel.OTHER


# ---------------------------------------------------------------------------
# Identity and row-level helpers
# ---------------------------------------------------------------------------

FOOTER_MARKERS = ("statement summary", "brought forward", "please do not share")


def transaction_id(d: date, reference: str, amount: float) -> str:
    """Stable SHA-256 over ``(date, reference, amount)``.

    Amount is rendered with two decimals so ``500`` and ``500.0`` agree.
    """

    payload = {"date": d.isoformat(), "reference": reference.strip(), "amount": f"{amount:.2f}"}
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def cell_text(value: Cell) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        # Numeric reference cells come back as floats from the decoder.
        return str(int(value))
    return str(value).strip()


def is_blank_row(row: Sequence[Cell]) -> bool:
    return all(cell_text(c) == "" for c in row)


def is_footer_row(row: Sequence[Cell]) -> bool:
    """True when the first non-blank cell carries a summary/footer marker."""

    for c in row:
        text = cell_text(c)
        if text:
            lowered = text.lower()
            return any(marker in lowered for marker in FOOTER_MARKERS)
    return False


def normalize_row(
    row: Sequence[Cell],
    mapping: ColumnMapping,
    *,
    row_number: int,
    source_file: str = "",
    imported_at: datetime | None = None,
) -> Transaction | ParseDiagnostic | None:
    """Convert one data row.

    Returns
    -------
    Transaction
        For a well-formed row.
    ParseDiagnostic
        A ``warning`` when the date or balance cannot be parsed, or when both
        debit and credit carry non-zero amounts. The row is skipped.
    None
        For rows that are skipped silently: blank rows, footer/summary rows,
        and rows without any debit or credit amount.
    """

    if is_blank_row(row) or is_footer_row(row):
        return None

    raw_date = mapping.cell(row, "date")
    d = parse_date(raw_date)
    if d is None:
        return ParseDiagnostic(
            row=row_number,
            message=f"Invalid date: {cell_text(raw_date)}",
            severity="warning",
            column=mapping.date.header,
        )

    debit = parse_amount(mapping.cell(row, "debit"))
    credit = parse_amount(mapping.cell(row, "credit"))
    raw_balance = mapping.cell(row, "balance")
    balance = parse_amount(raw_balance)

    if balance is None:
        return ParseDiagnostic(
            row=row_number,
            message=f"Invalid balance: {cell_text(raw_balance)}",
            severity="warning",
            column=mapping.balance.header,
        )

    # Some exports write 0 on the unused side instead of leaving it blank.
    if debit is not None and credit is not None:
        if debit == 0:
            debit = None
        if credit == 0:
            credit = None
        if debit is not None and credit is not None:
            return ParseDiagnostic(
                row=row_number,
                message=f"Both debit and credit present: {debit} / {credit}",
                severity="warning",
            )

    narrative = cell_text(mapping.cell(row, "narrative"))
    reference = cell_text(mapping.cell(row, "reference"))

    if debit is not None:
        debit = abs(debit)
        amount, tx_type = debit, TransactionType.DEBIT
    elif credit is not None:
        credit = abs(credit)
        amount, tx_type = credit, TransactionType.CREDIT
    else:
        return None

    return Transaction(
        id=transaction_id(d, reference, amount),
        date=d,
        narrative=narrative,
        reference=reference,
        debit=debit,
        credit=credit,
        balance=balance,
        amount=amount,
        type=tx_type,
        channel=detect_channel(narrative),
        source_file=source_file,
        imported_at=imported_at,
    )


__all__ = [
    "FOOTER_MARKERS",
    "parse_date",
    "parse_amount",
    "detect_channel",
    "transaction_id",
    "cell_text",
    "is_blank_row",
    "is_footer_row",
    "normalize_row",
]
