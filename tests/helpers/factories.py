"""Builders for test transactions and statement grids."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

from statement_insights.ingest.normalize import detect_channel, transaction_id
from statement_insights.models import Transaction, TransactionType

IMPORTED_AT = datetime(2024, 2, 1, 9, 30, tzinfo=UTC)


def make_tx(
    day: date,
    narrative: str,
    *,
    debit: float | None = None,
    credit: float | None = None,
    balance: float = 10_000.0,
    reference: str | None = None,
    **extra: object,
) -> Transaction:
    """Build a canonical transaction; exactly one of debit/credit must be given."""

    assert (debit is None) != (credit is None)
    amount = debit if debit is not None else credit
    assert amount is not None
    ref = reference if reference is not None else f"REF{day:%Y%m%d}{int(amount * 100)}"
    return Transaction(
        id=transaction_id(day, ref, amount),
        date=day,
        narrative=narrative,
        reference=ref,
        debit=debit,
        credit=credit,
        balance=balance,
        amount=amount,
        type=TransactionType.DEBIT if debit is not None else TransactionType.CREDIT,
        channel=detect_channel(narrative),
        source_file="statement.xlsx",
        imported_at=IMPORTED_AT,
        **extra,  # type: ignore[arg-type]
    )


def monthly_debits(
    narrative: str, amount: float, *, start: date, count: int, step_days: int = 30
) -> list[Transaction]:
    return [
        make_tx(start + timedelta(days=i * step_days), narrative, debit=amount)
        for i in range(count)
    ]


HEADER = ["Txn Date", "Value Date", "Description", "Ref No./Cheque No.", "Debit", "Credit", "Balance"]


def sbi_grid(rows: list[list[object]] | None = None) -> list[list[object]]:
    """An SBI-style export: account details above the header, data below."""

    preamble: list[list[object]] = [
        ["Account Name", ":", "Mr. Test Holder"],
        ["Account Number", ":", "00000012345678901"],
        ["Branch", ":", "MAIN BRANCH"],
        [],
        ["Statement From", ":", "01-01-2024 to 31-01-2024"],
        [],
    ]
    body = rows if rows is not None else [
        ["1 Jan 2024", "1 Jan 2024", "UPI/CR/123456/Acme/okaxis", "123456", "", "500.00", "1,500.00"],
        ["2 Jan 2024", "2 Jan 2024", "UPI/DR/654321/Acme/okaxis", "654321", "200.00", "", "1,300.00"],
    ]
    return [*preamble, list(HEADER), *body]
