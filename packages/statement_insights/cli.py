"""CLI for the ``statement_insights`` package.

Command handlers (``cmd_*``) are plain functions returning a process exit
code so they can be called directly from tests or other tools. The Typer app
wraps them; its root callback loads a local ``.env`` with ``python-dotenv``
(without overriding already-set variables) and configures logging.

Errors are printed to stderr as ``Error: ...`` and produce exit code 1.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table
from typer.models import OptionInfo

from .analytics.anomalies import detect_anomalies
from .analytics.health import calculate_health_score
from .analytics.income import analyze_income
from .analytics.recurring import detect_recurring_payments
from .analytics.spending import spending_by_tag, spending_percentages, top_merchants
from .budgets import create_budget, get_budget_statuses, suggest_budgets, update_budget
from .categorization import recategorize_transactions
from .duplicates import merge_statements
from .errors import BudgetValidationError, StoreError
from .forecast import forecast_end_of_month_balance, generate_warnings, project_cash_flow
from .ingest.statement import parse_statement
from .logging_setup import configure_logging, get_logger
from .models import Budget, ParseResult, Tag, Transaction, UploadedFileRecord
from .settings import load_settings
from .store import LedgerStore, compute_checksum
from .tags import merge_with_default_tags

_log = get_logger("statement_insights.cli")

console = Console()


def _err(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)


# ---- Rendering ---------------------------------------------------------------


def _fmt_amount(value: float | None) -> str:
    return "" if value is None else f"{value:,.2f}"


def _render_transactions(transactions: Sequence[Transaction], *, title: str) -> None:
    table = Table(title=title)
    table.add_column("Date")
    table.add_column("Details", overflow="fold")
    table.add_column("Ref")
    table.add_column("Debit", justify="right")
    table.add_column("Credit", justify="right")
    table.add_column("Balance", justify="right")
    table.add_column("Channel")
    for t in transactions:
        table.add_row(
            t.date.isoformat(),
            t.narrative,
            t.reference,
            _fmt_amount(t.debit),
            _fmt_amount(t.credit),
            _fmt_amount(t.balance),
            t.channel.value,
        )
    console.print(table)


def _render_diagnostics(result: ParseResult) -> None:
    for d in result.diagnostics:
        where = f"row {d.row}" + (f", column {d.column}" if d.column else "")
        style = "red" if d.severity == "error" else "yellow"
        console.print(f"[{style}]{d.severity}[/{style}] ({where}): {d.message}")


def _read_statement(path: str, password: str | None) -> tuple[bytes, ParseResult] | None:
    try:
        buffer = Path(path).read_bytes()
    except FileNotFoundError:
        _err(f"File not found: {path}")
        return None
    except PermissionError:
        _err(f"Permission denied: {path}")
        return None
    result = parse_statement(buffer, file_name=Path(path).name, password=password)
    return buffer, result


def _open_store(database_url: str | None) -> LedgerStore | None:
    try:
        return LedgerStore.open(database_url)
    except (StoreError, ValueError) as e:
        _err(str(e))
        return None


# ---- Command handlers --------------------------------------------------------


def cmd_parse(path: str, *, password: str | None = None) -> int:
    """Parse a statement and print its transactions and diagnostics."""

    loaded = _read_statement(path, password)
    if loaded is None:
        return 1
    _buffer, result = loaded
    if result.transactions:
        _render_transactions(result.transactions, title=result.metadata.file_name)
    _render_diagnostics(result)
    if not result.success:
        return 1
    period = result.date_range
    span = f" ({period.start} to {period.end})" if period else ""
    console.print(
        f"[green]{result.metadata.transaction_count} transactions[/green]"
        f" from {result.metadata.bank_name}{span}"
    )
    return 0


def cmd_import(path: str, *, password: str | None = None, database_url: str | None = None) -> int:
    """Parse a statement, merge it into the store and re-categorize.

    Existing records win on composite-key collisions so user edits survive a
    re-upload. Tags come from the store (defaults are used when none exist).
    """

    loaded = _read_statement(path, password)
    if loaded is None:
        return 1
    buffer, result = loaded
    if not result.success:
        _render_diagnostics(result)
        return 1

    store = _open_store(database_url)
    if store is None:
        return 1
    checksum = compute_checksum(buffer)
    with store:
        previous = store.find_upload_by_checksum(checksum)
        if previous is not None:
            _log.info(
                "%s has the same content as %s (uploaded %s)",
                result.metadata.file_name,
                previous.file_name,
                previous.uploaded_at,
            )
        existing = store.load_transactions()
        merged = merge_statements(existing, result.transactions)
        tags = store.load_tags() or merge_with_default_tags([])
        categorized = recategorize_transactions(merged.transactions, tags)
        store.save_transactions(categorized)
        store.record_upload(
            UploadedFileRecord(
                file_name=result.metadata.file_name,
                uploaded_at=datetime.now(UTC),
                transaction_count=result.metadata.transaction_count,
                date_range=result.date_range,
                checksum=checksum,
            )
        )

    _render_diagnostics(result)
    console.print(
        f"[green]Imported {result.metadata.file_name}[/green]: "
        f"{merged.new_transactions} new, {merged.duplicates_removed} duplicates removed, "
        f"{len(merged.transactions)} total"
    )
    for overlap in merged.overlapping_periods:
        console.print(f"[yellow]Overlaps existing data[/yellow] {overlap.start} to {overlap.end}")
    return 0


def cmd_recurring(*, database_url: str | None = None) -> int:
    store = _open_store(database_url)
    if store is None:
        return 1
    with store:
        transactions = store.load_transactions()
    found = detect_recurring_payments(transactions)
    if not found:
        console.print("No recurring payments detected.")
        return 0
    table = Table(title="Recurring payments")
    for col in ("Merchant", "Amount", "Frequency", "Next expected", "Category", "Confidence"):
        table.add_column(col, justify="right" if col in {"Amount", "Confidence"} else "left")
    for r in found:
        table.add_row(
            r.merchant,
            _fmt_amount(r.amount),
            r.frequency.value,
            r.next_expected_date.isoformat(),
            r.category.value,
            f"{r.confidence}%",
        )
    console.print(table)
    return 0


def cmd_anomalies(*, database_url: str | None = None) -> int:
    store = _open_store(database_url)
    if store is None:
        return 1
    with store:
        transactions = store.load_transactions()
    found = detect_anomalies(transactions)
    if not found:
        console.print("No anomalies detected.")
        return 0
    table = Table(title="Anomalies")
    for col in ("Date", "Type", "Severity", "Description"):
        table.add_column(col)
    for a in found:
        table.add_row(a.transaction.date.isoformat(), a.type.value, a.severity.value, a.description)
    console.print(table)
    return 0


def cmd_forecast(
    *, database_url: str | None = None, as_of: date | None = None, days: int = 90
) -> int:
    try:
        settings = load_settings()
    except ValueError as e:
        _err(str(e))
        return 1
    store = _open_store(database_url or settings.database_url)
    if store is None:
        return 1
    with store:
        transactions = store.load_transactions()

    recurring = detect_recurring_payments(transactions)
    forecast = forecast_end_of_month_balance(transactions, recurring, as_of=as_of)
    console.print(
        f"Predicted balance on {forecast.date}: [bold]{_fmt_amount(forecast.predicted_balance)}[/bold] "
        f"(range {_fmt_amount(forecast.confidence_interval.low)} to "
        f"{_fmt_amount(forecast.confidence_interval.high)})"
    )
    for line in forecast.assumptions:
        console.print(f"  - {line}")
    for w in generate_warnings([forecast], low_balance=settings.low_balance):
        style = "red" if w.severity == "critical" else "yellow"
        console.print(f"[{style}]{w.severity}[/{style}]: {w.message}")

    projections = project_cash_flow(transactions, days, recurring, as_of=as_of)
    if projections:
        table = Table(title="Cash-flow projection")
        for col in ("Period", "Inflow", "Outflow", "Net", "Recurring due"):
            table.add_column(col, justify="left" if col == "Period" else "right")
        for p in projections:
            table.add_row(
                p.period,
                _fmt_amount(p.expected_inflow),
                _fmt_amount(p.expected_outflow),
                _fmt_amount(p.net_flow),
                str(len(p.recurring_payments)),
            )
        console.print(table)
    return 0


def cmd_seed_tags(*, database_url: str | None = None) -> int:
    """Store the default tags that the user has not already shadowed by name."""

    store = _open_store(database_url)
    if store is None:
        return 1
    with store:
        user_tags = store.load_tags()
        known = {t.id for t in user_tags}
        added = [t for t in merge_with_default_tags(user_tags) if t.id not in known]
        store.save_tags(added)
    console.print(f"Seeded {len(added)} default tags.")
    return 0


def _load_ledger(
    database_url: str | None,
) -> tuple[list[Transaction], list[Tag], list[Budget]] | None:
    store = _open_store(database_url)
    if store is None:
        return None
    with store:
        return store.load_transactions(), store.load_tags(), store.load_budgets()


def cmd_spending(*, database_url: str | None = None, top: int = 10) -> int:
    """Print spending per tag and the top merchants."""

    ledger = _load_ledger(database_url)
    if ledger is None:
        return 1
    transactions, tags, _budgets = ledger
    by_tag = spending_by_tag(transactions, tags)
    shares = spending_percentages(by_tag)
    names = {t.id: t.name for t in tags}

    table = Table(title="Spending by tag")
    for col in ("Tag", "Spent", "Share"):
        table.add_column(col, justify="left" if col == "Tag" else "right")
    for tag_id, amount in sorted(by_tag.items(), key=lambda kv: kv[1], reverse=True):
        if amount > 0:
            table.add_row(names.get(tag_id, tag_id), _fmt_amount(amount), f"{shares[tag_id]:.1f}%")
    console.print(table)

    merchants = top_merchants(transactions, top)
    if not merchants:
        console.print("No spending recorded.")
        return 0
    table = Table(title=f"Top {len(merchants)} merchants")
    for col in ("Merchant", "Total", "Count", "Average", "Last"):
        table.add_column(col, justify="left" if col in {"Merchant", "Last"} else "right")
    for m in merchants:
        table.add_row(
            m.merchant,
            _fmt_amount(m.total_amount),
            str(m.transaction_count),
            _fmt_amount(m.average_amount),
            m.last_transaction.isoformat(),
        )
    console.print(table)
    return 0


def cmd_income(*, database_url: str | None = None) -> int:
    ledger = _load_ledger(database_url)
    if ledger is None:
        return 1
    analysis = analyze_income(ledger[0])
    if analysis.total_income == 0:
        console.print("No income recorded.")
        return 0
    console.print(f"Total income: [bold]{_fmt_amount(analysis.total_income)}[/bold]")
    if analysis.salary_day is not None:
        console.print(f"Salary usually arrives on day {analysis.salary_day}")
    for source, amount in sorted(analysis.by_source.items(), key=lambda kv: kv[1], reverse=True):
        console.print(f"  {source}: {_fmt_amount(amount)}")
    for m in analysis.monthly_trend:
        console.print(f"  {m.month}: {_fmt_amount(m.amount)}")
    for t in analysis.unusual_incomes:
        console.print(f"[yellow]unusual[/yellow] {t.date} {_fmt_amount(t.amount)} {t.narrative}")
    return 0


def cmd_health(*, database_url: str | None = None) -> int:
    ledger = _load_ledger(database_url)
    if ledger is None:
        return 1
    transactions, _tags, budgets = ledger
    health = calculate_health_score(transactions, budgets)
    console.print(f"Health score: [bold]{health.score}[/bold]/100 ({health.trend.value})")
    for label, c in (
        ("Savings rate", health.savings_rate),
        ("Budget adherence", health.budget_adherence),
        ("Spending diversity", health.spending_diversity),
        ("Emergency fund", health.emergency_fund),
    ):
        console.print(f"  {label}: {c.score} (weight {c.weight:.2f}, value {c.value})")
    for line in health.recommendations:
        console.print(f"  - {line}")
    return 0


def cmd_budget_set(
    tag_id: str,
    monthly_limit: float,
    *,
    period: str | None = None,
    database_url: str | None = None,
) -> int:
    """Create or replace the budget for ``tag_id`` in ``period``."""

    store = _open_store(database_url)
    if store is None:
        return 1
    with store:
        if tag_id not in {t.id for t in store.load_tags()}:
            _err(f"Unknown tag: {tag_id}")
            return 1
        try:
            budget = create_budget(tag_id, monthly_limit, period)
        except BudgetValidationError as e:
            _err(str(e))
            return 1
        previous = next(
            (b for b in store.load_budgets() if b.tag_id == tag_id and b.period == budget.period),
            None,
        )
        if previous is not None:
            budget = update_budget(previous, {"monthly_limit": monthly_limit})
        store.save_budgets([budget])
    console.print(f"Budget for {tag_id} in {budget.period}: {_fmt_amount(budget.monthly_limit)}")
    return 0


def cmd_budgets(*, database_url: str | None = None, as_of: date | None = None) -> int:
    """Print utilisation of stored budgets and suggestions for unbudgeted tags."""

    ledger = _load_ledger(database_url)
    if ledger is None:
        return 1
    transactions, tags, budgets = ledger
    statuses = get_budget_statuses(budgets, transactions, as_of=as_of)
    if statuses:
        table = Table(title="Budgets")
        for col in ("Period", "Tag", "Limit", "Spent", "Used", "Projected", "Status"):
            table.add_column(col, justify="left" if col in {"Period", "Tag", "Status"} else "right")
        names = {t.id: t.name for t in tags}
        for s in statuses:
            style = {"exceeded": "red", "warning": "yellow"}.get(s.status.value, "green")
            table.add_row(
                s.budget.period,
                names.get(s.budget.tag_id, s.budget.tag_id),
                _fmt_amount(s.budget.monthly_limit),
                _fmt_amount(s.current_spend),
                f"{s.percent_used:.0f}%",
                _fmt_amount(s.projected_end_of_month),
                f"[{style}]{s.status.value}[/{style}]",
            )
        console.print(table)
    else:
        console.print("No budgets set.")

    for b in suggest_budgets(transactions, tags, budgets, as_of=as_of):
        console.print(
            f"Suggested budget for {b.tag_id} in {b.period}: {_fmt_amount(b.monthly_limit)}"
        )
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank statement workbooks and report recurring payments, anomalies "
        "and balance forecasts. Loads STATEMENT_INSIGHTS_* settings from a local .env."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
FILE_OPTION: OptionInfo = typer.Option(
    ...,
    "--file",
    help="Path to a statement workbook (.xlsx, optionally password protected)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)
PASSWORD_OPTION: OptionInfo = typer.Option(
    "--password", help="Password for an encrypted workbook."
)
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    "--database-url",
    help="Override STATEMENT_INSIGHTS_DATABASE_URL (falls back to env var).",
)
AS_OF_OPTION: OptionInfo = typer.Option(
    "--as-of", help="Forecast reference date (YYYY-MM-DD); defaults to today."
)
DAYS_OPTION: OptionInfo = typer.Option(
    "--days", min=1, help="Projection window in days (30/60/90 horizons)."
)
LOG_LEVEL_OPTION: OptionInfo = typer.Option(
    "--log-level", help="Override STATEMENT_INSIGHTS_LOG_LEVEL."
)
TOP_OPTION: OptionInfo = typer.Option("--top", min=1, help="Number of merchants to list.")
TAG_OPTION: OptionInfo = typer.Option(..., "--tag", help="Tag id the budget applies to.")
LIMIT_OPTION: OptionInfo = typer.Option(..., "--limit", help="Monthly limit (must be positive).")
PERIOD_OPTION: OptionInfo = typer.Option(
    "--period", help="Budget month as YYYY-MM; defaults to the current month."
)


def _exit(code: int) -> None:
    if code != 0:
        raise typer.Exit(code)


def _parse_as_of(value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise typer.BadParameter(f"expected YYYY-MM-DD, got {value!r}") from e


@app.command("parse")
def parse_cmd(
    file: Annotated[Path, FILE_OPTION],
    password: Annotated[str | None, PASSWORD_OPTION] = None,
) -> None:
    """Parse a statement and print the canonical transactions."""

    _exit(cmd_parse(str(file), password=password))


@app.command("import")
def import_cmd(
    file: Annotated[Path, FILE_OPTION],
    password: Annotated[str | None, PASSWORD_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Parse a statement and merge it into the ledger store."""

    _exit(cmd_import(str(file), password=password, database_url=database_url))


@app.command("recurring")
def recurring_cmd(database_url: Annotated[str | None, DATABASE_URL_OPTION] = None) -> None:
    """List recurring payments detected in the stored ledger."""

    _exit(cmd_recurring(database_url=database_url))


@app.command("anomalies")
def anomalies_cmd(database_url: Annotated[str | None, DATABASE_URL_OPTION] = None) -> None:
    """List anomalous debits in the stored ledger."""

    _exit(cmd_anomalies(database_url=database_url))


@app.command("forecast")
def forecast_cmd(
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    as_of: Annotated[str | None, AS_OF_OPTION] = None,
    days: Annotated[int, DAYS_OPTION] = 90,
) -> None:
    """Forecast the end-of-month balance and project cash flow."""

    _exit(cmd_forecast(database_url=database_url, as_of=_parse_as_of(as_of), days=days))


@app.command("seed-tags")
def seed_tags_cmd(database_url: Annotated[str | None, DATABASE_URL_OPTION] = None) -> None:
    """Store the default tag set."""

    _exit(cmd_seed_tags(database_url=database_url))


@app.command("spending")
def spending_cmd(
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    top: Annotated[int, TOP_OPTION] = 10,
) -> None:
    """Show spending by tag and the top merchants."""

    _exit(cmd_spending(database_url=database_url, top=top))


@app.command("income")
def income_cmd(database_url: Annotated[str | None, DATABASE_URL_OPTION] = None) -> None:
    """Summarize income by source and month."""

    _exit(cmd_income(database_url=database_url))


@app.command("health")
def health_cmd(database_url: Annotated[str | None, DATABASE_URL_OPTION] = None) -> None:
    """Compute the financial health score."""

    _exit(cmd_health(database_url=database_url))


@app.command("budget-set")
def budget_set_cmd(
    tag: Annotated[str, TAG_OPTION],
    limit: Annotated[float, LIMIT_OPTION],
    period: Annotated[str | None, PERIOD_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Create or replace a monthly budget for a tag."""

    _exit(cmd_budget_set(tag, limit, period=period, database_url=database_url))


@app.command("budgets")
def budgets_cmd(
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
    as_of: Annotated[str | None, AS_OF_OPTION] = None,
) -> None:
    """Show budget utilisation and suggestions."""

    _exit(cmd_budgets(database_url=database_url, as_of=_parse_as_of(as_of)))


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    log_level: Annotated[str | None, LOG_LEVEL_OPTION] = None,
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging(log_level)

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m statement_insights.cli`
    app()
