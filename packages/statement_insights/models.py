"""Data models for ``statement_insights``.

Canonical records produced by ingestion (``Transaction``), user-managed
reference data (``Tag``, ``Budget``) and the derived results returned by the
detectors. Records are immutable: categorization and user edits produce new
instances via :func:`dataclasses.replace`, never in-place mutation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ---------------------------------------------------------------------------
# Closed vocabularies
# ---------------------------------------------------------------------------


class TransactionType(StrEnum):
    DEBIT = "debit"
    CREDIT = "credit"


class PaymentChannel(StrEnum):
    """Transfer mechanism detected from the narrative."""

    INSTANT_TRANSFER = "instant-transfer"
    WIRE = "wire"
    IMMEDIATE_TRANSFER = "immediate-transfer"
    ATM = "atm"
    POINT_OF_SALE = "point-of-sale"
    CHEQUE = "cheque"
    OTHER = "other"


class Frequency(StrEnum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class RecurringCategory(StrEnum):
    SUBSCRIPTION = "subscription"
    INSTALLMENT = "installment"
    UTILITY = "utility"
    OTHER = "other"


class AnomalyType(StrEnum):
    HIGH_AMOUNT = "high-amount"
    DUPLICATE = "duplicate"
    UNUSUAL_MERCHANT = "unusual-merchant"
    SPENDING_SPIKE = "spending-spike"


class Severity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


type DiagnosticSeverity = Literal["warning", "error"]
type Granularity = Literal["daily", "weekly", "monthly"]


# ---------------------------------------------------------------------------
# Core record
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single canonical statement line.

    Exactly one of ``debit``/``credit`` is set. ``amount`` is the absolute
    value of whichever side is present and ``type`` names that side. ``id`` is
    a pure function of ``(date, reference, amount)`` so re-parsing the same
    statement yields the same identifiers.

    ``imported_at`` is excluded from equality: it records when a parse ran,
    not what the statement says.
    """

    id: str
    date: date
    narrative: str
    reference: str
    debit: float | None
    credit: float | None
    balance: float
    amount: float
    type: TransactionType
    channel: PaymentChannel

    # Categorization (written only by the matcher or by a user override)
    tag_ids: tuple[str, ...] = ()
    manual_tag_override: bool = False

    # User additions
    note: str | None = None
    custom_tags: tuple[str, ...] = ()
    is_reviewed: bool = False

    # Provenance
    source_file: str = ""
    imported_at: datetime | None = field(default=None, compare=False)

    @property
    def is_debit(self) -> bool:
        return self.type is TransactionType.DEBIT

    @property
    def net_flow(self) -> float:
        """Signed contribution to the balance: credits positive, debits negative."""

        return (self.credit or 0.0) - (self.debit or 0.0)


@dataclass(frozen=True, slots=True)
class DateRange:
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"DateRange start {self.start} is after end {self.end}")

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    @property
    def days(self) -> int:
        return (self.end - self.start).days


# ---------------------------------------------------------------------------
# Ingestion results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParseDiagnostic:
    """A warning or error tied to a spreadsheet row (1-based; 0 = whole file)."""

    row: int
    message: str
    severity: DiagnosticSeverity
    column: str | None = None


@dataclass(frozen=True, slots=True)
class StatementMetadata:
    file_name: str
    bank_name: str
    statement_period: DateRange | None
    transaction_count: int
    parsed_at: datetime = field(compare=False)


@dataclass(frozen=True, slots=True)
class ParseResult:
    success: bool
    transactions: tuple[Transaction, ...]
    date_range: DateRange | None
    diagnostics: tuple[ParseDiagnostic, ...]
    metadata: StatementMetadata

    @property
    def warnings(self) -> tuple[ParseDiagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.severity == "warning")

    @property
    def errors(self) -> tuple[ParseDiagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.severity == "error")


@dataclass(frozen=True, slots=True)
class MergeResult:
    transactions: tuple[Transaction, ...]
    duplicates_removed: int
    new_transactions: int
    overlapping_periods: tuple[DateRange, ...]


@dataclass(frozen=True, slots=True)
class UploadedFileRecord:
    file_name: str
    uploaded_at: datetime
    transaction_count: int
    date_range: DateRange | None
    checksum: str


# ---------------------------------------------------------------------------
# Tags and budgets (user-managed reference data)
# ---------------------------------------------------------------------------

_HEX_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")
_PERIOD_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class Tag(BaseModel):
    """A category with the keywords that select it.

    Keywords match case-insensitively; order is preserved because the first
    matching keyword is reported in :class:`TagMatch`.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str
    name: str
    keywords: tuple[str, ...]
    color: str = "#6366f1"
    icon: str | None = None
    is_default: bool = False
    parent_tag_id: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("name")
    @classmethod
    def _name_non_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Tag name is required")
        if len(v) > 50:
            raise ValueError("Tag name must be 50 characters or less")
        return v

    @field_validator("keywords")
    @classmethod
    def _keywords_non_empty(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        if not v:
            raise ValueError("At least one keyword is required")
        cleaned = tuple(k.strip() for k in v)
        if any(not k for k in cleaned):
            raise ValueError("Keywords cannot be empty")
        return cleaned

    @field_validator("color")
    @classmethod
    def _color_hex(cls, v: str) -> str:
        if not _HEX_COLOR_RE.match(v):
            raise ValueError(f"color must be a #RRGGBB hex string, got {v!r}")
        return v.lower()

    @model_validator(mode="after")
    def _not_own_parent(self) -> Tag:
        if self.parent_tag_id is not None and self.parent_tag_id == self.id:
            raise ValueError("A tag cannot be its own parent")
        return self


class Budget(BaseModel):
    """Monthly spending limit for one tag."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str
    tag_id: str
    monthly_limit: float
    period: str
    created_at: datetime
    updated_at: datetime

    @field_validator("monthly_limit")
    @classmethod
    def _limit_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("monthly_limit must be positive")
        return v

    @field_validator("period")
    @classmethod
    def _period_format(cls, v: str) -> str:
        if not _PERIOD_RE.match(v):
            raise ValueError(f"period must be YYYY-MM, got {v!r}")
        return v


@dataclass(frozen=True, slots=True)
class TagMatch:
    tag_id: str
    keyword: str
    match_position: int


@dataclass(frozen=True, slots=True)
class CategorizationResult:
    transaction_id: str
    matched_tags: tuple[TagMatch, ...]
    is_manual_override: bool = False

    @property
    def tag_ids(self) -> tuple[str, ...]:
        # dict preserves first-seen order while dropping repeats
        return tuple(dict.fromkeys(m.tag_id for m in self.matched_tags))


# ---------------------------------------------------------------------------
# Derived analytics
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RecurringPayment:
    merchant: str
    amount: float
    frequency: Frequency
    next_expected_date: date
    category: RecurringCategory
    confidence: int
    occurrences: int = 0


@dataclass(frozen=True, slots=True)
class Anomaly:
    transaction: Transaction
    type: AnomalyType
    severity: Severity
    description: str


@dataclass(frozen=True, slots=True)
class ConfidenceInterval:
    low: float
    high: float


@dataclass(frozen=True, slots=True)
class BalanceForecast:
    date: date
    predicted_balance: float
    confidence_interval: ConfidenceInterval
    assumptions: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class CashFlowProjection:
    period: str
    horizon_days: int
    expected_inflow: float
    expected_outflow: float
    net_flow: float
    recurring_payments: tuple[RecurringPayment, ...]


@dataclass(frozen=True, slots=True)
class ForecastWarning:
    type: Literal["low_balance", "negative_balance"]
    date: date
    message: str
    severity: Literal["info", "warning", "critical"]


@dataclass(frozen=True, slots=True)
class BalanceMetrics:
    current: float
    highest: float
    lowest: float
    average: float
    period_start: date | None
    period_end: date | None


@dataclass(frozen=True, slots=True)
class CashFlowMetrics:
    period: str
    total_inflow: float
    total_outflow: float
    net_cash_flow: float
    average_daily_inflow: float
    average_daily_outflow: float
    surplus_days: int
    deficit_days: int


@dataclass(frozen=True, slots=True)
class MerchantSpend:
    merchant: str
    total_amount: float
    transaction_count: int
    average_amount: float
    last_transaction: date


@dataclass(frozen=True, slots=True)
class TimeOfMonthSpend:
    """Debit totals for days 1-10, 11-20 and 21 onwards."""

    early: float = 0.0
    mid: float = 0.0
    late: float = 0.0


@dataclass(frozen=True, slots=True)
class MonthlyAmount:
    month: str
    amount: float


@dataclass(frozen=True, slots=True)
class SpendingBreakdown:
    by_tag: dict[str, float]
    by_merchant: tuple[MerchantSpend, ...]
    by_channel: dict[PaymentChannel, float]
    by_weekday: tuple[float, ...]
    by_time_of_month: TimeOfMonthSpend


@dataclass(frozen=True, slots=True)
class SeasonalTrend:
    month: int
    average_spend: float


@dataclass(frozen=True, slots=True)
class SpendingPattern:
    weekday_average: float
    weekend_average: float
    weekday_distribution: tuple[float, ...]
    time_of_month: TimeOfMonthSpend
    seasonal_trends: tuple[SeasonalTrend, ...]


@dataclass(frozen=True, slots=True)
class IncomeAnalysis:
    total_income: float
    by_source: dict[str, float]
    monthly_trend: tuple[MonthlyAmount, ...]
    salary_day: int | None
    unusual_incomes: tuple[Transaction, ...]


class HealthTrend(StrEnum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


@dataclass(frozen=True, slots=True)
class HealthScoreComponent:
    score: int
    weight: float
    value: float


@dataclass(frozen=True, slots=True)
class HealthScore:
    score: int
    savings_rate: HealthScoreComponent
    budget_adherence: HealthScoreComponent
    spending_diversity: HealthScoreComponent
    emergency_fund: HealthScoreComponent
    recommendations: tuple[str, ...]
    trend: HealthTrend


class BudgetState(StrEnum):
    ON_TRACK = "on_track"
    WARNING = "warning"
    EXCEEDED = "exceeded"


@dataclass(frozen=True, slots=True)
class BudgetStatus:
    budget: Budget
    current_spend: float
    percent_used: float
    remaining: float
    projected_end_of_month: float
    status: BudgetState


__all__ = [
    "TransactionType",
    "PaymentChannel",
    "Frequency",
    "RecurringCategory",
    "AnomalyType",
    "Severity",
    "DiagnosticSeverity",
    "Granularity",
    "Transaction",
    "DateRange",
    "ParseDiagnostic",
    "StatementMetadata",
    "ParseResult",
    "MergeResult",
    "UploadedFileRecord",
    "Tag",
    "Budget",
    "TagMatch",
    "CategorizationResult",
    "RecurringPayment",
    "Anomaly",
    "ConfidenceInterval",
    "BalanceForecast",
    "CashFlowProjection",
    "ForecastWarning",
    "BalanceMetrics",
    "CashFlowMetrics",
    "MerchantSpend",
    "TimeOfMonthSpend",
    "MonthlyAmount",
    "SpendingBreakdown",
    "SeasonalTrend",
    "SpendingPattern",
    "IncomeAnalysis",
    "HealthTrend",
    "HealthScoreComponent",
    "HealthScore",
    "BudgetState",
    "BudgetStatus",
]
