"""Public interface for the ``statement_insights`` package.

This module exposes the ingestion entry points, the detectors and the public
models as the stable import surface. There is no runtime logic here, only
symbol re-exports.
"""

from .analytics import (
    analyze_income,
    calculate_balance_metrics,
    calculate_cash_flow,
    calculate_health_score,
    calculate_spending_breakdown,
    detect_anomalies,
    detect_recurring_payments,
    top_merchants,
)
from .budgets import create_budget, get_budget_status, suggest_budgets
from .categorization import categorize_transaction, recategorize_transactions
from .duplicates import deduplicate_transactions, merge_statements
from .errors import (
    BudgetValidationError,
    ColumnMappingError,
    DecodeError,
    FormatValidationError,
    HeaderNotFoundError,
    StatementError,
    StoreError,
    TagValidationError,
)
from .extract import extract_merchant_keywords, extract_merchant_name
from .forecast import forecast_end_of_month_balance, generate_warnings, project_cash_flow
from .ingest import parse_statement, parse_statement_file, validate_format
from .models import (
    Anomaly,
    AnomalyType,
    BalanceForecast,
    Budget,
    BudgetStatus,
    CashFlowProjection,
    DateRange,
    Frequency,
    HealthScore,
    IncomeAnalysis,
    MerchantSpend,
    MergeResult,
    ParseDiagnostic,
    ParseResult,
    PaymentChannel,
    RecurringCategory,
    RecurringPayment,
    Severity,
    SpendingBreakdown,
    Tag,
    Transaction,
    TransactionType,
)
from .settings import DEFAULT_THRESHOLDS, DetectionThresholds, Settings, load_settings
from .store import LedgerStore
from .tags import get_default_tags

__version__ = "0.1.0"

__all__ = [
    # Ingestion
    "parse_statement",
    "parse_statement_file",
    "validate_format",
    "deduplicate_transactions",
    "merge_statements",
    # Extraction / categorization
    "extract_merchant_name",
    "extract_merchant_keywords",
    "categorize_transaction",
    "recategorize_transactions",
    "get_default_tags",
    # Detection / forecasting
    "calculate_balance_metrics",
    "calculate_cash_flow",
    "detect_recurring_payments",
    "detect_anomalies",
    "forecast_end_of_month_balance",
    "generate_warnings",
    "project_cash_flow",
    # Spending / income / budgets
    "calculate_spending_breakdown",
    "top_merchants",
    "analyze_income",
    "calculate_health_score",
    "create_budget",
    "get_budget_status",
    "suggest_budgets",
    # Persistence / configuration
    "LedgerStore",
    "Settings",
    "load_settings",
    "DetectionThresholds",
    "DEFAULT_THRESHOLDS",
    # Models / types
    "Transaction",
    "TransactionType",
    "PaymentChannel",
    "DateRange",
    "ParseDiagnostic",
    "ParseResult",
    "MergeResult",
    "Tag",
    "Budget",
    "BudgetStatus",
    "SpendingBreakdown",
    "MerchantSpend",
    "IncomeAnalysis",
    "HealthScore",
    "RecurringPayment",
    "Frequency",
    "RecurringCategory",
    "Anomaly",
    "AnomalyType",
    "Severity",
    "BalanceForecast",
    "CashFlowProjection",
    # Errors
    "StatementError",
    "FormatValidationError",
    "DecodeError",
    "HeaderNotFoundError",
    "ColumnMappingError",
    "TagValidationError",
    "BudgetValidationError",
    "StoreError",
]
