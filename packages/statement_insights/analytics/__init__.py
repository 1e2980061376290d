"""Read-only analytics over a transaction set."""

from .anomalies import detect_anomalies, detect_duplicate_groups
from .balance import calculate_balance_metrics, get_balance_at_date, get_current_balance
from .cashflow import calculate_cash_flow, calculate_savings_rate
from .health import calculate_health_score
from .income import analyze_income
from .recurring import detect_recurring_payments
from .spending import calculate_spending_breakdown, spending_by_tag, top_merchants

__all__ = [
    "detect_anomalies",
    "detect_duplicate_groups",
    "calculate_balance_metrics",
    "get_balance_at_date",
    "get_current_balance",
    "calculate_cash_flow",
    "calculate_savings_rate",
    "calculate_health_score",
    "analyze_income",
    "detect_recurring_payments",
    "calculate_spending_breakdown",
    "spending_by_tag",
    "top_merchants",
]
