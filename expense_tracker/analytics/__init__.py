"""
Analytics Package

Pure read-only views over the ledger (balances, budgets, trends) and
the date-period helpers they rely on.
"""

from expense_tracker.analytics.aggregations import (
    DEFAULT_ALERT_THRESHOLD,
    account_balance,
    account_summaries,
    active_days,
    aggregate_balance,
    budget_progress,
    category_breakdown,
    day_key,
    day_total,
    filter_transactions,
    income_expense_totals,
    month_budget_overview,
    monthly_expense_trend,
    should_send_budget_alert,
    summary_totals,
    transactions_on_day,
)
from expense_tracker.analytics.periods import (
    add_months,
    build_date_filter,
    filter_range,
    format_instant,
    month_end,
    month_key,
    month_start,
    parse_instant,
)

__all__ = [
    "DEFAULT_ALERT_THRESHOLD",
    "account_balance",
    "account_summaries",
    "active_days",
    "add_months",
    "aggregate_balance",
    "budget_progress",
    "build_date_filter",
    "category_breakdown",
    "day_key",
    "day_total",
    "filter_range",
    "filter_transactions",
    "format_instant",
    "income_expense_totals",
    "month_budget_overview",
    "month_end",
    "month_key",
    "month_start",
    "monthly_expense_trend",
    "parse_instant",
    "should_send_budget_alert",
    "summary_totals",
    "transactions_on_day",
]
