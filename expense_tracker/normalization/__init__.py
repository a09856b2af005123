"""Repair of stored and legacy-shaped records."""

from expense_tracker.normalization.normalizer import (
    ensure_category_set,
    normalize_account,
    normalize_accounts,
    normalize_budgets,
    normalize_categories,
    normalize_currency,
    normalize_date_filter,
    normalize_notification_preferences,
    normalize_theme,
    normalize_transaction,
    normalize_transactions,
    parse_transaction_record,
)

__all__ = [
    "ensure_category_set",
    "normalize_account",
    "normalize_accounts",
    "normalize_budgets",
    "normalize_categories",
    "normalize_currency",
    "normalize_date_filter",
    "normalize_notification_preferences",
    "normalize_theme",
    "normalize_transaction",
    "normalize_transactions",
    "parse_transaction_record",
]
