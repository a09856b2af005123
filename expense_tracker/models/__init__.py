"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker core.
All state flowing through the reducer must conform to these schemas.
"""

from expense_tracker.models.ledger import (
    DEFAULT_ACCOUNT,
    DEFAULT_ACCOUNT_ID,
    DEFAULT_CATEGORIES,
    DEFAULT_CATEGORY_ID,
    DEFAULT_CURRENCY,
    DEFAULT_NOTIFICATION_PREFERENCES,
    Account,
    AccountType,
    AppState,
    Budget,
    Category,
    CurrencyOption,
    DateFilter,
    DateFilterPreset,
    LegacyTransaction,
    NotificationPreferences,
    ThemePreference,
    Transaction,
    TransactionType,
    is_month_key,
    transaction_type_for,
)
from expense_tracker.models.actions import (
    AccountPatch,
    Action,
    AddAccount,
    AddBudget,
    AddCategory,
    AddTransaction,
    BudgetPatch,
    CategoryPatch,
    DeleteAccount,
    DeleteAccountAndTransactions,
    DeleteAccountReassigning,
    DeleteBudget,
    DeleteCategory,
    DeleteTransaction,
    ReconcileReferences,
    SetAccounts,
    SetBudgets,
    SetCategories,
    SetCurrency,
    SetDateFilter,
    SetNotificationPreferences,
    SetThemePreference,
    SetTransactions,
    TransactionPatch,
    UpdateAccount,
    UpdateBudget,
    UpdateCategory,
    UpdateTransaction,
    parse_action,
)
from expense_tracker.models.views import (
    AccountSummary,
    BudgetOverview,
    BudgetProgress,
    CategoryBreakdown,
    IncomeExpenseTotals,
    MonthlyTotal,
)
from expense_tracker.models.currency import (
    CURRENCY_LIST,
    filter_currencies,
    find_currency_by_code,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_ACCOUNT",
    "DEFAULT_ACCOUNT_ID",
    "DEFAULT_CATEGORIES",
    "DEFAULT_CATEGORY_ID",
    "DEFAULT_CURRENCY",
    "DEFAULT_NOTIFICATION_PREFERENCES",
    "Account",
    "AccountType",
    "AppState",
    "Budget",
    "Category",
    "CurrencyOption",
    "DateFilter",
    "DateFilterPreset",
    "LegacyTransaction",
    "NotificationPreferences",
    "ThemePreference",
    "Transaction",
    "TransactionType",
    "is_month_key",
    "transaction_type_for",
    # Actions
    "AccountPatch",
    "Action",
    "AddAccount",
    "AddBudget",
    "AddCategory",
    "AddTransaction",
    "BudgetPatch",
    "CategoryPatch",
    "DeleteAccount",
    "DeleteAccountAndTransactions",
    "DeleteAccountReassigning",
    "DeleteBudget",
    "DeleteCategory",
    "DeleteTransaction",
    "ReconcileReferences",
    "SetAccounts",
    "SetBudgets",
    "SetCategories",
    "SetCurrency",
    "SetDateFilter",
    "SetNotificationPreferences",
    "SetThemePreference",
    "SetTransactions",
    "TransactionPatch",
    "UpdateAccount",
    "UpdateBudget",
    "UpdateCategory",
    "UpdateTransaction",
    "parse_action",
    # Views
    "AccountSummary",
    "BudgetOverview",
    "BudgetProgress",
    "CategoryBreakdown",
    "IncomeExpenseTotals",
    "MonthlyTotal",
    # Currencies
    "CURRENCY_LIST",
    "filter_currencies",
    "find_currency_by_code",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
