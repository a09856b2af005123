"""
State Slices

The application state is persisted as eight independent slices, one
storage key each. For every slice this module knows:
- its storage key
- how to select its JSON value from the state
- how to turn a stored (parsed) value back into the action that sets it

Serialization is canonical (sorted keys, compact separators), so a slice
that is loaded and written back unchanged produces the same bytes.
"""

import json
from enum import Enum
from typing import Any, Callable, NamedTuple, Optional

from expense_tracker.models.actions import (
    SetAccounts,
    SetBudgets,
    SetCategories,
    SetCurrency,
    SetDateFilter,
    SetNotificationPreferences,
    SetThemePreference,
    SetTransactions,
)
from expense_tracker.models.ledger import AppState
from expense_tracker.normalization import (
    normalize_accounts,
    normalize_budgets,
    normalize_categories,
    normalize_currency,
    normalize_date_filter,
    normalize_notification_preferences,
    normalize_theme,
    normalize_transactions,
)


class SliceName(str, Enum):
    TRANSACTIONS = "transactions"
    CATEGORIES = "categories"
    DATE_FILTER = "dateFilter"
    BUDGETS = "budgets"
    ACCOUNTS = "accounts"
    CURRENCY = "currency"
    THEME_PREFERENCE = "themePreference"
    NOTIFICATION_PREFERENCES = "notificationPreferences"


class Slice(NamedTuple):
    name: SliceName
    key: str
    field: str
    select: Callable[[AppState], Any]
    load: Callable[[Any], Optional[Any]]


def _records(items) -> list[dict]:
    return [item.to_record() for item in items]


def _load_transactions(raw: Any) -> Optional[SetTransactions]:
    transactions = normalize_transactions(raw)
    if transactions is None:
        return None
    # References are repaired once every slice is in
    return SetTransactions(transactions=transactions, reconcile=False)


def _load_date_filter(raw: Any) -> Optional[SetDateFilter]:
    date_filter = normalize_date_filter(raw)
    return SetDateFilter(date_filter=date_filter) if date_filter else None


def _load_budgets(raw: Any) -> Optional[SetBudgets]:
    budgets = normalize_budgets(raw)
    return SetBudgets(budgets=budgets) if budgets is not None else None


def _load_currency(raw: Any) -> Optional[SetCurrency]:
    currency = normalize_currency(raw)
    return SetCurrency(currency=currency) if currency else None


def _load_theme(raw: Any) -> Optional[SetThemePreference]:
    theme = normalize_theme(raw)
    return SetThemePreference(theme_preference=theme) if theme else None


SLICES: dict[SliceName, Slice] = {
    entry.name: entry
    for entry in (
        Slice(
            name=SliceName.TRANSACTIONS,
            key="EXPENSE_TRACKER_TRANSACTIONS_V1",
            field="transactions",
            select=lambda state: _records(state.transactions),
            load=_load_transactions,
        ),
        Slice(
            name=SliceName.CATEGORIES,
            key="EXPENSE_TRACKER_CATEGORIES_V1",
            field="categories",
            select=lambda state: _records(state.categories),
            load=lambda raw: SetCategories(categories=normalize_categories(raw)),
        ),
        Slice(
            name=SliceName.DATE_FILTER,
            key="EXPENSE_TRACKER_DATE_FILTER_V1",
            field="date_filter",
            select=lambda state: state.date_filter.to_record(),
            load=_load_date_filter,
        ),
        Slice(
            name=SliceName.BUDGETS,
            key="EXPENSE_TRACKER_BUDGETS_V1",
            field="budgets",
            select=lambda state: _records(state.budgets),
            load=_load_budgets,
        ),
        Slice(
            name=SliceName.ACCOUNTS,
            key="EXPENSE_TRACKER_ACCOUNTS_V1",
            field="accounts",
            select=lambda state: _records(state.accounts),
            load=lambda raw: SetAccounts(accounts=normalize_accounts(raw)),
        ),
        Slice(
            name=SliceName.CURRENCY,
            key="EXPENSE_TRACKER_CURRENCY_V1",
            field="currency",
            select=lambda state: state.currency.to_record(),
            load=_load_currency,
        ),
        Slice(
            name=SliceName.THEME_PREFERENCE,
            key="EXPENSE_TRACKER_THEME_V1",
            field="theme_preference",
            select=lambda state: state.theme_preference.value,
            load=_load_theme,
        ),
        Slice(
            name=SliceName.NOTIFICATION_PREFERENCES,
            key="EXPENSE_TRACKER_NOTIFICATIONS_V1",
            field="notification_preferences",
            select=lambda state: state.notification_preferences.to_record(),
            load=lambda raw: SetNotificationPreferences(
                preferences=normalize_notification_preferences(raw)
            ),
        ),
    )
}


def dumps_canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def serialize_slice(state: AppState, name: SliceName) -> str:
    """The stored form of one slice of the state."""
    return dumps_canonical(SLICES[SliceName(name)].select(state))
