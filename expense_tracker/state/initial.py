"""Initial application state, before anything has been loaded."""

from datetime import datetime
from typing import Optional

from expense_tracker.analytics.periods import build_date_filter
from expense_tracker.models.ledger import (
    DEFAULT_ACCOUNT,
    DEFAULT_CATEGORIES,
    DEFAULT_CURRENCY,
    DEFAULT_NOTIFICATION_PREFERENCES,
    AppState,
    CurrencyOption,
    DateFilterPreset,
    ThemePreference,
)


def build_initial_state(
    now: Optional[datetime] = None,
    currency: Optional[CurrencyOption] = None,
) -> AppState:
    """Empty ledger with the default categories, Cash account and this month in view."""
    return AppState(
        transactions=(),
        categories=DEFAULT_CATEGORIES,
        budgets=(),
        accounts=(DEFAULT_ACCOUNT,),
        date_filter=build_date_filter(DateFilterPreset.THIS_MONTH, reference=now),
        currency=currency or DEFAULT_CURRENCY,
        theme_preference=ThemePreference.SYSTEM,
        notification_preferences=DEFAULT_NOTIFICATION_PREFERENCES,
    )
