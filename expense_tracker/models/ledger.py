"""
Core Ledger Models for Expense Tracker

These models define the canonical shape of every entity held in the
application state. They are designed to:
1. Be immutable (every change produces a new object)
2. Re-derive values that must never be trusted from callers
3. Serialize to the persisted camelCase record shape
4. Reference other entities by id only

DESIGN DECISION: Attributes are snake_case in Python and carry the
persisted camelCase names as aliases. Either name is accepted on input,
records are always written back by alias.
"""

import re
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


MONTH_KEY_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountType(str, Enum):
    """Kinds of account a user can track."""
    CASH = "cash"
    BANK = "bank"
    CREDIT = "credit"
    DEBIT = "debit"
    INVESTMENT = "investment"
    OTHER = "other"


class TransactionType(str, Enum):
    """
    Direction of a transaction.

    CRITICAL: Never set independently. It always follows the sign of the amount.
    """
    INCOME = "income"
    EXPENSE = "expense"


class DateFilterPreset(str, Enum):
    """Presets for the date range shown on summary views."""
    THIS_MONTH = "thisMonth"
    LAST_MONTH = "lastMonth"
    THIS_YEAR = "thisYear"
    CUSTOM = "custom"


class ThemePreference(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


def transaction_type_for(amount: float) -> TransactionType:
    """Zero counts as income."""
    return TransactionType.INCOME if amount >= 0 else TransactionType.EXPENSE


class LedgerModel(BaseModel):
    """Base class for immutable ledger records."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
    )

    def to_record(self) -> dict[str, Any]:
        """Convert to the persisted (camelCase, JSON-safe) record."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# ENTITIES
# =============================================================================

class Account(LedgerModel):
    """
    An account transactions are booked against.

    Name and account number are unique case-insensitively. That rule is
    checked by the form validators before an action is built, not here.
    """

    id: str = Field(..., min_length=1)
    name: str
    type: AccountType = AccountType.CASH
    account_number: str = Field(default="", alias="accountNumber")
    initial_balance: float = Field(default=0.0, alias="initialBalance")
    include_in_balance: bool = Field(
        default=True,
        alias="includeInBalance",
        description="Whether this account counts toward all-accounts totals"
    )

    @field_validator('account_number', mode='before')
    @classmethod
    def default_account_number(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @field_validator('include_in_balance', mode='before')
    @classmethod
    def default_include_in_balance(cls, v: Any) -> Any:
        return True if v is None else v


class Category(LedgerModel):
    """A spending/income category. `icon` is a display-only symbolic name."""

    id: str = Field(..., min_length=1)
    name: str
    icon: str = "shape-outline"


class Transaction(LedgerModel):
    """
    A single ledger entry.

    The sign of `amount` is authoritative: `type` is re-derived from it on
    every construction, whatever the caller supplied.
    """

    id: str = Field(..., min_length=1)
    title: str = ""
    amount: float
    date: str = Field(..., description="ISO-8601 instant")
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    type: TransactionType = TransactionType.INCOME
    account_id: str = Field(..., alias="accountId")
    receipt_uri: Optional[str] = Field(
        default=None,
        alias="receiptUri",
        description="Opaque reference to an externally owned receipt image"
    )

    @model_validator(mode='before')
    @classmethod
    def derive_type(cls, data: Any) -> Any:
        """Overwrite any supplied type with the one implied by the amount."""
        if not isinstance(data, dict) or "amount" not in data:
            return data
        try:
            amount = float(data["amount"])
        except (TypeError, ValueError):
            return data
        return {**data, "type": transaction_type_for(amount)}

    @property
    def is_expense(self) -> bool:
        return self.amount < 0


class Budget(LedgerModel):
    """
    A monthly allotment for one category.

    At most one budget per (category, month) is a caller-side contract;
    see `expense_tracker.validation.validate_budget_form`.
    """

    id: str = Field(..., min_length=1)
    category_id: str = Field(..., alias="categoryId")
    amount: float = Field(..., ge=0)
    month: str = Field(..., pattern=MONTH_KEY_PATTERN, description="YYYY-MM")


class DateFilter(LedgerModel):
    """Which transactions are in view for summary screens (inclusive bounds)."""

    preset: DateFilterPreset = DateFilterPreset.THIS_MONTH
    start_date: str = Field(..., alias="startDate")
    end_date: str = Field(..., alias="endDate")


class CurrencyOption(LedgerModel):
    code: str = Field(..., min_length=1)
    symbol: str
    name: str
    locale: Optional[str] = None


class NotificationPreferences(LedgerModel):
    daily_reminder_enabled: bool = Field(default=False, alias="dailyReminderEnabled")
    daily_reminder_hour: int = Field(default=20, ge=0, le=23, alias="dailyReminderHour")
    daily_reminder_minute: int = Field(default=0, ge=0, le=59, alias="dailyReminderMinute")


# =============================================================================
# LEGACY SHAPES
# =============================================================================

class LegacyTransaction(BaseModel):
    """
    A transaction as written by earlier versions of the app.

    May carry a category *name* instead of an id and may omit type,
    account and receipt. Only ever used as input to normalization.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    title: Optional[str] = None
    amount: Any = 0
    date: Optional[str] = None
    category: Optional[str] = None
    type: Optional[str] = None
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    account_id: Optional[str] = Field(default=None, alias="accountId")
    receipt_uri: Optional[str] = Field(default=None, alias="receiptUri")


# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_CATEGORY_ID = "uncategorized"

DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id=DEFAULT_CATEGORY_ID, name="Uncategorized", icon="dots-circle"),
    Category(id="food", name="Food", icon="silverware-fork-knife"),
    Category(id="transport", name="Transport", icon="transit-connection-variant"),
    Category(id="bills", name="Bills", icon="file-document-outline"),
    Category(id="entertainment", name="Entertainment", icon="movie-open-outline"),
    Category(id="other", name="Other", icon="flash"),
)

DEFAULT_ACCOUNT_ID = "account-default-cash"

DEFAULT_ACCOUNT = Account(
    id=DEFAULT_ACCOUNT_ID,
    name="Cash",
    type=AccountType.CASH,
    account_number="",
    initial_balance=0.0,
    include_in_balance=True,
)

DEFAULT_CURRENCY = CurrencyOption(code="USD", symbol="$", name="US Dollar", locale="en-US")

DEFAULT_NOTIFICATION_PREFERENCES = NotificationPreferences()


# =============================================================================
# AGGREGATE ROOT
# =============================================================================

class AppState(LedgerModel):
    """
    The single root of application state.

    Transactions are kept most-recent-first on insert. Entities are owned
    here and addressed only by id.
    """

    transactions: tuple[Transaction, ...] = ()
    categories: tuple[Category, ...] = DEFAULT_CATEGORIES
    budgets: tuple[Budget, ...] = ()
    accounts: tuple[Account, ...] = (DEFAULT_ACCOUNT,)
    date_filter: DateFilter = Field(..., alias="dateFilter")
    currency: CurrencyOption = DEFAULT_CURRENCY
    theme_preference: ThemePreference = Field(
        default=ThemePreference.SYSTEM,
        alias="themePreference"
    )
    notification_preferences: NotificationPreferences = Field(
        default=DEFAULT_NOTIFICATION_PREFERENCES,
        alias="notificationPreferences"
    )

    def category_ids(self) -> set[str]:
        return {category.id for category in self.categories}

    def account_ids(self) -> set[str]:
        return {account.id for account in self.accounts}

    def find_category(self, category_id: Optional[str]) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    def find_account(self, account_id: Optional[str]) -> Optional[Account]:
        return next((a for a in self.accounts if a.id == account_id), None)


def is_month_key(value: str) -> bool:
    return bool(re.match(MONTH_KEY_PATTERN, value or ""))
