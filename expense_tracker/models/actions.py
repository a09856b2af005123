"""
Reducer Actions

Every mutation of the application state is expressed as one of these
actions and applied by `expense_tracker.state.reducer.reduce`.

DESIGN DECISION: Actions are a discriminated union on `kind`, so a stored
or logged action can be parsed back with `parse_action`.

Update actions carry a *patch*: only the fields the caller actually set
are merged over the stored record (`model_fields_set`), everything else
keeps its previous value.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from expense_tracker.models.ledger import (
    Account,
    AccountType,
    Budget,
    Category,
    CurrencyOption,
    DateFilter,
    NotificationPreferences,
    ThemePreference,
    Transaction,
)


class ActionModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class PatchModel(BaseModel):
    """Partial record; `changes()` returns only the fields explicitly supplied."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"id"})


# =============================================================================
# PATCHES
# =============================================================================

class TransactionPatch(PatchModel):
    title: Optional[str] = None
    amount: Optional[float] = None
    date: Optional[str] = None
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    account_id: Optional[str] = Field(default=None, alias="accountId")
    receipt_uri: Optional[str] = Field(default=None, alias="receiptUri")


class CategoryPatch(PatchModel):
    name: Optional[str] = None
    icon: Optional[str] = None


class BudgetPatch(PatchModel):
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    amount: Optional[float] = Field(default=None, ge=0)
    month: Optional[str] = None


class AccountPatch(PatchModel):
    name: Optional[str] = None
    type: Optional[AccountType] = None
    account_number: Optional[str] = Field(default=None, alias="accountNumber")
    initial_balance: Optional[float] = Field(default=None, alias="initialBalance")
    include_in_balance: Optional[bool] = Field(default=None, alias="includeInBalance")


# =============================================================================
# TRANSACTIONS
# =============================================================================

class AddTransaction(ActionModel):
    kind: Literal["add_transaction"] = "add_transaction"
    transaction: Transaction


class UpdateTransaction(ActionModel):
    kind: Literal["update_transaction"] = "update_transaction"
    patch: TransactionPatch


class DeleteTransaction(ActionModel):
    kind: Literal["delete_transaction"] = "delete_transaction"
    id: str


class SetTransactions(ActionModel):
    """
    Replace the whole ledger.

    `reconcile=False` is used while hydrating, when the account and
    category slices may not have loaded yet; `ReconcileReferences` then
    repairs references once every slice is in.
    """
    kind: Literal["set_transactions"] = "set_transactions"
    transactions: tuple[Transaction, ...]
    reconcile: bool = True


# =============================================================================
# CATEGORIES
# =============================================================================

class SetCategories(ActionModel):
    kind: Literal["set_categories"] = "set_categories"
    categories: tuple[Category, ...]


class AddCategory(ActionModel):
    kind: Literal["add_category"] = "add_category"
    category: Category


class UpdateCategory(ActionModel):
    kind: Literal["update_category"] = "update_category"
    patch: CategoryPatch


class DeleteCategory(ActionModel):
    kind: Literal["delete_category"] = "delete_category"
    id: str


# =============================================================================
# BUDGETS
# =============================================================================

class SetBudgets(ActionModel):
    kind: Literal["set_budgets"] = "set_budgets"
    budgets: tuple[Budget, ...]


class AddBudget(ActionModel):
    kind: Literal["add_budget"] = "add_budget"
    budget: Budget


class UpdateBudget(ActionModel):
    kind: Literal["update_budget"] = "update_budget"
    patch: BudgetPatch


class DeleteBudget(ActionModel):
    kind: Literal["delete_budget"] = "delete_budget"
    id: str


# =============================================================================
# ACCOUNTS
# =============================================================================

class SetAccounts(ActionModel):
    kind: Literal["set_accounts"] = "set_accounts"
    accounts: tuple[Account, ...]


class AddAccount(ActionModel):
    kind: Literal["add_account"] = "add_account"
    account: Account


class UpdateAccount(ActionModel):
    kind: Literal["update_account"] = "update_account"
    patch: AccountPatch


class DeleteAccount(ActionModel):
    """
    Remove an account.

    With `reassign_account_id` its transactions move to that account,
    without it they are deleted too. Prefer the explicit
    `DeleteAccountReassigning` / `DeleteAccountAndTransactions`.
    """
    kind: Literal["delete_account"] = "delete_account"
    id: str
    reassign_account_id: Optional[str] = Field(default=None, alias="reassignAccountId")


class DeleteAccountReassigning(ActionModel):
    kind: Literal["delete_account_reassigning"] = "delete_account_reassigning"
    id: str
    reassign_account_id: str = Field(..., alias="reassignAccountId")


class DeleteAccountAndTransactions(ActionModel):
    kind: Literal["delete_account_and_transactions"] = "delete_account_and_transactions"
    id: str


# =============================================================================
# PREFERENCES
# =============================================================================

class SetDateFilter(ActionModel):
    kind: Literal["set_date_filter"] = "set_date_filter"
    date_filter: DateFilter


class SetCurrency(ActionModel):
    kind: Literal["set_currency"] = "set_currency"
    currency: CurrencyOption


class SetThemePreference(ActionModel):
    kind: Literal["set_theme_preference"] = "set_theme_preference"
    theme_preference: ThemePreference


class SetNotificationPreferences(ActionModel):
    kind: Literal["set_notification_preferences"] = "set_notification_preferences"
    preferences: NotificationPreferences


class ReconcileReferences(ActionModel):
    """Repair dangling account/category references across the ledger."""
    kind: Literal["reconcile_references"] = "reconcile_references"


Action = Annotated[
    Union[
        AddTransaction,
        UpdateTransaction,
        DeleteTransaction,
        SetTransactions,
        SetCategories,
        AddCategory,
        UpdateCategory,
        DeleteCategory,
        SetBudgets,
        AddBudget,
        UpdateBudget,
        DeleteBudget,
        SetAccounts,
        AddAccount,
        UpdateAccount,
        DeleteAccount,
        DeleteAccountReassigning,
        DeleteAccountAndTransactions,
        SetDateFilter,
        SetCurrency,
        SetThemePreference,
        SetNotificationPreferences,
        ReconcileReferences,
    ],
    Field(discriminator="kind"),
]

_action_adapter: TypeAdapter[Action] = TypeAdapter(Action)


def parse_action(data: dict[str, Any]) -> Action:
    """Parse a plain dict (e.g. from a log or test fixture) into an action."""
    return _action_adapter.validate_python(data)
