"""
State Reducer

`reduce(state, action)` computes the next AppState. It is the only place
state changes are decided.

DESIGN DECISION: The reducer never raises for data reasons. Invalid or
stale actions are absorbed (no-op) or corrected by fallback substitution:
- a dangling or missing category becomes "uncategorized"
- a dangling account becomes the first account
- an empty category list becomes the default set
- an empty account list is reseeded with the default Cash account

Cascades (deleting a category or an account) are computed in a single
pass: the full next state is built at once, no follow-up actions.

When an action changes nothing the same state object is returned, so
callers can detect changes with an identity check.
"""

from typing import Any, Callable, Iterable, Optional, TypeVar

import structlog
from pydantic import ValidationError

from expense_tracker.models.actions import (
    AddAccount,
    AddBudget,
    AddCategory,
    AddTransaction,
    DeleteAccount,
    DeleteAccountAndTransactions,
    DeleteAccountReassigning,
    DeleteBudget,
    DeleteCategory,
    DeleteTransaction,
    PatchModel,
    ReconcileReferences,
    SetAccounts,
    SetBudgets,
    SetCategories,
    SetCurrency,
    SetDateFilter,
    SetNotificationPreferences,
    SetThemePreference,
    SetTransactions,
    UpdateAccount,
    UpdateBudget,
    UpdateCategory,
    UpdateTransaction,
)
from expense_tracker.models.ledger import (
    DEFAULT_ACCOUNT,
    DEFAULT_CATEGORY_ID,
    AppState,
    LedgerModel,
    Transaction,
)
from expense_tracker.normalization import (
    ensure_category_set,
    normalize_account,
    normalize_transaction,
)


logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=LedgerModel)
Handler = Callable[[AppState, Any], AppState]

_HANDLERS: dict[type, Handler] = {}

# Fields a patch may not blank out; a None for these means "keep".
_TRANSACTION_REQUIRED = frozenset({"title", "amount", "date", "account_id"})
_CATEGORY_REQUIRED = frozenset({"name", "icon"})
_BUDGET_REQUIRED = frozenset({"category_id", "amount", "month"})
_ACCOUNT_REQUIRED = frozenset({"name", "type", "initial_balance", "include_in_balance"})


def reduce(state: AppState, action: Any) -> AppState:
    """Apply one action. Unknown actions leave the state untouched."""
    handler = _HANDLERS.get(type(action))
    if handler is None:
        logger.warning("unknown_action", action=type(action).__name__)
        return state
    return handler(state, action)


def _handles(*action_types: type) -> Callable[[Handler], Handler]:
    def register(handler: Handler) -> Handler:
        for action_type in action_types:
            _HANDLERS[action_type] = handler
        return handler
    return register


# =============================================================================
# HELPERS
# =============================================================================

def _upsert(records: tuple, record, at_front: bool = False) -> tuple:
    """Replace the record with the same id in place, or insert it."""
    if any(existing.id == record.id for existing in records):
        return tuple(record if existing.id == record.id else existing for existing in records)
    return (record,) + records if at_front else records + (record,)


def _find(records: Iterable, record_id: str):
    return next((record for record in records if record.id == record_id), None)


def _merge(record: RecordT, patch: PatchModel, required: frozenset) -> RecordT:
    """
    Merge the fields a patch explicitly supplied over a stored record.

    The record is rebuilt through validation so derived fields (such as
    a transaction's type) are recomputed. A patch that would produce an
    invalid record is rejected and the record kept.
    """
    changes = {
        field: value
        for field, value in patch.changes().items()
        if not (value is None and field in required)
    }
    if not changes:
        return record
    try:
        return type(record).model_validate({**record.model_dump(), **changes})
    except ValidationError as e:
        logger.warning(
            "patch_rejected",
            record_type=type(record).__name__,
            record_id=record.id,
            error=str(e),
        )
        return record


def _repair_references(
    transaction: Transaction,
    category_ids: Optional[set[str]],
    account_ids: Optional[set[str]],
    fallback_account_id: str,
) -> Transaction:
    """A None id set leaves that reference unchecked."""
    changes = {}
    if category_ids is not None and transaction.category_id not in category_ids:
        changes["category_id"] = DEFAULT_CATEGORY_ID
    if account_ids is not None and transaction.account_id not in account_ids:
        changes["account_id"] = fallback_account_id
    return transaction.model_copy(update=changes) if changes else transaction


def _prepare_transaction(state: AppState, transaction: Transaction) -> Transaction:
    return _repair_references(
        normalize_transaction(transaction),
        state.category_ids(),
        state.account_ids(),
        state.accounts[0].id,
    )


def _reconcile(state: AppState, categories: bool = True, accounts: bool = True) -> AppState:
    """
    Point dangling transaction references at their fallback.

    Replacing one list only repairs references into that list, so slices
    can load in any order without repairing against a list not yet loaded.
    """
    category_ids = state.category_ids() if categories else None
    account_ids = state.account_ids() if accounts else None
    fallback_account_id = state.accounts[0].id

    repaired = tuple(
        _repair_references(t, category_ids, account_ids, fallback_account_id)
        for t in state.transactions
    )
    if all(new is old for new, old in zip(repaired, state.transactions)):
        return state
    return state.model_copy(update={"transactions": repaired})


# =============================================================================
# TRANSACTIONS
# =============================================================================

@_handles(AddTransaction)
def _add_transaction(state: AppState, action: AddTransaction) -> AppState:
    transaction = _prepare_transaction(state, action.transaction)
    return state.model_copy(update={
        "transactions": _upsert(state.transactions, transaction, at_front=True),
    })


@_handles(UpdateTransaction)
def _update_transaction(state: AppState, action: UpdateTransaction) -> AppState:
    existing = _find(state.transactions, action.patch.id)
    if existing is None:
        return state

    updated = _prepare_transaction(state, _merge(existing, action.patch, _TRANSACTION_REQUIRED))
    if updated == existing:
        return state
    return state.model_copy(update={"transactions": _upsert(state.transactions, updated)})


@_handles(DeleteTransaction)
def _delete_transaction(state: AppState, action: DeleteTransaction) -> AppState:
    if _find(state.transactions, action.id) is None:
        return state
    return state.model_copy(update={
        "transactions": tuple(t for t in state.transactions if t.id != action.id),
    })


@_handles(SetTransactions)
def _set_transactions(state: AppState, action: SetTransactions) -> AppState:
    next_state = state.model_copy(update={
        "transactions": tuple(normalize_transaction(t) for t in action.transactions),
    })
    return _reconcile(next_state) if action.reconcile else next_state


@_handles(ReconcileReferences)
def _reconcile_references(state: AppState, action: ReconcileReferences) -> AppState:
    return _reconcile(state)


# =============================================================================
# CATEGORIES
# =============================================================================

@_handles(SetCategories)
def _set_categories(state: AppState, action: SetCategories) -> AppState:
    return _reconcile(
        state.model_copy(update={"categories": ensure_category_set(action.categories)}),
        accounts=False,
    )


@_handles(AddCategory)
def _add_category(state: AppState, action: AddCategory) -> AppState:
    return state.model_copy(update={
        "categories": _upsert(state.categories, action.category),
    })


@_handles(UpdateCategory)
def _update_category(state: AppState, action: UpdateCategory) -> AppState:
    existing = _find(state.categories, action.patch.id)
    if existing is None:
        return state
    updated = _merge(existing, action.patch, _CATEGORY_REQUIRED)
    if updated == existing:
        return state
    return state.model_copy(update={"categories": _upsert(state.categories, updated)})


@_handles(DeleteCategory)
def _delete_category(state: AppState, action: DeleteCategory) -> AppState:
    """Remove a category, moving its transactions to "uncategorized" and dropping its budgets."""
    if action.id == DEFAULT_CATEGORY_ID or state.find_category(action.id) is None:
        return state

    categories = ensure_category_set(c for c in state.categories if c.id != action.id)
    transactions = tuple(
        t.model_copy(update={"category_id": DEFAULT_CATEGORY_ID}) if t.category_id == action.id else t
        for t in state.transactions
    )
    budgets = tuple(b for b in state.budgets if b.category_id != action.id)

    return state.model_copy(update={
        "categories": categories,
        "transactions": transactions,
        "budgets": budgets,
    })


# =============================================================================
# BUDGETS
# =============================================================================

@_handles(SetBudgets)
def _set_budgets(state: AppState, action: SetBudgets) -> AppState:
    return state.model_copy(update={"budgets": tuple(action.budgets)})


@_handles(AddBudget)
def _add_budget(state: AppState, action: AddBudget) -> AppState:
    return state.model_copy(update={"budgets": _upsert(state.budgets, action.budget)})


@_handles(UpdateBudget)
def _update_budget(state: AppState, action: UpdateBudget) -> AppState:
    existing = _find(state.budgets, action.patch.id)
    if existing is None:
        return state
    updated = _merge(existing, action.patch, _BUDGET_REQUIRED)
    if updated == existing:
        return state
    return state.model_copy(update={"budgets": _upsert(state.budgets, updated)})


@_handles(DeleteBudget)
def _delete_budget(state: AppState, action: DeleteBudget) -> AppState:
    if _find(state.budgets, action.id) is None:
        return state
    return state.model_copy(update={
        "budgets": tuple(b for b in state.budgets if b.id != action.id),
    })


# =============================================================================
# ACCOUNTS
# =============================================================================

@_handles(SetAccounts)
def _set_accounts(state: AppState, action: SetAccounts) -> AppState:
    accounts = tuple(normalize_account(a) for a in action.accounts) or (DEFAULT_ACCOUNT,)
    return _reconcile(state.model_copy(update={"accounts": accounts}), categories=False)


@_handles(AddAccount)
def _add_account(state: AppState, action: AddAccount) -> AppState:
    return state.model_copy(update={
        "accounts": _upsert(state.accounts, normalize_account(action.account)),
    })


@_handles(UpdateAccount)
def _update_account(state: AppState, action: UpdateAccount) -> AppState:
    """
    Merge an account patch.

    An explicit null account number becomes "" (via the model); a null
    include flag keeps the previous value.
    """
    existing = _find(state.accounts, action.patch.id)
    if existing is None:
        return state
    updated = _merge(existing, action.patch, _ACCOUNT_REQUIRED)
    if updated == existing:
        return state
    return state.model_copy(update={"accounts": _upsert(state.accounts, updated)})


def _remove_account(state: AppState, account_id: str, reassign_to: Optional[str]) -> AppState:
    """
    Remove an account and resolve its transactions.

    With `reassign_to` the transactions move to that account (or to the
    first remaining one if it does not exist); without it they are deleted.
    """
    if state.find_account(account_id) is None:
        return state

    accounts = tuple(a for a in state.accounts if a.id != account_id) or (DEFAULT_ACCOUNT,)

    if reassign_to is None:
        transactions = tuple(t for t in state.transactions if t.account_id != account_id)
    else:
        if _find(accounts, reassign_to) is None:
            reassign_to = accounts[0].id
        transactions = tuple(
            t.model_copy(update={"account_id": reassign_to}) if t.account_id == account_id else t
            for t in state.transactions
        )

    return _reconcile(
        state.model_copy(update={"accounts": accounts, "transactions": transactions}),
        categories=False,
    )


@_handles(DeleteAccount)
def _delete_account(state: AppState, action: DeleteAccount) -> AppState:
    return _remove_account(state, action.id, action.reassign_account_id)


@_handles(DeleteAccountReassigning)
def _delete_account_reassigning(state: AppState, action: DeleteAccountReassigning) -> AppState:
    return _remove_account(state, action.id, action.reassign_account_id)


@_handles(DeleteAccountAndTransactions)
def _delete_account_and_transactions(
    state: AppState,
    action: DeleteAccountAndTransactions,
) -> AppState:
    return _remove_account(state, action.id, None)


# =============================================================================
# PREFERENCES
# =============================================================================

@_handles(SetDateFilter)
def _set_date_filter(state: AppState, action: SetDateFilter) -> AppState:
    return state.model_copy(update={"date_filter": action.date_filter})


@_handles(SetCurrency)
def _set_currency(state: AppState, action: SetCurrency) -> AppState:
    return state.model_copy(update={"currency": action.currency})


@_handles(SetThemePreference)
def _set_theme_preference(state: AppState, action: SetThemePreference) -> AppState:
    return state.model_copy(update={"theme_preference": action.theme_preference})


@_handles(SetNotificationPreferences)
def _set_notification_preferences(
    state: AppState,
    action: SetNotificationPreferences,
) -> AppState:
    return state.model_copy(update={"notification_preferences": action.preferences})
