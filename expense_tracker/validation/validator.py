"""
Form Validation

The reducer accepts whatever it is given and repairs it silently.
Rejecting bad user input is therefore the job of the layer that builds
actions, and that is what this module does.

DESIGN DECISION: Validation happens in two stages, per form:

STAGE 1 - SCHEMA VALIDATION:
- Required fields present
- Numbers parse and have the right sign
- Formats (month keys)

STAGE 2 - SEMANTIC VALIDATION (needs the current state):
- Referenced account exists
- One budget per (category, month)
- Unique account name and number (case-insensitive)

Stage 2 checks for a field only run when stage 1 passed for it.

IMPORTANT: Validation NEVER fixes input. It reports issues; callers
only dispatch actions for valid forms.
"""

import math
from datetime import datetime
from typing import Any, Callable, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field

from expense_tracker.analytics.periods import format_instant, parse_instant
from expense_tracker.models.actions import (
    AccountPatch,
    AddAccount,
    AddBudget,
    AddCategory,
    AddTransaction,
    BudgetPatch,
    TransactionPatch,
    UpdateAccount,
    UpdateBudget,
    UpdateTransaction,
)
from expense_tracker.models.ledger import (
    Account,
    AccountType,
    AppState,
    Budget,
    Category,
    Transaction,
    is_month_key,
)


NumberInput = Union[str, int, float, None]


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Form field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class FormValidationResult(BaseModel):
    """Outcome of validating one form."""

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    def errors_by_field(self) -> dict[str, str]:
        """First error message per field, for showing next to the inputs."""
        errors: dict[str, str] = {}
        for issue in self.issues:
            if issue.severity == "error":
                errors.setdefault(issue.field, issue.message)
        return errors


class FormValidationError(Exception):
    """Raised when actions are requested for a form that did not validate."""

    def __init__(self, result: FormValidationResult):
        self.result = result
        messages = "; ".join(issue.message for issue in result.issues)
        super().__init__(f"Form validation failed: {messages}")


def _result(issues: list[ValidationIssue]) -> FormValidationResult:
    return FormValidationResult(
        is_valid=not any(issue.severity == "error" for issue in issues),
        issues=issues,
    )


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_number(value: NumberInput) -> Optional[float]:
    """The number in a form input, or None if it is not one."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


# =============================================================================
# TRANSACTIONS
# =============================================================================

def validate_transaction_form(
    title: Optional[str],
    amount: NumberInput,
    category_name: Optional[str],
    account_id: Optional[str],
    state: AppState,
) -> FormValidationResult:
    """
    Checks:
    - title and category name are required
    - amount is required and a non-zero number (the sign picks income/expense)
    - the account exists
    """
    issues = []

    # Stage 1: schema
    if _is_blank(title):
        issues.append(ValidationIssue(
            field="title",
            issue_type="missing",
            message="Title is required",
        ))

    if _is_blank(amount):
        issues.append(ValidationIssue(
            field="amount",
            issue_type="missing",
            message="Amount is required",
        ))
    else:
        parsed = _parse_number(amount)
        if parsed is None or parsed == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Enter a non-zero number",
            ))

    if _is_blank(category_name):
        issues.append(ValidationIssue(
            field="category",
            issue_type="missing",
            message="Category is required",
        ))

    # Stage 2: semantic
    if _is_blank(account_id) or state.find_account(account_id) is None:
        issues.append(ValidationIssue(
            field="account",
            issue_type="unknown_reference",
            message="Select an account",
        ))

    return _result(issues)


def build_transaction_actions(
    state: AppState,
    title: Optional[str],
    amount: NumberInput,
    category_name: Optional[str],
    account_id: Optional[str],
    date: Union[datetime, str, None] = None,
    receipt_uri: Optional[str] = None,
    transaction_id: Optional[str] = None,
    id_factory: Callable[[], str] = lambda: str(uuid4()),
) -> list:
    """
    Turn a transaction form into the actions to dispatch, in order.

    The category name is matched case-insensitively against existing
    categories; an unknown name yields an `AddCategory` first. An id
    already in the ledger yields an `UpdateTransaction`, anything else
    an `AddTransaction`.

    Raises:
        FormValidationError: if the form is invalid
    """
    result = validate_transaction_form(title, amount, category_name, account_id, state)
    if not result.is_valid:
        raise FormValidationError(result)

    actions = []
    wanted = category_name.strip()
    category = next(
        (c for c in state.categories if c.name.lower() == wanted.lower()),
        None,
    )
    if category is None:
        category = Category(id=id_factory(), name=wanted)
        actions.append(AddCategory(category=category))

    when = parse_instant(date) if date is not None else None
    fields = {
        "title": title.strip(),
        "amount": _parse_number(amount),
        "date": format_instant(when or datetime.now().astimezone()),
        "category_id": category.id,
        "account_id": account_id,
        "receipt_uri": receipt_uri,
    }

    if transaction_id and any(t.id == transaction_id for t in state.transactions):
        actions.append(UpdateTransaction(patch=TransactionPatch(id=transaction_id, **fields)))
    else:
        actions.append(AddTransaction(
            transaction=Transaction(id=transaction_id or id_factory(), **fields)
        ))
    return actions


# =============================================================================
# BUDGETS
# =============================================================================

def validate_budget_form(
    amount: NumberInput,
    category_id: Optional[str],
    month: Optional[str],
    state: AppState,
    editing_budget_id: Optional[str] = None,
) -> FormValidationResult:
    """
    Checks:
    - amount is a positive number
    - a category is selected and exists
    - month is YYYY-MM
    - no other budget exists for the same category and month
    """
    issues = []

    # Stage 1: schema
    if _is_blank(amount):
        issues.append(ValidationIssue(
            field="amount",
            issue_type="missing",
            message="Amount is required",
        ))
    else:
        parsed = _parse_number(amount)
        if parsed is None or parsed <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Enter a positive number",
            ))

    month_ok = not _is_blank(month) and is_month_key(month)
    if not month_ok:
        issues.append(ValidationIssue(
            field="month",
            issue_type="invalid_format",
            message="Month must be formatted YYYY-MM",
        ))

    if _is_blank(category_id):
        issues.append(ValidationIssue(
            field="category",
            issue_type="missing",
            message="Select a category",
        ))
    # Stage 2: semantic
    elif state.find_category(category_id) is None:
        issues.append(ValidationIssue(
            field="category",
            issue_type="unknown_reference",
            message="Select a category",
        ))
    elif month_ok and any(
        b.category_id == category_id and b.month == month and b.id != editing_budget_id
        for b in state.budgets
    ):
        issues.append(ValidationIssue(
            field="category",
            issue_type="duplicate",
            message="A budget already exists for this category.",
        ))

    return _result(issues)


def build_budget_action(
    state: AppState,
    amount: NumberInput,
    category_id: Optional[str],
    month: Optional[str],
    editing_budget_id: Optional[str] = None,
    id_factory: Callable[[], str] = lambda: str(uuid4()),
):
    """
    Raises:
        FormValidationError: if the form is invalid
    """
    result = validate_budget_form(amount, category_id, month, state, editing_budget_id)
    if not result.is_valid:
        raise FormValidationError(result)

    fields = {"category_id": category_id, "amount": _parse_number(amount), "month": month}
    if editing_budget_id and any(b.id == editing_budget_id for b in state.budgets):
        return UpdateBudget(patch=BudgetPatch(id=editing_budget_id, **fields))
    return AddBudget(budget=Budget(id=editing_budget_id or id_factory(), **fields))


# =============================================================================
# ACCOUNTS
# =============================================================================

def validate_account_form(
    name: Optional[str],
    account_number: Optional[str],
    initial_balance: NumberInput,
    state: AppState,
    editing_account_id: Optional[str] = None,
) -> FormValidationResult:
    """
    Checks:
    - name and account number are required
    - both are unique among the other accounts (case-insensitive)
    - the starting balance is a number
    """
    issues = []
    others = [a for a in state.accounts if a.id != editing_account_id]

    if _is_blank(name):
        issues.append(ValidationIssue(
            field="name",
            issue_type="missing",
            message="Account name is required",
        ))
    elif any(a.name.lower() == name.strip().lower() for a in others):
        issues.append(ValidationIssue(
            field="name",
            issue_type="duplicate",
            message="An account with this name already exists",
        ))

    if _is_blank(account_number):
        issues.append(ValidationIssue(
            field="account_number",
            issue_type="missing",
            message="Account number is required",
        ))
    elif any(a.account_number.lower() == account_number.strip().lower() for a in others):
        issues.append(ValidationIssue(
            field="account_number",
            issue_type="duplicate",
            message="This account number is already in use",
        ))

    if _is_blank(initial_balance):
        issues.append(ValidationIssue(
            field="initial_balance",
            issue_type="missing",
            message="Enter the starting balance",
        ))
    elif _parse_number(initial_balance) is None:
        issues.append(ValidationIssue(
            field="initial_balance",
            issue_type="invalid_value",
            message="Enter a valid number",
        ))

    return _result(issues)


def build_account_action(
    state: AppState,
    name: Optional[str],
    account_number: Optional[str],
    initial_balance: NumberInput,
    account_type: AccountType = AccountType.CASH,
    include_in_balance: bool = True,
    editing_account_id: Optional[str] = None,
    id_factory: Callable[[], str] = lambda: str(uuid4()),
):
    """
    Raises:
        FormValidationError: if the form is invalid
    """
    result = validate_account_form(name, account_number, initial_balance, state, editing_account_id)
    if not result.is_valid:
        raise FormValidationError(result)

    fields = {
        "name": name.strip(),
        "type": AccountType(account_type),
        "account_number": account_number.strip(),
        "initial_balance": _parse_number(initial_balance),
        "include_in_balance": include_in_balance,
    }
    if editing_account_id and state.find_account(editing_account_id) is not None:
        return UpdateAccount(patch=AccountPatch(id=editing_account_id, **fields))
    return AddAccount(account=Account(id=editing_account_id or id_factory(), **fields))
