"""Validation of user input before it becomes reducer actions."""

from expense_tracker.validation.validator import (
    FormValidationError,
    FormValidationResult,
    ValidationIssue,
    build_account_action,
    build_budget_action,
    build_transaction_actions,
    validate_account_form,
    validate_budget_form,
    validate_transaction_form,
)

__all__ = [
    "FormValidationError",
    "FormValidationResult",
    "ValidationIssue",
    "build_account_action",
    "build_budget_action",
    "build_transaction_actions",
    "validate_account_form",
    "validate_budget_form",
    "validate_transaction_form",
]
