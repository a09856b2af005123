"""
Record Normalization

Repairs records coming from storage (or from older versions of the
record shape) into valid current-schema entities.

DESIGN DECISION: Normalization never fails a whole slice because of one
bad record. Records that cannot be repaired are skipped and logged;
everything else is coerced into shape. A slice that is unusable as a
whole is reported as `None` so hydration keeps the defaults.

All functions here are pure apart from logging.
"""

import math
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Union

import structlog
from pydantic import ValidationError

from expense_tracker.models.ledger import (
    DEFAULT_ACCOUNT,
    DEFAULT_ACCOUNT_ID,
    DEFAULT_CATEGORIES,
    DEFAULT_CATEGORY_ID,
    DEFAULT_NOTIFICATION_PREFERENCES,
    Account,
    Budget,
    Category,
    CurrencyOption,
    DateFilter,
    LegacyTransaction,
    NotificationPreferences,
    ThemePreference,
    Transaction,
    TransactionType,
)


logger = structlog.get_logger(__name__)

TransactionRecord = Union[Transaction, LegacyTransaction]


# =============================================================================
# TRANSACTIONS
# =============================================================================

def parse_transaction_record(raw: Any) -> TransactionRecord:
    """
    Classify a raw record as current-shape or legacy-shape.

    Raises:
        ValueError: if the record is not even a legacy transaction
                    (for example, it has no id).
    """
    if isinstance(raw, (Transaction, LegacyTransaction)):
        return raw
    if not isinstance(raw, dict):
        raise ValueError(f"Transaction record must be a mapping, got {type(raw).__name__}")

    if "category" not in raw:
        try:
            return Transaction.model_validate(raw)
        except ValidationError:
            pass

    try:
        return LegacyTransaction.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Unrecognised transaction record: {e}") from e


def _coerce_amount(value: Any) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def _legacy_category_id(name: str) -> str:
    wanted = name.lower()
    match = next((c for c in DEFAULT_CATEGORIES if c.name.lower() == wanted), None)
    return match.id if match else DEFAULT_CATEGORY_ID


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_transaction(raw: Any) -> Transaction:
    """
    Convert a current or legacy transaction record into the canonical shape.

    1. amount parsed as a number (0 when unparsable)
    2. income if the declared type is income or the amount is >= 0
    3. amount sign forced to agree with that type
    4. category: explicit id, else legacy name matched against the
       default categories, else "uncategorized"
    5. account: given id, else the default account id
    6. receipt defaults to None
    7. final type re-derived from the signed amount (by the model)

    Idempotent: normalizing a normalized transaction returns an equal one.
    """
    record = parse_transaction_record(raw)

    amount = _coerce_amount(record.amount)
    # Transaction validation overwrites type; the declared one is only on the raw mapping
    declared_type = raw.get("type") if isinstance(raw, dict) else record.type
    if isinstance(declared_type, TransactionType):
        declared_type = declared_type.value
    is_income = declared_type == TransactionType.INCOME.value or amount >= 0
    amount = abs(amount) if is_income else -abs(amount)

    if record.category_id:
        category_id = record.category_id
    elif isinstance(record, LegacyTransaction) and record.category:
        category_id = _legacy_category_id(record.category)
    else:
        category_id = DEFAULT_CATEGORY_ID

    return Transaction(
        id=record.id,
        title=record.title or "",
        amount=amount,
        date=record.date or _now_iso(),
        category_id=category_id,
        account_id=record.account_id or DEFAULT_ACCOUNT_ID,
        receipt_uri=record.receipt_uri,
    )


def normalize_transactions(raw: Any) -> Optional[tuple[Transaction, ...]]:
    """Normalize a stored transactions slice. Not a list -> None (absent)."""
    if not isinstance(raw, list):
        return None
    return tuple(_normalize_each(raw, normalize_transaction, "transaction"))


# =============================================================================
# ACCOUNTS
# =============================================================================

def normalize_account(raw: Any) -> Account:
    """
    Fill in fields older account records may lack.

    A non-string account number becomes "", a missing include flag True.
    """
    if isinstance(raw, Account):
        return raw
    if not isinstance(raw, dict):
        raise ValueError(f"Account record must be a mapping, got {type(raw).__name__}")
    return Account.model_validate(raw)


def normalize_accounts(raw: Any) -> tuple[Account, ...]:
    """Empty or unusable account lists fall back to the default Cash account."""
    if not isinstance(raw, list) or not raw:
        return (DEFAULT_ACCOUNT,)
    accounts = tuple(_normalize_each(raw, normalize_account, "account"))
    return accounts or (DEFAULT_ACCOUNT,)


# =============================================================================
# CATEGORIES
# =============================================================================

def ensure_category_set(categories: Iterable[Category]) -> tuple[Category, ...]:
    """
    Guarantee a usable category set.

    Empty -> the default set. Otherwise the user's categories are kept
    as-is, with the reserved "uncategorized" category prepended if missing.
    """
    categories = tuple(categories)
    if not categories:
        return DEFAULT_CATEGORIES
    if any(category.id == DEFAULT_CATEGORY_ID for category in categories):
        return categories
    return (DEFAULT_CATEGORIES[0],) + categories


def normalize_categories(raw: Any) -> tuple[Category, ...]:
    if not isinstance(raw, list):
        return DEFAULT_CATEGORIES
    return ensure_category_set(_normalize_each(raw, Category.model_validate, "category"))


# =============================================================================
# BUDGETS AND SINGLE-VALUE SLICES
# =============================================================================

def normalize_budgets(raw: Any) -> Optional[tuple[Budget, ...]]:
    if not isinstance(raw, list):
        return None
    return tuple(_normalize_each(raw, Budget.model_validate, "budget"))


def normalize_date_filter(raw: Any) -> Optional[DateFilter]:
    if not isinstance(raw, dict):
        return None
    try:
        return DateFilter.model_validate(raw)
    except ValidationError as e:
        logger.warning("date_filter_discarded", error=str(e))
        return None


def normalize_currency(raw: Any) -> Optional[CurrencyOption]:
    if not isinstance(raw, dict) or not raw.get("code"):
        return None
    try:
        return CurrencyOption.model_validate(raw)
    except ValidationError as e:
        logger.warning("currency_discarded", error=str(e))
        return None


def normalize_theme(raw: Any) -> Optional[ThemePreference]:
    try:
        return ThemePreference(raw)
    except ValueError:
        return None


def normalize_notification_preferences(raw: Any) -> NotificationPreferences:
    """Stored fields are merged over the defaults."""
    if not isinstance(raw, dict):
        return DEFAULT_NOTIFICATION_PREFERENCES
    merged = {**DEFAULT_NOTIFICATION_PREFERENCES.to_record(), **raw}
    try:
        return NotificationPreferences.model_validate(merged)
    except ValidationError as e:
        logger.warning("notification_preferences_discarded", error=str(e))
        return DEFAULT_NOTIFICATION_PREFERENCES


def _normalize_each(records: list, normalize, record_type: str) -> list:
    normalized = []
    for index, record in enumerate(records):
        try:
            normalized.append(normalize(record))
        except (ValueError, ValidationError) as e:
            logger.warning(
                "record_skipped",
                record_type=record_type,
                index=index,
                error=str(e),
            )
    return normalized
