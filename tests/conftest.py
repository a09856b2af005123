"""
Shared fixtures.

Every state in the tests is built from a fixed "now" (2024-03-15 UTC),
so the initial date filter is always March 2024.
"""

from datetime import datetime, timezone

import pytest

from expense_tracker.models import (
    DEFAULT_ACCOUNT_ID,
    Account,
    AccountType,
    Transaction,
)
from expense_tracker.services.storage import InMemoryKeyValueStore
from expense_tracker.state import Store, build_initial_state


NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


def _make_transaction(
    id: str,
    amount: float,
    date: str = "2024-03-01T10:00:00.000Z",
    category_id: str = "food",
    account_id: str = DEFAULT_ACCOUNT_ID,
    title: str = "",
    receipt_uri=None,
) -> Transaction:
    return Transaction(
        id=id,
        title=title or id,
        amount=amount,
        date=date,
        category_id=category_id,
        account_id=account_id,
        receipt_uri=receipt_uri,
    )


@pytest.fixture
def make_transaction():
    """Factory for transactions booked in March 2024."""
    return _make_transaction


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def initial_state():
    return build_initial_state(now=NOW)


@pytest.fixture
def bank_account():
    return Account(
        id="account-bank",
        name="Checking",
        type=AccountType.BANK,
        account_number="1234",
        initial_balance=1000.0,
    )


@pytest.fixture
def store():
    return Store(build_initial_state(now=NOW))


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()
