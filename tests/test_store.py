"""Tests for the state container."""

from datetime import datetime, timezone

from expense_tracker.models import (
    AddTransaction,
    DateFilterPreset,
    DeleteTransaction,
    ThemePreference,
    find_currency_by_code,
)
from expense_tracker.state import Store, build_initial_state


class TestInitialState:
    """Tests for the state before anything is loaded."""

    def test_defaults(self, initial_state):
        """Test the initial state has defaults and this month in view."""
        assert initial_state.transactions == ()
        assert initial_state.budgets == ()
        assert len(initial_state.accounts) == 1
        assert initial_state.theme_preference == ThemePreference.SYSTEM
        assert initial_state.date_filter.preset == DateFilterPreset.THIS_MONTH
        assert initial_state.date_filter.start_date == "2024-03-01T00:00:00.000Z"
        assert initial_state.date_filter.end_date == "2024-03-31T23:59:59.999Z"

    def test_currency_override(self):
        """Test the initial currency can be chosen."""
        state = build_initial_state(
            now=datetime(2024, 1, 1, tzinfo=timezone.utc),
            currency=find_currency_by_code("GBP"),
        )
        assert state.currency.code == "GBP"


class TestStore:
    """Tests for dispatch and subscriptions."""

    def test_dispatch_notifies_listeners(self, store, make_transaction):
        """Test listeners get previous and current state with the action."""
        calls = []
        store.subscribe(lambda previous, current, action: calls.append((previous, current, action)))

        action = AddTransaction(transaction=make_transaction("t1", -1))
        store.dispatch(action)

        assert len(calls) == 1
        previous, current, received = calls[0]
        assert previous.transactions == ()
        assert current is store.state
        assert received is action

    def test_noop_does_not_notify(self, store):
        """Test an action that changes nothing is silent."""
        calls = []
        store.subscribe(lambda *args: calls.append(args))
        before = store.state

        assert store.dispatch(DeleteTransaction(id="missing")) is before
        assert calls == []

    def test_unsubscribe(self, store, make_transaction):
        """Test a removed listener is no longer called."""
        calls = []
        unsubscribe = store.subscribe(lambda *args: calls.append(args))
        unsubscribe()
        unsubscribe()

        store.dispatch(AddTransaction(transaction=make_transaction("t1", -1)))
        assert calls == []

    def test_failing_listener_does_not_stop_others(self, store, make_transaction):
        """Test one broken listener does not block the rest or the change."""
        calls = []

        def broken(previous, current, action):
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(lambda *args: calls.append(args))

        store.dispatch(AddTransaction(transaction=make_transaction("t1", -1)))
        assert len(calls) == 1
        assert store.state.transactions[0].id == "t1"

    def test_custom_reducer(self):
        """Test the store uses the reducer it is given."""
        replacement = build_initial_state(now=datetime(2023, 1, 1, tzinfo=timezone.utc))
        store = Store(build_initial_state(), reducer=lambda state, action: replacement)
        store.dispatch(object())
        assert store.state is replacement
