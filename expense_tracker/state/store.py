"""
State Container

Holds the current AppState and is the single writer for it. Everything
else reads `store.state` or subscribes to changes.

Listeners are called synchronously, in subscription order, after the
new state is in place. A failing listener is logged and does not stop
the others or roll back the change.
"""

from typing import Any, Callable, Optional

import structlog

from expense_tracker.models.ledger import AppState
from expense_tracker.state.initial import build_initial_state
from expense_tracker.state.reducer import reduce


logger = structlog.get_logger(__name__)

Listener = Callable[[AppState, AppState, Any], None]
Reducer = Callable[[AppState, Any], AppState]


class Store:
    """
    Explicit state container.

    Usage:
        store = Store()
        unsubscribe = store.subscribe(lambda previous, current, action: ...)
        store.dispatch(AddTransaction(transaction=...))
    """

    def __init__(
        self,
        initial_state: Optional[AppState] = None,
        reducer: Reducer = reduce,
    ):
        self._state = initial_state if initial_state is not None else build_initial_state()
        self._reducer = reducer
        self._listeners: list[Listener] = []

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, action: Any) -> AppState:
        """
        Apply an action and notify listeners if the state changed.

        Returns the (possibly unchanged) current state.
        """
        previous = self._state
        current = self._reducer(previous, action)
        if current is previous or current == previous:
            return previous

        self._state = current
        for listener in list(self._listeners):
            try:
                listener(previous, current, action)
            except Exception as e:
                logger.error(
                    "store_listener_failed",
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    action=type(action).__name__,
                    error=str(e),
                    exc_info=True,
                )
        return current

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
