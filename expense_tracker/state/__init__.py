"""Application state: the reducer and the container that owns the current state."""

from expense_tracker.state.initial import build_initial_state
from expense_tracker.state.reducer import reduce
from expense_tracker.state.store import Store

__all__ = ["Store", "build_initial_state", "reduce"]
