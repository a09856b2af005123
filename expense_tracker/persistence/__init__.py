"""Per-slice hydration and persistence of the application state."""

from expense_tracker.persistence.coordinator import PersistenceCoordinator
from expense_tracker.persistence.slices import (
    SLICES,
    Slice,
    SliceName,
    dumps_canonical,
    serialize_slice,
)

__all__ = [
    "SLICES",
    "PersistenceCoordinator",
    "Slice",
    "SliceName",
    "dumps_canonical",
    "serialize_slice",
]
