"""External services used by the state core (storage backends)."""
