from .base import InsightsError


class SnapshotNotFound(InsightsError):
    """Raised when a history entry id has no resolvable index descriptor."""


class PersistenceError(InsightsError):
    """Raised when the history store fails to read or write a blob."""
