from .base import InsightsError
from .feed import UpstreamFetchError, UpstreamShapeError
from .history import PersistenceError, SnapshotNotFound

__all__ = [
    "InsightsError",
    "PersistenceError",
    "SnapshotNotFound",
    "UpstreamFetchError",
    "UpstreamShapeError",
]
