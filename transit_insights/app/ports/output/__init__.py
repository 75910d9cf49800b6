from .feed_provider import IFeedProvider
from .history_store import IHistoryStore

__all__ = [
    "IFeedProvider",
    "IHistoryStore",
]
