from .local_history_store import LocalHistoryStore
from .s3_history_store import S3HistoryStore

__all__ = [
    "LocalHistoryStore",
    "S3HistoryStore",
]
