from .base import InsightsError


class UpstreamFetchError(InsightsError):
    """Raised when the feed provider answers non-2xx or cannot be reached."""


class UpstreamShapeError(InsightsError):
    """Raised when a feed envelope cannot be decoded as the expected shape."""
