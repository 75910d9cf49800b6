class InsightsError(Exception):
    """Base exception for feed, insights and history failures."""
