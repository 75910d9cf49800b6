from .feed import Alert, InformedEntity, VehiclePosition
from .history import (
    DayCount,
    HistoryAlert,
    HistoryEntry,
    HistoryIndexEntry,
    HistorySummary,
    HistoryVehicle,
)
from .insights import (
    UNKNOWN_KEY,
    AlertTimelineItem,
    CountByKey,
    Correlation,
    InsightsSnapshot,
    InsightsTotals,
    RouteSummary,
)

__all__ = [
    "UNKNOWN_KEY",
    "Alert",
    "AlertTimelineItem",
    "CountByKey",
    "Correlation",
    "DayCount",
    "HistoryAlert",
    "HistoryEntry",
    "HistoryIndexEntry",
    "HistorySummary",
    "HistoryVehicle",
    "InformedEntity",
    "InsightsSnapshot",
    "InsightsTotals",
    "RouteSummary",
    "VehiclePosition",
]
