from __future__ import annotations

from dataclasses import dataclass

UNKNOWN_KEY = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class CountByKey:
    key: str
    count: int


@dataclass(frozen=True, slots=True)
class RouteSummary:
    route_id: str
    vehicle_count: int
    alert_count: int
    active_alert_count: int
    effects: tuple[str, ...] = ()
    last_vehicle_update: int | None = None


@dataclass(frozen=True, slots=True)
class AlertTimelineItem:
    alert_id: str
    header: str | None
    cause: str | None
    effect: str | None
    start: int | None
    end: int | None
    is_active_now: bool
    duration_minutes: int | None


@dataclass(frozen=True, slots=True)
class Correlation:
    alert_id: str
    header: str | None
    cause: str | None
    effect: str | None
    start: int | None
    end: int | None
    is_active_now: bool
    matched_vehicle_ids: tuple[str, ...] = ()
    matched_trip_ids: tuple[str, ...] = ()
    matched_route_ids: tuple[str, ...] = ()

    @property
    def matched_vehicle_count(self) -> int:
        return len(self.matched_vehicle_ids)


@dataclass(frozen=True, slots=True)
class InsightsTotals:
    vehicles: int = 0
    alerts: int = 0
    active_alerts: int = 0
    alerts_with_matches: int = 0
    vehicles_matched: int = 0
    unique_routes: int = 0
    routes_with_alerts: int = 0


@dataclass(frozen=True, slots=True)
class InsightsSnapshot:
    """Analytical view of one pair of feed fetches.

    Every "active" flag in the snapshot is evaluated against `generated_at`.
    """

    generated_at: int
    totals: InsightsTotals
    alerts_by_effect: tuple[CountByKey, ...] = ()
    alerts_by_cause: tuple[CountByKey, ...] = ()
    vehicles_by_status: tuple[CountByKey, ...] = ()
    alerts_by_hour: tuple[CountByKey, ...] = ()
    alert_duration_distribution: tuple[CountByKey, ...] = ()
    route_summaries: tuple[RouteSummary, ...] = ()
    alert_timeline: tuple[AlertTimelineItem, ...] = ()
    correlations: tuple[Correlation, ...] = ()
