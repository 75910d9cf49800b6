from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _Schema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class VehiclePositionSchema(_Schema):
    id: str
    label: str | None = None
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)
    timestamp: int | None = None
    trip_id: str | None = None
    route_id: str | None = None
    current_status: str | None = None


class InformedEntitySchema(_Schema):
    agency_id: str | None = None
    route_id: str | None = None
    trip_id: str | None = None
    stop_id: str | None = None


class AlertSchema(_Schema):
    id: str
    cause: str | None = None
    effect: str | None = None
    header: str | None = None
    description: str | None = None
    url: str | None = None
    start: int | None = None
    end: int | None = None
    informed_entities: list[InformedEntitySchema] = []


class CountByKeySchema(_Schema):
    key: str
    count: int


class RouteSummarySchema(_Schema):
    route_id: str
    vehicle_count: int
    alert_count: int
    active_alert_count: int
    effects: list[str] = []
    last_vehicle_update: int | None = None


class AlertTimelineItemSchema(_Schema):
    alert_id: str
    header: str | None = None
    cause: str | None = None
    effect: str | None = None
    start: int | None = None
    end: int | None = None
    is_active_now: bool
    duration_minutes: int | None = None


class CorrelationSchema(_Schema):
    alert_id: str
    header: str | None = None
    cause: str | None = None
    effect: str | None = None
    start: int | None = None
    end: int | None = None
    is_active_now: bool
    matched_vehicle_ids: list[str] = []
    matched_trip_ids: list[str] = []
    matched_route_ids: list[str] = []
    matched_vehicle_count: int


class InsightsTotalsSchema(_Schema):
    vehicles: int
    alerts: int
    active_alerts: int
    alerts_with_matches: int
    vehicles_matched: int
    unique_routes: int
    routes_with_alerts: int


class InsightsSchema(_Schema):
    generated_at: int
    totals: InsightsTotalsSchema
    alerts_by_effect: list[CountByKeySchema] = []
    alerts_by_cause: list[CountByKeySchema] = []
    vehicles_by_status: list[CountByKeySchema] = []
    alerts_by_hour: list[CountByKeySchema] = []
    alert_duration_distribution: list[CountByKeySchema] = []
    route_summaries: list[RouteSummarySchema] = []
    alert_timeline: list[AlertTimelineItemSchema] = []
    correlations: list[CorrelationSchema] = []
