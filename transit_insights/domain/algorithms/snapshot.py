from __future__ import annotations

from datetime import tzinfo
from typing import Sequence

from transit_insights.domain.algorithms.aggregation import (
    alert_duration_distribution,
    alerts_by_hour,
    build_alert_timeline,
    build_route_summaries,
    count_by_key,
)
from transit_insights.domain.algorithms.correlation import correlate_alerts
from transit_insights.domain.models import (
    Alert,
    HistoryAlert,
    HistoryEntry,
    HistoryVehicle,
    InsightsSnapshot,
    InsightsTotals,
    VehiclePosition,
)


def assemble_snapshot(
    vehicles: Sequence[VehiclePosition],
    alerts: Sequence[Alert],
    *,
    generated_at: int,
    tz: tzinfo | None = None,
) -> InsightsSnapshot:
    """Compute the full insights bundle at the reference instant `generated_at`."""

    correlations = correlate_alerts(vehicles, alerts, generated_at)
    route_summaries = build_route_summaries(vehicles, alerts, generated_at)

    vehicles_matched: set[str] = set()
    for c in correlations:
        vehicles_matched.update(c.matched_vehicle_ids)

    totals = InsightsTotals(
        vehicles=len(vehicles),
        alerts=len(alerts),
        active_alerts=sum(1 for c in correlations if c.is_active_now),
        alerts_with_matches=sum(1 for c in correlations if c.matched_vehicle_count > 0),
        vehicles_matched=len(vehicles_matched),
        unique_routes=len(route_summaries),
        routes_with_alerts=sum(1 for r in route_summaries if r.alert_count > 0),
    )

    return InsightsSnapshot(
        generated_at=generated_at,
        totals=totals,
        alerts_by_effect=count_by_key(a.effect for a in alerts),
        alerts_by_cause=count_by_key(a.cause for a in alerts),
        vehicles_by_status=count_by_key(v.current_status for v in vehicles),
        alerts_by_hour=alerts_by_hour(alerts, tz),
        alert_duration_distribution=alert_duration_distribution(alerts, generated_at),
        route_summaries=route_summaries,
        alert_timeline=build_alert_timeline(alerts, generated_at),
        correlations=correlations,
    )


def reduce_for_history(
    insights: InsightsSnapshot,
    vehicles: Sequence[VehiclePosition],
    alerts: Sequence[Alert],
    *,
    entry_id: str,
    timestamp: int,
) -> HistoryEntry:
    return HistoryEntry(
        id=entry_id,
        timestamp=timestamp,
        totals=insights.totals,
        alerts_by_effect=insights.alerts_by_effect,
        alerts_by_cause=insights.alerts_by_cause,
        vehicles_by_status=insights.vehicles_by_status,
        vehicles=tuple(
            HistoryVehicle(
                id=v.id,
                label=v.label,
                route_id=v.route_id,
                trip_id=v.trip_id,
                lat=v.lat,
                lon=v.lon,
                current_status=v.current_status,
            )
            for v in vehicles
        ),
        alerts=tuple(
            HistoryAlert(
                id=a.id,
                header=a.header,
                effect=a.effect,
                cause=a.cause,
                start=a.start,
                end=a.end,
            )
            for a in alerts
        ),
    )
