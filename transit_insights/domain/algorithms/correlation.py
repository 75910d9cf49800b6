from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from transit_insights.domain.algorithms.aggregation import is_active_at
from transit_insights.domain.models import Alert, Correlation, VehiclePosition


@dataclass(frozen=True, slots=True)
class VehicleIndex:
    """Vehicle ids keyed by trip id and by route id."""

    by_trip_id: dict[str, set[str]] = field(default_factory=dict)
    by_route_id: dict[str, set[str]] = field(default_factory=dict)

    @staticmethod
    def build(vehicles: Sequence[VehiclePosition]) -> "VehicleIndex":
        index = VehicleIndex()
        for v in vehicles:
            if v.trip_id:
                index.by_trip_id.setdefault(v.trip_id, set()).add(v.id)
            if v.route_id:
                index.by_route_id.setdefault(v.route_id, set()).add(v.id)
        return index

    def match(self, *, trip_ids: frozenset[str], route_ids: frozenset[str]) -> set[str]:
        matched: set[str] = set()
        for trip_id in trip_ids:
            matched |= self.by_trip_id.get(trip_id, set())
        for route_id in route_ids:
            matched |= self.by_route_id.get(route_id, set())
        return matched


def correlate_alert(alert: Alert, index: VehicleIndex, now_s: int) -> Correlation:
    trip_ids = alert.trip_ids
    route_ids = alert.route_ids
    matched = index.match(trip_ids=trip_ids, route_ids=route_ids)
    return Correlation(
        alert_id=alert.id,
        header=alert.header,
        cause=alert.cause,
        effect=alert.effect,
        start=alert.start,
        end=alert.end,
        is_active_now=is_active_at(alert.start, alert.end, now_s),
        matched_vehicle_ids=tuple(sorted(matched)),
        matched_trip_ids=tuple(sorted(trip_ids)),
        matched_route_ids=tuple(sorted(route_ids)),
    )


def correlate_alerts(
    vehicles: Sequence[VehiclePosition],
    alerts: Sequence[Alert],
    now_s: int,
    *,
    index: VehicleIndex | None = None,
) -> tuple[Correlation, ...]:
    """Link each alert to the vehicles sharing one of its trip or route ids.

    Sorted by number of matched vehicles, descending; ties by alert id.
    """

    if index is None:
        index = VehicleIndex.build(vehicles)
    correlations = [correlate_alert(a, index, now_s) for a in alerts]
    correlations.sort(key=lambda c: (-c.matched_vehicle_count, c.alert_id))
    return tuple(correlations)
