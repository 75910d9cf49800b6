from __future__ import annotations

from collections import Counter
from datetime import datetime, tzinfo
from typing import Iterable, Sequence

from transit_insights.domain.models import (
    UNKNOWN_KEY,
    Alert,
    AlertTimelineItem,
    CountByKey,
    RouteSummary,
    VehiclePosition,
)

UNKNOWN_LABEL = "Unknown"

# (exclusive upper bound in minutes, label)
DURATION_BUCKETS: tuple[tuple[int, str], ...] = (
    (30, "< 30min"),
    (60, "30-60min"),
    (120, "1-2h"),
    (240, "2-4h"),
    (480, "4-8h"),
)
LONGEST_BUCKET = "> 8h"


def count_by_key(values: Iterable[str | None]) -> tuple[CountByKey, ...]:
    """Group values into counts, most frequent first.

    `None` is counted under "UNKNOWN". Equal counts are ordered by key.
    """

    counts = Counter(UNKNOWN_KEY if v is None else v for v in values)
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return tuple(CountByKey(key=k, count=c) for k, c in ordered)


def is_active_at(start: int | None, end: int | None, at_s: int) -> bool:
    started = start is None or start <= at_s
    not_ended = end is None or end >= at_s
    return started and not_ended


def duration_minutes(start: int | None, end: int | None, now_s: int) -> int | None:
    if start is None:
        return None
    elapsed_s = (end if end is not None else now_s) - start
    if elapsed_s <= 0:
        return None
    # Half-up; round() sends halves to the even neighbour.
    return int(elapsed_s / 60 + 0.5)


def duration_bucket(minutes: int | None) -> str:
    if minutes is None:
        return UNKNOWN_LABEL
    for upper, label in DURATION_BUCKETS:
        if minutes < upper:
            return label
    return LONGEST_BUCKET


def hour_label(ts: int | None, tz: tzinfo | None = None) -> str:
    """Return "HH:00" for a unix timestamp, in `tz` or the local zone."""

    if ts is None:
        return UNKNOWN_LABEL
    return f"{datetime.fromtimestamp(ts, tz=tz).hour:02d}:00"


def alerts_by_hour(
    alerts: Sequence[Alert], tz: tzinfo | None = None
) -> tuple[CountByKey, ...]:
    return count_by_key(hour_label(a.start, tz) for a in alerts)


def alert_duration_distribution(
    alerts: Sequence[Alert], now_s: int
) -> tuple[CountByKey, ...]:
    return count_by_key(
        duration_bucket(duration_minutes(a.start, a.end, now_s)) for a in alerts
    )


def build_route_summaries(
    vehicles: Sequence[VehiclePosition], alerts: Sequence[Alert], now_s: int
) -> tuple[RouteSummary, ...]:
    vehicle_ids_by_route: dict[str, set[str]] = {}
    last_update_by_route: dict[str, int] = {}
    route_ids: dict[str, None] = {}

    for v in vehicles:
        if not v.route_id:
            continue
        route_ids.setdefault(v.route_id)
        vehicle_ids_by_route.setdefault(v.route_id, set()).add(v.id)
        if v.timestamp:
            prev = last_update_by_route.get(v.route_id)
            if prev is None or v.timestamp > prev:
                last_update_by_route[v.route_id] = v.timestamp

    alerts_by_route: dict[str, list[Alert]] = {}
    for a in alerts:
        for route_id in a.route_ids:
            route_ids.setdefault(route_id)
            alerts_by_route.setdefault(route_id, []).append(a)

    summaries: list[RouteSummary] = []
    for route_id in route_ids:
        route_alerts = alerts_by_route.get(route_id, [])
        effects: dict[str, None] = {}
        for a in route_alerts:
            if a.effect is not None:
                effects.setdefault(a.effect)

        summaries.append(
            RouteSummary(
                route_id=route_id,
                vehicle_count=len(vehicle_ids_by_route.get(route_id, ())),
                alert_count=len(route_alerts),
                active_alert_count=sum(
                    1 for a in route_alerts if is_active_at(a.start, a.end, now_s)
                ),
                effects=tuple(effects),
                last_vehicle_update=last_update_by_route.get(route_id),
            )
        )

    summaries.sort(key=lambda s: (-s.alert_count, s.route_id))
    return tuple(summaries)


def build_alert_timeline(
    alerts: Sequence[Alert], now_s: int
) -> tuple[AlertTimelineItem, ...]:
    items = [
        AlertTimelineItem(
            alert_id=a.id,
            header=a.header,
            cause=a.cause,
            effect=a.effect,
            start=a.start,
            end=a.end,
            is_active_now=is_active_at(a.start, a.end, now_s),
            duration_minutes=duration_minutes(a.start, a.end, now_s),
        )
        for a in alerts
    ]
    items.sort(key=lambda i: (-(i.start or 0), i.alert_id))
    return tuple(items)
