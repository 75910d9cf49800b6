from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping

from .insights import CountByKey, InsightsTotals

ENTRY_PREFIX = "snapshot-"
ENTRY_SUFFIX = ".json"

# Persisted field names; files written by earlier versions use the same layout.
_TOTALS_FIELDS = {
    "vehicles": "vehicles",
    "alerts": "alerts",
    "activeAlerts": "active_alerts",
    "alertsWithMatches": "alerts_with_matches",
    "vehiclesMatched": "vehicles_matched",
    "uniqueRoutes": "unique_routes",
    "routesWithAlerts": "routes_with_alerts",
}


def entry_reference(entry_id: str) -> str:
    return f"{ENTRY_PREFIX}{entry_id}{ENTRY_SUFFIX}"


def id_from_reference(reference: str) -> str:
    return reference.replace(ENTRY_PREFIX, "").replace(ENTRY_SUFFIX, "")


@dataclass(frozen=True, slots=True)
class HistoryIndexEntry:
    """Descriptor of one stored entry.

    Descriptors written before ids and counts existed only carry
    `timestamp` and `filename`; the `resolved_*` accessors apply the
    fallbacks (id derived from the filename, counts default to 0).
    """

    timestamp: int
    filename: str
    id: str | None = None
    vehicle_count: int | None = None
    alert_count: int | None = None

    @property
    def resolved_id(self) -> str:
        return self.id or id_from_reference(self.filename)

    @property
    def resolved_vehicle_count(self) -> int:
        return self.vehicle_count or 0

    @property
    def resolved_alert_count(self) -> int:
        return self.alert_count or 0

    def to_payload(self) -> dict[str, Any]:
        out: dict[str, Any] = {"timestamp": self.timestamp, "filename": self.filename}
        if self.id is not None:
            out["id"] = self.id
        if self.vehicle_count is not None:
            out["vehicleCount"] = self.vehicle_count
        if self.alert_count is not None:
            out["alertCount"] = self.alert_count
        return out

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> "HistoryIndexEntry":
        vehicle_count = payload.get("vehicleCount")
        alert_count = payload.get("alertCount")
        return HistoryIndexEntry(
            timestamp=int(payload["timestamp"]),
            filename=str(payload["filename"]),
            id=payload.get("id") or None,
            vehicle_count=int(vehicle_count) if vehicle_count is not None else None,
            alert_count=int(alert_count) if alert_count is not None else None,
        )


@dataclass(frozen=True, slots=True)
class HistoryVehicle:
    id: str
    label: str | None
    route_id: str | None
    trip_id: str | None
    lat: float
    lon: float
    current_status: str | None


@dataclass(frozen=True, slots=True)
class HistoryAlert:
    id: str
    header: str | None
    effect: str | None
    cause: str | None
    start: int | None
    end: int | None


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    id: str
    timestamp: int
    totals: InsightsTotals
    alerts_by_effect: tuple[CountByKey, ...] = ()
    alerts_by_cause: tuple[CountByKey, ...] = ()
    vehicles_by_status: tuple[CountByKey, ...] = ()
    vehicles: tuple[HistoryVehicle, ...] = ()
    alerts: tuple[HistoryAlert, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        totals = asdict(self.totals)
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "totals": {name: totals[attr] for name, attr in _TOTALS_FIELDS.items()},
            "alertsByEffect": _counts_to_payload(self.alerts_by_effect),
            "alertsByCause": _counts_to_payload(self.alerts_by_cause),
            "vehiclesByStatus": _counts_to_payload(self.vehicles_by_status),
            "vehicles": [
                {
                    "id": v.id,
                    "label": v.label,
                    "routeId": v.route_id,
                    "tripId": v.trip_id,
                    "latitude": v.lat,
                    "longitude": v.lon,
                    "currentStatus": v.current_status,
                }
                for v in self.vehicles
            ],
            "alerts": [
                {
                    "id": a.id,
                    "header": a.header,
                    "effect": a.effect,
                    "cause": a.cause,
                    "start": a.start,
                    "end": a.end,
                }
                for a in self.alerts
            ],
        }

    @staticmethod
    def from_payload(
        payload: Mapping[str, Any], *, fallback_id: str
    ) -> "HistoryEntry":
        raw_totals = payload.get("totals") or {}
        totals = InsightsTotals(
            **{
                attr: int(raw_totals.get(name) or 0)
                for name, attr in _TOTALS_FIELDS.items()
            }
        )
        return HistoryEntry(
            id=payload.get("id") or fallback_id,
            timestamp=int(payload.get("timestamp") or 0),
            totals=totals,
            alerts_by_effect=_counts_from_payload(payload.get("alertsByEffect")),
            alerts_by_cause=_counts_from_payload(payload.get("alertsByCause")),
            vehicles_by_status=_counts_from_payload(payload.get("vehiclesByStatus")),
            vehicles=tuple(
                HistoryVehicle(
                    id=str(v["id"]),
                    label=v.get("label"),
                    route_id=v.get("routeId"),
                    trip_id=v.get("tripId"),
                    lat=float(v["latitude"]),
                    lon=float(v["longitude"]),
                    current_status=v.get("currentStatus"),
                )
                for v in payload.get("vehicles") or ()
            ),
            alerts=tuple(
                HistoryAlert(
                    id=str(a["id"]),
                    header=a.get("header"),
                    effect=a.get("effect"),
                    cause=a.get("cause"),
                    start=_optional_int(a.get("start")),
                    end=_optional_int(a.get("end")),
                )
                for a in payload.get("alerts") or ()
            ),
        )


@dataclass(frozen=True, slots=True)
class DayCount:
    date: str  # YYYY-MM-DD, UTC
    count: int


@dataclass(frozen=True, slots=True)
class HistorySummary:
    total_snapshots: int = 0
    oldest_snapshot: str | None = None
    newest_snapshot: str | None = None
    total_vehicle_records: int = 0
    total_alert_records: int = 0
    unique_vehicle_ids: int = 0
    unique_alert_ids: int = 0
    snapshots_by_day: tuple[DayCount, ...] = ()


def _counts_to_payload(counts: tuple[CountByKey, ...]) -> list[dict[str, Any]]:
    return [{"key": c.key, "count": c.count} for c in counts]


def _counts_from_payload(raw: Any) -> tuple[CountByKey, ...]:
    return tuple(
        CountByKey(key=str(item["key"]), count=int(item["count"])) for item in raw or ()
    )


def _optional_int(value: Any) -> int | None:
    return int(value) if value is not None else None
