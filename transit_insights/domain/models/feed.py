from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class VehiclePosition:
    id: str
    lat: float
    lon: float
    label: str | None = None
    timestamp: int | None = None  # unix seconds
    trip_id: str | None = None
    route_id: str | None = None
    current_status: str | None = None

    def __post_init__(self) -> None:
        if not (-90.0 <= self.lat <= 90.0):
            raise ValueError(f"Invalid latitude: {self.lat}")
        if not (-180.0 <= self.lon <= 180.0):
            raise ValueError(f"Invalid longitude: {self.lon}")


@dataclass(frozen=True, slots=True)
class InformedEntity:
    agency_id: str | None = None
    route_id: str | None = None
    trip_id: str | None = None
    stop_id: str | None = None


@dataclass(frozen=True, slots=True)
class Alert:
    """A service alert from the first active period of the upstream entity.

    `start=None` means the alert has always been active; `end=None` means it
    is ongoing.
    """

    id: str
    cause: str | None = None
    effect: str | None = None
    header: str | None = None
    description: str | None = None
    url: str | None = None
    start: int | None = None
    end: int | None = None
    informed_entities: tuple[InformedEntity, ...] = field(default_factory=tuple)

    @property
    def trip_ids(self) -> frozenset[str]:
        return frozenset(ie.trip_id for ie in self.informed_entities if ie.trip_id)

    @property
    def route_ids(self) -> frozenset[str]:
        return frozenset(ie.route_id for ie in self.informed_entities if ie.route_id)
