"""Validation of GTFS-Realtime feeds published as JSON.

The envelope must be an object with an optional `entity` list; anything else
fails the whole feed with `UpstreamShapeError`. Entities are then validated
one at a time and the ones that do not fit the expected shape are dropped.
Unknown fields are ignored everywhere. Field names are accepted both in the
camelCase spelling of the JSON feeds and in the snake_case protobuf spelling.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, TypeVar

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    NonNegativeInt,
    ValidationError,
)

from transit_insights.domain.exceptions import UpstreamShapeError
from transit_insights.domain.models import Alert, InformedEntity, VehiclePosition

logger = logging.getLogger(__name__)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _enum_text(value: Any) -> Any:
    # Enum values arrive as names ("IN_TRANSIT_TO") or as their numbers.
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return _blank_to_none(value)


EntityId = Annotated[str, Field(min_length=1)]
OptionalText = Annotated[str | None, BeforeValidator(_blank_to_none)]
EnumText = Annotated[str | None, BeforeValidator(_enum_text)]


def _alias(camel: str, snake: str) -> Any:
    return Field(default=None, validation_alias=AliasChoices(camel, snake))


class _FeedModel(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class _Position(_FeedModel):
    latitude: float = Field(ge=-90.0, le=90.0, allow_inf_nan=False)
    longitude: float = Field(ge=-180.0, le=180.0, allow_inf_nan=False)


class _TripDescriptor(_FeedModel):
    trip_id: OptionalText = _alias("tripId", "trip_id")
    route_id: OptionalText = _alias("routeId", "route_id")


class _VehicleDescriptor(_FeedModel):
    id: OptionalText = None
    label: OptionalText = None


class _VehicleBody(_FeedModel):
    position: _Position | None = None
    timestamp: NonNegativeInt | None = None
    current_status: EnumText = _alias("currentStatus", "current_status")
    trip: _TripDescriptor | None = None
    vehicle: _VehicleDescriptor | None = None


class _VehicleEntity(_FeedModel):
    id: EntityId
    vehicle: _VehicleBody | None = None


class _Translation(_FeedModel):
    text: str | None = None
    language: str | None = None


class _TranslatedString(_FeedModel):
    translation: list[_Translation] = Field(default_factory=list)

    def first_text(self) -> str | None:
        for t in self.translation:
            if t.text and t.text.strip():
                return t.text
        return None


class _ActivePeriod(_FeedModel):
    start: NonNegativeInt | None = None
    end: NonNegativeInt | None = None


class _EntitySelector(_FeedModel):
    agency_id: OptionalText = _alias("agencyId", "agency_id")
    route_id: OptionalText = _alias("routeId", "route_id")
    stop_id: OptionalText = _alias("stopId", "stop_id")
    trip: _TripDescriptor | None = None


class _AlertBody(_FeedModel):
    cause: EnumText = None
    effect: EnumText = None
    header_text: _TranslatedString | None = _alias("headerText", "header_text")
    description_text: _TranslatedString | None = _alias(
        "descriptionText", "description_text"
    )
    url: _TranslatedString | None = None
    active_period: list[_ActivePeriod] = Field(
        default_factory=list,
        validation_alias=AliasChoices("activePeriod", "active_period"),
    )
    informed_entity: list[_EntitySelector] = Field(
        default_factory=list,
        validation_alias=AliasChoices("informedEntity", "informed_entity"),
    )


class _AlertEntity(_FeedModel):
    id: EntityId
    alert: _AlertBody | None = None


class _FeedEnvelope(_FeedModel):
    entity: list[Any] = Field(default_factory=list)


_M = TypeVar("_M", bound=BaseModel)


def _validated_entities(payload: Any, model: type[_M], feed_name: str) -> list[_M]:
    try:
        envelope = _FeedEnvelope.model_validate(payload)
    except ValidationError as exc:
        errors = exc.errors()
        message = errors[0]["msg"] if errors else f"Invalid GTFS-RT {feed_name} JSON"
        raise UpstreamShapeError(f"Invalid GTFS-RT {feed_name} JSON: {message}") from exc

    out: list[_M] = []
    dropped = 0
    for raw in envelope.entity:
        try:
            out.append(model.model_validate(raw))
        except ValidationError:
            dropped += 1
    if dropped:
        logger.debug("Dropped %d malformed %s entities", dropped, feed_name)
    return out


def parse_vehicle_positions(payload: Any) -> tuple[VehiclePosition, ...]:
    vehicles: list[VehiclePosition] = []
    for ent in _validated_entities(payload, _VehicleEntity, "vehicle positions"):
        body = ent.vehicle
        if body is None or body.position is None:
            continue

        descriptor = body.vehicle
        trip = body.trip
        vehicles.append(
            VehiclePosition(
                id=(descriptor.id if descriptor else None) or ent.id,
                label=descriptor.label if descriptor else None,
                lat=body.position.latitude,
                lon=body.position.longitude,
                timestamp=body.timestamp,
                trip_id=trip.trip_id if trip else None,
                route_id=trip.route_id if trip else None,
                current_status=body.current_status,
            )
        )
    return tuple(vehicles)


def parse_alerts(payload: Any) -> tuple[Alert, ...]:
    alerts: list[Alert] = []
    for ent in _validated_entities(payload, _AlertEntity, "alerts"):
        body = ent.alert
        if body is None:
            continue

        first_period = body.active_period[0] if body.active_period else None
        alerts.append(
            Alert(
                id=ent.id,
                cause=body.cause,
                effect=body.effect,
                header=body.header_text.first_text() if body.header_text else None,
                description=(
                    body.description_text.first_text()
                    if body.description_text
                    else None
                ),
                url=body.url.first_text() if body.url else None,
                start=first_period.start if first_period else None,
                end=first_period.end if first_period else None,
                informed_entities=tuple(
                    InformedEntity(
                        agency_id=ie.agency_id,
                        route_id=ie.route_id,
                        trip_id=ie.trip.trip_id if ie.trip else None,
                        stop_id=ie.stop_id,
                    )
                    for ie in body.informed_entity
                ),
            )
        )
    return tuple(alerts)
