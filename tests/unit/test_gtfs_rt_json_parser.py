from __future__ import annotations

import pytest

from transit_insights.adapters.realtime.gtfs_rt_json_parser import (
    parse_alerts,
    parse_vehicle_positions,
)
from transit_insights.domain.exceptions import UpstreamShapeError


def _vehicle_entity(entity_id: str, **vehicle) -> dict:
    return {"id": entity_id, "vehicle": vehicle}


def test_vehicle_positions_map_fields_and_fall_back_to_entity_id() -> None:
    payload = {
        "header": {"gtfsRealtimeVersion": "2.0"},
        "entity": [
            _vehicle_entity(
                "E1",
                position={"latitude": 40.4, "longitude": -3.7},
                timestamp="1700000000",
                currentStatus="IN_TRANSIT_TO",
                trip={"tripId": "TR1", "routeId": "R1"},
                vehicle={"id": "V1", "label": "C1-23"},
            ),
            _vehicle_entity("E2", position={"latitude": "41.0", "longitude": "2.1"}),
        ],
    }

    vehicles = parse_vehicle_positions(payload)

    assert [v.id for v in vehicles] == ["V1", "E2"]
    v1, v2 = vehicles
    assert v1.label == "C1-23"
    assert v1.timestamp == 1700000000
    assert v1.trip_id == "TR1"
    assert v1.route_id == "R1"
    assert v1.current_status == "IN_TRANSIT_TO"
    assert (v2.lat, v2.lon) == (41.0, 2.1)
    assert v2.trip_id is None and v2.label is None and v2.timestamp is None


def test_vehicle_entities_without_valid_position_are_dropped() -> None:
    payload = {
        "entity": [
            {"id": "no-body"},
            _vehicle_entity("no-position", timestamp=1),
            _vehicle_entity("bad-lat", position={"latitude": 91, "longitude": 0}),
            _vehicle_entity("bad-lon", position={"latitude": 0, "longitude": -181}),
            _vehicle_entity("nan", position={"latitude": "nan", "longitude": 0}),
            _vehicle_entity("text", position={"latitude": "north", "longitude": 0}),
            _vehicle_entity(
                "negative-ts", position={"latitude": 0, "longitude": 0}, timestamp=-5
            ),
            {"vehicle": {"position": {"latitude": 0, "longitude": 0}}},
            "not-an-object",
            _vehicle_entity("ok", position={"latitude": -90, "longitude": 180}),
        ]
    }

    vehicles = parse_vehicle_positions(payload)

    assert [v.id for v in vehicles] == ["ok"]
    for v in vehicles:
        assert -90.0 <= v.lat <= 90.0
        assert -180.0 <= v.lon <= 180.0


def test_vehicle_fields_accept_snake_case_and_numeric_status() -> None:
    payload = {
        "entity": [
            _vehicle_entity(
                "E1",
                position={"latitude": 1, "longitude": 2},
                current_status=2,
                trip={"trip_id": "T9", "route_id": "R9"},
                vehicle={"id": "", "label": "  "},
                occupancy_status="FULL",
            )
        ]
    }

    (v,) = parse_vehicle_positions(payload)

    assert v.id == "E1"
    assert v.label is None
    assert v.current_status == "2"
    assert (v.trip_id, v.route_id) == ("T9", "R9")


def test_missing_entity_list_is_an_empty_feed() -> None:
    assert parse_vehicle_positions({"header": {}}) == ()
    assert parse_alerts({}) == ()


@pytest.mark.parametrize("payload", [None, [], "feed", {"entity": "nope"}])
def test_invalid_envelope_fails_whole_feed(payload) -> None:
    with pytest.raises(UpstreamShapeError, match="Invalid GTFS-RT"):
        parse_vehicle_positions(payload)
    with pytest.raises(UpstreamShapeError, match="Invalid GTFS-RT alerts JSON"):
        parse_alerts(payload)


def test_alerts_pick_first_non_empty_translation_and_first_period() -> None:
    payload = {
        "entity": [
            {
                "id": "A1",
                "alert": {
                    "cause": "MAINTENANCE",
                    "effect": "REDUCED_SERVICE",
                    "headerText": {
                        "translation": [
                            {"text": "   ", "language": "es"},
                            {"text": "Obras en la via", "language": "es"},
                            {"text": "Works", "language": "en"},
                        ]
                    },
                    "descriptionText": {"translation": []},
                    "activePeriod": [
                        {"start": "100", "end": 200},
                        {"start": 300, "end": 400},
                    ],
                    "informedEntity": [
                        {"routeId": "R1", "agencyId": "1071"},
                        {"trip": {"tripId": "TR1"}, "stopId": "S1"},
                    ],
                },
            }
        ]
    }

    (a,) = parse_alerts(payload)

    assert a.id == "A1"
    assert a.cause == "MAINTENANCE"
    assert a.effect == "REDUCED_SERVICE"
    assert a.header == "Obras en la via"
    assert a.description is None
    assert a.url is None
    assert (a.start, a.end) == (100, 200)
    assert a.informed_entities[0].route_id == "R1"
    assert a.informed_entities[0].agency_id == "1071"
    assert a.informed_entities[1].trip_id == "TR1"
    assert a.informed_entities[1].stop_id == "S1"
    assert a.route_ids == frozenset({"R1"})
    assert a.trip_ids == frozenset({"TR1"})


def test_alert_without_period_or_entities_is_open_ended() -> None:
    (a,) = parse_alerts({"entity": [{"id": "A2", "alert": {}}]})

    assert a.start is None
    assert a.end is None
    assert a.header is None
    assert a.informed_entities == ()


def test_alert_entities_without_alert_body_are_dropped() -> None:
    payload = {
        "entity": [
            {"id": "A1"},
            {"id": "", "alert": {}},
            {"id": "A3", "alert": {"activePeriod": [{"start": -1}]}},
            {"id": "A4", "alert": {"effect": "DETOUR"}},
        ]
    }

    assert [a.id for a in parse_alerts(payload)] == ["A4"]
