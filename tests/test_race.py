from datetime import datetime, timezone

import pytest

from sailrouting.position import Coords
from sailrouting.race import (
    Door,
    Limits,
    Race,
    RaceNotFound,
    RaceRegistry,
    Waypoint,
    Zone,
    buoy_from_dict,
    buoy_to_dict,
)


def make_race():
    return Race(
        id="r1",
        name="Ocean race",
        leg=1,
        boat="imoca",
        start=Coords(46.0, -1.5),
        buoys=[
            Waypoint(name="wp", destination=Coords(40.0, -10.0), validated=True),
            Zone(name="zone", destination=Coords(30.0, -20.0), radius=5000.0),
            Door(
                name="door",
                port=Coords(10.0, -30.0),
                starboard=Coords(10.0, -29.0),
                departure=Coords(11.0, -29.5),
                destination=Coords(9.0, -29.5),
                to_avoid=[(Coords(1.0, 1.0), Coords(2.0, 2.0), Coords(3.0, 3.0))],
            ),
        ],
        short_name="OR",
        start_time=datetime(2024, 11, 10, 12, 0, tzinfo=timezone.utc),
        ice_limits=Limits(
            north=[Coords(-40.0, 0.0)], south=[Coords(-60.0, 0.0)], max_lat=-40.0, min_lat=-60.0
        ),
    )


def test_race_round_trip():
    race = make_race()
    assert Race.from_dict(race.to_dict()) == race


def test_race_dict_keys_and_skips():
    data = make_race().to_dict()
    assert data["shortName"] == "OR"
    assert data["start_time"] == "2024-11-10T12:00:00Z"
    assert "end_time" not in data
    assert data["ice_limits"]["maxLat"] == -40.0
    assert [b["type"] for b in data["buoys"]] == ["Waypoint", "Zone", "Door"]


def test_race_from_dict_defaults():
    race = Race.from_dict(
        {
            "id": "r2",
            "name": "Short",
            "leg": 2,
            "boat": "class40",
            "start": {"lat": 1.0, "lon": 2.0},
            "buoys": [],
        }
    )
    assert race.stamina is False
    assert race.short_name is None
    assert race.start_time is None
    assert race.next_waypoint() is None


def test_race_from_dict_errors():
    data = make_race().to_dict()
    del data["boat"]
    with pytest.raises(ValueError):
        Race.from_dict(data)
    bad_leg = make_race().to_dict()
    bad_leg["leg"] = 300
    with pytest.raises(ValueError):
        Race.from_dict(bad_leg)


def test_parses_offset_time():
    data = make_race().to_dict()
    data["start_time"] = "2024-11-10T14:00:00+02:00"
    assert Race.from_dict(data).start_time == datetime(2024, 11, 10, 12, 0, tzinfo=timezone.utc)


def test_next_waypoint_is_copy():
    race = make_race()
    nxt = race.next_waypoint()
    assert isinstance(nxt, Zone)
    assert nxt.name == "zone"
    nxt.validated = True
    assert race.buoys[1].validated is False


def test_validate_next_waypoint():
    race = make_race()
    race.validate_next_waypoint()
    assert race.buoys[1].validated is True
    assert race.next_waypoint().name == "door"
    race.validate_next_waypoint()
    assert race.next_waypoint() is None
    race.validate_next_waypoint()
    assert all(b.validated for b in race.buoys)


def test_buoy_round_trip_each_kind():
    for buoy in make_race().buoys:
        assert buoy_from_dict(buoy_to_dict(buoy)) == buoy


def test_buoy_unknown_type():
    with pytest.raises(ValueError):
        buoy_from_dict(
            {"type": "Mark", "name": "x", "destination": {"lat": 0, "lon": 0},
             "to_avoid": [], "validated": False}
        )


def test_zone_is_in():
    zone = Zone(name="z", destination=Coords(0.0, 0.0), radius=1000.0)
    assert zone.is_in(Coords(0.0, 0.001))
    assert zone.is_in(Coords(0.0, 0.0))
    assert not zone.is_in(Coords(0.0, 1.0))


def test_registry():
    registry = RaceRegistry()
    race = make_race()
    registry.set("r1", race)
    fetched = registry.get("r1")
    assert fetched == race
    fetched.name = "changed"
    assert registry.get("r1").name == "Ocean race"
    assert [r.id for r in registry.list()] == ["r1"]
    with pytest.raises(RaceNotFound):
        registry.get("missing")