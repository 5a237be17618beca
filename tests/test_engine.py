from datetime import datetime, timezone

import pytest

from sailrouting.engine import Engine
from sailrouting.land import LandsProvider, ProviderNotFound
from sailrouting.polar import (
    Foil,
    Hull,
    PenaltyCase,
    Polar,
    PolarNotFound,
    PolarSail,
    Winch,
)
from sailrouting.position import Coords
from sailrouting.race import Race, RaceNotFound, Waypoint


class _AllLand(LandsProvider):
    def is_land(self, lat, lon):
        return True


class _AllSea(LandsProvider):
    def is_land(self, lat, lon):
        return False


class _WestIsLand(LandsProvider):
    def is_land(self, lat, lon):
        return lon < 0.0


def _case():
    return PenaltyCase(std_timer_sec=60, std_ratio=0.5, pro_timer_sec=30, pro_ratio=0.8)


def _polar(label="boat"):
    return Polar(
        id=1,
        label=label,
        global_speed_ratio=1.0,
        ice_speed_ratio=1.0,
        auto_sail_change_tolerance=1.0,
        bad_sail_tolerance=1.0,
        max_speed=30.0,
        foil=Foil(1.0, 70.0, 160.0, 10.0, 16.0, 35.0, 5.0),
        hull=Hull(1.0),
        winch=Winch(tack=_case(), gybe=_case(), sail_change=_case()),
        tws=[0.0, 10.0],
        twa=[0.0, 180.0],
        sail=[PolarSail(id=1, name="Jib", speed=[[0.0, 5.0], [0.0, 5.0]])],
    )


def _race(name="Test race"):
    return Race(
        id="race-1",
        name=name,
        leg=1,
        boat="boat",
        start=Coords(10.0, 20.0),
        buoys=[Waypoint(name="wp", destination=Coords(11.0, 21.0))],
        start_time=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def test_polar_registered_and_returned():
    engine = Engine()
    polar = _polar()
    engine.add_polar("imoca", polar)
    assert engine.get_polar("imoca") is polar


def test_polar_replaced_by_same_name():
    engine = Engine()
    engine.add_polar("imoca", _polar("first"))
    engine.add_polar("imoca", _polar("second"))
    assert engine.get_polar("imoca").label == "second"


def test_unknown_polar_raises():
    engine = Engine()
    with pytest.raises(PolarNotFound):
        engine.get_polar("missing")


def test_race_round_trip_through_registry():
    engine = Engine()
    race = _race()
    engine.set_race("r1", race)
    assert engine.get_race("r1") == race


def test_get_race_returns_copy():
    engine = Engine()
    engine.set_race("r1", _race())
    fetched = engine.get_race("r1")
    fetched.validate_next_waypoint()
    assert engine.get_race("r1").buoys[0].validated is False
    assert fetched.buoys[0].validated is True


def test_list_races():
    engine = Engine()
    assert engine.list_races() == []
    engine.set_race("a", _race("A"))
    engine.set_race("b", _race("B"))
    assert sorted(r.name for r in engine.list_races()) == ["A", "B"]


def test_unknown_race_raises():
    engine = Engine()
    with pytest.raises(RaceNotFound):
        engine.get_race("missing")


def test_draw_land_all_land_is_opaque_black():
    engine = Engine()
    engine.add_land_provider("vr", _AllLand())
    data = engine.draw_land("vr", 0, 0, 0, 3, 2)
    assert data == b"\x00\x00\x00\xff" * 6


def test_draw_land_all_sea_is_transparent():
    engine = Engine()
    engine.add_land_provider("vr", _AllSea())
    data = engine.draw_land("vr", 0, 0, 0, 4, 4)
    assert data == bytes(4 * 4 * 4)


def test_draw_land_matches_provider_draw():
    engine = Engine()
    provider = _WestIsLand()
    engine.add_land_provider("half", provider)
    data = engine.draw_land("half", 0, 0, 0, 16, 8)
    assert data == provider.draw(0, 0, 0, 16, 8)
    assert len(data) == 16 * 8 * 4
    assert b"\x00\x00\x00\xff" in data


def test_draw_land_unknown_provider_raises():
    engine = Engine()
    with pytest.raises(ProviderNotFound):
        engine.draw_land("missing", 0, 0, 0, 1, 1)