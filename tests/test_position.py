from datetime import timedelta

import pytest

from sailrouting.position import (
    BoatSettings,
    Coords,
    Heading,
    HeadingKind,
    Penalties,
    Penalty,
    Sail,
    Wind,
)


def test_coords_from_sequence_and_str():
    coords = Coords.from_sequence((1.5, -2.25))
    assert coords == Coords(lat=1.5, lon=-2.25)
    assert str(coords) == "(1.5, -2.25)"
    assert str(Coords.from_sequence([1.0, 2.0])) == "(1, 2)"


def test_coords_dict_round_trip():
    coords = Coords(47.1, -3.4)
    assert coords.to_dict() == {"lat": 47.1, "lon": -3.4}
    assert Coords.from_dict(coords.to_dict()) == coords


def test_coords_from_dict_missing_key():
    with pytest.raises(ValueError):
        Coords.from_dict({"lat": 1.0})


def test_wind_holds_values():
    wind = Wind(direction=270.0, speed=12.0)
    assert (wind.direction, wind.speed) == (270.0, 12.0)


def test_sail_from_index():
    sail = Sail.from_index(4)
    assert (sail.index, sail.id, sail.auto) == (4, 5, False)
    assert str(sail) == "Code0"


@pytest.mark.parametrize(
    "sail_id, index, ident, auto",
    [(3, 2, 3, False), (13, 2, 3, True), (10, 0, 1, True), (0, 0, 1, False)],
)
def test_sail_from_id(sail_id, index, ident, auto):
    sail = Sail.from_id(sail_id)
    assert (sail.index, sail.id, sail.auto) == (index, ident, auto)


def test_sail_to_id():
    assert Sail.from_id(3).to_id() == 3
    assert Sail.from_id(13).to_id() == 10


def test_sail_str_marks_auto():
    assert str(Sail.from_id(12)) == "Spi*"
    assert str(Sail.from_id(7)) == "LightGnk"


def test_sail_equality_by_id_only():
    assert Sail.from_id(12) == Sail.from_id(2)
    assert Sail.from_id(1) != Sail.from_id(2)


def test_heading_default_is_zero_twa():
    heading = Heading()
    assert heading == Heading.regulated(0.0)
    assert heading.is_regulated()


def test_fixed_heading_ignores_wind():
    heading = Heading.fixed(123.0)
    assert not heading.is_regulated()
    assert heading.heading(40.0) == 123.0


def test_regulated_twa_is_its_value():
    assert Heading.regulated(-60.0).twa(200.0) == -60.0


@pytest.mark.parametrize("twa, twd", [(45.0, 90.0), (45.0, 30.0), (-120.0, 300.0), (170.0, 5.0)])
def test_regulated_heading_round_trip(twa, twd):
    compass = Heading.regulated(twa).heading(twd)
    assert 0.0 <= compass < 360.0
    assert Heading.fixed(compass).twa(twd) == pytest.approx(twa)


def test_fixed_twa_in_half_open_range():
    for heading in (0.0, 90.0, 180.0, 270.0, 359.0):
        twa = Heading.fixed(heading).twa(10.0)
        assert -180.0 < twa <= 180.0


def test_heading_equality_distinguishes_kind():
    assert Heading.fixed(10.0) != Heading.regulated(10.0)
    assert Heading.fixed(10.0) == Heading(HeadingKind.HEADING, 10.0)


def test_heading_dict_round_trip():
    assert Heading.regulated(45.0).to_dict() == {"twa": 45.0}
    assert Heading.fixed(12.5).to_dict() == {"heading": 12.5}
    for heading in (Heading.regulated(45.0), Heading.fixed(12.5)):
        assert Heading.from_dict(heading.to_dict()) == heading


@pytest.mark.parametrize("data", [{}, {"course": 1.0}, {"twa": "x"}, {"twa": 1.0, "heading": 2.0}])
def test_heading_from_dict_rejects_invalid(data):
    with pytest.raises(ValueError):
        Heading.from_dict(data)


def test_heading_str():
    assert str(Heading.fixed(90.0)) == "heading 90"
    assert str(Heading.regulated(42.5)) == "regulated twa 42.5"


def test_boat_settings_equality():
    a = BoatSettings(Heading.regulated(40.0), Sail.from_id(12))
    b = BoatSettings(Heading.regulated(40.0), Sail.from_id(2))
    c = BoatSettings(Heading.fixed(40.0), Sail.from_id(2))
    assert a == b
    assert a != c


def test_penalty_dict_round_trip():
    penalty = Penalty(timedelta(seconds=90), 0.5)
    assert penalty.to_dict() == {"duration": 90, "ratio": 0.5}
    assert Penalty.from_dict(penalty.to_dict()) == penalty


def test_penalty_from_dict_requires_integer_seconds():
    with pytest.raises(ValueError):
        Penalty.from_dict({"duration": 1.5, "ratio": 0.5})
    with pytest.raises(ValueError):
        Penalty.from_dict({"ratio": 0.5})


def _sample():
    return Penalties(
        gybe=Penalty(timedelta(seconds=60), 0.5),
        tack=Penalty(timedelta(seconds=120), 0.8),
    )


def test_empty_penalties():
    penalties = Penalties()
    assert not penalties.is_active()
    assert penalties.min_penalty_duration() is None
    assert penalties.duration() == timedelta()
    assert penalties.to_list() == []


def test_zero_duration_penalty_is_not_active():
    penalties = Penalties(gybe=Penalty(timedelta(), 0.5))
    assert not penalties.is_active()
    assert penalties.min_penalty_duration() == timedelta()
    assert penalties.to_list() == []


def test_penalties_durations():
    penalties = _sample()
    assert penalties.is_active()
    assert penalties.min_penalty_duration() == timedelta(seconds=60)
    assert penalties.duration() == timedelta(seconds=120)
    assert penalties.total() == timedelta(seconds=180)


def test_penalties_to_list_order():
    penalties = Penalties(
        gybe=Penalty(timedelta(seconds=10), 0.5),
        sail_change=Penalty(timedelta(seconds=20), 0.9),
        tack=Penalty(timedelta(seconds=30), 0.8),
    )
    assert penalties.to_list() == [penalties.gybe, penalties.sail_change, penalties.tack]


def test_penalties_navigate():
    remaining, ratio = _sample().navigate(timedelta(seconds=60))
    assert ratio == pytest.approx(0.4)
    assert remaining.gybe is None
    assert remaining.tack == Penalty(timedelta(seconds=60), 0.8)


def test_penalties_subtract():
    remaining = _sample() - timedelta(seconds=30)
    assert remaining.gybe == Penalty(timedelta(seconds=30), 0.5)
    assert remaining.tack == Penalty(timedelta(seconds=90), 0.8)
    assert remaining.sail_change is None
    assert (_sample() - timedelta(seconds=120)) == Penalties()