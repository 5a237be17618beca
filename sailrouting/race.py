"""Races, their buoys and a registry of races."""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

from sailrouting.geometry import Spherical
from sailrouting.position import Coords

log = logging.getLogger(__name__)

Triangle = tuple[Coords, Coords, Coords]


class RaceNotFound(LookupError):
    """No race is registered under the requested name."""


def _require(data: dict[str, Any], key: str) -> Any:
    if not isinstance(data, dict):
        raise ValueError(f"expected an object, got {data!r}")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field {key!r}") from None


def _coords_list(values: Any) -> list[Coords]:
    return [Coords.from_dict(v) for v in values]


def _triangles_from(values: Any) -> list[Triangle]:
    result = []
    for value in values:
        a, b, c = value
        result.append((Coords.from_dict(a), Coords.from_dict(b), Coords.from_dict(c)))
    return result


def _triangles_to(values: list[Triangle]) -> list[list[dict[str, float]]]:
    return [[c.to_dict() for c in triangle] for triangle in values]


def _parse_time(value: Any) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"invalid date: {value!r}")
    text = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError(f"invalid date: {value!r}") from exc
    if parsed.tzinfo is None:
        raise ValueError(f"date without time zone: {value!r}")
    return parsed.astimezone(timezone.utc)


def _format_time(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class Limits:
    """Ice limits: boundary lines and the latitudes they span."""

    north: list[Coords]
    south: list[Coords]
    max_lat: float
    min_lat: float


def _limits_from_dict(data: dict[str, Any]) -> Limits:
    return Limits(
        north=_coords_list(_require(data, "north")),
        south=_coords_list(_require(data, "south")),
        max_lat=float(_require(data, "maxLat")),
        min_lat=float(_require(data, "minLat")),
    )


def _limits_to_dict(limits: Limits) -> dict[str, Any]:
    return {
        "north": [c.to_dict() for c in limits.north],
        "south": [c.to_dict() for c in limits.south],
        "maxLat": limits.max_lat,
        "minLat": limits.min_lat,
    }


@dataclass
class Zone:
    """A circular zone to reach; ``radius`` is in metres."""

    name: str
    destination: Coords
    radius: float
    to_avoid: list[Triangle] = field(default_factory=list)
    validated: bool = False

    def is_in(self, pos: Coords) -> bool:
        return Spherical().distance_to(self.destination, pos) <= self.radius


@dataclass
class Door:
    """A gate between a port and a starboard mark."""

    name: str
    port: Coords
    starboard: Coords
    departure: Coords
    destination: Coords
    to_avoid: list[Triangle] = field(default_factory=list)
    validated: bool = False


@dataclass
class Waypoint:
    """A single point to pass."""

    name: str
    destination: Coords
    to_avoid: list[Triangle] = field(default_factory=list)
    validated: bool = False


Buoy = Union[Zone, Door, Waypoint]


def buoy_from_dict(data: dict[str, Any]) -> Buoy:
    """Read a buoy tagged by its ``type`` field."""
    kind = _require(data, "type")
    common = {
        "name": str(_require(data, "name")),
        "destination": Coords.from_dict(_require(data, "destination")),
        "to_avoid": _triangles_from(_require(data, "to_avoid")),
        "validated": bool(_require(data, "validated")),
    }
    if kind == "Zone":
        return Zone(radius=float(_require(data, "radius")), **common)
    if kind == "Door":
        return Door(
            port=Coords.from_dict(_require(data, "port")),
            starboard=Coords.from_dict(_require(data, "starboard")),
            departure=Coords.from_dict(_require(data, "departure")),
            **common,
        )
    if kind == "Waypoint":
        return Waypoint(**common)
    raise ValueError(f"unknown buoy type: {kind!r}")


def buoy_to_dict(buoy: Buoy) -> dict[str, Any]:
    """Write a buoy with its ``type`` tag."""
    if isinstance(buoy, Zone):
        return {
            "type": "Zone",
            "name": buoy.name,
            "destination": buoy.destination.to_dict(),
            "radius": buoy.radius,
            "to_avoid": _triangles_to(buoy.to_avoid),
            "validated": buoy.validated,
        }
    if isinstance(buoy, Door):
        return {
            "type": "Door",
            "name": buoy.name,
            "port": buoy.port.to_dict(),
            "starboard": buoy.starboard.to_dict(),
            "departure": buoy.departure.to_dict(),
            "destination": buoy.destination.to_dict(),
            "to_avoid": _triangles_to(buoy.to_avoid),
            "validated": buoy.validated,
        }
    if isinstance(buoy, Waypoint):
        return {
            "type": "Waypoint",
            "name": buoy.name,
            "destination": buoy.destination.to_dict(),
            "to_avoid": _triangles_to(buoy.to_avoid),
            "validated": buoy.validated,
        }
    raise TypeError(f"not a buoy: {buoy!r}")


@dataclass
class Race:
    id: str
    name: str
    leg: int
    boat: str
    start: Coords
    buoys: list[Buoy] = field(default_factory=list)
    short_name: str | None = None
    stamina: bool = False
    start_time: datetime | None = None
    end_time: datetime | None = None
    ice_limits: Limits | None = None

    def next_waypoint(self) -> Buoy | None:
        """A copy of the first buoy not yet validated, if any."""
        return next((copy.deepcopy(b) for b in self.buoys if not b.validated), None)

    def validate_next_waypoint(self) -> None:
        """Mark the first buoy not yet validated as validated."""
        log.info("Validate next waypoint")
        for buoy in self.buoys:
            if not buoy.validated:
                buoy.validated = True
                return

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Race:
        leg = _require(data, "leg")
        if isinstance(leg, bool) or not isinstance(leg, int) or not 0 <= leg <= 255:
            raise ValueError(f"invalid leg: {leg!r}")
        short_name = data.get("shortName")
        start_time = data.get("start_time")
        end_time = data.get("end_time")
        ice_limits = data.get("ice_limits")
        return cls(
            id=str(_require(data, "id")),
            name=str(_require(data, "name")),
            leg=leg,
            boat=str(_require(data, "boat")),
            start=Coords.from_dict(_require(data, "start")),
            buoys=[buoy_from_dict(b) for b in _require(data, "buoys")],
            short_name=None if short_name is None else str(short_name),
            stamina=bool(data.get("stamina", False)),
            start_time=None if start_time is None else _parse_time(start_time),
            end_time=None if end_time is None else _parse_time(end_time),
            ice_limits=None if ice_limits is None else _limits_from_dict(ice_limits),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id, "name": self.name, "leg": self.leg}
        if self.short_name is not None:
            result["shortName"] = self.short_name
        result["boat"] = self.boat
        result["stamina"] = self.stamina
        if self.start_time is not None:
            result["start_time"] = _format_time(self.start_time)
        if self.end_time is not None:
            result["end_time"] = _format_time(self.end_time)
        result["start"] = self.start.to_dict()
        result["buoys"] = [buoy_to_dict(b) for b in self.buoys]
        if self.ice_limits is not None:
            result["ice_limits"] = _limits_to_dict(self.ice_limits)
        return result


class RaceRegistry:
    """Races by name; values handed out are copies."""

    def __init__(self) -> None:
        self._races: dict[str, Race] = {}
        self._lock = threading.RLock()

    def list(self) -> list[Race]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._races.values()]

    def get(self, name: str) -> Race:
        with self._lock:
            try:
                return copy.deepcopy(self._races[name])
            except KeyError:
                raise RaceNotFound(f"Race {name} not found") from None

    def set(self, name: str, race: Race) -> None:
        with self._lock:
            self._races[name] = race