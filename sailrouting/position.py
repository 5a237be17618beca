"""Positions, headings, sails and manoeuvre penalties."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Iterable, Iterator, Sequence

SAIL_NAMES = ("Jib", "Spi", "Staysail", "LightJib", "Code0", "HeavyGnk", "LightGnk")

_ZERO = timedelta()


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


def _whole_seconds(duration: timedelta) -> int:
    micros = duration // timedelta(microseconds=1)
    seconds = abs(micros) // 1_000_000
    return -seconds if micros < 0 else seconds


@dataclass
class Coords:
    """A latitude/longitude pair in degrees."""

    lat: float = 0.0
    lon: float = 0.0

    @classmethod
    def from_sequence(cls, latlon: Sequence[float]) -> Coords:
        lat, lon = latlon
        return cls(lat=float(lat), lon=float(lon))

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Coords:
        try:
            return cls(lat=float(data["lat"]), lon=float(data["lon"]))
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid coordinates: {data!r}") from exc

    def __str__(self) -> str:
        return f"({_format_number(self.lat)}, {_format_number(self.lon)})"


@dataclass
class Wind:
    """True wind: direction in degrees, speed in knots."""

    direction: float = 0.0
    speed: float = 0.0


@dataclass(eq=False)
class Sail:
    """A sail; two sails are the same sail when their ids match."""

    index: int = 0
    id: int = 0
    auto: bool = False

    @classmethod
    def from_index(cls, index: int) -> Sail:
        return cls(index=index, id=index + 1, auto=False)

    @classmethod
    def from_id(cls, sail_id: int) -> Sail:
        """Decode a sail id; ids of 10 and above mean the sail is chosen automatically."""
        number = max(sail_id % 10, 1)
        return cls(index=number - 1, id=number, auto=sail_id >= 10)

    def to_id(self) -> int:
        return 10 if self.auto else self.id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sail):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return SAIL_NAMES[self.index] + ("*" if self.auto else "")


class HeadingKind(enum.Enum):
    HEADING = "heading"
    TWA = "twa"


@dataclass(frozen=True)
class Heading:
    """Either a fixed compass heading or a regulated true wind angle."""

    kind: HeadingKind = HeadingKind.TWA
    value: float = 0.0

    @classmethod
    def fixed(cls, value: float) -> Heading:
        return cls(HeadingKind.HEADING, value)

    @classmethod
    def regulated(cls, value: float) -> Heading:
        return cls(HeadingKind.TWA, value)

    def is_regulated(self) -> bool:
        return self.kind is HeadingKind.TWA

    def heading(self, twd: float) -> float:
        """Compass heading for the given true wind direction."""
        if self.kind is HeadingKind.HEADING:
            return self.value
        heading = twd - self.value
        if heading < 0.0:
            heading += 360.0
        if heading >= 360.0:
            heading -= 360.0
        return heading

    def twa(self, twd: float) -> float:
        """True wind angle for the given true wind direction."""
        if self.kind is HeadingKind.TWA:
            return self.value
        twa = twd - self.value
        if twa <= -180.0:
            twa += 360.0
        if twa > 180.0:
            twa -= 360.0
        return twa

    def to_dict(self) -> dict[str, float]:
        return {self.kind.value: self.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Heading:
        if not isinstance(data, dict) or len(data) != 1:
            raise ValueError(f"invalid heading: {data!r}")
        (key, value), = data.items()
        try:
            kind = HeadingKind(key)
        except ValueError as exc:
            raise ValueError(f"unknown heading kind: {key!r}") from exc
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"invalid heading value: {value!r}")
        return cls(kind, float(value))

    def __str__(self) -> str:
        if self.kind is HeadingKind.HEADING:
            return f"heading {_format_number(self.value)}"
        return f"regulated twa {_format_number(self.value)}"


@dataclass
class BoatSettings:
    heading: Heading = field(default_factory=Heading)
    sail: Sail = field(default_factory=Sail)


@dataclass(frozen=True)
class Penalty:
    """A speed reduction ``ratio`` applied for ``duration``."""

    duration: timedelta
    ratio: float

    def to_dict(self) -> dict[str, Any]:
        return {"duration": _whole_seconds(self.duration), "ratio": self.ratio}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Penalty:
        try:
            seconds = data["duration"]
            ratio = data["ratio"]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid penalty: {data!r}") from exc
        if isinstance(seconds, bool) or not isinstance(seconds, int):
            raise ValueError("penalty duration must be an integer number of seconds")
        if isinstance(ratio, bool) or not isinstance(ratio, (int, float)):
            raise ValueError(f"invalid penalty ratio: {ratio!r}")
        return cls(duration=timedelta(seconds=seconds), ratio=float(ratio))


def _shorten(penalty: Penalty | None, duration: timedelta) -> Penalty | None:
    if penalty is None or penalty.duration <= duration:
        return None
    return Penalty(duration=penalty.duration - duration, ratio=penalty.ratio)


@dataclass
class Penalties:
    """The penalties currently running for gybe, sail change and tack."""

    gybe: Penalty | None = None
    sail_change: Penalty | None = None
    tack: Penalty | None = None

    def _present(self) -> Iterator[Penalty]:
        items: Iterable[Penalty | None] = (self.gybe, self.sail_change, self.tack)
        return (p for p in items if p is not None)

    def is_active(self) -> bool:
        return any(p.duration != _ZERO for p in self._present())

    def min_penalty_duration(self) -> timedelta | None:
        return min((p.duration for p in self._present()), default=None)

    def duration(self) -> timedelta:
        return max((p.duration for p in self._present()), default=_ZERO)

    def navigate(self, duration: timedelta) -> tuple[Penalties, float]:
        """Sail through ``duration``; returns what remains and the combined ratio."""
        ratio = 1.0
        for penalty in self._present():
            ratio *= penalty.ratio
        return self - duration, ratio

    def to_list(self) -> list[Penalty]:
        return [p for p in self._present() if p.duration != _ZERO]

    def total(self) -> timedelta:
        return sum((p.duration for p in self._present()), _ZERO)

    def __sub__(self, duration: timedelta) -> Penalties:
        if not isinstance(duration, timedelta):
            return NotImplemented
        return Penalties(
            gybe=_shorten(self.gybe, duration),
            sail_change=_shorten(self.sail_change, duration),
            tack=_shorten(self.tack, duration),
        )