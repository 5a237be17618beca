"""Boat polars: speeds by wind, VMG, manoeuvre penalties and stamina."""

from __future__ import annotations

import dataclasses
import math
import threading
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from sailrouting.position import Heading, Penalties, Penalty, Sail, Wind

_METRES_PER_NAUTICAL_MILE = 1852.0
_SECONDS_PER_HOUR = 3600.0
_ZERO = timedelta()

Indices = tuple[int, int, float]


def _div(numerator: float, denominator: float) -> float:
    """IEEE division: dividing by zero yields an infinity or NaN."""
    try:
        return numerator / denominator
    except ZeroDivisionError:
        if numerator == 0.0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)


def _to_u8(value: float) -> int:
    """Saturating conversion to an unsigned byte; NaN becomes 0."""
    if math.isnan(value):
        return 0
    return int(min(max(value, 0.0), 255.0))


def _round_half_away(value: float) -> float:
    if value < 0.0:
        return -_round_half_away(-value)
    lower = math.floor(value)
    return float(lower + 1 if value - lower >= 0.5 else lower)


def _metres(speed_kts: float, duration: timedelta) -> float:
    """Distance covered at ``speed_kts`` during ``duration``, in metres."""
    return speed_kts * _METRES_PER_NAUTICAL_MILE / _SECONDS_PER_HOUR * duration.total_seconds()


def _time_for(distance: float, speed_kts: float) -> timedelta:
    """Time needed to cover ``distance`` metres at ``speed_kts``."""
    metres_per_second = speed_kts * _METRES_PER_NAUTICAL_MILE / _SECONDS_PER_HOUR
    if metres_per_second <= 0.0:
        raise ValueError("boat speed must be positive to cover a distance")
    return timedelta(seconds=distance / metres_per_second)


def _field(data: Any, key: str) -> Any:
    if not isinstance(data, dict):
        raise ValueError(f"expected an object, got {data!r}")
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field {key!r}") from None


def _number(data: Any, key: str) -> float:
    value = _field(data, key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"field {key!r} must be a number, got {value!r}")
    return float(value)


def _integer(data: Any, key: str, upper: int) -> int:
    value = _field(data, key)
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= upper:
        raise ValueError(f"field {key!r} must be an integer in [0, {upper}], got {value!r}")
    return value


def _optional_byte(data: dict[str, Any], key: str) -> int | None:
    if data.get(key) is None:
        return None
    return _integer(data, key, 255)


@dataclass
class BoatOptions:
    lt: bool = False
    gt: bool = False
    code0: bool = False
    foil: bool = False
    hull: bool = False
    winch: bool = False
    stamina: bool = False


class PolarNotFound(LookupError):
    """No polar is registered under the requested name."""


@dataclass(frozen=True)
class Foil:
    speed_ratio: float
    twa_min: float
    twa_max: float
    twa_merge: float
    tws_min: float
    tws_max: float
    tws_merge: float


@dataclass(frozen=True)
class Hull:
    speed_ratio: float


@dataclass(frozen=True)
class PolarPenalty:
    ratio: float
    timer: int


@dataclass(frozen=True)
class PenaltyBoundaries:
    lw: PolarPenalty
    hw: PolarPenalty


@dataclass(frozen=True)
class PenaltyCase:
    std_timer_sec: int
    std_ratio: float
    pro_timer_sec: int
    pro_ratio: float
    std: PenaltyBoundaries | None = None
    pro: PenaltyBoundaries | None = None


@dataclass(frozen=True)
class Winch:
    tack: PenaltyCase
    gybe: PenaltyCase
    sail_change: PenaltyCase
    lws: int | None = None
    hws: int | None = None


@dataclass(frozen=True)
class PolarSail:
    id: int
    name: str
    speed: list[list[float]]


@dataclass
class PolarResult:
    sail: Sail = field(default_factory=Sail)
    speed: float = 0.0
    foil: int = 0
    boost: int = 0
    best: float = 0.0


@dataclass
class Vmg:
    twa: float
    sail: Sail
    vmg: float


@dataclass
class Vmgs:
    up: Vmg
    optimized_up: Vmg | None
    down: Vmg
    optimized_down: Vmg | None


def _foil_from(data: Any) -> Foil:
    return Foil(
        speed_ratio=_number(data, "speedRatio"),
        twa_min=_number(data, "twaMin"),
        twa_max=_number(data, "twaMax"),
        twa_merge=_number(data, "twaMerge"),
        tws_min=_number(data, "twsMin"),
        tws_max=_number(data, "twsMax"),
        tws_merge=_number(data, "twsMerge"),
    )


def _polar_penalty_from(data: Any) -> PolarPenalty:
    return PolarPenalty(ratio=_number(data, "ratio"), timer=_integer(data, "timer", 65535))


def _boundaries_from(data: Any) -> PenaltyBoundaries | None:
    if data is None:
        return None
    return PenaltyBoundaries(
        lw=_polar_penalty_from(_field(data, "lw")),
        hw=_polar_penalty_from(_field(data, "hw")),
    )


def _penalty_case_from(data: Any) -> PenaltyCase:
    return PenaltyCase(
        std_timer_sec=_integer(data, "stdTimerSec", 65535),
        std_ratio=_number(data, "stdRatio"),
        pro_timer_sec=_integer(data, "proTimerSec", 65535),
        pro_ratio=_number(data, "proRatio"),
        std=_boundaries_from(data.get("std")),
        pro=_boundaries_from(data.get("pro")),
    )


def _winch_from(data: Any) -> Winch:
    return Winch(
        tack=_penalty_case_from(_field(data, "tack")),
        gybe=_penalty_case_from(_field(data, "gybe")),
        sail_change=_penalty_case_from(_field(data, "sailChange")),
        lws=_optional_byte(data, "lws"),
        hws=_optional_byte(data, "hws"),
    )


def _sail_from(data: Any) -> PolarSail:
    rows = _field(data, "speed")
    return PolarSail(
        id=_integer(data, "id", 2**63 - 1),
        name=str(_field(data, "name")),
        speed=[[float(v) for v in row] for row in rows],
    )


def _normalized_twa(heading: Heading, wind: Wind) -> float:
    twa = heading.twa(wind.direction)
    if twa < 0.0:
        twa = -twa
    if twa > 180.0:
        twa = 360.0 - twa
    return twa


def _interpolate(sail: PolarSail, tws_indices: Indices, twa_indices: Indices) -> float:
    ti0 = sail.speed[twa_indices[0]]
    ti1 = sail.speed[twa_indices[1]]
    tws0, tws1, tws_factor = tws_indices
    twa_factor = twa_indices[2]
    return (ti0[tws0] * tws_factor + ti0[tws1] * (1.0 - tws_factor)) * twa_factor + (
        ti1[tws0] * tws_factor + ti1[tws1] * (1.0 - tws_factor)
    ) * (1.0 - twa_factor)


@dataclass
class Polar:
    """Speed tables of a boat, indexed by true wind angle and true wind speed (knots)."""

    id: int
    label: str
    global_speed_ratio: float
    ice_speed_ratio: float
    auto_sail_change_tolerance: float
    bad_sail_tolerance: float
    max_speed: float
    foil: Foil
    hull: Hull
    winch: Winch
    tws: list[float]
    twa: list[float]
    sail: list[PolarSail]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Polar:
        return cls(
            id=_integer(data, "_id", 255),
            label=str(_field(data, "label")),
            global_speed_ratio=_number(data, "globalSpeedRatio"),
            ice_speed_ratio=_number(data, "iceSpeedRatio"),
            auto_sail_change_tolerance=_number(data, "autoSailChangeTolerance"),
            bad_sail_tolerance=_number(data, "badSailTolerance"),
            max_speed=_number(data, "maxSpeed"),
            foil=_foil_from(_field(data, "foil")),
            hull=Hull(speed_ratio=_number(_field(data, "hull"), "speedRatio")),
            winch=_winch_from(_field(data, "winch")),
            tws=[float(v) for v in _field(data, "tws")],
            twa=[float(v) for v in _field(data, "twa")],
            sail=[_sail_from(s) for s in _field(data, "sail")],
        )

    @staticmethod
    def interpolation_index(values: list[float], value: float) -> Indices:
        """Bracketing indices of ``value`` in ``values`` and the weight of the lower one."""
        if not values:
            raise ValueError("cannot interpolate in an empty table")
        i = 0
        while values[i] < value:
            i += 1
            if i == len(values):
                return (i - 1, 0, 1.0)
        if i > 0:
            return (i - 1, i, (values[i] - value) / (values[i] - values[i - 1]))
        return (0, 0, 0.0)

    @staticmethod
    def interpolation(x1: float, x2: float, y1: float, y2: float, x: float) -> float:
        """Smooth interpolation from (x1, y1) to (x2, y2)."""
        t = (x - x1) / (x2 - x1)
        u = 1.0 - t
        return u * (u * (u * y1 + t * y1) + t * (u * y1 + t * y2)) + t * (
            u * (u * y1 + t * y2) + t * (u * y2 + t * y2)
        )

    def get_boat_speeds(
        self,
        heading: Heading,
        wind: Wind,
        current_sail: Sail,
        is_in_ice_limits: bool,
        all: bool,
        tws_indices: Indices,
        twa_indices: Indices,
    ) -> list[PolarResult]:
        """Speed of every sail; unless ``all``, only sails reaching half the best speed."""
        twa = _normalized_twa(heading, wind)
        foil = self.foil_amount(twa, wind.speed)
        foil_level = _to_u8(_div((foil - 1.0) * 100.0, self.foil.speed_ratio - 1.0))

        speeds: list[tuple[Sail, float]] = []
        speed_max = 0.0
        for sail in self.sail:
            speed = _interpolate(sail, tws_indices, twa_indices) * self.global_speed_ratio
            if is_in_ice_limits:
                speed *= self.ice_speed_ratio
            speed *= self.hull.speed_ratio
            speed *= foil
            if speed_max < speed:
                speed_max = speed
            speeds.append((Sail.from_id(sail.id), speed))

        threshold = 0.0 if all else 0.5
        results = []
        for sail, speed in speeds:
            result = None
            if sail == current_sail:
                boost = _div(speed_max, speed)
                if boost <= self.auto_sail_change_tolerance:
                    result = PolarResult(
                        sail=sail,
                        speed=speed_max,
                        foil=foil_level,
                        boost=_to_u8(
                            _div((boost - 1.0) * 100.0, self.auto_sail_change_tolerance - 1.0)
                        ),
                        best=1.0,
                    )
            if result is None:
                result = PolarResult(
                    sail=sail, speed=speed, foil=foil_level, boost=0, best=_div(speed, speed_max)
                )
            if result.best >= threshold:
                results.append(result)
        return results

    def get_boat_speed(
        self,
        heading: Heading,
        wind: Wind,
        using_sail: Sail | None,
        current_sail: Sail,
        is_in_ice_limits: bool,
    ) -> PolarResult:
        """The fastest result, restricted to ``using_sail`` unless it is automatic."""
        if using_sail is not None and using_sail.auto:
            using_sail = None

        twa = _normalized_twa(heading, wind)
        tws_indices = self.interpolation_index(self.tws, wind.speed)
        twa_indices = self.interpolation_index(self.twa, twa)

        max_speed = 0.0
        best = PolarResult()
        for result in self.get_boat_speeds(
            heading, wind, current_sail, is_in_ice_limits, True, tws_indices, twa_indices
        ):
            if using_sail is not None and result.sail != using_sail:
                continue
            if result.speed > max_speed:
                max_speed = result.speed
                best = dataclasses.replace(result)
        return best

    def _boat_speed_from_wind_index(
        self,
        wind_speed: float,
        using_sail: Sail | None,
        is_in_ice_limits: bool,
        tws_indices: Indices,
        twa: float,
    ) -> tuple[float, Sail, float]:
        twa_indices = self.interpolation_index(self.twa, twa)

        max_speed = 0.0
        best_sail = Sail.from_index(0)
        for sail in self.sail:
            if using_sail is not None and sail.id != using_sail.id:
                continue
            speed = _interpolate(sail, tws_indices, twa_indices)
            if speed > max_speed:
                max_speed = speed
                best_sail = Sail.from_id(sail.id)

        max_speed *= self.global_speed_ratio
        if is_in_ice_limits:
            max_speed *= self.ice_speed_ratio
        max_speed *= self.hull.speed_ratio
        foil = self.foil_amount(twa, wind_speed)
        max_speed *= foil
        return max_speed, best_sail, foil

    def _optimize_vmg(
        self,
        reference: Vmg,
        sign: float,
        wind_speed: float,
        is_in_ice_limits: bool,
        tws_indices: Indices,
    ) -> Vmg | None:
        optimized = None
        max_speed = 0.0
        base = _round_half_away(reference.twa)
        for delta in range(-10, 10):
            twa = base + sign * (delta / 10.0)
            speed, sail, _ = self._boat_speed_from_wind_index(
                wind_speed, reference.sail, is_in_ice_limits, tws_indices, twa
            )
            vmg = speed * math.cos(math.radians(twa))
            if vmg >= reference.vmg - 0.001 and speed > max_speed:
                max_speed = speed
                optimized = Vmg(twa=twa, sail=sail, vmg=vmg)
        return optimized

    def get_vmg(self, wind_speed: float, using_sail: Sail | None, is_in_ice_limits: bool) -> Vmgs:
        """Best upwind and downwind VMG, searched by tenths of a degree."""
        up = Vmg(twa=0.0, sail=Sail.from_index(0), vmg=0.0)
        down = Vmg(twa=180.0, sail=Sail.from_index(0), vmg=0.0)
        tws_indices = self.interpolation_index(self.tws, wind_speed)

        for tenth in range(1801):
            twa = tenth / 10.0
            speed, sail, _ = self._boat_speed_from_wind_index(
                wind_speed, using_sail, is_in_ice_limits, tws_indices, twa
            )
            vmg = speed * math.cos(math.radians(twa))
            if vmg > up.vmg:
                up = Vmg(twa=twa, sail=sail, vmg=vmg)
            if vmg <= down.vmg:
                down = Vmg(twa=twa, sail=sail, vmg=vmg)

        return Vmgs(
            up=up,
            optimized_up=self._optimize_vmg(up, -1.0, wind_speed, is_in_ice_limits, tws_indices),
            down=down,
            optimized_down=self._optimize_vmg(
                down, 1.0, wind_speed, is_in_ice_limits, tws_indices
            ),
        )

    def foil_amount(self, twa: float, wind_speed: float) -> float:
        """Speed factor the foils give at this wind angle and speed (knots)."""
        foil = self.foil
        if twa <= foil.twa_min - foil.twa_merge:
            return 1.0
        if twa < foil.twa_min:
            ct = (twa - (foil.twa_min - foil.twa_merge)) / foil.twa_merge
        elif twa < foil.twa_max:
            ct = 1.0
        elif twa < foil.twa_max + foil.twa_merge:
            ct = (foil.twa_max + foil.twa_merge - twa) / foil.twa_merge
        else:
            return 1.0

        ws = wind_speed
        if ws <= foil.tws_min - foil.tws_merge:
            return 1.0
        if ws < foil.tws_min:
            cv = (ws - (foil.tws_min - foil.tws_merge)) / foil.tws_merge
        elif ws < foil.tws_max:
            cv = 1.0
        elif ws < foil.tws_max + foil.tws_merge:
            cv = (foil.tws_max + foil.tws_merge - ws) / foil.tws_merge
        else:
            cv = 1.0

        return 1.0 + (foil.speed_ratio - 1.0) * ct * cv

    def penalty_values(
        self,
        boat_options: BoatOptions,
        penalty_case: PenaltyCase,
        wind_speed: float,
        stamina: float,
    ) -> Penalty:
        """Duration and speed ratio of one manoeuvre penalty."""
        stamina_coef = 0.5 + (100.0 - stamina) / 100.0 * 1.5 if boat_options.stamina else 1.0

        lws, hws = self.winch.lws, self.winch.hws
        bounds = penalty_case.pro if boat_options.winch else penalty_case.std
        if lws is None or hws is None or bounds is None:
            if boat_options.winch:
                timer, ratio = penalty_case.pro_timer_sec, penalty_case.pro_ratio
            else:
                timer, ratio = penalty_case.std_timer_sec, penalty_case.std_ratio
            return Penalty(duration=timedelta(seconds=int(timer * stamina_coef)), ratio=ratio)

        low, high = float(lws), float(hws)
        if wind_speed <= low:
            timer, ratio = float(bounds.lw.timer), bounds.lw.ratio
        elif wind_speed >= high:
            timer, ratio = float(bounds.hw.timer), bounds.hw.ratio
        else:
            timer = self.interpolation(
                low, high, float(bounds.lw.timer), float(bounds.hw.timer), wind_speed
            )
            ratio = self.interpolation(low, high, bounds.lw.ratio, bounds.hw.ratio, wind_speed)
        return Penalty(duration=timedelta(seconds=int(timer * stamina_coef)), ratio=ratio)

    def tired(
        self,
        stamina: float,
        previous_twa: float,
        new_twa: float,
        previous_sail: Sail,
        new_sail: Sail,
        wind_speed: float,
    ) -> float:
        """Stamina left after tacking, gybing or changing sail."""
        ws = wind_speed
        if ws <= 10.0:
            coef = 1.0 + ws / 10.0 * 0.25
        elif ws <= 20.0:
            coef = 1.25 + (ws - 10.0) / 10.0 * 0.25
        elif ws <= 30.0:
            coef = 1.5 + (ws - 20.0) / 10.0 * 0.5
        else:
            coef = 2.0

        if previous_twa * new_twa < 0.0:
            stamina -= 10.0 * coef
        if previous_sail != new_sail:
            stamina -= 20.0 * coef
        return max(stamina, 0.0)

    def recovers(self, stamina: float, duration: timedelta, wind_speed: float) -> float:
        """Stamina regained after resting for ``duration``."""
        if wind_speed <= 0.0:
            recovery_time = 5.0
        elif wind_speed >= 30.0:
            recovery_time = 15.0
        else:
            recovery_time = self.interpolation(0.0, 30.0, 5.0, 15.0, wind_speed)

        micros = duration // timedelta(microseconds=1)
        minutes = abs(micros) // 60_000_000
        if micros < 0:
            minutes = -minutes
        return min(stamina + minutes / recovery_time, 100.0)

    def add_penalties(
        self,
        boat_options: BoatOptions,
        penalties: Penalties,
        stamina: float,
        previous_twa: float,
        new_twa: float,
        previous_sail: Sail,
        new_sail: Sail,
        wind_speed: float,
    ) -> Penalties:
        """Penalties after the manoeuvres implied by the change of TWA and sail."""
        result = dataclasses.replace(penalties)
        if previous_twa * new_twa < 0.0:
            if abs(new_twa) <= 90.0:
                result.tack = self.penalty_values(
                    boat_options, self.winch.tack, wind_speed, stamina
                )
            else:
                result.gybe = self.penalty_values(
                    boat_options, self.winch.gybe, wind_speed, stamina
                )
        if previous_sail != new_sail:
            result.sail_change = self.penalty_values(
                boat_options, self.winch.sail_change, wind_speed, stamina
            )
        return result

    @staticmethod
    def distance(
        boat_speed: float, duration: timedelta, penalties: Penalties
    ) -> tuple[float, Penalties, float, float]:
        """Metres sailed in ``duration``, remaining penalties, first speed and ratio."""
        if duration == _ZERO:
            return 0.0, dataclasses.replace(penalties), boat_speed, 1.0
        if not penalties.is_active():
            return _metres(boat_speed, duration), dataclasses.replace(penalties), boat_speed, 1.0

        penalty_duration = penalties.min_penalty_duration()
        if penalty_duration is None:
            return _metres(boat_speed, duration), dataclasses.replace(penalties), boat_speed, 1.0

        penalty_duration = min(penalty_duration, duration)
        remaining, ratio = penalties.navigate(penalty_duration)
        rest, remaining, _, _ = Polar.distance(boat_speed, duration - penalty_duration, remaining)
        slowed = boat_speed * ratio
        return _metres(slowed, penalty_duration) + rest, remaining, slowed, ratio

    @staticmethod
    def duration(
        boat_speed: float, distance: float, penalties: Penalties
    ) -> tuple[timedelta, Penalties, float, float]:
        """Time to sail ``distance`` metres, remaining penalties, first speed and ratio."""
        pending = penalties.to_list()
        if pending:
            first = pending[0]
            slowed = boat_speed * first.ratio
            reach = _metres(slowed, first.duration)
            if distance <= reach:
                needed = _time_for(distance, slowed)
                return needed, penalties - needed, slowed, first.ratio
            rest, remaining, _, _ = Polar.duration(
                boat_speed, distance - reach, penalties - first.duration
            )
            return first.duration + rest, remaining, slowed, first.ratio

        return _time_for(distance, boat_speed), penalties, boat_speed, 1.0


class PolarCache:
    """A polar with its interpolation indices memoised."""

    def __init__(self, polar: Polar) -> None:
        self.polar = polar
        self._twa_indices: dict[int, Indices] = {}
        self._tws_indices: Indices = (0, 0, 0.0)
        self._last_tws = -1.0

    def _twa_index(self, twa: float) -> Indices:
        key = int(twa)
        cached = self._twa_indices.get(key)
        if cached is None:
            cached = Polar.interpolation_index(self.polar.twa, twa)
            self._twa_indices[key] = cached
        return cached

    def _tws_index(self, tws: float) -> Indices:
        if self._last_tws != tws:
            self._tws_indices = Polar.interpolation_index(self.polar.tws, tws)
            self._last_tws = tws
        return self._tws_indices

    def get_boat_speeds(
        self,
        heading: Heading,
        wind: Wind,
        current_sail: Sail,
        is_in_ice_limits: bool,
        all: bool,
    ) -> list[PolarResult]:
        twa = _normalized_twa(heading, wind)
        tws_indices = self._tws_index(wind.speed)
        twa_indices = self._twa_index(twa)
        return self.polar.get_boat_speeds(
            heading, wind, current_sail, is_in_ice_limits, all, tws_indices, twa_indices
        )

    def add_penalties(
        self,
        boat_options: BoatOptions,
        penalties: Penalties,
        stamina: float,
        previous_twa: float,
        new_twa: float,
        previous_sail: Sail,
        new_sail: Sail,
        wind_speed: float,
    ) -> Penalties:
        return self.polar.add_penalties(
            boat_options, penalties, stamina, previous_twa, new_twa,
            previous_sail, new_sail, wind_speed,
        )

    def tired(
        self,
        stamina: float,
        previous_twa: float,
        new_twa: float,
        previous_sail: Sail,
        new_sail: Sail,
        wind_speed: float,
    ) -> float:
        return self.polar.tired(stamina, previous_twa, new_twa, previous_sail, new_sail, wind_speed)

    def recovers(self, stamina: float, duration: timedelta, wind_speed: float) -> float:
        return self.polar.recovers(stamina, duration, wind_speed)


class PolarRegistry:
    """Polars by name; the registered objects are shared."""

    def __init__(self) -> None:
        self._polars: dict[str, Polar] = {}
        self._lock = threading.RLock()

    def add(self, name: str, polar: Polar) -> None:
        with self._lock:
            self._polars[name] = polar

    def get(self, name: str) -> Polar:
        with self._lock:
            try:
                return self._polars[name]
            except KeyError:
                raise PolarNotFound(f"Polar {name} not found") from None