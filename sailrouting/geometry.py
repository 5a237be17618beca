"""Rhumb-line navigation on a spherical earth."""

from __future__ import annotations

import math

from sailrouting.position import Coords

MEAN_EARTH_RADIUS = 6371008.8
"""Mean earth radius, in metres."""

_PSI_EPSILON = 10e-12


def wrap360(value: float) -> float:
    """Bring an angle in degrees into the range [0, 360)."""
    if 0.0 <= value < 360.0:
        return value
    shifted = value + 360.0
    return shifted - float(int(shifted / 360.0) * 360)


def _div(numerator: float, denominator: float) -> float:
    """IEEE division: dividing by zero yields an infinity or NaN."""
    try:
        return numerator / denominator
    except ZeroDivisionError:
        if numerator == 0.0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)


def _ln(value: float) -> float:
    if math.isnan(value) or value < 0.0:
        return math.nan
    if value == 0.0:
        return -math.inf
    if math.isinf(value):
        return math.inf
    return math.log(value)


def _sqrt(value: float) -> float:
    return math.nan if math.isnan(value) or value < 0.0 else math.sqrt(value)


def _asin(value: float) -> float:
    return math.nan if math.isnan(value) or abs(value) > 1.0 else math.asin(value)


def _clamp_unit(value: float) -> float:
    """Clamp into [-1, 1]; NaN ends up at -1."""
    if math.isnan(value):
        return -1.0
    return min(max(value, -1.0), 1.0)


def _wrap_delta_lon(delta: float) -> float:
    if abs(delta) > math.pi:
        return -(math.tau - delta) if delta > 0.0 else math.tau + delta
    return delta


def _delta_psi(phi1: float, phi2: float) -> float:
    return _ln(
        _div(
            math.tan(phi2 / 2.0 + math.pi / 4.0),
            math.tan(phi1 / 2.0 + math.pi / 4.0),
        )
    )


def _stretch(delta_phi: float, delta_psi: float, phi1: float) -> float:
    if abs(delta_psi) <= _PSI_EPSILON:
        return math.cos(phi1)
    return _div(delta_phi, delta_psi)


class Spherical:
    """Rhumb-line computations; distances are in metres, headings in degrees."""

    def _legs(self, start: Coords, end: Coords) -> tuple[float, float, float, float]:
        phi1 = math.radians(start.lat)
        phi2 = math.radians(end.lat)
        delta_lambda = _wrap_delta_lon(math.radians(end.lon - start.lon))
        return phi1, phi2 - phi1, delta_lambda, _delta_psi(phi1, phi2)

    def distance_to(self, start: Coords, end: Coords) -> float:
        phi1, delta_phi, delta_lambda, delta_psi = self._legs(start, end)
        q = _stretch(delta_phi, delta_psi, phi1)
        return MEAN_EARTH_RADIUS * _sqrt(delta_phi * delta_phi + q * q * delta_lambda * delta_lambda)

    def heading_to(self, start: Coords, end: Coords) -> float:
        _, _, delta_lambda, delta_psi = self._legs(start, end)
        return wrap360(math.degrees(math.atan2(delta_lambda, delta_psi)))

    def distance_and_heading_to(self, start: Coords, end: Coords) -> tuple[float, float]:
        phi1, delta_phi, delta_lambda, delta_psi = self._legs(start, end)
        q = _stretch(delta_phi, delta_psi, phi1)
        distance = MEAN_EARTH_RADIUS * _sqrt(delta_phi * delta_phi + q * q * delta_lambda * delta_lambda)
        heading = wrap360(math.degrees(math.atan2(delta_lambda, delta_psi)))
        return distance, heading

    def destination(self, start: Coords, heading: float, distance: float) -> Coords:
        phi1 = math.radians(start.lat)
        lambda1 = math.radians(start.lon)
        theta = math.radians(heading)

        delta = distance / MEAN_EARTH_RADIUS
        delta_phi = delta * math.cos(theta)
        phi2 = phi1 + delta_phi

        if abs(phi2) > math.pi / 2.0:
            phi2 = math.pi - phi2 if phi2 > 0.0 else -math.pi - phi2

        delta_psi = _delta_psi(phi1, phi2)
        q = _stretch(delta_phi, delta_psi, phi1)
        lambda2 = lambda1 + _div(delta * math.sin(theta), q)

        return Coords(lat=math.degrees(phi2), lon=math.degrees(lambda2))

    def intersection(
        self, line: tuple[Coords, Coords], start: Coords, heading: float
    ) -> Coords | None:
        """Where the course from ``start`` meets the course along ``line``, if anywhere."""
        p1, p2 = line[0], start
        brng1 = self.heading_to(line[0], line[1])

        phi1, lambda1 = math.radians(p1.lat), math.radians(p1.lon)
        phi2, lambda2 = math.radians(p2.lat), math.radians(p2.lon)
        theta13, theta23 = math.radians(brng1), math.radians(heading)
        delta_phi, delta_lambda = phi2 - phi1, lambda2 - lambda1

        half_phi = math.sin(delta_phi / 2.0)
        half_lambda = math.sin(delta_lambda / 2.0)
        delta12 = 2.0 * _asin(
            _sqrt(half_phi * half_phi + math.cos(phi1) * math.cos(phi2))
            * half_lambda
            * half_lambda
        )
        if abs(delta12) < 2.220446049250313e-16:
            return Coords(lat=p1.lat, lon=p1.lon)

        cos_theta_a = _div(
            math.sin(phi2) - math.sin(phi1) * math.cos(delta12),
            math.sin(delta12) * math.cos(phi1),
        )
        cos_theta_b = _div(
            math.sin(phi1) - math.sin(phi2) * math.cos(delta12),
            math.sin(delta12) * math.cos(phi2),
        )
        theta_a = math.acos(_clamp_unit(cos_theta_a))
        theta_b = math.acos(_clamp_unit(cos_theta_b))

        eastward = math.sin(lambda2 - lambda1) > 0.0
        theta12 = theta_a if eastward else 2.0 * math.pi - theta_a
        theta21 = 2.0 * math.pi - theta_b if eastward else theta_b

        a1 = theta13 - theta12
        a2 = theta21 - theta23

        if (math.sin(a1) == 0.0 and math.sin(a2) == 0.0) or math.sin(a1) * math.sin(a2) < 0.0:
            return None

        cos_alpha3 = -math.cos(a1) * math.cos(a2) + math.sin(a1) * math.sin(a2) * math.cos(delta12)
        delta13 = math.atan2(
            math.sin(delta12) * math.sin(a1) * math.sin(a2),
            math.cos(a2) + math.cos(a1) * cos_alpha3,
        )
        phi3 = math.asin(
            _clamp_unit(
                math.sin(phi1) * math.cos(delta13)
                + math.cos(phi1) * math.sin(delta13) * math.cos(theta13)
            )
        )
        delta_lambda13 = math.atan2(
            math.sin(theta13) * math.sin(delta13) * math.cos(phi1),
            math.cos(delta13) - math.sin(phi1) * math.sin(phi3),
        )
        return Coords(lat=math.degrees(phi3), lon=math.degrees(lambda1 + delta_lambda13))