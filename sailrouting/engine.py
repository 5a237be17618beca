"""The routing engine: the one place that holds polars, races and land masks."""

from __future__ import annotations

import logging

from sailrouting.land import LandProviders, LandsProvider
from sailrouting.polar import Polar, PolarRegistry
from sailrouting.race import Race, RaceRegistry

log = logging.getLogger(__name__)


class Engine:
    """Registries of polars, races and land providers, shared by all routing requests."""

    def __init__(self) -> None:
        self._polars = PolarRegistry()
        self._races = RaceRegistry()
        self._land_providers = LandProviders()

    def add_polar(self, name: str, polar: Polar) -> None:
        """Register ``polar`` under ``name``, replacing any polar of that name."""
        self._polars.add(name, polar)

    def get_polar(self, name: str) -> Polar:
        """The polar registered under ``name``; raises ``PolarNotFound`` otherwise."""
        return self._polars.get(name)

    def list_races(self) -> list[Race]:
        """Copies of every registered race."""
        return self._races.list()

    def get_race(self, name: str) -> Race:
        """A copy of the race registered under ``name``; raises ``RaceNotFound`` otherwise."""
        return self._races.get(name)

    def set_race(self, name: str, race: Race) -> None:
        """Register ``race`` under ``name``, replacing any race of that name."""
        self._races.set(name, race)

    def add_land_provider(self, name: str, provider: LandsProvider) -> None:
        """Register a land provider under ``name``."""
        log.info("Adding land provider %s", name)
        self._land_providers.add(name, provider)

    def draw_land(
        self, provider: str, x: int, y: int, z: int, width: int, height: int
    ) -> bytes:
        """Render the map tile ``(x, y, z)`` as RGBA bytes using the named land provider."""
        return self._land_providers.draw(provider, x, y, z, width, height)