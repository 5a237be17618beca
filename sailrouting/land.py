"""Land masks: deciding whether a point is on land, and drawing land tiles."""

from __future__ import annotations

import abc
import enum
import logging
import math
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from sailrouting.position import Coords

log = logging.getLogger(__name__)

_RESOLUTION = 730.0
_STEP = 10

_LEAVE_DELTAS = (
    (1.0, 0.0), (1.0, 1.0), (0.0, 1.0), (-1.0, 1.0),
    (-1.0, 0.0), (-1.0, -1.0), (0.0, -1.0), (1.0, -1.0),
)
_LEAVE_HEADINGS = (0.0, 45.0, 90.0, 135.0, 180.0, 225.0, 270.0, 315.0)
_LEAVE_DISTANCES = (
    (0, 1, 2, 3, 4, 3, 2, 1),
    (1, 0, 1, 2, 3, 4, 3, 2),
    (2, 1, 0, 1, 2, 3, 4, 3),
    (3, 2, 1, 0, 1, 2, 3, 4),
    (4, 3, 2, 1, 0, 1, 2, 3),
    (3, 4, 3, 2, 1, 0, 1, 2),
    (2, 3, 4, 3, 2, 1, 0, 1),
    (1, 2, 3, 4, 3, 2, 1, 0),
)


def _exp(value: float) -> float:
    try:
        return math.exp(value)
    except OverflowError:
        return math.inf


def _mercator_lat(g: float) -> float:
    return math.degrees(2.0 * math.atan(_exp(g)) - 0.5 * math.pi)


@dataclass(frozen=True)
class BoundingBox:
    north: float
    south: float
    east: float
    west: float


def to_lat_lon(x: float, y: float, z: float) -> tuple[float, float]:
    """Convert Web-Mercator pixel coordinates at zoom ``z`` into (lat, lon)."""
    size = 256.0 * 2.0 ** z
    bc = size / 360.0
    cc = size / (2.0 * math.pi)
    zc = size / 2.0
    g = (y - zc) / -cc
    lon = (x - zc) / bc
    return _mercator_lat(g), lon


def tile_to_bounding_box(x: float, y: float, z: float) -> BoundingBox:
    """Geographic bounds of the map tile ``(x, y)`` at zoom ``z``."""
    ll = (x * 256.0, (y + 1.0) * 256.0)
    ur = ((x + 1.0) * 256.0, y * 256.0)

    size = 256.0 * 2.0 ** z
    bc = size / 360.0
    cc = size / (2.0 * math.pi)
    zc = size / 2.0

    west = (ll[0] - zc) / bc
    south = _mercator_lat((ll[1] - zc) / -cc)
    east = (ur[0] - zc) / bc
    north = _mercator_lat((ur[1] - zc) / -cc)
    return BoundingBox(north=north, south=south, east=east, west=west)


def tile_to_bounding_box2(x: float, y: float, z: float) -> BoundingBox:
    """Alternative tile bounds computed through spherical-Mercator metres."""
    radius = 6378137.0
    scale = 0.5 / (math.pi * radius)
    a, b, c, d = scale, 0.5, -1.0 * scale, 0.5
    pixels = 256.0 * 2.0 ** z

    mx, my = (x / pixels - b) / a, (y / pixels - d) / c
    north = (2.0 * math.atan(_exp(my / radius)) - math.pi / 2.0) * d
    west = mx * d / radius

    mx, my = ((x - 1.0) / pixels - b) / a, ((y - 1.0) / pixels - d) / c
    south = math.degrees(2.0 * math.atan(_exp(my / radius)) - math.pi / 2.0)
    east = math.degrees(mx / radius)

    return BoundingBox(north=north, south=south, east=east, west=west)


class LandsProvider(abc.ABC):
    """Something that knows where land is."""

    @abc.abstractmethod
    def is_land(self, lat: float, lon: float) -> bool:
        """Whether the point is on land."""

    def is_next_land(self, lat: float, lon: float) -> bool:
        """Whether the point or one of its immediate neighbours is on land."""
        step = _RESOLUTION / 2.0
        return any(
            self.is_land(lat + i / step, lon + j / step)
            for i in (-1, 0, 1)
            for j in (-1, 0, 1)
        )

    @staticmethod
    def _samples(start: Coords, end: Coords):
        for i in range(_STEP + 1):
            yield (
                start.lat + i * (end.lat - start.lat) / _STEP,
                start.lon + i * (end.lon - start.lon) / _STEP,
            )

    def cross_land(self, start: Coords, end: Coords) -> bool:
        """Whether the straight segment from ``start`` to ``end`` touches land."""
        return any(self.is_land(lat, lon) for lat, lon in self._samples(start, end))

    def cross_next_land(self, start: Coords, end: Coords) -> bool:
        """Like :meth:`cross_land`, with a margin when starting away from the coast."""
        near = self.is_next_land(start.lat, start.lon)
        for lat, lon in self._samples(start, end):
            if near and self.is_land(lat, lon) or not near and self.is_next_land(lat, lon):
                return True
        return False

    def best_to_leave(self, start: Coords) -> float:
        """Heading that leads furthest away from the surrounding land."""
        lands = [
            self.is_land(
                start.lat + dlat * 0.7 / _RESOLUTION,
                start.lon + dlon * 0.7 / _RESOLUTION,
            )
            for dlat, dlon in _LEAVE_DELTAS
        ]
        log.debug("lands : %s", lands)

        scores = [
            min((d for d, land in zip(row, lands) if land), default=0)
            for row in _LEAVE_DISTANCES
        ]
        log.debug("scores : %s", scores)

        best_index = 0
        for index, score in enumerate(scores):
            if score >= scores[best_index]:
                best_index = index
        return _LEAVE_HEADINGS[best_index]

    def near_land(self, lat: float, lon: float) -> bool:
        """Whether land lies within two grid cells of the point."""
        return any(
            self.is_land(lat + i / _RESOLUTION, lon + j / _RESOLUTION)
            for i in range(-2, 3)
            for j in range(-2, 3)
        )

    def draw(self, x: int, y: int, z: int, width: int, height: int) -> bytes:
        """Render a map tile as RGBA bytes: opaque black on land, transparent elsewhere."""
        data = bytearray(width * height * 4)
        for i in range(width):
            for j in range(height):
                lat, lon = to_lat_lon(float(x * width + i), float(y * height + j), float(z))
                if self.is_land(lat, lon):
                    offset = (j * width + i) * 4
                    data[offset:offset + 4] = b"\x00\x00\x00\xff"
        return bytes(data)


class TileKind(enum.Enum):
    SEA = 0
    MIXED = 1
    LAND = 2


@dataclass(frozen=True)
class Tile:
    """A one-degree tile; mixed tiles carry a 730x730 bit mask."""

    kind: TileKind = TileKind.LAND
    data: bytes = b""


_SEA_TILE = Tile(TileKind.SEA)


class VrLandProvider(LandsProvider):
    """Land mask built from a grid of one-degree tiles."""

    LAT_0 = -89
    LAT_N = 180
    LON_0 = -180
    LON_N = 360

    def __init__(self, tiles: Sequence[Sequence[Tile]] | None = None) -> None:
        if tiles is None:
            self._tiles = [[_SEA_TILE] * self.LON_N for _ in range(self.LAT_N)]
            return
        grid = [list(row) for row in tiles]
        if len(grid) != self.LAT_N or any(len(row) != self.LON_N for row in grid):
            raise ValueError(f"tile grid must be {self.LAT_N}x{self.LON_N}")
        self._tiles = grid

    @classmethod
    def from_directory(cls, path: str | os.PathLike[str]) -> VrLandProvider:
        """Load the tile index and the mixed tiles found under ``path``."""
        root = Path(path)
        index_path = root / "index"
        if not index_path.is_file():
            raise FileNotFoundError("Tiles index not found")
        index = index_path.read_bytes()
        if len(index) * 4 < cls.LAT_N * cls.LON_N:
            raise ValueError("Tiles index is truncated")

        tiles: list[list[Tile]] = []
        for d_lat in range(cls.LAT_N):
            latitude = cls.LAT_0 + d_lat
            row: list[Tile] = []
            for d_lon in range(cls.LON_N):
                longitude = cls.LON_0 + d_lon
                p = d_lat * cls.LON_N + d_lon
                value = (index[p // 4] >> (6 - 2 * (p % 4))) & 3
                if value == 0:
                    row.append(_SEA_TILE)
                elif value == 1:
                    name = f"carto/1_{longitude}_{latitude}.deg"
                    tile_path = root / name
                    if not tile_path.is_file():
                        raise FileNotFoundError(f"Tile {name} not found")
                    row.append(Tile(TileKind.MIXED, tile_path.read_bytes()))
                elif value == 2:
                    row.append(Tile(TileKind.LAND))
                else:
                    raise ValueError("bad value")
            tiles.append(row)
        return cls(tiles)

    def _tile(self, tile_lat: int, tile_lon: int) -> Tile | None:
        d_lat = tile_lat - self.LAT_0
        if d_lat < 0 or d_lat >= self.LAT_N:
            return None
        return self._tiles[d_lat][(tile_lon - self.LON_0) % self.LON_N]

    def is_land(self, lat: float, lon: float) -> bool:
        tile_lat = math.ceil(lat)
        tile_lon = math.floor(lon)
        tile = self._tile(tile_lat, tile_lon)
        if tile is None or tile.kind is TileKind.SEA:
            return False
        if tile.kind is TileKind.LAND:
            return True
        row = max(0, int((tile_lat - lat) * _RESOLUTION))
        col = max(0, int((lon - tile_lon) * _RESOLUTION))
        p = row * int(_RESOLUTION) + col
        return (tile.data[p // 8] >> (7 - p % 8)) & 0x01 == 0x01

    def near_land(self, lat: float, lon: float) -> bool:
        base_lat = math.ceil(lat)
        base_lon = math.floor(lon)
        kinds = set()
        for i in (-1, 0, 1):
            for j in (-1, 0, 1):
                tile = self._tile(base_lat + i, base_lon + j)
                if tile is not None:
                    kinds.add(tile.kind)

        if TileKind.MIXED in kinds or (TileKind.SEA in kinds and TileKind.LAND in kinds):
            return any(
                self.is_land(lat + i / _RESOLUTION, lon + j / _RESOLUTION)
                for i in range(-5, 6)
                for j in range(-5, 6)
            )
        return TileKind.LAND in kinds


class ProviderNotFound(LookupError):
    """No land provider is registered under the requested name."""


class LandProviders:
    """Named land providers."""

    def __init__(self) -> None:
        self._providers: dict[str, LandsProvider] = {}
        self._lock = threading.RLock()

    def add(self, name: str, provider: LandsProvider) -> None:
        with self._lock:
            self._providers[name] = provider

    def get(self, name: str) -> LandsProvider:
        with self._lock:
            try:
                return self._providers[name]
            except KeyError:
                raise ProviderNotFound("Provider not found") from None

    def draw(self, name: str, x: int, y: int, z: int, width: int, height: int) -> bytes:
        log.debug("Draw land %s (%s,%s,%s) (%s,%s)", name, x, y, z, width, height)
        return self.get(name).draw(x, y, z, width, height)