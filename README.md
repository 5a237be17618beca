# sailrouting

Building blocks for computing sailing routes. Distances are in metres, boat
and wind speeds in knots, angles in degrees, durations as `datetime.timedelta`.

## Modules

- **`sailrouting.geometry`**: `Spherical` gives rhumb-line `distance_to`,
  `heading_to`, `distance_and_heading_to` and `destination` on a sphere of
  mean earth radius (`MEAN_EARTH_RADIUS`), and `intersection` of two courses,
  which returns `None` when there is no single crossing. `wrap360` brings an
  angle into `[0, 360)`.
- **`sailrouting.position`**: `Coords`, `Wind`, `Sail` (compared by id;
  `Sail.from_id` treats ids of 10 and above as an automatic sail), `Heading`
  (`Heading.fixed` for a compass heading, `Heading.regulated` for a true wind
  angle, converting with `heading(twd)` and `twa(twd)`), `BoatSettings`,
  `Penalty` and `Penalties` (the gybe, sail-change and tack penalties that are
  running; subtracting a `timedelta` shortens them).
- **`sailrouting.polar`**: `Polar`, loaded from its JSON object form with
  `Polar.from_dict`. It computes speeds per sail (`get_boat_speeds`,
  `get_boat_speed`) with global, ice, hull and foil ratios, searches the best
  upwind and downwind VMG (`get_vmg`), works out tack, gybe and sail-change
  penalties (`penalty_values`, `add_penalties`), stamina loss and recovery
  (`tired`, `recovers`), and the distance sailed in a given time or the time
  needed for a distance while penalties run (`Polar.distance`,
  `Polar.duration`). `PolarCache` memoises the table lookups; `PolarRegistry`
  holds polars by name. `BoatOptions` selects the winch and stamina options.
- **`sailrouting.land`**: `LandsProvider` is the base for land masks, with
  neighbourhood checks (`is_next_land`, `near_land`), segment checks
  (`cross_land`, `cross_next_land`), `best_to_leave` and `draw`, which renders
  a Web-Mercator tile as RGBA bytes (opaque black on land). `VrLandProvider`
  is a grid of one-degree tiles; built without arguments it is all sea, and
  `VrLandProvider.from_directory(path)` reads an `index` file and the
  `carto/1_<lon>_<lat>.deg` bit masks beneath `path`. `LandProviders` holds
  providers by name. `to_lat_lon`, `tile_to_bounding_box` and
  `tile_to_bounding_box2` convert tile coordinates.
- **`sailrouting.race`**: `Race` with its buoys (`Zone`, `Door`, `Waypoint`),
  validated in order with `next_waypoint` and `validate_next_waypoint`, and
  ice `Limits`. `Race.from_dict` / `Race.to_dict` and `buoy_from_dict` /
  `buoy_to_dict` read and write the JSON object form. `RaceRegistry` holds
  races by name and hands out copies.
- **`sailrouting.engine`**: `Engine` keeps polars, races and land providers by
  name (`add_polar`, `get_polar`, `set_race`, `get_race`, `list_races`,
  `add_land_provider`, `draw_land`).

Looking up a name that was never registered raises `PolarNotFound`,
`RaceNotFound` or `ProviderNotFound`.

## Installation

```
pip install .
```

The package has no runtime dependencies.

## Example

```python
from sailrouting.geometry import Spherical
from sailrouting.position import Coords, Heading

algo = Spherical()
start = Coords(lat=46.0, lon=-1.5)
end = Coords(lat=47.0, lon=-3.0)

distance, heading = algo.distance_and_heading_to(start, end)
print(distance, heading)

twa = Heading.fixed(heading).twa(270.0)
print(Heading.regulated(twa).heading(270.0))
```

Drawing land through the engine:

```python
from sailrouting.engine import Engine
from sailrouting.land import VrLandProvider

engine = Engine()
engine.add_land_provider("world", VrLandProvider())
rgba = engine.draw_land("world", 0, 0, 1, 256, 256)
assert len(rgba) == 256 * 256 * 4
```

## What it does not do

The package reads no weather data: there is no wind provider and no GRIB
reading, so a `Wind` must be supplied by the caller. It does not compute
whole routes or isochrones, and it has no command-line tool; it offers the
pieces such a router is made of.

## Tests

```
pip install .[test]
pytest
```