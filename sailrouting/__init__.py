"""Sailing route building blocks: geometry, positions, polars, land masks, races and an engine."""

__version__ = "0.1.0"

__all__ = ["engine", "geometry", "land", "polar", "position", "race"]