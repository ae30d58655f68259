"""
app/services/locks.py

Keyed locks used to serialize detect-then-create sections.
"""

from __future__ import annotations

import math
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from similarity.geo import METERS_PER_DEGREE_LAT, bounding_box
from similarity.text import normalize_name

GLOBAL_SPATIAL_KEY = "cell:*"
MAX_CELLS_PER_WINDOW = 64


class KeyedLockRegistry:
    """
    One mutex per key, created on demand and dropped when unused.

    ``hold`` acquires several keys in sorted order so overlapping key sets
    never deadlock.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._holders: dict[str, int] = {}

    @contextmanager
    def hold(self, keys: Iterable[str]) -> Iterator[None]:
        ordered = sorted(set(keys))
        locks = self._checkout(ordered)
        acquired: list[threading.Lock] = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            self._release_all(ordered)

    def active_keys(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, keys: list[str]) -> list[threading.Lock]:
        with self._guard:
            locks: list[threading.Lock] = []
            for key in keys:
                lock = self._locks.get(key)
                if lock is None:
                    lock = threading.Lock()
                    self._locks[key] = lock
                self._holders[key] = self._holders.get(key, 0) + 1
                locks.append(lock)
            return locks

    def _release_all(self, keys: list[str]) -> None:
        with self._guard:
            for key in keys:
                remaining = self._holders.get(key, 0) - 1
                if remaining > 0:
                    self._holders[key] = remaining
                    continue
                self._holders.pop(key, None)
                self._locks.pop(key, None)


def spatial_cell_keys(lat: float, lon: float, radius_meters: float) -> list[str]:
    """
    Lock keys for every grid cell a candidate window touches.

    Cells are one window-height tall, so two records within the window of
    each other always share at least one key.
    """

    if not (math.isfinite(lat) and math.isfinite(lon)) or radius_meters <= 0:
        return [GLOBAL_SPATIAL_KEY]

    cell_degrees = radius_meters / METERS_PER_DEGREE_LAT
    min_lat, max_lat, min_lon, max_lon = bounding_box(lat, lon, radius_meters)
    lat_cells = range(math.floor(min_lat / cell_degrees), math.floor(max_lat / cell_degrees) + 1)
    lon_cells = range(math.floor(min_lon / cell_degrees), math.floor(max_lon / cell_degrees) + 1)
    if len(lat_cells) * len(lon_cells) > MAX_CELLS_PER_WINDOW:
        return [GLOBAL_SPATIAL_KEY]
    return [f"cell:{row}:{col}" for row in lat_cells for col in lon_cells]


def creator_name_key(name: str) -> str:
    return f"creator:{normalize_name(name)}"
