"""Distances GPS et paliers de proximité."""

from __future__ import annotations

import math
from enum import Enum

from lareprise.schema import Coordinates

EARTH_RADIUS_M = 6371e3


class Proximity(str, Enum):
    IMMEDIATE = "immediate"
    VERY_CLOSE = "very_close"
    CLOSE = "close"
    MODERATE = "moderate"
    FAR = "far"


# (borne haute exclusive en mètres, points de distance, niveau de proximité)
PROXIMITY_TIERS: tuple[tuple[float, int, Proximity], ...] = (
    (50.0, 40, Proximity.IMMEDIATE),
    (200.0, 30, Proximity.VERY_CLOSE),
    (500.0, 20, Proximity.CLOSE),
    (1000.0, 10, Proximity.MODERATE),
)


def haversine_m(a: Coordinates, b: Coordinates) -> float:
    """Distance orthodromique entre deux points, en mètres."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lon - a.lon)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def distance_between(a: Coordinates | None, b: Coordinates | None) -> float | None:
    """Distance en mètres, ou None si l'une des positions est inconnue."""
    if a is None or b is None:
        return None
    return haversine_m(a, b)


def score_distance(distance_m: float | None) -> int:
    """
    Points de proximité (0-40) selon les paliers canoniques.

    < 50 m → 40, < 200 m → 30, < 500 m → 20, < 1000 m → 10, sinon 0.
    Distance inconnue → 0.
    """
    if distance_m is None or distance_m != distance_m:
        return 0
    for upper, points, _ in PROXIMITY_TIERS:
        if distance_m < upper:
            return points
    return 0


def proximity_level(distance_m: float) -> Proximity:
    """Niveau de proximité correspondant aux mêmes paliers que score_distance."""
    for upper, _, level in PROXIMITY_TIERS:
        if distance_m < upper:
            return level
    return Proximity.FAR
