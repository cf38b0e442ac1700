"""Great-circle helpers used when no distance-matrix provider is wired in."""

import math
from collections.abc import Sequence

import numpy as np

from booking_engine.features.booking_decisions.domain.models import Coordinates

EARTH_RADIUS_METERS = 6_371_000
METERS_PER_MILE = 1609.344


def haversine_meters(origin: Coordinates, destination: Coordinates) -> float:
    """Great-circle distance between two coordinates in meters."""
    lat1, lon1, lat2, lon2 = map(
        math.radians, [origin.lat, origin.lng, destination.lat, destination.lng]
    )
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(min(1.0, a)))


def haversine_matrix(points: Sequence[Coordinates]) -> np.ndarray:
    """Symmetric pairwise distance matrix in meters with a zero diagonal."""
    n = len(points)
    if n == 0:
        return np.zeros((0, 0))

    lat = np.radians(np.array([p.lat for p in points], dtype=float))
    lng = np.radians(np.array([p.lng for p in points], dtype=float))

    dlat = lat[:, None] - lat[None, :]
    dlng = lng[:, None] - lng[None, :]
    a = np.sin(dlat / 2) ** 2 + np.cos(lat)[:, None] * np.cos(lat)[None, :] * np.sin(dlng / 2) ** 2
    matrix = 2 * EARTH_RADIUS_METERS * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))

    # Float noise can break exact symmetry on the two triangles.
    matrix = np.triu(matrix, 1)
    matrix = matrix + matrix.T
    return matrix


def travel_seconds(meters: np.ndarray, minutes_per_mile: float) -> np.ndarray:
    """Approximate urban driving time for a distance matrix."""
    return meters / METERS_PER_MILE * minutes_per_mile * 60.0


def meters_to_miles(meters: float) -> float:
    return meters / METERS_PER_MILE
