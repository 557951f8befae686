"""Geodesic utilities.

Provides the haversine formula for the great-circle distance between
latitude/longitude coordinates and the slant range that combines it
with an altitude difference.
"""

import math

EARTH_RADIUS_M = 6371000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute the great‑circle distance between two points on Earth.

    Parameters
    ----------
    lat1, lon1 : float
        Latitude and longitude of point 1 in degrees.
    lat2, lon2 : float
        Latitude and longitude of point 2 in degrees.

    Returns
    -------
    float
        Distance in metres on a sphere of radius ``EARTH_RADIUS_M``.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2)**2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2)**2
    # Rounding can push a just outside [0, 1] for antipodal points.
    a = min(max(a, 0.0), 1.0)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def slant_range(horizontal_m: float, alt1: float, alt2: float) -> float:
    """Combine a horizontal distance with the vertical offset ``alt1 - alt2``."""
    return math.hypot(horizontal_m, alt1 - alt2)
