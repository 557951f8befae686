"""Distance between a truth sample and a sensor sample.

The horizontal component is the haversine great-circle distance on a
sphere of radius 6 371 km.  When the sensor sample carries a usable
altitude the vertical difference is folded in as a slant range and the
measurement is tagged 3D; otherwise the truth altitude is ignored and
the measurement is tagged 2D.  Whether the truth sample has an altitude
does not influence the mode; a missing truth altitude counts as zero in
a 3D measurement.
"""

import math
from typing import Optional, Tuple

from ..errors import InvalidCoordinate
from ..utils.geodesy import haversine_distance, slant_range
from .samples import GeoSample, MeasurementType


def _require_finite(value, name: str) -> float:
    if value is None:
        raise InvalidCoordinate(f"{name} is missing")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidCoordinate(f"{name} is not a number: {value!r}") from exc
    if not math.isfinite(number):
        raise InvalidCoordinate(f"{name} is not finite: {value!r}")
    return number


def validate_point(
    latitude: float,
    longitude: float,
    altitude: Optional[float] = None,
) -> Tuple[float, float, Optional[float]]:
    """Check a geodetic point and return it as floats.

    Raises
    ------
    InvalidCoordinate
        If latitude is outside [-90, 90], longitude is outside
        [-180, 180], or a coordinate (or a present altitude) is not a
        finite number.
    """
    lat = _require_finite(latitude, "latitude")
    lon = _require_finite(longitude, "longitude")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinate(f"latitude {lat} outside [-90, 90]")
    if not -180.0 <= lon <= 180.0:
        raise InvalidCoordinate(f"longitude {lon} outside [-180, 180]")
    alt = None if altitude is None else _require_finite(altitude, "altitude")
    return lat, lon, alt


def measure(truth: GeoSample, sensor: GeoSample) -> Tuple[float, MeasurementType]:
    """Distance in metres from ``truth`` to ``sensor`` and its mode.

    Parameters
    ----------
    truth : GeoSample
        Reference observation.
    sensor : GeoSample
        Observation under test.  Its altitude alone selects 2D or 3D.

    Returns
    -------
    (float, MeasurementType)
        Non-negative distance and the measurement mode.
    """
    lat1, lon1, alt1 = validate_point(truth.latitude, truth.longitude, truth.altitude)
    lat2, lon2, alt2 = validate_point(sensor.latitude, sensor.longitude, sensor.altitude)

    horizontal = haversine_distance(lat1, lon1, lat2, lon2)
    if sensor.has_altitude:
        return slant_range(horizontal, alt1 or 0.0, alt2), MeasurementType.THREE_D
    return horizontal, MeasurementType.TWO_D
