"""Parsing of well-known-text point positions.

Sensor feeds encode positions as ``POINT(lon lat)``.  The longitude
comes first inside the string; `parse_wkt_point` returns the pair in
(latitude, longitude) order so nothing downstream deals with the WKT
axis order.
"""

import re
from typing import Tuple

from ..errors import InvalidCoordinate

_NUMBER = r"([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)"
_POINT_RE = re.compile(
    r"^\s*(?:SRID=\d+\s*;)?\s*POINT\s*(?:Z\s*)?\(\s*"
    + _NUMBER + r"\s+" + _NUMBER + r"(?:\s+" + _NUMBER + r")?"
    + r"\s*\)\s*$",
    re.IGNORECASE,
)


def parse_wkt_point(text: str) -> Tuple[float, float]:
    """Return ``(latitude, longitude)`` from a ``POINT(lon lat)`` string.

    An optional ``SRID=...;`` prefix and a ``POINT Z`` third ordinate
    are accepted; the third ordinate is ignored.

    Raises
    ------
    InvalidCoordinate
        If the text is not a WKT point.
    """
    if not isinstance(text, str):
        raise InvalidCoordinate(f"WKT point must be a string, got {type(text).__name__}")
    m = _POINT_RE.match(text)
    if m is None:
        raise InvalidCoordinate(f"not a WKT point: {text!r}")
    lon = float(m.group(1))
    lat = float(m.group(2))
    return lat, lon
