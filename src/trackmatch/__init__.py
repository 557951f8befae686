"""Match a sensor trajectory against a ground-truth trajectory.

For every truth sample trackmatch finds the sensor sample closest in
time within a short window, measures the 2D or 3D distance between the
two positions and flags whether it is within a distance tolerance.
"""

from .errors import (
    ConfigError,
    EmptyInput,
    InvalidCoordinate,
    MalformedTimestamp,
    RecordFormatError,
    TrackMatchError,
)
from .matching import GeoSample, MatchReport, MatchResult, MeasurementType, TemporalMatcher, match_series

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "EmptyInput",
    "InvalidCoordinate",
    "MalformedTimestamp",
    "RecordFormatError",
    "TrackMatchError",
    "GeoSample",
    "MatchReport",
    "MatchResult",
    "MeasurementType",
    "TemporalMatcher",
    "match_series",
]
