"""Matching package.

This package contains the core of trackmatch: the typed sample
records, the distance engine that measures truth-to-sensor distances,
and the temporal matcher that pairs each truth sample with the nearest
sensor sample in time.
"""

from .samples import GeoSample, MatchResult, MeasurementType, Position
from .distance_engine import measure, validate_point
from .temporal_matcher import MatchReport, MatchSummary, SkipReason, TemporalMatcher, match_series

__all__ = [
    "GeoSample",
    "MatchResult",
    "MeasurementType",
    "Position",
    "measure",
    "validate_point",
    "MatchReport",
    "MatchSummary",
    "SkipReason",
    "TemporalMatcher",
    "match_series",
]
