"""Typed records exchanged between the loaders and the matcher.

A `GeoSample` is one observation of either trajectory.  It keeps the
date/time exactly as the loader found it and resolves it to an epoch
millisecond instant on demand, so that an unparsable time surfaces as
a `MalformedTimestamp` for that record only.  A `MatchResult` pairs a
truth sample with the sensor sample chosen for it.
"""

import math
import numbers
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

import pandas as pd

from ..errors import MalformedTimestamp

TimestampLike = Union[str, datetime, pd.Timestamp, int, float]


class MeasurementType(str, Enum):
    """Whether the altitude difference took part in the distance."""

    TWO_D = "2D"
    THREE_D = "3D"

    def __str__(self) -> str:
        return self.value


def _checked_range(instant_ms: int, value) -> int:
    try:
        pd.Timestamp(instant_ms, unit="ms")
    except (ValueError, OverflowError) as exc:
        raise MalformedTimestamp(f"timestamp {value!r} is out of range") from exc
    return instant_ms


def parse_instant_ms(value: TimestampLike) -> int:
    """Convert a date/time value to integer epoch milliseconds (UTC).

    Strings, ``datetime`` and ``pandas.Timestamp`` values are parsed by
    pandas; naive values are taken to be UTC.  Numbers are taken to be
    epoch milliseconds already.  Sub-millisecond digits are truncated.

    Raises
    ------
    MalformedTimestamp
        If the value is missing, cannot be parsed or lies outside the
        range pandas can represent.
    """
    if value is None:
        raise MalformedTimestamp("timestamp is missing")
    if isinstance(value, bool):
        raise MalformedTimestamp(f"not a timestamp: {value!r}")
    if isinstance(value, numbers.Real):
        if not math.isfinite(value):
            raise MalformedTimestamp(f"timestamp is not finite: {value!r}")
        return _checked_range(int(value), value)
    if isinstance(value, str) and not value.strip():
        raise MalformedTimestamp("timestamp is empty")
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError, OverflowError) as exc:
        raise MalformedTimestamp(f"cannot parse timestamp {value!r}: {exc}") from exc
    if pd.isna(ts):
        raise MalformedTimestamp(f"cannot parse timestamp {value!r}")
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    else:
        ts = ts.tz_convert("UTC")
    return ts.value // 1_000_000


def parse_offset_ms(value) -> int:
    """Parse a millisecond offset field; missing values count as zero."""
    if value is None:
        return 0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
        try:
            value = float(value)
        except ValueError as exc:
            raise MalformedTimestamp(f"cannot parse millisecond offset {value!r}") from exc
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise MalformedTimestamp(f"not a millisecond offset: {value!r}")
    if math.isnan(value):
        return 0
    if not math.isfinite(value):
        raise MalformedTimestamp(f"millisecond offset is not finite: {value!r}")
    return int(value)


def format_instant(instant_ms: int) -> str:
    """Format epoch milliseconds as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    ts = pd.Timestamp(instant_ms, unit="ms", tz="UTC")
    return ts.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


@dataclass(frozen=True)
class GeoSample:
    """A single truth or sensor observation."""

    timestamp: TimestampLike
    """Date/time as supplied by the loader."""

    latitude: float
    """Latitude in decimal degrees (WGS-84)."""

    longitude: float
    """Longitude in decimal degrees (WGS-84)."""

    altitude: Optional[float] = None
    """Metres above sea level.  ``None`` or ``0`` means no reliable altitude."""

    offset_ms: Optional[TimestampLike] = None
    """Sub-second offset added to ``timestamp`` (truth logs)."""

    record_id: Optional[str] = None
    """Free-form identifier used in log messages."""

    def instant_ms(self) -> int:
        """Absolute instant of the sample in epoch milliseconds."""
        instant = parse_instant_ms(self.timestamp) + parse_offset_ms(self.offset_ms)
        return _checked_range(instant, self.timestamp)

    @property
    def has_altitude(self) -> bool:
        """True if the altitude is usable, i.e. finite and above zero."""
        return (
            self.altitude is not None
            and math.isfinite(self.altitude)
            and self.altitude > 0
        )

    def position(self) -> "Position":
        return Position(self.latitude, self.longitude, self.altitude)


@dataclass(frozen=True)
class Position:
    """A (latitude, longitude, altitude) triple."""

    latitude: float
    longitude: float
    altitude: Optional[float] = None


@dataclass(frozen=True)
class MatchResult:
    """The sensor sample matched to one truth sample."""

    timestamp_ms: int
    """Instant of the truth sample in epoch milliseconds."""

    truth_position: Position
    sensor_position: Position

    distance_m: float
    """Full precision distance; only the exported table is rounded."""

    measurement_type: MeasurementType
    within_tolerance: bool

    time_delta_ms: int = 0
    """Sensor instant minus truth instant."""

    truth_id: Optional[str] = None
    sensor_id: Optional[str] = None

    @property
    def timestamp(self) -> str:
        """Truth instant in ISO-8601 form."""
        return format_instant(self.timestamp_ms)
