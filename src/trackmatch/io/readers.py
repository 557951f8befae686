"""Load truth and sensor CSV files into `GeoSample` records.

Files are read with pandas as plain strings.  Coordinates are
converted here; a value that cannot be parsed becomes NaN so that the
matcher counts the record as an invalid coordinate instead of the
whole file failing.  Date/time fields are passed through untouched and
resolved by the matcher for the same reason.  Only a file that lacks
the required columns is rejected outright.
"""

import math
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from ..errors import ConfigError, InvalidCoordinate, RecordFormatError
from ..matching.samples import GeoSample
from ..utils.logging import get_logger
from .wkt import parse_wkt_point

logger = get_logger(__name__)

NAN = float("nan")


@dataclass
class TruthColumns:
    """Column names of a ground-truth telemetry log."""

    datetime: str = "datetime(utc)"
    offset_ms: str = "time(millisecond)"
    latitude: str = "latitude"
    longitude: str = "longitude"
    altitude: str = "altitude_above_seaLevel(meters)"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TruthColumns":
        return cls(**_checked_overrides(cls, data))


@dataclass
class SensorColumns:
    """Column names of a sensor detection feed.

    The position is taken from ``geo_position`` when that column
    exists, otherwise from ``latitude``/``longitude``.
    """

    timestamp: str = "Received"
    geo_position: str = "GeoPosition"
    latitude: str = "Latitude"
    longitude: str = "Longitude"
    altitude: str = "Altitude"
    record_id: str = "ObjectID"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SensorColumns":
        return cls(**_checked_overrides(cls, data))


def _checked_overrides(cls, data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    if not data:
        return {}
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"unknown {cls.__name__} keys: {sorted(unknown)}")
    return {k: str(v) for k, v in data.items()}


def parse_altitude(value) -> Optional[float]:
    """Map empty, unparsable and non-finite altitudes to ``None``."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        alt = float(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring unparsable altitude %r", value)
        return None
    if not math.isfinite(alt):
        return None
    return alt


def normalise_altitude(value) -> Optional[float]:
    """Like `parse_altitude`, but a zero altitude also becomes ``None``.

    Sensors report 0 when they have no altitude fix.
    """
    alt = parse_altitude(value)
    if alt == 0:
        return None
    return alt


def _coordinate(value) -> float:
    if value is None:
        return NAN
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return NAN
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug("Unparsable coordinate %r", value)
        return NAN


def _optional_text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def read_table(path: Union[str, Path]) -> pd.DataFrame:
    """Read a CSV file as strings with cleaned-up header names."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [str(c).strip().strip("'\"") for c in df.columns]
    return df


def _require_columns(df: pd.DataFrame, required: List[str], what: str) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise RecordFormatError(f"{what} data is missing columns: {missing}")


def truth_samples_from_frame(df: pd.DataFrame, columns: Optional[TruthColumns] = None) -> List[GeoSample]:
    """Build truth samples from a table.

    Parameters
    ----------
    df : pandas.DataFrame
        One row per telemetry record.
    columns : TruthColumns, optional
        Column names; defaults to the drone telemetry log layout.

    Returns
    -------
    list of GeoSample
        One sample per row, in row order.
    """
    columns = columns or TruthColumns()
    _require_columns(df, [columns.datetime, columns.latitude, columns.longitude], "truth")
    has_offset = columns.offset_ms in df.columns
    has_altitude = columns.altitude in df.columns

    samples = []
    for i, row in enumerate(df.to_dict("records")):
        samples.append(
            GeoSample(
                timestamp=row[columns.datetime],
                offset_ms=row[columns.offset_ms] if has_offset else None,
                latitude=_coordinate(row[columns.latitude]),
                longitude=_coordinate(row[columns.longitude]),
                altitude=parse_altitude(row[columns.altitude]) if has_altitude else None,
                record_id=str(i),
            )
        )
    return samples


def sensor_samples_from_frame(df: pd.DataFrame, columns: Optional[SensorColumns] = None) -> List[GeoSample]:
    """Build sensor samples from a table.

    The position is read from the WKT column when present, otherwise
    from separate latitude and longitude columns.
    """
    columns = columns or SensorColumns()
    _require_columns(df, [columns.timestamp], "sensor")
    use_wkt = columns.geo_position in df.columns
    if not use_wkt:
        _require_columns(df, [columns.latitude, columns.longitude], "sensor")
    has_altitude = columns.altitude in df.columns
    has_id = columns.record_id in df.columns

    samples = []
    for i, row in enumerate(df.to_dict("records")):
        if use_wkt:
            try:
                lat, lon = parse_wkt_point(row[columns.geo_position])
            except InvalidCoordinate as exc:
                logger.debug("Sensor row %d: %s", i, exc)
                lat, lon = NAN, NAN
        else:
            lat = _coordinate(row[columns.latitude])
            lon = _coordinate(row[columns.longitude])
        record_id = _optional_text(row[columns.record_id]) if has_id else None
        samples.append(
            GeoSample(
                timestamp=row[columns.timestamp],
                latitude=lat,
                longitude=lon,
                altitude=normalise_altitude(row[columns.altitude]) if has_altitude else None,
                record_id=record_id or str(i),
            )
        )
    return samples


def read_truth_csv(path: Union[str, Path], columns: Optional[TruthColumns] = None) -> List[GeoSample]:
    """Load a ground-truth telemetry CSV file."""
    samples = truth_samples_from_frame(read_table(path), columns)
    logger.info("Loaded %d truth samples from %s", len(samples), path)
    return samples


def read_sensor_csv(path: Union[str, Path], columns: Optional[SensorColumns] = None) -> List[GeoSample]:
    """Load a sensor detection CSV file."""
    samples = sensor_samples_from_frame(read_table(path), columns)
    logger.info("Loaded %d sensor samples from %s", len(samples), path)
    return samples
