"""Export match results as a comparison table."""

from pathlib import Path
from typing import Iterable, Union

import pandas as pd

from ..matching.samples import MatchResult

RESULT_COLUMNS = [
    "Timestamp",
    "Truth Latitude",
    "Truth Longitude",
    "Truth Altitude",
    "Sensor Latitude",
    "Sensor Longitude",
    "Sensor Altitude",
    "Distance between (m)",
    "Type of measurement",
    "Within Tolerance?",
]


def result_to_row(result: MatchResult) -> dict:
    """One table row; the distance is rounded to two decimals here only."""
    truth = result.truth_position
    sensor = result.sensor_position
    return {
        "Timestamp": result.timestamp,
        "Truth Latitude": truth.latitude,
        "Truth Longitude": truth.longitude,
        "Truth Altitude": truth.altitude,
        "Sensor Latitude": sensor.latitude,
        "Sensor Longitude": sensor.longitude,
        "Sensor Altitude": sensor.altitude,
        "Distance between (m)": f"{result.distance_m:.2f}",
        "Type of measurement": result.measurement_type.value,
        "Within Tolerance?": 1 if result.within_tolerance else 0,
    }


def results_to_frame(results: Iterable[MatchResult]) -> pd.DataFrame:
    """Tabulate results in the order given."""
    return pd.DataFrame([result_to_row(r) for r in results], columns=RESULT_COLUMNS)


def write_results_csv(results: Iterable[MatchResult], path: Union[str, Path]) -> Path:
    """Write the comparison table to ``path`` and return the path."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    results_to_frame(results).to_csv(out_path, index=False)
    return out_path
