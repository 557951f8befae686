"""Reading truth/sensor files and writing comparison tables."""

from .wkt import parse_wkt_point
from .readers import (
    SensorColumns,
    TruthColumns,
    normalise_altitude,
    parse_altitude,
    read_sensor_csv,
    read_table,
    read_truth_csv,
    sensor_samples_from_frame,
    truth_samples_from_frame,
)
from .writers import RESULT_COLUMNS, result_to_row, results_to_frame, write_results_csv

__all__ = [
    "parse_wkt_point",
    "SensorColumns",
    "TruthColumns",
    "normalise_altitude",
    "parse_altitude",
    "read_sensor_csv",
    "read_table",
    "read_truth_csv",
    "sensor_samples_from_frame",
    "truth_samples_from_frame",
    "RESULT_COLUMNS",
    "result_to_row",
    "results_to_frame",
    "write_results_csv",
]
