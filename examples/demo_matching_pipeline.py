"""Demo script for the matching pipeline with synthetic data.

This script simulates a short drone flight logged at 10 Hz and a radar
feed that observes it with position noise, timing jitter, dropouts and
a few corrupt rows.  Both are written as CSV files in the layout the
loaders expect, then matched and exported.

Usage:
    python examples/demo_matching_pipeline.py [output_dir]
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from trackmatch.pipeline import MatchingPipeline, PipelineConfig


def create_synthetic_flight(
    duration_s: float = 60.0,
    rate_hz: float = 10.0,
    origin: tuple = (52.0907, 5.1214),
    seed: int = 7,
) -> tuple:
    """Create a truth log and a noisy sensor feed.

    Parameters
    ----------
    duration_s : float
        Flight duration in seconds.
    rate_hz : float
        Telemetry logging rate.
    origin : tuple
        Start position as (latitude, longitude).
    seed : int
        Random seed.

    Returns
    -------
    (pandas.DataFrame, pandas.DataFrame)
        Truth and sensor tables.
    """
    rng = np.random.default_rng(seed)
    n = int(duration_s * rate_hz)
    t_ms = np.arange(n) * (1000.0 / rate_hz)

    # A slow circle of ~150 m radius at 80-120 m altitude
    angle = np.linspace(0.0, 2 * np.pi, n)
    lat = origin[0] + 0.00135 * np.sin(angle)
    lon = origin[1] + 0.0022 * (1 - np.cos(angle))
    alt = 100.0 + 20.0 * np.sin(3 * angle)

    truth = pd.DataFrame({
        "datetime(utc)": "2024-06-01 10:00:00",
        "time(millisecond)": t_ms.astype(int),
        "latitude": lat,
        "longitude": lon,
        "altitude_above_seaLevel(meters)": alt.round(1),
    })

    # Radar reports ~70% of the time, jittered by up to +/-60 ms
    keep = rng.random(n) < 0.7
    jitter = rng.integers(-60, 61, n)
    received = pd.Timestamp("2024-06-01 10:00:00", tz="UTC") + pd.to_timedelta(t_ms + jitter, unit="ms")
    s_lat = lat + rng.normal(0.0, 4e-5, n)
    s_lon = lon + rng.normal(0.0, 6e-5, n)
    # Only some detections carry an altitude
    s_alt = np.where(rng.random(n) < 0.5, (alt + rng.normal(0.0, 3.0, n)).round(1), 0.0)

    sensor = pd.DataFrame({
        "ObjectID": [f"trk-{i:04d}" for i in range(n)],
        "DatasourceID": "radar-01",
        "Received": received.strftime("%Y-%m-%dT%H:%M:%S.%f").str[:-3] + "Z",
        "GeoPosition": [f"POINT({x:.7f} {y:.7f})" for x, y in zip(s_lon, s_lat)],
        "Altitude": s_alt,
    })[keep].reset_index(drop=True)

    # A few rows as they tend to arrive from the field
    sensor.loc[3, "Received"] = "n/a"
    sensor.loc[5, "GeoPosition"] = "POINT()"

    print(f"Created {len(truth)} truth samples and {len(sensor)} sensor samples")
    return truth, sensor


def main():
    output_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("demo_output")
    output_dir.mkdir(parents=True, exist_ok=True)

    truth, sensor = create_synthetic_flight()
    truth_path = output_dir / "drone.csv"
    sensor_path = output_dir / "sensor.csv"
    truth.to_csv(truth_path, index=False)
    sensor.to_csv(sensor_path, index=False)

    pipeline = MatchingPipeline(
        output_dir=output_dir,
        config=PipelineConfig(tolerance_m=10.0, window_ms=100),
        show_progress=True,
    )
    summary = pipeline.run(truth_path, sensor_path)

    print("\nSummary")
    print("-" * 40)
    for key, value in summary.items():
        print(f"{key:28s} {value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
