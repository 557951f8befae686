"""End-to-end matching pipeline and command-line entry point.

This module ties the loaders, the temporal matcher and the CSV export
together: load the truth log, load the sensor feed, match, and write
the comparison table.

Usage:
    trackmatch --truth drone.csv --sensor sensor.csv --output out/ --tolerance 20
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .errors import ConfigError, EmptyInput, TrackMatchError
from .io import SensorColumns, TruthColumns, read_sensor_csv, read_truth_csv, write_results_csv
from .matching import GeoSample, MatchReport, SkipReason, TemporalMatcher
from .matching.temporal_matcher import STRATEGIES
from .utils.config import load_config
from .utils.logging import get_logger, set_level

logger = get_logger(__name__)


def _number(value, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc


def _section(data: Dict[str, Any], key: str) -> Dict[str, Any]:
    section = data.get(key) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{key}' must be a mapping")
    return section


@dataclass
class PipelineConfig:
    """Settings for one pipeline run."""

    tolerance_m: float
    window_ms: float = 100.0
    strategy: str = "indexed"
    output_filename: str = "comparison_results.csv"
    truth_columns: TruthColumns = field(default_factory=TruthColumns)
    sensor_columns: SensorColumns = field(default_factory=SensorColumns)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], **overrides) -> "PipelineConfig":
        """Build a config from a parsed YAML mapping.

        Keyword overrides (``tolerance_m``, ``window_ms``, ``strategy``)
        take precedence over the file; ``None`` values are ignored.

        Raises
        ------
        ConfigError
            If the tolerance is missing or a value is invalid.
        """
        data = data or {}
        matching = _section(data, "matching")
        output = _section(data, "output")
        values = {
            "tolerance_m": matching.get("tolerance_m"),
            "window_ms": matching.get("window_ms", 100.0),
            "strategy": matching.get("strategy", "indexed"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})

        if values["tolerance_m"] is None:
            raise ConfigError("tolerance_m is required (set matching.tolerance_m or --tolerance)")
        tolerance_m = _number(values["tolerance_m"], "tolerance_m")
        window_ms = _number(values["window_ms"], "window_ms")
        if tolerance_m < 0:
            raise ConfigError(f"tolerance_m must be >= 0, got {tolerance_m}")
        if window_ms <= 0:
            raise ConfigError(f"window_ms must be > 0, got {window_ms}")
        if values["strategy"] not in STRATEGIES:
            raise ConfigError(f"strategy must be one of {STRATEGIES}, got {values['strategy']!r}")

        return cls(
            tolerance_m=tolerance_m,
            window_ms=window_ms,
            strategy=values["strategy"],
            output_filename=str(output.get("filename", "comparison_results.csv")),
            truth_columns=TruthColumns.from_dict(_section(data, "truth_columns")),
            sensor_columns=SensorColumns.from_dict(_section(data, "sensor_columns")),
        )

    @classmethod
    def from_file(cls, path, **overrides) -> "PipelineConfig":
        return cls.from_dict(load_config(path), **overrides)


class MatchingPipeline:
    """Load, match and export a truth/sensor file pair."""

    def __init__(self, output_dir: Path, config: PipelineConfig, show_progress: bool = False):
        """Initialize the pipeline.

        Parameters
        ----------
        output_dir : Path
            Directory for the comparison table.
        config : PipelineConfig
            Matching settings and input column names.
        show_progress : bool, optional
            Show a progress bar while matching.
        """
        self.output_dir = Path(output_dir)
        self.config = config
        self.matcher = TemporalMatcher(
            tolerance_m=config.tolerance_m,
            window_ms=config.window_ms,
            strategy=config.strategy,
            show_progress=show_progress,
        )

    def step_1_load_truth(self, path) -> List[GeoSample]:
        logger.info("Step 1: loading truth samples from %s", path)
        return read_truth_csv(path, self.config.truth_columns)

    def step_2_load_sensor(self, path) -> List[GeoSample]:
        logger.info("Step 2: loading sensor samples from %s", path)
        return read_sensor_csv(path, self.config.sensor_columns)

    def step_3_match(self, truth: List[GeoSample], sensor: List[GeoSample], cancel=None) -> MatchReport:
        logger.info(
            "Step 3: matching with window %.1f ms, tolerance %.2f m (%s)",
            self.config.window_ms, self.config.tolerance_m, self.config.strategy,
        )
        return self.matcher.match(truth, sensor, cancel=cancel)

    def step_4_export(self, report: MatchReport) -> Optional[Path]:
        """Write the comparison table; nothing is written without matches."""
        if not report.results:
            logger.warning("Step 4: no matches found, nothing exported")
            return None
        out_path = write_results_csv(report.results, self.output_dir / self.config.output_filename)
        logger.info("Step 4: wrote %d matches to %s", len(report.results), out_path)
        return out_path

    def run(self, truth_path, sensor_path, cancel=None) -> Dict[str, Any]:
        """Run all steps and return summary statistics.

        Raises
        ------
        EmptyInput
            If either file holds no data rows.
        """
        truth = self.step_1_load_truth(truth_path)
        sensor = self.step_2_load_sensor(sensor_path)
        report = self.step_3_match(truth, sensor, cancel=cancel)
        if report.summary.empty_input:
            raise EmptyInput(
                f"Please supply both a truth file and a sensor file with data rows "
                f"(truth={len(truth)}, sensor={len(sensor)})"
            )
        out_path = self.step_4_export(report)

        summary = report.summary
        return {
            "truth_samples": summary.total_truth,
            "sensor_samples": summary.sensor_total,
            "sensor_rejected": summary.sensor_rejected,
            "matched": summary.matched,
            "skipped_no_match": summary.skipped[SkipReason.NO_MATCH],
            "skipped_invalid_coordinate": summary.skipped[SkipReason.INVALID_COORDINATE],
            "skipped_malformed_timestamp": summary.skipped[SkipReason.MALFORMED_TIMESTAMP],
            "within_tolerance": sum(1 for r in report.results if r.within_tolerance),
            "cancelled": summary.cancelled,
            "output_path": str(out_path) if out_path else None,
        }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Match a sensor feed against ground-truth telemetry"
    )
    parser.add_argument(
        "--truth",
        type=str,
        required=True,
        help="Path to the ground-truth telemetry CSV"
    )
    parser.add_argument(
        "--sensor",
        type=str,
        required=True,
        help="Path to the sensor detection CSV"
    )
    parser.add_argument(
        "--output",
        type=str,
        default=".",
        help="Output directory (default: current directory)"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML configuration file"
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=None,
        help="Distance tolerance in metres (required unless set in --config)"
    )
    parser.add_argument(
        "--window-ms",
        type=float,
        default=None,
        help="Time window in milliseconds (default: 100)"
    )
    parser.add_argument(
        "--strategy",
        choices=STRATEGIES,
        default=None,
        help="Search strategy (default: indexed)"
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar while matching"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every skipped record"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line entry point."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        set_level(logging.DEBUG)

    overrides = dict(tolerance_m=args.tolerance, window_ms=args.window_ms, strategy=args.strategy)
    try:
        if args.config:
            config = PipelineConfig.from_file(args.config, **overrides)
        else:
            config = PipelineConfig.from_dict({}, **overrides)
        pipeline = MatchingPipeline(args.output, config, show_progress=args.progress)
        summary = pipeline.run(args.truth, args.sensor)
    except (TrackMatchError, OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        logger.error("%s", exc)
        return 1

    if summary["output_path"] is None:
        logger.error("No matches found")
        return 1

    print(
        f"Processed {summary['matched']} matches "
        f"({summary['within_tolerance']} within tolerance) out of "
        f"{summary['truth_samples']} truth samples. Results written to {summary['output_path']}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
