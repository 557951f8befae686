"""Nearest-in-time matching of sensor samples to truth samples.

For every truth sample the `TemporalMatcher` picks the sensor sample
whose instant is closest to the truth instant, provided the absolute
difference is strictly below the window.  When several sensor samples
are equally close the one that came first in the sensor input wins.
Truth samples without a candidate produce no result and are counted in
the `MatchSummary` instead.

Two search strategies are available.  ``"scan"`` walks the whole sensor
series for every truth sample.  ``"indexed"`` sorts the sensor instants
once and uses binary search to find the candidates inside the window;
it returns exactly the same matches.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np
from tqdm import tqdm

from ..errors import ConfigError, InvalidCoordinate, MalformedTimestamp
from ..utils.logging import get_logger
from .distance_engine import measure, validate_point
from .samples import GeoSample, MatchResult

logger = get_logger(__name__)

STRATEGIES = ("scan", "indexed")


class SkipReason(str, Enum):
    """Why a truth sample produced no result."""

    NO_MATCH = "no_match"
    INVALID_COORDINATE = "invalid_coordinate"
    MALFORMED_TIMESTAMP = "malformed_timestamp"


@dataclass
class MatchSummary:
    """Counts describing one matching run."""

    total_truth: int = 0
    matched: int = 0
    skipped: Dict[SkipReason, int] = field(
        default_factory=lambda: {reason: 0 for reason in SkipReason}
    )
    sensor_total: int = 0
    sensor_rejected: int = 0
    """Sensor samples excluded for a bad timestamp or coordinate."""

    cancelled: bool = False
    empty_input: bool = False

    @property
    def skipped_total(self) -> int:
        return sum(self.skipped.values())

    def to_dict(self) -> Dict[str, object]:
        """Flat dictionary form, used by the pipeline summary."""
        out: Dict[str, object] = {
            "total_truth": self.total_truth,
            "matched": self.matched,
            "sensor_total": self.sensor_total,
            "sensor_rejected": self.sensor_rejected,
            "cancelled": self.cancelled,
            "empty_input": self.empty_input,
        }
        for reason, count in self.skipped.items():
            out[f"skipped_{reason.value}"] = count
        return out


@dataclass
class MatchReport:
    """Results in truth order together with the run summary."""

    results: List[MatchResult]
    summary: MatchSummary

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self):
        return iter(self.results)


# (input index, sample, instant in ms)
_Candidate = Tuple[int, GeoSample, int]


@dataclass
class TemporalMatcher:
    """Match each truth sample to its nearest sensor sample in time."""

    tolerance_m: float
    """Maximum distance in metres for a match to pass."""

    window_ms: float = 100.0
    """Exclusive bound on the time difference between matched samples."""

    strategy: str = "indexed"
    """Either ``"scan"`` or ``"indexed"``."""

    show_progress: bool = False
    """Show a tqdm progress bar over the truth samples."""

    def __post_init__(self):
        if self.tolerance_m is None:
            raise ConfigError("tolerance_m is required")
        if not np.isfinite(self.tolerance_m) or self.tolerance_m < 0:
            raise ConfigError(f"tolerance_m must be a finite number >= 0, got {self.tolerance_m!r}")
        if not np.isfinite(self.window_ms) or self.window_ms <= 0:
            raise ConfigError(f"window_ms must be a finite number > 0, got {self.window_ms!r}")
        if self.strategy not in STRATEGIES:
            raise ConfigError(f"strategy must be one of {STRATEGIES}, got {self.strategy!r}")

    def match(
        self,
        truth: Iterable[GeoSample],
        sensor: Iterable[GeoSample],
        cancel=None,
    ) -> MatchReport:
        """Match a truth series against a sensor series.

        Parameters
        ----------
        truth : iterable of GeoSample
            Reference samples; the output follows this order.
        sensor : iterable of GeoSample
            Samples under test, in any order.
        cancel : object with ``is_set()``, optional
            Checked before each truth sample.  Once set, matching stops
            and the results gathered so far are returned with
            ``summary.cancelled`` set.

        Returns
        -------
        MatchReport
            At most one result per truth sample, in truth order.
        """
        truth = list(truth)
        sensor = list(sensor)
        summary = MatchSummary(total_truth=len(truth), sensor_total=len(sensor))
        results: List[MatchResult] = []

        if not truth or not sensor:
            summary.empty_input = True
            logger.warning(
                "Empty input (truth=%d, sensor=%d); nothing to match",
                len(truth), len(sensor),
            )
            return MatchReport(results, summary)

        candidates = self._prepare_sensor(sensor, summary)
        find_nearest = self._build_finder(candidates)

        for t in tqdm(truth, desc="Matching", disable=not self.show_progress):
            if cancel is not None and cancel.is_set():
                summary.cancelled = True
                logger.warning(
                    "Matching cancelled after %d of %d truth samples",
                    summary.matched + summary.skipped_total, summary.total_truth,
                )
                break

            try:
                t_ms = t.instant_ms()
            except MalformedTimestamp as exc:
                self._skip(summary, SkipReason.MALFORMED_TIMESTAMP, t, exc)
                continue
            try:
                validate_point(t.latitude, t.longitude, t.altitude)
            except InvalidCoordinate as exc:
                self._skip(summary, SkipReason.INVALID_COORDINATE, t, exc)
                continue

            nearest = find_nearest(t_ms)
            if nearest is None:
                self._skip(summary, SkipReason.NO_MATCH, t, None)
                continue
            _, s, s_ms = nearest

            try:
                distance, mode = measure(t, s)
            except InvalidCoordinate as exc:
                self._skip(summary, SkipReason.INVALID_COORDINATE, t, exc)
                continue

            results.append(
                MatchResult(
                    timestamp_ms=t_ms,
                    truth_position=t.position(),
                    sensor_position=s.position(),
                    distance_m=distance,
                    measurement_type=mode,
                    within_tolerance=distance <= self.tolerance_m,
                    time_delta_ms=s_ms - t_ms,
                    truth_id=t.record_id,
                    sensor_id=s.record_id,
                )
            )
            summary.matched += 1

        logger.info(
            "Matched %d/%d truth samples (no match: %d, bad coordinate: %d, "
            "bad timestamp: %d); %d/%d sensor samples rejected",
            summary.matched,
            summary.total_truth,
            summary.skipped[SkipReason.NO_MATCH],
            summary.skipped[SkipReason.INVALID_COORDINATE],
            summary.skipped[SkipReason.MALFORMED_TIMESTAMP],
            summary.sensor_rejected,
            summary.sensor_total,
        )
        return MatchReport(results, summary)

    def _prepare_sensor(self, sensor: List[GeoSample], summary: MatchSummary) -> List[_Candidate]:
        """Resolve sensor instants once and drop unusable sensor samples."""
        candidates: List[_Candidate] = []
        for idx, s in enumerate(sensor):
            try:
                s_ms = s.instant_ms()
                validate_point(s.latitude, s.longitude, s.altitude)
            except (MalformedTimestamp, InvalidCoordinate) as exc:
                summary.sensor_rejected += 1
                logger.debug("Rejected sensor sample #%d (%s): %s", idx, s.record_id, exc)
                continue
            candidates.append((idx, s, s_ms))
        return candidates

    def _build_finder(self, candidates: List[_Candidate]) -> Callable[[int], Optional[_Candidate]]:
        if self.strategy == "scan":
            return lambda t_ms: self._nearest_by_scan(candidates, t_ms)
        return self._indexed_finder(candidates)

    def _nearest_by_scan(self, candidates: List[_Candidate], t_ms: int) -> Optional[_Candidate]:
        best = None
        best_diff = float("inf")
        for candidate in candidates:
            diff = abs(candidate[2] - t_ms)
            # Strict comparisons keep the first sample on ties and
            # exclude samples exactly on the window edge.
            if diff < self.window_ms and diff < best_diff:
                best = candidate
                best_diff = diff
        return best

    def _indexed_finder(self, candidates: List[_Candidate]) -> Callable[[int], Optional[_Candidate]]:
        instants = np.array([c[2] for c in candidates], dtype=np.int64)
        # Stable sort keeps input order among equal instants.
        order = np.argsort(instants, kind="stable")
        sorted_instants = instants[order]
        window = self.window_ms

        def find(t_ms: int) -> Optional[_Candidate]:
            lo = np.searchsorted(sorted_instants, t_ms - window, side="right")
            hi = np.searchsorted(sorted_instants, t_ms + window, side="left")
            if lo >= hi:
                return None
            diffs = np.abs(sorted_instants[lo:hi] - t_ms)
            closest = order[lo:hi][diffs == diffs.min()]
            return candidates[int(closest.min())]

        return find

    @staticmethod
    def _skip(summary: MatchSummary, reason: SkipReason, sample: GeoSample, exc) -> None:
        summary.skipped[reason] += 1
        if exc is None:
            logger.debug("No sensor sample in window for truth sample %s", sample.record_id)
        else:
            logger.debug("Skipped truth sample %s (%s): %s", sample.record_id, reason.value, exc)


def match_series(
    truth: Iterable[GeoSample],
    sensor: Iterable[GeoSample],
    tolerance_m: float,
    window_ms: float = 100.0,
    strategy: str = "indexed",
    cancel=None,
) -> MatchReport:
    """Convenience wrapper around `TemporalMatcher.match`."""
    matcher = TemporalMatcher(tolerance_m=tolerance_m, window_ms=window_ms, strategy=strategy)
    return matcher.match(truth, sensor, cancel=cancel)
