"""Unit tests for the temporal matcher."""

import threading

import numpy as np
import pytest

from trackmatch.errors import ConfigError
from trackmatch.matching.samples import GeoSample, MeasurementType
from trackmatch.matching.temporal_matcher import (
    MatchSummary,
    SkipReason,
    TemporalMatcher,
    match_series,
)

STRATEGIES = ["scan", "indexed"]


def sample(ms, lat=10.0, lon=20.0, alt=None, rid=None):
    return GeoSample(timestamp=ms, latitude=lat, longitude=lon, altitude=alt, record_id=rid)


class CancelAfter:
    """Cancellation flag that trips after ``n`` checks."""

    def __init__(self, n):
        self.n = n
        self.calls = 0

    def is_set(self):
        self.calls += 1
        return self.calls > self.n


@pytest.mark.parametrize("strategy", STRATEGIES)
class TestTemporalMatcher:
    """Behaviour shared by both search strategies."""

    def test_example_scenario(self, strategy):
        """The closer-in-time sensor wins and altitude 0 means 2D."""
        truth = [GeoSample(timestamp="2024-01-01T00:00:00.000Z", latitude=10.0,
                           longitude=20.0, altitude=100.0)]
        sensor = [
            GeoSample(timestamp="2024-01-01T00:00:00.050Z", latitude=10.0001,
                      longitude=20.0001, altitude=0.0, record_id="near"),
            GeoSample(timestamp="2024-01-01T00:00:00.090Z", latitude=10.0002,
                      longitude=20.0002, altitude=150.0, record_id="far"),
        ]
        matcher = TemporalMatcher(tolerance_m=50.0, window_ms=100, strategy=strategy)
        report = matcher.match(truth, sensor)

        assert len(report) == 1
        result = report.results[0]
        assert result.sensor_id == "near"
        assert result.measurement_type == MeasurementType.TWO_D
        assert result.distance_m == pytest.approx(15.606, abs=0.01)
        assert result.within_tolerance == True
        assert result.time_delta_ms == 50
        assert result.timestamp == "2024-01-01T00:00:00.000Z"

    def test_outside_window_is_dropped(self, strategy):
        truth = [GeoSample(timestamp="2024-01-01T00:00:00.000Z", latitude=10.0,
                           longitude=20.0, altitude=100.0)]
        sensor = [GeoSample(timestamp="2024-01-01T00:00:00.150Z", latitude=10.0001,
                            longitude=20.0001)]
        report = TemporalMatcher(tolerance_m=50.0, strategy=strategy).match(truth, sensor)

        assert report.results == []
        assert report.summary.skipped[SkipReason.NO_MATCH] == 1
        assert report.summary.matched == 0

    def test_window_boundary_is_exclusive(self, strategy):
        """A sensor exactly W ms away never matches; W - 1 ms does."""
        matcher = TemporalMatcher(tolerance_m=10.0, window_ms=100, strategy=strategy)

        report = matcher.match([sample(1000)], [sample(1100), sample(900)])
        assert report.results == []

        report = matcher.match([sample(1000)], [sample(1100, rid="edge"), sample(1099, rid="inside")])
        assert [r.sensor_id for r in report] == ["inside"]

        report = matcher.match([sample(1000)], [sample(901, rid="before")])
        assert [r.sensor_id for r in report] == ["before"]

    def test_fractional_window(self, strategy):
        matcher = TemporalMatcher(tolerance_m=10.0, window_ms=0.5, strategy=strategy)
        assert len(matcher.match([sample(1000)], [sample(1000)])) == 1
        assert len(matcher.match([sample(1000)], [sample(1001)])) == 0

    def test_tie_break_prefers_first_in_input(self, strategy):
        """Equal time differences resolve to the earlier sensor record."""
        matcher = TemporalMatcher(tolerance_m=10.0, strategy=strategy)
        after = sample(1050, rid="after")
        before = sample(950, rid="before")

        for _ in range(3):
            assert [r.sensor_id for r in matcher.match([sample(1000)], [after, before])] == ["after"]
            assert [r.sensor_id for r in matcher.match([sample(1000)], [before, after])] == ["before"]

    def test_tie_break_with_identical_instants(self, strategy):
        matcher = TemporalMatcher(tolerance_m=10.0, strategy=strategy)
        sensor = [sample(1200, rid="x"), sample(1040, rid="a"), sample(1040, rid="b")]
        assert [r.sensor_id for r in matcher.match([sample(1000)], sensor)] == ["a"]

    def test_output_follows_truth_order(self, strategy):
        truth = [sample(1000, rid="t1"), sample(5000, rid="t2"), sample(3000, rid="t3")]
        sensor = [sample(3010, rid="s3"), sample(5020, rid="s2"), sample(990, rid="s1")]
        report = TemporalMatcher(tolerance_m=10.0, strategy=strategy).match(truth, sensor)

        assert [r.truth_id for r in report] == ["t1", "t2", "t3"]
        assert [r.sensor_id for r in report] == ["s1", "s2", "s3"]
        assert [r.timestamp_ms for r in report] == [1000, 5000, 3000]

    def test_one_result_per_truth_sample(self, strategy):
        truth = [sample(1000)]
        sensor = [sample(1000 + d) for d in (-30, -10, 0, 10, 30)]
        report = TemporalMatcher(tolerance_m=10.0, strategy=strategy).match(truth, sensor)
        assert len(report) == 1
        assert report.results[0].time_delta_ms == 0

    def test_sensor_may_serve_several_truth_samples(self, strategy):
        truth = [sample(1000), sample(1020), sample(1040)]
        report = TemporalMatcher(tolerance_m=10.0, strategy=strategy).match(truth, [sample(1020, rid="s")])
        assert [r.sensor_id for r in report] == ["s", "s", "s"]

    def test_tolerance_is_inclusive(self, strategy):
        truth = [sample(1000)]
        sensor = [sample(1000, alt=30.0)]
        report = TemporalMatcher(tolerance_m=30.0, strategy=strategy).match(truth, sensor)
        assert report.results[0].distance_m == pytest.approx(30.0)
        assert report.results[0].within_tolerance == True

        report = TemporalMatcher(tolerance_m=29.99, strategy=strategy).match(truth, sensor)
        assert report.results[0].within_tolerance == False

    def test_mode_follows_sensor_altitude(self, strategy):
        truth = [sample(1000, alt=100.0), sample(2000, alt=100.0), sample(3000)]
        sensor = [sample(1000, alt=None), sample(2000, alt=5.0), sample(3000, alt=0.0)]
        report = TemporalMatcher(tolerance_m=10.0, strategy=strategy).match(truth, sensor)
        modes = [r.measurement_type for r in report]
        assert modes == [MeasurementType.TWO_D, MeasurementType.THREE_D, MeasurementType.TWO_D]
        assert report.results[1].distance_m == pytest.approx(95.0)

    def test_bad_truth_records_are_skipped(self, strategy):
        truth = [
            sample(1000, rid="ok1"),
            sample("not a timestamp", rid="bad_time"),
            sample(2000, lat=123.0, rid="bad_lat"),
            sample(3000, lon=float("nan"), rid="bad_lon"),
            sample(9000, rid="lonely"),
            sample(4000, rid="ok2"),
        ]
        sensor = [sample(1000), sample(2000), sample(3000), sample(4000)]
        report = TemporalMatcher(tolerance_m=10.0, strategy=strategy).match(truth, sensor)

        assert [r.truth_id for r in report] == ["ok1", "ok2"]
        summary = report.summary
        assert summary.total_truth == 6
        assert summary.matched == 2
        assert summary.skipped[SkipReason.MALFORMED_TIMESTAMP] == 1
        assert summary.skipped[SkipReason.INVALID_COORDINATE] == 2
        assert summary.skipped[SkipReason.NO_MATCH] == 1
        assert summary.skipped_total == 4

    def test_bad_sensor_records_are_excluded(self, strategy):
        """A broken sensor record never hides a usable one."""
        truth = [sample(1000)]
        sensor = [
            sample("garbage", rid="bad_time"),
            sample(1000, lat=float("nan"), rid="bad_lat"),
            sample(1001, alt=float("inf"), rid="bad_alt"),
            sample(1030, rid="good"),
        ]
        report = TemporalMatcher(tolerance_m=10.0, strategy=strategy).match(truth, sensor)
        assert [r.sensor_id for r in report] == ["good"]
        assert report.summary.sensor_rejected == 3
        assert report.summary.sensor_total == 4

    def test_out_of_range_sensor_timestamp_is_rejected(self, strategy):
        truth = [sample(1000)]
        sensor = [sample(1e30, rid="huge"), sample(1010, rid="ok")]
        report = TemporalMatcher(tolerance_m=10.0, strategy=strategy).match(truth, sensor)
        assert [r.sensor_id for r in report] == ["ok"]
        assert report.summary.sensor_rejected == 1

    def test_out_of_range_truth_timestamp_is_malformed(self, strategy):
        truth = [sample(1e30, rid="huge"), sample(1000, rid="ok")]
        sensor = [sample(1010)]
        report = TemporalMatcher(tolerance_m=10.0, strategy=strategy).match(truth, sensor)
        assert [r.truth_id for r in report] == ["ok"]
        assert report.summary.skipped[SkipReason.MALFORMED_TIMESTAMP] == 1
        assert report.summary.skipped[SkipReason.NO_MATCH] == 0

    def test_truth_offset_field(self, strategy):
        truth = [GeoSample(timestamp="2024-01-01 00:00:00", offset_ms="400",
                           latitude=10.0, longitude=20.0)]
        sensor = [
            GeoSample(timestamp="2024-01-01T00:00:00.000Z", latitude=10.0, longitude=20.0, record_id="base"),
            GeoSample(timestamp="2024-01-01T00:00:00.420Z", latitude=10.0, longitude=20.0, record_id="offset"),
        ]
        report = TemporalMatcher(tolerance_m=10.0, strategy=strategy).match(truth, sensor)
        assert [r.sensor_id for r in report] == ["offset"]
        assert report.results[0].timestamp == "2024-01-01T00:00:00.400Z"

    @pytest.mark.parametrize("truth, sensor", [([], [1000]), ([1000], []), ([], [])])
    def test_empty_input(self, strategy, truth, sensor):
        report = TemporalMatcher(tolerance_m=10.0, strategy=strategy).match(
            [sample(ms) for ms in truth], [sample(ms) for ms in sensor]
        )
        assert report.results == []
        assert report.summary.empty_input == True

    def test_cancel_before_start(self, strategy):
        cancel = threading.Event()
        cancel.set()
        report = TemporalMatcher(tolerance_m=10.0, strategy=strategy).match(
            [sample(1000), sample(2000)], [sample(1000), sample(2000)], cancel=cancel
        )
        assert report.results == []
        assert report.summary.cancelled == True

    def test_cancel_between_truth_samples(self, strategy):
        truth = [sample(1000 * i) for i in range(1, 6)]
        sensor = [sample(1000 * i) for i in range(1, 6)]
        report = TemporalMatcher(tolerance_m=10.0, strategy=strategy).match(
            truth, sensor, cancel=CancelAfter(2)
        )
        assert [r.timestamp_ms for r in report] == [1000, 2000]
        assert report.summary.cancelled == True
        assert report.summary.matched == 2


class TestStrategyEquivalence:
    """The indexed search returns exactly what the linear scan returns."""

    def test_random_series(self):
        rng = np.random.default_rng(42)
        truth = [
            sample(int(ms), lat=float(lat), lon=float(lon), alt=float(alt), rid=f"t{i}")
            for i, (ms, lat, lon, alt) in enumerate(zip(
                rng.integers(0, 20000, 300),
                rng.uniform(51.0, 51.1, 300),
                rng.uniform(4.0, 4.1, 300),
                rng.uniform(0.0, 120.0, 300),
            ))
        ]
        sensor = [
            sample(int(ms), lat=float(lat), lon=float(lon), alt=float(alt), rid=f"s{i}")
            for i, (ms, lat, lon, alt) in enumerate(zip(
                rng.integers(0, 20000, 400) // 10 * 10,
                rng.uniform(51.0, 51.1, 400),
                rng.uniform(4.0, 4.1, 400),
                rng.choice([0.0, 50.0, 80.0], 400),
            ))
        ]
        scan = TemporalMatcher(tolerance_m=500.0, window_ms=60, strategy="scan").match(truth, sensor)
        indexed = TemporalMatcher(tolerance_m=500.0, window_ms=60, strategy="indexed").match(truth, sensor)

        assert scan.results == indexed.results
        assert scan.summary == indexed.summary
        assert scan.summary.matched > 0
        assert scan.summary.skipped[SkipReason.NO_MATCH] > 0


class TestConfiguration:
    """Test suite for matcher settings."""

    def test_defaults(self):
        matcher = TemporalMatcher(tolerance_m=5.0)
        assert matcher.window_ms == 100.0
        assert matcher.strategy == "indexed"

    @pytest.mark.parametrize("kwargs", [
        dict(tolerance_m=None),
        dict(tolerance_m=-1.0),
        dict(tolerance_m=float("nan")),
        dict(tolerance_m=5.0, window_ms=0),
        dict(tolerance_m=5.0, window_ms=-10),
        dict(tolerance_m=5.0, strategy="fast"),
    ])
    def test_invalid_settings(self, kwargs):
        with pytest.raises(ConfigError):
            TemporalMatcher(**kwargs)

    def test_match_series_wrapper(self):
        report = match_series([sample(1000)], [sample(1050)], tolerance_m=1.0, window_ms=40)
        assert len(report) == 0
        report = match_series([sample(1000)], [sample(1050)], tolerance_m=1.0, window_ms=60)
        assert len(report) == 1

    def test_summary_to_dict(self):
        summary = MatchSummary(total_truth=3, matched=1)
        summary.skipped[SkipReason.NO_MATCH] = 2
        data = summary.to_dict()
        assert data["total_truth"] == 3
        assert data["skipped_no_match"] == 2
        assert data["skipped_invalid_coordinate"] == 0
