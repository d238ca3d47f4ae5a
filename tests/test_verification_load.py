"""Verification Test: Load Test - parse and align a long capture.

A capture left running for hours holds thousands of snapshots. We repeat the
three-snapshot sample to build a large input and check that parsing and
alignment keep every snapshot, keep series lengths equal and finish quickly.
"""

import os
import time

import pytest

from ttop.aligner import METRIC_NAMES, align
from ttop.parser import parse
from ttop.report import render_report


@pytest.fixture
def long_capture(sample_capture):
    """
    The sample capture repeated many times.

    In CI environments, we scale down the repeat count to keep the run short
    while still exercising the same code paths.
    """
    is_ci = os.environ.get("CI", "false").lower() == "true"
    repeats = 100 if is_ci else 1000
    return sample_capture * repeats, repeats


class TestLoadTest:
    """Load test verification suite tests."""

    def test_parse_keeps_every_snapshot(self, long_capture):
        """Test no snapshot or process record is lost in a long capture."""
        capture, repeats = long_capture

        result = parse(capture)

        assert len(result) == 3 * repeats
        assert result.process_count == 15 * repeats

    def test_hundred_repeats(self, sample_capture):
        """Test the sample repeated 100 times gives 300 snapshots and 1500 records."""
        result = parse(sample_capture * 100)

        assert len(result) == 300
        assert result.process_count == 1500

    def test_parse_time_under_threshold(self, long_capture):
        """
        Test that parsing completes within acceptable time.

        (10 seconds is generous to account for CI variability)
        """
        capture, _ = long_capture

        start_time = time.perf_counter()
        parse(capture)
        parse_time = time.perf_counter() - start_time

        assert parse_time < 10.0, f"Parsing took {parse_time:.2f}s, expected < 10.0s"

    def test_aligned_series_share_length(self, long_capture):
        """Test every series is as long as the time axis."""
        capture, repeats = long_capture

        series = align(parse(capture))

        assert series.length == 3 * repeats
        for name in METRIC_NAMES:
            assert len(series.metric(name)) == series.length, name
        # PIDs recur across repeats, so the process set stays small
        assert len(series.processes) == 7
        for name, values in series.processes.items():
            assert len(values) == series.length, name

    def test_report_renders_long_capture(self, long_capture):
        """Test the report page is produced for a long capture."""
        capture, repeats = long_capture

        page = render_report(align(parse(capture)))

        assert f"<tr><td>{3 * repeats}</td>" in page
