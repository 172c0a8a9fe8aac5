"""Tests for the pure challenge progress calculation."""
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from domain.challenges.progress import compute_progress, progress_window

START = datetime(2024, 1, 1, 8, 0)


def _challenge(kind, start=START, end=START + timedelta(days=30)):
    return SimpleNamespace(type=kind, start_date=start, end_date=end)


def _entry(day, weight, activity=False, hour=8):
    return SimpleNamespace(
        recorded_at=START.replace(hour=hour) + timedelta(days=day),
        weight=weight,
        activity_logged=activity,
    )


class TestWeightBasedProgress:
    """Percentage and total loss use the first and last entry."""

    def test_percentage_loss(self):
        entries = [_entry(0, 200.0), _entry(3, 196.0), _entry(6, 190.0)]
        assert compute_progress(_challenge("WEIGHT_LOSS_PERCENTAGE"), entries) == pytest.approx(5.0)

    def test_total_loss(self):
        entries = [_entry(0, 200.0), _entry(5, 194.0)]
        assert compute_progress(_challenge("TOTAL_WEIGHT_LOSS"), entries) == pytest.approx(6.0)

    def test_gain_is_negative(self):
        entries = [_entry(0, 200.0), _entry(5, 210.0)]
        assert compute_progress(_challenge("WEIGHT_LOSS_PERCENTAGE"), entries) == pytest.approx(-5.0)
        assert compute_progress(_challenge("TOTAL_WEIGHT_LOSS"), entries) == pytest.approx(-10.0)

    @pytest.mark.parametrize("kind", ["WEIGHT_LOSS_PERCENTAGE", "TOTAL_WEIGHT_LOSS"])
    def test_single_entry_has_no_progress(self, kind):
        assert compute_progress(_challenge(kind), [_entry(0, 200.0)]) == 0.0


class TestCountBasedProgress:

    def test_consistency_counts_distinct_days(self):
        entries = [_entry(0, 200.0, hour=7), _entry(0, 199.0, hour=20), _entry(1, 199.0), _entry(4, 198.0)]
        assert compute_progress(_challenge("CONSISTENCY"), entries) == 3.0

    def test_activity_counts_flagged_entries(self):
        entries = [_entry(0, 200.0, activity=True), _entry(1, 199.0), _entry(2, 199.0, activity=True)]
        assert compute_progress(_challenge("ACTIVITY_BASED"), entries) == 2.0


@pytest.mark.parametrize("kind", ["WEIGHT_LOSS_PERCENTAGE", "TOTAL_WEIGHT_LOSS", "CONSISTENCY", "ACTIVITY_BASED"])
def test_no_entries_is_zero(kind):
    assert compute_progress(_challenge(kind), []) == 0.0


def test_unknown_type_is_zero():
    assert compute_progress(_challenge("MYSTERY"), [_entry(0, 200.0), _entry(1, 190.0)]) == 0.0


class TestProgressWindow:

    def test_window_stops_at_now_while_running(self):
        challenge = _challenge("CONSISTENCY")
        now = START + timedelta(days=10)
        assert progress_window(challenge, now) == (START, now)

    def test_window_stops_at_end_after_it(self):
        challenge = _challenge("CONSISTENCY")
        assert progress_window(challenge, START + timedelta(days=90)) == (START, challenge.end_date)
