"""Lag trend estimator: instant/average rates and catch-up ETAs."""

from datetime import datetime, timedelta

import pytest

from lag_trend import LagTrendEstimator, TrendReport


def at(t0, seconds):
    return t0 + timedelta(seconds=seconds)


@pytest.fixture
def estimator() -> LagTrendEstimator:
    return LagTrendEstimator()


# =============================================================================
# FIRST SAMPLE
# =============================================================================

class TestFirstSample:

    def test_first_sample_sets_anchor(self, estimator, t0):
        report = estimator.update(100, t0)

        assert estimator.state.start_seconds_behind == 100
        assert estimator.state.start_time == t0
        assert report.instant_rate == 0
        assert report.instant_eta is None
        assert report.average_rate == 0
        assert report.average_eta is None

    def test_first_sample_zero_is_caught_up(self, estimator, t0):
        report = estimator.update(0, t0)

        assert report.caught_up is True
        assert report.average_rate == 0
        assert report.instant_eta is None
        assert report.average_eta is None

    def test_anchor_is_never_reset(self, estimator, t0):
        estimator.update(100, t0)
        estimator.update(50, at(t0, 10))
        estimator.update(300, at(t0, 20))

        assert estimator.state.start_seconds_behind == 100
        assert estimator.state.start_time == t0


# =============================================================================
# RATES AND ETAS
# =============================================================================

class TestRates:

    def test_catching_up_projects_instant_eta(self, estimator, t0):
        estimator.update(100, t0)
        report = estimator.update(90, at(t0, 10))

        assert report.instant_rate == pytest.approx(-1.0)
        assert report.instant_eta == at(t0, 100)
        assert report.instant_seconds_to_catch_up == pytest.approx(90)
        assert report.average_rate == pytest.approx(-1.0)
        assert report.average_eta == at(t0, 100)

    def test_flat_lag_reports_no_eta(self, estimator, t0):
        estimator.update(100, t0)
        estimator.update(100, at(t0, 10))
        report = estimator.update(100, at(t0, 20))

        assert report.average_rate == 0
        assert report.instant_rate == 0
        assert report.instant_eta is None
        assert report.average_eta is None
        assert report.caught_up is False

    def test_falling_behind(self, estimator, t0):
        estimator.update(10, t0)
        report = estimator.update(20, at(t0, 5))

        assert report.instant_rate == pytest.approx(2.0)
        assert report.average_rate == pytest.approx(2.0)
        assert report.instant_eta is None
        assert report.average_eta is None

    def test_eta_cleared_when_trend_reverses(self, estimator, t0):
        estimator.update(100, t0)
        assert estimator.update(80, at(t0, 10)).instant_eta is not None

        report = estimator.update(95, at(t0, 20))

        assert report.instant_rate == pytest.approx(1.5)
        assert report.instant_eta is None
        assert estimator.state.instant_eta is None

    def test_zero_lag_has_no_average_eta(self, estimator, t0):
        estimator.update(100, t0)
        report = estimator.update(0, at(t0, 50))

        assert report.caught_up is True
        assert report.average_rate == pytest.approx(-2.0)
        assert report.average_eta is None
        # the instant figure still follows the formula: zero seconds left
        assert report.instant_rate == pytest.approx(-2.0)
        assert report.instant_eta == at(t0, 50)

    def test_eta_beyond_calendar_is_clamped(self, estimator, t0):
        estimator.update(3_000_000, t0)
        report = estimator.update(2_999_999, at(t0, 200_000))

        assert report.instant_rate < 0
        assert report.instant_eta == datetime.max
        assert report.average_eta == datetime.max

    def test_average_eta_is_not_stored(self, estimator, t0):
        estimator.update(100, t0)
        estimator.update(50, at(t0, 10))

        assert not hasattr(estimator.state, "average_eta")


# =============================================================================
# ZERO ELAPSED TIME
# =============================================================================

class TestZeroElapsed:

    def test_same_timestamp_keeps_instant_rate(self, estimator, t0):
        estimator.update(100, t0)
        estimator.update(90, at(t0, 10))
        report = estimator.update(80, at(t0, 10))

        assert report.instant_rate == pytest.approx(-1.0)
        assert report.instant_eta == at(t0, 90)

    def test_same_timestamp_on_second_sample(self, estimator, t0):
        estimator.update(100, t0)
        report = estimator.update(90, t0)

        assert report.instant_rate == 0
        assert report.average_rate == 0
        assert report.instant_eta is None
        assert estimator.state.last_seconds_behind == 90

    def test_clock_going_backwards_is_ignored(self, estimator, t0):
        estimator.update(100, t0)
        estimator.update(90, at(t0, 10))
        report = estimator.update(85, at(t0, 5))

        assert report.instant_rate == pytest.approx(-1.0)
        assert estimator.state.last_check_time == at(t0, 5)


# =============================================================================
# PROPERTIES OVER SEQUENCES
# =============================================================================

SEQUENCE = [(100, 0), (120, 5), (90, 15), (90, 20), (60, 21), (0, 40), (30, 70), (10, 75)]


class TestSequenceProperties:

    def test_average_rate_spans_whole_window(self, estimator, t0):
        first_lag, first_time = SEQUENCE[0]
        estimator.update(first_lag, at(t0, first_time))

        for lag, seconds in SEQUENCE[1:]:
            report = estimator.update(lag, at(t0, seconds))
            expected = (lag - first_lag) / (seconds - first_time)
            assert report.average_rate == pytest.approx(expected)

    def test_instant_eta_present_iff_catching_up(self, estimator, t0):
        for lag, seconds in SEQUENCE:
            report = estimator.update(lag, at(t0, seconds))
            assert (report.instant_eta is not None) == (report.instant_rate < 0)

    def test_reports_are_values(self, estimator, t0):
        first = estimator.update(100, t0)
        estimator.update(50, at(t0, 10))

        assert isinstance(first, TrendReport)
        assert first.seconds_behind == 100
        assert first.instant_rate == 0


# =============================================================================
# OWNERSHIP AND INPUT CHECKS
# =============================================================================

class TestOwnership:

    def test_estimators_do_not_share_state(self, t0):
        a = LagTrendEstimator()
        b = LagTrendEstimator()

        a.update(100, t0)
        a.update(50, at(t0, 10))
        report = b.update(10, at(t0, 10))

        assert report.instant_rate == 0
        assert b.state.start_seconds_behind == 10

    def test_negative_sample_rejected(self, estimator, t0):
        with pytest.raises(ValueError):
            estimator.update(-1, t0)
        assert estimator.state.start_time is None
