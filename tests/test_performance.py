"""Rolling performance history."""

import pytest

from moov_engine.performance import (
    NEUTRAL_AVERAGE,
    PerformanceAggregator,
    PerformanceSample,
    rom_ratio,
    windowed_mean,
)


def _sample(form=1.0, rom=1.0, rep_time=2.0, angle=60.0):
    return PerformanceSample(rep_time_s=rep_time, angle_achieved=angle, form_score=form, rom_ratio=rom)


def _aggregator(forms, target_reps=10, rom=1.0):
    agg = PerformanceAggregator()
    agg.start_exercise(target_reps, 0.0)
    for f in forms:
        agg.record(_sample(form=f, rom=rom))
    return agg


class TestRollingAverages:
    def test_empty_history_is_neutral(self):
        agg = PerformanceAggregator()
        for field in ("form_score", "rom_ratio", "rep_time_s"):
            assert agg.rolling_average(field) == NEUTRAL_AVERAGE
            assert agg.session_average(field) == NEUTRAL_AVERAGE

    def test_window_uses_latest_samples(self):
        agg = _aggregator([0.2, 0.2, 1.0, 1.0, 1.0, 1.0, 1.0])
        assert agg.rolling_average("form_score") == pytest.approx(1.0)
        assert agg.rolling_average("form_score", window=7) == pytest.approx(5.4 / 7)

    def test_missing_rom_skipped_in_exercise_window(self):
        agg = PerformanceAggregator()
        agg.start_exercise(10)
        agg.record(_sample(rom=0.5))
        agg.record(_sample(rom=None))
        assert agg.rolling_average("rom_ratio") == pytest.approx(0.5)
        # session view treats the unmeasured rep as on target
        assert agg.session_average("rom_ratio") == pytest.approx(0.75)

    def test_unknown_field(self):
        with pytest.raises(ValueError):
            PerformanceAggregator().rolling_average("speed")

    def test_switch_clears_exercise_window_only(self):
        agg = _aggregator([0.4, 0.4, 0.4])
        agg.start_exercise(8, 30.0)
        assert agg.reps_completed == 0
        assert agg.session_reps == 3
        assert agg.rolling_average("form_score") == NEUTRAL_AVERAGE
        assert agg.session_average("form_score") == pytest.approx(0.4)
        assert agg.total_exercises == 2
        assert agg.target_reps == 8

    def test_session_window(self):
        agg = _aggregator([0.0] * 10 + [1.0] * 20)
        assert agg.session_average("form_score") == pytest.approx(1.0)
        assert agg.session_average("form_score", window=None) == pytest.approx(20 / 30)


class TestTrends:
    def test_decline_needs_six_samples(self):
        assert not _aggregator([0.9, 0.9, 0.3, 0.3]).is_declining()

    def test_declining(self):
        assert _aggregator([0.9, 0.9, 0.9, 0.5, 0.4, 0.3]).is_declining()

    def test_small_drop_is_not_decline(self):
        assert not _aggregator([0.9, 0.9, 0.9, 0.85, 0.8, 0.8]).is_declining()

    def test_improving(self):
        assert _aggregator([0.5, 0.5, 0.8, 0.8]).is_improving()
        assert not _aggregator([0.5, 0.5, 0.8]).is_improving()
        assert not _aggregator([0.8, 0.8, 0.8, 0.8]).is_improving()

    def test_snapshot(self):
        snap = _aggregator([0.9, 0.9, 0.9, 0.5, 0.4, 0.3], target_reps=10).snapshot()
        assert snap.form == pytest.approx(0.6)
        assert snap.rom == pytest.approx(1.0)
        assert snap.reps_completed == 6
        assert snap.reps_remaining == 4
        assert snap.declining
        assert not snap.improving


class TestHelpers:
    def test_rom_ratio(self):
        assert rom_ratio(45.0, 60.0) == pytest.approx(0.75)
        assert rom_ratio(None, 60.0) is None
        assert rom_ratio(45.0, None) is None
        assert rom_ratio(45.0, 0.0) is None

    def test_windowed_mean(self):
        assert windowed_mean([], 5) == NEUTRAL_AVERAGE
        assert windowed_mean([1, 2, 3, 4], 2) == pytest.approx(3.5)
