"""Adaptive adjustment decisions."""

import pytest

from moov_engine.adaptive import (
    ANGLE_INCREASE,
    ANGLE_REDUCE,
    CUE_TEXTS,
    REST_FATIGUE,
    REST_NORMAL,
    AdaptiveAdjustmentEngine,
    CueKind,
    Trend,
    increased_reps,
    quick_adjustment,
    reduced_reps,
)
from moov_engine.performance import PerformanceAggregator, PerformanceSample, PerformanceSnapshot


def _snapshot(form=0.9, rom=1.0, target=10, done=5, declining=False, improving=False):
    return PerformanceSnapshot(
        form=form,
        rom=rom,
        rep_time=2.0,
        reps_completed=done,
        target_reps=target,
        declining=declining,
        improving=improving,
    )


def _aggregator(forms, roms=None, target_reps=10):
    roms = roms or [1.0] * len(forms)
    agg = PerformanceAggregator()
    agg.start_exercise(target_reps, 0.0)
    for f, r in zip(forms, roms):
        agg.record(PerformanceSample(rep_time_s=2.0, angle_achieved=None, form_score=f, rom_ratio=r))
    return agg


# ---------------------------------------------------------------------------
# Decision table
# ---------------------------------------------------------------------------

class TestClassify:
    def setup_method(self):
        self.engine = AdaptiveAdjustmentEngine(seed=0)

    def test_rom_at_threshold_is_not_struggling(self):
        rec = self.engine.classify(_snapshot(form=0.9, rom=0.7))
        assert rec.trend is Trend.STEADY
        assert rec.angle_modifier == 1.0

    def test_rom_just_below_threshold_is_struggling(self):
        rec = self.engine.classify(_snapshot(form=0.9, rom=0.699999))
        assert rec.trend is Trend.STRUGGLING
        assert rec.angle_modifier == ANGLE_REDUCE
        assert rec.suggested_reps == 7
        assert rec.cue_key is CueKind.SMALLER_MOVEMENT

    def test_poor_form_is_struggling(self):
        rec = self.engine.classify(_snapshot(form=0.45, rom=1.0))
        assert rec.trend is Trend.STRUGGLING
        assert rec.cue_key is CueKind.SLOW_DOWN

    def test_excelling(self):
        rec = self.engine.classify(_snapshot(form=0.85, rom=1.2))
        assert rec.trend is Trend.EXCELLING
        assert rec.angle_modifier == ANGLE_INCREASE
        assert rec.suggested_reps == 12
        assert not rec.suggest_rest

    def test_excelling_needs_good_form(self):
        rec = self.engine.classify(_snapshot(form=0.8, rom=1.2))
        assert rec.trend is not Trend.EXCELLING

    def test_fatigued(self):
        rec = self.engine.classify(_snapshot(form=0.85, rom=1.0, declining=True))
        assert rec.trend is Trend.FATIGUED
        assert rec.suggest_rest
        assert rec.rest_seconds == REST_FATIGUE
        assert rec.suggested_reps == 7
        assert rec.angle_modifier == 1.0

    def test_struggling_wins_over_fatigue(self):
        rec = self.engine.classify(_snapshot(form=0.3, rom=1.0, declining=True))
        assert rec.trend is Trend.STRUGGLING

    def test_mild_form_issue_keeps_steady(self):
        rec = self.engine.classify(_snapshot(form=0.6, rom=1.0, improving=True))
        assert rec.trend is Trend.STEADY
        assert rec.cue_key is CueKind.FORM_FOCUS
        assert rec.suggested_reps == 10

    def test_improving(self):
        rec = self.engine.classify(_snapshot(form=0.85, rom=1.0, improving=True))
        assert rec.trend is Trend.IMPROVING
        assert rec.cue_key is CueKind.IMPROVING

    def test_steady_defaults(self):
        rec = self.engine.classify(_snapshot())
        assert rec.trend is Trend.STEADY
        assert rec.rest_seconds == REST_NORMAL
        assert rec.cue_key is None


class TestRepBounds:
    def test_reduced_never_below_three(self):
        assert reduced_reps(3) == 3
        assert reduced_reps(4) == 3
        assert reduced_reps(10) == 7

    def test_increased_never_above_twenty(self):
        assert increased_reps(10) == 12
        assert increased_reps(18) == 20
        assert increased_reps(20) == 20


# ---------------------------------------------------------------------------
# Engine over an aggregator
# ---------------------------------------------------------------------------

class TestRecommend:
    def test_fatigue_scenario(self):
        agg = _aggregator([0.9, 0.9, 0.9, 0.5, 0.4, 0.3])
        rec = AdaptiveAdjustmentEngine(seed=0).recommend(agg)

        assert rec.trend is Trend.FATIGUED
        assert rec.suggest_rest
        assert rec.rest_seconds == 20
        assert rec.cue in CUE_TEXTS[CueKind.REST]
        assert rec.performance.form == pytest.approx(0.6)

    def test_history_counts_adjustments(self):
        engine = AdaptiveAdjustmentEngine()
        agg = _aggregator([0.9])
        engine.recommend(agg)
        engine.recommend(agg)
        assert engine.adjustments_made == 2
        engine.reset()
        assert engine.adjustments_made == 0

    def test_same_seed_same_cues(self):
        agg = _aggregator([0.95] * 3, roms=[1.3] * 3)
        a, b = AdaptiveAdjustmentEngine(seed=42), AdaptiveAdjustmentEngine(seed=42)
        cues_a = [a.recommend(agg).cue for _ in range(10)]
        cues_b = [b.recommend(agg).cue for _ in range(10)]
        assert cues_a == cues_b
        assert all(c in CUE_TEXTS[CueKind.EXCELLING] for c in cues_a)

    def test_reset_replays_cues(self):
        agg = _aggregator([0.95] * 3, roms=[1.3] * 3)
        engine = AdaptiveAdjustmentEngine(seed=3)
        first = [engine.recommend(agg).cue for _ in range(5)]
        engine.reset()
        assert [engine.recommend(agg).cue for _ in range(5)] == first

    def test_recommend_does_not_mutate_aggregator(self):
        agg = _aggregator([0.9, 0.8])
        AdaptiveAdjustmentEngine().recommend(agg)
        assert agg.reps_completed == 2


class TestNextExercise:
    def test_poor_session_goes_gentle(self):
        mods = AdaptiveAdjustmentEngine().suggest_next_exercise(_aggregator([0.6] * 4))
        assert (mods.range, mods.speed, mods.reps) == ("partial", "slow", "low")

    def test_strong_session_goes_bigger(self):
        agg = _aggregator([0.95] * 4, roms=[1.2] * 4)
        mods = AdaptiveAdjustmentEngine().suggest_next_exercise(agg)
        assert (mods.range, mods.reps) == ("extended", "high")

    def test_average_session_standard(self):
        mods = AdaptiveAdjustmentEngine().suggest_next_exercise(_aggregator([0.85] * 4))
        assert (mods.range, mods.speed, mods.reps) == ("full", "normal", "standard")


class TestQuickAdjustment:
    def test_easier(self):
        assert quick_adjustment(avg_rom=0.5).recommendation == "easier"

    def test_harder_needs_completed_target(self):
        assert quick_adjustment(10, 10, 0.9, 1.2).recommendation == "harder"
        assert quick_adjustment(5, 10, 0.9, 1.2).recommendation == "same"

    def test_zero_target(self):
        assert quick_adjustment(0, 0).recommendation == "same"
