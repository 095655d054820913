"""Adaptive difficulty: turn rolling performance into adjustment advice.

Decisions are recomputed from scratch on every completed rep, first match
wins: struggling, excelling, fatigued, mild form issue, improving, steady.
Threshold values are empirical and kept as tuned.
"""

from __future__ import annotations

import enum
import logging
import math
import random
from dataclasses import dataclass, field, replace
from typing import Optional

from moov_engine.performance import SESSION_WINDOW, PerformanceAggregator, PerformanceSnapshot

logger = logging.getLogger(__name__)

ROM_STRUGGLING = 0.7
ROM_EXCELLING = 1.1
FORM_POOR = 0.5
FORM_GOOD = 0.8
FORM_EXCELLENT = 0.9

ANGLE_REDUCE = 0.85
ANGLE_INCREASE = 1.1
REPS_REDUCE = 0.75
REPS_INCREASE = 1.2
MIN_REPS = 3
MAX_REPS = 20

REST_NORMAL = 5
REST_FATIGUE = 20


class Trend(str, enum.Enum):
    STRUGGLING = "struggling"
    IMPROVING = "improving"
    STEADY = "steady"
    EXCELLING = "excelling"
    FATIGUED = "fatigued"


class CueKind(str, enum.Enum):
    SMALLER_MOVEMENT = "smaller_movement"
    SLOW_DOWN = "slow_down"
    EXCELLING = "excelling"
    REST = "rest"
    FORM_FOCUS = "form_focus"
    IMPROVING = "improving"


CUE_TEXTS: dict[CueKind, tuple[str, ...]] = {
    CueKind.SMALLER_MOVEMENT: ("Try a smaller movement - even small movements count!",),
    CueKind.SLOW_DOWN: ("Slow down and focus on the movement. You've got this!",),
    CueKind.EXCELLING: (
        "Excellent form! You're doing amazing!",
        "Wow, great range of motion!",
        "You're crushing it! Keep going!",
        "Perfect! Ready for a bigger challenge?",
    ),
    CueKind.REST: ("Take a breather if you need to. You're doing great!",),
    CueKind.FORM_FOCUS: ("Focus on your form - quality over speed!",),
    CueKind.IMPROVING: (
        "You're getting better with each rep!",
        "Nice improvement! Keep it up!",
        "That's the way! Your form is improving!",
        "Great progress!",
    ),
}


def cue_text(kind: CueKind, rng: Optional[random.Random] = None) -> str:
    """Spoken text for a cue; variants are picked with ``rng`` (first one without)."""
    variants = CUE_TEXTS[kind]
    if rng is None or len(variants) == 1:
        return variants[0]
    return variants[rng.randrange(len(variants))]


@dataclass(frozen=True)
class AdjustmentRecommendation:
    angle_modifier: float = 1.0
    rep_modifier: float = 1.0
    suggested_reps: int = 0
    suggest_rest: bool = False
    rest_seconds: int = REST_NORMAL
    trend: Trend = Trend.STEADY
    cue_key: Optional[CueKind] = None
    cue: Optional[str] = None
    performance: Optional[PerformanceSnapshot] = field(default=None, compare=False)


def reduced_reps(target_reps: int) -> int:
    return max(MIN_REPS, math.floor(target_reps * REPS_REDUCE))


def increased_reps(target_reps: int) -> int:
    return min(MAX_REPS, math.ceil(target_reps * REPS_INCREASE))


def struggling_cue(rom: float) -> CueKind:
    return CueKind.SMALLER_MOVEMENT if rom < ROM_STRUGGLING else CueKind.SLOW_DOWN


@dataclass(frozen=True)
class NextExerciseModifications:
    range: str = "full"
    speed: str = "normal"
    reps: str = "standard"


@dataclass(frozen=True)
class QuickAdjustment:
    recommendation: str
    angle_modifier: float
    message: str


def quick_adjustment(
    completed_reps: int = 0,
    target_reps: int = 10,
    avg_form_score: float = 1.0,
    avg_rom: float = 1.0,
) -> QuickAdjustment:
    """Stateless easier/harder/same call for hosts without a rep history."""
    completion_rate = completed_reps / target_reps if target_reps else 0.0

    if avg_rom < ROM_STRUGGLING or avg_form_score < FORM_POOR:
        return QuickAdjustment("easier", ANGLE_REDUCE, "Try smaller movements")
    if avg_rom > ROM_EXCELLING and avg_form_score > FORM_GOOD and completion_rate >= 1:
        return QuickAdjustment("harder", ANGLE_INCREASE, "Great job! Try going bigger!")
    return QuickAdjustment("same", 1.0, "Perfect pace!")


class AdaptiveAdjustmentEngine:
    """Maps a performance snapshot to an AdjustmentRecommendation.

    Holds no performance state of its own. The seeded generator only picks
    between equivalent cue phrasings, and ``history`` records what was
    recommended for the session summary.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = 0 if seed is None else seed
        self.rng = random.Random(self.seed)
        self.history: list[AdjustmentRecommendation] = []

    def reset(self) -> None:
        self.rng = random.Random(self.seed)
        self.history = []

    @property
    def adjustments_made(self) -> int:
        return len(self.history)

    def classify(self, snapshot: PerformanceSnapshot) -> AdjustmentRecommendation:
        """Pure decision over a snapshot; cue text is left unset."""
        form, rom, target = snapshot.form, snapshot.rom, snapshot.target_reps

        if rom < ROM_STRUGGLING or form < FORM_POOR:
            return AdjustmentRecommendation(
                angle_modifier=ANGLE_REDUCE,
                rep_modifier=REPS_REDUCE,
                suggested_reps=reduced_reps(target),
                trend=Trend.STRUGGLING,
                cue_key=struggling_cue(rom),
                performance=snapshot,
            )
        if rom > ROM_EXCELLING and form > FORM_GOOD:
            return AdjustmentRecommendation(
                angle_modifier=ANGLE_INCREASE,
                rep_modifier=REPS_INCREASE,
                suggested_reps=increased_reps(target),
                trend=Trend.EXCELLING,
                cue_key=CueKind.EXCELLING,
                performance=snapshot,
            )
        if snapshot.declining:
            return AdjustmentRecommendation(
                rep_modifier=REPS_REDUCE,
                suggested_reps=reduced_reps(target),
                suggest_rest=True,
                rest_seconds=REST_FATIGUE,
                trend=Trend.FATIGUED,
                cue_key=CueKind.REST,
                performance=snapshot,
            )
        if FORM_POOR <= form < FORM_GOOD:
            return AdjustmentRecommendation(
                suggested_reps=target,
                cue_key=CueKind.FORM_FOCUS,
                performance=snapshot,
            )
        if snapshot.improving:
            return AdjustmentRecommendation(
                suggested_reps=target,
                trend=Trend.IMPROVING,
                cue_key=CueKind.IMPROVING,
                performance=snapshot,
            )
        return AdjustmentRecommendation(suggested_reps=target, performance=snapshot)

    def recommend(self, aggregator: PerformanceAggregator) -> AdjustmentRecommendation:
        snapshot = aggregator.snapshot()
        decision = self.classify(snapshot)
        cue = cue_text(decision.cue_key, self.rng) if decision.cue_key is not None else None
        recommendation = replace(decision, cue=cue)
        self.history.append(recommendation)
        logger.info(
            "Adjustment after rep %d: trend=%s form=%.2f rom=%.2f",
            snapshot.reps_completed,
            recommendation.trend.value,
            snapshot.form,
            snapshot.rom,
        )
        return recommendation

    def suggest_next_exercise(self, aggregator: PerformanceAggregator) -> NextExerciseModifications:
        """Coarse modifiers for the next exercise from session-level averages."""
        session_form = aggregator.session_average("form_score", SESSION_WINDOW)
        session_rom = aggregator.session_average("rom_ratio", SESSION_WINDOW)

        if session_form < FORM_GOOD or session_rom < ROM_STRUGGLING:
            return NextExerciseModifications(range="partial", speed="slow", reps="low")
        if session_form > FORM_EXCELLENT and session_rom > ROM_EXCELLING:
            return NextExerciseModifications(range="extended", speed="normal", reps="high")
        return NextExerciseModifications()
