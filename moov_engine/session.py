"""Per-session engine: one call per landmark frame.

SessionState owns the rep tracker, the performance history and the
adaptive engine for the active exercise. It must be driven by a single
caller; timestamps come from the caller so that a recorded frame log
replays to the same events.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, is_dataclass
from enum import Enum
from typing import Any, Optional

import numpy as np

from moov_engine import config
from moov_engine.adaptive import AdaptiveAdjustmentEngine, AdjustmentRecommendation
from moov_engine.exercises import AngleTracking, ExerciseTrackingConfig
from moov_engine.form_checks import FormQuality, Severity, classify_form, run_checks
from moov_engine.geometry import resolve_bilateral_angle
from moov_engine.performance import PerformanceAggregator, PerformanceSample, rom_ratio
from moov_engine.rep_phase import Phase, RepCompletion, RepPhaseTracker

logger = logging.getLogger(__name__)

NO_PERSON_FEEDBACK = "Please position yourself in front of the camera"


@dataclass(frozen=True)
class RepEvent:
    rep_number: int
    sample: PerformanceSample
    recommendation: AdjustmentRecommendation


@dataclass(frozen=True)
class FrameOutcome:
    form_quality: FormQuality
    feedback: Optional[str]
    form_score: float
    severity: Severity
    angle: Optional[float]
    phase: Optional[Phase]
    rep_count: int
    rep_event: Optional[RepEvent] = None


@dataclass(frozen=True)
class ExerciseSummary:
    exercise_id: str
    name: str
    completed_reps: int
    target_reps: int
    completion_rate: float
    average_form_score: float
    average_rom: float
    total_time_s: float


@dataclass(frozen=True)
class SessionSummary:
    duration_s: float
    total_reps: int
    total_exercises: int
    skipped_exercises: int
    avg_form_quality: float
    avg_rom: float
    adjustments_made: int


def to_payload(value: Any) -> Any:
    """JSON-friendly view of engine dataclasses and enums."""
    if is_dataclass(value) and not isinstance(value, type):
        return to_payload(asdict(value))
    if isinstance(value, dict):
        return {k: to_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_payload(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, float):
        return round(value, 4)
    return value


class SessionState:
    def __init__(self, cue_seed: Optional[int] = None):
        self.aggregator = PerformanceAggregator()
        self.adaptive = AdaptiveAdjustmentEngine(seed=config.CUE_SEED if cue_seed is None else cue_seed)
        self.exercise: Optional[ExerciseTrackingConfig] = None
        self.tracker: Optional[RepPhaseTracker] = None
        self.started_at: Optional[float] = None
        self.last_timestamp: Optional[float] = None
        self.last_manual_rep_at: Optional[float] = None
        self._cycle_form_total = 0.0
        self._cycle_frames = 0
        self._frames_seen = 0

    @property
    def rep_count(self) -> int:
        return self.aggregator.reps_completed

    @property
    def tracks_reps(self) -> bool:
        """False when the exercise needs manual rep entry."""
        return self.tracker is not None

    @property
    def cycle_form_score(self) -> float:
        """Mean form score of the frames in the current rep cycle."""
        if self._cycle_frames == 0:
            return 1.0
        return self._cycle_form_total / self._cycle_frames

    def _reset_cycle_form(self) -> None:
        self._cycle_form_total = 0.0
        self._cycle_frames = 0

    def _touch(self, timestamp_sec: Optional[float]) -> None:
        if timestamp_sec is None:
            return
        if self.started_at is None:
            self.started_at = timestamp_sec
        self.last_timestamp = timestamp_sec

    def start_exercise(
        self,
        exercise: ExerciseTrackingConfig,
        target_reps: int = config.DEFAULT_TARGET_REPS,
        timestamp_sec: Optional[float] = None,
    ) -> None:
        """Switch to ``exercise``; resets the tracker and the exercise window."""
        self._touch(timestamp_sec)
        self.exercise = exercise
        self.tracker = RepPhaseTracker(exercise.phases) if exercise.auto_reps else None
        self.aggregator.start_exercise(target_reps, timestamp_sec)
        self.last_manual_rep_at = timestamp_sec
        self._reset_cycle_form()
        if self.tracker is None:
            logger.info("Exercise %s has no angle tracking, manual rep entry required", exercise.exercise_id)
        else:
            logger.info("Started exercise %s (target %d reps)", exercise.exercise_id, target_reps)

    def skip_exercise(self) -> None:
        self.aggregator.skip_exercise()
        logger.info("Skipped exercise %s", self.exercise.exercise_id if self.exercise else "<none>")

    def _target_angle(self) -> Optional[float]:
        phases = self.exercise.phases if self.exercise is not None else None
        return phases.peak_angle if phases is not None else None

    def _record(
        self,
        rep_time_s: float,
        angle_achieved: Optional[float],
        form_score: float,
    ) -> tuple[PerformanceSample, AdjustmentRecommendation]:
        sample = PerformanceSample(
            rep_time_s=rep_time_s,
            angle_achieved=angle_achieved,
            form_score=form_score,
            rom_ratio=rom_ratio(angle_achieved, self._target_angle()),
        )
        self.aggregator.record(sample)
        return sample, self.adaptive.recommend(self.aggregator)

    def _complete(self, completion: RepCompletion) -> RepEvent:
        form_score = self.cycle_form_score
        self._reset_cycle_form()
        sample, recommendation = self._record(completion.rep_time_s, completion.angle_achieved, form_score)
        return RepEvent(rep_number=self.rep_count, sample=sample, recommendation=recommendation)

    def record_manual_rep(self, timestamp_sec: float, form_score: float = 1.0) -> RepEvent:
        """Host-entered rep for exercises without angle tracking."""
        self._touch(timestamp_sec)
        last = self.last_manual_rep_at
        rep_time = timestamp_sec - last if last is not None else 0.0
        self.last_manual_rep_at = timestamp_sec
        sample, recommendation = self._record(rep_time, None, form_score)
        return RepEvent(rep_number=self.rep_count, sample=sample, recommendation=recommendation)

    def process_frame(self, frame: Optional[np.ndarray], timestamp_sec: float) -> FrameOutcome:
        """Run form checks and rep detection for one frame."""
        self._touch(timestamp_sec)
        self._frames_seen += 1
        phase = self.tracker.phase if self.tracker is not None else None

        if frame is None:
            return FrameOutcome(
                form_quality=FormQuality.POOR,
                feedback=NO_PERSON_FEEDBACK,
                form_score=0.0,
                severity=Severity.INFO,
                angle=None,
                phase=phase,
                rep_count=self.rep_count,
            )

        rules = self.exercise.form_rules if self.exercise is not None else ()
        form = run_checks(frame, rules)

        angle = None
        rep_event = None
        if self.tracker is not None and isinstance(self.exercise.tracking, AngleTracking):
            angle = resolve_bilateral_angle(frame, self.exercise.tracking)
            phase_before = self.tracker.phase
            completion = self.tracker.update(angle, timestamp_sec)
            if completion is not None:
                rep_event = self._complete(completion)
            elif self.tracker.phase is Phase.READY and phase_before is not Phase.READY:
                # New cycle without a rep (first entry or aborted attempt).
                self._reset_cycle_form()
            if self.tracker.phase is not Phase.NEUTRAL:
                self._cycle_form_total += form.score
                self._cycle_frames += 1
            phase = self.tracker.phase

        if self._frames_seen % config.LOG_EVERY_N_FRAMES == 0:
            logger.debug(
                "frame=%d angle=%s phase=%s form=%.2f",
                self._frames_seen,
                "n/a" if angle is None else f"{angle:.1f}",
                phase.value if phase is not None else "-",
                form.score,
            )

        return FrameOutcome(
            form_quality=classify_form(form),
            feedback=form.message or None,
            form_score=form.score,
            severity=form.severity,
            angle=angle,
            phase=phase,
            rep_count=self.rep_count,
            rep_event=rep_event,
        )

    def exercise_summary(self) -> Optional[ExerciseSummary]:
        if self.exercise is None:
            return None
        agg = self.aggregator
        started = agg.exercise_started_at
        total_time = (self.last_timestamp - started) if started is not None and self.last_timestamp is not None else 0.0
        return ExerciseSummary(
            exercise_id=self.exercise.exercise_id,
            name=self.exercise.name,
            completed_reps=agg.reps_completed,
            target_reps=agg.target_reps,
            completion_rate=agg.reps_completed / agg.target_reps if agg.target_reps else 0.0,
            average_form_score=agg.rolling_average("form_score", max(agg.reps_completed, 1)),
            average_rom=agg.rolling_average("rom_ratio", max(agg.reps_completed, 1)),
            total_time_s=total_time,
        )

    def summary(self, end_timestamp_sec: Optional[float] = None) -> SessionSummary:
        """Session totals over the whole session log."""
        end = end_timestamp_sec if end_timestamp_sec is not None else self.last_timestamp
        duration = (end - self.started_at) if end is not None and self.started_at is not None else 0.0
        agg = self.aggregator
        return SessionSummary(
            duration_s=max(0.0, duration),
            total_reps=agg.session_reps,
            total_exercises=agg.total_exercises,
            skipped_exercises=agg.skipped_exercises,
            avg_form_quality=agg.session_average("form_score", window=None),
            avg_rom=agg.session_average("rom_ratio", window=None),
            adjustments_made=self.adaptive.adjustments_made,
        )

    def reset(self) -> None:
        """Start a new session; call start_exercise before the next frame."""
        self.aggregator.reset()
        self.adaptive.reset()
        self.exercise = None
        self.tracker = None
        self.started_at = None
        self.last_timestamp = None
        self.last_manual_rep_at = None
        self._reset_cycle_form()
        self._frames_seen = 0
