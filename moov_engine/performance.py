"""Rolling per-rep performance history at exercise and session scope."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

RECENT_WINDOW = 5
SESSION_WINDOW = 20

FATIGUE_DECLINE_RATE = 0.15
IMPROVEMENT_RATE = 1.1
MIN_SAMPLES_DECLINE = 6
MIN_SAMPLES_IMPROVE = 4

# Reported for an empty history so that "no data" never reads as struggling
NEUTRAL_AVERAGE = 1.0

EXERCISE_FIELDS = ("form_score", "rom_ratio", "rep_time_s", "angle_achieved")
SESSION_FIELDS = ("form_score", "rom_ratio", "rep_time_s")


@dataclass(frozen=True)
class PerformanceSample:
    rep_time_s: float
    angle_achieved: Optional[float]
    form_score: float
    rom_ratio: Optional[float] = None


@dataclass(frozen=True)
class PerformanceSnapshot:
    form: float
    rom: float
    rep_time: float
    reps_completed: int
    target_reps: int
    declining: bool
    improving: bool

    @property
    def reps_remaining(self) -> int:
        return max(0, self.target_reps - self.reps_completed)


def rom_ratio(angle_achieved: Optional[float], target_angle: Optional[float]) -> Optional[float]:
    """Achieved over target angle; None when either is unknown or the target is 0."""
    if angle_achieved is None or target_angle is None or target_angle == 0:
        return None
    return angle_achieved / target_angle


def windowed_mean(values: list[float], window: int) -> float:
    if not values:
        return NEUTRAL_AVERAGE
    arr = np.asarray(values[-window:], dtype=np.float64)
    return float(arr.mean())


def _split_halves(values: list[float]) -> tuple[float, float]:
    mid = len(values) // 2
    return float(np.mean(values[:mid])), float(np.mean(values[mid:]))


class PerformanceAggregator:
    """Accumulates completed-rep samples.

    The exercise history is cleared on every exercise switch and read
    through a window of RECENT_WINDOW; the session log is never trimmed
    and is read through SESSION_WINDOW for moving averages.
    """

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.samples: list[PerformanceSample] = []
        self.session_samples: list[PerformanceSample] = []
        self.target_reps = 0
        self.exercise_started_at: Optional[float] = None
        self.total_exercises = 0
        self.skipped_exercises = 0

    def start_exercise(self, target_reps: int, timestamp_sec: Optional[float] = None) -> None:
        self.samples = []
        self.target_reps = target_reps
        self.exercise_started_at = timestamp_sec
        self.total_exercises += 1

    def skip_exercise(self) -> None:
        self.skipped_exercises += 1

    def record(self, sample: PerformanceSample) -> None:
        self.samples.append(sample)
        self.session_samples.append(sample)

    @property
    def reps_completed(self) -> int:
        return len(self.samples)

    @property
    def session_reps(self) -> int:
        return len(self.session_samples)

    def _exercise_values(self, field: str) -> list[float]:
        if field not in EXERCISE_FIELDS:
            raise ValueError(f"Unknown performance field: {field}")
        values = [getattr(s, field) for s in self.samples]
        return [v for v in values if v is not None]

    def _session_values(self, field: str) -> list[float]:
        if field not in SESSION_FIELDS:
            raise ValueError(f"Unknown performance field: {field}")
        if field == "rom_ratio":
            # A rep without a measurable ROM counts as on-target for the session.
            return [NEUTRAL_AVERAGE if s.rom_ratio is None else s.rom_ratio for s in self.session_samples]
        return [getattr(s, field) for s in self.session_samples]

    def rolling_average(self, field: str, window: int = RECENT_WINDOW) -> float:
        return windowed_mean(self._exercise_values(field), window)

    def session_average(self, field: str, window: Optional[int] = SESSION_WINDOW) -> float:
        values = self._session_values(field)
        if window is None:
            window = len(values)
        return windowed_mean(values, window)

    def is_declining(self) -> bool:
        scores = self._exercise_values("form_score")
        if len(scores) < MIN_SAMPLES_DECLINE:
            return False
        first, second = _split_halves(scores)
        if first <= 0:
            return False
        return (first - second) / first > FATIGUE_DECLINE_RATE

    def is_improving(self) -> bool:
        scores = self._exercise_values("form_score")
        if len(scores) < MIN_SAMPLES_IMPROVE:
            return False
        first, second = _split_halves(scores)
        return second > first * IMPROVEMENT_RATE

    def snapshot(self) -> PerformanceSnapshot:
        return PerformanceSnapshot(
            form=self.rolling_average("form_score"),
            rom=self.rolling_average("rom_ratio"),
            rep_time=self.rolling_average("rep_time_s"),
            reps_completed=self.reps_completed,
            target_reps=self.target_reps,
            declining=self.is_declining(),
            improving=self.is_improving(),
        )
