"""Repetition phase state machine with hysteresis and debounce."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from moov_engine.exercises import RepPhaseSpec

logger = logging.getLogger(__name__)


class Phase(str, enum.Enum):
    NEUTRAL = "neutral"
    READY = "ready"
    CONTRACTING = "contracting"
    PEAK = "peak"
    RETURNING = "returning"


@dataclass
class RepPhaseState:
    phase: Phase = Phase.NEUTRAL
    last_angle: Optional[float] = None
    peak_angle_seen: Optional[float] = None
    phase_entered_at: Optional[float] = None
    cycle_started_at: Optional[float] = None
    last_rep_completed_at: Optional[float] = None
    rep_count: int = 0


@dataclass(frozen=True)
class RepCompletion:
    rep_number: int
    rep_time_s: float
    angle_achieved: Optional[float]
    completed_at: float


class RepPhaseTracker:
    """Counts reps from one joint angle per frame.

    Neutral -> Ready -> Contracting -> Peak -> Returning -> Ready. A frame
    without an angle (occlusion) leaves the state untouched.
    """

    def __init__(self, spec: RepPhaseSpec):
        self.spec = spec
        self.state = RepPhaseState()

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def rep_count(self) -> int:
        return self.state.rep_count

    def reset(self) -> None:
        self.state = RepPhaseState()

    def _enter(self, phase: Phase, timestamp_sec: float) -> None:
        logger.debug("Phase %s -> %s", self.state.phase.value, phase.value)
        self.state.phase = phase
        self.state.phase_entered_at = timestamp_sec

    def _start_cycle(self, timestamp_sec: float) -> None:
        self._enter(Phase.READY, timestamp_sec)
        self.state.cycle_started_at = timestamp_sec
        self.state.peak_angle_seen = None

    def _moving_toward_peak(self, angle: float) -> bool:
        last = self.state.last_angle
        if last is None or angle == last:
            return False
        return (1 if angle > last else -1) == self.spec.direction

    def _moving_away_from_peak(self, angle: float) -> bool:
        last = self.state.last_angle
        if last is None or angle == last:
            return False
        return (1 if angle > last else -1) != self.spec.direction

    def _track_peak(self, angle: float) -> None:
        seen = self.state.peak_angle_seen
        if seen is None or (angle - seen) * self.spec.direction > 0:
            self.state.peak_angle_seen = angle

    def _debounced(self, timestamp_sec: float) -> bool:
        last = self.state.last_rep_completed_at
        if last is None:
            return True
        return (timestamp_sec - last) * 1000.0 > self.spec.min_inter_rep_ms

    def _complete_rep(self, timestamp_sec: float) -> RepCompletion:
        started = self.state.cycle_started_at
        rep_time = timestamp_sec - started if started is not None else 0.0
        self.state.rep_count += 1
        self.state.last_rep_completed_at = timestamp_sec
        completion = RepCompletion(
            rep_number=self.state.rep_count,
            rep_time_s=rep_time,
            angle_achieved=self.state.peak_angle_seen,
            completed_at=timestamp_sec,
        )
        logger.info(
            "Rep %d completed in %.2fs (peak angle %s)",
            completion.rep_number,
            completion.rep_time_s,
            "n/a" if completion.angle_achieved is None else f"{completion.angle_achieved:.1f}",
        )
        self._start_cycle(timestamp_sec)
        return completion

    def update(self, angle: Optional[float], timestamp_sec: float) -> Optional[RepCompletion]:
        """Advance the machine by one frame; returns the completion if a rep just ended."""
        if angle is None:
            return None

        spec = self.spec
        phase = self.state.phase
        completion = None

        if phase is Phase.NEUTRAL:
            if spec.near_start(angle):
                self._start_cycle(timestamp_sec)

        elif phase is Phase.READY:
            if not spec.near_start(angle) and self._moving_toward_peak(angle):
                self._enter(Phase.CONTRACTING, timestamp_sec)

        elif phase is Phase.CONTRACTING:
            if spec.near_peak(angle):
                self._enter(Phase.PEAK, timestamp_sec)
                self.state.peak_angle_seen = angle
            elif spec.near_start(angle):
                logger.debug("Cycle aborted before reaching peak (angle %.1f)", angle)
                self._start_cycle(timestamp_sec)

        elif phase is Phase.PEAK:
            if self._moving_away_from_peak(angle):
                self._enter(Phase.RETURNING, timestamp_sec)
            else:
                self._track_peak(angle)

        elif phase is Phase.RETURNING:
            if spec.near_start(angle):
                if self._debounced(timestamp_sec):
                    completion = self._complete_rep(timestamp_sec)
                else:
                    logger.debug("Return inside debounce window, rep not counted")
                    self._start_cycle(timestamp_sec)
            elif spec.near_peak(angle) and self._moving_toward_peak(angle):
                self._enter(Phase.PEAK, timestamp_sec)
                self._track_peak(angle)

        self.state.last_angle = angle
        return completion
