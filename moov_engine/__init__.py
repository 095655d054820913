"""Real-time exercise decision engine: form checks, rep phases and adaptive difficulty."""

from moov_engine.adaptive import AdaptiveAdjustmentEngine, AdjustmentRecommendation, CueKind, Trend
from moov_engine.exercises import (
    EXERCISE_CONFIGS,
    AngleTracking,
    ExerciseTrackingConfig,
    FormRule,
    JointTriple,
    ManualTracking,
    PositionTracking,
    RepPhaseSpec,
    RotationTracking,
    TimerTracking,
    available_exercises,
    get_exercise_config,
)
from moov_engine.form_checks import FormQuality, FormResult, run_checks
from moov_engine.geometry import angle_between, resolve_angle, resolve_bilateral_angle
from moov_engine.landmarks import landmarks_list_to_frame
from moov_engine.performance import PerformanceAggregator, PerformanceSample
from moov_engine.rep_phase import Phase, RepPhaseTracker
from moov_engine.session import FrameOutcome, RepEvent, SessionState, SessionSummary

__version__ = "0.1.0"
