"""Exercise tracking registry.

Each exercise carries one tracking variant. Only angle tracking drives
automatic rep detection; the other variants run form checks only and
leave rep entry to the host.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple, Optional, Union

from moov_engine import config
from moov_engine.form_checks import FORM_CHECKS


class JointTriple(NamedTuple):
    point1: int
    vertex: int
    point3: int


@dataclass(frozen=True)
class RepPhaseSpec:
    start_angle: float
    start_tolerance: float
    peak_angle: float
    peak_tolerance: float
    min_inter_rep_ms: int = config.MIN_INTER_REP_MS

    def __post_init__(self) -> None:
        if self.start_angle == self.peak_angle:
            raise ValueError("start_angle and peak_angle must differ")
        if self.start_tolerance < 0 or self.peak_tolerance < 0:
            raise ValueError("tolerances must be non-negative")
        if self.min_inter_rep_ms < 0:
            raise ValueError("min_inter_rep_ms must be non-negative")

    @property
    def direction(self) -> int:
        """+1 when the angle grows toward the peak, -1 when it shrinks."""
        return 1 if self.peak_angle > self.start_angle else -1

    def near_start(self, angle: float) -> bool:
        return abs(angle - self.start_angle) <= self.start_tolerance

    def near_peak(self, angle: float) -> bool:
        return abs(angle - self.peak_angle) <= self.peak_tolerance


@dataclass(frozen=True)
class FormRule:
    check: str
    message: str = ""

    def __post_init__(self) -> None:
        if self.check not in FORM_CHECKS:
            raise ValueError(f"Unknown form check: {self.check}")


@dataclass(frozen=True)
class AngleTracking:
    primary: JointTriple
    phases: RepPhaseSpec
    secondary: Optional[JointTriple] = None
    bilateral: bool = False
    alternating: bool = False
    min_confidence: float = config.LANDMARK_MIN_CONFIDENCE

    def __post_init__(self) -> None:
        if self.bilateral and self.secondary is None:
            raise ValueError("bilateral tracking needs secondary joints")
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ValueError("min_confidence must be within [0, 1]")


@dataclass(frozen=True)
class PositionTracking:
    track_points: tuple[int, ...]
    measure: str
    reference_points: tuple[int, ...] = ()
    min_confidence: float = 0.5


@dataclass(frozen=True)
class RotationTracking:
    track_points: tuple[int, ...]
    reference_points: tuple[int, ...]
    min_cycle_s: Optional[float] = None
    rotation_threshold: Optional[float] = None
    min_confidence: float = 0.5


@dataclass(frozen=True)
class TimerTracking:
    hold_s: float = 0.0
    cycles: Optional[int] = None
    phases_s: tuple[tuple[str, float], ...] = ()


@dataclass(frozen=True)
class ManualTracking:
    pass


Tracking = Union[AngleTracking, PositionTracking, RotationTracking, TimerTracking, ManualTracking]


@dataclass(frozen=True)
class ExerciseTrackingConfig:
    exercise_id: str
    name: str
    tracking: Tracking
    form_rules: tuple[FormRule, ...] = ()
    cues: dict[str, str] = field(default_factory=dict, hash=False, compare=False)

    @property
    def phases(self) -> Optional[RepPhaseSpec]:
        if isinstance(self.tracking, AngleTracking):
            return self.tracking.phases
        return None

    @property
    def auto_reps(self) -> bool:
        return isinstance(self.tracking, AngleTracking)


def _rules(*pairs: tuple[str, str]) -> tuple[FormRule, ...]:
    return tuple(FormRule(check, message) for check, message in pairs)


LEFT_ARM_RAISE = JointTriple(23, 11, 13)
RIGHT_ARM_RAISE = JointTriple(24, 12, 14)
LEFT_ELBOW = JointTriple(11, 13, 15)
RIGHT_ELBOW = JointTriple(12, 14, 16)
LEFT_HIP_FLEX = JointTriple(11, 23, 25)
RIGHT_HIP_FLEX = JointTriple(12, 24, 26)
LEFT_KNEE = JointTriple(23, 25, 27)
RIGHT_KNEE = JointTriple(24, 26, 28)


EXERCISE_CONFIGS: dict[str, ExerciseTrackingConfig] = {
    "arm_raises": ExerciseTrackingConfig(
        exercise_id="arm_raises",
        name="Arm Raises",
        tracking=AngleTracking(
            primary=LEFT_ARM_RAISE,
            secondary=RIGHT_ARM_RAISE,
            bilateral=True,
            phases=RepPhaseSpec(start_angle=160, start_tolerance=20, peak_angle=60, peak_tolerance=25),
        ),
        form_rules=_rules(
            ("shoulder_level", "Keep your shoulders level"),
            ("elbow_straight", "Keep your arms straight"),
        ),
        cues={"start": "Raise your arms to the side", "peak": "Hold at shoulder height", "return": "Lower slowly"},
    ),
    "overhead_arm_raises": ExerciseTrackingConfig(
        exercise_id="overhead_arm_raises",
        name="Overhead Arm Raises",
        tracking=AngleTracking(
            primary=LEFT_ARM_RAISE,
            secondary=RIGHT_ARM_RAISE,
            bilateral=True,
            phases=RepPhaseSpec(start_angle=160, start_tolerance=20, peak_angle=20, peak_tolerance=15),
        ),
        form_rules=_rules(
            ("shoulder_level", "Keep shoulders level"),
            ("elbow_straight", "Extend arms fully"),
            ("back_straight", "Keep your back straight"),
        ),
        cues={"start": "Raise your arms overhead", "peak": "Reach for the ceiling", "return": "Lower with control"},
    ),
    "bicep_curls_seated": ExerciseTrackingConfig(
        exercise_id="bicep_curls_seated",
        name="Seated Bicep Curls",
        tracking=AngleTracking(
            primary=LEFT_ELBOW,
            secondary=RIGHT_ELBOW,
            bilateral=True,
            phases=RepPhaseSpec(start_angle=160, start_tolerance=15, peak_angle=45, peak_tolerance=20),
            min_confidence=0.6,
        ),
        form_rules=_rules(
            ("elbow_bent", "Keep elbows close to your body"),
            ("wrist_neutral", "Keep wrists straight"),
        ),
        cues={"start": "Curl your arms up", "peak": "Squeeze at the top", "return": "Lower slowly"},
    ),
    "arm_circles": ExerciseTrackingConfig(
        exercise_id="arm_circles",
        name="Arm Circles",
        tracking=RotationTracking(track_points=(15, 16), reference_points=(11, 12)),
        form_rules=_rules(
            ("elbow_straight", "Keep arms extended"),
            ("shoulder_level", "Keep shoulders relaxed"),
        ),
        cues={"start": "Make circles with your arms", "ongoing": "Keep the circles smooth and controlled"},
    ),
    "boxing_punches": ExerciseTrackingConfig(
        exercise_id="boxing_punches",
        name="Boxing Punches",
        tracking=AngleTracking(
            primary=LEFT_ELBOW,
            secondary=RIGHT_ELBOW,
            bilateral=True,
            alternating=True,
            phases=RepPhaseSpec(start_angle=60, start_tolerance=20, peak_angle=160, peak_tolerance=15),
        ),
        form_rules=_rules(("shoulder_level", "Keep shoulders square")),
        cues={"start": "Punch forward", "peak": "Extend fully", "return": "Pull back to guard"},
    ),
    "shoulder_rolls": ExerciseTrackingConfig(
        exercise_id="shoulder_rolls",
        name="Shoulder Rolls",
        tracking=RotationTracking(track_points=(11, 12), reference_points=(23, 24), min_cycle_s=1.5),
        form_rules=_rules(("head_neutral", "Keep your head still")),
        cues={"start": "Roll shoulders forward", "ongoing": "Make big, slow circles"},
    ),
    "shoulder_blade_squeezes": ExerciseTrackingConfig(
        exercise_id="shoulder_blade_squeezes",
        name="Shoulder Blade Squeezes",
        tracking=PositionTracking(track_points=(11, 12), measure="distance", min_confidence=0.6),
        form_rules=_rules(
            ("back_straight", "Sit up tall"),
            ("head_neutral", "Keep chin tucked"),
        ),
        cues={"start": "Squeeze shoulder blades together", "peak": "Hold the squeeze", "return": "Release slowly"},
    ),
    "leg_lifts_seated": ExerciseTrackingConfig(
        exercise_id="leg_lifts_seated",
        name="Seated Leg Lifts",
        tracking=AngleTracking(
            primary=LEFT_HIP_FLEX,
            secondary=RIGHT_HIP_FLEX,
            bilateral=True,
            alternating=True,
            phases=RepPhaseSpec(start_angle=90, start_tolerance=15, peak_angle=120, peak_tolerance=20),
        ),
        form_rules=_rules(
            ("back_straight", "Keep your back against the chair"),
            ("knee_aligned", "Keep knee pointing forward"),
        ),
        cues={"start": "Lift your leg", "peak": "Hold at the top", "return": "Lower with control"},
    ),
    "leg_extensions": ExerciseTrackingConfig(
        exercise_id="leg_extensions",
        name="Leg Extensions",
        tracking=AngleTracking(
            primary=LEFT_KNEE,
            secondary=RIGHT_KNEE,
            bilateral=True,
            alternating=True,
            phases=RepPhaseSpec(start_angle=90, start_tolerance=15, peak_angle=170, peak_tolerance=15),
        ),
        form_rules=_rules(("back_straight", "Sit up straight")),
        cues={"start": "Straighten your leg", "peak": "Fully extend", "return": "Bend back slowly"},
    ),
    "seated_marching": ExerciseTrackingConfig(
        exercise_id="seated_marching",
        name="Seated Marching",
        tracking=AngleTracking(
            primary=LEFT_HIP_FLEX,
            secondary=RIGHT_HIP_FLEX,
            bilateral=True,
            alternating=True,
            phases=RepPhaseSpec(start_angle=90, start_tolerance=10, peak_angle=70, peak_tolerance=15),
        ),
        form_rules=_rules(("back_straight", "Keep your back straight")),
        cues={"start": "Lift your knee", "peak": "High knee!", "return": "Switch legs"},
    ),
    "ankle_circles": ExerciseTrackingConfig(
        exercise_id="ankle_circles",
        name="Ankle Circles",
        tracking=RotationTracking(
            track_points=(27, 28), reference_points=(25, 26), min_cycle_s=1.0, min_confidence=0.4
        ),
        cues={"start": "Circle your ankles", "ongoing": "Nice smooth circles"},
    ),
    "seated_twists": ExerciseTrackingConfig(
        exercise_id="seated_twists",
        name="Seated Twists",
        tracking=RotationTracking(track_points=(11, 12), reference_points=(23, 24), rotation_threshold=20),
        form_rules=_rules(("back_straight", "Sit up tall while twisting")),
        cues={"start": "Rotate to the left", "peak": "Feel the stretch", "return": "Rotate to the right"},
    ),
    "back_extensions_seated": ExerciseTrackingConfig(
        exercise_id="back_extensions_seated",
        name="Seated Back Extensions",
        tracking=AngleTracking(
            primary=JointTriple(0, 11, 23),
            phases=RepPhaseSpec(start_angle=160, start_tolerance=15, peak_angle=140, peak_tolerance=15),
        ),
        form_rules=_rules(("head_neutral", "Keep your head aligned")),
        cues={"start": "Gently arch your back", "peak": "Open your chest", "return": "Return to neutral"},
    ),
    "squats": ExerciseTrackingConfig(
        exercise_id="squats",
        name="Squats",
        tracking=AngleTracking(
            primary=LEFT_KNEE,
            secondary=RIGHT_KNEE,
            bilateral=True,
            phases=RepPhaseSpec(start_angle=170, start_tolerance=10, peak_angle=90, peak_tolerance=20),
            min_confidence=0.6,
        ),
        form_rules=_rules(
            ("knee_aligned", "Keep knees over toes"),
            ("back_straight", "Keep your back straight"),
        ),
        cues={
            "start": "Lower down like sitting",
            "peak": "Go as low as comfortable",
            "return": "Push through heels to stand",
        },
    ),
    "lunges": ExerciseTrackingConfig(
        exercise_id="lunges",
        name="Lunges",
        tracking=AngleTracking(
            primary=LEFT_KNEE,
            alternating=True,
            phases=RepPhaseSpec(start_angle=170, start_tolerance=10, peak_angle=90, peak_tolerance=20),
        ),
        form_rules=_rules(
            ("knee_aligned", "Front knee over ankle"),
            ("back_straight", "Keep torso upright"),
        ),
        cues={"start": "Step forward and lower", "peak": "Both knees at 90 degrees", "return": "Push back to start"},
    ),
    "calf_raises": ExerciseTrackingConfig(
        exercise_id="calf_raises",
        name="Calf Raises",
        tracking=PositionTracking(
            track_points=(27, 28), reference_points=(29, 30), measure="height", min_confidence=0.4
        ),
        form_rules=_rules(("back_straight", "Stand tall")),
        cues={"start": "Rise up on your toes", "peak": "Squeeze at the top", "return": "Lower slowly"},
    ),
    "marching_in_place": ExerciseTrackingConfig(
        exercise_id="marching_in_place",
        name="Marching in Place",
        tracking=AngleTracking(
            primary=LEFT_HIP_FLEX,
            secondary=RIGHT_HIP_FLEX,
            bilateral=True,
            alternating=True,
            phases=RepPhaseSpec(start_angle=160, start_tolerance=15, peak_angle=90, peak_tolerance=20),
        ),
        form_rules=_rules(("back_straight", "Stand tall while marching")),
        cues={"start": "Lift your knee high", "peak": "Knee to hip height", "return": "Switch legs"},
    ),
    "supine_arm_raises": ExerciseTrackingConfig(
        exercise_id="supine_arm_raises",
        name="Lying Arm Raises",
        tracking=AngleTracking(
            primary=JointTriple(23, 11, 15),
            secondary=JointTriple(24, 12, 16),
            bilateral=True,
            phases=RepPhaseSpec(start_angle=90, start_tolerance=20, peak_angle=10, peak_tolerance=15),
            min_confidence=0.4,
        ),
        form_rules=_rules(("elbow_straight", "Keep arms straight")),
        cues={"start": "Raise arms overhead", "peak": "Reach toward the ceiling", "return": "Lower to sides"},
    ),
    "supine_leg_raises": ExerciseTrackingConfig(
        exercise_id="supine_leg_raises",
        name="Lying Leg Raises",
        tracking=AngleTracking(
            primary=JointTriple(11, 23, 27),
            secondary=JointTriple(12, 24, 28),
            bilateral=True,
            alternating=True,
            phases=RepPhaseSpec(start_angle=180, start_tolerance=10, peak_angle=90, peak_tolerance=20),
            min_confidence=0.4,
        ),
        form_rules=_rules(("back_straight", "Keep lower back pressed down")),
        cues={"start": "Lift your leg", "peak": "Keep leg straight", "return": "Lower with control"},
    ),
    "bridge": ExerciseTrackingConfig(
        exercise_id="bridge",
        name="Glute Bridge",
        tracking=AngleTracking(
            primary=LEFT_HIP_FLEX,
            phases=RepPhaseSpec(start_angle=90, start_tolerance=15, peak_angle=160, peak_tolerance=15),
        ),
        form_rules=_rules(("symmetry", "Keep hips level")),
        cues={"start": "Lift your hips", "peak": "Squeeze glutes at top", "return": "Lower slowly"},
    ),
    "deep_breathing": ExerciseTrackingConfig(
        exercise_id="deep_breathing",
        name="Deep Breathing",
        tracking=TimerTracking(
            hold_s=2, cycles=5, phases_s=(("inhale", 4.0), ("hold", 2.0), ("exhale", 4.0))
        ),
        cues={"inhale": "Breathe in deeply", "hold": "Hold your breath", "exhale": "Breathe out slowly"},
    ),
    "neck_stretches": ExerciseTrackingConfig(
        exercise_id="neck_stretches",
        name="Neck Stretches",
        tracking=TimerTracking(hold_s=15),
        form_rules=_rules(("shoulder_level", "Keep shoulders relaxed")),
        cues={"start": "Tilt your head slowly", "hold": "Feel the gentle stretch", "return": "Return to center"},
    ),
    "hand_squeezes": ExerciseTrackingConfig(
        exercise_id="hand_squeezes",
        name="Hand Squeezes",
        tracking=TimerTracking(cycles=15, phases_s=(("squeeze", 3.0), ("release", 2.0))),
        cues={"squeeze": "Squeeze tight", "release": "Release and relax"},
    ),
}

EXERCISE_ALIASES = {
    "bicep_curls": "bicep_curls_seated",
    "squat": "squats",
    "lunge": "lunges",
    "glute_bridge": "bridge",
    "marching": "marching_in_place",
}


def canonical_exercise_key(name: str) -> str:
    n = name.strip().lower().replace("-", "_").replace(" ", "_")
    if n in EXERCISE_CONFIGS:
        return n
    if n in EXERCISE_ALIASES:
        return EXERCISE_ALIASES[n]
    raise KeyError(f"Unknown exercise: {name}")


def get_exercise_config(name: str) -> ExerciseTrackingConfig:
    return EXERCISE_CONFIGS[canonical_exercise_key(name)]


def available_exercises() -> list[str]:
    return sorted(EXERCISE_CONFIGS.keys())


def counts_reps_automatically(name: str) -> bool:
    """True for exercises whose reps are counted from joint angles."""
    try:
        cfg = get_exercise_config(name)
    except KeyError:
        return False
    return cfg.auto_reps
