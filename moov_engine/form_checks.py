"""Form validation checks on a single pose frame.

Every check is a pure function of the frame. A check whose landmarks are
not visible returns a neutral pass (score 1) so occlusion never reads as
bad form. Scores fall off linearly and reach 0 at three tolerance widths.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

import numpy as np

from moov_engine.geometry import angle_between
from moov_engine.landmarks import LANDMARK_INDEX, SYMMETRY_PAIRS, get_landmark

MIN_VISIBILITY = 0.5

SHOULDER_LEVEL_TOLERANCE = 0.05
ELBOW_STRAIGHT_TOLERANCE = 20.0
ELBOW_BENT_MIN = 30.0
ELBOW_BENT_MAX = 120.0
ELBOW_BENT_OPTIMAL = 90.0
BACK_STRAIGHT_TOLERANCE = 0.1
BACK_STRAIGHT_WARNING = 0.15
BACK_STRAIGHT_FALLOFF = 0.3
KNEE_ALIGNMENT_TOLERANCE = 0.08
HEAD_NEUTRAL_TOLERANCE = 0.1
SYMMETRY_TOLERANCE = 0.15

# Deviation at which the score reaches zero, in tolerance widths
SCORE_FALLOFF = 3.0

POOR_FORM_SCORE = 0.5


class Severity(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"


class FormQuality(str, enum.Enum):
    GOOD = "good"
    NEEDS_CORRECTION = "needs_correction"
    POOR = "poor"


@dataclass(frozen=True)
class CheckResult:
    passed: bool
    severity: Severity = Severity.INFO
    score: float = 1.0
    message: str = ""


@dataclass(frozen=True)
class FormResult:
    passed: bool
    message: str
    severity: Severity
    score: float
    check: Optional[str] = None
    details: dict[str, CheckResult] = field(default_factory=dict)


NEUTRAL_PASS = CheckResult(passed=True)

SIDES = {
    "left": {
        "shoulder": LANDMARK_INDEX["left_shoulder"],
        "elbow": LANDMARK_INDEX["left_elbow"],
        "wrist": LANDMARK_INDEX["left_wrist"],
        "knee": LANDMARK_INDEX["left_knee"],
        "ankle": LANDMARK_INDEX["left_ankle"],
    },
    "right": {
        "shoulder": LANDMARK_INDEX["right_shoulder"],
        "elbow": LANDMARK_INDEX["right_elbow"],
        "wrist": LANDMARK_INDEX["right_wrist"],
        "knee": LANDMARK_INDEX["right_knee"],
        "ankle": LANDMARK_INDEX["right_ankle"],
    },
}


def linear_score(deviation: float, tolerance: float) -> float:
    return max(0.0, 1.0 - deviation / (tolerance * SCORE_FALLOFF))


def _lm(frame: np.ndarray, name: str):
    return get_landmark(frame, LANDMARK_INDEX[name], MIN_VISIBILITY)


def _side_names(side: str) -> list[str]:
    if side == "both":
        return ["left", "right"]
    if side in SIDES:
        return [side]
    raise ValueError(f"Unknown side: {side}")


def _graded_severity(deviation: float, tolerance: float) -> Severity:
    return Severity.WARNING if deviation > tolerance * 2 else Severity.INFO


def check_shoulder_level(frame: np.ndarray) -> CheckResult:
    left = _lm(frame, "left_shoulder")
    right = _lm(frame, "right_shoulder")
    if left is None or right is None:
        return NEUTRAL_PASS

    y_diff = abs(float(left[1]) - float(right[1]))
    score = linear_score(y_diff, SHOULDER_LEVEL_TOLERANCE)
    if y_diff <= SHOULDER_LEVEL_TOLERANCE:
        return CheckResult(passed=True, score=score)

    # Image y grows downward: the higher shoulder has the smaller y.
    higher = "left" if left[1] < right[1] else "right"
    return CheckResult(
        passed=False,
        severity=_graded_severity(y_diff, SHOULDER_LEVEL_TOLERANCE),
        score=score,
        message=f"Lower your {higher} shoulder slightly",
    )


def _elbow_angle(frame: np.ndarray, side: str) -> Optional[float]:
    joints = SIDES[side]
    points = [get_landmark(frame, joints[j], MIN_VISIBILITY) for j in ("shoulder", "elbow", "wrist")]
    if any(p is None for p in points):
        return None
    return angle_between(*points)


def check_elbow_straight(frame: np.ndarray, side: str = "both") -> CheckResult:
    per_side = []
    for name in _side_names(side):
        angle = _elbow_angle(frame, name)
        if angle is None:
            continue
        deviation = abs(180.0 - angle)
        per_side.append((name, deviation, linear_score(deviation, ELBOW_STRAIGHT_TOLERANCE)))

    if not per_side:
        return NEUTRAL_PASS

    score = float(np.mean([s for _, _, s in per_side]))
    bent = [(name, dev) for name, dev, _ in per_side if dev > ELBOW_STRAIGHT_TOLERANCE]
    if not bent:
        return CheckResult(passed=True, score=score)

    name, deviation = bent[0]
    return CheckResult(
        passed=False,
        severity=_graded_severity(deviation, ELBOW_STRAIGHT_TOLERANCE),
        score=score,
        message=f"Straighten your {name} arm more",
    )


def check_elbow_bent(frame: np.ndarray, side: str = "both") -> CheckResult:
    per_side = []
    for name in _side_names(side):
        angle = _elbow_angle(frame, name)
        if angle is None:
            continue
        deviation = abs(180.0 - angle)
        score = max(0.0, 1.0 - abs(deviation - ELBOW_BENT_OPTIMAL) / ELBOW_BENT_OPTIMAL)
        per_side.append((name, deviation, score))

    if not per_side:
        return NEUTRAL_PASS

    score = float(np.mean([s for _, _, s in per_side]))
    off = [
        (name, dev)
        for name, dev, _ in per_side
        if not ELBOW_BENT_MIN <= dev <= ELBOW_BENT_MAX
    ]
    if not off:
        return CheckResult(passed=True, score=score)

    name, deviation = off[0]
    if deviation < ELBOW_BENT_MIN:
        message = f"Bend your {name} elbow more"
    else:
        message = f"Keep your {name} elbow closer to your body"
    return CheckResult(passed=False, score=score, message=message)


def check_back_straight(frame: np.ndarray) -> CheckResult:
    """Approximate spine alignment by the shoulder and hip midpoints."""
    points = [_lm(frame, n) for n in ("left_shoulder", "right_shoulder", "left_hip", "right_hip")]
    if any(p is None for p in points):
        return NEUTRAL_PASS
    lsh, rsh, lhip, rhip = points

    shoulder_mid_x = (float(lsh[0]) + float(rsh[0])) / 2.0
    hip_mid_x = (float(lhip[0]) + float(rhip[0])) / 2.0
    x_diff = abs(shoulder_mid_x - hip_mid_x)
    score = max(0.0, 1.0 - x_diff / BACK_STRAIGHT_FALLOFF)
    if x_diff <= BACK_STRAIGHT_TOLERANCE:
        return CheckResult(passed=True, score=score)

    direction = "forward" if shoulder_mid_x < hip_mid_x else "back"
    return CheckResult(
        passed=False,
        severity=Severity.WARNING if x_diff > BACK_STRAIGHT_WARNING else Severity.INFO,
        score=score,
        message=f"Sit up straighter - you're leaning {direction}",
    )


def check_knee_aligned(frame: np.ndarray, side: str = "both") -> CheckResult:
    per_side = []
    for name in _side_names(side):
        knee = get_landmark(frame, SIDES[name]["knee"], MIN_VISIBILITY)
        ankle = get_landmark(frame, SIDES[name]["ankle"], MIN_VISIBILITY)
        if knee is None or ankle is None:
            continue
        x_diff = abs(float(knee[0]) - float(ankle[0]))
        per_side.append((name, x_diff, float(knee[0]) < float(ankle[0])))

    if not per_side:
        return NEUTRAL_PASS

    score = float(np.mean([linear_score(d, KNEE_ALIGNMENT_TOLERANCE) for _, d, _ in per_side]))
    off = [(name, past) for name, d, past in per_side if d > KNEE_ALIGNMENT_TOLERANCE]
    if not off:
        return CheckResult(passed=True, score=score)

    name, knee_past_ankle = off[0]
    if knee_past_ankle:
        return CheckResult(
            passed=False,
            severity=Severity.WARNING,
            score=score,
            message=f"Keep your {name} knee behind your toes",
        )
    return CheckResult(passed=False, score=score, message=f"Align your {name} knee over your ankle")


def check_wrist_neutral(frame: np.ndarray, side: str = "both") -> CheckResult:
    # Pose landmarks cannot resolve wrist flexion; real tracking needs hand landmarks.
    return NEUTRAL_PASS


def check_head_neutral(frame: np.ndarray) -> CheckResult:
    nose = _lm(frame, "nose")
    left = _lm(frame, "left_shoulder")
    right = _lm(frame, "right_shoulder")
    if nose is None or left is None or right is None:
        return NEUTRAL_PASS

    shoulder_mid_x = (float(left[0]) + float(right[0])) / 2.0
    x_diff = abs(float(nose[0]) - shoulder_mid_x)
    score = linear_score(x_diff, HEAD_NEUTRAL_TOLERANCE)
    if x_diff <= HEAD_NEUTRAL_TOLERANCE:
        return CheckResult(passed=True, score=score)

    direction = "left" if nose[0] < shoulder_mid_x else "right"
    return CheckResult(
        passed=False,
        severity=_graded_severity(x_diff, HEAD_NEUTRAL_TOLERANCE),
        score=score,
        message=f"Center your head - it's tilted {direction}",
    )


def check_symmetry(frame: np.ndarray, body_part: str = "shoulders") -> CheckResult:
    pair = SYMMETRY_PAIRS.get(body_part)
    if pair is None:
        return NEUTRAL_PASS
    left = get_landmark(frame, pair[0], MIN_VISIBILITY)
    right = get_landmark(frame, pair[1], MIN_VISIBILITY)
    if left is None or right is None:
        return NEUTRAL_PASS

    y_diff = abs(float(left[1]) - float(right[1]))
    score = linear_score(y_diff, SYMMETRY_TOLERANCE)
    if y_diff <= SYMMETRY_TOLERANCE:
        return CheckResult(passed=True, score=score)
    return CheckResult(
        passed=False,
        severity=_graded_severity(y_diff, SYMMETRY_TOLERANCE),
        score=score,
        message=f"Keep your {body_part} level",
    )


FORM_CHECKS: dict[str, Callable[[np.ndarray], CheckResult]] = {
    "shoulder_level": check_shoulder_level,
    "elbow_straight": check_elbow_straight,
    "elbow_bent": check_elbow_bent,
    "back_straight": check_back_straight,
    "knee_aligned": check_knee_aligned,
    "wrist_neutral": check_wrist_neutral,
    "head_neutral": check_head_neutral,
    "symmetry": check_symmetry,
}

OVERALL_CHECKS = ("shoulder_level", "back_straight", "head_neutral")


def _is_worse(candidate: CheckResult, current: CheckResult) -> bool:
    if candidate.passed:
        return False
    if current.passed:
        return True
    return candidate.score < current.score


def run_checks(frame: np.ndarray, rules: Iterable) -> FormResult:
    """Run the configured rules and report the worst one with the mean score.

    ``rules`` holds FormRule objects or bare check names. The rule's own
    message is used when the check produced no feedback of its own.
    """
    worst_name: Optional[str] = None
    worst = NEUTRAL_PASS
    worst_message = ""
    evaluated: list[tuple[str, CheckResult]] = []

    for rule in rules:
        name = getattr(rule, "check", rule)
        check = FORM_CHECKS.get(name)
        if check is None:
            continue
        result = check(frame)
        evaluated.append((name, result))
        if _is_worse(result, worst):
            worst_name = name
            worst = result
            worst_message = result.message or getattr(rule, "message", "")

    # Repeated rules each count toward the mean; details keeps one per name.
    score = float(np.mean([r.score for _, r in evaluated])) if evaluated else 1.0
    details = dict(evaluated)
    return FormResult(
        passed=all(r.passed for _, r in evaluated),
        message=worst_message,
        severity=worst.severity,
        score=score,
        check=worst_name,
        details=details,
    )


def classify_form(result: FormResult) -> FormQuality:
    if result.passed:
        return FormQuality.GOOD
    if result.severity is Severity.WARNING or result.score < POOR_FORM_SCORE:
        return FormQuality.POOR
    return FormQuality.NEEDS_CORRECTION


def overall_form_score(frame: np.ndarray) -> float:
    return run_checks(frame, OVERALL_CHECKS).score
