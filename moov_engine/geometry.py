"""Joint angle geometry on 2D pose landmarks."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np

from moov_engine.landmarks import get_landmark

if TYPE_CHECKING:
    from moov_engine.exercises import AngleTracking, JointTriple


def angle_between(p1: Sequence[float], vertex: Sequence[float], p3: Sequence[float]) -> float:
    """Angle p1-vertex-p3 in degrees, folded into [0, 180]."""
    radians = math.atan2(p3[1] - vertex[1], p3[0] - vertex[0]) - math.atan2(
        p1[1] - vertex[1], p1[0] - vertex[0]
    )
    angle = abs(math.degrees(radians))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def resolve_angle(frame: np.ndarray, triple: "JointTriple", min_confidence: float) -> Optional[float]:
    """Angle for a configured joint triple, or None if any landmark is occluded."""
    points = [get_landmark(frame, idx, min_confidence) for idx in triple]
    if any(p is None for p in points):
        return None
    return angle_between(*points)


def resolve_bilateral_angle(
    frame: np.ndarray,
    tracking: "AngleTracking",
    min_confidence: Optional[float] = None,
) -> Optional[float]:
    """Average of the left/right angles when both resolve, else whichever does.

    A single-sided config only ever resolves its primary triple.
    """
    if min_confidence is None:
        min_confidence = tracking.min_confidence
    primary = resolve_angle(frame, tracking.primary, min_confidence)
    secondary = None
    if tracking.bilateral and tracking.secondary is not None:
        secondary = resolve_angle(frame, tracking.secondary, min_confidence)

    if primary is not None and secondary is not None:
        return (primary + secondary) / 2.0
    if primary is not None:
        return primary
    return secondary
