"""Pose landmark indices and frame conversion helpers."""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

NUM_LANDMARKS = 33

# Frame columns: x, y, confidence
X, Y, CONFIDENCE = 0, 1, 2

LANDMARK_INDEX = {
    "nose": 0,
    "left_shoulder": 11,
    "right_shoulder": 12,
    "left_elbow": 13,
    "right_elbow": 14,
    "left_wrist": 15,
    "right_wrist": 16,
    "left_hip": 23,
    "right_hip": 24,
    "left_knee": 25,
    "right_knee": 26,
    "left_ankle": 27,
    "right_ankle": 28,
    "left_heel": 29,
    "right_heel": 30,
    "left_foot_index": 31,
    "right_foot_index": 32,
}

# Left/right landmark pairs used by the symmetry check
SYMMETRY_PAIRS = {
    "shoulders": (LANDMARK_INDEX["left_shoulder"], LANDMARK_INDEX["right_shoulder"]),
    "hips": (LANDMARK_INDEX["left_hip"], LANDMARK_INDEX["right_hip"]),
    "elbows": (LANDMARK_INDEX["left_elbow"], LANDMARK_INDEX["right_elbow"]),
    "knees": (LANDMARK_INDEX["left_knee"], LANDMARK_INDEX["right_knee"]),
    "wrists": (LANDMARK_INDEX["left_wrist"], LANDMARK_INDEX["right_wrist"]),
    "ankles": (LANDMARK_INDEX["left_ankle"], LANDMARK_INDEX["right_ankle"]),
}


def empty_frame() -> np.ndarray:
    """A frame with every landmark missing (confidence 0)."""
    return np.zeros((NUM_LANDMARKS, 3), dtype=np.float64)


def _field(lm: Any, name: str, default: float) -> float:
    value = lm.get(name) if isinstance(lm, dict) else getattr(lm, name, None)
    return float(default if value is None else value)


def _has_field(lm: Any, name: str) -> bool:
    return name in lm if isinstance(lm, dict) else hasattr(lm, name)


def landmarks_list_to_frame(landmarks: list[Any]) -> np.ndarray:
    """Convert landmark dicts or MediaPipe-like objects to a (33, 3) frame.

    Confidence is read from ``confidence`` and falls back to ``visibility``;
    a landmark without either is visible, one with a null value is missing.
    Short lists are padded with missing landmarks.
    """
    out = empty_frame()
    count = min(NUM_LANDMARKS, len(landmarks))
    for i in range(count):
        lm = landmarks[i]
        if lm is None:
            continue
        out[i, X] = _field(lm, "x", 0.0)
        out[i, Y] = _field(lm, "y", 0.0)
        for name in ("confidence", "visibility"):
            if _has_field(lm, name):
                out[i, CONFIDENCE] = _field(lm, name, 0.0)
                break
        else:
            out[i, CONFIDENCE] = 1.0
    return out


def get_landmark(frame: np.ndarray, index: int, min_confidence: float) -> Optional[np.ndarray]:
    """Return the (x, y) of a landmark, or None if absent or below min_confidence."""
    if frame is None or index < 0 or index >= len(frame):
        return None
    lm = frame[index]
    if float(lm[CONFIDENCE]) < min_confidence:
        return None
    return lm[:2]
