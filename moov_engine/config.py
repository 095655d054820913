"""Engine settings read once from the environment.

A ``.env`` beside the package is loaded first; variables already set in
the environment win over it.
"""

from __future__ import annotations

import os
import shlex
from pathlib import Path
from typing import Callable, Optional, TypeVar

PACKAGE_DIR = Path(__file__).resolve().parent
ENV_PATH = PACKAGE_DIR.parent / ".env"

TRUE_VALUES = frozenset({"1", "true", "yes", "y", "on"})

T = TypeVar("T")


def _parse_env_value(value: str) -> str:
    lexer = shlex.shlex(value, posix=True)
    lexer.whitespace_split = True
    lexer.commenters = "#"
    return " ".join(lexer).strip()


def _load_env_file(path: Path) -> None:
    if not path.is_file():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key or key.startswith("#"):
            continue
        os.environ.setdefault(key, _parse_env_value(value.strip()))


def _typed_env(name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    return default if raw is None else raw.strip().lower() in TRUE_VALUES


def _float_env(name: str, default: float) -> float:
    return _typed_env(name, default, float)


def _int_env(name: str, default: int) -> int:
    return _typed_env(name, default, int)


def _optional_int_env(name: str) -> Optional[int]:
    return _typed_env(name, None, int)


_load_env_file(ENV_PATH)

LOG_LEVEL = os.getenv("MOOV_LOG_LEVEL", "INFO").strip().upper()
LOG_FILE = os.getenv("MOOV_LOG_FILE", "").strip()
LOG_EVERY_N_FRAMES = max(_int_env("LOG_EVERY_N_FRAMES", 30), 1)

MIN_INTER_REP_MS = max(_int_env("MIN_INTER_REP_MS", 800), 0)
DEFAULT_TARGET_REPS = max(_int_env("DEFAULT_TARGET_REPS", 10), 1)
DEFAULT_EXERCISE = os.getenv("DEFAULT_EXERCISE", "arm_raises")
CUE_SEED = _optional_int_env("CUE_SEED")
LANDMARK_MIN_CONFIDENCE = max(0.0, min(1.0, _float_env("LANDMARK_MIN_CONFIDENCE", 0.5)))

SERVER_HOST = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT = _int_env("SERVER_PORT", 8000)
SERVER_RELOAD = _bool_env("SERVER_RELOAD", False)
