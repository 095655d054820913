#!/usr/bin/env python3
"""Replay a recorded landmark log through a session and print rep events.

Log format: one JSON object per line with ``timestamp`` (seconds) and
``landmarks`` (list of {x, y, visibility|confidence}, or null when no
person was detected).
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional, TextIO

from moov_engine import config
from moov_engine.exercises import available_exercises, get_exercise_config
from moov_engine.landmarks import landmarks_list_to_frame
from moov_engine.logging_config import configure_logging
from moov_engine.session import SessionState, to_payload


def read_frame_log(path: str | Path) -> Iterator[dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        for line_no, raw_line in enumerate(f, start=1):
            line = raw_line.strip()
            if not line:
                continue
            record = json.loads(line)
            if not isinstance(record, dict) or "timestamp" not in record:
                raise ValueError(f"Line {line_no}: expected an object with a timestamp")
            yield record


def replay_frames(
    records: Iterable[dict[str, Any]],
    exercise: str,
    target_reps: int = config.DEFAULT_TARGET_REPS,
    seed: Optional[int] = None,
) -> tuple[list[dict[str, Any]], dict[str, Any]]:
    """Drive a fresh session with the records; returns (rep events, summary)."""
    session = SessionState(cue_seed=seed)
    events: list[dict[str, Any]] = []
    started = False

    for record in records:
        timestamp = float(record["timestamp"])
        if not started:
            session.start_exercise(get_exercise_config(exercise), target_reps, timestamp)
            started = True
        landmarks = record.get("landmarks")
        frame = landmarks_list_to_frame(landmarks) if landmarks else None
        outcome = session.process_frame(frame, timestamp)
        if outcome.rep_event is not None:
            events.append({"timestamp": timestamp, **to_payload(outcome.rep_event)})

    return events, to_payload(session.summary())


def _write_json_lines(out: TextIO, events: list[dict[str, Any]], summary: dict[str, Any]) -> None:
    for event in events:
        out.write(json.dumps({"type": "rep", **event}) + "\n")
    out.write(json.dumps({"type": "summary", **summary}) + "\n")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Replay a landmark log through the exercise engine")
    parser.add_argument("frames", help="Path to a JSON-lines landmark log")
    parser.add_argument(
        "--exercise",
        default=config.DEFAULT_EXERCISE,
        choices=available_exercises(),
        help="Exercise key",
    )
    parser.add_argument("--target-reps", type=int, default=config.DEFAULT_TARGET_REPS)
    parser.add_argument("--seed", type=int, default=config.CUE_SEED, help="Seed for cue phrasing")
    args = parser.parse_args(argv)

    configure_logging()
    events, summary = replay_frames(
        read_frame_log(args.frames),
        args.exercise,
        target_reps=args.target_reps,
        seed=args.seed,
    )
    _write_json_lines(sys.stdout, events, summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
