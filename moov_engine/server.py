"""
FastAPI WebSocket host for the exercise engine.
Receives JSON landmark frames, returns per-frame form/rep outcomes.

Endpoint: /ws/exercise?exercise=squats&target_reps=10
Messages:
  {"timestamp": 12.3, "landmarks": [{"x":..,"y":..,"visibility":..}, ...]}
  {"type": "manual_rep", "timestamp": 12.3, "form_score": 0.9}
  {"type": "skip"} / {"type": "switch", "exercise": "lunges"} / {"type": "end"}
"""

import json
import logging
import time
from typing import Any, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from moov_engine import __version__, config
from moov_engine.exercises import EXERCISE_CONFIGS, counts_reps_automatically, get_exercise_config
from moov_engine.landmarks import landmarks_list_to_frame
from moov_engine.logging_config import configure_logging
from moov_engine.session import SessionState, to_payload

logger = logging.getLogger(__name__)

app = FastAPI(title="Moov Exercise Engine", version=__version__)


@app.get("/health")
def health():
    return {"status": "ok", "exercises_loaded": len(EXERCISE_CONFIGS)}


@app.get("/exercises")
def exercises():
    return [
        {
            "id": cfg.exercise_id,
            "name": cfg.name,
            "auto_reps": counts_reps_automatically(cfg.exercise_id),
            "form_checks": [rule.check for rule in cfg.form_rules],
            "cues": cfg.cues,
        }
        for cfg in EXERCISE_CONFIGS.values()
    ]


def _timestamp(msg: dict[str, Any]) -> float:
    raw = msg.get("timestamp")
    return time.monotonic() if raw is None else float(raw)


def _decode_message(raw: Optional[str]) -> dict[str, Any]:
    if not raw:
        raise ValueError("Empty message")
    msg = json.loads(raw)
    if not isinstance(msg, dict):
        raise ValueError("Message must be a JSON object")
    return msg


def handle_message(session: SessionState, msg: dict[str, Any]) -> dict[str, Any]:
    """Apply one client message to the session and build the reply."""
    kind = msg.get("type", "frame")

    if kind == "frame":
        landmarks = msg.get("landmarks")
        frame = landmarks_list_to_frame(landmarks) if landmarks else None
        outcome = session.process_frame(frame, _timestamp(msg))
        return {"type": "frame", **to_payload(outcome)}

    if kind == "manual_rep":
        event = session.record_manual_rep(_timestamp(msg), float(msg.get("form_score", 1.0)))
        return {"type": "rep", **to_payload(event)}

    if kind == "switch":
        exercise = get_exercise_config(str(msg.get("exercise", "")))
        target_reps = int(msg.get("target_reps", config.DEFAULT_TARGET_REPS))
        session.start_exercise(exercise, target_reps, msg.get("timestamp"))
        return {"type": "switched", "exercise": exercise.exercise_id, "auto_reps": session.tracks_reps}

    if kind == "skip":
        session.skip_exercise()
        return {"type": "skipped", "skipped_exercises": session.aggregator.skipped_exercises}

    if kind == "exercise_summary":
        return {"type": "exercise_summary", **(to_payload(session.exercise_summary()) or {})}

    if kind == "end":
        return {"type": "summary", **to_payload(session.summary(msg.get("timestamp")))}

    raise ValueError(f"Unknown message type: {kind}")


@app.websocket("/ws/exercise")
async def ws_exercise(websocket: WebSocket):
    exercise_key = websocket.query_params.get("exercise", config.DEFAULT_EXERCISE)
    try:
        target_reps = int(websocket.query_params.get("target_reps", config.DEFAULT_TARGET_REPS))
        exercise = get_exercise_config(exercise_key)
    except (KeyError, ValueError) as e:
        await websocket.accept()
        await websocket.send_json({"error": str(e)})
        await websocket.close(code=1008)
        return

    session = SessionState()
    session.start_exercise(exercise, target_reps)

    await websocket.accept()
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = _decode_message(raw)
                reply = handle_message(session, msg)
            except (KeyError, ValueError, TypeError) as e:
                await websocket.send_json({"error": str(e)})
                continue

            await websocket.send_json(reply)
            if reply["type"] == "summary":
                await websocket.close()
                break
    except WebSocketDisconnect:
        logger.info("Client disconnected after %d reps", session.aggregator.session_reps)


def main():
    import uvicorn

    configure_logging()
    uvicorn.run(
        "moov_engine.server:app",
        host=config.SERVER_HOST,
        port=config.SERVER_PORT,
        reload=config.SERVER_RELOAD,
    )


if __name__ == "__main__":
    main()
