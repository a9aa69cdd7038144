from __future__ import annotations

import asyncio
import base64
import binascii
import concurrent.futures
import json
import logging
import shutil
import tempfile
import threading
import time
import uuid
from dataclasses import asdict
from pathlib import Path
from typing import Optional

# Ensure session and rep logging is visible when running under uvicorn
logging.getLogger("repcount.session").setLevel(logging.INFO)
logging.getLogger("repcount.reps").setLevel(logging.INFO)

from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

import cv2
import numpy as np

from run import run_offline
from repcount.exercises import EXERCISES, get_exercise
from repcount.pose import create_pose_detector, process_frame
from repcount.session import RepCounterSession
from repcount.running import RunTracker
from repcount.storage import (
    RepSessionRepository,
    RunHistoryRepository,
    StrengthExercise,
    StrengthWorkout,
    StrengthWorkoutRepository,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="RepCount")
app.state.sessions = RepSessionRepository()
app.state.runs = RunHistoryRepository()
app.state.run_tracker = RunTracker(app.state.runs)
app.state.workouts = StrengthWorkoutRepository()

# Background analysis jobs (job_id -> {status, result, created})
_JOB_STORE: dict[str, dict] = {}
_JOB_LOCK = threading.Lock()
_MAX_JOBS = 100
_VIDEO_SUFFIXES = {".mp4", ".mov", ".mkv", ".avi", ".webm"}

# Single worker keeps live frames in arrival order and lets the event loop answer pings
_LIVE_EXECUTOR = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="live_pose")


def _run_analysis_background(
    job_id: str,
    upload_path: str,
    job_dir: str,
    exercise: str,
    repository: RepSessionRepository,
) -> None:
    try:
        summary = run_offline(upload_path, exercise=exercise, repository=repository)
        with _JOB_LOCK:
            _JOB_STORE[job_id]["status"] = "done"
            _JOB_STORE[job_id]["result"] = asdict(summary)
    except Exception as e:
        logger.exception("analyze: job %s failed", job_id)
        with _JOB_LOCK:
            _JOB_STORE[job_id]["status"] = "error"
            _JOB_STORE[job_id]["result"] = str(e)
    finally:
        shutil.rmtree(job_dir, ignore_errors=True)


def _resolve_exercise(name: str):
    try:
        return get_exercise(name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/exercises")
def exercises() -> list[dict[str, object]]:
    return [definition.to_dict() for definition in EXERCISES.values()]


@app.get("/sessions")
def sessions(
    request: Request,
    exercise: Optional[str] = Query(None, description="Exercise name or label, e.g. squat"),
    limit: Optional[int] = Query(None, ge=0),
) -> list[dict[str, object]]:
    repository: RepSessionRepository = request.app.state.sessions
    label = _resolve_exercise(exercise).label if exercise is not None else None
    if label is None:
        items = repository.all()
        if limit is not None:
            items = sorted(items, key=lambda s: s.timestamp_ms, reverse=True)[:limit]
    elif limit is not None:
        items = repository.recent(label, limit)
    else:
        items = repository.by_type(label)
    return [asdict(s) for s in items]


@app.post("/analyze", status_code=202)
def analyze(
    request: Request,
    exercise: str = Query("press"),
    video: UploadFile = File(...),
) -> dict[str, str]:
    definition = _resolve_exercise(exercise)
    if not video.filename:
        raise HTTPException(status_code=400, detail="Missing file name.")
    suffix = Path(video.filename).suffix.lower()
    if suffix not in _VIDEO_SUFFIXES:
        raise HTTPException(status_code=400, detail="Unsupported file type.")

    job_id = str(uuid.uuid4())
    job_dir = Path(tempfile.gettempdir()) / "repcount_jobs" / job_id
    job_dir.mkdir(parents=True, exist_ok=True)
    upload_path = job_dir / f"upload{suffix}"
    with upload_path.open("wb") as f:
        shutil.copyfileobj(video.file, f)

    with _JOB_LOCK:
        while len(_JOB_STORE) >= _MAX_JOBS:
            oldest = min(_JOB_STORE.items(), key=lambda x: x[1].get("created", 0))
            del _JOB_STORE[oldest[0]]
        _JOB_STORE[job_id] = {"status": "pending", "result": None, "created": time.time()}

    thread = threading.Thread(
        target=_run_analysis_background,
        args=(job_id, str(upload_path), str(job_dir), definition.name, request.app.state.sessions),
        daemon=True,
    )
    thread.start()
    return {"job_id": job_id, "status": "pending"}


@app.get("/analyze/result/{job_id}")
def analyze_result(job_id: str) -> dict[str, object]:
    with _JOB_LOCK:
        job = _JOB_STORE.get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found or expired.")
    return {"job_id": job_id, "status": job.get("status", "pending"), "result": job.get("result")}


class LocationFix(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)


class StrengthExerciseIn(BaseModel):
    name: str
    sets: int = Field(..., ge=1)
    reps: int = Field(..., ge=1)
    rest_sec: int = Field(0, ge=0)
    weight_lbs: int = Field(0, ge=0)


class StrengthWorkoutIn(BaseModel):
    title: str
    exercises: list[StrengthExerciseIn] = Field(default_factory=list)


def _run_state(tracker: RunTracker) -> dict[str, object]:
    return {
        "is_running": tracker.is_running,
        "is_paused": tracker.is_paused,
        "elapsed_millis": tracker.elapsed_millis,
        "distance_meters": tracker.distance_meters,
        "pace_sec_per_mile": tracker.pace_sec_per_mile,
    }


def _run_entry(entry) -> dict[str, object]:
    out = asdict(entry)
    out["miles"] = entry.miles
    out["avg_pace_sec_per_mile"] = entry.avg_pace_sec_per_mile
    return out


@app.post("/runs/start")
def run_start(request: Request) -> dict[str, object]:
    tracker: RunTracker = request.app.state.run_tracker
    tracker.start()
    return _run_state(tracker)


@app.post("/runs/location")
def run_location(request: Request, fix: LocationFix) -> dict[str, object]:
    tracker: RunTracker = request.app.state.run_tracker
    if not tracker.is_running:
        raise HTTPException(status_code=409, detail="No run in progress.")
    tracker.on_location(fix.lat, fix.lon)
    return _run_state(tracker)


@app.post("/runs/pause")
def run_pause(request: Request) -> dict[str, object]:
    tracker: RunTracker = request.app.state.run_tracker
    tracker.pause()
    return _run_state(tracker)


@app.post("/runs/resume")
def run_resume(request: Request) -> dict[str, object]:
    tracker: RunTracker = request.app.state.run_tracker
    tracker.resume()
    return _run_state(tracker)


@app.post("/runs/stop")
def run_stop(request: Request) -> dict[str, object]:
    tracker: RunTracker = request.app.state.run_tracker
    entry = tracker.stop()
    if entry is None:
        raise HTTPException(status_code=409, detail="No run in progress.")
    return _run_entry(entry)


@app.get("/runs/current")
def run_current(request: Request) -> dict[str, object]:
    return _run_state(request.app.state.run_tracker)


@app.get("/runs")
def runs(request: Request) -> list[dict[str, object]]:
    return [_run_entry(e) for e in request.app.state.runs.all()]


@app.post("/workouts", status_code=201)
def add_workout(request: Request, workout: StrengthWorkoutIn) -> dict[str, object]:
    record = StrengthWorkout(
        title=workout.title,
        timestamp_ms=int(time.time() * 1000),
        exercises=tuple(
            StrengthExercise(e.name, e.sets, e.reps, e.rest_sec, e.weight_lbs)
            for e in workout.exercises
        ),
    )
    request.app.state.workouts.add(record)
    return asdict(record)


@app.get("/workouts")
def workouts(request: Request) -> list[dict[str, object]]:
    return [asdict(w) for w in request.app.state.workouts.all()]


def _decode_frame(image_data: str) -> Optional[np.ndarray]:
    if image_data.startswith("data:"):
        image_data = image_data.split(",", 1)[1]
    try:
        img_bytes = base64.b64decode(image_data)
    except (binascii.Error, ValueError):
        return None
    np_arr = np.frombuffer(img_bytes, np.uint8)
    return cv2.imdecode(np_arr, cv2.IMREAD_COLOR)


@app.websocket("/ws/live")
async def live_socket(websocket: WebSocket) -> None:
    """
    Client messages: {"type": "start", "exercise": "squat"}, {"image": <base64 jpeg>},
    {"angle": <deg>} (pose estimated client-side), {"type": "pause"|"resume"|"stop"}.
    Replies with the frame result per image/angle and a summary on stop.
    """
    await websocket.accept()
    repository: RepSessionRepository = websocket.app.state.sessions
    session = RepCounterSession(repository)
    pose = None
    frames = 0
    loop = asyncio.get_running_loop()
    try:
        while True:
            msg = await websocket.receive_text()
            try:
                payload = json.loads(msg)
            except json.JSONDecodeError:
                continue
            if not isinstance(payload, dict):
                continue
            kind = payload.get("type")
            if kind == "start":
                try:
                    session.set_exercise(payload.get("exercise", session.exercise.name))
                except ValueError as e:
                    await websocket.send_text(json.dumps({"type": "error", "detail": str(e)}))
                    continue
                session.start()
                await websocket.send_text(json.dumps({"type": "started", "exercise": session.exercise.to_dict()}))
                continue
            if kind == "pause":
                session.pause()
                continue
            if kind == "resume":
                session.resume()
                continue
            if kind == "stop":
                summary = session.stop()
                logger.info("live: stop received (frames=%s, reps=%s)", frames, session.rep_count)
                await websocket.send_text(
                    json.dumps({"type": "summary", "session": asdict(summary) if summary else None})
                )
                await websocket.close()
                return

            if "angle" in payload:
                try:
                    angle = float(payload["angle"])
                except (TypeError, ValueError):
                    continue
                result = session.process_angle(angle)
            elif payload.get("image"):
                frame_bgr = _decode_frame(payload["image"])
                if frame_bgr is None:
                    continue
                if pose is None:
                    pose = await loop.run_in_executor(_LIVE_EXECUTOR, create_pose_detector)

                def _process_frame_sync():
                    return session.process_snapshot(process_frame(frame_bgr, pose))

                result = await loop.run_in_executor(_LIVE_EXECUTOR, _process_frame_sync)
            else:
                continue
            frames += 1
            await websocket.send_text(json.dumps(result.to_dict()))
    except WebSocketDisconnect:
        summary = session.stop()
        logger.info(
            "live: client disconnected (frames=%s, saved=%s)", frames, summary is not None
        )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web_app:app", host="0.0.0.0", port=8000, reload=True)
