import json

import pytest
from fastapi.testclient import TestClient

import web_app
from repcount.running import RunTracker
from repcount.storage import (
    RepSession,
    RepSessionRepository,
    RunHistoryRepository,
    StrengthWorkoutRepository,
)

from conftest import FakeClock


@pytest.fixture
def repository():
    repo = RepSessionRepository()
    web_app.app.state.sessions = repo
    return repo


@pytest.fixture
def run_clock():
    clock = FakeClock()
    runs = RunHistoryRepository()
    web_app.app.state.runs = runs
    web_app.app.state.run_tracker = RunTracker(runs, clock=clock)
    web_app.app.state.workouts = StrengthWorkoutRepository()
    return clock


@pytest.fixture
def client(repository, run_clock):
    return TestClient(web_app.app)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_exercises(client):
    names = [e["name"] for e in client.get("/exercises").json()]
    assert names == ["press", "squat"]


def test_sessions_filters(client, repository):
    repository.add(RepSession("Squats", 10, 1_000, 60))
    repository.add(RepSession("Push-ups", 5, 2_000, 30))
    repository.add(RepSession("Squats", 12, 3_000, 70))

    assert len(client.get("/sessions").json()) == 3
    squats = client.get("/sessions", params={"exercise": "Squats"}).json()
    assert [s["total_reps"] for s in squats] == [10, 12]
    recent = client.get("/sessions", params={"exercise": "Squats", "limit": 1}).json()
    assert recent == [
        {"exercise_type": "Squats", "total_reps": 12, "timestamp_ms": 3_000, "duration_seconds": 70}
    ]
    latest = client.get("/sessions", params={"limit": 1}).json()
    assert latest[0]["timestamp_ms"] == 3_000


def test_analyze_rejects_unsupported_file(client):
    resp = client.post("/analyze", files={"video": ("notes.txt", b"hello", "text/plain")})
    assert resp.status_code == 400


def test_analyze_rejects_unknown_exercise(client):
    resp = client.post(
        "/analyze",
        params={"exercise": "deadlift"},
        files={"video": ("lift.mp4", b"\x00", "video/mp4")},
    )
    assert resp.status_code == 400
    assert "deadlift" in resp.json()["detail"]


def test_unknown_job(client):
    assert client.get("/analyze/result/missing").status_code == 404


def test_live_socket_counts_angles(client, repository):
    with client.websocket_connect("/ws/live") as ws:
        ws.send_text(json.dumps({"type": "start", "exercise": "squat"}))
        started = ws.receive_json()
        assert started["type"] == "started"
        assert started["exercise"]["name"] == "squat"

        replies = []
        for angle in [80.0] * 3 + [170.0] * 3 + [80.0] * 3:
            ws.send_text(json.dumps({"angle": angle}))
            replies.append(ws.receive_json())
        assert replies[0]["phase"] == "DOWN"
        assert replies[5]["phase"] == "UP"
        assert replies[-1]["rep_count"] == 1

        ws.send_text(json.dumps({"type": "stop"}))
        summary = ws.receive_json()
    assert summary["type"] == "summary"
    assert summary["session"]["exercise_type"] == "Squats"
    assert summary["session"]["total_reps"] == 1
    assert [s.total_reps for s in repository.all()] == [1]


def test_live_socket_pause_and_bad_messages(client, repository):
    with client.websocket_connect("/ws/live") as ws:
        ws.send_text("not json")
        ws.send_text(json.dumps({"type": "start", "exercise": "bench"}))
        assert ws.receive_json()["type"] == "error"
        ws.send_text(json.dumps({"type": "start"}))
        assert ws.receive_json()["exercise"]["name"] == "press"
        ws.send_text(json.dumps({"type": "pause"}))
        ws.send_text(json.dumps({"angle": 80.0}))
        assert ws.receive_json()["status"] == "Paused"
        ws.send_text(json.dumps({"type": "resume"}))
        ws.send_text(json.dumps({"angle": 80.0}))
        assert ws.receive_json()["status"] == "Tracking"
        ws.send_text(json.dumps({"type": "stop"}))
        assert ws.receive_json()["session"]["total_reps"] == 0
    assert len(repository) == 1


def test_sessions_filter_accepts_name_or_label(client, repository):
    repository.add(RepSession("Squats", 10, 1_000, 60))
    repository.add(RepSession("Push-ups", 5, 2_000, 30))

    by_name = client.get("/sessions", params={"exercise": "squat"}).json()
    by_label = client.get("/sessions", params={"exercise": "Squats"}).json()
    assert by_name == by_label
    assert [s["total_reps"] for s in by_name] == [10]
    recent = client.get("/sessions", params={"exercise": "press", "limit": 5}).json()
    assert [s["exercise_type"] for s in recent] == ["Push-ups"]


def test_sessions_unknown_exercise(client):
    resp = client.get("/sessions", params={"exercise": "deadlift"})
    assert resp.status_code == 400


def test_run_tracking_flow(client, run_clock):
    state = client.post("/runs/start").json()
    assert state["is_running"]
    assert state["pace_sec_per_mile"] is None

    client.post("/runs/location", json={"lat": 45.0, "lon": 7.0})
    run_clock.advance(60)
    state = client.post("/runs/location", json={"lat": 45.01, "lon": 7.0}).json()
    assert state["distance_meters"] == pytest.approx(1112, rel=1e-2)
    assert state["pace_sec_per_mile"] is not None

    run_clock.advance(10)
    assert client.post("/runs/pause").json()["is_paused"]
    run_clock.advance(300)
    client.post("/runs/location", json={"lat": 46.0, "lon": 7.0})
    client.post("/runs/resume")
    assert client.get("/runs/current").json()["elapsed_millis"] == 70_000

    entry = client.post("/runs/stop").json()
    assert entry["elapsed_millis"] == 70_000
    assert entry["miles"] == pytest.approx(0.691, rel=1e-2)
    runs = client.get("/runs").json()
    assert len(runs) == 1
    assert runs[0]["distance_meters"] == pytest.approx(entry["distance_meters"])


def test_run_location_requires_active_run(client):
    assert client.post("/runs/location", json={"lat": 1.0, "lon": 1.0}).status_code == 409
    assert client.post("/runs/stop").status_code == 409


def test_run_location_validation(client):
    client.post("/runs/start")
    assert client.post("/runs/location", json={"lat": 123.0, "lon": 0.0}).status_code == 422


def test_workouts(client):
    body = {
        "title": "Leg day",
        "exercises": [{"name": "Squat", "sets": 5, "reps": 5, "rest_sec": 120, "weight_lbs": 185}],
    }
    created = client.post("/workouts", json=body)
    assert created.status_code == 201
    assert created.json()["exercises"][0]["weight_lbs"] == 185

    listed = client.get("/workouts").json()
    assert [w["title"] for w in listed] == ["Leg day"]
    assert listed[0]["exercises"][0]["sets"] == 5
    assert client.post("/workouts", json={"title": "x", "exercises": [{"name": "a", "sets": 0, "reps": 1}]}).status_code == 422
