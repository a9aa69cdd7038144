import pytest

from repcount.exercises import ExerciseType
from repcount.reps import RepPhase
from repcount.session import RepCounterSession
from repcount.storage import RepSessionRepository

from conftest import make_snapshot


@pytest.fixture
def repository():
    return RepSessionRepository()


@pytest.fixture
def session(repository, clock):
    return RepCounterSession(
        repository, ExerciseType.SQUAT, clock=clock, wall_clock=lambda: 1_700_000_000.0
    )


def do_rep(session, clock, step=0.2):
    """Three frames each of flexed, extended, flexed knee."""
    results = []
    for angle in [80.0] * 3 + [175.0] * 3 + [80.0] * 3:
        results.append(session.process_snapshot(make_snapshot(session.exercise, angle)))
        clock.advance(step)
    return results


def test_samples_ignored_before_start(session):
    result = session.process_snapshot(make_snapshot(session.exercise, 80.0))
    assert result.status == "Stopped"
    assert result.rep_count == 0
    assert session.detector is None


def test_counts_reps_and_notifies(session, clock):
    seen = []
    session.add_listener(seen.append)
    session.start()
    results = do_rep(session, clock)
    assert results[-1].rep_count == 1
    assert results[-1].phase is RepPhase.DOWN
    assert results[-1].status == "Tracking"
    assert seen == [1]


def test_listener_added_while_running(session, clock):
    session.start()
    seen = []
    session.add_listener(seen.append)
    do_rep(session, clock)
    assert seen == [1]


def test_unavailable_angle_does_not_touch_detector(session):
    session.start()
    result = session.process_snapshot(make_snapshot(session.exercise, 80.0, confidence=0.2))
    assert result.status == "No pose"
    assert result.angle is None
    assert len(session.detector.window) == 0
    assert session.process_snapshot(None).status == "No pose"


def test_pause_gates_samples(session, clock):
    session.start()
    session.pause()
    result = session.process_snapshot(make_snapshot(session.exercise, 80.0))
    assert result.status == "Paused"
    assert len(session.detector.window) == 0
    session.resume()
    session.process_snapshot(make_snapshot(session.exercise, 80.0))
    assert len(session.detector.window) == 1


def test_elapsed_excludes_paused_time(session, clock):
    session.start()
    clock.advance(10)
    session.pause()
    clock.advance(30)
    assert session.elapsed_seconds == 10
    session.resume()
    clock.advance(5)
    assert session.elapsed_seconds == 15


def test_stop_saves_summary(session, repository, clock):
    session.start()
    do_rep(session, clock, step=1.0)
    summary = session.stop()
    assert summary.exercise_type == "Squats"
    assert summary.total_reps == 1
    assert summary.duration_seconds == 9
    assert summary.timestamp_ms == 1_700_000_000_000
    assert repository.all() == [summary]
    assert not session.is_running


def test_elapsed_frozen_after_stop(session, clock):
    session.start()
    clock.advance(4)
    session.stop()
    clock.advance(100)
    assert session.elapsed_seconds == 4


def test_stop_while_paused(session, repository, clock):
    session.start()
    clock.advance(3)
    session.pause()
    clock.advance(60)
    summary = session.stop()
    assert summary.duration_seconds == 3


def test_stop_without_start_is_noop(session, repository):
    assert session.stop() is None
    assert len(repository) == 0


def test_start_twice_keeps_detector(session, clock):
    session.start()
    detector = session.detector
    session.start()
    assert session.detector is detector


def test_new_session_gets_fresh_detector(session, clock):
    session.start()
    do_rep(session, clock)
    session.stop()
    session.set_exercise("press")
    session.start()
    assert session.rep_count == 0
    assert session.detector.definition.name == "press"
    assert session.phase is RepPhase.IDLE


def test_exercise_locked_while_running(session):
    session.start()
    session.set_exercise(ExerciseType.PRESS)
    assert session.exercise.name == "squat"


def test_process_angle(session, clock):
    session.start()
    result = session.process_angle(80.0, now=1.0)
    assert result.smoothed_angle == 80.0
    assert result.phase is RepPhase.DOWN
    assert result.to_dict()["phase"] == "DOWN"


def test_state_snapshot(session, clock):
    session.start()
    clock.advance(2)
    state = session.state
    assert state.is_running
    assert not state.is_paused
    assert state.rep_count == 0
    assert state.exercise.name == "squat"
    assert state.elapsed_seconds == 2
