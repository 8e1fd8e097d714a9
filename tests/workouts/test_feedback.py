"""Tests for per-exercise completion and feedback within a session."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from fittrainer.core.errors import ConcurrencyConflictError, InvalidTransitionError, ValidationFailure
from fittrainer.db.models import SESSION_COMPLETED, SESSION_SCHEDULED, ExerciseFeedback
from fittrainer.workouts import feedback as feedback_module
from fittrainer.workouts.feedback import (
    get_feedback,
    record_actuals,
    save_exercise_feedback,
    session_exercises,
    set_exercise_completed,
    toggle_exercise_completed,
)


@pytest.fixture
def session_setup(make_plan, make_exercise, make_session, today):
    squat = make_exercise("Back Squat")
    lunge = make_exercise("Walking Lunge", type="Bodyweight")
    plan = make_plan(start_date=today - timedelta(days=7), exercises=[squat, lunge])
    session = make_session(plan, today)
    return session, squat, lunge


def _feedback_rows(db_session, session_id) -> int:
    return db_session.execute(select(func.count(ExerciseFeedback.id)).where(ExerciseFeedback.session_id == session_id)).scalar_one()


class TestToggle:
    def test_first_toggle_marks_completed(self, db_session, session_setup):
        session, squat, _ = session_setup

        feedback = toggle_exercise_completed(db_session, session.id, squat.id)

        assert feedback.completed is True
        assert _feedback_rows(db_session, session.id) == 1

    def test_toggle_flips_back_without_new_row(self, db_session, session_setup):
        session, squat, _ = session_setup
        toggle_exercise_completed(db_session, session.id, squat.id)

        feedback = toggle_exercise_completed(db_session, session.id, squat.id)

        assert feedback.completed is False
        assert _feedback_rows(db_session, session.id) == 1

    def test_set_completed_is_idempotent(self, db_session, session_setup):
        session, squat, _ = session_setup

        set_exercise_completed(db_session, session.id, squat.id, True)
        set_exercise_completed(db_session, session.id, squat.id, True)

        assert get_feedback(db_session, session.id, squat.id).completed is True
        assert _feedback_rows(db_session, session.id) == 1

    def test_exercise_outside_plan_rejected(self, db_session, session_setup, make_exercise):
        session, _, _ = session_setup
        stranger = make_exercise("Deadlift")

        with pytest.raises(ValidationFailure):
            toggle_exercise_completed(db_session, session.id, stranger.id)

    @pytest.mark.parametrize("status", [SESSION_SCHEDULED, SESSION_COMPLETED])
    def test_only_in_progress_sessions_accept_changes(self, db_session, make_plan, make_exercise, make_session, today, status):
        squat = make_exercise()
        plan = make_plan(start_date=today, exercises=[squat])
        session = make_session(plan, today, status=status)

        with pytest.raises(InvalidTransitionError):
            toggle_exercise_completed(db_session, session.id, squat.id)


class TestFeedbackText:
    def test_feedback_does_not_touch_completion(self, db_session, session_setup):
        session, squat, _ = session_setup
        toggle_exercise_completed(db_session, session.id, squat.id)

        feedback = save_exercise_feedback(db_session, session.id, squat.id, "  felt heavy on the last set ")

        assert feedback.feedback == "felt heavy on the last set"
        assert feedback.completed is True

    def test_feedback_before_completion_leaves_it_unchecked(self, db_session, session_setup):
        session, _, lunge = session_setup

        feedback = save_exercise_feedback(db_session, session.id, lunge.id, "knee ok")

        assert feedback.completed is False

    def test_blank_feedback_clears_text(self, db_session, session_setup):
        session, squat, _ = session_setup
        save_exercise_feedback(db_session, session.id, squat.id, "first note")

        assert save_exercise_feedback(db_session, session.id, squat.id, "   ").feedback is None


class TestActuals:
    def test_records_actual_performance(self, db_session, session_setup):
        session, squat, _ = session_setup

        feedback = record_actuals(db_session, session.id, squat.id, sets=3, reps=8, weight=100.0)
        record_actuals(db_session, session.id, squat.id, reps=9)

        assert (feedback.actual_sets, feedback.actual_reps, feedback.actual_weight) == (3, 9, 100.0)

    def test_negative_values_rejected(self, db_session, session_setup):
        session, squat, _ = session_setup

        with pytest.raises(ValidationFailure):
            record_actuals(db_session, session.id, squat.id, weight=-5)


def test_session_exercises_in_plan_order(db_session, session_setup):
    session, squat, lunge = session_setup
    toggle_exercise_completed(db_session, session.id, lunge.id)

    items = session_exercises(db_session, session)

    assert [item.exercise.id for item in items] == [squat.id, lunge.id]
    assert [item.completed for item in items] == [False, True]
    assert items[0].feedback is None


class TestCreateRace:
    @pytest.fixture
    def winner(self, db_session, session_setup):
        # Another request already inserted the row; this request's first read missed it.
        session, squat, _ = session_setup
        row = ExerciseFeedback(session_id=session.id, exercise_id=squat.id, completed=False, feedback="from the other tab")
        db_session.add(row)
        db_session.flush()
        return row

    def test_lost_insert_race_updates_winning_row(self, db_session, session_setup, winner, monkeypatch):
        session, squat, _ = session_setup
        calls = []

        def _miss_first_read(*args):
            calls.append(args)
            return None if len(calls) == 1 else get_feedback(*args)

        monkeypatch.setattr(feedback_module, "get_feedback", _miss_first_read)

        feedback = set_exercise_completed(db_session, session.id, squat.id, True)

        assert feedback.id == winner.id
        assert feedback.completed is True
        assert feedback.feedback == "from the other tab"
        assert _feedback_rows(db_session, session.id) == 1

    def test_conflict_without_visible_row_is_reported(self, db_session, session_setup, winner, monkeypatch):
        session, squat, _ = session_setup
        monkeypatch.setattr(feedback_module, "get_feedback", lambda *args: None)

        with pytest.raises(ConcurrencyConflictError):
            set_exercise_completed(db_session, session.id, squat.id, True)
