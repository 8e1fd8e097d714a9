"""Tests for the client dashboard and per-exercise progress history."""

from datetime import datetime, timedelta, timezone

from fittrainer.db.models import (
    EXERCISE_BODYWEIGHT,
    EXERCISE_CARDIO,
    EXERCISE_WEIGHTED,
    PLAN_ACTIVE,
    PLAN_COMPLETED,
    SESSION_COMPLETED,
    SESSION_SKIPPED,
    ExerciseFeedback,
)
from fittrainer.workouts.history import Performance, calculate_improvement, client_dashboard, exercise_progress


def _completed_at(day_offset: int) -> datetime:
    return datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc) - timedelta(days=day_offset)


def _perf(sets=None, reps=None, weight=None) -> Performance:
    return Performance(completed_date=_completed_at(0), plan_name=None, sets=sets, reps=reps, weight=weight)


class TestDashboard:
    def test_counts_and_recent_workouts(self, db_session, make_plan, make_session, client, today):
        plan = make_plan(name="Strength", start_date=today - timedelta(days=20))
        for offset in range(1, 7):
            make_session(
                plan,
                today - timedelta(days=offset),
                status=SESSION_COMPLETED,
                completed_date=_completed_at(offset),
                duration_minutes=40 + offset,
            )
        make_session(plan, today - timedelta(days=8), status=SESSION_SKIPPED)

        summary = client_dashboard(db_session, client.id, today)

        assert summary.active_plans == 1
        assert summary.completed_plans == 0
        assert summary.total_workouts == 6
        assert len(summary.recent_workouts) == 4
        assert [w.duration_minutes for w in summary.recent_workouts] == [41, 42, 43, 44]
        assert summary.recent_workouts[0].plan_name == "Strength"

    def test_expires_overdue_plans_before_counting(self, db_session, make_plan, client, today):
        overdue = make_plan(start_date=today - timedelta(days=30), end_date=today - timedelta(days=2))
        make_plan(start_date=today - timedelta(days=3), end_date=today + timedelta(days=25))

        summary = client_dashboard(db_session, client.id, today)

        assert summary.expired_plan_ids == [overdue.id]
        assert overdue.status == PLAN_COMPLETED
        assert summary.active_plans == 1
        assert summary.completed_plans == 1

    def test_empty_dashboard(self, db_session, client, today):
        summary = client_dashboard(db_session, client.id, today)

        assert (summary.active_plans, summary.completed_plans, summary.total_workouts) == (0, 0, 0)
        assert summary.recent_workouts == []


class TestImprovement:
    def test_weighted_compares_volume(self):
        improvement = calculate_improvement(
            _perf(sets=3, reps=10, weight=100), _perf(sets=3, reps=10, weight=112.5), EXERCISE_WEIGHTED
        )

        assert improvement.kind == "weight"
        assert improvement.improvement_percent == 12.5
        assert improvement.first_value == 3000.0

    def test_bodyweight_compares_reps(self):
        improvement = calculate_improvement(_perf(sets=3, reps=12), _perf(sets=3, reps=10), EXERCISE_BODYWEIGHT)

        assert improvement.kind == "reps"
        assert improvement.improvement_percent == -16.7

    def test_no_baseline_or_cardio(self):
        assert calculate_improvement(_perf(sets=3, reps=10), _perf(sets=3, reps=10, weight=50), EXERCISE_WEIGHTED) is None
        assert calculate_improvement(_perf(sets=1, reps=1), _perf(sets=1, reps=2), EXERCISE_CARDIO) is None


class TestExerciseProgress:
    def test_groups_completed_feedback_by_exercise(
        self, db_session, make_plan, make_exercise, make_session, client, today
    ):
        squat = make_exercise("Back Squat")
        pushup = make_exercise("Push-up", type=EXERCISE_BODYWEIGHT)
        plan = make_plan(name="Base", start_date=today - timedelta(days=30), exercises=[squat, pushup])

        early = make_session(plan, today - timedelta(days=10), status=SESSION_COMPLETED, completed_date=_completed_at(10))
        late = make_session(plan, today - timedelta(days=2), status=SESSION_COMPLETED, completed_date=_completed_at(2))
        db_session.add_all(
            [
                ExerciseFeedback(session_id=early.id, exercise_id=squat.id, completed=True, actual_sets=3, actual_reps=5, actual_weight=100),
                ExerciseFeedback(session_id=late.id, exercise_id=squat.id, completed=True, actual_sets=3, actual_reps=5, actual_weight=110),
                ExerciseFeedback(session_id=early.id, exercise_id=pushup.id, completed=True, actual_sets=3, actual_reps=15),
                # Unchecked rows are not part of the history
                ExerciseFeedback(session_id=late.id, exercise_id=pushup.id, completed=False, actual_sets=3, actual_reps=30),
            ]
        )
        db_session.flush()

        progress = {item.exercise_name: item for item in exercise_progress(db_session, client.id)}

        squat_progress = progress["Back Squat"]
        assert squat_progress.total_sessions == 2
        assert squat_progress.first.weight == 100
        assert squat_progress.latest.weight == 110
        assert squat_progress.improvement.improvement_percent == 10.0

        pushup_progress = progress["Push-up"]
        assert pushup_progress.total_sessions == 1
        assert pushup_progress.improvement.improvement_percent == 0.0

    def test_newest_exercise_first(self, db_session, make_plan, make_exercise, make_session, client, today):
        squat = make_exercise("Back Squat")
        row = make_exercise("Barbell Row")
        plan = make_plan(start_date=today - timedelta(days=30), exercises=[squat, row])
        older = make_session(plan, today - timedelta(days=9), status=SESSION_COMPLETED, completed_date=_completed_at(9))
        newer = make_session(plan, today - timedelta(days=1), status=SESSION_COMPLETED, completed_date=_completed_at(1))
        db_session.add_all(
            [
                ExerciseFeedback(session_id=older.id, exercise_id=squat.id, completed=True),
                ExerciseFeedback(session_id=newer.id, exercise_id=row.id, completed=True),
            ]
        )
        db_session.flush()

        names = [item.exercise_name for item in exercise_progress(db_session, client.id)]

        assert names == ["Barbell Row", "Back Squat"]

    def test_sessions_in_progress_are_excluded(self, db_session, make_plan, make_exercise, make_session, client, today):
        squat = make_exercise()
        plan = make_plan(status=PLAN_ACTIVE, start_date=today, exercises=[squat])
        session = make_session(plan, today)
        db_session.add(ExerciseFeedback(session_id=session.id, exercise_id=squat.id, completed=True))
        db_session.flush()

        assert exercise_progress(db_session, client.id) == []
