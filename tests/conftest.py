"""Root conftest for all tests.

Provides an isolated in-memory SQLite database per test and small factories
for users, exercises, plans and sessions.
"""

from collections.abc import Callable
from contextlib import contextmanager
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from fittrainer.db.models import (
    EXERCISE_WEIGHTED,
    PLAN_ACTIVE,
    SESSION_IN_PROGRESS,
    Base,
    Exercise,
    PlanExercise,
    TrainingPlan,
    User,
    WorkoutSession,
)

TODAY = date(2026, 1, 15)  # Thursday

# Modules that import get_session directly and must see the test session
GET_SESSION_IMPORTERS = (
    "fittrainer.db.session",
    "fittrainer.api.dependencies",
    "fittrainer.api.clients",
    "fittrainer.api.sessions",
    "fittrainer.api.plans",
    "fittrainer.scheduler",
)


# Enable foreign key constraints for SQLite
@event.listens_for(Engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints in SQLite connections."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _enable_sqlite_savepoints(engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works with pysqlite."""

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture(scope="function")
def db_session(monkeypatch):
    """
    Provides a transactional in-memory SQLite DB session for tests.

    This fixture:
    - Creates an isolated in-memory SQLite database per test
    - Patches get_session() everywhere it is imported; each `with get_session()`
      block runs in a SAVEPOINT that is released on success and rolled back on error
    - Rolls the outer transaction back at teardown (no DELETE statements)
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
    )
    _enable_sqlite_savepoints(engine)
    Base.metadata.create_all(engine)

    connection = engine.connect()
    transaction = connection.begin()

    test_session_local = sessionmaker(bind=connection, autocommit=False, autoflush=False)
    session = test_session_local()

    @contextmanager
    def mock_get_session():
        nested = session.begin_nested()
        try:
            yield session
        except Exception:
            if nested.is_active:
                nested.rollback()
            raise
        else:
            if nested.is_active:
                nested.commit()

    for module in GET_SESSION_IMPORTERS:
        monkeypatch.setattr(f"{module}.get_session", mock_get_session)
    monkeypatch.setattr("fittrainer.db.session._get_engine", lambda: engine)

    try:
        yield session
    finally:
        session.close()
        if transaction.is_active:
            transaction.rollback()
        connection.close()
        engine.dispose()


@pytest.fixture
def make_user(db_session) -> Callable[..., User]:
    counter = {"n": 0}

    def _make(role: str = "client", **fields) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=fields.pop("email", f"{role}{n}@example.com"),
            name=fields.pop("name", f"{role.title()} {n}"),
            role=role,
            **fields,
        )
        db_session.add(user)
        db_session.flush()
        return user

    return _make


@pytest.fixture
def coach(make_user) -> User:
    return make_user("coach")


@pytest.fixture
def client(make_user) -> User:
    return make_user("client", workouts_per_week=3)


@pytest.fixture
def make_exercise(db_session, coach) -> Callable[..., Exercise]:
    def _make(name: str = "Back Squat", type: str = EXERCISE_WEIGHTED, **fields) -> Exercise:
        exercise = Exercise(coach_id=coach.id, name=name, type=type, **fields)
        db_session.add(exercise)
        db_session.flush()
        return exercise

    return _make


@pytest.fixture
def make_plan(db_session, coach, client) -> Callable[..., TrainingPlan]:
    counter = {"n": 0}

    def _make(
        status: str = PLAN_ACTIVE,
        start_date: date | None = None,
        end_date: date | None = None,
        duration: str = "4 weeks",
        client_id: str | None = None,
        exercises: list[Exercise] | None = None,
        **fields,
    ) -> TrainingPlan:
        counter["n"] += 1
        plan = TrainingPlan(
            coach_id=coach.id,
            client_id=client_id or client.id,
            name=fields.pop("name", f"Plan {counter['n']}"),
            duration=duration,
            status=status,
            start_date=start_date,
            end_date=end_date,
            **fields,
        )
        db_session.add(plan)
        db_session.flush()
        for index, exercise in enumerate(exercises or []):
            db_session.add(PlanExercise(plan_id=plan.id, exercise_id=exercise.id, sets=3, reps=10, order_index=index))
        db_session.flush()
        return plan

    return _make


@pytest.fixture
def make_session(db_session, client) -> Callable[..., WorkoutSession]:
    def _make(plan: TrainingPlan, scheduled_date: date, status: str = SESSION_IN_PROGRESS, **fields) -> WorkoutSession:
        if status == SESSION_IN_PROGRESS:
            fields.setdefault("started_at", datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc))
        session = WorkoutSession(
            client_id=fields.pop("client_id", plan.client_id),
            plan_id=plan.id,
            scheduled_date=scheduled_date,
            status=status,
            **fields,
        )
        db_session.add(session)
        db_session.flush()
        return session

    return _make
