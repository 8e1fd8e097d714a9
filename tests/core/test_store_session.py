"""Tests for the transactional get_session() helper and error mapping."""

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import fittrainer.db.session as session_module
from fittrainer.api.errors import status_for
from fittrainer.core.errors import (
    CompletionGateError,
    ConcurrencyConflictError,
    FitTrainerError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    StoreUnavailableError,
    ValidationFailure,
)
from fittrainer.db.models import Base, User


@pytest.fixture
def session_factory(monkeypatch):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    monkeypatch.setattr(session_module, "_get_session_local", lambda: factory)
    yield factory
    engine.dispose()


def _user_count(factory) -> int:
    with factory() as db:
        return db.execute(select(func.count(User.id))).scalar_one()


def test_commits_on_clean_exit(session_factory):
    with session_module.get_session() as db:
        db.add(User(email="a@example.com", name="A", role="client"))

    assert _user_count(session_factory) == 1


def test_business_error_rolls_back_and_propagates(session_factory):
    with pytest.raises(NotFoundError):
        with session_module.get_session() as db:
            db.add(User(email="a@example.com", name="A", role="client"))
            db.flush()
            raise NotFoundError("TrainingPlan", "missing")

    assert _user_count(session_factory) == 0


def test_operational_error_becomes_retryable_store_error(session_factory):
    with pytest.raises(StoreUnavailableError) as exc_info:
        with session_module.get_session() as db:
            db.add(User(email="a@example.com", name="A", role="client"))
            db.flush()
            raise OperationalError("SELECT 1", {}, Exception("canceling statement due to statement timeout"))

    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert _user_count(session_factory) == 0


def test_postgres_connections_carry_statement_timeout(monkeypatch):
    monkeypatch.setattr(session_module.settings, "db_statement_timeout_ms", 2500)

    args = session_module._connect_args("postgresql://user@localhost/fittrainer")

    assert args["options"] == "-c statement_timeout=2500"
    assert "check_same_thread" in session_module._connect_args("sqlite:///fittrainer.db")


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (NotFoundError("WorkoutSession", "x"), 404),
        (ValidationFailure("bad duration"), 400),
        (PermissionDeniedError("not yours"), 403),
        (InvalidTransitionError("x", "Completed", "Skipped"), 409),
        (CompletionGateError("x", 1, 2), 409),
        (ConcurrencyConflictError("lost race"), 409),
        (StoreUnavailableError("timeout"), 503),
        (FitTrainerError("unexpected"), 500),
    ],
)
def test_error_status_mapping(error, status_code):
    assert status_for(error) == status_code
