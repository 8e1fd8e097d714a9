"""Error types for FitTrainer Pro.

Business logic errors that should not be logged as database errors.
The API layer maps each of them to an HTTP status.
"""


class FitTrainerError(RuntimeError):
    """Base class for all domain errors."""


class NotFoundError(FitTrainerError):
    """Raised when a referenced plan, session, exercise or user does not exist."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class ValidationFailure(FitTrainerError):
    """Raised when caller input cannot be accepted (e.g. unparseable plan duration)."""


class PermissionDeniedError(FitTrainerError):
    """Raised when the acting user does not own the record they are touching."""


class InvalidTransitionError(FitTrainerError):
    """Raised when a workout session status change is not allowed."""

    def __init__(self, session_id: str, current: str, target: str):
        super().__init__(f"Cannot move session {session_id} from {current!r} to {target!r}")
        self.session_id = session_id
        self.current = current
        self.target = target


class CompletionGateError(FitTrainerError):
    """Raised when a session is completed before every plan exercise is marked done."""

    def __init__(self, session_id: str, completed: int, total: int):
        super().__init__(f"Session {session_id} has {completed}/{total} exercises completed")
        self.session_id = session_id
        self.completed = completed
        self.total = total


class ConcurrencyConflictError(FitTrainerError):
    """Raised when a conflicting insert lost a race and the winning row cannot be found."""


class StoreUnavailableError(FitTrainerError):
    """Raised when the relational store cannot be reached or a statement times out.

    Retryable: the transaction has been rolled back and no partial writes remain.
    """
