"""Explicit identity context passed into request handlers.

The core functions never read ambient identity; they take client/coach ids as
parameters. Handlers build a SessionContext once per request and use it to
authorize and to resolve the user's local "today".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from fittrainer.core.errors import PermissionDeniedError
from fittrainer.utils.dates import today_in

COACH = "coach"
CLIENT = "client"


@dataclass(frozen=True)
class SessionContext:
    """Who is acting, and in which timezone their calendar day is measured."""

    user_id: str
    role: str
    timezone: str = "UTC"

    @property
    def is_coach(self) -> bool:
        return self.role == COACH

    @property
    def is_client(self) -> bool:
        return self.role == CLIENT

    def require_role(self, role: str) -> None:
        if self.role != role:
            raise PermissionDeniedError(f"User {self.user_id} with role {self.role!r} cannot act as {role!r}")

    def today(self) -> date:
        return today_in(self.timezone)
