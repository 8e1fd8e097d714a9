"""FastAPI dependencies for identity and the reference day."""

from __future__ import annotations

from datetime import date

from fastapi import Depends, Header, HTTPException, Query, status
from loguru import logger

from fittrainer.core.context import CLIENT, COACH, SessionContext
from fittrainer.db.models import User
from fittrainer.db.session import get_session


def get_session_context(x_user_id: str | None = Header(default=None)) -> SessionContext:
    """Build the acting user's SessionContext from the X-User-Id header.

    Raises:
        HTTPException: 401 if the header is missing or the user is unknown
    """
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")

    with get_session() as db:
        user = db.get(User, x_user_id)
        if user is None:
            logger.warning("Unknown user in X-User-Id header", user_id=x_user_id)
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
        return SessionContext(user_id=user.id, role=user.role, timezone=user.timezone or "UTC")


def require_client(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
    ctx.require_role(CLIENT)
    return ctx


def require_coach(ctx: SessionContext = Depends(get_session_context)) -> SessionContext:
    ctx.require_role(COACH)
    return ctx


def get_as_of(as_of: date | None = Query(None, description="Reference day (YYYY-MM-DD); defaults to today in the user's timezone")) -> date | None:
    return as_of
