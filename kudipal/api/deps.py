"""
FastAPI dependencies (DB session, authentication, services)
"""
from typing import Callable

from fastapi import Request, HTTPException, status
from sqlalchemy.orm import Session

from kudipal.infrastructure.db.session import get_db as _get_db, get_session_factory


# Re-export get_db for routers
get_db = _get_db


def get_current_user_id(request: Request) -> int:
    """
    Authenticated user id from the signed session cookie

    Raises:
        HTTPException(401): if the session carries no user
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return int(user_id)


def get_db_session_factory() -> Callable[[], Session]:
    """Session factory for services that open their own sessions (insight fan-out)"""
    return get_session_factory()
