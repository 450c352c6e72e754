"""Authenticated user route."""

from fastapi import APIRouter, Depends, Response

from sessionauth.config import settings
from sessionauth.core.auth import (
    AuthenticatedSession,
    SessionManager,
    get_current_session,
    get_session_manager,
    set_session_cookie,
)
from sessionauth.schemas.user import UserRead

router = APIRouter(prefix="/user", tags=["user"])


@router.get("", response_model=UserRead, response_model_exclude_none=True)
async def current_user(
    response: Response,
    auth: AuthenticatedSession = Depends(get_current_session),
    manager: SessionManager = Depends(get_session_manager),
):
    # the session was just renewed; refresh the cookie lifetime to match
    set_session_cookie(response, auth.session.token, manager.max_age_seconds)
    return UserRead.from_user(auth.user, expose_password=settings.expose_password_hash)
