"""Session routes: login, logout."""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from sessionauth.core.auth import (
    SessionManager,
    clear_session_cookie,
    get_session_manager,
    session_token,
    set_session_cookie,
)
from sessionauth.dependencies import get_db
from sessionauth.schemas.session import SessionCreate, SessionRead

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=SessionRead, status_code=201)
async def login(
    body: SessionCreate,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    user = await manager.authenticate(db, email=body.email, password=body.password)
    session = await manager.create(db, user.id)
    request.state.user_id = user.id
    set_session_cookie(response, session.token, manager.max_age_seconds)
    return session


@router.delete("", response_model=SessionRead)
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
):
    session = await manager.expire(db, session_token(request))
    request.state.user_id = session.user_id
    clear_session_cookie(response)
    return session
