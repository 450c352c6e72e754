"""User account routes: create, fetch by username, partial update."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sessionauth.config import settings
from sessionauth.core.clock import Clock
from sessionauth.dependencies import get_clock, get_db
from sessionauth.schemas.user import UserCreate, UserRead, UserUpdate
from sessionauth.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


def _present(user) -> UserRead:
    return UserRead.from_user(user, expose_password=settings.expose_password_hash)


@router.post("", response_model=UserRead, response_model_exclude_none=True, status_code=201)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    user = await user_service.create_user(
        db,
        username=body.username,
        email=body.email,
        password=body.password,
        now=clock(),
    )
    return _present(user)


@router.get("/{username}", response_model=UserRead, response_model_exclude_none=True)
async def get_user(
    username: str,
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.find_by_username(db, username)
    return _present(user)


@router.patch("/{username}", response_model=UserRead, response_model_exclude_none=True)
async def update_user(
    username: str,
    body: UserUpdate | None = None,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    body = body or UserUpdate()
    user = await user_service.update_user(
        db,
        username,
        username=body.username,
        email=body.email,
        password=body.password,
        now=clock(),
    )
    return _present(user)
