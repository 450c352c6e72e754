"""User store: create, look up and update user accounts.

Usernames are unique case-insensitively, emails exactly as stored. The
checks below give field-specific errors; the database constraints are what
actually settle a race between two concurrent writers.

Case folding is done by the database's lower() on both sides of every
username comparison, so lookups and the lower(username) unique index always
agree.
"""

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sessionauth.core.clock import utc_now
from sessionauth.core.errors import NotFoundError, ValidationError
from sessionauth.core.passwords import hash_password
from sessionauth.models.user import User

logger = logging.getLogger("sessionauth.users")


def _username_taken() -> ValidationError:
    return ValidationError(
        "O username informado já está sendo utilizado.",
        action="Utilize outro username para realizar esta operação.",
    )


def _email_taken() -> ValidationError:
    return ValidationError(
        "O email informado já está sendo utilizado.",
        action="Utilize outro email para realizar esta operação.",
    )


def _username_matches(username: str):
    return func.lower(User.username) == func.lower(username)


async def _validate_unique_username(
    db: AsyncSession, username: str, *, exclude_id: uuid.UUID | None = None
) -> None:
    stmt = select(User.id).where(_username_matches(username))
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    if result.first() is not None:
        raise _username_taken()


async def _validate_unique_email(
    db: AsyncSession, email: str, *, exclude_id: uuid.UUID | None = None
) -> None:
    stmt = select(User.id).where(User.email == email)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    if result.first() is not None:
        raise _email_taken()


@asynccontextmanager
async def _unique_write(
    db: AsyncSession,
    *,
    username: str | None,
    email: str | None,
    exclude_id: uuid.UUID | None = None,
) -> AsyncIterator[None]:
    """Run the enclosed changes in a SAVEPOINT.

    Changes must be made inside the block: entering begin_nested() flushes
    whatever was already pending, and the block's own writes are flushed on
    exit. A lost uniqueness race only rolls back to the savepoint and is
    reported as ValidationError; earlier writes in the transaction survive.
    """
    try:
        async with db.begin_nested():
            yield
    except IntegrityError:
        if username is not None:
            await _validate_unique_username(db, username, exclude_id=exclude_id)
        if email is not None:
            await _validate_unique_email(db, email, exclude_id=exclude_id)
        raise


async def create_user(
    db: AsyncSession,
    *,
    username: str,
    email: str,
    password: str,
    now: datetime | None = None,
) -> User:
    """Create a user with a hashed password. Raises ValidationError on duplicates."""
    await _validate_unique_username(db, username)
    await _validate_unique_email(db, email)

    now = now or utc_now()
    user = User(
        username=username,
        email=email,
        password=hash_password(password),
        created_at=now,
        updated_at=now,
    )
    async with _unique_write(db, username=username, email=email):
        db.add(user)

    logger.info("user created user_id=%s", user.id)
    return user


async def find_by_username(db: AsyncSession, username: str) -> User:
    """Case-insensitive lookup. Raises NotFoundError."""
    result = await db.execute(select(User).where(_username_matches(username)))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(
            "O username informado não foi encontrado no sistema.",
            action="Verifique se o username está digitado corretamente.",
        )
    return user


async def find_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def find_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def update_user(
    db: AsyncSession,
    current_username: str,
    *,
    username: str | None = None,
    email: str | None = None,
    password: str | None = None,
    now: datetime | None = None,
) -> User:
    """Apply a partial update to the user named current_username.

    A field left as None is not touched. Collisions are only checked against
    other users, so re-sending a user's own values succeeds. updated_at is
    refreshed on every successful call.
    """
    user = await find_by_username(db, current_username)
    user_id = user.id

    if username is not None:
        await _validate_unique_username(db, username, exclude_id=user_id)
    if email is not None:
        await _validate_unique_email(db, email, exclude_id=user_id)

    async with _unique_write(db, username=username, email=email, exclude_id=user_id):
        if username is not None:
            user.username = username
        if email is not None:
            user.email = email
        if password is not None:
            user.password = hash_password(password)
        user.updated_at = now or utc_now()

    logger.info(
        "user updated user_id=%s fields=%s",
        user_id,
        ",".join(
            name
            for name, value in (("username", username), ("email", email), ("password", password))
            if value is not None
        )
        or "-",
    )
    return user
