"""Session store: persistence rules for session rows.

Expiry is always part of the SQL predicate (expires_at > now) so that the
check and the write happen in one statement.
"""

import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sessionauth.models.session import Session


async def insert(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    token: str,
    expires_at: datetime,
    now: datetime,
) -> Session:
    session = Session(
        user_id=user_id,
        token=token,
        expires_at=expires_at,
        created_at=now,
        updated_at=now,
    )
    db.add(session)
    await db.flush()
    return session


async def find_active_by_token(
    db: AsyncSession,
    token: str,
    *,
    now: datetime,
) -> Session | None:
    """Return the session for token if it has not expired at `now`."""
    result = await db.execute(
        select(Session).where(Session.token == token, Session.expires_at > now)
    )
    return result.scalar_one_or_none()


async def _update_active(
    db: AsyncSession,
    token: str,
    *,
    now: datetime,
    expires_at: datetime,
) -> Session | None:
    stmt = (
        update(Session)
        .where(Session.token == token, Session.expires_at > now)
        .values(expires_at=expires_at, updated_at=now)
        .returning(Session)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def renew(
    db: AsyncSession,
    token: str,
    *,
    new_expiry: datetime,
    now: datetime,
) -> Session | None:
    """Slide an active session's expiry to new_expiry.

    Returns None when no session with this token is active at `now`; an
    expired row is left untouched.
    """
    return await _update_active(db, token, now=now, expires_at=new_expiry)


async def expire_active(
    db: AsyncSession,
    token: str,
    *,
    now: datetime,
) -> Session | None:
    """End an active session by moving expires_at to `now`."""
    return await _update_active(db, token, now=now, expires_at=now)
