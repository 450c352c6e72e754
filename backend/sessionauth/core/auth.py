"""Authentication: session issuance, sliding renewal, logout, login check.

Sessions are opaque bearer tokens stored server-side and carried in a
cookie. Every successful validation pushes expires_at a full window past
"now"; once a session has expired it can never be brought back.
"""

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import timedelta

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from sessionauth.config import settings
from sessionauth.core.clock import Clock, utc_now
from sessionauth.core.errors import UnauthorizedError
from sessionauth.core.passwords import verify_password
from sessionauth.dependencies import get_clock, get_db
from sessionauth.models.session import Session
from sessionauth.models.user import User
from sessionauth.services import session_service, user_service

logger = logging.getLogger("sessionauth.session")

TOKEN_BYTES = 48


def _generate_token() -> str:
    """Generate a cryptographically secure session token (96 hex chars)."""
    return secrets.token_hex(TOKEN_BYTES)


def _bad_credentials() -> UnauthorizedError:
    return UnauthorizedError(
        "Dados de autenticação não conferem.",
        action="Verifique se os dados enviados estão corretos.",
    )


class SessionManager:
    """Issues, validates and renews sessions.

    The expiration window and clock are fixed at construction.
    """

    def __init__(self, expiration: timedelta, clock: Clock = utc_now) -> None:
        if expiration <= timedelta(0):
            raise ValueError("session expiration must be positive")
        self._expiration = expiration
        self._clock = clock

    @property
    def expiration(self) -> timedelta:
        return self._expiration

    @property
    def max_age_seconds(self) -> int:
        return int(self._expiration.total_seconds())

    async def create(self, db: AsyncSession, user_id: uuid.UUID) -> Session:
        """Open a new session for user_id, valid for one full window."""
        now = self._clock()
        session = await session_service.insert(
            db,
            user_id=user_id,
            token=_generate_token(),
            expires_at=now + self._expiration,
            now=now,
        )
        logger.info("session created session_id=%s user_id=%s", session.id, user_id)
        return session

    async def validate_and_renew(self, db: AsyncSession, token: str | None) -> tuple[User, Session]:
        """Return (user, renewed session) or raise UnauthorizedError.

        Lookup and renewal are one conditional UPDATE, so a token that
        expired between two requests can never be renewed.
        """
        if not token:
            raise UnauthorizedError()

        now = self._clock()
        session = await session_service.renew(
            db, token, new_expiry=now + self._expiration, now=now
        )
        if session is None:
            logger.info("session rejected: no active session for token")
            raise UnauthorizedError()

        user = await user_service.find_by_id(db, session.user_id)
        if user is None:
            logger.warning(
                "session_id=%s references missing user_id=%s", session.id, session.user_id
            )
            raise UnauthorizedError()

        logger.debug("session renewed session_id=%s", session.id)
        return user, session

    async def expire(self, db: AsyncSession, token: str | None) -> Session:
        """End an active session (logout). Raises UnauthorizedError if none."""
        if not token:
            raise UnauthorizedError()

        session = await session_service.expire_active(db, token, now=self._clock())
        if session is None:
            raise UnauthorizedError()

        logger.info("session expired session_id=%s user_id=%s", session.id, session.user_id)
        return session

    async def authenticate(self, db: AsyncSession, *, email: str, password: str) -> User:
        """Check login credentials.

        Unknown email and wrong password raise the same error.
        """
        user = await user_service.find_by_email(db, email)
        if user is None or not verify_password(password, user.password):
            raise _bad_credentials()
        return user


def get_session_manager(clock: Clock = Depends(get_clock)) -> SessionManager:
    return SessionManager(settings.session_expiration, clock=clock)


@dataclass(frozen=True)
class AuthenticatedSession:
    user: User
    session: Session


def session_token(request: Request) -> str | None:
    return request.cookies.get(settings.session_cookie_name)


async def get_current_session(
    request: Request,
    db: AsyncSession = Depends(get_db),
    manager: SessionManager = Depends(get_session_manager),
) -> AuthenticatedSession:
    """FastAPI dependency: validate and renew the session cookie.

    Raises UnauthorizedError when the cookie is missing, unknown or expired.
    """
    user, session = await manager.validate_and_renew(db, session_token(request))
    request.state.user_id = user.id
    return AuthenticatedSession(user=user, session=session)


def set_session_cookie(response: Response, token: str, max_age: int) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite=None,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite=None,
    )
