import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from sessionauth.core.clock import ensure_utc
from sessionauth.core.passwords import MAX_PASSWORD_BYTES
from sessionauth.models.user import User

MAX_USERNAME_BYTES = 30
MAX_EMAIL_BYTES = 254


def _check_bytes(value: str | None, limit: int) -> str | None:
    if value is not None and len(value.encode("utf-8")) > limit:
        raise ValueError(f"must be at most {limit} bytes")
    return value


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=MAX_USERNAME_BYTES)
    email: str = Field(..., min_length=3, max_length=MAX_EMAIL_BYTES)
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_BYTES)

    @field_validator("username")
    @classmethod
    def _username_bytes(cls, v: str) -> str:
        return _check_bytes(v, MAX_USERNAME_BYTES)

    @field_validator("email")
    @classmethod
    def _email_bytes(cls, v: str) -> str:
        return _check_bytes(v, MAX_EMAIL_BYTES)

    @field_validator("password")
    @classmethod
    def _password_bytes(cls, v: str) -> str:
        return _check_bytes(v, MAX_PASSWORD_BYTES)


class UserUpdate(BaseModel):
    """Partial update; omitted fields stay as they are."""

    username: str | None = Field(default=None, min_length=1, max_length=MAX_USERNAME_BYTES)
    email: str | None = Field(default=None, min_length=3, max_length=MAX_EMAIL_BYTES)
    password: str | None = Field(default=None, min_length=1, max_length=MAX_PASSWORD_BYTES)

    @field_validator("username")
    @classmethod
    def _username_bytes(cls, v: str | None) -> str | None:
        return _check_bytes(v, MAX_USERNAME_BYTES)

    @field_validator("email")
    @classmethod
    def _email_bytes(cls, v: str | None) -> str | None:
        return _check_bytes(v, MAX_EMAIL_BYTES)

    @field_validator("password")
    @classmethod
    def _password_bytes(cls, v: str | None) -> str | None:
        return _check_bytes(v, MAX_PASSWORD_BYTES)


class UserRead(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    # bcrypt hash; omitted when the deployment hides it
    password: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @classmethod
    def from_user(cls, user: User, *, expose_password: bool) -> "UserRead":
        read = cls.model_validate(user)
        if not expose_password:
            read.password = None
        return read
