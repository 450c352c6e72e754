import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from sessionauth.core.clock import ensure_utc


class SessionCreate(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class SessionRead(BaseModel):
    id: uuid.UUID
    token: str
    user_id: uuid.UUID
    expires_at: datetime
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("expires_at", "created_at", "updated_at")
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)
