import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from sessionauth.models.base import Base, TimestampMixin, generate_uuid


class Session(TimestampMixin, Base):
    """Server-side session bound to one user.

    A session is active while now < expires_at. Expired rows are kept but
    never match a lookup again.
    """

    __tablename__ = "sessions"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    token: Mapped[str] = mapped_column(String(96), unique=True, nullable=False, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
