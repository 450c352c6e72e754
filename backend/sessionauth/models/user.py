import uuid

from sqlalchemy import Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from sessionauth.models.base import Base, TimestampMixin, generate_uuid


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=generate_uuid)
    username: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(254), unique=True, nullable=False, index=True)
    # bcrypt hash, never the plaintext
    password: Mapped[str] = mapped_column(String(72), nullable=False)


# Usernames are unique regardless of case.
Index("uq_users_username_lower", func.lower(User.username), unique=True)
