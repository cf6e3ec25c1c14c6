"""
User model for identity management.
"""

import uuid
from typing import Optional

from sqlalchemy import String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from vidtube.kernel.models.base import Base, TimestampMixin, generate_uuid


class User(Base, TimestampMixin):
    """
    Registered account.

    ``refresh_token`` holds the single active session. Writing a new value
    invalidates whatever was stored before; ``None`` means logged out.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    username: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    full_name: Mapped[str] = mapped_column(
        String(255),
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    avatar_url: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
    )
    cover_image_url: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
    )
    refresh_token: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        default=None,
    )

    def __repr__(self) -> str:
        return f"<User {self.username}>"
