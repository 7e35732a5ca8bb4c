"""
SoulSocial Backend: User SQLAlchemy Model
===========================================

What:  ORM model representing the `users` table.
Who:   Used by AuthService (register/login) and ProfileService (view/edit).

Table Design Rationale:
    - username and email are both unique; posts and comments reference the
      username as plain text (no foreign key), so a user row can disappear
      without touching their posts.
    - password_hash: bcrypt output (60 chars incl. salt and cost)
    - avatar_path: relative path under STORAGE_ROOT, NULL when no avatar
    - language: UI language tag, defaults to 'es' like the legacy server

    USERNAME_MAX_LENGTH and EMAIL_MAX_LENGTH bound the columns; services check
    input against them so an overlong value is a 400, not a database error.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

USERNAME_MAX_LENGTH = 64
EMAIL_MAX_LENGTH = 255


class User(Base):
    """
    A registered account.

    Lifecycle:
        1. Created by POST /api/users/register
        2. Updated by PUT /api/profile/{username} (bio, language, avatar)
        3. Never deleted by the API
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    username: Mapped[str] = mapped_column(
        String(USERNAME_MAX_LENGTH),
        nullable=False,
        unique=True,
        comment="Public handle; referenced by posts/comments as plain text",
    )

    email: Mapped[str] = mapped_column(
        String(EMAIL_MAX_LENGTH),
        nullable=False,
        unique=True,
        comment="Login identifier, stored lowercased",
    )

    password_hash: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="bcrypt hash of the password",
    )

    bio: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=text("''"),
    )

    avatar_path: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        default=None,
        comment="Relative path from storage root to the avatar image",
    )

    language: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="es",
        server_default=text("'es'"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<User(username='{self.username}')>"
