"""
SoulSocial Backend: Comment SQLAlchemy Model
==============================================

What:  ORM model for the `comments` table.

Table Design Rationale:
    - post_id is indexed but has no foreign key constraint. Comments may be
      written for a post id that does not exist (the API does not check), and
      such rows are simply never shown.
    - Comments are never edited; they go away only when their post is deleted.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text, Uuid
from sqlalchemy import text as sql_text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.user import USERNAME_MAX_LENGTH


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
        comment="Parent post id (no FK constraint)",
    )

    user: Mapped[str] = mapped_column(String(USERNAME_MAX_LENGTH), nullable=False)

    text: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=sql_text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, post_id={self.post_id}, user='{self.user}')>"
