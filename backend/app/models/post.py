"""
SoulSocial Backend: Post and PostLike SQLAlchemy Models
=========================================================

What:  ORM models for the `posts` table and its liker set, `post_likes`.
Who:   Used by PostService for CRUD and the like toggle.

Table Design Rationale:
    - user: author username as free text. Anonymous posts store "Anonymous".
    - title: unbounded text, like the body; legacy titles had no limit
    - image_path: relative path from STORAGE_ROOT; images are never inlined
      in the row (see DESIGN.md, canonical image representation)
    - likes: denormalized counter kept equal to the number of post_likes rows
      for the post. The list endpoint reads it without counting.
    - post_likes: composite primary key (post_id, username) makes "one like
      per user per post" a database constraint instead of a membership check.

    Index on created_at DESC:
        The feed is always read newest first.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy import text as sql_text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.user import USERNAME_MAX_LENGTH


class Post(Base):
    """
    A post in the shared feed.

    Lifecycle:
        1. Created by POST /api/posts with likes = 0
        2. Title/text edited by PUT /api/posts/{id}
        3. likes changed only through the like toggle
        4. Deleted by DELETE /api/posts/{id}, together with its likes and
           comments in the same transaction
    """

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user: Mapped[str] = mapped_column(
        String(USERNAME_MAX_LENGTH),
        nullable=False,
        comment="Author username (not a foreign key)",
    )

    title: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=sql_text("''"),
    )

    text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default=sql_text("''"),
    )

    image_path: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        default=None,
        comment="Relative path from storage root to the post image",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=sql_text("CURRENT_TIMESTAMP"),
    )

    likes: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=sql_text("0"),
        comment="Always equal to the number of post_likes rows for this post",
    )

    __table_args__ = (
        Index("idx_posts_created_at", created_at.desc()),
        CheckConstraint("likes >= 0", name="ck_posts_likes_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, user='{self.user}', likes={self.likes})>"


class PostLike(Base):
    """One row per (post, username) that currently likes the post."""

    __tablename__ = "post_likes"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        primary_key=True,
    )

    username: Mapped[str] = mapped_column(
        String(USERNAME_MAX_LENGTH),
        primary_key=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=sql_text("CURRENT_TIMESTAMP"),
    )
