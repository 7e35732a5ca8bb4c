"""Create users, posts, post_likes and comments tables

Revision ID: 001
Revises: None
Create Date: 2026-10-17 00:00:00.000000+00:00

Rollback: downgrade() drops all four tables (destructive, all data lost).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(64), nullable=False,
                  comment="Public handle; referenced by posts/comments as plain text"),
        sa.Column("email", sa.String(255), nullable=False,
                  comment="Login identifier, stored lowercased"),
        sa.Column("password_hash", sa.String(128), nullable=False,
                  comment="bcrypt hash of the password"),
        sa.Column("bio", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("avatar_path", sa.String(255), nullable=True,
                  comment="Relative path from storage root to the avatar image"),
        sa.Column("language", sa.String(16), nullable=False, server_default=sa.text("'es'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "posts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user", sa.String(64), nullable=False,
                  comment="Author username (not a foreign key)"),
        sa.Column("title", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("text", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("image_path", sa.String(255), nullable=True,
                  comment="Relative path from storage root to the post image"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("likes", sa.Integer(), nullable=False, server_default=sa.text("0"),
                  comment="Always equal to the number of post_likes rows for this post"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("likes >= 0", name="ck_posts_likes_non_negative"),
    )
    # Feed is always read newest first
    op.create_index("idx_posts_created_at", "posts", [sa.text("created_at DESC")])

    op.create_table(
        "post_likes",
        sa.Column("post_id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.ForeignKeyConstraint(["post_id"], ["posts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("post_id", "username"),
    )

    # No foreign key on post_id: comments on unknown posts are accepted
    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("post_id", sa.Uuid(), nullable=False),
        sa.Column("user", sa.String(64), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_comments_post_id", "comments", ["post_id"])


def downgrade() -> None:
    op.drop_index("ix_comments_post_id", table_name="comments")
    op.drop_table("comments")
    op.drop_table("post_likes")
    op.drop_index("idx_posts_created_at", table_name="posts")
    op.drop_table("posts")
    op.drop_table("users")
