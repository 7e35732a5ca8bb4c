"""
SoulSocial Backend: Comment Service
=====================================

What:  Adds comments to posts.

Comments are written without checking that the post exists: a comment on a
missing post id is stored and never shown (the feed only attaches comments to
posts it returns). Only the id format is checked.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ValidationError
from app.models.comment import Comment
from app.schemas.post import CommentResponse
from app.services.post_service import ANONYMOUS, parse_post_id

logger = logging.getLogger(__name__)


class CommentService:

    async def create_comment(
        self,
        db: AsyncSession,
        raw_post_id: str,
        user: Optional[str],
        text: str,
    ) -> CommentResponse:
        """
        Raises:
            ValidationError: malformed post id or blank text (400)
        """
        post_id = parse_post_id(raw_post_id)
        text = (text or "").strip()
        if not text:
            raise ValidationError(message="Comment text is required", field="text")

        comment = Comment(
            post_id=post_id,
            user=(user or "").strip() or ANONYMOUS,
            text=text,
        )
        db.add(comment)
        await db.flush()

        logger.info("Comment %s added to post %s by %s", comment.id, post_id, comment.user)
        return CommentResponse.model_validate(comment)


# ── Singleton Instance ────────────────────────────────────────────────────
comment_service = CommentService()
