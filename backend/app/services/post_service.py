"""
SoulSocial Backend: Post Service
==================================

What:  Feed listing, single post retrieval, create/edit/delete and the like
       toggle.
Why:   Encapsulates all post rules in one place, independent of HTTP.
Who:   Called by the posts routes; the routes publish the realtime event.

Feed Assembly (GET /api/posts):
    1. SELECT posts ORDER BY created_at DESC
    2. SELECT all post_likes            → grouped by post_id
    3. SELECT all comments ORDER BY created_at
                                        → grouped by post_id
    Three queries regardless of feed size: O(posts + comments), no per-post
    round trips. Comments whose post no longer exists are simply not shown.

Like Toggle:
    The post row is locked (SELECT ... FOR UPDATE) so concurrent toggles on
    the same post run one after another inside their transactions. The like
    row is deleted if present, inserted otherwise, and `likes` is recounted
    from post_likes, which keeps likes == |liker set| by construction.
    SQLite ignores FOR UPDATE but only allows one writer at a time anyway.

Delete:
    Post, likes and comments are removed with three statements in the
    request's transaction (see get_db_session), so a failure leaves nothing
    half-deleted.
"""

import logging
import uuid
from collections import defaultdict
from typing import Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import AuthError, DatabaseError, NotFoundError, SoulSocialError, ValidationError
from app.models.comment import Comment
from app.models.post import Post, PostLike
from app.schemas.post import (
    CommentResponse,
    LikeResponse,
    PostResponse,
)
from app.services.auth_service import ensure_can_modify
from app.services.file_service import POST_IMAGES, ImageUpload, file_service

logger = logging.getLogger(__name__)

ANONYMOUS = "Anonymous"


def parse_post_id(raw: str) -> uuid.UUID:
    """
    Turn a path segment into a post id.

    Raises:
        ValidationError: not a structurally valid id (→ 400, never 404/500)
    """
    try:
        return uuid.UUID(str(raw))
    except (ValueError, AttributeError):
        raise ValidationError(
            message=f"'{raw}' is not a valid post id",
            field="post_id",
        )


def build_post_response(
    post: Post,
    liked_by: Optional[List[str]] = None,
    comments: Optional[List[Comment]] = None,
) -> PostResponse:
    return PostResponse(
        id=post.id,
        user=post.user,
        title=post.title,
        text=post.text,
        image=file_service.public_url(post.image_path),
        created_at=post.created_at,
        likes=max(post.likes or 0, 0),
        liked_by=liked_by or [],
        comments=[CommentResponse.model_validate(c) for c in comments or []],
    )


class PostService:
    """
    Business logic layer for posts.

    Error Handling Strategy:
        Application exceptions propagate unchanged; unexpected failures while
        reading the feed are wrapped in DatabaseError (generic 500).
    """

    async def _get_post(self, db: AsyncSession, post_id: uuid.UUID, lock: bool = False) -> Post:
        query = select(Post).where(Post.id == post_id)
        if lock:
            query = query.with_for_update()
        result = await db.execute(query)
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError(resource="post", resource_id=str(post_id))
        return post

    async def create_post(
        self,
        db: AsyncSession,
        title: str,
        text: str,
        username: Optional[str],
        image: Optional[ImageUpload] = None,
    ) -> PostResponse:
        """
        Insert a post with likes = 0 and a server timestamp.

        Args:
            username: Acting username, already resolved by the caller;
                      None/blank becomes "Anonymous".
        """
        image_path: Optional[str] = None
        if image is not None:
            image_path = await file_service.validate_and_store(
                filename=image.filename,
                content=image.content,
                content_type=image.content_type,
                kind=POST_IMAGES,
            )

        post = Post(
            user=(username or "").strip() or ANONYMOUS,
            title=title or "",
            text=text or "",
            image_path=image_path,
            likes=0,
        )
        db.add(post)
        try:
            await db.flush()
        except Exception:
            await file_service.cleanup_file(image_path)
            raise

        logger.info("Post %s created by %s", post.id, post.user)
        return build_post_response(post)

    async def list_posts(self, db: AsyncSession) -> List[PostResponse]:
        """Every post, newest first, each with its likers and comments."""
        try:
            posts = list((await db.execute(
                select(Post).order_by(Post.created_at.desc())
            )).scalars().all())

            likes_by_post: Dict[uuid.UUID, List[str]] = defaultdict(list)
            for like in (await db.execute(
                select(PostLike).order_by(PostLike.created_at)
            )).scalars().all():
                likes_by_post[like.post_id].append(like.username)

            comments_by_post: Dict[uuid.UUID, List[Comment]] = defaultdict(list)
            for comment in (await db.execute(
                select(Comment).order_by(Comment.created_at)
            )).scalars().all():
                comments_by_post[comment.post_id].append(comment)

            return [
                build_post_response(post, likes_by_post.get(post.id), comments_by_post.get(post.id))
                for post in posts
            ]

        except SoulSocialError:
            raise
        except Exception as e:
            logger.error("Database error listing posts: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve posts. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_post(self, db: AsyncSession, raw_id: str) -> PostResponse:
        """
        Raises:
            ValidationError: malformed id (400)
            NotFoundError:   no such post (404)
        """
        post_id = parse_post_id(raw_id)
        post = await self._get_post(db, post_id)

        liked_by = (await db.execute(
            select(PostLike.username)
            .where(PostLike.post_id == post_id)
            .order_by(PostLike.created_at)
        )).scalars().all()

        comments = (await db.execute(
            select(Comment)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at)
        )).scalars().all()

        return build_post_response(post, list(liked_by), list(comments))

    async def update_post(
        self,
        db: AsyncSession,
        raw_id: str,
        title: Optional[str] = None,
        text: Optional[str] = None,
        subject: Optional[str] = None,
    ) -> None:
        """
        Partial edit of title and/or text. Nothing else on the post can change.

        Args:
            subject: Username from a verified session token, if any.
        """
        post_id = parse_post_id(raw_id)
        post = await self._get_post(db, post_id)
        ensure_can_modify(post.user, subject)

        if title is not None:
            post.title = title
        if text is not None:
            post.text = text
        await db.flush()
        logger.info("Post %s updated", post_id)

    async def delete_post(
        self,
        db: AsyncSession,
        raw_id: str,
        subject: Optional[str] = None,
    ) -> Optional[str]:
        """
        Delete a post together with its likes and comments.

        Returns:
            Relative path of the post's image (removed by the caller after
            commit), or None.
        """
        post_id = parse_post_id(raw_id)
        post = await self._get_post(db, post_id)
        ensure_can_modify(post.user, subject)
        image_path = post.image_path

        await db.execute(delete(PostLike).where(PostLike.post_id == post_id))
        removed = await db.execute(delete(Comment).where(Comment.post_id == post_id))
        await db.delete(post)
        await db.flush()

        logger.info("Post %s deleted with %d comment(s)", post_id, removed.rowcount or 0)
        return image_path

    async def toggle_like(
        self,
        db: AsyncSession,
        raw_id: str,
        username: Optional[str],
    ) -> LikeResponse:
        """
        Like the post if `username` does not like it yet, otherwise unlike it.

        Raises:
            AuthError:       no acting username (401)
            ValidationError: malformed id (400)
            NotFoundError:   no such post (404)
        """
        username = (username or "").strip()
        if not username:
            raise AuthError(message="You must be logged in to like posts")

        post_id = parse_post_id(raw_id)
        post = await self._get_post(db, post_id, lock=True)

        removed = await db.execute(
            delete(PostLike).where(
                PostLike.post_id == post_id,
                PostLike.username == username,
            )
        )
        liked = not removed.rowcount
        if liked:
            db.add(PostLike(post_id=post_id, username=username))
            await db.flush()

        count = await db.scalar(
            select(func.count()).select_from(PostLike).where(PostLike.post_id == post_id)
        )
        post.likes = max(count or 0, 0)
        await db.flush()

        logger.info(
            "%s %s post %s (likes=%d)",
            username, "liked" if liked else "unliked", post_id, post.likes,
        )
        return LikeResponse(likes=post.likes, liked=liked)


# ── Singleton Instance ────────────────────────────────────────────────────
post_service = PostService()
