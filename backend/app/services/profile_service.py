"""
SoulSocial Backend: Profile Service
=====================================

What:  Read and partially update a user's public profile
       (bio, language, avatar).
Who:   Called by GET /api/users/{username}, GET/PUT /api/profile/{username}.
"""

import logging
import re
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError, ValidationError
from app.models.post import Post
from app.models.user import User
from app.schemas.user import ProfileResponse
from app.services.file_service import AVATARS, ImageUpload, file_service

logger = logging.getLogger(__name__)

# Language tags such as "es", "en", "pt-BR", "zh-Hant"
_LANGUAGE_RE = re.compile(r"^[A-Za-z]{2,3}(-[A-Za-z0-9]{1,8})*$")
MAX_LANGUAGE_LENGTH = 16


class ProfileService:

    async def _get_user(self, db: AsyncSession, username: str) -> User:
        result = await db.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(resource="user", resource_id=username)
        return user

    async def get_profile(self, db: AsyncSession, username: str) -> ProfileResponse:
        """
        Return the public profile, with the number of posts the user wrote.

        post_count is counted live on every request rather than stored, so it
        is always consistent with the posts table.
        """
        user = await self._get_user(db, username)
        post_count = await db.scalar(
            select(func.count(Post.id)).where(Post.user == user.username)
        )
        return ProfileResponse(
            username=user.username,
            bio=user.bio or "",
            avatar=file_service.public_url(user.avatar_path),
            language=user.language or "es",
            post_count=post_count or 0,
        )

    async def update_profile(
        self,
        db: AsyncSession,
        username: str,
        bio: Optional[str] = None,
        language: Optional[str] = None,
        avatar: Optional[ImageUpload] = None,
    ) -> Optional[str]:
        """
        Apply a partial update; fields left as None are not touched.

        Returns:
            Relative path of the avatar that was replaced (the caller removes
            it once the transaction has committed), or None.

        Raises:
            NotFoundError:   no such user
            ValidationError: malformed language tag or avatar
        """
        user = await self._get_user(db, username)

        if language is not None:
            language = language.strip()
            if len(language) > MAX_LANGUAGE_LENGTH or not _LANGUAGE_RE.match(language):
                raise ValidationError(
                    message=f"'{language}' is not a valid language tag",
                    field="language",
                )
            user.language = language

        if bio is not None:
            user.bio = bio

        replaced: Optional[str] = None
        if avatar is not None:
            new_path = await file_service.validate_and_store(
                filename=avatar.filename,
                content=avatar.content,
                content_type=avatar.content_type,
                kind=AVATARS,
            )
            replaced = user.avatar_path
            user.avatar_path = new_path

        try:
            await db.flush()
        except Exception:
            if avatar is not None:
                await file_service.cleanup_file(user.avatar_path)
            raise

        logger.info("Profile updated for %s", username)
        return replaced


# ── Singleton Instance ────────────────────────────────────────────────────
profile_service = ProfileService()
