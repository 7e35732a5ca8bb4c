"""
SoulSocial Backend: Profile Route Handlers
============================================

What:  GET/PUT /api/profile/{username}.
Who:   The frontend profile page (view, edit bio/language/avatar).

A profile update changes what the feed shows (avatars), so it publishes a
`postsUpdated` event like every other mutation.
"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_broadcaster, get_session_subject, read_image_upload
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.user import ProfileResponse
from app.services.auth_service import resolve_actor
from app.services.broadcaster import Broadcaster
from app.services.file_service import file_service
from app.services.profile_service import profile_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["Profile"])


@router.get(
    "/{username}",
    response_model=ProfileResponse,
    responses={404: {"description": "No such user", "model": ErrorResponse}},
    summary="Public profile of a user",
)
async def get_profile(
    username: str,
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.get_profile(db, username)


@router.put(
    "/{username}",
    response_model=MessageResponse,
    responses={
        400: {"description": "Invalid language tag or avatar", "model": ErrorResponse},
        401: {"description": "Session token does not match the user", "model": ErrorResponse},
        404: {"description": "No such user", "model": ErrorResponse},
    },
    summary="Update bio, language and/or avatar",
)
async def update_profile(
    username: str,
    background_tasks: BackgroundTasks,
    bio: Optional[str] = Form(None),
    language: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    subject: Optional[str] = Depends(get_session_subject),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    """
    Partial update; omitted fields keep their value.

    The replaced avatar file is removed after the response, once the new
    path has been committed.
    """
    resolve_actor(username, subject)
    image = await read_image_upload(avatar)

    replaced = await profile_service.update_profile(
        db, username, bio=bio, language=language, avatar=image,
    )
    await db.commit()

    if replaced:
        background_tasks.add_task(file_service.cleanup_file, replaced)
    background_tasks.add_task(broadcaster.publish)

    return MessageResponse(message="Profile updated")
