"""
SoulSocial Backend: Post Route Handlers
=========================================

What:  Feed, post CRUD, like toggle and comments under /api/posts.
How:   Thin handlers: resolve who is acting, call the service, commit,
       publish `postsUpdated`, return.

Request Flow for a mutation:
    1. Resolve the acting username (Bearer token and/or plain field)
    2. Service applies the change inside the request's transaction
    3. Route commits, so the change is visible to anyone who re-fetches
    4. Background tasks run after the response: one `postsUpdated` publish,
       plus file cleanup for a deleted post image

Post ids are taken as plain strings and parsed by the service, so a malformed
id answers 400 with the usual error body instead of FastAPI's 422.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_broadcaster, get_session_subject, read_image_upload
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.post import (
    CommentCreatedResponse,
    CommentCreateRequest,
    LikeRequest,
    LikeResponse,
    PostCreatedResponse,
    PostResponse,
    PostUpdateRequest,
)
from app.services.auth_service import resolve_actor
from app.services.broadcaster import Broadcaster
from app.services.comment_service import comment_service
from app.services.file_service import file_service
from app.services.post_service import post_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])

_INVALID_ID = {"description": "Malformed post id", "model": ErrorResponse}
_NOT_FOUND = {"description": "No such post", "model": ErrorResponse}
_UNAUTHORIZED = {"description": "Missing or mismatched identity", "model": ErrorResponse}


@router.get(
    "",
    response_model=List[PostResponse],
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="Full feed, newest first",
)
async def list_posts(db: AsyncSession = Depends(get_db_session)) -> List[PostResponse]:
    return await post_service.list_posts(db)


@router.post(
    "",
    status_code=201,
    response_model=PostCreatedResponse,
    responses={400: {"description": "Invalid image", "model": ErrorResponse}, 401: _UNAUTHORIZED},
    summary="Create a post",
)
async def create_post(
    background_tasks: BackgroundTasks,
    title: str = Form(""),
    text: str = Form(""),
    username: Optional[str] = Form(None, description="Author; 'Anonymous' when omitted"),
    image: Optional[UploadFile] = File(None, description="Optional image"),
    subject: Optional[str] = Depends(get_session_subject),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    db: AsyncSession = Depends(get_db_session),
) -> PostCreatedResponse:
    author = resolve_actor(username, subject)
    upload = await read_image_upload(image)

    post = await post_service.create_post(db, title, text, author, image=upload)
    await db.commit()
    background_tasks.add_task(broadcaster.publish)

    return PostCreatedResponse(post=post)


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    responses={400: _INVALID_ID, 404: _NOT_FOUND},
    summary="Single post with its comments",
)
async def get_post(
    post_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    return await post_service.get_post(db, post_id)


@router.put(
    "/{post_id}",
    response_model=MessageResponse,
    responses={400: _INVALID_ID, 401: _UNAUTHORIZED, 404: _NOT_FOUND},
    summary="Edit title and/or text",
)
async def update_post(
    post_id: str,
    body: PostUpdateRequest,
    background_tasks: BackgroundTasks,
    subject: Optional[str] = Depends(get_session_subject),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await post_service.update_post(db, post_id, title=body.title, text=body.text, subject=subject)
    await db.commit()
    background_tasks.add_task(broadcaster.publish)
    return MessageResponse(message="Post updated")


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    responses={400: _INVALID_ID, 401: _UNAUTHORIZED, 404: _NOT_FOUND},
    summary="Delete a post with its likes and comments",
)
async def delete_post(
    post_id: str,
    background_tasks: BackgroundTasks,
    subject: Optional[str] = Depends(get_session_subject),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    image_path = await post_service.delete_post(db, post_id, subject=subject)
    await db.commit()

    if image_path:
        background_tasks.add_task(file_service.cleanup_file, image_path)
    background_tasks.add_task(broadcaster.publish)

    return MessageResponse(message="Post deleted")


@router.post(
    "/{post_id}/like",
    response_model=LikeResponse,
    responses={400: _INVALID_ID, 401: _UNAUTHORIZED, 404: _NOT_FOUND},
    summary="Like or unlike a post",
)
async def toggle_like(
    post_id: str,
    body: LikeRequest,
    background_tasks: BackgroundTasks,
    subject: Optional[str] = Depends(get_session_subject),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    db: AsyncSession = Depends(get_db_session),
) -> LikeResponse:
    actor = resolve_actor(body.username, subject)

    result = await post_service.toggle_like(db, post_id, actor)
    await db.commit()
    background_tasks.add_task(broadcaster.publish)

    return result


@router.post(
    "/{post_id}/comment",
    response_model=CommentCreatedResponse,
    responses={400: {"description": "Malformed post id or blank text", "model": ErrorResponse}},
    summary="Comment on a post",
)
async def create_comment(
    post_id: str,
    body: CommentCreateRequest,
    background_tasks: BackgroundTasks,
    subject: Optional[str] = Depends(get_session_subject),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    db: AsyncSession = Depends(get_db_session),
) -> CommentCreatedResponse:
    author = resolve_actor(body.user, subject)

    comment = await comment_service.create_comment(db, post_id, author, body.text)
    await db.commit()
    background_tasks.add_task(broadcaster.publish)

    return CommentCreatedResponse(comment=comment)
