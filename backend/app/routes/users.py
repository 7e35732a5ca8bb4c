"""
SoulSocial Backend: User Route Handlers
=========================================

What:  Registration, login and the read-only user lookup.
How:   Register is a multipart form (it may carry an avatar), login is JSON.
       Both return the identity the client keeps locally plus a session token.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import read_image_upload
from app.schemas.common import ErrorResponse
from app.schemas.user import AuthResponse, LoginRequest, ProfileResponse
from app.services.auth_service import auth_service
from app.services.profile_service import profile_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    responses={
        400: {"description": "Invalid field, duplicate email or username", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    username: str = Form(..., description="Public username"),
    email: str = Form(..., description="Login email"),
    password: str = Form(..., description="Password (max 72 bytes)"),
    avatar: Optional[UploadFile] = File(None, description="Optional avatar image"),
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    image = await read_image_upload(avatar)
    return await auth_service.register(db, username, email, password, avatar=image)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid email or password", "model": ErrorResponse}},
    summary="Log in with email and password",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    return await auth_service.login(db, body.email, body.password)


@router.get(
    "/{username}",
    response_model=ProfileResponse,
    responses={404: {"description": "No such user", "model": ErrorResponse}},
    summary="Public profile of a user",
)
async def get_user(
    username: str,
    db: AsyncSession = Depends(get_db_session),
) -> ProfileResponse:
    return await profile_service.get_profile(db, username)
