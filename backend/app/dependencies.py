"""
SoulSocial Backend: Shared Route Dependencies
===============================================

What:  FastAPI dependencies reused by several routers.

    - get_broadcaster:     the app's realtime Broadcaster (app.state)
    - get_session_subject: username from an optional Bearer token
    - read_image_upload:   multipart file → ImageUpload (or None)
"""

from typing import Optional

from fastapi import Depends, UploadFile
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import HTTPConnection

from app.services.auth_service import decode_token
from app.services.broadcaster import Broadcaster
from app.services.file_service import ImageUpload

# auto_error=False: the token is optional; routes decide what a missing one means
bearer_scheme = HTTPBearer(auto_error=False)


def get_broadcaster(conn: HTTPConnection) -> Broadcaster:
    # HTTPConnection so the same dependency works for HTTP and WebSocket routes
    return conn.app.state.broadcaster


async def get_session_subject(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """
    Returns the username of a valid Bearer token, None when no token was sent.

    Raises:
        AuthError: a token was sent but is expired or invalid (401)
    """
    if credentials is None:
        return None
    return decode_token(credentials.credentials)


async def read_image_upload(file: Optional[UploadFile]) -> Optional[ImageUpload]:
    """
    Read an optional multipart image into memory.

    Browsers submit an empty part (no filename, no bytes) when the file input
    was left blank; that counts as "no image".
    """
    if file is None or not file.filename:
        return None
    content = await file.read()
    if not content:
        return None
    return ImageUpload(
        filename=file.filename,
        content=content,
        content_type=file.content_type,
    )
