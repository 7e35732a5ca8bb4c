"""
SoulSocial Backend: Stored File Route
=======================================

What:  GET /api/files/{path} serves uploaded images (post images, avatars).
Who:   <img> tags in the frontend, via the `image`/`avatar` URLs the API returns.

Stored files never change (every upload gets a new UUID name), so they are
the one kind of response that may be cached.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import FileResponse

from app.schemas.common import ErrorResponse
from app.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["Files"])


@router.get(
    "/{file_path:path}",
    response_class=FileResponse,
    responses={
        400: {"description": "Path escapes the storage root", "model": ErrorResponse},
        404: {"description": "No such file", "model": ErrorResponse},
    },
    summary="Serve a stored image",
)
async def serve_file(file_path: str) -> FileResponse:
    # resolve() rejects ../ tricks and missing files
    full_path = file_service.resolve(file_path)
    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
