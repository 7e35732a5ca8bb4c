"""
SoulSocial Backend: Single-Page App Fallback
==============================================

What:  Serves the built frontend from STATIC_ROOT.
How:   A GET for an existing file under STATIC_ROOT returns that file
       (scripts, styles, /static assets); every other non-API path returns
       index.html so client-side routing can take over.

Must be registered after every other router: `/{full_path:path}` matches
anything.
"""

import logging
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

from app.config import settings
from app.exceptions import NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Frontend"], include_in_schema=False)

INDEX_FILE = "index.html"


@router.get("/{full_path:path}")
async def serve_frontend(full_path: str) -> FileResponse:
    # Unknown API paths stay JSON 404s instead of getting the HTML shell
    if full_path == "api" or full_path.startswith("api/"):
        raise NotFoundError(resource="route", resource_id=f"/{full_path}")

    static_root = Path(settings.static_root).resolve()

    if full_path:
        candidate = (static_root / full_path).resolve()
        if candidate.is_relative_to(static_root) and candidate.is_file():
            return FileResponse(path=str(candidate))

    index = static_root / INDEX_FILE
    if not index.is_file():
        logger.warning("Frontend not built: %s is missing", index)
        raise NotFoundError(resource="page", resource_id=f"/{full_path}")
    return FileResponse(path=str(index))
