"""
SoulSocial Backend: File Storage Service
==========================================

What:  Handles upload validation, storage, lookup and cleanup of images
       (post images and user avatars).
Why:   Centralizes all file system operations with security checks.
How:   Validates extension, declared content type, size and the actual image
       bytes (Pillow), stores files in
       date-organized directories under a per-kind prefix, generates unique
       filenames to prevent conflicts.
Who:   Called by PostService, AuthService, ProfileService and the legacy
       importer; the files route uses resolve() to serve stored images.

Storage Layout:
    storage/
    ├── posts/2024/01/15/a1b2c3d4-....jpg
    └── avatars/2024/01/15/e5f6g7h8-....png

    The database only ever holds the relative path ("posts/2024/01/15/...");
    API responses expose it as /api/files/<relative path>.

Security Model:
    1. Extension check:     fast rejection of non-image names
    2. Content type check:  declared multipart type must be an image type
    3. Size check:          empty and oversized uploads are rejected
    4. Content check:       Pillow must decode the bytes as PNG, JPEG, GIF or
                            WebP, matching the extension
    5. UUID filename:       no user input ever reaches the file system path
    6. resolve():           served paths must stay inside the storage root
"""

import base64
import binascii
import logging
import os
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
from PIL import Image, UnidentifiedImageError

from app.config import settings
from app.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

# Pillow format name -> stored extension
IMAGE_FORMATS = {"PNG": ".png", "JPEG": ".jpg", "GIF": ".gif", "WEBP": ".webp"}

# Storage prefixes, one per kind of image
POST_IMAGES = "posts"
AVATARS = "avatars"

FILES_URL_PREFIX = "/api/files/"

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<payload>.+)$", re.DOTALL)


@dataclass
class ImageUpload:
    """An uploaded image, already read into memory by the route."""
    filename: str
    content: bytes
    content_type: Optional[str] = None


class FileService:
    """
    Manages image upload, validation, and storage lifecycle.

    Lifecycle of an uploaded file:
        1. Route reads the multipart UploadFile into memory
        2. validate_and_store(): extension → size → content type → bytes → write
        3. Relative path is returned and stored on the row
        4. On replacement/deletion: cleanup_file() removes the old file
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """
        Returns: Normalized extension (lowercase with dot, .jpeg → .jpg).
        Raises:  ValidationError if extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ".jpg" if ext == ".jpeg" else ext

    def validate_size(self, actual_size: int) -> None:
        """Rejects empty uploads and uploads above settings.max_file_size."""
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(
                message="The uploaded file is empty.",
                field="file",
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File is too large ({actual_size / (1024 * 1024):.1f}MB). Maximum is {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_content_type(self, content_type: Optional[str]) -> None:
        """
        Check the content type the client declared for the part.

        A missing type is accepted (some clients omit it); the extension check
        has already run by then.
        """
        if content_type is None:
            return
        mime = content_type.split(";")[0].strip().lower()
        if mime not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=f"Content type '{mime}' is not supported. The file must be an image.",
                field="file",
                context={"content_type": mime, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )

    def validate_image_content(self, content: bytes, expected_extension: Optional[str] = None) -> str:
        """
        Validate the actual image by decoding its bytes.

        What:    Pillow identifies the format from the file header and verify()
                 walks the data without decoding every pixel.
        Why:     Extension and declared type are client input; renamed HTML or
                 scripts would otherwise be stored and served as images.

        Args:
            content: Raw bytes of the upload
            expected_extension: Normalized extension the file was named with;
                                the detected format must match it when given

        Returns:
            Extension for the detected format (".png", ".jpg", ".gif", ".webp")

        Raises:
            ValidationError if the bytes are not a supported image or do not
            match the extension
        """
        try:
            with Image.open(BytesIO(content)) as image:
                detected = image.format
                image.verify()
        except UnidentifiedImageError:
            raise ValidationError(
                message="The uploaded file is not a valid image (PNG, JPEG, GIF or WebP).",
                field="file",
            )
        except Exception as e:
            logger.info("Rejected corrupt image upload: %s", str(e))
            raise ValidationError(
                message="The uploaded image is corrupt or truncated.",
                field="file",
            )

        extension = IMAGE_FORMATS.get(detected)
        if extension is None:
            raise ValidationError(
                message=f"Image format '{detected}' is not supported.",
                field="file",
                context={"detected_format": detected, "allowed": sorted(IMAGE_FORMATS)},
            )
        if expected_extension is not None and extension != expected_extension:
            raise ValidationError(
                message=f"File content is {detected}, which does not match its '{expected_extension}' name.",
                field="file",
                context={"detected_format": detected, "extension": expected_extension},
            )
        return extension

    def _generate_storage_path(self, kind: str, extension: str) -> Tuple[Path, str]:
        """
        Creates <kind>/YYYY/MM/DD/<uuid><ext>.
        Returns: Tuple of (absolute_path, relative_path_from_storage_root).
        """
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"

        relative_path = f"{kind}/{date_dir}/{unique_name}"
        absolute_path = self.storage_root / relative_path

        return absolute_path, relative_path

    async def store_file(self, content: bytes, extension: str, kind: str = POST_IMAGES) -> str:
        """
        Write validated file content to disk.

        Returns: relative path (what gets stored on the row).
        Raises:  FileStorageError if directory creation or file write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(kind, extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)

            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)

            logger.info("File stored: %s (%d bytes)", relative_path, len(content))
            return relative_path

        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

    async def cleanup_file(self, relative_path: Optional[str]) -> None:
        """
        Remove a stored file (replaced avatar, deleted post).

        Best-effort: a missing file is fine and any other failure is logged,
        never raised. The row change it follows has already been committed.
        """
        if not relative_path:
            return
        try:
            path = self.storage_root / relative_path
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", relative_path)
            else:
                logger.debug("Cleanup: file already gone: %s", relative_path)
        except Exception as e:
            logger.warning("Failed to clean up file %s: %s", relative_path, str(e))

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
        kind: str = POST_IMAGES,
    ) -> str:
        """
        Complete file validation and storage pipeline.

        Validation order (cheapest first):
            1. Extension check
            2. Size check
            3. Declared content type check
            4. Image bytes check (format must match the extension)
            5. Store file

        Returns: relative path for the database row.
        """
        ext = self.validate_extension(filename)
        self.validate_size(len(content))
        self.validate_content_type(content_type)
        self.validate_image_content(content, expected_extension=ext)
        return await self.store_file(content, ext, kind=kind)

    async def store_data_uri(self, data_uri: str, kind: str = POST_IMAGES) -> str:
        """
        Decode an inlined `data:<mime>;base64,<payload>` image and store it.

        Used by the legacy importer to move base64 blobs out of the documents
        into regular files. The bytes must still decode as a supported image;
        the stored extension follows the detected format, since legacy
        clients sometimes labelled the blob with the wrong type.
        """
        match = _DATA_URI_RE.match(data_uri.strip())
        if not match:
            raise ValidationError(message="Not a base64 data URI", field="image")

        mime = match.group("mime").lower()
        if mime not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=f"Content type '{mime}' is not supported.",
                field="image",
                context={"content_type": mime},
            )
        try:
            content = base64.b64decode(match.group("payload"), validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError(message="Image payload is not valid base64", field="image")

        self.validate_size(len(content))
        extension = self.validate_image_content(content)
        return await self.store_file(content, extension, kind=kind)

    def resolve(self, relative_path: str) -> Path:
        """
        Map a relative path from a URL to a stored file.

        Raises:
            ValidationError: the path escapes the storage root (../ tricks)
            NotFoundError:   no such file
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="path")
        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return full_path

    @staticmethod
    def public_url(relative_path: Optional[str]) -> Optional[str]:
        """URL under which a stored file is served, or None when there is no file."""
        if not relative_path:
            return None
        return f"{FILES_URL_PREFIX}{relative_path}"


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()
