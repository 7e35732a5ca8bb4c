"""
SoulSocial Backend: Legacy Data Importer
==========================================

What:  Loads a JSON export of the old document store (users, posts,
       comments) into the relational schema.
How:   python -m app.legacy_import export.json [--uploads-dir DIR]
       (installed as the `soulsocial-import` console script)

Export format (mongoexport --jsonArray per collection, bundled in one file):

    {
      "users":    [{"_id": {"$oid": "..."}, "username": ..., "email": ...,
                    "password": "<bcrypt hash>", "bio": ..., "language": ...,
                    "avatarBase64": "data:image/png;base64,..."}],
      "posts":    [{"_id": ..., "user": ..., "title": ..., "text": ...,
                    "image": "<legacy upload file name>",
                    "imageBase64": "data:...", "created_at": {"$date": ...},
                    "likes": 3, "likedBy": ["ana", ...]}],
      "comments": [{"_id": ..., "post_id": {"$oid": ...} | "...",
                    "user": ..., "text": ..., "created_at": ...}]
    }

Conversion rules:
    - Ids become new UUIDs; comment post_ids are remapped through the posts
      imported in the same run. Comments whose post is unknown are skipped.
    - Password hashes are copied unchanged (bcrypt $2a$/$2b$ verify as-is).
    - Inlined data URIs are decoded into stored files; a legacy `image` file
      name is copied from --uploads-dir when given.
    - likedBy is de-duplicated into post_likes and `likes` is set to its size.
      Count-only records (likes > 0 with no likedBy) cannot be backed by a
      liker set: their count is reset to 0 and logged.
    - Users whose username or email already exists are skipped, so the import
      can be re-run after a partial failure.
    - Names longer than the username column (and overlong emails) cannot be
      stored: such users, posts and comments are skipped, such likers dropped.

Everything is written in one transaction: a failure imports nothing.
"""

import argparse
import asyncio
import json
import logging
import sys
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set

import aiofiles
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import async_session_factory, dispose_engine, init_models
from app.exceptions import SoulSocialError
from app.models import Comment, Post, PostLike, User
from app.models.user import EMAIL_MAX_LENGTH, USERNAME_MAX_LENGTH
from app.services.file_service import AVATARS, POST_IMAGES, file_service
from app.services.post_service import ANONYMOUS

logger = logging.getLogger(__name__)


@dataclass
class ImportReport:
    users: int = 0
    users_skipped: int = 0
    posts: int = 0
    posts_skipped: int = 0
    likes: int = 0
    likes_reset: int = 0
    comments: int = 0
    comments_skipped: int = 0
    images: int = 0
    image_errors: List[str] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"users={self.users} (skipped {self.users_skipped}), "
            f"posts={self.posts} (skipped {self.posts_skipped}), "
            f"likes={self.likes} (reset {self.likes_reset}), "
            f"comments={self.comments} (skipped {self.comments_skipped}), "
            f"images={self.images} (failed {len(self.image_errors)})"
        )


def legacy_id(value: Any) -> Optional[str]:
    """`{"$oid": "..."}` or a plain string → the id string."""
    if isinstance(value, dict):
        value = value.get("$oid")
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def legacy_datetime(value: Any) -> Optional[datetime]:
    """Accepts `{"$date": ...}`, ISO strings and epoch milliseconds."""
    if isinstance(value, dict):
        value = value.get("$date")
        if isinstance(value, dict):  # {"$date": {"$numberLong": "..."}}
            value = value.get("$numberLong")
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) or (isinstance(value, str) and value.isdigit()):
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable legacy date %r, using import time", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _liker_set(value: Any) -> List[str]:
    """likedBy → unique, non-blank usernames in first-seen order. Overlong names are dropped."""
    likers: List[str] = []
    if not isinstance(value, list):
        return likers
    for name in value:
        name = str(name).strip() if name is not None else ""
        if name and len(name) <= USERNAME_MAX_LENGTH and name not in likers:
            likers.append(name)
    return likers


class LegacyImporter:
    """
    Converts one export into rows on the given session.

    The caller owns the transaction; the importer only adds and flushes.
    """

    def __init__(self, db: AsyncSession, uploads_dir: Optional[Path] = None):
        self.db = db
        self.uploads_dir = uploads_dir
        self.report = ImportReport()
        # legacy post id → new post id
        self.post_ids: Dict[str, uuid.UUID] = {}
        self.stored_files: List[str] = []

    async def run(self, export: Dict[str, Any]) -> ImportReport:
        await self.import_users(export.get("users") or [])
        await self.import_posts(export.get("posts") or [])
        await self.import_comments(export.get("comments") or [])
        await self.db.flush()
        logger.info("Legacy import: %s", self.report.summary())
        return self.report

    async def _store_data_uri(self, data_uri: Any, kind: str, owner: str) -> Optional[str]:
        if not isinstance(data_uri, str) or not data_uri.strip():
            return None
        try:
            path = await file_service.store_data_uri(data_uri, kind=kind)
        except SoulSocialError as e:
            logger.warning("Skipping image of %s: %s", owner, e.message)
            self.report.image_errors.append(f"{owner}: {e.message}")
            return None
        self.stored_files.append(path)
        self.report.images += 1
        return path

    async def _copy_legacy_upload(self, filename: Any, owner: str) -> Optional[str]:
        if not isinstance(filename, str) or not filename.strip():
            return None
        if self.uploads_dir is None:
            logger.warning("%s references %r but no --uploads-dir was given", owner, filename)
            self.report.image_errors.append(f"{owner}: no uploads dir for {filename}")
            return None

        # Only the base name: legacy values were sometimes "/uploads/<name>"
        source = self.uploads_dir / Path(filename).name
        try:
            async with aiofiles.open(source, "rb") as f:
                content = await f.read()
            path = await file_service.validate_and_store(
                filename=source.name, content=content, kind=POST_IMAGES,
            )
        except OSError as e:
            logger.warning("Cannot read legacy upload %s for %s: %s", source, owner, str(e))
            self.report.image_errors.append(f"{owner}: {e}")
            return None
        except SoulSocialError as e:
            logger.warning("Skipping legacy upload %s for %s: %s", source, owner, e.message)
            self.report.image_errors.append(f"{owner}: {e.message}")
            return None
        self.stored_files.append(path)
        self.report.images += 1
        return path

    async def import_users(self, users: Sequence[Dict[str, Any]]) -> None:
        existing = await self.db.execute(select(User.username, User.email))
        taken_names: Set[str] = set()
        taken_emails: Set[str] = set()
        for username, email in existing.all():
            taken_names.add(username)
            taken_emails.add(email)

        for doc in users:
            username = (doc.get("username") or "").strip()
            email = (doc.get("email") or "").strip().lower()
            password_hash = doc.get("password") or doc.get("password_hash") or ""

            if not username or not email or not password_hash:
                logger.warning("Skipping user %s: missing username, email or password", legacy_id(doc.get("_id")))
                self.report.users_skipped += 1
                continue
            if len(username) > USERNAME_MAX_LENGTH or len(email) > EMAIL_MAX_LENGTH:
                logger.warning("Skipping user %s: username or email too long", legacy_id(doc.get("_id")))
                self.report.users_skipped += 1
                continue
            if username in taken_names or email in taken_emails:
                logger.info("Skipping user %s: already present", username)
                self.report.users_skipped += 1
                continue

            avatar_path = await self._store_data_uri(doc.get("avatarBase64"), AVATARS, f"user {username}")
            self.db.add(User(
                username=username,
                email=email,
                password_hash=password_hash,
                bio=doc.get("bio") or "",
                avatar_path=avatar_path,
                language=(doc.get("language") or "es").strip() or "es",
                created_at=legacy_datetime(doc.get("created_at")) or datetime.now(timezone.utc),
            ))
            taken_names.add(username)
            taken_emails.add(email)
            self.report.users += 1

        await self.db.flush()

    async def import_posts(self, posts: Sequence[Dict[str, Any]]) -> None:
        for doc in posts:
            old_id = legacy_id(doc.get("_id"))
            new_id = uuid.uuid4()
            owner = f"post {old_id or new_id}"
            author = (doc.get("user") or "").strip() or ANONYMOUS
            if len(author) > USERNAME_MAX_LENGTH:
                logger.warning("Skipping %s: author name too long", owner)
                self.report.posts_skipped += 1
                continue

            image_path = await self._store_data_uri(doc.get("imageBase64"), POST_IMAGES, owner)
            if image_path is None:
                image_path = await self._copy_legacy_upload(doc.get("image"), owner)

            likers = _liker_set(doc.get("likedBy"))
            legacy_count = doc.get("likes") or 0
            if not likers and isinstance(legacy_count, (int, float)) and legacy_count > 0:
                logger.warning(
                    "%s has likes=%s but no liker list; resetting to 0",
                    owner, legacy_count,
                )
                self.report.likes_reset += 1

            self.db.add(Post(
                id=new_id,
                user=author,
                title=doc.get("title") or "",
                text=doc.get("text") or "",
                image_path=image_path,
                created_at=legacy_datetime(doc.get("created_at")) or datetime.now(timezone.utc),
                likes=len(likers),
            ))
            # Parent row must exist before its post_likes (FK)
            await self.db.flush()
            for username in likers:
                self.db.add(PostLike(post_id=new_id, username=username))

            if old_id:
                self.post_ids[old_id] = new_id
            self.report.posts += 1
            self.report.likes += len(likers)

        await self.db.flush()

    async def import_comments(self, comments: Sequence[Dict[str, Any]]) -> None:
        for doc in comments:
            old_post_id = legacy_id(doc.get("post_id"))
            post_id = self.post_ids.get(old_post_id) if old_post_id else None
            text = (doc.get("text") or "").strip()
            author = (doc.get("user") or "").strip() or ANONYMOUS

            reason = None
            if post_id is None:
                reason = f"unknown post {old_post_id}"
            elif not text:
                reason = "blank text"
            elif len(author) > USERNAME_MAX_LENGTH:
                reason = "author name too long"
            if reason is not None:
                logger.info("Skipping comment %s: %s", legacy_id(doc.get("_id")), reason)
                self.report.comments_skipped += 1
                continue

            self.db.add(Comment(
                post_id=post_id,
                user=author,
                text=text,
                created_at=legacy_datetime(doc.get("created_at")) or datetime.now(timezone.utc),
            ))
            self.report.comments += 1

        await self.db.flush()


async def load_export(path: Path) -> Dict[str, Any]:
    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        data = json.loads(await f.read())
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected an object with users/posts/comments arrays")
    return data


async def import_export(path: Path, uploads_dir: Optional[Path] = None) -> ImportReport:
    """Create missing tables, then import `path` in a single transaction."""
    export = await load_export(path)
    await init_models()

    async with async_session_factory() as session:
        importer = LegacyImporter(session, uploads_dir=uploads_dir)
        try:
            report = await importer.run(export)
            await session.commit()
        except Exception:
            await session.rollback()
            # Rows are gone; do not leave their files behind
            for stored in importer.stored_files:
                await file_service.cleanup_file(stored)
            raise
    return report


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="soulsocial-import",
        description="Import a legacy SoulSocial JSON export into the database.",
    )
    parser.add_argument("export", type=Path, help="JSON file with users/posts/comments arrays")
    parser.add_argument(
        "--uploads-dir",
        type=Path,
        default=None,
        help="Directory holding legacy uploaded images referenced by post `image` names",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        stream=sys.stdout,
    )

    async def _run() -> ImportReport:
        try:
            return await import_export(args.export, uploads_dir=args.uploads_dir)
        finally:
            await dispose_engine()

    try:
        report = asyncio.run(_run())
    except (OSError, ValueError) as e:
        logger.error("Import failed: %s", str(e))
        return 1

    print(report.summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
