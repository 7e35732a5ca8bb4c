"""
SoulSocial Backend: Authentication Service
============================================

What:  Registration, login, password hashing and session tokens.
Why:   Keeps credential handling in one place, away from HTTP concerns.
How:   bcrypt for password hashes (cost from settings), PyJWT (HS256) for
       signed session tokens carrying the username as `sub`.
Who:   Called by the users routes; resolve_actor()/ensure_can_modify() are
       used by every write route to decide who a request acts as.

Identity Model:
    Older clients keep the username in local storage and send it as a plain
    field (`username`, `user`) on writes. Newer clients also send the token
    they got from register/login as `Authorization: Bearer <token>`.

    - Token present:  it must be valid, and it wins over the plain field.
                      A plain field naming someone else is rejected (401).
    - Token absent:   the plain field is trusted, unless
                      REQUIRE_SESSION_TOKEN is on, in which case 401.

Password Hashing:
    bcrypt is CPU-bound (~50-100ms at cost 10), so hashing and checking run
    in the threadpool to keep the event loop responsive. Hashes produced by
    the legacy Node server ($2b$, cost 10) verify unchanged.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import AuthError, ConflictError, ValidationError
from app.models.user import EMAIL_MAX_LENGTH, USERNAME_MAX_LENGTH, User
from app.schemas.user import AuthResponse
from app.services.file_service import AVATARS, ImageUpload, file_service

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"

# bcrypt only looks at the first 72 bytes; longer input is rejected instead
# of being silently truncated
MAX_PASSWORD_BYTES = 72

INVALID_CREDENTIALS = "Invalid email or password"


def check_username_length(username: str, field: str = "username") -> None:
    """Usernames are stored in bounded columns (users, posts, likes, comments)."""
    if len(username) > USERNAME_MAX_LENGTH:
        raise ValidationError(
            message=f"Username must be at most {USERNAME_MAX_LENGTH} characters",
            field=field,
            context={"max_length": USERNAME_MAX_LENGTH, "length": len(username)},
        )


# ══════════════════════════════════════════════════════════════════════════
# Password hashing
# ══════════════════════════════════════════════════════════════════════════

def _hash_password_sync(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def _check_password_sync(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash (e.g. a half-migrated legacy row)
        logger.warning("Stored password hash could not be parsed")
        return False


async def hash_password(password: str) -> str:
    return await run_in_threadpool(_hash_password_sync, password)


async def verify_password(password: str, password_hash: str) -> bool:
    return await run_in_threadpool(_check_password_sync, password, password_hash)


# ══════════════════════════════════════════════════════════════════════════
# Session tokens
# ══════════════════════════════════════════════════════════════════════════

def issue_token(username: str) -> str:
    """Sign a session token for `username` valid for settings.session_ttl_seconds."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": username,
        "iat": now,
        "exp": now + timedelta(seconds=settings.session_ttl_seconds),
    }
    return jwt.encode(payload, settings.session_secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> str:
    """
    Verify a session token and return the username it was issued for.

    Raises:
        AuthError: expired, tampered with, or missing a subject.
    """
    try:
        payload = jwt.decode(token, settings.session_secret, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError(message="Session expired, please log in again")
    except jwt.InvalidTokenError:
        raise AuthError(message="Invalid session token")

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise AuthError(message="Invalid session token")
    return subject


def resolve_actor(claimed: Optional[str], subject: Optional[str]) -> Optional[str]:
    """
    Decide which username a write request acts as.

    Args:
        claimed: Username sent as a plain field (may be None/blank)
        subject: Username from a verified session token, or None

    Returns:
        The acting username, or None when neither is available (callers
        decide whether that means "Anonymous" or 401).
    """
    claimed = (claimed or "").strip() or None
    if claimed is not None:
        check_username_length(claimed)

    if subject is not None:
        if claimed is not None and claimed != subject:
            raise AuthError(
                message=f"Session does not belong to '{claimed}'",
                context={"claimed": claimed, "subject": subject},
            )
        return subject

    if settings.require_session_token:
        raise AuthError(message="A valid session token is required")
    return claimed


def ensure_can_modify(author: str, subject: Optional[str]) -> None:
    """
    Guard for post edit/delete.

    Without token enforcement anyone may edit or delete any post (legacy
    behavior). With REQUIRE_SESSION_TOKEN only the author may.
    """
    if not settings.require_session_token:
        return
    if subject is None:
        raise AuthError(message="A valid session token is required")
    if subject != author:
        raise AuthError(
            message="Only the author can change this post",
            context={"author": author, "subject": subject},
        )


# ══════════════════════════════════════════════════════════════════════════
# Registration and login
# ══════════════════════════════════════════════════════════════════════════

def _validate_password(password: str) -> None:
    if not password:
        raise ValidationError(message="Password is required", field="password")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            message=f"Password must be at most {MAX_PASSWORD_BYTES} bytes",
            field="password",
        )


class AuthService:
    """Stateless; every method receives the request's database session."""

    async def register(
        self,
        db: AsyncSession,
        username: str,
        email: str,
        password: str,
        avatar: Optional[ImageUpload] = None,
    ) -> AuthResponse:
        """
        Create an account and return the client identity plus a session token.

        Raises:
            ValidationError: blank username/email, bad password, bad avatar
            ConflictError:   email or username already registered
        """
        username = (username or "").strip()
        email = (email or "").strip().lower()
        if not username:
            raise ValidationError(message="Username is required", field="username")
        if not email:
            raise ValidationError(message="Email is required", field="email")
        check_username_length(username)
        if len(email) > EMAIL_MAX_LENGTH:
            raise ValidationError(
                message=f"Email must be at most {EMAIL_MAX_LENGTH} characters",
                field="email",
                context={"max_length": EMAIL_MAX_LENGTH, "length": len(email)},
            )
        _validate_password(password)

        existing = await db.execute(select(User.id).where(User.email == email))
        if existing.first() is not None:
            raise ConflictError(message="Email already registered", field="email")

        existing = await db.execute(select(User.id).where(User.username == username))
        if existing.first() is not None:
            raise ConflictError(message="Username already taken", field="username")

        password_hash = await hash_password(password)

        avatar_path: Optional[str] = None
        if avatar is not None:
            avatar_path = await file_service.validate_and_store(
                filename=avatar.filename,
                content=avatar.content,
                content_type=avatar.content_type,
                kind=AVATARS,
            )

        user = User(
            username=username,
            email=email,
            password_hash=password_hash,
            avatar_path=avatar_path,
        )
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email/username
            await file_service.cleanup_file(avatar_path)
            raise ConflictError(message="Email or username already registered")

        logger.info("Registered user %s", username)
        return AuthResponse(
            username=user.username,
            avatar=file_service.public_url(user.avatar_path),
            token=issue_token(user.username),
        )

    async def login(self, db: AsyncSession, email: str, password: str) -> AuthResponse:
        """
        Check credentials.

        Raises:
            AuthError: unknown email or wrong password (same message for both)
        """
        email = (email or "").strip().lower()
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user is None or not password:
            raise AuthError(message=INVALID_CREDENTIALS)

        if not await verify_password(password, user.password_hash):
            logger.info("Failed login for %s", user.username)
            raise AuthError(message=INVALID_CREDENTIALS)

        return AuthResponse(
            username=user.username,
            avatar=file_service.public_url(user.avatar_path),
            token=issue_token(user.username),
        )


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService()
