"""
SoulSocial Backend: Custom Exception Hierarchy
================================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages.
How:   Each exception class carries a message, an optional context dict, a
       stable machine-readable ErrorKind and the HTTP status it maps to.
       Global exception handlers (registered in main.py) turn them into
       structured JSON error responses.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    SoulSocialError (base)
    ├── ValidationError     → 400 validation_error  (malformed id, bad field)
    ├── ConflictError       → 400 conflict          (email/username taken)
    ├── AuthError           → 401 unauthorized      (bad credentials, identity)
    ├── NotFoundError       → 404 not_found
    ├── FileStorageError    → 500 storage_error
    └── DatabaseError       → 500 server_error
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """
    Stable error codes returned in the `error` field of every error response.

    Clients should branch on these instead of parsing human-readable messages.
    """
    VALIDATION = "validation_error"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    STORAGE = "storage_error"
    SERVER = "server_error"
    INTERNAL = "internal_server_error"


class SoulSocialError(Exception):
    """
    Base exception for all SoulSocial application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (always logged; returned only for 4xx
                  kinds with expose_context)
        kind:     ErrorKind reported to the client
        status_code: HTTP status used by the global handler
        expose_context: Whether a 4xx response may include context as "details"
    """

    kind: ErrorKind = ErrorKind.SERVER
    status_code: int = 500
    expose_context: bool = True

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SoulSocialError):
    """
    Raised when client input fails validation.

    When:    Malformed post identifier, blank comment text, oversized or
             unsupported upload, over-long password.
    HTTP:    400 Bad Request

    FastAPI's own schema validation still answers 422; this class covers the
    business rules the schemas cannot express (e.g. "abc" is a string but not
    a post id).
    """

    kind = ErrorKind.VALIDATION
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(SoulSocialError):
    """
    Raised when a unique value (email, username) is already registered.

    HTTP:    400, kept for compatibility with existing clients that treat any
             400 from /register as "already registered".
    """

    kind = ErrorKind.CONFLICT
    status_code = 400

    def __init__(
        self,
        message: str = "Resource already exists",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthError(SoulSocialError):
    """
    Raised for bad credentials or a missing/invalid acting identity.

    When:    Login with unknown email or wrong password, like without a
             username, invalid/expired session token, token subject that does
             not match the username the request claims to act as.
    HTTP:    401 Unauthorized

    Login deliberately uses one message for "no such email" and "wrong
    password" so the endpoint cannot be used to enumerate accounts.
    Context (token subject, post author) goes to the log only.
    """

    kind = ErrorKind.UNAUTHORIZED
    status_code = 401
    expose_context = False

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(SoulSocialError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing records (not an exception).
    Services convert None → NotFoundError so routes stay free of checks.
    HTTP:    404 Not Found
    """

    kind = ErrorKind.NOT_FOUND
    status_code = 404

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class FileStorageError(SoulSocialError):
    """
    Raised when file system operations fail (disk full, permission denied).

    HTTP:    500. The client gets the message; paths stay in the server log.
    """

    kind = ErrorKind.STORAGE
    status_code = 500

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(SoulSocialError):
    """
    Raised when database operations fail unexpectedly.

    Security Note:
        The message returned to the client is always generic. Detailed error
        info (SQL, constraint names) is logged server-side only.
    HTTP:    500
    """

    kind = ErrorKind.SERVER
    status_code = 500

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
