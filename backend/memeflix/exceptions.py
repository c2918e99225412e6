"""
Memeflix Backend — Custom Exception Hierarchy
==============================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages, instead of leaking raw
       database or filesystem errors to the client.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and the auth dependency; caught by global handlers.

Exception Hierarchy:
    MemeflixError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthenticationError      → 401 Unauthorized (no / bad credentials)
    ├── ForbiddenError           → 403 Forbidden (token present but invalid)
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict (unique constraint)
    ├── MediaFileError           → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class MemeflixError(Exception):
    """
    Base exception for all Memeflix application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MemeflixError):
    """
    Raised when client input fails validation.

    When:    Non-positive page/limit, unsafe media filename, malformed body.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Invalid page or limit parameter.",
            "details": {"field": "page"}
        }
    """

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


class AuthenticationError(MemeflixError):
    """
    Raised when a request carries no usable credentials.

    When:    Missing bearer token, unknown username, wrong password.
    HTTP:    401 Unauthorized

    Login failures use one message for "no such user" and
    "wrong password" so usernames cannot be enumerated.
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(MemeflixError):
    """Raised when a bearer token is present but invalid, expired or orphaned (403)."""

    def __init__(
        self,
        message: str = "Invalid or expired token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(MemeflixError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown meme id, vote/favorite/view on a missing meme (surfaced
             through the foreign-key violation), media file absent.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)


class ConflictError(MemeflixError):
    """
    Raised when a write collides with a uniqueness rule.

    When:    Registering a username or email that is already taken.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The resource already exists",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class MediaFileError(MemeflixError):
    """
    Raised when a media file exists but cannot be opened or read.

    HTTP:    500 Internal Server Error

    The OS error and resolved path go into context for the logs; the client
    only sees a generic "Failed to send file." message.
    """

    def __init__(
        self,
        message: str = "Failed to send file.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(MemeflixError):
    """
    Raised when database operations fail unexpectedly.

    What:    A database query, insert, or update failed.
    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic.
        Detailed error info (SQL statement, constraint name, etc.) is logged
        server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
