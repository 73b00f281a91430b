"""
NoteFlow Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for every failure the API reports.
Why:   Services raise domain errors; global handlers in main.py turn them
       into the `{success: false, message}` envelope with the right status.
How:   Each exception carries a user-facing message and an optional context
       dict that is logged server-side but never returned to the client.
Who:   Raised by services, security dependencies and middleware.

Exception Hierarchy:
    NoteFlowError (base)
    ├── ValidationError          → 400 Bad Request
    ├── ConflictError            → 400 Bad Request (duplicate / state conflict)
    ├── AuthenticationError      → 401 Unauthorized
    ├── AuthorizationError       → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, List, Optional


class NoteFlowError(Exception):
    """
    Base exception for all NoteFlow application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NoteFlowError):
    """
    Raised when client input fails a business rule that schema validation
    cannot express (e.g. an update request with no fields).

    HTTP: 400 Bad Request
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field
        self.errors = errors or ([{"field": field, "message": message}] if field else [])


class ConflictError(NoteFlowError):
    """
    Raised when a request conflicts with existing state: duplicate email,
    already purchased note, purchase of a free note.

    HTTP: 400 Bad Request
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Request conflicts with existing data",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthenticationError(NoteFlowError):
    """
    Raised when the caller's identity cannot be established: missing,
    malformed or expired bearer token, unknown user, wrong credentials.

    HTTP: 401 Unauthorized
    """

    status_code = 401

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationError(NoteFlowError):
    """
    Raised when an authenticated caller is not allowed to perform the action.

    HTTP: 403 Forbidden
    """

    status_code = 403

    def __init__(
        self,
        message: str = "Access denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(NoteFlowError):
    """
    Raised when a requested resource does not exist, or exists but is not
    visible to the caller (ownership-scoped updates report 404, not 403).

    HTTP: 404 Not Found
    """

    status_code = 404

    def __init__(
        self,
        message: str = "Resource not found",
        resource: Optional[str] = None,
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if resource:
            ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(NoteFlowError):
    """
    Raised when a database operation fails unexpectedly.

    HTTP: 500 Internal Server Error

    The message returned to the client is always generic; the original
    exception text goes into `context` and is only logged.
    """

    status_code = 500

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(NoteFlowError):
    """
    Raised when a client exceeds the per-IP authentication rate limit.

    HTTP: 429 Too Many Requests (with a Retry-After header)
    """

    status_code = 429

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many authentication attempts. Please wait {retry_after} seconds and try again."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
