"""
SpotMap Backend: Custom Exception Hierarchy
============================================

What:  Application-specific exceptions for each failure category.
Why:   Services raise domain failures; only main.py decides the HTTP status.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the matching status code.
Who:   Raised by services and middleware; caught by global handlers.

Exception Hierarchy:
    SpotMapError (base)
    ├── ValidationError            → 400 Bad Request (fixable input, never sent to storage)
    ├── AuthenticationError        → 401 Unauthorized (bad credentials, email in use, signed out)
    ├── LocationPermissionError    → 403 Forbidden (location lookup denied)
    ├── NotFoundError              → 404 Not Found (terminal, not retried)
    ├── RateLimitExceededError     → 429 Too Many Requests
    ├── MediaProcessingError       → 500 Internal Server Error
    ├── DatabaseError              → 503 Service Unavailable (retryable by the user)
    ├── LocationUnavailableError   → 503 Service Unavailable (no fix could be produced)
    ├── RequestTimeoutError        → 504 Gateway Timeout (retryable by the user)
    └── RequestCancelledError      → raised inside a view whose scope was closed

There is no automatic retry anywhere in the service. "Retryable" only tells
the client that re-issuing the same request may succeed.
"""

from typing import Any, Dict, Optional


class SpotMapError(Exception):
    """
    Base exception for all SpotMap application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; only some handlers return it)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SpotMapError):
    """
    Raised when client input fails a business rule.

    When:    Empty description, no location selected, zero or too many photos,
             unsupported photo type, malformed pagination cursor.
    HTTP:    400 Bad Request

    Schema-level problems (wrong JSON types) are still reported by FastAPI
    as 422; this exception covers the rules the services enforce.
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


class NotFoundError(SpotMapError):
    """
    Raised when a requested resource does not exist.

    When:    GET /api/spots/{id} for an unknown id, commenting on or visiting
             a spot that was never created.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource.capitalize()} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class AuthenticationError(SpotMapError):
    """
    Raised when an identity operation fails or a signed-in user is required.

    Reasons:
        invalid_credentials  Unknown email or wrong password
        email_in_use         Sign-up with an email that already has an account
        not_signed_in        Operation requires a session (e.g. commenting)
        invalid_token        Bearer token is malformed, expired or revoked
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        reason: str = "invalid_credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["reason"] = reason
        super().__init__(message=message, context=ctx)
        self.reason = reason


class LocationPermissionError(SpotMapError):
    """
    Raised when the location provider is not allowed to produce a fix.

    When:    Lookup disabled by configuration, or the geolocation endpoint
             refuses the request (401/403).
    HTTP:    403 Forbidden

    Views catch this and degrade (default map center, manual pick on the
    create form) instead of failing the page.
    """

    def __init__(
        self,
        message: str = "Location access was denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LocationUnavailableError(SpotMapError):
    """
    Raised when no location fix could be produced in a single attempt.

    When:    Lookup timed out (15s), network error, malformed answer.
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "Your location is currently unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class MediaProcessingError(SpotMapError):
    """
    Raised when an uploaded photo could not be inspected or encoded.

    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Could not process the uploaded photo",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(SpotMapError):
    """
    Raised when the document store fails (connectivity, permission, driver error).

    HTTP:    503 Service Unavailable

    The message returned to the client is always generic. The original
    driver error is logged server-side only and kept in `context`.
    """

    def __init__(
        self,
        message: str = "The spot database is unavailable. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RequestTimeoutError(SpotMapError):
    """
    Raised when a view request exceeds its own timeout.

    When:    The detail view did not load its spot within detail_timeout_seconds.
    HTTP:    504 Gateway Timeout

    The timeout belongs to the request itself: the underlying call is
    cancelled when this is raised, so a late success can never be reported
    after the error.
    """

    def __init__(
        self,
        timeout: float = 15.0,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["timeout_seconds"] = timeout
        super().__init__(
            message=message or "Loading took too long. Please try again.",
            context=ctx,
        )
        self.timeout = timeout


class RequestCancelledError(SpotMapError):
    """Raised when work is submitted to a request scope that was already closed."""

    def __init__(
        self,
        message: str = "The request was cancelled",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(SpotMapError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests (with Retry-After header)
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
