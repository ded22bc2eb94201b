"""
SnipShare Backend: Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the account, identity and snippet
       services.
How:   Each exception carries a client-safe message and an optional context
       dict. Global handlers registered in main.py map them to HTTP status
       codes (JSON under /api, an HTML error page elsewhere).
Who:   Raised by services and middleware; caught by global handlers or by the
       page routes that re-render forms.

Exception Hierarchy:
    SnipShareError (base)
    ├── ValidationError          → 400 Bad Request (carries field-level errors)
    ├── ConflictError            → 400 Bad Request (uniqueness violation)
    ├── AuthError                → 401 Unauthorized (credential mismatch)
    ├── IdentityError            → 401 Unauthorized (no resolvable current user)
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── StoreError               → 500 Internal Server Error (details logged only)
    ├── QuoteServiceError        → handled by the home page (quote omitted)
    └── CircuitBreakerOpenError  → handled by the home page (quote omitted)
"""

from typing import Any, Dict, List, Optional

from snipshare.schemas.common import FieldError


class SnipShareError(Exception):
    """
    Base exception for all SnipShare application errors.

    Attributes:
        message:  User-facing error description (safe to return in a response)
        context:  Additional debug info (logged but NOT returned to the client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SnipShareError):
    """
    Raised when caller input is malformed or missing.

    The `errors` list mirrors what the validation functions in
    snipshare.validation produce, one FieldError per failing field, and is
    returned to API clients verbatim.

    Example response:
        {
            "error": "validation_error",
            "message": "Snippet is invalid",
            "errors": [{"field": "title", "message": "Title is required"}]
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[List[FieldError]] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.errors: List[FieldError] = list(errors or [])
        if field and not self.errors:
            self.errors.append(FieldError(field=field, message=message))
        ctx = context or {}
        if self.errors:
            ctx["fields"] = [e.field for e in self.errors]
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(SnipShareError):
    """
    Raised when a write would violate a uniqueness rule.

    When:    Registering a username that already exists, whether caught by
             the pre-check or by the UNIQUE constraint on insert.
    """

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthError(SnipShareError):
    """
    Raised when submitted credentials do not match a stored user.

    The message distinguishes "Incorrect username" from "Incorrect password"
    for server-side logs. Adapters replace it with a generic message before
    anything reaches the client.
    """

    def __init__(
        self,
        message: str = "Invalid credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class IdentityError(SnipShareError):
    """
    Raised when a session does not resolve to an existing user.

    Callers treat this as "nobody is logged in" rather than as a failure.
    """

    def __init__(
        self,
        message: str = "No authenticated user for this session",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(SnipShareError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None (or a zero rowcount) for missing records; the
    services convert that into NotFoundError so routes stay free of
    lookup logic.
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


class StoreError(SnipShareError):
    """
    Raised when the relational store is unavailable or a query fails.

    Security Note:
        The message returned to the client is always generic. SQL text,
        constraint names and driver errors go to the server log only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class QuoteServiceError(SnipShareError):
    """Raised when the quote API fails after all retries or returns garbage."""

    def __init__(
        self,
        message: str = "Quote service is temporarily unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CircuitBreakerOpenError(SnipShareError):
    """
    Raised when the quote API circuit breaker is OPEN.

    How the circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for recovery_timeout seconds)
        → After the timeout → HALF-OPEN (allow one test call)
        → Test succeeds → CLOSED; test fails → OPEN again
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "Quote service is temporarily unavailable due to repeated failures. "
            f"Retrying in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class RateLimitExceededError(SnipShareError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with a Retry-After header.
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
