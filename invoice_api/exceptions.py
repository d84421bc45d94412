"""
Custom exception classes and FastAPI exception handlers.

Why custom exceptions?
  Services and dependencies raise domain-specific errors (like
  UserExistsError) without importing HTTP concepts. The handlers registered
  here translate them into HTTP responses with one consistent envelope:

      {"success": false, "error": {"code": "USER_EXISTS", "message": "..."}}

  The "code" is stable and machine-readable; clients should branch on it,
  never on the message text.

Exception hierarchy:
    InvoiceAPIError (base)
    ├── Input validation       — MissingCredentialsError, NoUpdatesError, ...
    ├── Authentication         — NoTokenError, InvalidTokenError, TokenExpiredHTTPError, ...
    ├── Authorization          — NotAuthenticatedError, InsufficientPermissionsError, ...
    ├── Conflict               — UserExistsError, DuplicateError
    ├── Not found              — UserNotFoundError
    └── Rate limiting          — RateLimitExceededError
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from invoice_api.config import settings

logger = logging.getLogger("invoiceapi.errors")


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class InvoiceAPIError(Exception):
    """
    Base exception for all Invoice API domain errors.

    Subclasses set `status_code`, `code` and a default `message`. Anything in
    `extra` is merged into the error envelope next to code and message.
    """

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "An error occurred"

    def __init__(self, message: str | None = None, **extra):
        self.message = message or self.message
        self.extra = extra
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Input validation (400)
# ---------------------------------------------------------------------------

class MissingCredentialsError(InvoiceAPIError):
    status_code = 400
    code = "MISSING_CREDENTIALS"
    message = "Email and password are required"


class MissingPasswordsError(InvoiceAPIError):
    status_code = 400
    code = "MISSING_PASSWORDS"
    message = "Current and new passwords are required"


class WeakPasswordError(InvoiceAPIError):
    """Raised when a password is empty or shorter than PASSWORD_MIN_LENGTH."""

    status_code = 400
    code = "WEAK_PASSWORD"

    def __init__(self, min_length: int = settings.PASSWORD_MIN_LENGTH):
        super().__init__(f"Password must be at least {min_length} characters")


class NoUpdatesError(InvoiceAPIError):
    status_code = 400
    code = "NO_UPDATES"
    message = "No valid fields to update"


class SelfDeactivationError(InvoiceAPIError):
    status_code = 400
    code = "SELF_DEACTIVATION"
    message = "Administrators cannot deactivate their own account"


# ---------------------------------------------------------------------------
# Authentication (401 / 403)
# ---------------------------------------------------------------------------

class NoTokenError(InvoiceAPIError):
    status_code = 401
    code = "NO_TOKEN"
    message = "Authentication token is required"


class InvalidTokenError(InvoiceAPIError):
    status_code = 403
    code = "INVALID_TOKEN"
    message = "Invalid authentication token"


class TokenExpiredHTTPError(InvoiceAPIError):
    """Response for security.TokenExpiredError raised while decoding."""

    status_code = 403
    code = "TOKEN_EXPIRED"
    message = "Authentication token has expired"


class InvalidUserError(InvoiceAPIError):
    """The token was valid but its user is gone or deactivated."""

    status_code = 401
    code = "INVALID_USER"
    message = "User no longer exists or is inactive"


class InvalidCredentialsError(InvoiceAPIError):
    """Raised for an unknown email and for a wrong password alike."""

    status_code = 401
    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


class AccountInactiveError(InvoiceAPIError):
    status_code = 403
    code = "ACCOUNT_INACTIVE"
    message = "Your account has been deactivated"


class InvalidPasswordError(InvoiceAPIError):
    status_code = 401
    code = "INVALID_PASSWORD"
    message = "Current password is incorrect"


# ---------------------------------------------------------------------------
# Authorization (401 / 403)
# ---------------------------------------------------------------------------

class NotAuthenticatedError(InvoiceAPIError):
    status_code = 401
    code = "NOT_AUTHENTICATED"
    message = "Please authenticate first"


class InsufficientPermissionsError(InvoiceAPIError):
    """Raised when the caller's role is not in the required set."""

    status_code = 403
    code = "INSUFFICIENT_PERMISSIONS"

    def __init__(self, required_roles: list[str], current_role: str):
        super().__init__(
            f"This action requires one of these roles: {', '.join(required_roles)}",
            requiredRoles=required_roles,
            currentRole=current_role,
        )


class ResourceAccessError(InvoiceAPIError):
    """Raised when a non-admin caller touches a resource they don't own."""

    status_code = 403
    code = "FORBIDDEN_RESOURCE"
    message = "You do not have access to this resource"


# ---------------------------------------------------------------------------
# Conflict (409) and not found (404)
# ---------------------------------------------------------------------------

class UserExistsError(InvoiceAPIError):
    status_code = 409
    code = "USER_EXISTS"
    message = "User with this email already exists"


class DuplicateError(InvoiceAPIError):
    """Raised when the store's unique constraint rejects a write."""

    status_code = 409
    code = "DUPLICATE_ERROR"
    message = "Email already exists"


class UserNotFoundError(InvoiceAPIError):
    status_code = 404
    code = "USER_NOT_FOUND"
    message = "User not found"


# ---------------------------------------------------------------------------
# Rate limiting (429)
# ---------------------------------------------------------------------------

class RateLimitExceededError(InvoiceAPIError):
    """Raised when a caller has spent their /api request budget."""

    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"
    message = "Too many requests. Please try again later."


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def error_response(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    """Build the standard error envelope."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message, **extra},
        },
    )


def _field_name(loc) -> str:
    # ("body", "email") -> "email"; nested locations are dotted
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or str(loc[-1])


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Every handler produces the envelope built by error_response(), so clients
    see one error shape no matter which layer failed.

    This is called once during app startup in main.py.
    """

    @app.exception_handler(InvoiceAPIError)
    async def invoice_api_error_handler(
        request: Request, exc: InvoiceAPIError
    ) -> JSONResponse:
        return error_response(exc.status_code, exc.code, exc.message, **exc.extra)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return error_response(
            422,
            "VALIDATION_ERROR",
            "Validation failed",
            errors=[
                {"field": _field_name(err["loc"]), "message": err["msg"]}
                for err in exc.errors()
            ],
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(
        request: Request, exc: IntegrityError
    ) -> JSONResponse:
        logger.warning("Integrity error on %s %s", request.method, request.url.path)
        return error_response(409, "DUPLICATE_ERROR", "Duplicate entry")

    # slowapi only raises this for the shared register/login budget
    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(
        request: Request, exc: RateLimitExceeded
    ) -> JSONResponse:
        return error_response(
            429,
            "TOO_MANY_ATTEMPTS",
            "Too many attempts. Please try again in 15 minutes.",
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        if exc.status_code == 404:
            return error_response(
                404,
                "NOT_FOUND",
                f"Endpoint not found: {request.method} {request.url.path}",
            )
        return error_response(exc.status_code, "HTTP_ERROR", str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        extra = {"detail": repr(exc)} if settings.DEBUG else {}
        return error_response(
            500, "INTERNAL_ERROR", "An unexpected error occurred", **extra
        )
