"""
Custom exception classes and FastAPI exception handlers.

The service layer raises these domain errors without importing any HTTP
concepts; the handlers registered here translate them into responses.

The taxonomy is deliberately coarse. Every authentication failure is a 401
with a generic message, so a caller cannot tell which precondition failed.
The one exception is the lockout message, which discloses the remaining
wait time.

Exception hierarchy:
    CRMAPIError (base)
    ├── DuplicateEmailError          — 409, registration email already taken
    ├── AuthenticationError          — 401
    │   ├── InvalidCredentialsError  — unknown email, wrong password, inactive
    │   ├── AccountLockedError       — too many failed logins
    │   ├── InvalidRefreshTokenError — bad/expired/rotated refresh token
    │   └── InactiveUserError        — bearer user removed or deactivated
    ├── InsufficientRoleError        — 403, role guard rejected the caller
    └── UserNotFoundError            — 404, admin endpoint addressed no user
"""

import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class CRMAPIError(Exception):
    """Base exception for all CRM API domain errors."""

    status_code = 400
    error_type = "error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class DuplicateEmailError(CRMAPIError):
    """Raised when registering with an email that's already in use."""

    status_code = 409
    error_type = "duplicate_email"

    def __init__(self, email: str):
        self.email = email
        super().__init__("User with this email already exists")


class AuthenticationError(CRMAPIError):
    """Base class for every 401 response."""

    status_code = 401
    error_type = "unauthorized"


class InvalidCredentialsError(AuthenticationError):
    """Raised when login credentials are incorrect or unusable."""

    error_type = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid credentials")


class AccountLockedError(AuthenticationError):
    """
    Raised when a login is attempted while the account is locked.

    Attributes:
        minutes_remaining: Whole minutes until the lock expires, rounded up.
    """

    error_type = "account_locked"

    def __init__(self, minutes_remaining: int):
        self.minutes_remaining = minutes_remaining
        super().__init__(
            f"Account is locked. Try again in {minutes_remaining} minutes"
        )


class InvalidRefreshTokenError(AuthenticationError):
    """Raised for any refresh-token failure; the reason is never disclosed."""

    error_type = "invalid_refresh_token"

    def __init__(self):
        super().__init__("Invalid refresh token")


class InactiveUserError(AuthenticationError):
    """Raised when a bearer token belongs to a missing or deactivated user."""

    error_type = "inactive_user"

    def __init__(self):
        super().__init__("User not found or inactive")


class InsufficientRoleError(CRMAPIError):
    """Raised when the caller's role is not allowed on an endpoint."""

    status_code = 403
    error_type = "insufficient_role"

    def __init__(self, detail: str = "You do not have permission to perform this action"):
        super().__init__(detail)


class UserNotFoundError(CRMAPIError):
    """Raised when an admin endpoint addresses a user that doesn't exist."""

    status_code = 404
    error_type = "user_not_found"

    def __init__(self, user_id: uuid.UUID):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the domain exception handler with the FastAPI application.

    Every CRMAPIError maps to its status code and a consistent JSON body:
    {"detail": "error message", "error_type": "..."}. 401 responses also
    carry the WWW-Authenticate challenge.
    """

    @app.exception_handler(CRMAPIError)
    async def crm_api_error_handler(
        request: Request, exc: CRMAPIError
    ) -> JSONResponse:
        headers = None
        if isinstance(exc, AuthenticationError):
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error_type": exc.error_type},
            headers=headers,
        )
